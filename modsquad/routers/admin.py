from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from modsquad.core.config import get_settings
from modsquad.db.session import get_db
from modsquad.models.user import User
from modsquad.routers.deps import get_admin_user
from modsquad.schemas.admin import StatsRead, SweepResponse
from modsquad.schemas.auth import UserRead
from modsquad.schemas.common import MessageResponse
from modsquad.services.admin import delete_user, get_stats, list_users
from modsquad.services.reconcile import sweep_orphaned_blobs
from modsquad.services.storage import get_avatar_store, get_build_image_store
from modsquad.workers.tasks import orphan_blob_sweep_job

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserRead])
def get_users(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)) -> list[User]:
    return list_users(db)


@router.get("/stats", response_model=StatsRead)
def stats(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)) -> StatsRead:
    return StatsRead(**get_stats(db))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def remove_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)) -> MessageResponse:
    delete_user(db, user_id, [get_build_image_store(), get_avatar_store()])
    return MessageResponse(message="User deleted successfully")


@router.post("/maintenance/orphans", response_model=SweepResponse, status_code=status.HTTP_202_ACCEPTED)
def sweep_orphans(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)) -> SweepResponse:
    settings = get_settings()
    if settings.celery_task_always_eager:
        deleted = sweep_orphaned_blobs(
            db,
            [get_build_image_store(), get_avatar_store()],
            grace=timedelta(minutes=settings.orphan_grace_minutes),
        )
        return SweepResponse(deleted=deleted)
    task = orphan_blob_sweep_job.delay()
    return SweepResponse(task_id=task.id)
