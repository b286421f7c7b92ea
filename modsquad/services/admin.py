import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from modsquad.models.build import Build
from modsquad.models.user import User
from modsquad.services.accounts import require_user
from modsquad.services.builds import BuildRepository
from modsquad.services.errors import PermissionDenied, RepositoryError, StorageError
from modsquad.services.storage import ImageStore

logger = logging.getLogger(__name__)


def list_users(db: Session) -> list[User]:
    stmt = select(User).options(selectinload(User.profile)).order_by(User.created_at.desc())
    return list(db.scalars(stmt).all())


def get_stats(db: Session) -> dict:
    total_users = db.scalar(select(func.count(User.id))) or 0
    admin_users = db.scalar(select(func.count(User.id)).where(User.is_admin.is_(True))) or 0
    return {
        "total_vehicles": BuildRepository(db).count_all(),
        "regular_users": total_users - admin_users,
    }


def delete_user(db: Session, user_id: str, stores: list[ImageStore]) -> None:
    """Delete a non-admin user with their profile and builds, then their files."""
    user = require_user(db, user_id)
    if user.is_admin:
        raise PermissionDenied("Cannot delete admin users")

    builds = db.scalars(select(Build).options(selectinload(Build.images)).where(Build.user_id == user.id)).all()
    refs = [image.url for build in builds for image in build.images]
    if user.profile and user.profile.avatar_url:
        refs.append(user.profile.avatar_url)

    db.delete(user)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise RepositoryError("Error deleting user") from exc
    logger.info("user_deleted", extra={"user_id": user_id, "builds": len(builds)})

    for ref in refs:
        store = next((candidate for candidate in stores if candidate.owns(ref)), None)
        if store is None:
            continue
        try:
            store.delete(ref)
        except StorageError:
            logger.warning("blob_cleanup_failed", extra={"reference": ref}, exc_info=True)
