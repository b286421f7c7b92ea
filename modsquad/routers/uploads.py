from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from modsquad.db.session import get_db
from modsquad.models.user import User
from modsquad.routers.deps import get_current_user
from modsquad.schemas.auth import AvatarResponse, ProfileRead, UserRead
from modsquad.services.accounts import replace_avatar
from modsquad.services.errors import ValidationError
from modsquad.services.storage import get_avatar_store

router = APIRouter(prefix="/upload", tags=["uploads"])


@router.post("/avatar", response_model=AvatarResponse)
async def upload_avatar(
    avatar: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AvatarResponse:
    if avatar is None:
        raise ValidationError("No file uploaded")
    url = await replace_avatar(db, current_user, avatar, get_avatar_store())
    return AvatarResponse(
        user=UserRead.model_validate(current_user),
        profile=ProfileRead.model_validate(current_user.profile),
        url=url,
    )
