import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from modsquad.core.config import get_settings
from modsquad.core.security import decode_access_token
from modsquad.db.session import get_db
from modsquad.models.user import User
from modsquad.services.accounts import get_user
from modsquad.services.builds import BuildRepository
from modsquad.services.lifecycle import BuildLifecycleManager
from modsquad.services.storage import get_build_image_store

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")
    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as exc:
        logger.warning("token_rejected", extra={"token": credentials.credentials})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token") from exc
    user_id = payload.get("sub")
    user = get_user(db, user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")
    return user


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return current_user


def get_build_manager(db: Session = Depends(get_db)) -> BuildLifecycleManager:
    return BuildLifecycleManager(
        repository=BuildRepository(db),
        image_store=get_build_image_store(),
        max_images=get_settings().max_images_per_build,
    )
