import logging

from fastapi import UploadFile
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from modsquad.core.security import create_access_token, hash_password, verify_password
from modsquad.models.profile import Profile
from modsquad.models.user import User
from modsquad.services.errors import Conflict, NotFound, RepositoryError, StorageError, ValidationError
from modsquad.services.storage import ImageStore

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User | None:
    return db.scalar(select(User).options(selectinload(User.profile)).where(User.id == user_id))


def register_user(db: Session, username: str | None, email: str | None, password: str | None) -> User:
    if not username or not email or not password:
        raise ValidationError("Username, email, and password are required")

    existing = db.scalar(select(User.id).where(or_(User.email == email, User.username == username)))
    if existing:
        raise Conflict()

    user = User(username=username, email=email, password_hash=hash_password(password), is_admin=False)
    user.profile = Profile()
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict() from exc
    logger.info("user_registered", extra={"user_id": user.id})
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = db.scalar(select(User).options(selectinload(User.profile)).where(User.email == email))
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def issue_token(user: User) -> str:
    return create_access_token(
        user.id,
        claims={"username": user.username, "email": user.email, "isAdmin": user.is_admin},
    )


def update_profile(db: Session, user: User, changes: dict) -> Profile:
    profile = user.profile
    if profile is None:
        profile = Profile(user_id=user.id)
        user.profile = profile
    for key, value in changes.items():
        setattr(profile, key, value)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise RepositoryError("Error updating profile") from exc
    return profile


async def replace_avatar(db: Session, user: User, file: UploadFile, store: ImageStore) -> str:
    url = await store.store(file)
    previous = user.profile.avatar_url if user.profile else None
    try:
        update_profile(db, user, {"avatar_url": url})
    except Exception:
        _discard(store, url)
        raise
    if previous and previous != url:
        _discard(store, previous)
    logger.info("avatar_replaced", extra={"user_id": user.id})
    return url


def require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def _discard(store: ImageStore, reference: str) -> None:
    try:
        store.delete(reference)
    except StorageError:
        logger.warning("blob_cleanup_failed", extra={"reference": reference}, exc_info=True)
