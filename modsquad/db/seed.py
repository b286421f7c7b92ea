"""Create or promote the administrator account.

Run with ``python -m modsquad.db.seed``.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

import modsquad.models  # noqa: F401
from modsquad.core.config import get_settings
from modsquad.core.logging import configure_logging
from modsquad.core.security import hash_password
from modsquad.db.base import Base
from modsquad.db.session import SessionLocal, engine
from modsquad.models.profile import Profile
from modsquad.models.user import User

logger = logging.getLogger(__name__)


def seed_admin(db: Session) -> User:
    settings = get_settings()
    admin = db.scalar(select(User).where(User.email == settings.seed_admin_email))
    if admin:
        admin.is_admin = True
    else:
        admin = User(
            email=settings.seed_admin_email,
            username=settings.seed_admin_username,
            password_hash=hash_password(settings.seed_admin_password),
            is_admin=True,
        )
        admin.profile = Profile(
            bio="ModSquad Administrator",
            location="ModSquad HQ",
            instagram_url="https://instagram.com/modsquad",
            facebook_url="https://facebook.com/modsquad",
            youtube_url="https://youtube.com/modsquad",
        )
        db.add(admin)
    db.commit()
    logger.info("admin_seeded", extra={"user_id": admin.id})
    return admin


def main() -> None:
    configure_logging()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_admin(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
