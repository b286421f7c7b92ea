import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from modsquad.models.image import BuildImage
from modsquad.models.profile import Profile
from modsquad.services.storage import ImageStore

logger = logging.getLogger(__name__)


def sweep_orphaned_blobs(db: Session, stores: list[ImageStore], grace: timedelta) -> int:
    """Delete stored files that no row references and that are older than ``grace``."""
    referenced = set(db.scalars(select(BuildImage.url)).all())
    referenced.update(db.scalars(select(Profile.avatar_url).where(Profile.avatar_url.is_not(None))).all())
    cutoff = (datetime.now(timezone.utc) - grace).timestamp()

    deleted = 0
    for store in stores:
        for reference, path in store.iter_blobs():
            if reference in referenced:
                continue
            try:
                if path.stat().st_mtime > cutoff:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            deleted += 1
    logger.info("orphan_sweep_finished", extra={"deleted": deleted})
    return deleted
