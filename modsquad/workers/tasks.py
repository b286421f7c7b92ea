import logging
from datetime import timedelta

from modsquad.core.config import get_settings
from modsquad.db.session import SessionLocal
from modsquad.services.reconcile import sweep_orphaned_blobs
from modsquad.services.storage import get_avatar_store, get_build_image_store
from modsquad.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="modsquad.workers.tasks.orphan_blob_sweep_job")
def orphan_blob_sweep_job() -> int:
    settings = get_settings()
    db = SessionLocal()
    try:
        return sweep_orphaned_blobs(
            db,
            [get_build_image_store(), get_avatar_store()],
            grace=timedelta(minutes=settings.orphan_grace_minutes),
        )
    except Exception:
        logger.exception("orphan_sweep_failed")
        raise
    finally:
        db.close()
