"""Create, update and delete builds together with their image files.

The database is the source of truth. New files are written before the rows
that reference them and are deleted again if the rows cannot be committed;
files of deleted rows are removed only after the delete has committed, and a
failure to remove them is logged rather than reported, since an unreferenced
file is reclaimed by the orphan sweep.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from fastapi import UploadFile

from modsquad.models.build import Build
from modsquad.schemas.build import BuildFields
from modsquad.services.builds import BuildRepository
from modsquad.services.errors import StorageError, TooManyImages, ValidationError
from modsquad.services.storage import ImageStore

logger = logging.getLogger(__name__)

CREATE_DEFAULTS = {
    "title": "New Build",
    "description": "My vehicle build",
    "car_make": "Unknown",
    "car_model": "Unknown",
}


class BuildLifecycleManager:
    def __init__(self, repository: BuildRepository, image_store: ImageStore, max_images: int) -> None:
        self.repository = repository
        self.image_store = image_store
        self.max_images = max_images

    def list_for_owner(self, owner_id: str) -> list[Build]:
        return self.repository.list_by_owner(owner_id)

    def list_public(self) -> list[Build]:
        return self.repository.list_all()

    def get(self, build_id: str, owner_id: str) -> Build:
        return self.repository.find_by_id(build_id, owner_id)

    async def create(self, owner_id: str, fields: BuildFields, uploads: Sequence[UploadFile]) -> Build:
        if not uploads:
            raise ValidationError("At least one image is required")
        if len(uploads) > self.max_images:
            raise TooManyImages(f"A build can have at most {self.max_images} images")

        values = creation_values(fields)
        refs = await self._store_all(uploads)
        try:
            build = self.repository.create(owner_id, values, refs)
        except Exception:
            self.discard(refs, event="build_create_compensated")
            raise
        logger.info("build_created", extra={"build_id": build.id, "owner_id": owner_id, "images": len(refs)})
        return build

    async def update(
        self,
        build_id: str,
        owner_id: str,
        fields: BuildFields,
        uploads: Sequence[UploadFile] = (),
    ) -> Build:
        changes = field_changes(fields)
        build = self.repository.find_by_id(build_id, owner_id)
        if uploads and len(build.images) + len(uploads) > self.max_images:
            raise TooManyImages(f"A build can have at most {self.max_images} images")

        refs = await self._store_all(uploads) if uploads else []
        try:
            build = self.repository.update(build_id, owner_id, changes, refs, max_images=self.max_images)
        except Exception:
            self.discard(refs, event="build_update_compensated")
            raise
        logger.info(
            "build_updated",
            extra={"build_id": build_id, "fields": sorted(changes), "images_added": len(refs)},
        )
        return build

    def delete_build(self, build_id: str, owner_id: str) -> Build:
        build = self.repository.delete_build(build_id, owner_id)
        self.discard([image.url for image in build.images], event="build_deleted")
        logger.info("build_deleted", extra={"build_id": build_id, "owner_id": owner_id})
        return build

    def delete_image(self, build_id: str, owner_id: str, image_id: str) -> Build:
        build, reference = self.repository.delete_image(build_id, owner_id, image_id)
        self.discard([reference], event="image_deleted")
        logger.info("image_deleted", extra={"build_id": build_id, "image_id": image_id})
        return build

    def discard(self, refs: Sequence[str], event: str) -> None:
        for ref in refs:
            try:
                self.image_store.delete(ref)
            except StorageError:
                logger.warning("blob_cleanup_failed", extra={"reference": ref, "event": event}, exc_info=True)

    async def _store_all(self, uploads: Sequence[UploadFile]) -> list[str]:
        for upload in uploads:
            self.image_store.check_media_type(upload)
        refs: list[str] = []
        try:
            for upload in uploads:
                refs.append(await self.image_store.store(upload))
        except Exception:
            self.discard(refs, event="upload_failed")
            raise
        return refs


def creation_values(fields: BuildFields) -> dict:
    submitted = fields.model_dump()
    values = {key: submitted[key] or default for key, default in CREATE_DEFAULTS.items()}
    values["car_year"] = fields.car_year if fields.car_year is not None else datetime.now(timezone.utc).year
    return values


def field_changes(fields: BuildFields) -> dict:
    changes = fields.model_dump(include=fields.model_fields_set)
    missing = sorted(key for key, value in changes.items() if value is None)
    if missing:
        raise ValidationError(f"Fields cannot be null: {', '.join(missing)}")
    return changes
