import logging
import uuid
from collections.abc import Iterable, Iterator
from pathlib import Path

from fastapi import UploadFile

from modsquad.core.config import get_settings
from modsquad.services.errors import InvalidMediaType, PayloadTooLarge, StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class ImageStore:
    """Uploaded image files kept in one flat directory.

    A stored file is addressed by its reference, ``<url_prefix>/<uuid><ext>``,
    which is the same path the static files mount serves it under.
    """

    def __init__(self, root: str | Path, url_prefix: str, max_bytes: int, allowed_types: Iterable[str]) -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_types = frozenset(allowed_types)

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def check_media_type(self, file: UploadFile) -> None:
        if file.content_type not in self.allowed_types:
            raise InvalidMediaType()

    async def store(self, file: UploadFile) -> str:
        self.check_media_type(file)
        ext = Path(file.filename or "").suffix.lower()
        name = f"{uuid.uuid4()}{ext}"
        final_path = self.ensure_root() / name

        total = 0
        try:
            with final_path.open("wb") as handle:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > self.max_bytes:
                        break
                    handle.write(chunk)
        except OSError as exc:
            final_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to store {file.filename or 'upload'}") from exc
        finally:
            await file.close()

        if total > self.max_bytes:
            final_path.unlink(missing_ok=True)
            raise PayloadTooLarge()
        reference = f"{self.url_prefix}/{name}"
        logger.info("blob_stored", extra={"reference": reference, "size": total})
        return reference

    def owns(self, reference: str) -> bool:
        prefix = f"{self.url_prefix}/"
        if not reference.startswith(prefix):
            return False
        name = reference[len(prefix):]
        return bool(name) and name == Path(name).name and name not in {".", ".."}

    def path_for(self, reference: str) -> Path:
        if not self.owns(reference):
            raise StorageError(f"Reference is outside the image store: {reference}")
        return self.root / reference[len(self.url_prefix) + 1:]

    def exists(self, reference: str) -> bool:
        return self.owns(reference) and self.path_for(reference).is_file()

    def delete(self, reference: str) -> None:
        if not self.owns(reference):
            logger.warning("blob_delete_skipped", extra={"reference": reference})
            return
        try:
            self.path_for(reference).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {reference}") from exc

    def iter_blobs(self) -> Iterator[tuple[str, Path]]:
        if not self.root.is_dir():
            return
        for path in self.root.iterdir():
            if path.is_file():
                yield f"{self.url_prefix}/{path.name}", path


def get_build_image_store() -> ImageStore:
    settings = get_settings()
    return ImageStore(
        root=settings.upload_dir,
        url_prefix=settings.uploads_url_prefix,
        max_bytes=settings.max_build_image_mb * 1024 * 1024,
        allowed_types=settings.allowed_image_types,
    )


def get_avatar_store() -> ImageStore:
    settings = get_settings()
    return ImageStore(
        root=Path(settings.upload_dir) / settings.avatar_subdir,
        url_prefix=f"{settings.uploads_url_prefix.rstrip('/')}/{settings.avatar_subdir}",
        max_bytes=settings.max_avatar_image_mb * 1024 * 1024,
        allowed_types=settings.allowed_image_types,
    )
