import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased, selectinload

from modsquad.models.build import Build
from modsquad.models.image import BuildImage
from modsquad.models.user import User
from modsquad.services.errors import LastImageError, NotFound, RepositoryError, TooManyImages, ValidationError

logger = logging.getLogger(__name__)


class BuildRepository:
    """Builds and their image rows, scoped by owner.

    Every mutating method commits its own transaction and returns objects that
    stay readable after the commit.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, owner_id: str, fields: dict, image_refs: list[str]) -> Build:
        if not image_refs:
            raise ValidationError("At least one image is required")
        build = Build(user_id=owner_id, **fields)
        build.images = [BuildImage(url=ref) for ref in image_refs]
        self.db.add(build)
        self._commit()
        return build

    def find_by_id(self, build_id: str, owner_id: str | None = None, for_update: bool = False) -> Build:
        stmt = select(Build).options(selectinload(Build.images)).where(Build.id == build_id)
        if owner_id is not None:
            stmt = stmt.where(Build.user_id == owner_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        build = self.db.scalar(stmt)
        if not build:
            raise NotFound("Build not found")
        return build

    def list_by_owner(self, owner_id: str) -> list[Build]:
        stmt = (
            select(Build)
            .options(selectinload(Build.images))
            .where(Build.user_id == owner_id)
            .order_by(Build.created_at.desc())
        )
        return list(self.db.scalars(stmt).all())

    def list_all(self) -> list[Build]:
        stmt = (
            select(Build)
            .options(
                selectinload(Build.images),
                selectinload(Build.user).selectinload(User.profile),
            )
            .order_by(Build.created_at.desc())
        )
        return list(self.db.scalars(stmt).all())

    def count_all(self) -> int:
        return self.db.scalar(select(func.count(Build.id))) or 0

    def update(
        self,
        build_id: str,
        owner_id: str,
        changes: dict,
        new_image_refs: list[str] | None = None,
        max_images: int | None = None,
    ) -> Build:
        build = self.find_by_id(build_id, owner_id, for_update=True)
        new_image_refs = new_image_refs or []
        if max_images is not None and len(build.images) + len(new_image_refs) > max_images:
            self.db.rollback()
            raise TooManyImages(f"A build can have at most {max_images} images")
        for key, value in changes.items():
            setattr(build, key, value)
        for ref in new_image_refs:
            build.images.append(BuildImage(url=ref))
        self._commit()
        return build

    def delete_build(self, build_id: str, owner_id: str) -> Build:
        build = self.find_by_id(build_id, owner_id)
        self.db.delete(build)
        self._commit()
        return build

    def delete_image(self, build_id: str, owner_id: str, image_id: str) -> tuple[Build, str]:
        """Remove one image row and return the build with the removed reference.

        The row is deleted by a single statement that only matches while the
        build still has another image, so the minimum holds under concurrency.
        """
        build = self.find_by_id(build_id, owner_id, for_update=True)
        target = next((image for image in build.images if image.id == image_id), None)
        if target is None:
            self.db.rollback()
            raise NotFound("Image not found")
        reference = target.url

        sibling = aliased(BuildImage)
        sibling_count = select(func.count(sibling.id)).where(sibling.build_id == build_id).scalar_subquery()
        stmt = (
            delete(BuildImage)
            .where(BuildImage.id == image_id, BuildImage.build_id == build_id, sibling_count > 1)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("image_delete_failed", extra={"build_id": build_id, "image_id": image_id})
            raise RepositoryError() from exc
        if result.rowcount == 0:
            self.db.rollback()
            raise LastImageError()

        self._commit()
        self.db.refresh(build, attribute_names=["images"])
        return build, reference

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("build_commit_failed")
            raise RepositoryError() from exc
