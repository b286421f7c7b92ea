import asyncio
import io
import logging

import pytest
from fastapi import UploadFile
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from starlette.datastructures import Headers

from modsquad.db.base import Base
from modsquad.models import Build, BuildImage, User
from modsquad.schemas.build import BuildFields
from modsquad.services.builds import BuildRepository
from modsquad.services.errors import (
    InvalidMediaType,
    LastImageError,
    NotFound,
    PayloadTooLarge,
    RepositoryError,
    StorageError,
    TooManyImages,
    ValidationError,
)
from modsquad.services.lifecycle import BuildLifecycleManager, field_changes
from modsquad.services.storage import ImageStore


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def owner(session):
    user = User(username="alice", email="alice@example.com", password_hash="x")
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def store(tmp_path):
    return ImageStore(tmp_path / "uploads", "/uploads", max_bytes=1024, allowed_types={"image/png", "image/jpeg"})


@pytest.fixture
def manager(session, store):
    return BuildLifecycleManager(BuildRepository(session), store, max_images=5)


def upload(name: str = "car.png", data: bytes = b"png-bytes", content_type: str = "image/png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name, headers=Headers({"content-type": content_type}))


def files_in(store: ImageStore) -> list[str]:
    return sorted(ref for ref, _ in store.iter_blobs())


def civic(manager, owner_id, images=2):
    fields = BuildFields(title="Turbo Civic", description="Stock", car_make="Honda", car_model="Civic", car_year=1999)
    return asyncio.run(manager.create(owner_id, fields, [upload() for _ in range(images)]))


def test_create_persists_rows_and_files(manager, owner, store):
    build = civic(manager, owner.id)
    assert len(build.images) == 2
    assert files_in(store) == sorted(image.url for image in build.images)
    assert all(image.url.endswith(".png") for image in build.images)


def test_create_requires_an_image(manager, owner, session, store):
    with pytest.raises(ValidationError):
        asyncio.run(manager.create(owner.id, BuildFields(title="Empty"), []))
    assert session.scalar(select(func.count(Build.id))) == 0
    assert files_in(store) == []


def test_create_removes_files_when_insert_fails(manager, owner, store, monkeypatch):
    def broken_create(*args, **kwargs):
        raise RepositoryError()

    monkeypatch.setattr(manager.repository, "create", broken_create)
    with pytest.raises(RepositoryError):
        civic(manager, owner.id)
    assert files_in(store) == []


def test_create_checks_every_media_type_before_storing(manager, owner, store):
    uploads = [upload(), upload("notes.txt", b"text", "text/plain")]
    with pytest.raises(InvalidMediaType):
        asyncio.run(manager.create(owner.id, BuildFields(), uploads))
    assert files_in(store) == []


def test_create_discards_earlier_files_when_one_is_too_large(manager, owner, store):
    uploads = [upload(), upload("huge.png", b"x" * 4096)]
    with pytest.raises(PayloadTooLarge):
        asyncio.run(manager.create(owner.id, BuildFields(), uploads))
    assert files_in(store) == []


def test_update_only_touches_submitted_fields(manager, owner):
    build = civic(manager, owner.id)
    fields = BuildFields.model_validate({"title": "X"})
    asyncio.run(manager.update(build.id, owner.id, fields))

    reloaded = manager.get(build.id, owner.id)
    assert reloaded.title == "X"
    assert (reloaded.description, reloaded.car_make, reloaded.car_model, reloaded.car_year) == (
        "Stock",
        "Honda",
        "Civic",
        1999,
    )


def test_update_appends_images_without_touching_existing(manager, owner, store):
    build = civic(manager, owner.id)
    before = {image.url for image in build.images}
    updated = asyncio.run(manager.update(build.id, owner.id, BuildFields(), [upload()]))
    after = {image.url for image in updated.images}
    assert before < after
    assert len(after) == 3
    assert len(files_in(store)) == 3


def test_update_over_ceiling_stores_nothing(manager, owner, store):
    build = civic(manager, owner.id, images=4)
    with pytest.raises(TooManyImages):
        asyncio.run(manager.update(build.id, owner.id, BuildFields(), [upload(), upload()]))
    assert len(manager.get(build.id, owner.id).images) == 4
    assert len(files_in(store)) == 4


def test_update_removes_new_files_when_commit_fails(manager, owner, store, monkeypatch):
    build = civic(manager, owner.id)
    existing = files_in(store)

    def broken_update(*args, **kwargs):
        raise RepositoryError()

    monkeypatch.setattr(manager.repository, "update", broken_update)
    with pytest.raises(RepositoryError):
        asyncio.run(manager.update(build.id, owner.id, BuildFields(), [upload()]))
    assert files_in(store) == existing


def test_null_field_is_rejected():
    with pytest.raises(ValidationError):
        field_changes(BuildFields(title=None))


def test_delete_build_removes_rows_then_files(manager, owner, session, store):
    build = civic(manager, owner.id)
    manager.delete_build(build.id, owner.id)
    with pytest.raises(NotFound):
        manager.get(build.id, owner.id)
    assert session.scalar(select(func.count(BuildImage.id))) == 0
    assert files_in(store) == []


def test_delete_build_survives_file_cleanup_failure(manager, owner, store, monkeypatch, caplog):
    build = civic(manager, owner.id)

    def failing_delete(reference):
        raise StorageError("disk gone")

    monkeypatch.setattr(store, "delete", failing_delete)
    with caplog.at_level(logging.WARNING):
        manager.delete_build(build.id, owner.id)
    with pytest.raises(NotFound):
        manager.get(build.id, owner.id)
    assert "blob_cleanup_failed" in caplog.text


def test_last_image_cannot_be_deleted(manager, owner, store):
    build = civic(manager, owner.id)
    first, second = build.images

    remaining = manager.delete_image(build.id, owner.id, first.id)
    assert [image.id for image in remaining.images] == [second.id]
    assert not store.exists(first.url)

    with pytest.raises(LastImageError):
        manager.delete_image(build.id, owner.id, second.id)
    assert [image.id for image in manager.get(build.id, owner.id).images] == [second.id]
    assert store.exists(second.url)


def test_unknown_image_is_not_found(manager, owner):
    build = civic(manager, owner.id)
    with pytest.raises(NotFound):
        manager.delete_image(build.id, owner.id, "missing")


def test_other_owner_sees_not_found(manager, owner, session, store):
    build = civic(manager, owner.id)
    intruder = User(username="bob", email="bob@example.com", password_hash="x")
    session.add(intruder)
    session.commit()

    with pytest.raises(NotFound):
        manager.get(build.id, intruder.id)
    with pytest.raises(NotFound):
        manager.delete_build(build.id, intruder.id)
    with pytest.raises(NotFound):
        asyncio.run(manager.update(build.id, intruder.id, BuildFields(title="Mine")))
    assert len(files_in(store)) == 2
    assert manager.get(build.id, owner.id).title == "Turbo Civic"


def test_create_over_ceiling_stores_nothing(manager, owner, session, store):
    with pytest.raises(TooManyImages):
        asyncio.run(manager.create(owner.id, BuildFields(), [upload() for _ in range(6)]))
    assert session.scalar(select(func.count(Build.id))) == 0
    assert files_in(store) == []


def test_delete_image_survives_file_cleanup_failure(manager, owner, store, monkeypatch, caplog):
    build = civic(manager, owner.id)
    first, second = build.images

    def failing_delete(reference):
        raise StorageError("disk gone")

    monkeypatch.setattr(store, "delete", failing_delete)
    with caplog.at_level(logging.WARNING):
        remaining = manager.delete_image(build.id, owner.id, first.id)
    assert [image.id for image in remaining.images] == [second.id]
    assert [image.id for image in manager.get(build.id, owner.id).images] == [second.id]
    assert "blob_cleanup_failed" in caplog.text


def test_update_rechecks_ceiling_after_concurrent_addition(tmp_path, store, monkeypatch):
    engine = create_engine(f"sqlite:///{tmp_path / 'builds.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db, other_db = factory(), factory()
    try:
        user = User(username="carol", email="carol@example.com", password_hash="x")
        db.add(user)
        db.commit()
        manager = BuildLifecycleManager(BuildRepository(db), store, max_images=5)
        build = civic(manager, user.id, images=4)

        original_store = store.store

        async def store_after_other_request(file):
            # Another request fills the last slot while this upload is written.
            BuildRepository(other_db).update(build.id, user.id, {}, ["/uploads/concurrent.png"], max_images=5)
            return await original_store(file)

        monkeypatch.setattr(store, "store", store_after_other_request)
        with pytest.raises(TooManyImages):
            asyncio.run(manager.update(build.id, user.id, BuildFields(), [upload()]))

        count = other_db.scalar(select(func.count(BuildImage.id)).where(BuildImage.build_id == build.id))
        assert count == 5
        assert len(files_in(store)) == 4
    finally:
        db.close()
        other_db.close()
        engine.dispose()
