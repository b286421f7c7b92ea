import os
import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

UPLOAD_ROOT = Path(tempfile.mkdtemp(prefix="modsquad-uploads-"))
CAR_DATA_ROOT = Path(tempfile.mkdtemp(prefix="modsquad-cars-"))

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["UPLOAD_DIR"] = str(UPLOAD_ROOT)
os.environ["CAR_DATA_DIR"] = str(CAR_DATA_ROOT)
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from modsquad.db.base import Base
from modsquad.db.session import engine
from modsquad.main import create_app
from modsquad.services.car_data import get_car_data_service

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    path = Path("test.db")
    if path.exists():
        path.unlink()


@pytest.fixture(autouse=True)
def reset_uploads():
    yield
    shutil.rmtree(UPLOAD_ROOT, ignore_errors=True)
    UPLOAD_ROOT.mkdir(parents=True, exist_ok=True)


@pytest.fixture(autouse=True)
def car_data():
    (CAR_DATA_ROOT / "1999.csv").write_text(
        "make,model\nHonda,Civic\nHonda,Accord\n\nToyota,Supra\nhonda,Prelude\nHonda,Civic\n",
        encoding="utf-8",
    )
    get_car_data_service().clear_cache()
    yield CAR_DATA_ROOT


@pytest.fixture()
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def upload_root() -> Path:
    return UPLOAD_ROOT


def signup(client, username: str = "driver", email: str = "driver@example.com", password: str = "secret123") -> dict:
    response = client.post("/auth/signup", json={"username": username, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


def blob_path(url: str) -> Path:
    return UPLOAD_ROOT / url.rsplit("/", 1)[1]


def stored_files() -> list[Path]:
    return sorted(path for path in UPLOAD_ROOT.iterdir() if path.is_file())
