import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

import modsquad.models  # noqa: F401
from modsquad.core.config import get_settings
from modsquad.core.logging import configure_logging
from modsquad.db.base import Base
from modsquad.db.session import engine
from modsquad.routers import admin, auth, builds, cars, uploads
from modsquad.services.errors import ModSquadError
from modsquad.services.storage import get_avatar_store, get_build_image_store

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With"],
        max_age=86400,
    )

    @app.exception_handler(ModSquadError)
    async def modsquad_error_handler(request: Request, exc: ModSquadError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(auth.router)
    app.include_router(uploads.router)
    app.include_router(builds.router)
    app.include_router(admin.router)
    app.include_router(cars.router)

    upload_root = get_build_image_store().ensure_root()
    get_avatar_store().ensure_root()
    app.mount(settings.uploads_url_prefix, StaticFiles(directory=upload_root), name="uploads")

    @app.on_event("startup")
    def startup() -> None:
        if settings.auto_create_tables:
            Base.metadata.create_all(bind=engine)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
