from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "ModSquad API"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False

    database_url: str = "sqlite:///./modsquad.db"
    auto_create_tables: bool = True

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"])

    upload_dir: str = "public/uploads"
    uploads_url_prefix: str = "/uploads"
    avatar_subdir: str = "avatars"
    max_build_image_mb: int = 10
    max_avatar_image_mb: int = 5
    max_images_per_build: int = 5
    allowed_image_types: list[str] = Field(default_factory=lambda: ["image/jpeg", "image/png", "image/gif"])
    orphan_grace_minutes: int = 60

    car_data_dir: str = "car-data"

    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = ""
    celery_result_backend: str = ""
    celery_task_always_eager: bool = False

    seed_admin_email: str = "admin@modsquad.com"
    seed_admin_username: str = "admin"
    seed_admin_password: str = "Admin@123"

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url

    def get_celery_result_backend(self) -> str:
        return self.celery_result_backend or self.redis_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
