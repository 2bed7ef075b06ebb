from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "MomentPick API"
    debug: bool = False
    port: int = 5000
    api_prefix: str = ""

    database_url: str = "sqlite:///./momentpick.db"
    auto_create_tables: bool = True

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"])

    storage_backend: Literal["local", "supabase"] = "local"
    storage_bucket: str = "photos"
    upload_dir: str = "data/uploads"
    public_base_url: str = "http://localhost:5000"
    supabase_url: str = ""
    supabase_service_key: str = ""

    max_upload_size_mb: int = 15
    max_files_per_upload: int = 20
    allowed_image_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp", "image/gif", "image/heic", "image/heif"]
    )

    event_retention_days: int = 7
    invite_code_length: int = 8
    reconcile_orphaned_photos: bool = True

    celery_broker_url: str = ""
    celery_result_backend: str = ""
    celery_task_always_eager: bool = False
    redis_url: str = "redis://localhost:6379/0"

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url

    def get_celery_result_backend(self) -> str:
        return self.celery_result_backend or self.redis_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
