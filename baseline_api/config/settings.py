# baseline_api/config/settings.py

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "baseline-api"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Security ---
    jwt_secret: str = Field(..., min_length=32)
    jwt_algorithm: str = "HS256"

    # --- Database ---
    database_url: str
    create_schema: bool = False

    # --- Observability ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    body_capture_max_bytes: int = Field(8192, gt=0)
    body_capture_content_types: tuple[str, ...] = (
        "application/json",
        "text/plain",
        "application/x-www-form-urlencoded",
    )
    # Only enable behind a proxy that overwrites X-Forwarded-For.
    trust_forwarded_for: bool = False


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
