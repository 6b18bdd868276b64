from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    API_TESTER_DB_URL: str = "sqlite:///./api_tester.db"
    API_TESTER_DEFAULT_API_VERSION: str = "2025-01"
    API_TESTER_REQUEST_TIMEOUT_SECONDS: float = 20.0

    API_TESTER_SYNC_SOURCE_DB_PATH: Path = _REPO_ROOT / "theme_modifier.db"
    API_TESTER_SYNC_APP_NAME: str = "test-theme-modifier-app"

    @field_validator("API_TESTER_DEFAULT_API_VERSION")
    @classmethod
    def validate_api_version(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("API_TESTER_DEFAULT_API_VERSION cannot be empty")
        return cleaned

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
