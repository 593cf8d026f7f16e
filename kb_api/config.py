from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_BASE_DIR = Path(__file__).resolve().parent.parent
_ROOT_ENV = _BASE_DIR.parent / ".env"
_API_ENV = _BASE_DIR / ".env"


def _load_env_files(paths: tuple[Path, ...]) -> None:
    """Minimal .env loader so settings work without python-dotenv."""
    for path in paths:
        if not path.exists():
            continue
        for raw_line in path.read_text().splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.lower().startswith("export "):
                line = line[7:].strip()
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            os.environ.setdefault(key, value)


_load_env_files((_API_ENV, _ROOT_ENV))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=tuple(str(path) for path in (_API_ENV, _ROOT_ENV)),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(default="development", alias="APP_ENV")
    database_url: str = Field(default="postgresql+psycopg2://kb:kb@localhost:5432/knowledge_base", alias="DATABASE_URL")
    session_ttl_hours: int = Field(default=72, alias="SESSION_TTL_HOURS")
    cookie_name: str = Field(default="kb_session", alias="SESSION_COOKIE_NAME")
    allow_origins: list[str] | str = Field(default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"], alias="CORS_ALLOW_ORIGINS")

    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    llm_temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")

    batch_max_documents: int = Field(default=100, alias="BATCH_MAX_DOCUMENTS")
    batch_max_workers: int = Field(default=1, ge=1, alias="BATCH_MAX_WORKERS")

    sentry_dsn: Optional[str] = Field(default=None, alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(default=0.0, alias="SENTRY_TRACES_SAMPLE_RATE")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @model_validator(mode="after")
    def normalize_origins(self) -> "Settings":
        """Normalize list-like settings parsed from environment files."""
        raw_origins: str | None
        if isinstance(self.allow_origins, str):
            raw_origins = self.allow_origins
        else:
            raw_origins = os.getenv("CORS_ALLOW_ORIGINS")

        if raw_origins:
            self.allow_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
