from pydantic_settings import BaseSettings
from typing import List
from pydantic import ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
    ]

    ENVIRONMENT: str = "development"

    # --- Auth configuration ---
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # Practice sessions
    PRACTICE_SESSION_SIZE: int = 5
    PRACTICE_MAX_SESSION_SIZE: int = 50
    PRACTICE_DEFAULT_LEVEL: int = 1

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure database URLs use a synchronous driver.

        Managed Postgres providers still expose URLs with the legacy
        ``postgres://`` scheme, which SQLAlchemy no longer understands, and
        URLs copied from async deployments carry ``+asyncpg``/``+aiosqlite``
        drivers. Request handlers run on a synchronous engine, so every
        Postgres variant is rewritten to ``postgresql+psycopg2://`` and
        ``sqlite+aiosqlite`` to plain ``sqlite``.
        """

        if not isinstance(value, str):
            return value

        if value.startswith("postgresql+psycopg2://"):
            return value

        replacements = {
            "postgres://": "postgresql+psycopg2://",
            "postgresql://": "postgresql+psycopg2://",
            "postgresql+asyncpg://": "postgresql+psycopg2://",
            "postgresql+psycopg://": "postgresql+psycopg2://",
            "sqlite+aiosqlite://": "sqlite://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The settings object is built at import time, so a missing variable
    surfaces as a bare ValidationError deep inside an import chain. The
    structured payload is printed first so the offending variable shows up
    in the server logs before the exception is re-raised.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
