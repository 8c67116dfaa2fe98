"""
Centralized settings for the Participium backend.

Provides a lightweight wrapper around environment variables (with `.env`
support for local development) so the rest of the codebase can import a single
`get_settings()` helper when configuration is needed. This avoids ad‑hoc calls
to `os.environ` spread across modules and keeps defaults consistent.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os

from dotenv import dotenv_values


@dataclass(frozen=True)
class Settings:
    """Immutable view of application configuration."""

    # General
    environment: str
    allowed_hosts: tuple[str, ...]

    # Database (alembic also reads DATABASE_URL)
    database_url: str

    # Authentication
    jwt_secret: Optional[str]
    jwt_access_minutes: int

    # Email transport
    smtp_host: str
    smtp_port: int
    smtp_user: Optional[str]
    smtp_password: Optional[str]
    smtp_use_tls: bool
    email_from: str
    email_timeout_seconds: float

    # Workflow
    notification_max_concurrency: int
    strict_assignee_transitions: bool

    # Observability
    sentry_dsn: Optional[str]


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_lookup(key: str, env: dict[str, str], default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key) or env.get(key) or default


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""

    env_path = Path(__file__).resolve().parents[2] / ".env"
    env_file = dotenv_values(str(env_path)) if env_path.exists() else {}

    return Settings(
        environment=_env_lookup("APP_ENV", env_file, "development"),
        allowed_hosts=tuple(
            h.strip() for h in _env_lookup("ALLOWED_HOSTS", env_file, "*").split(",") if h.strip()
        ),
        database_url=_env_lookup("DATABASE_URL", env_file, "sqlite+aiosqlite:///./participium.db"),
        jwt_secret=_env_lookup("JWT_SECRET", env_file),
        jwt_access_minutes=int(_env_lookup("JWT_ACCESS_MINUTES", env_file, "60")),
        smtp_host=_env_lookup("SMTP_HOST", env_file, "localhost"),
        smtp_port=int(_env_lookup("SMTP_PORT", env_file, "587")),
        smtp_user=_env_lookup("SMTP_USER", env_file),
        smtp_password=_env_lookup("SMTP_PASSWORD", env_file),
        smtp_use_tls=_as_bool(_env_lookup("SMTP_USE_TLS", env_file, "true"), True),
        email_from=_env_lookup("EMAIL_FROM", env_file, "noreply@participium.local"),
        email_timeout_seconds=float(_env_lookup("EMAIL_TIMEOUT_SECONDS", env_file, "10")),
        notification_max_concurrency=int(_env_lookup("NOTIFICATION_MAX_CONCURRENCY", env_file, "4")),
        strict_assignee_transitions=_as_bool(
            _env_lookup("STRICT_ASSIGNEE_TRANSITIONS", env_file, "true"), True
        ),
        sentry_dsn=_env_lookup("SENTRY_DSN", env_file),
    )


__all__ = ["Settings", "get_settings"]
