"""Runtime configuration sourced from the environment.

Values are read once and cached; call ``refresh_settings_cache`` after
changing environment variables (tests do this through monkeypatch).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import FrozenSet, Optional, Tuple
from urllib.parse import urlparse

_LOCAL_HOSTS: FrozenSet[str] = frozenset({"localhost", "127.0.0.1", "::1"})

_DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
)

_POSTGRES_VARS = ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB")


def _normalize_bool(value: str | None, default: bool = False) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _split_csv(raw: str | None, *, lower: bool = False) -> Tuple[str, ...]:
    values = []
    for entry in (raw or "").split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.append(cleaned.lower() if lower else cleaned)
    return tuple(values)


def _extract_hostname(url_value: str | None) -> Optional[str]:
    """Return hostname from a URL or bare host string."""
    if not url_value or not url_value.strip():
        return None
    url_value = url_value.strip()
    candidate = url_value if "://" in url_value else f"http://{url_value}"
    return urlparse(candidate).hostname


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    postgres: Tuple[Tuple[str, Optional[str]], ...] = ()
    log_level: str = "INFO"
    dev_mode: bool = False
    allow_dev_mode: bool = False
    app_base_url: Optional[str] = None
    dev_mode_allowed_hosts: FrozenSet[str] = _LOCAL_HOSTS
    admin_emails: FrozenSet[str] = frozenset()
    cors_origins: Tuple[str, ...] = _DEFAULT_CORS_ORIGINS
    build_sha: Optional[str] = None
    build_timestamp: Optional[str] = None
    version: str = "unknown"
    service_name: str = field(default="sites-manager-service")

    def resolved_database_url(self) -> str:
        """Return DATABASE_URL, or build one from the POSTGRES_* variables."""
        if self.database_url:
            return self.database_url
        parts = dict(self.postgres)
        missing = [name for name in _POSTGRES_VARS if not parts.get(name)]
        if missing:
            raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")
        return (
            f"postgresql://{parts['POSTGRES_USER']}:{parts['POSTGRES_PASSWORD']}"
            f"@{parts['POSTGRES_HOST']}:{parts['POSTGRES_PORT']}/{parts['POSTGRES_DB']}"
        )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings built from the current environment."""
    extra_hosts = _split_csv(os.getenv("DEV_MODE_ALLOWED_HOSTS"), lower=True)
    cors = _split_csv(os.getenv("CORS_ORIGINS"))
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        postgres=tuple((name, os.getenv(name)) for name in _POSTGRES_VARS),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        dev_mode=_normalize_bool(os.getenv("DEV_MODE")),
        allow_dev_mode=_normalize_bool(os.getenv("ALLOW_DEV_MODE")),
        app_base_url=os.getenv("APP_BASE_URL") or None,
        dev_mode_allowed_hosts=_LOCAL_HOSTS | frozenset(extra_hosts),
        admin_emails=frozenset(_split_csv(os.getenv("ADMIN_EMAILS"), lower=True)),
        cors_origins=cors or _DEFAULT_CORS_ORIGINS,
        build_sha=os.getenv("BUILD_SHA") or None,
        build_timestamp=os.getenv("BUILD_TIMESTAMP") or None,
        version=os.getenv("VERSION", "unknown"),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()


def dev_mode_active(settings: Settings | None = None) -> bool:
    """Return True if dev mode is enabled and allowed; raise if misconfigured.

    DEV_MODE can only be used when APP_BASE_URL points at localhost (or a
    host whitelisted through DEV_MODE_ALLOWED_HOSTS). Without APP_BASE_URL,
    ALLOW_DEV_MODE=true is required.
    """
    settings = settings or get_settings()
    if not settings.dev_mode:
        return False

    hostname = _extract_hostname(settings.app_base_url)
    if hostname:
        if hostname.lower() not in settings.dev_mode_allowed_hosts:
            raise RuntimeError(
                "DEV_MODE=true is not permitted when APP_BASE_URL points to "
                f"'{hostname}'. Allowed hosts: {sorted(settings.dev_mode_allowed_hosts)}"
            )
    elif not settings.allow_dev_mode:
        raise RuntimeError(
            "DEV_MODE=true requires APP_BASE_URL to be set to a localhost URL "
            "or ALLOW_DEV_MODE=true for non-local execution."
        )
    return True
