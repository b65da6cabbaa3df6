"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration with a test
fallback (SQLite in-memory) and exposes the FastAPI session dependency.
"""
import logging
import os
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sites_manager.config import get_settings

logger = logging.getLogger(__name__)

_SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while a test runs, so also look for
    the pytest module, which is imported before collection starts.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


def _resolve_engine_config():
    """Return ``(url, engine_kwargs)`` honouring the test overrides.

    1. SITES_TEST_DB, when set, always wins.
    2. TEST_DATABASE_URL (set by e2e fixtures) is used as-is.
    3. Under pytest without either, use in-memory SQLite shared through StaticPool.
    4. Otherwise DATABASE_URL or the POSTGRES_* components.
    """
    explicit_test_db = os.getenv("SITES_TEST_DB")
    explicit_e2e_db = os.getenv("TEST_DATABASE_URL")
    if explicit_test_db:
        kwargs = {"connect_args": {"check_same_thread": False}} if explicit_test_db.startswith("sqlite") else {}
        return explicit_test_db, kwargs
    if explicit_e2e_db:
        return explicit_e2e_db, {}
    if _is_pytest_runtime():
        return _SQLITE_MEMORY_URL, {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return get_settings().resolved_database_url(), {"pool_pre_ping": True}


DATABASE_URL, _engine_kwargs = _resolve_engine_config()

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# An in-memory database has no migrations applied; build the schema from metadata.
if DATABASE_URL == _SQLITE_MEMORY_URL:
    from sites_manager.db import models  # local import to avoid circular import at module load

    models.Base.metadata.create_all(bind=engine)
    logger.debug("in-memory sqlite schema created")


def get_db():
    """Dependency to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
