"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sites_manager import __version__
from sites_manager.config import dev_mode_active, get_settings

settings = get_settings()

# Configure logging
LOG_LEVEL = getattr(logging, settings.log_level, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", settings.log_level)

from sites_manager.api.audits import router as audits_router  # noqa: E402
from sites_manager.api.issues import router as issues_router  # noqa: E402
from sites_manager.api.sites import router as sites_router  # noqa: E402
from sites_manager.api.solutions import router as solutions_router  # noqa: E402
from sites_manager.api.support import router as support_router  # noqa: E402

# Database schema is managed by Alembic migrations.

# Refuse to start with DEV_MODE pointed at a non-local deployment
if dev_mode_active(settings):
    logger.warning("DEV_MODE active: requests are authenticated as dev@localhost")

app = FastAPI(
    title="Sites Manager Service",
    description="API for tracking agency sites, the issues affecting them and how they were solved.",
    version=__version__,
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sites_router)
app.include_router(issues_router)
app.include_router(solutions_router)
app.include_router(audits_router)
app.include_router(support_router)
