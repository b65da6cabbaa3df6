"""
Health and build information endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter

from sites_manager.config import get_settings

router = APIRouter(tags=["support"])  # keep paths stable (no prefix)


@router.get("/health")
def health_check():
    return {"status": "ok", "service": get_settings().service_name}


@router.get("/build-info")
def get_build_info():
    """Return build and deployment information for the running service."""
    settings = get_settings()
    return {
        "build_sha": settings.build_sha,
        "build_timestamp": settings.build_timestamp,
        "service_name": settings.service_name,
        "version": settings.version,
    }
