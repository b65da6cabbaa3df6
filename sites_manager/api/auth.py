"""
Authentication helpers and identity resolution.

Parses proxy headers, normalizes emails, and upserts users while supporting
simple superadmin elevation via environment configuration.
"""
import logging
from typing import Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sites_manager.config import get_settings
from sites_manager.db import models

logger = logging.getLogger(__name__)

DEV_USER_EMAIL = "dev@localhost"
DEV_USER_NAME = "Development User"


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower() or None


def _admin_emails() -> frozenset:
    return get_settings().admin_emails


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    user = db.query(models.User).filter(models.User.email == email).first()
    admins = _admin_emails()
    if not user:
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            is_superadmin=email in admins,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    # Existing users might predate a new ADMIN_EMAILS value; promote them when necessary.
    if email in admins and not user.is_superadmin:
        user.is_superadmin = True
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to promote %s to superadmin", email)
        else:
            db.refresh(user)
    return user
