"""
API dependency helpers.

Provides the dependency-resolved user context used by every route.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from sites_manager.api.auth import (
    DEV_USER_EMAIL,
    DEV_USER_NAME,
    get_or_create_user,
    resolve_identity_from_headers,
)
from sites_manager.config import dev_mode_active
from sites_manager.db.database import get_db

logger = logging.getLogger(__name__)

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[Any, Dict[str, Any]]:
    try:
        is_dev_mode = dev_mode_active()
    except RuntimeError as exc:
        logger.error("DEV_MODE misconfiguration detected: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="DEV_MODE misconfigured")

    if is_dev_mode:
        email, name = DEV_USER_EMAIL, DEV_USER_NAME
    else:
        # Normal mode: resolve from OAuth2 proxy headers
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)
    current_user = {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "is_superadmin": bool(user.is_superadmin),
    }
    return user, current_user


def require_superadmin(user_context=Depends(get_current_user_context)) -> Tuple[Any, Dict[str, Any]]:
    _user, current_user = user_context
    if not current_user.get("is_superadmin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user_context
