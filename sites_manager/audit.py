"""
Audit logging helpers and enums.

Persists normalized audit records for every mutation of sites, issues and
solutions; includes convenience wrappers per target type.
"""
from __future__ import annotations
import logging
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sites_manager.db import schemas
from sites_manager.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    # Site
    SITE_CREATE = "site_create"
    SITE_UPDATE = "site_update"
    SITE_DELETE = "site_delete"
    SITE_BACKUP_UPDATE = "site_backup_update"
    SITE_BULK_UPDATE = "site_bulk_update"
    # Issue
    ISSUE_CREATE = "issue_create"
    ISSUE_UPDATE = "issue_update"
    ISSUE_SOLVE = "issue_solve"
    ISSUE_DELETE = "issue_delete"
    # Solution
    SOLUTION_UPDATE = "solution_update"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: uuid.UUID,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Central audit logging helper.

    Write failures are logged and rolled back; they never fail the request
    that triggered them. Returns the stored row or None.
    """
    # Persist pure string values, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )
    try:
        return audit_repo.create_audit_log(db, audit_log=audit_log, actor_user_id=actor_user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write audit log %s for %s %s", action_value, target_type, target_id)
        return None


def log_site(db: Session, *, actor_user_id: uuid.UUID, site_id: Optional[uuid.UUID], action: AuditAction, name: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
    payload = dict(metadata or {})
    if name:
        payload["name_of_agency"] = name
    return log(
        db,
        action=action,
        target_type="site",
        target_id=site_id,
        actor_user_id=actor_user_id,
        metadata=payload or None,
    )


def log_issue(db: Session, *, actor_user_id: uuid.UUID, issue_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        target_type="issue",
        target_id=issue_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )


def log_solution(db: Session, *, actor_user_id: uuid.UUID, solution_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        target_type="solution",
        target_id=solution_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )


__all__ = ["AuditAction", "AuditStatus", "log", "log_site", "log_issue", "log_solution"]
