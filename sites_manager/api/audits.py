"""
Audit log API endpoints.

Lists the audit trail of mutations; restricted to superadmins.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sites_manager.api.deps import require_superadmin
from sites_manager.db import schemas
from sites_manager.db.database import get_db
from sites_manager.db.repositories import audits as audit_repo

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_superadmin),
):
    return audit_repo.get_audit_logs(
        db,
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        skip=skip,
        limit=limit,
    )
