"""
Site API endpoints.

Listing with filters and pagination, detail views, statistics and lookups,
and the create/update/delete flows for sites and their nested issues.
"""
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sites_manager.api.deps import get_current_user_context
from sites_manager.audit import AuditAction, log_site
from sites_manager.db import schemas
from sites_manager.db.database import get_db
from sites_manager.db.repositories import sites as site_repo
from sites_manager.db.repositories import statistics as stats_repo
from sites_manager.utils.choices import BackupLocation

router = APIRouter(prefix="/sites", tags=["sites"])

SiteSortField = Literal[
    "name_of_agency",
    "province",
    "district",
    "created_at",
    "updated_at",
    "has_issues",
    "has_taken_manual_backup",
]


def _site_filters(
    province: Optional[str] = None,
    district: Optional[str] = None,
    has_issues: Optional[bool] = None,
    is_cpanel: Optional[bool] = None,
    is_vm: Optional[bool] = None,
    has_taken_manual_backup: Optional[bool] = None,
    backup_location: Optional[BackupLocation] = None,
    search: Optional[str] = None,
) -> dict:
    return {
        "province": province or None,
        "district": district or None,
        "has_issues": has_issues,
        "is_cpanel": is_cpanel,
        "is_vm": is_vm,
        "has_taken_manual_backup": has_taken_manual_backup,
        "backup_location": backup_location,
        "search": (search or "").strip() or None,
    }


def _get_site_or_404(db: Session, site_id: uuid.UUID):
    db_site = site_repo.get_site(db, site_id)
    if db_site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return db_site


@router.get("/", response_model=schemas.Paginated[schemas.Site])
def list_sites_endpoint(
    filters: dict = Depends(_site_filters),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: SiteSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    items, total_items = site_repo.list_sites(
        db, sort_by=sort_by, sort_order=sort_order, skip=offset, limit=limit, **filters
    )
    return schemas.paginate(items, total_items, limit, offset)


@router.post("/", response_model=schemas.SiteWithIssues, status_code=status.HTTP_201_CREATED)
def create_site_endpoint(
    site: schemas.SiteCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_site = site_repo.create_site(db, site)
    log_site(
        db,
        actor_user_id=user.id,
        site_id=db_site.id,
        action=AuditAction.SITE_CREATE,
        name=db_site.name_of_agency,
        metadata={"issue_count": len(site.issues)},
    )
    return site_repo.get_site_with_issues(db, db_site.id)


@router.get("/statistics", response_model=schemas.SiteStatistics)
def site_statistics_endpoint(
    province: Optional[str] = None,
    district: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return stats_repo.site_statistics(
        db,
        province=province or None,
        district=district or None,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/summary", response_model=schemas.SiteSummary)
def site_summary_endpoint(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return stats_repo.site_summary(db)


@router.get("/provinces", response_model=List[str])
def list_provinces_endpoint(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return stats_repo.list_provinces(db)


@router.get("/districts", response_model=List[str])
def list_districts_endpoint(
    province: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return stats_repo.list_districts(db, province=province or None)


@router.get("/with-issue-counts", response_model=schemas.Paginated[schemas.SiteWithIssueCounts])
def list_sites_with_issue_counts_endpoint(
    filters: dict = Depends(_site_filters),
    include_solved: bool = False,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    items, total_items = site_repo.list_sites_with_issue_counts(
        db, include_solved=include_solved, skip=offset, limit=limit, **filters
    )
    return schemas.paginate(items, total_items, limit, offset)


@router.post("/bulk-update", response_model=schemas.SiteBulkUpdateResult)
def bulk_update_sites_endpoint(
    payload: schemas.SiteBulkUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    updated_count = site_repo.bulk_update_sites(db, payload.site_ids, payload.updates)
    log_site(
        db,
        actor_user_id=user.id,
        site_id=None,
        action=AuditAction.SITE_BULK_UPDATE,
        metadata={
            "site_ids": [str(site_id) for site_id in payload.site_ids],
            "fields": sorted(payload.updates.model_dump(exclude_unset=True)),
            "updated_count": updated_count,
        },
    )
    return {"updated_count": updated_count}


@router.get("/{site_id}", response_model=schemas.Site)
def get_site_endpoint(
    site_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return _get_site_or_404(db, site_id)


@router.get("/{site_id}/issues", response_model=schemas.SiteWithIssues)
def get_site_with_issues_endpoint(
    site_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    db_site = site_repo.get_site_with_issues(db, site_id)
    if db_site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return db_site


@router.put("/{site_id}", response_model=schemas.SiteWithIssues)
def update_site_endpoint(
    site_id: uuid.UUID,
    site: schemas.SiteUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_site = site_repo.update_site(db, site_id, site)
    if db_site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    log_site(
        db,
        actor_user_id=user.id,
        site_id=site_id,
        action=AuditAction.SITE_UPDATE,
        name=db_site.name_of_agency,
        metadata={
            "fields": sorted(site.model_dump(exclude_unset=True, exclude={"issues"})),
            "issues_synced": site.issues is not None,
        },
    )
    return site_repo.get_site_with_issues(db, site_id)


@router.patch("/{site_id}/backup-status", response_model=schemas.Site)
def update_backup_status_endpoint(
    site_id: uuid.UUID,
    backup: schemas.BackupStatusUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_site = site_repo.update_backup_status(db, site_id, backup)
    if db_site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    log_site(
        db,
        actor_user_id=user.id,
        site_id=site_id,
        action=AuditAction.SITE_BACKUP_UPDATE,
        metadata={"has_taken_manual_backup": backup.has_taken_manual_backup},
    )
    return db_site


@router.delete("/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_site_endpoint(
    site_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_site = _get_site_or_404(db, site_id)
    name = db_site.name_of_agency
    site_repo.delete_site(db, site_id)
    log_site(db, actor_user_id=user.id, site_id=site_id, action=AuditAction.SITE_DELETE, name=name)
    return None
