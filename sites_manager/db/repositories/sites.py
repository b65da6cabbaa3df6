"""
Site repository functions.

Implements filtered listing, create with nested issues, update with issue
sync, backup status changes, bulk updates and cascading delete.
"""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import case, func, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from sites_manager.db import models, schemas
from sites_manager.db.repositories.issues import build_issue, refresh_site_issue_flag
from sites_manager.utils.choices import Priority

logger = logging.getLogger(__name__)

SITE_SORT_FIELDS = (
    "name_of_agency",
    "province",
    "district",
    "created_at",
    "updated_at",
    "has_issues",
    "has_taken_manual_backup",
)

# Columns that cannot be cleared by passing null in an update
_REQUIRED_FIELDS = frozenset({
    "name_of_agency",
    "url",
    "province",
    "district",
    "is_cpanel",
    "is_vm",
    "has_taken_manual_backup",
})


def _plain(value):
    return getattr(value, "value", value)


def apply_site_filters(
    query,
    *,
    province: Optional[str] = None,
    district: Optional[str] = None,
    has_issues: Optional[bool] = None,
    is_cpanel: Optional[bool] = None,
    is_vm: Optional[bool] = None,
    has_taken_manual_backup: Optional[bool] = None,
    backup_location: Optional[str] = None,
    search: Optional[str] = None,
):
    if province:
        query = query.filter(models.Site.province == province)
    if district:
        query = query.filter(models.Site.district == district)
    if has_issues is not None:
        query = query.filter(models.Site.has_issues == has_issues)
    if is_cpanel is not None:
        query = query.filter(models.Site.is_cpanel == is_cpanel)
    if is_vm is not None:
        query = query.filter(models.Site.is_vm == is_vm)
    if has_taken_manual_backup is not None:
        query = query.filter(models.Site.has_taken_manual_backup == has_taken_manual_backup)
    if backup_location:
        query = query.filter(models.Site.backup_location == _plain(backup_location))
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.Site.name_of_agency.ilike(pattern),
                models.Site.url.ilike(pattern),
                models.Site.province.ilike(pattern),
                models.Site.district.ilike(pattern),
                models.Site.cpanel_username.ilike(pattern),
                models.Site.vm_ip.ilike(pattern),
            )
        )
    return query


def _sort_column(sort_by: Optional[str]):
    if sort_by in SITE_SORT_FIELDS:
        return getattr(models.Site, sort_by)
    return models.Site.created_at


def get_site(db: Session, site_id: uuid.UUID):
    return db.query(models.Site).filter(models.Site.id == site_id).first()


def get_site_with_issues(db: Session, site_id: uuid.UUID):
    return (
        db.query(models.Site)
        .options(selectinload(models.Site.issues).selectinload(models.Issue.type_links))
        .filter(models.Site.id == site_id)
        .first()
    )


def list_sites(
    db: Session,
    *,
    sort_by: Optional[str] = "created_at",
    sort_order: Optional[str] = "desc",
    skip: int = 0,
    limit: int = 50,
    **filters,
) -> Tuple[List[models.Site], int]:
    """Return one page of sites and the total matching count."""
    query = apply_site_filters(db.query(models.Site), **filters)
    total = query.count()
    order_column = _sort_column(sort_by)
    # Primary key breaks ties so limit/offset pages are stable
    query = query.order_by(
        order_column.desc() if sort_order == "desc" else order_column.asc(), models.Site.id
    )
    return query.offset(skip).limit(limit).all(), total


def list_sites_with_issue_counts(
    db: Session,
    *,
    include_solved: bool = False,
    skip: int = 0,
    limit: int = 50,
    **filters,
) -> Tuple[List[schemas.SiteWithIssueCounts], int]:
    """Sites with per-site issue counts, newest first.

    Unless ``include_solved`` is set only unsolved issues are counted, so
    ``solved_issue_count`` is then always zero.
    """
    join_condition = models.Issue.site_id == models.Site.id
    if not include_solved:
        join_condition = and_(join_condition, models.Issue.is_solved == False)  # noqa: E712

    total = apply_site_filters(db.query(models.Site), **filters).count()

    query = (
        db.query(
            models.Site,
            func.count(models.Issue.id),
            func.count(case((models.Issue.is_solved == True, 1))),  # noqa: E712
            func.count(case((models.Issue.priority == Priority.CRITICAL.value, 1))),
        )
        .outerjoin(models.Issue, join_condition)
    )
    query = apply_site_filters(query, **filters)
    rows = (
        query.group_by(models.Site.id)
        .order_by(models.Site.created_at.desc(), models.Site.id)
        .offset(skip)
        .limit(limit)
        .all()
    )
    items = []
    for site, issue_count, solved_count, critical_count in rows:
        items.append(
            schemas.SiteWithIssueCounts(
                **schemas.Site.model_validate(site).model_dump(),
                issue_count=issue_count or 0,
                solved_issue_count=solved_count or 0,
                critical_issue_count=critical_count or 0,
            )
        )
    return items, total


def create_site(db: Session, site: schemas.SiteCreate):
    """Insert a site and its initial issues in one transaction."""
    data = site.model_dump(exclude={"issues"})
    db_site = models.Site(**{key: _plain(value) for key, value in data.items()})
    for issue in site.issues:
        db_site.issues.append(build_issue(issue.issue_types, issue.description, issue.priority))
    db_site.has_issues = bool(site.issues)
    try:
        db.add(db_site)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("create_site failed")
        raise RuntimeError(f"Failed to create site: {e}") from e
    db.refresh(db_site)
    return db_site


def _sync_site_issues(db: Session, db_site: models.Site, entries: Sequence[schemas.SiteIssueSync]) -> None:
    """Make the site's issues match ``entries``.

    Entries whose id names one of the site's issues update it in place;
    other entries create new issues. Issues left unnamed are deleted along
    with their solutions.
    """
    existing = {issue.id: issue for issue in db_site.issues}
    kept = set()
    for entry in entries:
        db_issue = existing.get(entry.id) if entry.id else None
        if db_issue is None:
            db_site.issues.append(
                build_issue(entry.issue_types, entry.description, entry.priority, is_solved=entry.is_solved)
            )
            continue
        kept.add(db_issue.id)
        db_issue.set_issue_types(entry.issue_types)
        db_issue.description = entry.description
        db_issue.priority = _plain(entry.priority)
        db_issue.is_solved = entry.is_solved
        db_issue.updated_at = models.now_utc()
    for issue_id, db_issue in existing.items():
        if issue_id not in kept:
            db_site.issues.remove(db_issue)


def update_site(db: Session, site_id: uuid.UUID, site: schemas.SiteUpdate):
    db_site = get_site_with_issues(db, site_id)
    if not db_site:
        return None
    data = site.model_dump(exclude_unset=True, exclude={"issues"})
    try:
        for key, value in data.items():
            if value is None and key in _REQUIRED_FIELDS:
                continue
            setattr(db_site, key, _plain(value))
        if site.issues is not None:
            _sync_site_issues(db, db_site, site.issues)
        db_site.updated_at = models.now_utc()
        refresh_site_issue_flag(db, db_site.id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("update_site failed for %s", site_id)
        raise RuntimeError(f"Failed to update site {site_id}: {e}") from e
    db.refresh(db_site)
    return db_site


def update_backup_status(db: Session, site_id: uuid.UUID, backup: schemas.BackupStatusUpdate):
    db_site = get_site(db, site_id)
    if not db_site:
        return None
    try:
        for key, value in backup.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(db_site, key, _plain(value))
        db_site.updated_at = models.now_utc()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("update_backup_status failed for %s", site_id)
        raise RuntimeError(f"Failed to update backup status for site {site_id}: {e}") from e
    db.refresh(db_site)
    return db_site


def bulk_update_sites(db: Session, site_ids: Sequence[uuid.UUID], updates: schemas.BackupUpdates) -> int:
    """Apply the same backup fields to many sites; return how many rows changed."""
    values = {
        key: _plain(value)
        for key, value in updates.model_dump(exclude_unset=True).items()
        if value is not None
    }
    values["updated_at"] = models.now_utc()
    try:
        updated = (
            db.query(models.Site)
            .filter(models.Site.id.in_(list(site_ids)))
            .update(values, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("bulk_update_sites failed")
        raise RuntimeError(f"Failed to bulk update sites: {e}") from e
    return updated or 0


def delete_site(db: Session, site_id: uuid.UUID) -> bool:
    """Delete a site; its issues and their solutions go with it."""
    db_site = get_site(db, site_id)
    if not db_site:
        return False
    try:
        db.delete(db_site)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("delete_site failed for %s", site_id)
        raise RuntimeError(f"Failed to delete site {site_id}: {e}") from e
