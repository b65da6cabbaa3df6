"""
Aggregate statistics and lookup lists for the dashboard.

Counts are computed with GROUP BY queries; the average resolution time is
computed in Python so it behaves the same on PostgreSQL and SQLite.
"""
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from sites_manager.db import models
from sites_manager.db.repositories.issues import apply_issue_filters

_SECONDS_PER_DAY = 86400.0


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _apply_site_window(query, province=None, district=None, start_date=None, end_date=None):
    if province:
        query = query.filter(models.Site.province == province)
    if district:
        query = query.filter(models.Site.district == district)
    if start_date:
        query = query.filter(models.Site.created_at >= start_date)
    if end_date:
        query = query.filter(models.Site.created_at <= end_date)
    return query


def site_statistics(
    db: Session,
    *,
    province: Optional[str] = None,
    district: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, object]:
    window = dict(province=province, district=district, start_date=start_date, end_date=end_date)

    total_sites = _apply_site_window(db.query(func.count(models.Site.id)), **window).scalar() or 0
    sites_with_issues = (
        _apply_site_window(db.query(func.count(models.Site.id)), **window)
        .filter(models.Site.has_issues == True)  # noqa: E712
        .scalar()
        or 0
    )
    sites_with_backup = (
        _apply_site_window(db.query(func.count(models.Site.id)), **window)
        .filter(models.Site.has_taken_manual_backup == True)  # noqa: E712
        .scalar()
        or 0
    )

    def _grouped(column, *extra_filters):
        query = _apply_site_window(db.query(column, func.count(models.Site.id)), **window)
        for condition in extra_filters:
            query = query.filter(condition)
        return {key: count for key, count in query.group_by(column).all()}

    return {
        "total_sites": total_sites,
        "sites_with_issues": sites_with_issues,
        "sites_with_backup": sites_with_backup,
        "sites_by_province": _grouped(models.Site.province),
        "sites_by_district": _grouped(models.Site.district),
        "backup_locations": _grouped(models.Site.backup_location, models.Site.backup_location.isnot(None)),
    }


def issue_statistics(
    db: Session,
    *,
    site_id: Optional[uuid.UUID] = None,
    issue_types: Optional[Sequence[str]] = None,
    priority: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, object]:
    filters = dict(
        site_id=site_id,
        issue_types=issue_types,
        priority=priority,
        start_date=start_date,
        end_date=end_date,
    )

    total_issues = apply_issue_filters(db.query(func.count(models.Issue.id)), **filters).scalar() or 0
    solved_issues = (
        apply_issue_filters(db.query(func.count(models.Issue.id)), **filters)
        .filter(models.Issue.is_solved == True)  # noqa: E712
        .scalar()
        or 0
    )

    by_type_query = apply_issue_filters(
        db.query(models.IssueTypeLink.issue_type, func.count(models.IssueTypeLink.issue_id)).join(
            models.Issue, models.Issue.id == models.IssueTypeLink.issue_id
        ),
        **filters,
    )
    issues_by_type = {key: count for key, count in by_type_query.group_by(models.IssueTypeLink.issue_type).all()}

    by_priority_query = apply_issue_filters(
        db.query(models.Issue.priority, func.count(models.Issue.id)), **filters
    )
    issues_by_priority = {key: count for key, count in by_priority_query.group_by(models.Issue.priority).all()}

    by_site_query = apply_issue_filters(
        db.query(models.Site.name_of_agency, func.count(models.Issue.id)).join(
            models.Issue, models.Issue.site_id == models.Site.id
        ),
        **filters,
    )
    issues_by_site: Dict[str, int] = {}
    # Agencies may share a name; fold their counts together
    for name, count in by_site_query.group_by(models.Site.id, models.Site.name_of_agency).all():
        issues_by_site[name] = issues_by_site.get(name, 0) + count

    resolution_query = apply_issue_filters(
        db.query(models.Issue.created_at, models.Solution.solved_at).join(
            models.Solution, models.Solution.issue_id == models.Issue.id
        ),
        **filters,
    ).filter(models.Issue.is_solved == True)  # noqa: E712
    durations = [
        (_as_utc(solved_at) - _as_utc(created_at)).total_seconds() / _SECONDS_PER_DAY
        for created_at, solved_at in resolution_query.all()
    ]
    average_resolution_time = sum(durations) / len(durations) if durations else 0.0

    return {
        "total_issues": total_issues,
        "solved_issues": solved_issues,
        "issues_by_type": issues_by_type,
        "issues_by_priority": issues_by_priority,
        "issues_by_site": issues_by_site,
        "average_resolution_time": average_resolution_time,
    }


def site_summary(db: Session) -> Dict[str, int]:
    def _count(*conditions) -> int:
        query = db.query(func.count(models.Site.id))
        for condition in conditions:
            query = query.filter(condition)
        return query.scalar() or 0

    return {
        "total_sites": _count(),
        "sites_with_issues": _count(models.Site.has_issues == True),  # noqa: E712
        "sites_with_backup": _count(models.Site.has_taken_manual_backup == True),  # noqa: E712
        "cpanel_sites": _count(models.Site.is_cpanel == True),  # noqa: E712
        "vm_sites": _count(models.Site.is_vm == True),  # noqa: E712
    }


def list_provinces(db: Session) -> List[str]:
    rows = db.query(models.Site.province).distinct().order_by(models.Site.province).all()
    return [row[0] for row in rows]


def list_districts(db: Session, province: Optional[str] = None) -> List[str]:
    query = db.query(models.Site.district)
    if province:
        query = query.filter(models.Site.province == province)
    rows = query.distinct().order_by(models.Site.district).all()
    return [row[0] for row in rows]
