"""
Issue repository functions.

Implements issue listing with dynamic filters, create/update/solve/delete,
and upkeep of the parent site's ``has_issues`` flag. Every write that can
change a site's set of unsolved issues recomputes the flag before commit.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from sites_manager.db import models, schemas
from sites_manager.utils.choices import PRIORITY_RANK

logger = logging.getLogger(__name__)

ISSUE_SORT_FIELDS = ("created_at", "updated_at", "priority", "is_solved")


def _plain(value):
    return getattr(value, "value", value)


def _sort_column(sort_by: Optional[str]):
    if sort_by == "updated_at":
        return models.Issue.updated_at
    if sort_by == "priority":
        return case(PRIORITY_RANK, value=models.Issue.priority, else_=-1)
    if sort_by == "is_solved":
        return models.Issue.is_solved
    return models.Issue.created_at


def apply_issue_filters(
    query,
    *,
    site_id: Optional[uuid.UUID] = None,
    issue_types: Optional[Sequence[str]] = None,
    priority: Optional[str] = None,
    is_solved: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
):
    """AND the supplied filters onto a query that selects from ``issues``."""
    if site_id:
        query = query.filter(models.Issue.site_id == site_id)
    if issue_types:
        # Match issues carrying any of the requested types
        wanted = [_plain(t) for t in issue_types]
        query = query.filter(
            models.Issue.id.in_(
                select(models.IssueTypeLink.issue_id).where(models.IssueTypeLink.issue_type.in_(wanted))
            )
        )
    if priority:
        query = query.filter(models.Issue.priority == _plain(priority))
    if is_solved is not None:
        query = query.filter(models.Issue.is_solved == is_solved)
    if start_date:
        query = query.filter(models.Issue.created_at >= start_date)
    if end_date:
        query = query.filter(models.Issue.created_at <= end_date)
    if search:
        query = query.filter(models.Issue.description.ilike(f"%{search}%"))
    return query


def locked_site_query(db: Session, site_id: uuid.UUID):
    """Select the site row ``FOR UPDATE`` so flag recomputations on one site run one at a time."""
    return db.query(models.Site).filter(models.Site.id == site_id).with_for_update()


def refresh_site_issue_flag(db: Session, site_id: uuid.UUID) -> Optional[bool]:
    """Recompute ``sites.has_issues`` from the site's unsolved issues.

    Flushes pending changes first; the caller owns the commit. The site row
    stays locked until then, so a concurrent writer counts only after this
    transaction's issue changes are visible.
    """
    db.flush()
    db_site = locked_site_query(db, site_id).first()
    if db_site is None:
        return None
    unsolved = (
        db.query(func.count(models.Issue.id))
        .filter(models.Issue.site_id == site_id, models.Issue.is_solved == False)  # noqa: E712
        .scalar()
    )
    has_issues = bool(unsolved)
    if db_site.has_issues != has_issues:
        db_site.has_issues = has_issues
    return has_issues


def build_issue(
    issue_types: Iterable,
    description: str,
    priority,
    *,
    site_id: Optional[uuid.UUID] = None,
    is_solved: bool = False,
) -> models.Issue:
    db_issue = models.Issue(
        site_id=site_id,
        description=description,
        priority=_plain(priority),
        is_solved=is_solved,
    )
    db_issue.set_issue_types(issue_types)
    return db_issue


def get_issue(db: Session, issue_id: uuid.UUID):
    return (
        db.query(models.Issue)
        .options(selectinload(models.Issue.type_links))
        .filter(models.Issue.id == issue_id)
        .first()
    )


def list_issues(
    db: Session,
    *,
    site_id: Optional[uuid.UUID] = None,
    issue_types: Optional[Sequence[str]] = None,
    priority: Optional[str] = None,
    is_solved: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = "created_at",
    sort_order: Optional[str] = "desc",
    skip: int = 0,
    limit: int = 50,
    with_site: bool = False,
    include_solutions: bool = False,
) -> Tuple[List[models.Issue], int]:
    """Return one page of issues and the total matching count."""
    query = apply_issue_filters(
        db.query(models.Issue),
        site_id=site_id,
        issue_types=issue_types,
        priority=priority,
        is_solved=is_solved,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    total = query.count()

    options = [selectinload(models.Issue.type_links)]
    if with_site:
        options.append(joinedload(models.Issue.site))
    if include_solutions:
        options.append(selectinload(models.Issue.solutions))
    order_column = _sort_column(sort_by)
    query = query.options(*options).order_by(
        order_column.desc() if sort_order == "desc" else order_column.asc(), models.Issue.id
    )
    return query.offset(skip).limit(limit).all(), total


def find_missing_site_ids(db: Session, site_ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    wanted = list(dict.fromkeys(site_ids))
    if not wanted:
        return []
    found = {row[0] for row in db.query(models.Site.id).filter(models.Site.id.in_(wanted)).all()}
    return [site_id for site_id in wanted if site_id not in found]


def create_issues(db: Session, issues: Sequence[schemas.IssueCreate]) -> List[models.Issue]:
    """Insert issues for existing sites in one transaction."""
    try:
        created = []
        for issue in issues:
            db_issue = build_issue(issue.issue_types, issue.description, issue.priority, site_id=issue.site_id)
            db.add(db_issue)
            created.append(db_issue)
        for site_id in {issue.site_id for issue in issues}:
            refresh_site_issue_flag(db, site_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("create_issues failed")
        raise RuntimeError(f"Failed to create issues: {e}") from e
    for db_issue in created:
        db.refresh(db_issue)
    return created


def create_issue(db: Session, issue: schemas.IssueCreate):
    if db.get(models.Site, issue.site_id) is None:
        return None
    return create_issues(db, [issue])[0]


def update_issue(db: Session, issue_id: uuid.UUID, issue: schemas.IssueUpdate):
    db_issue = get_issue(db, issue_id)
    if not db_issue:
        return None
    try:
        data = issue.model_dump(exclude_unset=True)
        if data.get("issue_types") is not None:
            db_issue.set_issue_types(data["issue_types"])
        for key in ("description", "priority", "is_solved"):
            if data.get(key) is not None:
                setattr(db_issue, key, _plain(data[key]))
        db_issue.updated_at = models.now_utc()
        refresh_site_issue_flag(db, db_issue.site_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("update_issue failed for %s", issue_id)
        raise RuntimeError(f"Failed to update issue {issue_id}: {e}") from e
    db.refresh(db_issue)
    return db_issue


def solve_issue(db: Session, issue_id: uuid.UUID, solve: schemas.IssueSolve):
    """Record a solution, mark the issue solved and refresh the site flag atomically.

    Returns ``(issue, solution)`` or None when the issue does not exist.
    """
    db_issue = get_issue(db, issue_id)
    if not db_issue:
        return None
    now = models.now_utc()
    try:
        db_solution = models.Solution(
            issue_id=db_issue.id,
            who_solved=solve.who_solved,
            how_solved=solve.how_solved,
            solved_at=solve.solved_at or now,
            created_at=now,
        )
        db.add(db_solution)
        db_issue.is_solved = True
        db_issue.updated_at = now
        refresh_site_issue_flag(db, db_issue.site_id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("solve_issue failed for %s", issue_id)
        raise RuntimeError(f"Failed to solve issue {issue_id}: {e}") from e
    db.refresh(db_issue)
    db.refresh(db_solution)
    return db_issue, db_solution


def delete_issue(db: Session, issue_id: uuid.UUID) -> bool:
    """Delete an issue with its solutions and refresh the site flag."""
    db_issue = db.query(models.Issue).filter(models.Issue.id == issue_id).first()
    if not db_issue:
        return False
    site_id = db_issue.site_id
    try:
        db.delete(db_issue)
        refresh_site_issue_flag(db, site_id)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("delete_issue failed for %s", issue_id)
        raise RuntimeError(f"Failed to delete issue {issue_id}: {e}") from e


def list_issue_types_in_use(db: Session) -> List[str]:
    rows = (
        db.query(models.IssueTypeLink.issue_type)
        .distinct()
        .order_by(models.IssueTypeLink.issue_type)
        .all()
    )
    return [row[0] for row in rows]
