"""
Issue API endpoints.

Filtered listing (optionally with the owning site and recorded solutions),
create/bulk create, update, solve and delete. Each write keeps the parent
site's ``has_issues`` flag current.
"""
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sites_manager.api.deps import get_current_user_context
from sites_manager.audit import AuditAction, log_issue
from sites_manager.db import schemas
from sites_manager.db.database import get_db
from sites_manager.db.repositories import issues as issue_repo
from sites_manager.db.repositories import statistics as stats_repo
from sites_manager.utils.choices import IssueType, Priority

router = APIRouter(prefix="/issues", tags=["issues"])

IssueSortField = Literal["created_at", "updated_at", "priority", "is_solved"]


def _issue_filters(
    site_id: Optional[uuid.UUID] = None,
    issue_types: Optional[List[IssueType]] = Query(default=None),
    priority: Optional[Priority] = None,
    is_solved: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
) -> dict:
    return {
        "site_id": site_id,
        "issue_types": issue_types or None,
        "priority": priority,
        "is_solved": is_solved,
        "start_date": start_date,
        "end_date": end_date,
        "search": (search or "").strip() or None,
    }


def _issue_with_site(db_issue, include_solutions: bool) -> schemas.IssueWithSite:
    return schemas.IssueWithSite(
        **schemas.Issue.model_validate(db_issue).model_dump(),
        site=schemas.IssueSite.model_validate(db_issue.site),
        solutions=(
            [schemas.Solution.model_validate(s) for s in db_issue.solutions] if include_solutions else None
        ),
    )


@router.get("/", response_model=schemas.Paginated[schemas.Issue])
def list_issues_endpoint(
    filters: dict = Depends(_issue_filters),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: IssueSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    items, total_items = issue_repo.list_issues(
        db, sort_by=sort_by, sort_order=sort_order, skip=offset, limit=limit, **filters
    )
    return schemas.paginate(items, total_items, limit, offset)


@router.post("/", response_model=schemas.Issue, status_code=status.HTTP_201_CREATED)
def create_issue_endpoint(
    issue: schemas.IssueCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_issue = issue_repo.create_issue(db, issue)
    if db_issue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    log_issue(
        db,
        actor_user_id=user.id,
        issue_id=db_issue.id,
        action=AuditAction.ISSUE_CREATE,
        metadata={"site_id": str(db_issue.site_id), "priority": db_issue.priority},
    )
    return db_issue


@router.post("/bulk", response_model=List[schemas.Issue], status_code=status.HTTP_201_CREATED)
def bulk_create_issues_endpoint(
    payload: schemas.IssueBulkCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    missing = issue_repo.find_missing_site_ids(db, (issue.site_id for issue in payload.issues))
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Site not found: {', '.join(str(site_id) for site_id in missing)}",
        )
    created = issue_repo.create_issues(db, payload.issues)
    for db_issue in created:
        log_issue(
            db,
            actor_user_id=user.id,
            issue_id=db_issue.id,
            action=AuditAction.ISSUE_CREATE,
            metadata={"site_id": str(db_issue.site_id), "bulk": True},
        )
    return created


@router.get("/with-site", response_model=schemas.Paginated[schemas.IssueWithSite])
def list_issues_with_site_endpoint(
    filters: dict = Depends(_issue_filters),
    include_solutions: bool = False,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: IssueSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    items, total_items = issue_repo.list_issues(
        db,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=offset,
        limit=limit,
        with_site=True,
        include_solutions=include_solutions,
        **filters,
    )
    rows = [_issue_with_site(db_issue, include_solutions) for db_issue in items]
    return schemas.paginate(rows, total_items, limit, offset)


@router.get("/types", response_model=List[str])
def list_issue_types_endpoint(
    include_unused: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    """Distinct issue types attached to at least one issue, sorted.

    ``include_unused`` returns every known issue type instead.
    """
    if include_unused:
        return [issue_type.value for issue_type in IssueType]
    return issue_repo.list_issue_types_in_use(db)


@router.get("/statistics", response_model=schemas.IssueStatistics)
def issue_statistics_endpoint(
    site_id: Optional[uuid.UUID] = None,
    issue_types: Optional[List[IssueType]] = Query(default=None),
    priority: Optional[Priority] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return stats_repo.issue_statistics(
        db,
        site_id=site_id,
        issue_types=issue_types or None,
        priority=priority,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{issue_id}", response_model=schemas.Issue)
def get_issue_endpoint(
    issue_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    db_issue = issue_repo.get_issue(db, issue_id)
    if db_issue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found")
    return db_issue


@router.put("/{issue_id}", response_model=schemas.Issue)
def update_issue_endpoint(
    issue_id: uuid.UUID,
    issue: schemas.IssueUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_issue = issue_repo.update_issue(db, issue_id, issue)
    if db_issue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found")
    log_issue(
        db,
        actor_user_id=user.id,
        issue_id=issue_id,
        action=AuditAction.ISSUE_UPDATE,
        metadata={"fields": sorted(issue.model_dump(exclude_unset=True))},
    )
    return db_issue


@router.post("/{issue_id}/solve", response_model=schemas.IssueWithSite)
def solve_issue_endpoint(
    issue_id: uuid.UUID,
    solve: schemas.IssueSolve,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    result = issue_repo.solve_issue(db, issue_id, solve)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found")
    db_issue, db_solution = result
    log_issue(
        db,
        actor_user_id=user.id,
        issue_id=issue_id,
        action=AuditAction.ISSUE_SOLVE,
        metadata={"solution_id": str(db_solution.id), "who_solved": db_solution.who_solved},
    )
    return _issue_with_site(db_issue, include_solutions=True)


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_issue_endpoint(
    issue_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    if not issue_repo.delete_issue(db, issue_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found")
    log_issue(db, actor_user_id=user.id, issue_id=issue_id, action=AuditAction.ISSUE_DELETE)
    return None
