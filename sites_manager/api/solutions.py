"""
Solution API endpoints.

Solutions are created by solving an issue (``POST /issues/{id}/solve``);
this router lists, reads and corrects them.
"""
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sites_manager.api.deps import get_current_user_context
from sites_manager.audit import AuditAction, log_solution
from sites_manager.db import schemas
from sites_manager.db.database import get_db
from sites_manager.db.repositories import solutions as solution_repo

router = APIRouter(prefix="/solutions", tags=["solutions"])


@router.get("/", response_model=schemas.Paginated[schemas.Solution])
def list_solutions_endpoint(
    issue_id: Optional[uuid.UUID] = None,
    who_solved: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    sort_by: Literal["solved_at", "created_at", "who_solved"] = "solved_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    items, total_items = solution_repo.list_solutions(
        db,
        issue_id=issue_id,
        who_solved=who_solved or None,
        start_date=start_date,
        end_date=end_date,
        search=(search or "").strip() or None,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=offset,
        limit=limit,
    )
    return schemas.paginate(items, total_items, limit, offset)


@router.get("/solvers", response_model=List[str])
def list_solvers_endpoint(
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return solution_repo.list_solvers(db)


@router.get("/{solution_id}", response_model=schemas.Solution)
def get_solution_endpoint(
    solution_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    db_solution = solution_repo.get_solution(db, solution_id)
    if db_solution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Solution not found")
    return db_solution


@router.get("/{solution_id}/detail", response_model=schemas.SolutionDetail)
def get_solution_detail_endpoint(
    solution_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    db_solution = solution_repo.get_solution_detail(db, solution_id)
    if db_solution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Solution not found")
    return {
        "solution": db_solution,
        "issue": db_solution.issue,
        "site": db_solution.issue.site,
    }


@router.put("/{solution_id}", response_model=schemas.Solution)
def update_solution_endpoint(
    solution_id: uuid.UUID,
    solution: schemas.SolutionUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    user, _current_user = user_context
    db_solution = solution_repo.update_solution(db, solution_id, solution)
    if db_solution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Solution not found")
    log_solution(
        db,
        actor_user_id=user.id,
        solution_id=solution_id,
        action=AuditAction.SOLUTION_UPDATE,
        metadata={"fields": sorted(solution.model_dump(exclude_unset=True))},
    )
    return db_solution
