"""
Solution repository functions.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from sites_manager.db import models, schemas

logger = logging.getLogger(__name__)

SOLUTION_SORT_FIELDS = ("solved_at", "created_at", "who_solved")


def get_solution(db: Session, solution_id: uuid.UUID):
    return db.query(models.Solution).filter(models.Solution.id == solution_id).first()


def get_solution_detail(db: Session, solution_id: uuid.UUID):
    """Solution with its issue (and the issue's types) and site eagerly loaded."""
    return (
        db.query(models.Solution)
        .options(
            joinedload(models.Solution.issue).joinedload(models.Issue.site),
            joinedload(models.Solution.issue).selectinload(models.Issue.type_links),
        )
        .filter(models.Solution.id == solution_id)
        .first()
    )


def list_solutions(
    db: Session,
    *,
    issue_id: Optional[uuid.UUID] = None,
    who_solved: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = "solved_at",
    sort_order: Optional[str] = "desc",
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[models.Solution], int]:
    query = db.query(models.Solution)
    if issue_id:
        query = query.filter(models.Solution.issue_id == issue_id)
    if who_solved:
        query = query.filter(models.Solution.who_solved == who_solved)
    if start_date:
        query = query.filter(models.Solution.solved_at >= start_date)
    if end_date:
        query = query.filter(models.Solution.solved_at <= end_date)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(models.Solution.how_solved.ilike(pattern), models.Solution.who_solved.ilike(pattern))
        )
    total = query.count()
    column = getattr(models.Solution, sort_by if sort_by in SOLUTION_SORT_FIELDS else "solved_at")
    query = query.order_by(column.desc() if sort_order == "desc" else column.asc(), models.Solution.id)
    return query.offset(skip).limit(limit).all(), total


def update_solution(db: Session, solution_id: uuid.UUID, solution: schemas.SolutionUpdate):
    db_solution = get_solution(db, solution_id)
    if not db_solution:
        return None
    for key, value in solution.model_dump(exclude_unset=True).items():
        # All solution columns are required
        if value is not None:
            setattr(db_solution, key, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("update_solution failed for %s", solution_id)
        raise RuntimeError(f"Failed to update solution {solution_id}: {e}") from e
    db.refresh(db_solution)
    return db_solution


def list_solvers(db: Session) -> List[str]:
    """Distinct ``who_solved`` values, alphabetically."""
    rows = db.query(models.Solution.who_solved).distinct().order_by(models.Solution.who_solved).all()
    return [row[0] for row in rows]
