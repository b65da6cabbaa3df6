import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SolutionBase(BaseModel):
    who_solved: str = Field(min_length=1)
    how_solved: str = Field(min_length=1, max_length=2000)


class SolutionCreate(SolutionBase):
    issue_id: uuid.UUID
    solved_at: Optional[datetime] = None


class SolutionUpdate(BaseModel):
    who_solved: Optional[str] = Field(default=None, min_length=1)
    how_solved: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    solved_at: Optional[datetime] = None


class Solution(SolutionBase):
    id: uuid.UUID
    issue_id: uuid.UUID
    solved_at: datetime
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
