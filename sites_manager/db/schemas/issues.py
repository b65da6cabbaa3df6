import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from sites_manager.utils.choices import IssueType, Priority
from .solutions import Solution


class IssueBase(BaseModel):
    issue_types: List[IssueType] = Field(min_length=1)
    description: str = Field(min_length=1, max_length=1000)
    priority: Priority


class IssueCreate(IssueBase):
    site_id: uuid.UUID


class SiteIssueCreate(IssueBase):
    """Issue submitted together with a new site."""


class SiteIssueSync(IssueBase):
    """Issue entry of a site update; entries without id are created."""
    id: Optional[uuid.UUID] = None
    is_solved: bool = False


class IssueBulkCreate(BaseModel):
    issues: List[IssueCreate] = Field(min_length=1)


class IssueUpdate(BaseModel):
    issue_types: Optional[List[IssueType]] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    priority: Optional[Priority] = None
    is_solved: Optional[bool] = None


class IssueSolve(BaseModel):
    who_solved: str = Field(min_length=1)
    how_solved: str = Field(min_length=1, max_length=2000)
    solved_at: Optional[datetime] = None


class Issue(BaseModel):
    id: uuid.UUID
    site_id: uuid.UUID
    issue_types: List[str]
    description: str
    priority: str
    is_solved: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class IssueSite(BaseModel):
    id: uuid.UUID
    name_of_agency: str
    url: str
    province: str
    district: str
    model_config = ConfigDict(from_attributes=True)


class IssueWithSite(Issue):
    site: IssueSite
    solutions: Optional[List[Solution]] = None
