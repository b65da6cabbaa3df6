import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from sites_manager.utils.choices import BackupLocation
from .common import Credential, HttpUrlStr
from .issues import Issue, SiteIssueCreate, SiteIssueSync


class SiteBase(BaseModel):
    name_of_agency: str = Field(min_length=1)
    url: HttpUrlStr
    is_cpanel: bool = False
    cpanel_username: Credential = None
    cpanel_password: Credential = None
    is_vm: bool = False
    vpn_username: Credential = None
    vpn_password: Credential = None
    vm_ip: Credential = None
    vm_username: Credential = None
    vm_password: Credential = None
    province: str = Field(min_length=1)
    district: str = Field(min_length=1)
    has_taken_manual_backup: bool = False
    last_manual_backup_date: Optional[datetime] = None
    last_database_backup_date: Optional[datetime] = None
    backup_location: Optional[BackupLocation] = None


class SiteCreate(SiteBase):
    issues: List[SiteIssueCreate] = Field(default_factory=list)


class SiteUpdate(BaseModel):
    name_of_agency: Optional[str] = Field(default=None, min_length=1)
    url: Optional[HttpUrlStr] = None
    is_cpanel: Optional[bool] = None
    cpanel_username: Credential = None
    cpanel_password: Credential = None
    is_vm: Optional[bool] = None
    vpn_username: Credential = None
    vpn_password: Credential = None
    vm_ip: Credential = None
    vm_username: Credential = None
    vm_password: Credential = None
    province: Optional[str] = Field(default=None, min_length=1)
    district: Optional[str] = Field(default=None, min_length=1)
    has_taken_manual_backup: Optional[bool] = None
    last_manual_backup_date: Optional[datetime] = None
    last_database_backup_date: Optional[datetime] = None
    backup_location: Optional[BackupLocation] = None
    issues: Optional[List[SiteIssueSync]] = None


class BackupUpdates(BaseModel):
    has_taken_manual_backup: Optional[bool] = None
    last_manual_backup_date: Optional[datetime] = None
    last_database_backup_date: Optional[datetime] = None
    backup_location: Optional[BackupLocation] = None


class BackupStatusUpdate(BackupUpdates):
    has_taken_manual_backup: bool


class SiteBulkUpdate(BaseModel):
    site_ids: List[uuid.UUID] = Field(min_length=1)
    updates: BackupUpdates


class SiteBulkUpdateResult(BaseModel):
    updated_count: int


class Site(SiteBase):
    id: uuid.UUID
    has_issues: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SiteWithIssues(Site):
    issues: List[Issue] = Field(default_factory=list)


class SiteWithIssueCounts(Site):
    issue_count: int = 0
    solved_issue_count: int = 0
    critical_issue_count: int = 0
