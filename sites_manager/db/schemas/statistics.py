from typing import Dict
from pydantic import BaseModel


class SiteStatistics(BaseModel):
    total_sites: int
    sites_with_issues: int
    sites_with_backup: int
    sites_by_province: Dict[str, int]
    sites_by_district: Dict[str, int]
    backup_locations: Dict[str, int]


class IssueStatistics(BaseModel):
    total_issues: int
    solved_issues: int
    issues_by_type: Dict[str, int]
    issues_by_priority: Dict[str, int]
    issues_by_site: Dict[str, int]
    average_resolution_time: float


class SiteSummary(BaseModel):
    total_sites: int
    sites_with_issues: int
    sites_with_backup: int
    cpanel_sites: int
    vm_sites: int
