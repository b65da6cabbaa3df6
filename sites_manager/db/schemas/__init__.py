"""
Domain-split Pydantic schemas re-exported from one import location.
"""

# Import order: solutions -> issues -> sites, matching their dependencies
from .common import Paginated, paginate, total_pages
from .users import UserBase, User
from .audits import AuditLogBase, AuditLogCreate, AuditLog
from .solutions import SolutionBase, SolutionCreate, SolutionUpdate, Solution
from .issues import (
    IssueBase,
    IssueCreate,
    SiteIssueCreate,
    SiteIssueSync,
    IssueBulkCreate,
    IssueUpdate,
    IssueSolve,
    Issue,
    IssueSite,
    IssueWithSite,
)
from .sites import (
    SiteBase,
    SiteCreate,
    SiteUpdate,
    BackupUpdates,
    BackupStatusUpdate,
    SiteBulkUpdate,
    SiteBulkUpdateResult,
    Site,
    SiteWithIssues,
    SiteWithIssueCounts,
)
from .statistics import SiteStatistics, IssueStatistics, SiteSummary
from .details import SolutionDetail

__all__ = [
    "Paginated",
    "paginate",
    "total_pages",
    "UserBase",
    "User",
    "AuditLogBase",
    "AuditLogCreate",
    "AuditLog",
    "SolutionBase",
    "SolutionCreate",
    "SolutionUpdate",
    "Solution",
    "IssueBase",
    "IssueCreate",
    "SiteIssueCreate",
    "SiteIssueSync",
    "IssueBulkCreate",
    "IssueUpdate",
    "IssueSolve",
    "Issue",
    "IssueSite",
    "IssueWithSite",
    "SiteBase",
    "SiteCreate",
    "SiteUpdate",
    "BackupUpdates",
    "BackupStatusUpdate",
    "SiteBulkUpdate",
    "SiteBulkUpdateResult",
    "Site",
    "SiteWithIssues",
    "SiteWithIssueCounts",
    "SiteStatistics",
    "IssueStatistics",
    "SiteSummary",
    "SolutionDetail",
]
