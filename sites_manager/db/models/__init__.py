"""
Domain-split SQLAlchemy models.

Exposes `Base`, `now_utc`, and all ORM classes from one import location.
"""

from .base import Base, now_utc  # re-export

from .users import User
from .sites import Site
from .issues import Issue, IssueTypeLink
from .solutions import Solution
from .audit import AuditLog

__all__ = [
    "Base",
    "now_utc",
    "User",
    "Site",
    "Issue",
    "IssueTypeLink",
    "Solution",
    "AuditLog",
]
