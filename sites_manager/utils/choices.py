"""
Enumerated values for sites, issues and backups.

Centralized definitions so schemas, models and check constraints share
the same vocabulary.
"""

from enum import Enum
from typing import Dict, FrozenSet


class BackupLocation(str, Enum):
    LOCAL = "LOCAL"
    AWS = "AWS"
    TELEGRAM = "TELEGRAM"


class IssueType(str, Enum):
    CSS_ERROR = "CSS_ERROR"
    NOT_FOUND_404 = "NOT_FOUND_404"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    HACKED = "HACKED"
    NOT_RESPONDING = "NOT_RESPONDING"
    SSL_ERROR = "SSL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    PERFORMANCE_ISSUE = "PERFORMANCE_ISSUE"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


ALL_BACKUP_LOCATIONS: FrozenSet[str] = frozenset(b.value for b in BackupLocation)
ALL_ISSUE_TYPES: FrozenSet[str] = frozenset(t.value for t in IssueType)
ALL_PRIORITIES: FrozenSet[str] = frozenset(p.value for p in Priority)

# Severity rank used when sorting by priority (strings would sort alphabetically)
PRIORITY_RANK: Dict[str, int] = {
    Priority.LOW.value: 0,
    Priority.MEDIUM.value: 1,
    Priority.HIGH.value: 2,
    Priority.CRITICAL.value: 3,
}


def sql_in_list(values) -> str:
    """Render values as a quoted SQL IN list for check constraints."""
    return ",".join(f"'{v}'" for v in sorted(values))
