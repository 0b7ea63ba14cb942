"""beads-sync models package"""

from .base import Status, IssueType, DependencyType, UNRESOLVED_STATUSES, utcnow
from .dependency import Dependency
from .issue import Issue, IssueFilter, decode_issue, decode_issues
from .patch import IssuePatch, IssueDraft
from .events import (
    PushMessage,
    decode_push_message,
    ISSUE_CREATED,
    ISSUE_UPDATED,
    ISSUE_DELETED,
    ISSUES_REFRESH,
)

__all__ = [
    "Status",
    "IssueType",
    "DependencyType",
    "UNRESOLVED_STATUSES",
    "utcnow",
    "Dependency",
    "Issue",
    "IssueFilter",
    "decode_issue",
    "decode_issues",
    "IssuePatch",
    "IssueDraft",
    "PushMessage",
    "decode_push_message",
    "ISSUE_CREATED",
    "ISSUE_UPDATED",
    "ISSUE_DELETED",
    "ISSUES_REFRESH",
]
