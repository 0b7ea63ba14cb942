"""Base enumerations and timestamp helpers shared by all models"""

import enum
from datetime import datetime, timedelta, timezone
from typing import Optional


class Status(str, enum.Enum):
    """Issue status enumeration"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    CLOSED = "closed"


class IssueType(str, enum.Enum):
    """Issue type enumeration"""
    BUG = "bug"
    FEATURE = "feature"
    TASK = "task"
    EPIC = "epic"
    CHORE = "chore"


class DependencyType(str, enum.Enum):
    """Dependency type enumeration"""
    BLOCKS = "blocks"
    RELATED = "related"
    PARENT_CHILD = "parent-child"
    DISCOVERED_FROM = "discovered-from"


# Statuses that keep a blocks-dependency unresolved
UNRESOLVED_STATUSES = frozenset({Status.OPEN, Status.IN_PROGRESS, Status.BLOCKED})


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so all comparisons are well defined"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def advance_timestamp(previous: Optional[datetime], now: datetime) -> datetime:
    """Return a timestamp strictly later than ``previous``, preferring ``now``"""
    now = ensure_aware(now)
    previous = ensure_aware(previous)
    if previous is None or now > previous:
        return now
    return previous + timedelta(microseconds=1)
