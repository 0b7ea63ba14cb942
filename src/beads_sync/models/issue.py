"""Issue model and boundary decoding"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ValidationFailure
from .base import IssueType, Status, advance_timestamp, ensure_aware, utcnow
from .dependency import Dependency
from .patch import IssuePatch


class Issue(BaseModel):
    """The unit of work, as the client sees it"""

    model_config = ConfigDict(extra="ignore")

    # Primary fields
    id: str = Field(..., min_length=1)
    title: str = Field(..., max_length=500)
    description: Optional[str] = None
    design: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    notes: Optional[str] = None

    # Status and type
    status: Status = Status.OPEN
    priority: int = Field(2, ge=0, le=4, description="Priority: 0 (highest) to 4 (lowest)")
    issue_type: IssueType = IssueType.TASK

    # Optional fields
    assignee: Optional[str] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    labels: List[str] = Field(default_factory=list)
    external_ref: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    closed_at: Optional[datetime] = None

    # Owned edges; dependents are only ever filled in by the Backend's includeDeps variant
    dependencies: List[Dependency] = Field(default_factory=list)
    dependents: Optional[List[Dict[str, Any]]] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("labels")
    @classmethod
    def _unique_labels(cls, value: List[str]) -> List[str]:
        # Labels are a set; keep first-seen order for display
        return list(dict.fromkeys(value))

    @field_validator("created_at", "updated_at", "closed_at")
    @classmethod
    def _aware_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value)

    def __repr__(self):
        return f"<Issue(id='{self.id}', title='{self.title[:50]}...', status='{self.status.value}')>"

    @property
    def blocking_dependencies(self) -> List[Dependency]:
        return [dep for dep in self.dependencies if dep.is_blocking]

    def has_dependency_on(self, depends_on_id: str) -> bool:
        return any(dep.depends_on_id == depends_on_id for dep in self.dependencies)

    def with_patch(self, patch: IssuePatch, now: Optional[datetime] = None) -> "Issue":
        """Return a copy with ``patch`` applied and timestamps maintained

        ``updated_at`` always advances. ``closed_at`` is set when the status
        moves into closed and cleared when it moves out again.
        """
        now = now or utcnow()
        changes = patch.changes()
        data = self.model_dump()
        data.update(changes)

        if "status" in changes:
            new_status = Status(changes["status"])
            if new_status == Status.CLOSED and self.status != Status.CLOSED:
                data["closed_at"] = now
            elif new_status != Status.CLOSED:
                data["closed_at"] = None

        data["updated_at"] = advance_timestamp(self.updated_at, now)
        return Issue.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return self.model_dump(mode="json", exclude_none=True)


class IssueFilter(BaseModel):
    """Active filter state held by the store"""

    model_config = ConfigDict(extra="forbid")

    status: Optional[List[Status]] = None
    priority: Optional[List[int]] = None
    issue_type: Optional[List[IssueType]] = None
    assignee: Optional[List[str]] = None
    search: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def matches(self, issue: Issue) -> bool:
        if self.status and issue.status not in self.status:
            return False
        if self.priority and issue.priority not in self.priority:
            return False
        if self.issue_type and issue.issue_type not in self.issue_type:
            return False
        if self.assignee and issue.assignee not in self.assignee:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = (issue.id, issue.title, issue.description or "")
            if not any(needle in field.lower() for field in haystack):
                return False
        return True


def decode_issue(payload: Any) -> Issue:
    """Validate an untyped JSON payload into an Issue

    Raises ValidationFailure instead of letting partially-typed data through.
    """
    try:
        return Issue.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(f"Malformed issue payload: {e}") from e


def decode_issues(payload: Any) -> List[Issue]:
    """Validate a JSON array of issues"""
    if not isinstance(payload, list):
        raise ValidationFailure(f"Expected a list of issues, got {type(payload).__name__}")
    return [decode_issue(item) for item in payload]
