"""Patch and draft value types for issue mutations"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import IssueType, Status
from .dependency import Dependency

# Fields an Issue must always carry; a patch may change them but never null them
_NON_NULLABLE = ("title", "status", "priority", "issue_type", "labels", "dependencies")


class IssuePatch(BaseModel):
    """Partial update to an issue

    Every field is optional but the set of legal names is fixed; unknown
    names are rejected before anything is applied.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    design: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[int] = Field(None, ge=0, le=4)
    issue_type: Optional[IssueType] = None
    assignee: Optional[str] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    labels: Optional[List[str]] = None
    external_ref: Optional[str] = None
    dependencies: Optional[List[Dependency]] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Title is required")
        return value

    @model_validator(mode="after")
    def _required_fields_not_nulled(self) -> "IssuePatch":
        for name in _NON_NULLABLE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the fields that were explicitly set"""
        return self.model_dump(exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def to_dict(self) -> Dict[str, Any]:
        """Wire body for PATCH requests"""
        return self.model_dump(mode="json", exclude_unset=True)


class IssueDraft(BaseModel):
    """Payload for creating an issue"""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., max_length=500)
    description: Optional[str] = None
    design: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    notes: Optional[str] = None
    priority: int = Field(3, ge=0, le=4)
    issue_type: IssueType = IssueType.TASK
    assignee: Optional[str] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    labels: List[str] = Field(default_factory=list)
    external_ref: Optional[str] = None
    deps: List[str] = Field(default_factory=list, description="Ids this issue is blocked by")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Wire body for POST requests"""
        return self.model_dump(mode="json", exclude_none=True)
