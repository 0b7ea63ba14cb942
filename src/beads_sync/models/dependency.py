"""Dependency model"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import DependencyType, ensure_aware, utcnow


class Dependency(BaseModel):
    """Directed edge: ``issue_id`` depends on ``depends_on_id``"""

    model_config = ConfigDict(extra="ignore")

    issue_id: str = Field(..., min_length=1, description="Dependent issue (source)")
    depends_on_id: str = Field(..., min_length=1, description="Prerequisite issue (target)")
    type: DependencyType = Field(DependencyType.BLOCKS, description="Dependency type")
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str = Field("local", description="Who created the edge")

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def is_blocking(self) -> bool:
        """Only blocks edges take part in readiness and blocked checks"""
        return self.type == DependencyType.BLOCKS

    def __repr__(self):
        return f"<Dependency(issue='{self.issue_id}', depends_on='{self.depends_on_id}', type='{self.type.value}')>"

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return self.model_dump(mode="json")
