"""Push channel message envelope"""

import json
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from ..errors import ValidationFailure
from .issue import Issue, decode_issue

ISSUE_CREATED = "issue:created"
ISSUE_UPDATED = "issue:updated"
ISSUE_DELETED = "issue:deleted"
ISSUES_REFRESH = "issues:refresh"

PushType = Literal["issue:created", "issue:updated", "issue:deleted", "issues:refresh"]


class PushMessage(BaseModel):
    """``{type, data?}`` as broadcast by the Backend"""

    model_config = ConfigDict(extra="ignore")

    type: PushType
    data: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _payload_present(self) -> "PushMessage":
        if self.type != ISSUES_REFRESH and not (self.data and self.data.get("id")):
            raise ValueError(f"{self.type} requires data with an id")
        return self

    @property
    def issue_id(self) -> Optional[str]:
        return self.data.get("id") if self.data else None

    def issue(self) -> Issue:
        """Full authoritative record carried by created/updated messages"""
        return decode_issue(self.data)

    @classmethod
    def created(cls, issue: Issue) -> "PushMessage":
        return cls(type=ISSUE_CREATED, data=issue.to_dict())

    @classmethod
    def updated(cls, issue: Issue) -> "PushMessage":
        return cls(type=ISSUE_UPDATED, data=issue.to_dict())

    @classmethod
    def deleted(cls, issue_id: str) -> "PushMessage":
        return cls(type=ISSUE_DELETED, data={"id": issue_id})

    @classmethod
    def refresh(cls) -> "PushMessage":
        return cls(type=ISSUES_REFRESH)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def decode_push_message(raw: Any) -> PushMessage:
    """Decode a raw channel frame (text, bytes or already-parsed dict)"""
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        return PushMessage.model_validate(raw)
    except (ValueError, ValidationError) as e:
        raise ValidationFailure(f"Malformed push message: {e}") from e
