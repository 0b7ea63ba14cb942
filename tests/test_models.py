"""Tests for issue, patch and push message models"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from beads_sync.errors import ValidationFailure
from beads_sync.models import (
    ISSUE_UPDATED,
    ISSUES_REFRESH,
    IssueDraft,
    IssuePatch,
    IssueType,
    PushMessage,
    Status,
    decode_issue,
    decode_issues,
    decode_push_message,
)

from conftest import BASE_TIME, make_issue


def test_issue_defaults():
    issue = decode_issue({"id": "BD-1", "title": "Only required fields"})
    assert issue.status == Status.OPEN
    assert issue.priority == 2
    assert issue.issue_type == IssueType.TASK
    assert issue.dependencies == []
    assert issue.dependents is None
    assert issue.created_at.tzinfo is not None


def test_issue_ignores_unknown_fields():
    issue = decode_issue({"id": "BD-1", "title": "x", "compaction_level": 2})
    assert not hasattr(issue, "compaction_level")


def test_decode_issue_rejects_malformed():
    with pytest.raises(ValidationFailure):
        decode_issue({"id": "BD-1", "title": "x", "priority": 9})
    with pytest.raises(ValidationFailure):
        decode_issue({"title": "missing id"})
    with pytest.raises(ValidationFailure):
        decode_issues({"not": "a list"})


def test_naive_timestamps_are_utc():
    issue = decode_issue({"id": "BD-1", "title": "x", "created_at": "2025-10-01T12:00:00"})
    assert issue.created_at == BASE_TIME


def test_labels_are_deduplicated():
    issue = decode_issue({"id": "BD-1", "title": "x", "labels": ["ui", "api", "ui"]})
    assert issue.labels == ["ui", "api"]


def test_patch_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        IssuePatch.model_validate({"titel": "typo"})


def test_patch_rejects_clearing_required_fields():
    with pytest.raises(ValidationError):
        IssuePatch.model_validate({"title": None})
    with pytest.raises(ValidationError):
        IssuePatch.model_validate({"status": None})


def test_patch_allows_clearing_optional_fields():
    patch = IssuePatch.model_validate({"assignee": None})
    assert patch.changes() == {"assignee": None}
    assert patch.to_dict() == {"assignee": None}


def test_patch_changes_only_include_set_fields():
    patch = IssuePatch(priority=1)
    assert patch.changes() == {"priority": 1}
    assert IssuePatch().is_empty()


def test_with_patch_sets_and_clears_closed_at():
    issue = make_issue("BD-1")
    closed = issue.with_patch(IssuePatch(status=Status.CLOSED))
    assert closed.status == Status.CLOSED
    assert closed.closed_at is not None

    # Patching a closed issue without touching status keeps closed_at
    renamed = closed.with_patch(IssuePatch(title="Renamed"))
    assert renamed.closed_at == closed.closed_at

    reopened = closed.with_patch(IssuePatch(status=Status.OPEN))
    assert reopened.closed_at is None


def test_with_patch_updated_at_strictly_increases():
    issue = make_issue("BD-1")
    earlier = issue.updated_at - timedelta(hours=1)
    patched = issue.with_patch(IssuePatch(priority=0), now=earlier)
    assert patched.updated_at > issue.updated_at

    same = patched.with_patch(IssuePatch(priority=1), now=patched.updated_at)
    assert same.updated_at > patched.updated_at


def test_with_patch_keeps_identity_fields():
    issue = make_issue("BD-1", deps=[])
    patched = issue.with_patch(IssuePatch(description="More detail"))
    assert patched.id == issue.id
    assert patched.created_at == issue.created_at
    assert patched.description == "More detail"


def test_draft_defaults():
    draft = IssueDraft(title="New")
    assert draft.priority == 3
    assert draft.issue_type == IssueType.TASK
    assert draft.to_dict() == {
        "title": "New",
        "priority": 3,
        "issue_type": "task",
        "labels": [],
        "deps": [],
    }


def test_draft_rejects_blank_title():
    with pytest.raises(ValidationError):
        IssueDraft(title="   ")


def test_decode_push_message_from_text():
    issue = make_issue("BD-1")
    message = decode_push_message(PushMessage.updated(issue).to_json())
    assert message.type == ISSUE_UPDATED
    assert message.issue_id == "BD-1"
    assert message.issue().to_dict() == issue.to_dict()


def test_decode_push_message_from_bytes_and_dict():
    assert decode_push_message(b'{"type": "issues:refresh"}').type == ISSUES_REFRESH
    assert decode_push_message({"type": "issue:deleted", "data": {"id": "BD-2"}}).issue_id == "BD-2"


@pytest.mark.parametrize("raw", [
    "not json",
    '{"type": "issue:exploded", "data": {"id": "BD-1"}}',
    '{"type": "issue:updated"}',
    '{"type": "issue:created", "data": {"title": "no id"}}',
])
def test_decode_push_message_rejects_malformed(raw):
    with pytest.raises(ValidationFailure):
        decode_push_message(raw)
