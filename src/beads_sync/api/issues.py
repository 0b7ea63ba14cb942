"""Issues API endpoints"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import GraphConstraintViolation
from ..models import IssueDraft, IssuePatch, PushMessage
from ..storage.issue_repository import IssueRepository
from .push import ConnectionManager
from .state import get_connections, get_repository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_issues(
    include_deps: bool = Query(False, alias="includeDeps", description="Also populate dependents"),
    repository: IssueRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    """List all issues"""
    return [issue.to_dict() for issue in repository.list_issues(include_deps=include_deps)]


@router.post("", status_code=201)
async def create_issue(
    draft: IssueDraft,
    repository: IssueRepository = Depends(get_repository),
    connections: ConnectionManager = Depends(get_connections),
) -> Dict[str, Any]:
    """Create a new issue"""
    try:
        issue = repository.create_issue(draft)
    except GraphConstraintViolation as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Created issue %s", issue.id)
    await connections.broadcast(PushMessage.created(issue))
    return issue.to_dict()


@router.get("/{issue_id}")
async def get_issue(issue_id: str, repository: IssueRepository = Depends(get_repository)) -> Dict[str, Any]:
    """Get issue by ID"""
    issue = repository.get_issue(issue_id)
    if not issue:
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")
    return issue.to_dict()


@router.patch("/{issue_id}")
async def update_issue(
    issue_id: str,
    patch: IssuePatch,
    repository: IssueRepository = Depends(get_repository),
    connections: ConnectionManager = Depends(get_connections),
) -> Dict[str, Any]:
    """Update issue; only the fields present in the body change"""
    try:
        issue = repository.update_issue(issue_id, patch)
    except GraphConstraintViolation as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not issue:
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")

    await connections.broadcast(PushMessage.updated(issue))
    return issue.to_dict()


@router.delete("/{issue_id}")
async def close_issue(
    issue_id: str,
    repository: IssueRepository = Depends(get_repository),
    connections: ConnectionManager = Depends(get_connections),
) -> Dict[str, Any]:
    """Close issue (the record is kept, only status and closed_at change)"""
    issue = repository.close_issue(issue_id)
    if not issue:
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")

    logger.info("Closed issue %s", issue_id)
    await connections.broadcast(PushMessage.updated(issue))
    return issue.to_dict()
