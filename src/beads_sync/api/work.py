"""Work management API endpoints"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from ..storage.issue_repository import IssueRepository
from .state import get_repository

router = APIRouter()


@router.get("/ready")
async def get_ready_work(repository: IssueRepository = Depends(get_repository)) -> List[Dict[str, Any]]:
    """Get ready work

    Open issues whose blocks dependencies are all closed, sorted by priority
    (0 highest) and then newest first.
    """
    return [issue.to_dict() for issue in repository.get_ready_work()]


@router.get("/blocked")
async def get_blocked_issues(repository: IssueRepository = Depends(get_repository)) -> List[Dict[str, Any]]:
    """Get issues held back by at least one unresolved blocks dependency"""
    return [issue.to_dict() for issue in repository.get_blocked_issues()]


@router.get("/issues/{issue_id}/why-blocked")
async def why_blocked(issue_id: str, repository: IssueRepository = Depends(get_repository)) -> Dict[str, Any]:
    """Why blocked analysis for issue"""
    if not repository.get_issue(issue_id):
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")

    path = repository.find_blocking_path(issue_id)
    return {
        "issue_id": issue_id,
        "blocking_chain": [
            {"id": issue.id, "title": issue.title, "status": issue.status.value}
            for issue in path
        ],
    }


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint"""
    return {"status": "ok"}
