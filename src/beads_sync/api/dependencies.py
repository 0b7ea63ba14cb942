"""Dependencies API endpoints"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..errors import GraphConstraintViolation
from ..models import Dependency, DependencyType, IssuePatch, PushMessage, utcnow
from ..storage.issue_repository import IssueRepository
from .push import ConnectionManager
from .state import get_connections, get_repository

router = APIRouter()


class DependencyCreate(BaseModel):
    """Schema for creating a dependency"""
    depends_on_id: str = Field(..., min_length=1, description="ID of the issue this depends on")
    type: DependencyType = Field(DependencyType.BLOCKS, description="Dependency type")
    created_by: str = Field("api", description="Recorded on the edge")


@router.get("/{issue_id}/dependents")
async def get_dependents(issue_id: str, repository: IssueRepository = Depends(get_repository)) -> List[Dict[str, Any]]:
    """Issues that depend on this one, computed from current data"""
    if not repository.get_issue(issue_id):
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")
    issues = repository.list_issues()
    return [
        issue.to_dict() for issue in issues
        if issue.has_dependency_on(issue_id)
    ]


@router.post("/{issue_id}/dependencies", status_code=201)
async def add_dependency(
    issue_id: str,
    dependency_data: DependencyCreate,
    repository: IssueRepository = Depends(get_repository),
    connections: ConnectionManager = Depends(get_connections),
) -> Dict[str, Any]:
    """Add a dependency to an issue"""
    issue = repository.get_issue(issue_id)
    if not issue:
        raise HTTPException(status_code=404, detail=f"Issue {issue_id} not found")

    dependency = Dependency(
        issue_id=issue_id,
        depends_on_id=dependency_data.depends_on_id,
        type=dependency_data.type,
        created_at=utcnow(),
        created_by=dependency_data.created_by,
    )
    try:
        updated = repository.update_issue(
            issue_id, IssuePatch(dependencies=[*issue.dependencies, dependency])
        )
    except GraphConstraintViolation as e:
        raise HTTPException(status_code=400, detail=str(e))

    await connections.broadcast(PushMessage.updated(updated))
    return updated.to_dict()


@router.delete("/{issue_id}/dependencies/{depends_on_id}")
async def remove_dependency(
    issue_id: str,
    depends_on_id: str,
    repository: IssueRepository = Depends(get_repository),
    connections: ConnectionManager = Depends(get_connections),
) -> Dict[str, Any]:
    """Remove a dependency from an issue"""
    issue = repository.get_issue(issue_id)
    if not issue or not issue.has_dependency_on(depends_on_id):
        raise HTTPException(
            status_code=404,
            detail=f"Dependency from {issue_id} to {depends_on_id} not found"
        )

    remaining = [dep for dep in issue.dependencies if dep.depends_on_id != depends_on_id]
    updated = repository.update_issue(issue_id, IssuePatch(dependencies=remaining))

    await connections.broadcast(PushMessage.updated(updated))
    return updated.to_dict()
