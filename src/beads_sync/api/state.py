"""Request-scoped access to shared Backend state"""

from fastapi import Request

from ..storage.issue_repository import IssueRepository
from .push import ConnectionManager


def get_repository(request: Request) -> IssueRepository:
    return request.app.state.repository


def get_connections(request: Request) -> ConnectionManager:
    return request.app.state.connections
