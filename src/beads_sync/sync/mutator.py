"""Optimistic mutations: apply locally, confirm with the Backend, roll back on failure"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import ValidationError

from ..errors import GraphConstraintViolation, SyncError, ValidationFailure
from ..models import (
    Dependency,
    DependencyType,
    Issue,
    IssueDraft,
    IssuePatch,
    Status,
    utcnow,
)
from ..storage.dependency_resolver import DependencyResolver, dependency_resolver
from ..storage.id_generator import generate_issue_id
from ..storage.store import IssueStore
from .client import BackendClient

logger = logging.getLogger(__name__)


class OptimisticMutator:
    """Runs every mutating intent through the optimistic protocol

    1. Remember the affected record.
    2. Apply the tentative change to the store so observers see it at once.
    3. Send the request to the Backend.
    4. On success the Backend's record replaces the tentative one.
    5. On failure the remembered record is put back, the error is retained on
       the store and re-raised. Nothing is retried.
    """

    def __init__(
        self,
        store: IssueStore,
        client: BackendClient,
        tentative_prefix: str = "tmp-",
        actor: str = "local",
        resolver: DependencyResolver = dependency_resolver,
    ):
        self.store = store
        self.client = client
        self.tentative_prefix = tentative_prefix
        self.actor = actor
        self.resolver = resolver

    # Create

    async def create_issue(self, draft: Union[IssueDraft, Dict[str, Any]]) -> Issue:
        """Create an issue under a placeholder id until the Backend confirms it"""
        draft = self._validated(IssueDraft, draft)
        for depends_on_id in draft.deps:
            if depends_on_id not in self.store:
                self._reject(GraphConstraintViolation(
                    f"Issue {depends_on_id} not found",
                    GraphConstraintViolation.UNKNOWN_TARGET,
                ))
        if len(set(draft.deps)) != len(draft.deps):
            self._reject(GraphConstraintViolation(
                "Dependency already exists",
                GraphConstraintViolation.DUPLICATE,
            ))

        tentative = self._tentative_issue(draft)
        self.store.upsert(tentative)
        logger.debug("Inserted tentative issue %s", tentative.id)

        try:
            confirmed = await self.client.create_issue(draft)
        except SyncError as e:
            # Undo only our own insert; the rest of the collection is untouched
            self.store.remove(tentative.id)
            self._fail("create issue", e)
            raise

        self.store.remove(tentative.id)
        if confirmed.id in self.store:
            # The push channel delivered this creation first
            logger.debug("Issue %s already present, confirm is a no-op merge", confirmed.id)
        else:
            self.store.upsert(confirmed)
        self.store.clear_error()
        return self.store.get(confirmed.id) or confirmed

    def _tentative_issue(self, draft: IssueDraft) -> Issue:
        tentative_id = generate_issue_id(self.store.ids(), prefix=self.tentative_prefix)
        now = utcnow()
        fields = draft.model_dump(exclude={"deps"})
        dependencies = [
            Dependency(
                issue_id=tentative_id,
                depends_on_id=depends_on_id,
                type=DependencyType.BLOCKS,
                created_at=now,
                created_by=self.actor,
            )
            for depends_on_id in draft.deps
        ]
        return Issue(
            id=tentative_id,
            status=Status.OPEN,
            created_at=now,
            updated_at=now,
            dependencies=dependencies,
            **fields,
        )

    # Update / close

    async def update_issue(self, issue_id: str, patch: Union[IssuePatch, Dict[str, Any]]) -> Issue:
        """Apply a partial update locally, then confirm it with PATCH"""
        patch = self._validated(IssuePatch, patch)
        return await self._optimistic(
            "update issue",
            issue_id,
            patch,
            lambda: self.client.update_issue(issue_id, patch),
        )

    async def close_issue(self, issue_id: str) -> Issue:
        """Close an issue; the Backend keeps the record and sets closed_at"""
        return await self._optimistic(
            "close issue",
            issue_id,
            IssuePatch(status=Status.CLOSED),
            lambda: self.client.close_issue(issue_id),
        )

    async def update_status(self, issue_id: str, status: Union[Status, str]) -> Issue:
        status = self._validated(IssuePatch, {"status": status}).status
        if status == Status.CLOSED:
            return await self.close_issue(issue_id)
        return await self.update_issue(issue_id, IssuePatch(status=status))

    # Dependencies

    async def add_dependency(
        self,
        issue_id: str,
        depends_on_id: str,
        dependency_type: Union[DependencyType, str] = DependencyType.BLOCKS,
        created_by: Optional[str] = None,
    ) -> Issue:
        """Add an edge after checking it locally; rejected edges never leave the client"""
        try:
            dependency_type = DependencyType(dependency_type)
        except ValueError:
            self._reject(ValidationFailure(f"Unknown dependency type {dependency_type!r}"))
        try:
            self.resolver.validate_dependency(self.store.list(), issue_id, depends_on_id, dependency_type)
        except GraphConstraintViolation as e:
            self._reject(e)

        issue = self.store.get(issue_id)
        new_dep = Dependency(
            issue_id=issue_id,
            depends_on_id=depends_on_id,
            type=dependency_type,
            created_at=utcnow(),
            created_by=created_by or self.actor,
        )
        return await self.update_issue(
            issue_id, IssuePatch(dependencies=[*issue.dependencies, new_dep])
        )

    async def remove_dependency(self, issue_id: str, depends_on_id: str) -> Issue:
        issue = self.store.get(issue_id)
        if issue is None:
            self._reject(GraphConstraintViolation(
                f"Issue {issue_id} not found",
                GraphConstraintViolation.UNKNOWN_ISSUE,
            ))
        if not issue.has_dependency_on(depends_on_id):
            self._reject(ValidationFailure(f"Issue {issue_id} does not depend on {depends_on_id}"))

        remaining = [dep for dep in issue.dependencies if dep.depends_on_id != depends_on_id]
        return await self.update_issue(issue_id, IssuePatch(dependencies=remaining))

    # Protocol

    async def _optimistic(
        self,
        action: str,
        issue_id: str,
        patch: IssuePatch,
        request: Callable[[], Awaitable[Issue]],
    ) -> Issue:
        previous = self.store.get(issue_id)
        tentative = self.store.patch(issue_id, patch)

        try:
            confirmed = await request()
        except SyncError as e:
            # Only undo if nothing authoritative replaced our tentative record meanwhile
            if tentative is not None and self.store.get(issue_id) is tentative:
                self.store.upsert(previous)
            self._fail(action, e)
            raise

        self.store.upsert(confirmed)
        self.store.clear_error()
        return confirmed

    def _validated(self, model, value):
        if isinstance(value, model):
            return value
        try:
            return model.model_validate(value)
        except ValidationError as e:
            self._reject(ValidationFailure(f"Invalid {model.__name__}: {e}"))

    def _reject(self, error: SyncError):
        """Local validation failure: the store is left untouched"""
        self.store.set_error(error)
        raise error

    def _fail(self, action: str, error: SyncError):
        logger.warning("Failed to %s: %s", action, error)
        self.store.set_error(error)
