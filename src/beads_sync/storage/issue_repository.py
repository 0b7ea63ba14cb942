"""JSONL-backed issue repository used by the reference Backend"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..errors import GraphConstraintViolation
from ..models import Dependency, DependencyType, Issue, IssueDraft, IssuePatch, Status, utcnow
from . import jsonl
from .dependency_resolver import dependency_resolver
from .id_generator import DEFAULT_PREFIX, generate_issue_id

logger = logging.getLogger(__name__)


class IssueRepository:
    """Authoritative issue collection persisted to a JSONL file

    Every committed change rewrites the file. Changes made to the file by
    other processes are picked up by ``detect_external_change``.
    """

    def __init__(self, path: Union[str, Path], id_prefix: str = DEFAULT_PREFIX, actor: str = "api"):
        self.path = Path(path)
        self.id_prefix = id_prefix
        self.actor = actor
        self._issues: Dict[str, Issue] = {}
        self._mtime: Optional[float] = None
        self.reload()

    def reload(self):
        """Re-read the file, replacing everything held in memory"""
        self._issues = {issue.id: issue for issue in jsonl.load_issues(self.path)}
        self._mtime = self._current_mtime()
        logger.info("Loaded %d issues from %s", len(self._issues), self.path)

    def detect_external_change(self) -> bool:
        """True if the file changed since this repository last read or wrote it"""
        return self._current_mtime() != self._mtime

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _save(self):
        jsonl.save_issues(self.path, self._issues.values())
        self._mtime = self._current_mtime()

    # Queries

    def list_issues(self, include_deps: bool = False) -> List[Issue]:
        """All issues, newest first"""
        issues = sorted(self._issues.values(), key=lambda x: x.created_at, reverse=True)
        if not include_deps:
            return issues
        return [
            issue.model_copy(update={
                "dependents": [
                    dependent.to_dict()
                    for dependent in dependency_resolver.get_dependents(issues, issue.id)
                ]
            })
            for issue in issues
        ]

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        return self._issues.get(issue_id)

    def get_ready_work(self) -> List[Issue]:
        return dependency_resolver.get_ready_work(list(self._issues.values()))

    def get_blocked_issues(self) -> List[Issue]:
        return dependency_resolver.get_blocked_issues(list(self._issues.values()))

    def find_blocking_path(self, issue_id: str) -> List[Issue]:
        return dependency_resolver.find_blocking_path(list(self._issues.values()), issue_id)

    # Mutations

    def create_issue(self, draft: IssueDraft) -> Issue:
        """Create a new issue with the next sequential id"""
        issue_id = generate_issue_id(self._issues.keys(), prefix=self.id_prefix)
        now = utcnow()

        dependencies = []
        for depends_on_id in draft.deps:
            if depends_on_id not in self._issues:
                raise GraphConstraintViolation(
                    f"Issue {depends_on_id} not found",
                    GraphConstraintViolation.UNKNOWN_TARGET,
                )
            if any(dep.depends_on_id == depends_on_id for dep in dependencies):
                raise GraphConstraintViolation(
                    "Dependency already exists",
                    GraphConstraintViolation.DUPLICATE,
                )
            dependencies.append(Dependency(
                issue_id=issue_id,
                depends_on_id=depends_on_id,
                type=DependencyType.BLOCKS,
                created_at=now,
                created_by=self.actor,
            ))

        issue = Issue(
            id=issue_id,
            status=Status.OPEN,
            created_at=now,
            updated_at=now,
            dependencies=dependencies,
            **draft.model_dump(exclude={"deps"}),
        )
        self._issues[issue.id] = issue
        self._save()
        return issue

    def update_issue(self, issue_id: str, patch: IssuePatch) -> Optional[Issue]:
        """Update an issue; returns None if it does not exist"""
        issue = self._issues.get(issue_id)
        if not issue:
            return None

        if patch.dependencies is not None:
            self._validate_dependencies(issue, patch.dependencies)

        updated = issue.with_patch(patch)
        self._issues[issue_id] = updated
        self._save()
        return updated

    def close_issue(self, issue_id: str) -> Optional[Issue]:
        """Close an issue; the record is kept"""
        return self.update_issue(issue_id, IssuePatch(status=Status.CLOSED))

    def _validate_dependencies(self, issue: Issue, dependencies: List[Dependency]):
        """Check a replacement dependency list as if its edges were added one at a time

        Uses the same checks the client runs before sending an edge.
        """
        others = [other for other in self._issues.values() if other.id != issue.id]
        candidate = issue.model_copy(update={"dependencies": []})

        for dep in dependencies:
            if dep.issue_id != issue.id:
                raise GraphConstraintViolation(
                    f"Dependency source {dep.issue_id} does not match issue {issue.id}",
                    GraphConstraintViolation.UNKNOWN_ISSUE,
                )
            dependency_resolver.validate_dependency(
                [*others, candidate], issue.id, dep.depends_on_id, dep.type
            )
            candidate = candidate.model_copy(
                update={"dependencies": [*candidate.dependencies, dep]}
            )
