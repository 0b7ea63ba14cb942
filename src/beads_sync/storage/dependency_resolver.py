"""Dependency graph queries over an issue snapshot"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import GraphConstraintViolation
from ..models import DependencyType, Issue, Status, UNRESOLVED_STATUSES


def index_issues(issues: Iterable[Issue]) -> Dict[str, Issue]:
    return {issue.id: issue for issue in issues}


def sort_by_priority(issues: List[Issue]) -> List[Issue]:
    """Sort in place by priority (0 first), newest first on ties"""
    # Two stable sorts: secondary key first
    issues.sort(key=lambda x: x.created_at, reverse=True)
    issues.sort(key=lambda x: x.priority)
    return issues


class DependencyResolver:
    """Stateless dependency computations

    Every method takes the full issue snapshot it should reason about; nothing
    is cached between calls, so results always reflect current data.
    """

    def is_ready(self, issue: Issue, issues: Sequence[Issue], index: Optional[Dict[str, Issue]] = None) -> bool:
        """Check if an issue is ready to start

        An issue is ready if:
        1. Its status is open
        2. None of its BLOCKING dependencies points at an issue that is not closed
        Other dependency types never affect readiness. A blocks edge whose
        target is unknown does not hold the issue back.
        """
        if issue.status != Status.OPEN:
            return False

        index = index if index is not None else index_issues(issues)
        for dep in issue.blocking_dependencies:
            blocker = index.get(dep.depends_on_id)
            if blocker is not None and blocker.status != Status.CLOSED:
                return False
        return True

    def is_blocked(self, issue: Issue, issues: Sequence[Issue], index: Optional[Dict[str, Issue]] = None) -> bool:
        """Check if an issue is blocked for reporting purposes

        True when the issue is not closed and at least one BLOCKING dependency
        points at an open, in-progress or blocked issue. This does not look at
        the issue's own stored status beyond the closed check, so an issue can
        be open and blocked at the same time.
        """
        if issue.status == Status.CLOSED:
            return False

        index = index if index is not None else index_issues(issues)
        for dep in issue.blocking_dependencies:
            blocker = index.get(dep.depends_on_id)
            if blocker is not None and blocker.status in UNRESOLVED_STATUSES:
                return True
        return False

    def get_ready_work(self, issues: Sequence[Issue], limit: Optional[int] = None) -> List[Issue]:
        """Get ready work sorted by priority (0 first), newest first on ties"""
        index = index_issues(issues)
        ready_issues = [issue for issue in issues if self.is_ready(issue, issues, index)]

        sort_by_priority(ready_issues)

        if limit is not None:
            return ready_issues[:limit]
        return ready_issues

    def get_blocked_issues(self, issues: Sequence[Issue]) -> List[Issue]:
        """Get issues blocked by at least one unresolved blocks dependency

        Ordered like ready work, so the result does not depend on snapshot order.
        """
        index = index_issues(issues)
        blocked = [issue for issue in issues if self.is_blocked(issue, issues, index)]
        return sort_by_priority(blocked)

    def get_dependents(self, issues: Iterable[Issue], issue_id: str) -> List[Issue]:
        """Get all dependents of an issue (what depends on this issue)"""
        return [
            issue for issue in issues
            if any(dep.depends_on_id == issue_id for dep in issue.dependencies)
        ]

    def would_create_cycle(self, issues: Iterable[Issue], issue_id: str, depends_on_id: str) -> bool:
        """Check if adding blocks edge ``issue_id -> depends_on_id`` closes a cycle

        Starts from ``depends_on_id`` and follows existing blocks edges across
        the whole graph; the edge is cyclic if ``issue_id`` is reachable.
        """
        index = index_issues(issues)
        visited = set()
        queue = deque([depends_on_id])

        while queue:
            current_id = queue.popleft()

            if current_id in visited:
                continue
            visited.add(current_id)

            if current_id == issue_id:
                return True

            current = index.get(current_id)
            if current is None:
                continue

            for dep in current.blocking_dependencies:
                if dep.depends_on_id not in visited:
                    queue.append(dep.depends_on_id)

        return False

    def validate_dependency(
        self,
        issues: Sequence[Issue],
        issue_id: str,
        depends_on_id: str,
        dependency_type: DependencyType = DependencyType.BLOCKS,
    ) -> None:
        """Raise GraphConstraintViolation if the edge may not be added"""

        if issue_id == depends_on_id:
            raise GraphConstraintViolation(
                f"Issue {issue_id} cannot depend on itself",
                GraphConstraintViolation.SELF_DEPENDENCY,
            )

        index = index_issues(issues)
        issue = index.get(issue_id)
        if issue is None:
            raise GraphConstraintViolation(
                f"Issue {issue_id} not found",
                GraphConstraintViolation.UNKNOWN_ISSUE,
            )

        if depends_on_id not in index:
            raise GraphConstraintViolation(
                f"Issue {depends_on_id} not found",
                GraphConstraintViolation.UNKNOWN_TARGET,
            )

        # One edge per ordered pair, whatever its type
        if issue.has_dependency_on(depends_on_id):
            raise GraphConstraintViolation(
                "Dependency already exists",
                GraphConstraintViolation.DUPLICATE,
            )

        if dependency_type == DependencyType.BLOCKS and self.would_create_cycle(issues, issue_id, depends_on_id):
            raise GraphConstraintViolation(
                "Adding dependency would create a circular dependency",
                GraphConstraintViolation.CYCLE,
            )

    def find_blocking_path(self, issues: Sequence[Issue], issue_id: str) -> List[Issue]:
        """Find the shortest path to the root cause of a block

        Returns the chain starting at ``issue_id`` and ending at the first
        unresolved prerequisite that is not itself blocked, or an empty list
        if nothing blocks it.
        """
        index = index_issues(issues)
        if issue_id not in index:
            return []

        visited = set()
        queue = deque([(issue_id, [])])

        while queue:
            current_id, path = queue.popleft()

            if current_id in visited:
                continue
            visited.add(current_id)

            issue = index.get(current_id)
            if issue is None:
                continue

            if issue.status == Status.CLOSED:
                continue

            if path and not self.is_blocked(issue, issues, index):
                return path + [issue]

            for dep in issue.blocking_dependencies:
                if dep.depends_on_id not in visited:
                    queue.append((dep.depends_on_id, path + [issue]))

        return []


# Global resolver instance
dependency_resolver = DependencyResolver()
