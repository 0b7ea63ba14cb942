"""In-process issue store"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..models import Issue, IssueFilter, IssuePatch
from .dependency_resolver import dependency_resolver

logger = logging.getLogger(__name__)

Listener = Callable[["IssueStore"], None]


class IssueStore:
    """Single owner of the issue collection and the active filters

    All operations are synchronous and never block. Records are replaced,
    never mutated in place, so a snapshot taken before a mutation stays valid.
    """

    def __init__(self, issues: Optional[Iterable[Issue]] = None):
        self._issues: Dict[str, Issue] = {}
        self._filters = IssueFilter()
        self._listeners: List[Listener] = []
        self.error: Optional[str] = None
        self.is_loading = False
        if issues is not None:
            self.replace_all(issues)

    def __len__(self):
        return len(self._issues)

    def __contains__(self, issue_id: str) -> bool:
        return issue_id in self._issues

    # Queries

    def list(self) -> List[Issue]:
        """Current snapshot in insertion order"""
        return list(self._issues.values())

    def get(self, issue_id: str) -> Optional[Issue]:
        return self._issues.get(issue_id)

    def ids(self) -> List[str]:
        return list(self._issues)

    def filtered(self) -> List[Issue]:
        """Snapshot restricted to the active filters"""
        return [issue for issue in self._issues.values() if self._filters.matches(issue)]

    def dependents(self, issue_id: str) -> List[Issue]:
        """Issues that depend on ``issue_id``, recomputed on every call"""
        return dependency_resolver.get_dependents(self._issues.values(), issue_id)

    @property
    def filters(self) -> IssueFilter:
        return self._filters

    # Mutations

    def replace_all(self, issues: Iterable[Issue]):
        """Full replacement after a fresh load"""
        self._issues = {issue.id: issue for issue in issues}
        self._notify()

    def upsert(self, issue: Issue):
        """Insert if the id is unknown, otherwise overwrite in place

        New records go to the front of the display order.
        """
        if issue.id in self._issues:
            self._issues[issue.id] = issue
        else:
            self._issues = {issue.id: issue, **self._issues}
        self._notify()

    def patch(self, issue_id: str, patch: IssuePatch) -> Optional[Issue]:
        """Apply a partial update; unknown ids are ignored

        A patch can race a close or delete elsewhere, so a missing id is not
        an error.
        """
        current = self._issues.get(issue_id)
        if current is None:
            logger.debug("Ignoring patch for unknown issue %s", issue_id)
            return None

        updated = current.with_patch(patch)
        self._issues[issue_id] = updated
        self._notify()
        return updated

    def remove(self, issue_id: str) -> Optional[Issue]:
        """Drop a record; only used to undo tentative inserts and legacy deletes"""
        removed = self._issues.pop(issue_id, None)
        if removed is not None:
            self._notify()
        return removed

    # Filters

    def set_filters(self, **partial):
        """Merge ``partial`` into the active filters"""
        merged = {**self._filters.model_dump(exclude_none=True), **partial}
        self._filters = IssueFilter.model_validate(merged)
        self._notify()

    def clear_filters(self):
        self._filters = IssueFilter()
        self._notify()

    # Current error

    def set_error(self, error):
        """Retain the most recent error; earlier ones are replaced, not queued"""
        self.error = str(error)
        self._notify()

    def clear_error(self):
        if self.error is not None:
            self.error = None
            self._notify()

    # Observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)
