"""Wiring of store, Backend client, mutator and reconciler"""

import logging
from typing import List, Optional

import httpx

from ..config import SyncConfig
from ..errors import SyncError
from ..models import Issue
from ..storage import jsonl
from ..storage.dependency_resolver import dependency_resolver
from ..storage.store import IssueStore
from .client import BackendClient
from .mutator import OptimisticMutator
from .reconciler import ChannelFactory, PushReconciler, websocket_channel

logger = logging.getLogger(__name__)


class SyncSession:
    """One client's view of the issue collection

    Usage::

        async with SyncSession(config) as session:
            await session.mutator.update_status("BD-3", "in_progress")
            print(session.ready_work())
    """

    def __init__(
        self,
        config: SyncConfig,
        store: Optional[IssueStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connect: ChannelFactory = websocket_channel,
    ):
        self.config = config
        self.store = store or IssueStore()
        self.client = BackendClient(config.api_url, client=http_client, timeout=config.request_timeout)
        self.mutator = OptimisticMutator(
            self.store,
            self.client,
            tentative_prefix=config.tentative_prefix,
            actor=config.actor,
        )
        self.reconciler = PushReconciler(
            self.store,
            reload=self.load,
            url=config.push_url(),
            connect=connect,
            reconnect_delay=config.reconnect_delay,
        )

    async def __aenter__(self) -> "SyncSession":
        await self.load()
        await self.reconciler.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self.reconciler.stop()
        await self.client.aclose()

    async def load(self) -> List[Issue]:
        """Fetch the full collection and replace the store's contents

        When the Backend cannot serve the collection, whether unreachable or
        answering with an error, the JSONL snapshot is loaded instead, once,
        with no incremental sync. If that fails too the Backend error is kept
        on the store.
        """
        self.store.is_loading = True
        self.store.clear_error()
        try:
            issues = await self.client.list_issues()
        except SyncError as e:
            logger.warning("Backend load failed (%s), loading %s", e, self.config.jsonl_path)
            try:
                issues = jsonl.load_issues(self.config.jsonl_path)
            except (OSError, SyncError) as fallback_error:
                logger.error("Fallback load failed: %s", fallback_error)
                self.store.set_error(e)
                return self.store.list()
        finally:
            self.store.is_loading = False

        self.store.replace_all(issues)
        return issues

    def ready_work(self, limit: Optional[int] = None) -> List[Issue]:
        return dependency_resolver.get_ready_work(self.store.list(), limit=limit)

    def blocked(self) -> List[Issue]:
        return dependency_resolver.get_blocked_issues(self.store.list())
