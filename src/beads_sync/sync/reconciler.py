"""Push channel subscription and reconciliation into the store"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Awaitable, Callable, Optional

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import WebSocketException

from ..errors import ChannelDisconnect, SyncError, ValidationFailure
from ..models import (
    ISSUE_CREATED,
    ISSUE_DELETED,
    ISSUE_UPDATED,
    ISSUES_REFRESH,
    PushMessage,
    decode_push_message,
)
from ..storage.store import IssueStore

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[str], AsyncContextManager[AsyncIterator[Any]]]
Reload = Callable[[], Awaitable[Any]]


@asynccontextmanager
async def websocket_channel(url: str):
    """Open the Backend's WebSocket; iterating it yields raw text frames

    Transport errors, while opening or while reading, surface as
    ChannelDisconnect.
    """
    try:
        async with websocket_connect(url) as websocket:
            yield websocket
    except (OSError, WebSocketException) as e:
        raise ChannelDisconnect(f"Push channel {url} closed: {e}") from e


class PushReconciler:
    """Merges push events into the store

    Frames read from the channel are decoded and put on a queue; a separate
    consumer task drains the queue in order and applies each message. On
    channel loss a reconnect is scheduled after ``reconnect_delay`` seconds,
    for as long as the reconciler runs. Only one subscription is live at a
    time.
    """

    def __init__(
        self,
        store: IssueStore,
        reload: Reload,
        url: str,
        connect: ChannelFactory = websocket_channel,
        reconnect_delay: float = 5.0,
    ):
        self.store = store
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._reload = reload
        self._open_channel = connect
        self._queue: "asyncio.Queue[PushMessage]" = asyncio.Queue()
        self._channel_task: Optional[asyncio.Task] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._running = False
        self.connected = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    async def start(self):
        """Begin consuming and open the first subscription"""
        if self._running:
            return
        self._running = True
        self._consumer_task = asyncio.create_task(self._consume(), name="push-consumer")
        self.connect()

    async def stop(self):
        """Cancel the subscription, the consumer and any pending reconnect"""
        self._running = False
        self._cancel_reconnect()
        for task in (self._channel_task, self._consumer_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._channel_task = None
        self._consumer_task = None
        self.connected = False

    def connect(self):
        """Open a subscription unless one is already live

        A new connection supersedes any scheduled reconnect.
        """
        self._cancel_reconnect()
        if self._channel_task is not None and not self._channel_task.done():
            return
        self._channel_task = asyncio.create_task(self._subscribe(), name="push-channel")

    async def join(self):
        """Wait until every message received so far has been applied"""
        await self._queue.join()

    async def _subscribe(self):
        try:
            async with self._open_channel(self.url) as channel:
                self._cancel_reconnect()
                self.connected = True
                logger.info("Push channel connected to %s", self.url)
                async for raw in channel:
                    self._enqueue(raw)
            logger.info("Push channel closed")
        except asyncio.CancelledError:
            raise
        except ChannelDisconnect as e:
            logger.warning("Push channel lost: %s", e)
        except Exception:
            # Degrade to no live sync; the store stays usable
            logger.exception("Unexpected push channel failure")
        finally:
            self.connected = False

        if self._running:
            self._schedule_reconnect()

    def _schedule_reconnect(self):
        self._cancel_reconnect()
        logger.info("Reconnecting push channel in %.1fs", self.reconnect_delay)
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._reconnect)

    def _reconnect(self):
        self._reconnect_handle = None
        if self._running:
            self.connect()

    def _cancel_reconnect(self):
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _enqueue(self, raw: Any):
        try:
            message = decode_push_message(raw)
        except ValidationFailure as e:
            logger.warning("Dropping push message: %s", e)
            return
        self._queue.put_nowait(message)

    async def _consume(self):
        while True:
            message = await self._queue.get()
            try:
                await self.apply(message)
            except SyncError as e:
                logger.warning("Could not apply %s: %s", message.type, e)
            except Exception:
                logger.exception("Failed to apply %s", message.type)
            finally:
                self._queue.task_done()

    async def apply(self, message: PushMessage):
        """Apply one push message to the store

        created and updated carry the full authoritative record, which
        replaces whatever the store holds; applying the same message twice
        leaves the store unchanged.
        """
        if message.type in (ISSUE_CREATED, ISSUE_UPDATED):
            self.store.upsert(message.issue())
        elif message.type == ISSUE_DELETED:
            # Legacy: closing never deletes, but old Backends still send this
            self.store.remove(message.issue_id)
        elif message.type == ISSUES_REFRESH:
            logger.info("External change detected, reloading issues")
            await self._reload()
