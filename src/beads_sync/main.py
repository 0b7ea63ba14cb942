"""FastAPI application for the reference Backend"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import router as dependencies_router
from .api.issues import router as issues_router
from .api.push import ConnectionManager
from .api.push import router as push_router
from .api.work import router as work_router
from .config import SyncConfig, get_project_config
from .errors import SyncError
from .models import PushMessage
from .storage.issue_repository import IssueRepository

logger = logging.getLogger(__name__)

WATCH_INTERVAL = 1.0  # seconds between checks of the issues file


async def watch_external_changes(app: FastAPI, interval: float = WATCH_INTERVAL):
    """Reload and tell clients to refresh when another process edits the issues file"""
    repository: IssueRepository = app.state.repository
    connections: ConnectionManager = app.state.connections
    while True:
        await asyncio.sleep(interval)
        if not repository.detect_external_change():
            continue
        logger.info("Detected external change to %s", repository.path)
        try:
            repository.reload()
        except (OSError, SyncError) as e:
            # A half-written file is retried on the next tick
            logger.warning("Could not reload %s: %s", repository.path, e)
            continue
        await connections.broadcast(PushMessage.refresh())


def create_app(config: Optional[SyncConfig] = None, watch_interval: Optional[float] = WATCH_INTERVAL) -> FastAPI:
    """Build the Backend app; ``watch_interval=None`` disables the file watcher"""
    config = config or get_project_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        watcher = None
        if watch_interval:
            watcher = asyncio.create_task(watch_external_changes(app, watch_interval))
            logger.info("Watching for external changes to %s", config.jsonl_path)
        try:
            yield
        finally:
            if watcher is not None:
                watcher.cancel()
                try:
                    await watcher
                except asyncio.CancelledError:
                    pass

    app = FastAPI(
        title="beads-sync Backend",
        description="Reference Backend for the beads issue sync client",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.repository = IssueRepository(config.jsonl_path, id_prefix=config.id_prefix)
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(issues_router, prefix="/api/issues", tags=["issues"])
    app.include_router(dependencies_router, prefix="/api/issues", tags=["dependencies"])
    app.include_router(work_router, prefix="/api", tags=["work"])
    app.include_router(push_router, tags=["push"])

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("beads_sync.main:create_app", factory=True, host="127.0.0.1", port=3001)
