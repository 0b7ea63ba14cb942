"""beads-sync CLI entry point"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import CONFIG_FILE, SyncConfig, get_project_config, save_project_config
from .errors import SyncError
from .models import Issue
from .storage import jsonl
from .storage.dependency_resolver import dependency_resolver
from .storage.id_generator import generate_issue_id
from .sync.session import SyncSession

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """Log to stderr under the beads_sync logger"""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("beads_sync")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def init_project():
    """Write .beads/sync.json with the current settings"""
    config = get_project_config()
    save_project_config(config)
    print(f"Initialized beads-sync config in {CONFIG_FILE.absolute()}")


def serve(host: str, port: int, reload: bool = False):
    """Start the reference Backend"""
    import uvicorn

    uvicorn.run(
        "beads_sync.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def format_issue(issue: Issue) -> str:
    return f"{issue.id:<16} P{issue.priority}  {issue.status.value:<12} {issue.title}"


async def _fetch_issues(config: SyncConfig) -> List[Issue]:
    session = SyncSession(config)
    try:
        await session.load()
        if session.store.error:
            raise SyncError(session.store.error)
        return session.store.list()
    finally:
        await session.close()


def load_issues(config: SyncConfig, offline: bool) -> List[Issue]:
    if offline:
        return jsonl.load_issues(config.jsonl_path)
    return asyncio.run(_fetch_issues(config))


def show_ready(config: SyncConfig, offline: bool, limit: Optional[int]):
    issues = load_issues(config, offline)
    ready = dependency_resolver.get_ready_work(issues, limit=limit)
    if not ready:
        print("No ready work available. All open issues are blocked or no issues exist.")
        return
    print(f"{len(ready)} unblocked {'issue' if len(ready) == 1 else 'issues'} available to work on")
    for issue in ready:
        print(format_issue(issue))


def show_blocked(config: SyncConfig, offline: bool):
    issues = load_issues(config, offline)
    blocked = dependency_resolver.get_blocked_issues(issues)
    if not blocked:
        print("No blocked issues.")
        return
    for issue in blocked:
        chain = dependency_resolver.find_blocking_path(issues, issue.id)
        cause = f"  <- {chain[-1].id}" if chain else ""
        print(format_issue(issue) + cause)


def show_next_id(config: SyncConfig, offline: bool):
    issues = load_issues(config, offline)
    print(generate_issue_id(issues, prefix=config.id_prefix))


async def watch(config: SyncConfig):
    """Stay subscribed and print the store whenever it changes"""

    def on_change(store):
        logger.info("%d issues, %d ready", len(store), len(dependency_resolver.get_ready_work(store.list())))

    async with SyncSession(config) as session:
        session.store.subscribe(on_change)
        on_change(session.store)
        await asyncio.Event().wait()


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="beads-sync - issue state synchronization")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Init command
    subparsers.add_parser("init", help="Write .beads/sync.json")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the reference Backend")
    serve_parser.add_argument("--host", default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # Query commands
    ready_parser = subparsers.add_parser("ready", help="List ready work")
    ready_parser.add_argument("--limit", type=int, default=None)
    blocked_parser = subparsers.add_parser("blocked", help="List blocked issues")
    next_id_parser = subparsers.add_parser("next-id", help="Print the next issue id")
    for query_parser in (ready_parser, blocked_parser, next_id_parser):
        query_parser.add_argument("--offline", action="store_true", help="Read the JSONL file instead of the Backend")

    # Watch command
    subparsers.add_parser("watch", help="Follow the push channel")

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = get_project_config()
        if args.command == "init":
            init_project()
        elif args.command == "serve":
            serve(args.host or config.host, args.port or config.port, args.reload)
        elif args.command == "ready":
            show_ready(config, args.offline, args.limit)
        elif args.command == "blocked":
            show_blocked(config, args.offline)
        elif args.command == "next-id":
            show_next_id(config, args.offline)
        elif args.command == "watch":
            asyncio.run(watch(config))
        else:
            parser.print_help()
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
