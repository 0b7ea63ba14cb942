"""Test configuration and fixtures"""

import asyncio
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from beads_sync.models import Dependency, DependencyType, Issue, Status

BASE_TIME = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_issue(issue_id, title=None, status=Status.OPEN, priority=2, minutes=0, deps=(), **fields):
    """Build an issue; ``deps`` holds depends_on ids or (id, type) pairs"""
    created = BASE_TIME + timedelta(minutes=minutes)
    dependencies = []
    for dep in deps:
        depends_on_id, dep_type = dep if isinstance(dep, tuple) else (dep, DependencyType.BLOCKS)
        dependencies.append(Dependency(
            issue_id=issue_id,
            depends_on_id=depends_on_id,
            type=dep_type,
            created_at=created,
        ))
    return Issue(
        id=issue_id,
        title=title or f"Issue {issue_id}",
        status=status,
        priority=priority,
        created_at=created,
        updated_at=created,
        dependencies=dependencies,
        **fields,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation"""
    temp_dir = tempfile.mkdtemp()
    original_cwd = os.getcwd()
    os.chdir(temp_dir)

    yield Path(temp_dir)

    os.chdir(original_cwd)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def jsonl_path(temp_dir):
    """Path of the issues file inside a clean .beads directory"""
    beads_dir = temp_dir / ".beads"
    beads_dir.mkdir(exist_ok=True)
    return beads_dir / "issues.jsonl"


@pytest.fixture
def sample_issues():
    """Design -> frontend -> tests chain plus an unrelated closed issue

    BD-2 is blocked by BD-1, BD-3 is blocked by BD-2.
    """
    return [
        make_issue("BD-1", "Design system", priority=1, minutes=0),
        make_issue("BD-2", "Implement frontend", priority=1, minutes=1, deps=["BD-1"]),
        make_issue("BD-3", "Write tests", priority=2, minutes=2, deps=["BD-2"]),
        make_issue("BD-4", "Old chore", status=Status.CLOSED, priority=0, minutes=3),
    ]


HOLD = object()  # keep the connection open after the scripted frames


class ScriptedChannels:
    """Channel factory; each connection plays the next script

    A script is either an exception raised on open or a list of frames.
    Lists ending in HOLD stay open until cancelled, others close normally.
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.opened = []
        self.drained = asyncio.Event()

    @asynccontextmanager
    async def connect(self, url):
        self.opened.append(url)
        script = self.scripts.pop(0) if self.scripts else [HOLD]
        if isinstance(script, Exception):
            raise script
        yield self._frames(script)

    async def _frames(self, script):
        for frame in script:
            if frame is HOLD:
                self.drained.set()
                await asyncio.Event().wait()
            yield frame
        self.drained.set()


async def wait_until(predicate, timeout=1.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(poll(), timeout)
