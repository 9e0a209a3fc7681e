from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable

import pytest

from agentwatch.models.agent import AgentState
from agentwatch.models.host import SessionHost
from agentwatch.services.event_bus import EventBus
from agentwatch.utils.config import Config
from tests.helpers import EventRecorder


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        projects_root=tmp_path / "projects",
        session_max_age_secs=180,
        scan_interval=0.02,
        poll_interval=0.02,
        waiting_debounce=0.1,
        tool_done_delay=0.01,
        native_watch=False,
        host_name_pattern=r"^Claude Code #(\d+)$",
        log_level="DEBUG",
    )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    rec = EventRecorder()
    event_bus.subscribe("*", rec)
    return rec


@pytest.fixture
def host() -> SessionHost:
    return SessionHost(name="Claude Code #1", cwd="/work/repo")


@pytest.fixture
def agent(tmp_path: Path, host: SessionHost) -> AgentState:
    transcript_dir = tmp_path / "transcripts"
    transcript_dir.mkdir()
    path = transcript_dir / "session.jsonl"
    path.touch()
    return AgentState(id=1, host=host, transcript_dir=transcript_dir, transcript_path=path)


@pytest.fixture
def wait_for() -> Callable[..., Awaitable[bool]]:
    async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                return False
            await asyncio.sleep(0.01)
        return True

    return _wait_for
