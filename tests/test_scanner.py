from __future__ import annotations

import os
import threading
import time
from pathlib import Path

import pytest

from agentwatch.models.agent import AgentState
from agentwatch.models.host import SessionHost
from agentwatch.services.agent_registry import AgentRegistry
from agentwatch.services.scanner import DirectoryScanner


def _write(path: Path, age: float = 0) -> Path:
    path.write_text("")
    if age:
        then = time.time() - age
        os.utime(path, (then, then))
    return path


def _scanner(
    host: SessionHost,
    transcript_dir: Path,
    registry: AgentRegistry,
    max_age_secs: float = 60,
) -> DirectoryScanner:
    async def adopt(h: SessionHost, path: Path, directory: Path) -> AgentState | None:
        return registry.create(h, path, directory)

    return DirectoryScanner(
        host, transcript_dir, registry.claims, adopt, scan_interval=0.02, max_age_secs=max_age_secs
    )


@pytest.mark.asyncio
class TestDirectoryScanner:
    async def test_adopts_recent_files(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        _write(tmp_path / "a.jsonl")
        _write(tmp_path / "notes.txt")

        adopted = await _scanner(host, tmp_path, registry).scan_once()

        assert [a.transcript_path.name for a in adopted] == ["a.jsonl"]

    async def test_skips_old_files(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        _write(tmp_path / "old.jsonl", age=3600)

        assert await _scanner(host, tmp_path, registry).scan_once() == []

    async def test_unlimited_age_adopts_old_files(
        self, tmp_path: Path, host: SessionHost
    ) -> None:
        registry = AgentRegistry()
        _write(tmp_path / "old.jsonl", age=3600)

        adopted = await _scanner(host, tmp_path, registry, max_age_secs=0).scan_once()
        assert len(adopted) == 1

    async def test_session_file_adopted_regardless_of_age(
        self, tmp_path: Path
    ) -> None:
        registry = AgentRegistry()
        host = SessionHost(name="Claude Code #1", cwd="/work", session_id="abc-123")
        _write(tmp_path / "abc-123.jsonl", age=3600)
        _write(tmp_path / "other-old.jsonl", age=3600)

        adopted = await _scanner(host, tmp_path, registry).scan_once()

        assert [a.transcript_path.name for a in adopted] == ["abc-123.jsonl"]

    async def test_session_file_not_adopted_twice_in_one_tick(self, tmp_path: Path) -> None:
        registry = AgentRegistry()
        host = SessionHost(name="Claude Code #1", cwd="/work", session_id="abc-123")
        _write(tmp_path / "abc-123.jsonl")

        adopted = await _scanner(host, tmp_path, registry).scan_once()

        assert len(adopted) == 1
        assert len(registry) == 1

    async def test_claimed_files_are_skipped(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        scanner = _scanner(host, tmp_path, registry)
        _write(tmp_path / "a.jsonl")

        assert len(await scanner.scan_once()) == 1
        assert await scanner.scan_once() == []

    async def test_keeps_finding_new_files(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        scanner = _scanner(host, tmp_path, registry)
        _write(tmp_path / "first.jsonl")
        await scanner.scan_once()

        _write(tmp_path / "after-clear.jsonl")
        adopted = await scanner.scan_once()

        assert [a.transcript_path.name for a in adopted] == ["after-clear.jsonl"]
        assert registry.ids() == [1, 2]

    async def test_competing_hosts_never_share_a_file(self, tmp_path: Path) -> None:
        registry = AgentRegistry()
        hosts = [SessionHost(name=f"Claude Code #{i}", cwd="/work") for i in range(1, 5)]
        scanners = [_scanner(h, tmp_path, registry) for h in hosts]
        for name in ("a", "b", "c"):
            _write(tmp_path / f"{name}.jsonl")

        for _ in range(3):
            for scanner in scanners:
                await scanner.scan_once()

        paths = [agent.transcript_path for agent in registry.agents()]
        assert len(paths) == 3
        assert len(set(paths)) == 3

    async def test_missing_directory_is_retried(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        transcript_dir = tmp_path / "not-yet"
        scanner = _scanner(host, transcript_dir, registry)

        assert await scanner.scan_once() == []

        transcript_dir.mkdir()
        _write(transcript_dir / "a.jsonl")
        assert len(await scanner.scan_once()) == 1

    async def test_session_id_can_be_set_later(self, tmp_path: Path, host: SessionHost) -> None:
        registry = AgentRegistry()
        scanner = _scanner(host, tmp_path, registry)
        _write(tmp_path / "late.jsonl", age=3600)
        assert await scanner.scan_once() == []

        scanner.set_session_id("late")
        assert len(await scanner.scan_once()) == 1

    async def test_background_loop(
        self, tmp_path: Path, host: SessionHost, wait_for
    ) -> None:
        registry = AgentRegistry()
        scanner = _scanner(host, tmp_path, registry)
        scanner.start()
        try:
            assert scanner.is_running
            _write(tmp_path / "a.jsonl")
            assert await wait_for(lambda: len(registry) == 1)
        finally:
            await scanner.stop()
        assert not scanner.is_running

    async def test_listing_runs_off_the_event_loop(
        self, tmp_path: Path, host: SessionHost
    ) -> None:
        registry = AgentRegistry()
        _write(tmp_path / "a.jsonl")
        scanner = _scanner(host, tmp_path, registry)
        listed_on: list[int] = []
        list_candidates = scanner._list_candidates

        def recording_list():
            listed_on.append(threading.get_ident())
            return list_candidates()

        scanner._list_candidates = recording_list  # type: ignore[method-assign]

        assert len(await scanner.scan_once()) == 1
        assert listed_on and listed_on[0] != threading.get_ident()
