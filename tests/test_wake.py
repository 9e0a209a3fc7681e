from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from agentwatch.services.wake import WakeMultiplexer


class PumpCounter:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


@pytest.mark.asyncio
class TestWakeMultiplexer:
    async def test_poll_wakes_pump(self, tmp_path: Path, wait_for) -> None:
        pump = PumpCounter()
        wake = WakeMultiplexer(tmp_path / "t.jsonl", pump, poll_interval=0.02, native=False)
        wake.start()
        try:
            assert await wait_for(lambda: pump.calls >= 3)
        finally:
            await wake.stop()

    async def test_stop_cancels_both_sources(self, tmp_path: Path) -> None:
        path = tmp_path / "t.jsonl"
        path.write_text("")
        pump = PumpCounter()
        wake = WakeMultiplexer(path, pump, poll_interval=0.02, native=True)
        wake.start()
        await asyncio.sleep(0.05)

        await wake.stop()
        calls = pump.calls
        await asyncio.sleep(0.1)

        assert pump.calls == calls
        assert not wake.is_running

    async def test_failed_native_watch_falls_back_to_polling(
        self, tmp_path: Path, wait_for
    ) -> None:
        pump = PumpCounter()
        wake = WakeMultiplexer(tmp_path / "missing.jsonl", pump, poll_interval=0.02, native=True)
        wake.start()
        try:
            assert await wait_for(lambda: pump.calls >= 2)
        finally:
            await wake.stop()

    async def test_stop_is_idempotent_and_final(self, tmp_path: Path) -> None:
        pump = PumpCounter()
        wake = WakeMultiplexer(tmp_path / "t.jsonl", pump, poll_interval=0.02, native=False)
        wake.start()

        await wake.stop()
        await wake.stop()
        wake.start()
        await asyncio.sleep(0.06)

        assert pump.calls == 0
        assert not wake.is_running

    async def test_native_watch_wakes_without_polling(self, tmp_path: Path) -> None:
        path = tmp_path / "t.jsonl"
        path.write_text("")
        woke = asyncio.Event()

        async def pump() -> None:
            woke.set()

        wake = WakeMultiplexer(path, pump, poll_interval=60, native=True)
        wake.start()
        try:
            # Keep appending until the watcher is set up and reports a change
            for i in range(20):
                with open(path, "a") as f:
                    f.write(f'{{"n":{i}}}\n')
                try:
                    await asyncio.wait_for(woke.wait(), timeout=0.25)
                    break
                except asyncio.TimeoutError:
                    continue
            assert woke.is_set()
        finally:
            await wake.stop()

    async def test_failing_pump_keeps_polling(self, tmp_path: Path, wait_for) -> None:
        calls = 0

        async def pump() -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ValueError("bad record")

        wake = WakeMultiplexer(tmp_path / "t.jsonl", pump, poll_interval=0.02, native=False)
        wake.start()
        try:
            assert await wait_for(lambda: calls >= 3)
            assert wake.is_running
        finally:
            await wake.stop()
