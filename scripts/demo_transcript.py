#!/usr/bin/env python3
"""Demo: watch a simulated Claude Code session.

Writes a fake transcript the way Claude Code does (one JSON record per line,
appended over time, sometimes in pieces) into a temporary projects root and
prints the status events agentwatch derives from it.
"""

import asyncio
import json
import sys
import tempfile
import uuid
from pathlib import Path

# Add src to path so we can import without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from agentwatch.models.host import SessionHost
from agentwatch.services.monitor import TranscriptMonitor
from agentwatch.utils.config import Config

CWD = "/demo/project"

SCRIPT = [
    {"type": "user", "message": {"role": "user", "content": "Fix the failing test"}},
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "Let me look."}]}},
    {
        "type": "assistant",
        "message": {
            "content": [
                {"type": "tool_use", "id": "toolu_1", "name": "Read",
                 "input": {"file_path": "/demo/project/tests/test_app.py"}},
                {"type": "tool_use", "id": "toolu_2", "name": "Bash",
                 "input": {"command": "pytest tests/test_app.py -x --no-header -q"}},
            ]
        },
    },
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "toolu_1", "content": "..."}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "toolu_2", "content": "1 failed"}]}},
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "Fixed it."}]}},
    {"type": "system", "subtype": "turn_duration", "durationMs": 5400},
]


async def write_session(path: Path) -> None:
    """Append the scripted records, splitting every other line in two."""
    for i, record in enumerate(SCRIPT):
        line = json.dumps(record) + "\n"
        with open(path, "a", encoding="utf-8") as f:
            if i % 2:
                f.write(line[: len(line) // 2])
                f.flush()
                await asyncio.sleep(0.3)
                f.write(line[len(line) // 2 :])
            else:
                f.write(line)
        await asyncio.sleep(0.8)


async def main():
    with tempfile.TemporaryDirectory() as root:
        config = Config(projects_root=Path(root), native_watch=True)
        monitor = TranscriptMonitor(config)

        async def show(event: dict) -> None:
            fields = {k: v for k, v in event.items() if k not in ("type", "timestamp")}
            print(f"{event['type']:<18} {fields}")

        monitor.event_bus.subscribe("*", show)

        session_id = str(uuid.uuid4())
        host = SessionHost(name=monitor.next_host_name(), cwd=CWD)
        monitor.host_launched_with_identifier(host, session_id)

        transcript_dir = monitor.transcript_dir_for(CWD)
        transcript_dir.mkdir(parents=True)
        print("=" * 60)
        print(f"agentwatch demo: {host.name} -> {transcript_dir}")
        print("=" * 60)

        await write_session(transcript_dir / f"{session_id}.jsonl")
        await asyncio.sleep(config.waiting_debounce + 0.5)

        print("\n--- resync snapshot ---")
        await monitor.existing_agents()

        await monitor.host_closed(host)
        await monitor.stop()


if __name__ == "__main__":
    asyncio.run(main())
