"""Shared test helpers: an event recorder and transcript record builders."""

from __future__ import annotations

import json
from typing import Any


class EventRecorder:
    """Collects every event published on a bus."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def __call__(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]

    def of(self, event_type: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]

    def statuses(self, agent_id: int | None = None) -> list[str]:
        return [
            e["status"]
            for e in self.of("agent_status")
            if agent_id is None or e["id"] == agent_id
        ]


def jsonl(record: dict[str, Any]) -> str:
    return json.dumps(record) + "\n"


def tool_use(tool_id: str, name: str = "Read", **tool_input: Any) -> dict[str, Any]:
    return {
        "type": "assistant",
        "message": {
            "content": [
                {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input}
            ]
        },
    }


def tool_result(*tool_ids: str) -> dict[str, Any]:
    return {
        "type": "user",
        "message": {
            "content": [
                {"type": "tool_result", "tool_use_id": tool_id, "content": "ok"}
                for tool_id in tool_ids
            ]
        },
    }


def assistant_text(text: str = "Done.") -> dict[str, Any]:
    return {"type": "assistant", "message": {"content": [{"type": "text", "text": text}]}}


def user_prompt(text: str = "Please continue") -> dict[str, Any]:
    return {"type": "user", "message": {"role": "user", "content": text}}


def turn_end() -> dict[str, Any]:
    return {"type": "system", "subtype": "turn_duration", "durationMs": 1200}
