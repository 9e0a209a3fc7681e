from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]

AGENT_CREATED = "agent_created"
AGENT_CLOSED = "agent_closed"
AGENT_STATUS = "agent_status"
AGENT_TOOL_START = "agent_tool_start"
AGENT_TOOL_DONE = "agent_tool_done"
AGENT_TOOLS_CLEAR = "agent_tools_clear"
EXISTING_AGENTS = "existing_agents"

EVENT_TYPES = (
    AGENT_CREATED,
    AGENT_CLOSED,
    AGENT_STATUS,
    AGENT_TOOL_START,
    AGENT_TOOL_DONE,
    AGENT_TOOLS_CLEAR,
    EXISTING_AGENTS,
)


class EventBus:
    """Async pub/sub channel carrying agent status events to observers.

    Observers subscribe to a specific event type (or "*" for all events)
    and receive dicts with the event data. A failing observer is logged and
    never affects the others or the publisher.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def unsubscribe(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        """Fire an event to all matching listeners."""
        event = {
            "type": event_type,
            "timestamp": datetime.now().isoformat(),
            **data,
        }

        targets: list[Listener] = []
        targets.extend(self._listeners.get(event_type, []))
        targets.extend(self._listeners.get("*", []))

        if not targets:
            return

        results = await asyncio.gather(
            *(listener(event) for listener in targets),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error("Event listener error for %s: %s", event_type, result)

    # ------------------------------------------------------------------
    # Agent events
    # ------------------------------------------------------------------

    async def agent_created(self, agent_id: int, host: str, transcript_path: str) -> None:
        await self.publish(
            AGENT_CREATED,
            {"id": agent_id, "host": host, "transcript_path": transcript_path},
        )

    async def agent_closed(self, agent_id: int) -> None:
        await self.publish(AGENT_CLOSED, {"id": agent_id})

    async def agent_status(self, agent_id: int, status: str) -> None:
        await self.publish(AGENT_STATUS, {"id": agent_id, "status": status})

    async def agent_tool_start(self, agent_id: int, tool_id: str, status: str) -> None:
        await self.publish(
            AGENT_TOOL_START, {"id": agent_id, "tool_id": tool_id, "status": status}
        )

    async def agent_tool_done(self, agent_id: int, tool_id: str) -> None:
        await self.publish(AGENT_TOOL_DONE, {"id": agent_id, "tool_id": tool_id})

    async def agent_tools_clear(self, agent_id: int) -> None:
        await self.publish(AGENT_TOOLS_CLEAR, {"id": agent_id})

    async def existing_agents(self, agent_ids: list[int]) -> None:
        await self.publish(EXISTING_AGENTS, {"agents": sorted(agent_ids)})


class EventLog:
    """Bounded, sequence-numbered record of published events.

    Subscribe an instance with ``event_bus.subscribe("*", log)`` so that
    pull-based clients (the MCP tools) can read the feed incrementally.
    """

    def __init__(self, maxlen: int = 1000) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = 0

    async def __call__(self, event: dict[str, Any]) -> None:
        self._seq += 1
        self._events.append({"seq": self._seq, **event})

    @property
    def last_seq(self) -> int:
        return self._seq

    def since(self, seq: int = 0, limit: int | None = None) -> list[dict[str, Any]]:
        """Events with a sequence number above *seq*, oldest first."""
        events = [event for event in self._events if event["seq"] > seq]
        if limit is not None:
            events = events[:limit]
        return events
