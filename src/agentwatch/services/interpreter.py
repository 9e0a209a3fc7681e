from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from agentwatch.models.agent import AgentState
from agentwatch.services.event_bus import EventBus
from agentwatch.services.tool_status import format_tool_status
from agentwatch.utils.config import Config

logger = logging.getLogger(__name__)

TURN_END_SUBTYPE = "turn_duration"


def _blocks(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


class TranscriptInterpreter:
    """Turns transcript records into status events for one agent.

    State machine:
    - assistant ``tool_use``      -> active, tool started
    - assistant text only         -> waiting, after a quiet period
    - user ``tool_result``        -> tool done (reported slightly later)
    - user prompt                 -> new turn: tools cleared, active
    - system ``turn_duration``    -> waiting, immediately

    The text-only rule is a heuristic: the agent may follow text with a tool
    call in the same turn, so "waiting" is deferred and any later transition
    cancels it. The ``turn_duration`` record is authoritative.
    """

    def __init__(self, agent: AgentState, event_bus: EventBus, config: Config):
        self.agent = agent
        self.event_bus = event_bus
        self.waiting_debounce = config.waiting_debounce
        self.tool_done_delay = config.tool_done_delay

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle_line(self, line: str) -> None:
        """Apply one transcript line. Malformed lines are dropped."""
        if self.agent.closed:
            return
        try:
            record = json.loads(line)
        except (ValueError, RecursionError):
            logger.debug("Agent %d: skipping malformed line", self.agent.id)
            return
        if not isinstance(record, dict):
            return

        rec_type = record.get("type")
        message = record.get("message")
        content = message.get("content") if isinstance(message, dict) else None

        if rec_type == "assistant" and isinstance(content, list):
            await self._on_assistant(_blocks(content))
        elif rec_type == "user":
            await self._on_user(content)
        elif rec_type == "system" and record.get("subtype") == TURN_END_SUBTYPE:
            self.cancel_wait_timer()
            await self._mark_waiting()

    def cancel_wait_timer(self) -> None:
        task = self.agent.wait_task
        self.agent.wait_task = None
        if task is not None and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Record handlers
    # ------------------------------------------------------------------

    async def _on_assistant(self, blocks: list[dict[str, Any]]) -> None:
        agent = self.agent
        tool_uses = [b for b in blocks if b.get("type") == "tool_use"]

        if not tool_uses:
            if any(b.get("type") == "text" for b in blocks):
                self._start_wait_timer()
            return

        self.cancel_wait_timer()
        agent.waiting = False
        await self.event_bus.agent_status(agent.id, "active")

        for block in tool_uses:
            tool_id = block.get("id")
            if not tool_id or not isinstance(tool_id, str):
                continue
            if tool_id in agent.active_tools:
                continue
            status = format_tool_status(block.get("name"), block.get("input"))
            logger.debug("Agent %d tool start: %s %s", agent.id, tool_id, status)
            agent.active_tools[tool_id] = status
            await self.event_bus.agent_tool_start(agent.id, tool_id, status)

    async def _on_user(self, content: Any) -> None:
        if isinstance(content, list):
            results = [b for b in _blocks(content) if b.get("type") == "tool_result"]
            if not results:
                await self._start_new_turn()
                return
            agent = self.agent
            finished = False
            for block in results:
                tool_id = block.get("tool_use_id")
                if not isinstance(tool_id, str) or tool_id not in agent.active_tools:
                    continue
                logger.debug("Agent %d tool done: %s", agent.id, tool_id)
                del agent.active_tools[tool_id]
                self._schedule_tool_done(tool_id)
                finished = True
            # The turn ended while the last tool was still running
            if finished and agent.waiting and not agent.active_tools and agent.wait_task is None:
                await self.event_bus.agent_status(agent.id, "waiting")
        elif isinstance(content, str) and content.strip():
            await self._start_new_turn()

    async def _start_new_turn(self) -> None:
        agent = self.agent
        self.cancel_wait_timer()
        for task in list(agent.tool_done_tasks):
            task.cancel()
        agent.tool_done_tasks.clear()
        agent.active_tools.clear()
        agent.waiting = False
        await self.event_bus.agent_tools_clear(agent.id)
        await self.event_bus.agent_status(agent.id, "active")

    async def _mark_waiting(self) -> None:
        self.agent.waiting = True
        # A running tool keeps the agent active whatever the flag says
        if not self.agent.active_tools:
            await self.event_bus.agent_status(self.agent.id, "waiting")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _start_wait_timer(self) -> None:
        self.cancel_wait_timer()
        self.agent.wait_task = asyncio.create_task(self._wait_then_mark_waiting())

    async def _wait_then_mark_waiting(self) -> None:
        await asyncio.sleep(self.waiting_debounce)
        agent = self.agent
        if agent.closed or agent.wait_task is not asyncio.current_task():
            return
        # Detach before publishing so a later cancel cannot interrupt the emit
        agent.wait_task = None
        await self._mark_waiting()

    def _schedule_tool_done(self, tool_id: str) -> None:
        task = asyncio.create_task(self._emit_tool_done(tool_id))
        self.agent.tool_done_tasks.add(task)
        task.add_done_callback(self.agent.tool_done_tasks.discard)

    async def _emit_tool_done(self, tool_id: str) -> None:
        # Give observers a chance to render the start before it disappears
        await asyncio.sleep(self.tool_done_delay)
        if self.agent.closed:
            return
        self.agent.tool_done_tasks.discard(asyncio.current_task())  # type: ignore[arg-type]
        await self.event_bus.agent_tool_done(self.agent.id, tool_id)
