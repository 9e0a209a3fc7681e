from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from agentwatch.models.host import SessionHost

if TYPE_CHECKING:
    from agentwatch.services.wake import WakeMultiplexer

AgentStatus = Literal["active", "waiting"]


@dataclass(eq=False)
class AgentState:
    """Live state of one agent, bound to exactly one claimed transcript."""

    id: int
    host: SessionHost
    transcript_dir: Path
    transcript_path: Path
    read_offset: int = 0
    partial_line: bytes = b""
    active_tools: dict[str, str] = field(default_factory=dict)  # tool id -> status text
    waiting: bool = False
    closed: bool = False

    # Cancellable handles owned by this agent
    wait_task: asyncio.Task[None] | None = None
    tool_done_tasks: set[asyncio.Task[None]] = field(default_factory=set)
    wake: WakeMultiplexer | None = None
    pump_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def status(self) -> AgentStatus:
        if self.active_tools:
            return "active"
        return "waiting" if self.waiting else "active"

    def to_info(self) -> AgentInfo:
        return AgentInfo(
            id=self.id,
            host_name=self.host.name,
            transcript_path=str(self.transcript_path),
            status=self.status,
            waiting=self.waiting,
            active_tools=[
                ToolActivity(tool_id=tool_id, status=text)
                for tool_id, text in self.active_tools.items()
            ],
            read_offset=self.read_offset,
        )


class ToolActivity(BaseModel):
    """A tool invocation that has started but not yet returned a result."""

    tool_id: str
    status: str


class AgentInfo(BaseModel):
    """Point-in-time snapshot of an agent for external consumers."""

    id: int
    host_name: str
    transcript_path: str
    status: AgentStatus = "active"
    waiting: bool = False
    active_tools: list[ToolActivity] = Field(default_factory=list)
    read_offset: int = 0
