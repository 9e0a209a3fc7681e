from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from agentwatch.models.agent import AgentState
from agentwatch.services.interpreter import TranscriptInterpreter

logger = logging.getLogger(__name__)


def read_chunk(path: str | Path, offset: int) -> bytes:
    """Read the bytes appended to *path* since *offset*.

    Returns ``b""`` when the file has not grown (or has shrunk). Raises
    ``OSError`` if the file cannot be stat'ed or read.
    """
    size = os.stat(path).st_size
    if size <= offset:
        return b""
    with open(path, "rb") as f:
        f.seek(offset)
        return f.read(size - offset)


def split_lines(partial: bytes, chunk: bytes) -> tuple[list[str], bytes]:
    """Split carried bytes plus a new chunk into complete lines.

    Returns the non-blank complete lines and the unterminated remainder,
    which must be passed back in as *partial* on the next call. Carrying
    bytes rather than text keeps multi-byte characters intact when a read
    ends in the middle of one.
    """
    pieces = (partial + chunk).split(b"\n")
    remainder = pieces.pop()
    lines: list[str] = []
    for raw in pieces:
        text = raw.decode("utf-8", errors="replace").rstrip("\r")
        if text.strip():
            lines.append(text)
    return lines, remainder


class TranscriptTailer:
    """Reads newly appended transcript lines for one agent."""

    def __init__(self, agent: AgentState, interpreter: TranscriptInterpreter):
        self.agent = agent
        self.interpreter = interpreter

    async def pump(self) -> int:
        """Deliver every complete line appended since the last pump.

        Safe to call redundantly and concurrently: pumps of the same agent
        are serialised and a pump with nothing new to read is a no-op.
        Returns the number of lines delivered.
        """
        agent = self.agent
        if agent.closed:
            return 0

        async with agent.pump_lock:
            if agent.closed:
                return 0
            offset = agent.read_offset
            try:
                chunk = await asyncio.to_thread(read_chunk, agent.transcript_path, offset)
            except OSError as e:
                # Offset untouched: the next wake retries from the same point
                logger.debug("Read error for agent %d: %s", agent.id, e)
                return 0
            if not chunk or agent.closed:
                return 0

            agent.read_offset = offset + len(chunk)
            lines, agent.partial_line = split_lines(agent.partial_line, chunk)

            for line in lines:
                if agent.closed:
                    break
                try:
                    await self.interpreter.handle_line(line)
                except Exception:
                    # The offset has already moved past this line; keep going
                    logger.exception("Agent %d: failed to apply a transcript line", agent.id)
            return len(lines)
