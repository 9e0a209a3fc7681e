from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP

from agentwatch.services.event_bus import EventLog
from agentwatch.services.monitor import TranscriptMonitor
from agentwatch.tools import agents as agent_tools
from agentwatch.utils.config import get_config
from agentwatch.utils.logger import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle for agentwatch."""
    config = get_config()

    monitor = TranscriptMonitor(config)
    event_log = EventLog()
    monitor.event_bus.subscribe("*", event_log)

    # --- Register MCP tools ---
    agent_tools.register(server, monitor, event_log)

    # --- Register MCP resource ---
    @server.resource("agentwatch://agents")
    async def get_agents() -> str:
        agents = monitor.snapshot()
        lines = [f"agentwatch: {len(agents)} agent(s)"]
        for info in agents:
            tools = ", ".join(tool.status for tool in info.active_tools) or "-"
            lines.append(f"- #{info.id} [{info.host_name}] {info.status}: {tools}")
        return "\n".join(lines) + "\n"

    logger.info("agentwatch MCP server ready (projects root %s)", config.projects_root)

    try:
        yield
    finally:
        await monitor.stop()
        logger.info("agentwatch MCP server stopped")


def create_server() -> FastMCP:
    """Build and return the configured FastMCP server."""
    config = get_config()
    setup_logging(config.log_level)

    server = FastMCP("agentwatch", lifespan=lifespan)
    return server


# Module-level instance used by the CLI and ``python -m``
mcp = create_server()

if __name__ == "__main__":
    mcp.run()
