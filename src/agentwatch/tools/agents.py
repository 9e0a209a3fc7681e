from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from agentwatch.models.host import SessionHost
from agentwatch.services.event_bus import EventLog
from agentwatch.services.monitor import TranscriptMonitor


def register(mcp: FastMCP, monitor: TranscriptMonitor, event_log: EventLog) -> None:
    """Register agent-monitoring MCP tools."""

    # Terminals opened through this server, by display name
    hosts: dict[str, SessionHost] = {}

    @mcp.tool()
    async def open_session(
        name: str,
        cwd: str,
        session_id: str | None = None,
    ) -> dict:
        """Start watching the Claude Code session running in a terminal.

        Args:
            name: Terminal display name (e.g. "Claude Code #1")
            cwd: Working directory the agent was started in
            session_id: Session id passed to ``claude --session-id``, if known
        """
        host = hosts.get(name)
        if host is None:
            host = SessionHost(name=name, cwd=cwd)
            hosts[name] = host

        if session_id:
            tracked = monitor.host_launched_with_identifier(host, session_id)
        else:
            tracked = monitor.host_opened(host) or monitor.is_tracked(host)

        if not tracked:
            hosts.pop(name, None)
        return {
            "success": tracked,
            "name": name,
            "transcript_dir": str(monitor.transcript_dir_for(cwd) or ""),
        }

    @mcp.tool()
    async def close_session(name: str) -> dict:
        """Stop watching a terminal and drop all of its agents.

        Args:
            name: Terminal display name used with open_session
        """
        host = hosts.pop(name, None)
        if host is None:
            return {"success": False, "closed": []}
        closed = await monitor.host_closed(host)
        return {"success": True, "closed": closed}

    @mcp.tool()
    async def list_agents() -> list[dict]:
        """List every tracked agent with its status and running tools."""
        return [info.model_dump(mode="json") for info in monitor.snapshot()]

    @mcp.tool()
    async def get_agent(agent_id: int) -> dict | None:
        """Return one agent's status, or null if no such agent is tracked.

        Args:
            agent_id: Numeric agent id as reported by list_agents
        """
        agent = monitor.registry.get(agent_id)
        return agent.to_info().model_dump(mode="json") if agent else None

    @mcp.tool()
    async def recent_events(since: int = 0, limit: int = 100) -> dict:
        """Return status events published after a sequence number.

        Pass the returned ``last_seq`` as ``since`` on the next call to
        follow the feed.

        Args:
            since: Only return events with a higher sequence number
            limit: Maximum number of events to return
        """
        events = event_log.since(since, limit=limit)
        last_seq = events[-1]["seq"] if events else max(since, 0)
        return {"events": events, "last_seq": last_seq}

    @mcp.tool()
    async def resync_agents() -> dict:
        """Republish the current state of every agent to the event feed."""
        agent_ids = await monitor.existing_agents()
        return {"agents": agent_ids, "last_seq": event_log.last_seq}
