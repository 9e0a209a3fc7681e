from __future__ import annotations

import asyncio
import dataclasses
import json
import os
import signal
from typing import Any

import click

from agentwatch import __version__


@click.group()
@click.version_option(version=__version__, prog_name="agentwatch")
def main() -> None:
    """agentwatch — live status of terminal-hosted coding agents."""


@main.command()
def serve() -> None:
    """Start the agentwatch MCP server."""
    from agentwatch.server import mcp

    click.echo("Starting agentwatch MCP server...", err=True)
    mcp.run()


@main.command()
def version() -> None:
    """Print the version and exit."""
    click.echo(f"agentwatch {__version__}")


@main.command()
@click.option(
    "--cwd",
    default=None,
    help="Working directory the agent runs in (defaults to the current directory).",
)
@click.option(
    "--session-id",
    default=None,
    help="Session id the agent was started with; its transcript is adopted whatever its age.",
)
@click.option(
    "--name",
    default="Claude Code #1",
    show_default=True,
    help="Display name of the watched terminal.",
)
@click.option(
    "--max-age",
    default=None,
    type=int,
    help="Max age in seconds of unclaimed transcripts to adopt (0 = all).",
)
def watch(
    cwd: str | None,
    session_id: str | None,
    name: str,
    max_age: int | None,
) -> None:
    """Watch one terminal's transcripts and print status events as JSON lines."""
    from agentwatch.models.host import SessionHost
    from agentwatch.services.monitor import TranscriptMonitor
    from agentwatch.utils.config import get_config
    from agentwatch.utils.logger import setup_logging

    if max_age is not None and max_age < 0:
        raise click.UsageError("--max-age must be zero or positive")

    config = get_config()
    setup_logging(config.log_level)

    overrides: dict[str, Any] = {"host_name_pattern": ""}
    if max_age is not None:
        overrides["session_max_age_secs"] = max_age
    config = dataclasses.replace(config, **overrides)

    host = SessionHost(name=name, cwd=os.path.abspath(cwd or os.getcwd()))

    async def _run() -> None:
        monitor = TranscriptMonitor(config)

        async def _echo(event: dict[str, Any]) -> None:
            click.echo(json.dumps(event))

        monitor.event_bus.subscribe("*", _echo)

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                pass

        if session_id:
            started = monitor.host_launched_with_identifier(host, session_id)
        else:
            started = monitor.host_opened(host)
        if not started:
            raise click.UsageError(f"No transcript directory for {host.cwd}")
        click.echo(f"Watching {monitor.transcript_dir_for(host.cwd)}", err=True)

        try:
            await stop_event.wait()
        finally:
            await monitor.stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except Exception:
                    pass

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
