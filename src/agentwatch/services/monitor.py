from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from agentwatch.models.agent import AgentInfo, AgentState
from agentwatch.models.host import SessionHost
from agentwatch.services.agent_registry import AgentRegistry
from agentwatch.services.event_bus import EventBus
from agentwatch.services.interpreter import TranscriptInterpreter
from agentwatch.services.locator import transcript_dir_for
from agentwatch.services.scanner import DirectoryScanner
from agentwatch.services.tailer import TranscriptTailer
from agentwatch.services.wake import WakeMultiplexer
from agentwatch.utils.config import Config, get_config

logger = logging.getLogger(__name__)

HOST_NAME_FORMAT = "Claude Code #{index}"


class TranscriptMonitor:
    """Tracks agent activity for every observed session host.

    Design:
    - One ``DirectoryScanner`` per host discovers and claims transcripts.
    - Each claimed transcript becomes an agent in the ``AgentRegistry``,
      serviced by a tailer, an interpreter and a wake multiplexer.
    - Every status change goes out through the ``EventBus``.
    - All state lives on one event loop; nothing here takes a lock except
      the per-agent pump lock.
    """

    def __init__(
        self,
        config: Config | None = None,
        event_bus: EventBus | None = None,
        registry: AgentRegistry | None = None,
    ):
        self.config = config or get_config()
        self.event_bus = event_bus or EventBus()
        self.registry = registry or AgentRegistry()
        self._scanners: dict[SessionHost, DirectoryScanner] = {}
        self._host_pattern = (
            re.compile(self.config.host_name_pattern) if self.config.host_name_pattern else None
        )
        self._next_host_index = 1

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    def host_opened(self, host: SessionHost) -> bool:
        """Start tracking an agent terminal. Returns True if a scan started."""
        if self._host_pattern is not None:
            match = self._host_pattern.match(host.name)
            if match is None:
                logger.debug("Ignoring host %s: not an agent terminal", host.name)
                return False
            self._note_host_index(match)
        if self.is_tracked(host):
            return False
        return self._start_scan(host)

    def host_launched_with_identifier(self, host: SessionHost, session_id: str) -> bool:
        """Tell the monitor *host* will write the transcript ``<session_id>.jsonl``."""
        host.session_id = session_id
        scanner = self._scanners.get(host)
        if scanner is not None:
            scanner.set_session_id(session_id)
            return True
        return self._start_scan(host)

    async def host_closed(self, host: SessionHost) -> list[int]:
        """Drop every agent of *host*. Returns the ids that were closed."""
        scanner = self._scanners.pop(host, None)
        if scanner is not None:
            await scanner.stop()

        closed: list[int] = []
        for agent in self.registry.for_host(host):
            await self._remove_agent(agent.id)
            await self.event_bus.agent_closed(agent.id)
            closed.append(agent.id)
        return closed

    def adopt_hosts(self, hosts: Iterable[SessionHost]) -> int:
        """Track hosts that were already open before the monitor started."""
        return sum(1 for host in hosts if self.host_opened(host))

    def is_tracked(self, host: SessionHost) -> bool:
        if host in self._scanners:
            return True
        return any(agent.host is host for agent in self.registry)

    def next_host_name(self) -> str:
        """Name for the next agent terminal a launcher creates."""
        index = self._next_host_index
        self._next_host_index += 1
        return HOST_NAME_FORMAT.format(index=index)

    def transcript_dir_for(self, cwd: str | None) -> Path | None:
        return transcript_dir_for(cwd, self.config.projects_root)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def existing_agents(self) -> list[int]:
        """Publish a full resync: the agent list, then each agent's live state."""
        agent_ids = self.registry.ids()
        await self.event_bus.existing_agents(agent_ids)
        for agent in self.registry.agents():
            for tool_id, status in list(agent.active_tools.items()):
                await self.event_bus.agent_tool_start(agent.id, tool_id, status)
            if agent.status == "waiting":
                await self.event_bus.agent_status(agent.id, "waiting")
        return agent_ids

    def snapshot(self) -> list[AgentInfo]:
        return [agent.to_info() for agent in self.registry.agents()]

    async def stop(self) -> None:
        """Tear down every scanner and agent."""
        for host in list(self._scanners):
            scanner = self._scanners.pop(host)
            await scanner.stop()
        for agent_id in self.registry.ids():
            await self._remove_agent(agent_id)
        logger.info("Transcript monitor stopped")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _note_host_index(self, match: re.Match[str]) -> None:
        if not match.groups() or match.group(1) is None:
            return
        try:
            index = int(match.group(1))
        except ValueError:
            return
        if index >= self._next_host_index:
            self._next_host_index = index + 1

    def _start_scan(self, host: SessionHost) -> bool:
        transcript_dir = self.transcript_dir_for(host.cwd)
        if transcript_dir is None:
            logger.info("No project dir for host %s", host.name)
            return False
        scanner = DirectoryScanner(
            host,
            transcript_dir,
            self.registry.claims,
            self._adopt,
            scan_interval=self.config.scan_interval,
            max_age_secs=self.config.session_max_age_secs,
        )
        self._scanners[host] = scanner
        scanner.start()
        return True

    async def _adopt(
        self, host: SessionHost, transcript_path: Path, transcript_dir: Path
    ) -> AgentState | None:
        agent = self.registry.create(host, transcript_path, transcript_dir)
        if agent is None:
            return None
        logger.info("Agent %d: created, watching %s", agent.id, agent.transcript_path.name)

        interpreter = TranscriptInterpreter(agent, self.event_bus, self.config)
        tailer = TranscriptTailer(agent, interpreter)
        agent.wake = WakeMultiplexer(
            agent.transcript_path,
            tailer.pump,
            poll_interval=self.config.poll_interval,
            native=self.config.native_watch,
        )

        await self.event_bus.agent_created(agent.id, host.name, str(agent.transcript_path))
        if agent.closed:
            return agent
        agent.wake.start()

        # Replay the transcript so far; the status converges on its last turn
        await tailer.pump()
        return agent

    async def _remove_agent(self, agent_id: int) -> None:
        agent = self.registry.remove(agent_id)
        if agent is not None and agent.wake is not None:
            await agent.wake.stop()
