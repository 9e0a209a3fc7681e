from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from agentwatch.models.agent import AgentState
from agentwatch.models.host import SessionHost
from agentwatch.services.claim_registry import ClaimRegistry

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Authoritative map of agent id -> state.

    Owns the claim set and the id counter. Ids start at 1, only ever grow
    and are never reused for the lifetime of the registry.
    """

    def __init__(self, claims: ClaimRegistry | None = None) -> None:
        self.claims = claims if claims is not None else ClaimRegistry()
        self._agents: dict[int, AgentState] = {}
        self._next_id = 1

    def create(
        self, host: SessionHost, transcript_path: str | Path, transcript_dir: str | Path
    ) -> AgentState | None:
        """Claim *transcript_path* and register a new agent for it.

        Returns None when another agent already owns the file.
        """
        path = Path(transcript_path).absolute()
        if not self.claims.try_claim(path):
            return None

        agent = AgentState(
            id=self._next_id,
            host=host,
            transcript_dir=Path(transcript_dir).absolute(),
            transcript_path=path,
        )
        self._next_id += 1
        self._agents[agent.id] = agent
        return agent

    def remove(self, agent_id: int) -> AgentState | None:
        """Tear down an agent: cancel its timers and wake sources, release its claim."""
        agent = self._agents.pop(agent_id, None)
        if agent is None:
            return None

        agent.closed = True
        if agent.wait_task is not None:
            agent.wait_task.cancel()
            agent.wait_task = None
        for task in list(agent.tool_done_tasks):
            task.cancel()
        agent.tool_done_tasks.clear()
        if agent.wake is not None:
            agent.wake.cancel()

        self.claims.release(agent.transcript_path)
        logger.info("Agent %d: removed (%s)", agent.id, agent.transcript_path.name)
        return agent

    def get(self, agent_id: int) -> AgentState | None:
        return self._agents.get(agent_id)

    def ids(self) -> list[int]:
        return sorted(self._agents)

    def agents(self) -> list[AgentState]:
        return [self._agents[agent_id] for agent_id in self.ids()]

    def for_host(self, host: SessionHost) -> list[AgentState]:
        return [agent for agent in self.agents() if agent.host is host]

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[AgentState]:
        return iter(self.agents())

    def __len__(self) -> int:
        return len(self._agents)
