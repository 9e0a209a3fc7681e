from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from agentwatch.models.agent import AgentState
from agentwatch.models.host import SessionHost
from agentwatch.services.claim_registry import ClaimRegistry
from agentwatch.services.recency import is_file_recent

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = ".jsonl"

Adopt = Callable[[SessionHost, Path, Path], Awaitable["AgentState | None"]]


class DirectoryScanner:
    """Periodically looks for transcripts a host should own.

    Each tick runs two passes over the host's transcript directory:

    1. deterministic -- the file named after the host's session id is
       adopted as soon as it exists, whatever its age;
    2. opportunistic -- any other unclaimed transcript modified within the
       configured max age is adopted.

    Scanning keeps going after the first adoption so that a transcript
    reset (e.g. ``/clear``) in the same terminal is picked up as a new agent.
    """

    def __init__(
        self,
        host: SessionHost,
        transcript_dir: Path,
        claims: ClaimRegistry,
        adopt: Adopt,
        scan_interval: float = 1.0,
        max_age_secs: float = 180,
    ):
        self.host = host
        self.transcript_dir = Path(transcript_dir)
        self.session_id = host.session_id
        self._claims = claims
        self._adopt = adopt
        self._scan_interval = scan_interval
        self._max_age_secs = max_age_secs
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._scan_loop())
            logger.info("Host %s: scanning dir %s", self.host.name, self.transcript_dir)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        if task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Host %s: scanning stopped", self.host.name)

    def set_session_id(self, session_id: str | None) -> None:
        self.session_id = session_id

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_once(self) -> list[AgentState]:
        """Run both claim passes once. Returns the agents adopted."""
        adopted: list[AgentState] = []

        # Directory listing and stats happen off the event loop
        session_file, candidates = await asyncio.to_thread(self._list_candidates)

        if session_file is not None and not self._claims.is_claimed(session_file):
            logger.info("Host %s: found session file %s", self.host.name, session_file.name)
            agent = await self._adopt(self.host, session_file, self.transcript_dir)
            if agent is not None:
                adopted.append(agent)

        for path in candidates:
            if self._claims.is_claimed(path):
                continue
            logger.info("Host %s: found unclaimed file %s", self.host.name, path.name)
            agent = await self._adopt(self.host, path, self.transcript_dir)
            if agent is not None:
                adopted.append(agent)

        return adopted

    async def _scan_loop(self) -> None:
        while True:
            await asyncio.sleep(self._scan_interval)
            await self.scan_once()

    def _list_candidates(self) -> tuple[Path | None, list[Path]]:
        """Find the session file and the recent transcripts, blocking.

        Claims are not consulted here; they are checked on the loop.
        """
        session_file: Path | None = None
        if self.session_id:
            expected = self.transcript_dir / f"{self.session_id}{TRANSCRIPT_SUFFIX}"
            if self._exists(expected):
                session_file = expected

        try:
            files = sorted(
                entry
                for entry in self.transcript_dir.iterdir()
                if entry.name.endswith(TRANSCRIPT_SUFFIX)
            )
        except OSError as e:
            logger.debug("Host %s: cannot list %s: %s", self.host.name, self.transcript_dir, e)
            return session_file, []

        return session_file, [
            path for path in files if is_file_recent(path, self._max_age_secs)
        ]

    @staticmethod
    def _exists(path: Path) -> bool:
        try:
            return path.is_file()
        except OSError:
            return False
