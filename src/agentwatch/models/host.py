from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class SessionHost:
    """A terminal-like session that may be running a coding agent.

    Hosts compare and hash by identity: the handle stands in for a terminal
    owned by the surrounding editor, so two hosts with the same name are
    still two different terminals.
    """

    name: str
    cwd: str | None = None
    session_id: str | None = None
