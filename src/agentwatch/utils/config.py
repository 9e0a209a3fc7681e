from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Central configuration loaded from environment variables."""

    # Transcript store
    projects_root: Path = field(
        default_factory=lambda: Path(
            os.environ.get("AGENTWATCH_PROJECTS_ROOT", "~/.claude/projects")
        ).expanduser()
    )

    # Unclaimed transcripts older than this are not adopted (0 = no limit)
    session_max_age_secs: int = field(
        default_factory=lambda: int(os.environ.get("AGENTWATCH_SESSION_MAX_AGE_SECS", "180"))
    )

    # Timing (seconds)
    scan_interval: float = field(
        default_factory=lambda: float(os.environ.get("AGENTWATCH_SCAN_INTERVAL", "1.0"))
    )
    poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("AGENTWATCH_POLL_INTERVAL", "2.0"))
    )
    waiting_debounce: float = field(
        default_factory=lambda: float(os.environ.get("AGENTWATCH_WAITING_DEBOUNCE", "2.0"))
    )
    tool_done_delay: float = field(
        default_factory=lambda: float(os.environ.get("AGENTWATCH_TOOL_DONE_DELAY", "0.3"))
    )

    # Native change notifications on top of polling
    native_watch: bool = field(
        default_factory=lambda: _env_flag("AGENTWATCH_NATIVE_WATCH", "1")
    )

    # Only hosts whose display name matches are tracked (empty = all)
    host_name_pattern: str = field(
        default_factory=lambda: os.environ.get(
            "AGENTWATCH_HOST_NAME_PATTERN", r"^Claude Code #(\d+)$"
        )
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.environ.get("AGENTWATCH_LOG_LEVEL", "INFO")
    )


def get_config() -> Config:
    """Return a Config instance (singleton-friendly via module caching)."""
    return Config()
