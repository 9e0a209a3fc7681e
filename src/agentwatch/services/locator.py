from __future__ import annotations

import re
from pathlib import Path

_SEPARATORS = re.compile(r"[:\\/]")


def encode_project_dir(cwd: str) -> str:
    """Encode a working directory the way Claude Code names its project dirs.

    ``/home/me/repo`` becomes ``-home-me-repo``; drive colons and backslashes
    are replaced too, so ``C:\\work`` becomes ``C--work``.
    """
    return _SEPARATORS.sub("-", cwd)


def transcript_dir_for(cwd: str | None, projects_root: Path) -> Path | None:
    """Return the directory holding the transcripts of sessions started in *cwd*."""
    if not cwd:
        return None
    return Path(projects_root) / encode_project_dir(cwd)
