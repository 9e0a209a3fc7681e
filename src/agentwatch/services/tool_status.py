"""Human-readable status text for a tool invocation."""

from __future__ import annotations

import ntpath
import posixpath
from typing import Any

BASH_PREVIEW_CHARS = 30
ELLIPSIS = "\u2026"

_FILE_VERBS = {
    "Read": "Reading",
    "Edit": "Editing",
    "Write": "Writing",
}

_FIXED_PHRASES = {
    "Glob": "Searching files",
    "Grep": "Searching code",
    "WebFetch": "Fetching web content",
    "WebSearch": "Searching the web",
    "Task": "Running subtask",
    "AskUserQuestion": "Waiting for your answer",
    "EnterPlanMode": "Planning",
    "NotebookEdit": "Editing notebook",
}


def _basename(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    # Transcripts written on Windows carry backslash paths
    return ntpath.basename(value) if "\\" in value else posixpath.basename(value)


def format_tool_status(tool_name: Any, tool_input: Any) -> str:
    """Describe a tool invocation, e.g. ``Reading app.py`` or ``Running: ls``.

    Never raises: unknown tools, missing fields and wrongly typed input all
    degrade to a generic description.
    """
    name = tool_name if isinstance(tool_name, str) else ""
    params = tool_input if isinstance(tool_input, dict) else {}

    if name in _FILE_VERBS:
        return f"{_FILE_VERBS[name]} {_basename(params.get('file_path'))}"
    if name == "Bash":
        command = params.get("command")
        if not isinstance(command, str):
            command = ""
        if len(command) > BASH_PREVIEW_CHARS:
            command = command[:BASH_PREVIEW_CHARS] + ELLIPSIS
        return f"Running: {command}"
    if name in _FIXED_PHRASES:
        return _FIXED_PHRASES[name]
    return f"Using {name}"
