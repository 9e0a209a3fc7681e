from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the agentwatch package."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger("agentwatch")
    root.setLevel(numeric_level)
    root.addHandler(handler)

    # The native watcher logs every raw filesystem batch at DEBUG
    logging.getLogger("watchfiles").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)
