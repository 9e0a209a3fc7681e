from __future__ import annotations

import os
import time
from pathlib import Path


def is_file_recent(path: str | Path, max_age_secs: float, now: float | None = None) -> bool:
    """Whether an unclaimed transcript is fresh enough to adopt.

    ``max_age_secs == 0`` means no limit. A file that cannot be stat'ed is
    never eligible.
    """
    if max_age_secs == 0:
        return True
    try:
        mtime = os.stat(path).st_mtime
    except OSError:
        return False
    if now is None:
        now = time.time()
    return (now - mtime) < max_age_secs
