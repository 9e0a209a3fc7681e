from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ClaimRegistry:
    """Set of transcript paths currently owned by an agent.

    Design:
    - One claim per path; the first caller wins.
    - ``try_claim`` never awaits, so on a single event loop the
      check-and-set cannot interleave with another scanner and needs no lock.
    - Losers simply skip the file; there is no queueing or retry.
    """

    def __init__(self) -> None:
        self._claimed: set[Path] = set()

    @staticmethod
    def _key(path: str | Path) -> Path:
        return Path(path).absolute()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def try_claim(self, path: str | Path) -> bool:
        """Claim *path*. Returns False if it is already owned."""
        key = self._key(path)
        if key in self._claimed:
            logger.debug("Claim denied on %s: already owned", key)
            return False
        self._claimed.add(key)
        logger.debug("Claimed %s", key)
        return True

    def release(self, path: str | Path) -> None:
        """Drop the claim on *path*; releasing an unclaimed path is a no-op."""
        key = self._key(path)
        if key in self._claimed:
            self._claimed.discard(key)
            logger.debug("Released %s", key)

    def is_claimed(self, path: str | Path) -> bool:
        return self._key(path) in self._claimed

    def claimed(self) -> list[Path]:
        return sorted(self._claimed)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.is_claimed(path)

    def __len__(self) -> int:
        return len(self._claimed)
