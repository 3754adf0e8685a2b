"""
Trailing-edge debounce for whole-table re-syncs.

Every local edit calls touch(). A flush is due once the quiet window has
elapsed since the most recent touch. Repeated edits inside the window keep
pushing the deadline back; only one flush follows a burst.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from mufattish.config import SYNC_QUIET_SECONDS


class SyncDebouncer:
    def __init__(self, quiet_seconds: float = SYNC_QUIET_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.quiet_seconds = quiet_seconds
        self._clock = clock
        self._last_touch: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._last_touch is not None

    def touch(self) -> None:
        self._last_touch = self._clock()

    def seconds_remaining(self) -> float:
        if self._last_touch is None:
            return 0.0
        return max(0.0, self.quiet_seconds - (self._clock() - self._last_touch))

    def is_due(self) -> bool:
        return self._last_touch is not None and self._clock() - self._last_touch >= self.quiet_seconds

    def mark_flushed(self) -> None:
        self._last_touch = None
