# lit_curation/web/limits.py

from __future__ import annotations

import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, status

from lit_curation.config.settings import Settings


class BatchRateLimiter:
    """
    Fixed-window cap on how often each batch may be triggered.

    One batch run fans out into an external call per paper or claim, so
    the cap is kept per batch name. Expired windows are dropped on every
    check; the table never holds more than one entry per batch.
    """

    def __init__(
        self,
        max_runs: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_runs = max_runs
        self.window_seconds = window_seconds
        self._clock = clock
        # batch name -> (window_start, runs)
        self._windows: Dict[str, Tuple[float, int]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "BatchRateLimiter":
        return cls(settings.BATCH_RATE_LIMIT, settings.BATCH_RATE_WINDOW_SECONDS)

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, batch: str) -> None:
        """Count one trigger of `batch`; 429 once the window is used up."""
        now = self._clock()
        self._evict(now)

        window_start, runs = self._windows.get(batch, (now, 0))
        if runs >= self.max_runs:
            retry_after = int(self.window_seconds - (now - window_start)) + 1
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Batch {batch!r} was triggered too often. Try again later.",
                headers={"Retry-After": str(retry_after)},
            )

        self._windows[batch] = (window_start, runs + 1)

    def reset(self) -> None:
        self._windows.clear()

    def _evict(self, now: float) -> None:
        expired = [
            name
            for name, (window_start, _) in self._windows.items()
            if now - window_start >= self.window_seconds
        ]
        for name in expired:
            del self._windows[name]
