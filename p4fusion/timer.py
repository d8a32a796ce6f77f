"""A simple wall-clock stopwatch."""

from __future__ import annotations

import time


class Timer:
    """Measures the time elapsed since it was created."""

    def __init__(self) -> None:
        self.start = time.perf_counter()

    def elapsed_seconds(self) -> float:
        """Return the seconds passed since construction."""
        return time.perf_counter() - self.start