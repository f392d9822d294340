"""Sequential task queue with a fixed pause between tasks."""

from __future__ import annotations

import time
from typing import Callable, List, Optional, Sequence, TypeVar

from ..logging import get_logger

LOG = get_logger("throttle")

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]


class ThrottledQueue:
    """Runs tasks one at a time (concurrency 1) and sleeps between them.

    The pause bounds the load a batch puts on the backend. No sleep follows
    the final task, and an empty task list returns immediately.
    """

    def __init__(self, delay_seconds: float = 0.5, *, sleep: Callable[[float], None] = time.sleep) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = float(delay_seconds)
        self._sleep = sleep

    def run(
        self,
        tasks: Sequence[Callable[[], T]],
        on_start: Optional[ProgressCallback] = None,
    ) -> List[T]:
        total = len(tasks)
        results: List[T] = []
        for index, task in enumerate(tasks):
            if on_start is not None:
                on_start(index, total)
            results.append(task())
            if index < total - 1 and self.delay_seconds > 0:
                LOG.debug(f"Throttling {self.delay_seconds:.2f}s before task {index + 2}/{total}")
                self._sleep(self.delay_seconds)
        return results
