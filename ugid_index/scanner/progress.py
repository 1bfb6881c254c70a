"""Periodic progress lines for long-running walks."""

import time
from collections.abc import Callable


class ProgressReporter:
    """Emit a progress line once per ``interval`` seconds.

    The walker calls :meth:`tick` between object visits; the clock is only
    consulted there, so reports never interrupt filesystem I/O. Errors raised
    by ``write`` propagate: a broken log destination aborts the scan.
    """

    def __init__(
        self,
        write: Callable[[str], None],
        interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.write = write
        self.interval = interval
        self.clock = clock
        self.start = clock()
        self._next = self.start + interval

    def tick(self, describe: Callable[[], str]) -> bool:
        """Write ``describe()`` if the interval has elapsed.

        Returns:
            True if a line was written
        """
        if self.interval <= 0:
            return False
        now = self.clock()
        if now < self._next:
            return False
        self.write(f"[{self.elapsed(now):,.0f}s] {describe()}")
        self._next = now + self.interval
        return True

    def elapsed(self, now: float | None = None) -> float:
        return (self.clock() if now is None else now) - self.start
