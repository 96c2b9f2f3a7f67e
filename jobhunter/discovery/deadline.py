"""Wall-clock budget shared by every fetch in one discovery run."""

import time
from collections.abc import Callable

from jobhunter.discovery.errors import RunTimeoutError


class Deadline:
    """Monotonic deadline observed at each suspension point."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.budget = seconds
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def clamp(self, seconds: float) -> float:
        """Shrink a timeout or sleep so it never outlives the run."""
        return min(seconds, self.remaining())

    def check(self) -> None:
        if self.expired:
            raise RunTimeoutError(f"discovery budget of {self.budget:.1f}s exhausted")
