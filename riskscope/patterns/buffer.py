"""Rolling price/volume window fed to the pattern service."""

from collections import deque
from collections.abc import Iterable

from riskscope.patterns.models import PatternSample


class PatternSeriesBuffer:
    """Keeps the last *capacity* samples, oldest first.

    Args:
        capacity: Maximum number of samples retained.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._samples: deque[PatternSample] = deque(maxlen=capacity)

    def append(self, sample: PatternSample) -> None:
        """Add *sample*, evicting the oldest one when full."""
        self._samples.append(sample)

    def extend(self, samples: Iterable[PatternSample]) -> None:
        self._samples.extend(samples)

    def clear(self) -> None:
        self._samples.clear()

    def snapshot(self) -> tuple[PatternSample, ...]:
        """Immutable copy of the current window."""
        return tuple(self._samples)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    @property
    def is_full(self) -> bool:
        return len(self._samples) == self.capacity

    def __len__(self) -> int:
        return len(self._samples)
