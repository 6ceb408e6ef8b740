"""Bounded rolling history of gas observations for one network."""

from collections import deque
from collections.abc import Iterator

from gastracker.models import GasObservation


class HistoryBuffer:
    """Fixed-capacity, insertion-ordered buffer with oldest-first eviction.

    Entries are kept in arrival order and never re-sorted. Readers take a
    tuple copy via :meth:`snapshot`, so later appends are never visible
    mid-read.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._items: deque[GasObservation] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def append(self, observation: GasObservation) -> None:
        """Add an observation, evicting the oldest one when full."""
        self._items.append(observation)

    def snapshot(self) -> tuple[GasObservation, ...]:
        """Return an immutable ordered copy of the buffer."""
        return tuple(self._items)

    def latest(self) -> GasObservation | None:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[GasObservation]:
        return iter(self.snapshot())
