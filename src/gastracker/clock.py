"""Injectable wall-clock used wherever the tracker stamps a timestamp."""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of wall-clock time in Unix milliseconds."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Clock backed by ``time.time()``."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
