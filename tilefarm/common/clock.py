import time
from typing import Callable

# Milliseconds since the epoch. Engines take one of these so tests can drive time.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)
