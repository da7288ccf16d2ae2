from __future__ import annotations

import itertools
import threading


class IdAllocator:
    """Hands out opaque element ids (``<prefix><n>``), unique per allocator.

    A single counter is shared across prefixes, so ids stay distinct even when
    callers use different prefixes. Safe to call from multiple threads.
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self, prefix: str = "gen") -> str:
        with self._lock:
            n = next(self._counter)
        return f"{prefix}{n}"


# Process-wide allocator used when callers do not inject one.
default_ids = IdAllocator()
