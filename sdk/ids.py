from __future__ import annotations
import time
NS_PER_MS = 1_000_000
def now_monotonic_ns() -> int: return time.monotonic_ns()
