import time
from typing import Callable

# Relojes inyectables: monotonic para edades de caché, wall-clock para last_seen (Unix).
Clock = Callable[[], float]

monotonic: Clock = time.monotonic
wall_clock: Clock = time.time


def age_seconds(timestamp: float, now: float) -> float:
    return max(0.0, now - timestamp)


def time_since(timestamp: float, now: float) -> str:
    diff = int(age_seconds(timestamp, now))
    if diff < 60:
        return f"{diff}s ago"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    return f"{diff // 86400}d ago"
