from datetime import datetime, timezone
from typing import Optional
import time


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(seconds: float) -> str:
    """Render a duration for log lines: ``850ms``, ``12.4s``, ``3m 05s``, ``1h 02m``."""
    seconds = max(seconds, 0.0)
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, remainder = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m {remainder:02d}s"


class Timer:
    """Monotonic stopwatch, usable directly or as a context manager."""

    def __init__(self):
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def start(self) -> "Timer":
        self._started = time.monotonic()
        self._stopped = None
        return self

    def stop(self) -> float:
        if self._started is None:
            raise RuntimeError("Timer was never started")
        self._stopped = time.monotonic()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.monotonic()
        return end - self._started

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()
