from datetime import datetime, timezone
from typing import Optional
import time


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(seconds: float, precision: int = 2) -> str:
    if seconds <= 0:
        return "0s"

    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{int(secs)}s" if secs == int(secs) else f"{secs:.{precision}f}s")
    return " ".join(parts)


def format_millis(millis: int) -> str:
    return format_duration(millis / 1000.0)


class Timer:
    """Monotonic stopwatch for step and configuration durations."""

    def __init__(self):
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def start(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def stop(self) -> float:
        if self._started is None:
            raise RuntimeError("Timer was never started")
        self._stopped = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started

    @property
    def elapsed_millis(self) -> int:
        return int(round(self.elapsed * 1000))

    @property
    def elapsed_formatted(self) -> str:
        return format_duration(self.elapsed)
