"""Phase timing for import runs."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, List, Optional

__all__ = ["PhaseTimer", "RunMetrics"]


@dataclass
class PhaseTimer:
    """Timer tracking a named pipeline phase."""

    name: str
    clock: Callable[[], float] = time.monotonic
    start_time: float = field(init=False)
    end_time: Optional[float] = None

    def __post_init__(self) -> None:
        self.start_time = self.clock()

    def stop(self) -> float:
        self.end_time = self.clock()
        return self.duration

    @property
    def duration(self) -> float:
        end = self.end_time if self.end_time is not None else self.clock()
        return end - self.start_time


class RunMetrics:
    """Collects phase durations and counters for a single run."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._start = clock()
        self._phases: List[PhaseTimer] = []
        self.counters: Dict[str, int] = {}

    @contextmanager
    def time_phase(self, name: str) -> Generator[PhaseTimer, None, None]:
        timer = PhaseTimer(name=name, clock=self._clock)
        self._phases.append(timer)
        try:
            yield timer
        finally:
            timer.stop()

    def count(self, name: str, value: int) -> None:
        self.counters[name] = value

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    def phase_seconds(self) -> Dict[str, float]:
        return {p.name: round(p.duration, 3) for p in self._phases}

    def to_log_dict(self) -> Dict[str, float]:
        """Flatten for structured logging."""
        result: Dict[str, float] = {"total_duration_seconds": round(self.elapsed, 3)}
        for name, seconds in self.phase_seconds().items():
            result[f"phase_{name}_seconds"] = seconds
        result.update(self.counters)
        return result
