from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepTiming:
    name: str
    elapsed_ms: float


class Timer:
    """Measures step latencies. Repeated steps with the same name add up."""

    def __init__(self) -> None:
        self._steps: list[StepTiming] = []

    def measure(self, name: str, fn: Callable[[], T]) -> T:
        start = time.perf_counter()
        try:
            return fn()
        finally:
            elapsed = (time.perf_counter() - start) * 1000.0
            self._steps.append(StepTiming(name=name, elapsed_ms=elapsed))

    @property
    def steps(self) -> list[StepTiming]:
        return list(self._steps)

    def count(self, name: str) -> int:
        return sum(1 for s in self._steps if s.name == name)

    def summary(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for s in self._steps:
            out[s.name] = out.get(s.name, 0.0) + s.elapsed_ms
        out["total_ms"] = sum(s.elapsed_ms for s in self._steps)
        return out
