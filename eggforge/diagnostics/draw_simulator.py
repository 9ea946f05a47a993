"""Draw simulation helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from statistics import mean
from typing import Dict

from ..app import EggApp
from ..domain.draw import DrawEngine


@dataclass(slots=True)
class SimulationResult:
    draws: int
    expected: Dict[str, float]
    counts: Dict[str, int] = field(default_factory=dict)

    def record(self, name: str) -> None:
        self.counts[name] = self.counts.get(name, 0) + 1

    def frequency(self, name: str) -> float:
        if not self.draws:
            return 0.0
        return self.counts.get(name, 0) / self.draws

    def frequencies(self) -> Dict[str, float]:
        return {name: self.frequency(name) for name in self.expected}

    def deviation(self, name: str) -> float:
        return abs(self.frequency(name) - self.expected[name])

    def max_deviation(self) -> float:
        return max((self.deviation(name) for name in self.expected), default=0.0)


class DrawSimulator:
    """Monte-Carlo simulation to compare observed draw frequencies with catalog weights."""

    def __init__(self, app: EggApp, *, rng: Random | None = None) -> None:
        self._app = app
        self._engine = DrawEngine(app.catalog, rng=rng or Random())

    def simulate(self, *, draws: int = 100_000) -> SimulationResult:
        if draws <= 0:
            raise ValueError("draws must be positive")
        expected = {item.name: weight for item, weight in self._app.catalog.weights()}
        result = SimulationResult(draws=draws, expected=expected)
        for _ in range(draws):
            result.record(self._engine.draw().name)
        return result

    def eggs_to_complete(self, *, trials: int = 100, limit: int = 1_000_000) -> float:
        """Average number of eggs needed to own every figurine at least once."""
        if trials <= 0:
            raise ValueError("trials must be positive")
        target = len(self._app.catalog)
        samples: list[int] = []
        for _ in range(trials):
            seen: set[str] = set()
            opened = 0
            while len(seen) < target and opened < limit:
                seen.add(self._engine.draw().name)
                opened += 1
            samples.append(opened)
        return mean(samples)
