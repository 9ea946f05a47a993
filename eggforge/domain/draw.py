"""Weighted random selection over the catalog."""

from __future__ import annotations

from random import Random

from .catalog import Catalog, CatalogItem


class DrawEngine:
    """Pick catalog items proportionally to their weights."""

    def __init__(self, catalog: Catalog, *, rng: Random | None = None) -> None:
        self._catalog = catalog
        self._rng = rng or Random()

    @classmethod
    def seeded(cls, catalog: Catalog, seed: int) -> "DrawEngine":
        return cls(catalog, rng=Random(seed))

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def draw(self) -> CatalogItem:
        weights = self._catalog.weights()
        total = sum(weight for _, weight in weights)
        remainder = self._rng.random() * total
        for item, weight in weights:
            remainder -= weight
            if remainder <= 0:
                return item
        # Float drift can leave a tiny positive remainder after the scan.
        return weights[-1][0]

    def draw_many(self, count: int) -> list[CatalogItem]:
        if count < 0:
            raise ValueError("Count must be non-negative")
        return [self.draw() for _ in range(count)]
