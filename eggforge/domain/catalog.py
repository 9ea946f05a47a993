"""Catalog of collectible figurines and their draw weights."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Sequence

WEIGHT_TOLERANCE = 1e-9

DEFAULT_FIGURES: tuple[str, ...] = (
    "Дастин",
    "Дастин из изнанки",
    "Майк",
    "Уилл",
    "Уилл из изнанки",
    "Лукас",
    "Макс",
    "Оди из лаборатории",
    "Оди из изнанки",
    "Оди в лабораторном халате",
    "Демогргон на карандаш",
    "Демогоргон-брелок",
    "Демогоргон-брелок на скрепке",
    "Стив",
    "Стив из изнанки",
    "Векна",
    "Эрика",
    "Хоппер",
    "Хоппер из изнанки",
    "Нэнси",
    "Робин из изнанки",
    "Эдди из изнанки",
    "Макс из изнанки",
    "Связанные Стив и Робин",
)

DEFAULT_RARE: Mapping[str, float] = {
    "Уилл": 0.005,
    "Уилл из изнанки": 0.01,
}


@dataclass(slots=True, frozen=True)
class CatalogItem:
    """A figurine that can drop out of an egg."""

    name: str
    weight: float
    media_ref: str | None = None
    rare: bool = False


class Catalog:
    """Ordered, immutable table of catalog items."""

    def __init__(self, items: Iterable[CatalogItem]) -> None:
        ordered = tuple(items)
        if not ordered:
            raise ValueError("Catalog must contain at least one item")
        positions: dict[str, int] = {}
        for idx, item in enumerate(ordered):
            if item.name in positions:
                raise ValueError(f"Item {item.name} registered twice")
            if not 0 < item.weight <= 1:
                raise ValueError(f"Item {item.name} has weight {item.weight} outside (0, 1]")
            positions[item.name] = idx
        total = math.fsum(item.weight for item in ordered)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Catalog weights sum to {total!r}, expected 1.0")
        self._items = ordered
        self._positions = positions

    def weights(self) -> list[tuple[CatalogItem, float]]:
        return [(item, item.weight) for item in self._items]

    def get(self, name: str) -> CatalogItem:
        try:
            return self._items[self._positions[name]]
        except KeyError as exc:
            raise KeyError(f"Item {name} not found") from exc

    def position(self, name: str) -> int | None:
        return self._positions.get(name)

    def names(self) -> list[str]:
        return [item.name for item in self._items]

    def total_weight(self) -> float:
        return math.fsum(item.weight for item in self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


def build_catalog(
    names: Sequence[str] = DEFAULT_FIGURES,
    *,
    rare: Mapping[str, float] = DEFAULT_RARE,
    media: Mapping[str, str] | None = None,
) -> Catalog:
    """Assign fixed probabilities to rare items and split the rest evenly.

    ``p_other = (1 - sum(rare)) / (len(names) - len(rare))`` is derived from
    the actual number of items, so adding or removing a figurine keeps the
    table normalized.
    """
    unknown = [name for name in rare if name not in names]
    if unknown:
        raise ValueError(f"Rare items not in catalog: {', '.join(unknown)}")
    rare_mass = math.fsum(rare.values())
    if rare_mass >= 1:
        raise ValueError("Rare probabilities must leave mass for common items")
    common_count = len(names) - len(rare)
    if common_count <= 0:
        raise ValueError("Catalog needs at least one common item")
    p_other = (1 - rare_mass) / common_count
    media = media or {}
    return Catalog(
        CatalogItem(
            name=name,
            weight=rare.get(name, p_other),
            media_ref=media.get(name),
            rare=name in rare,
        )
        for name in names
    )


def default_catalog() -> Catalog:
    return build_catalog()
