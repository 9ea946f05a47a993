from collections import Counter

import pytest

from eggforge.domain.catalog import Catalog, CatalogItem, default_catalog
from eggforge.domain.draw import DrawEngine

DRAWS = 100_000


def test_draw_frequencies_follow_weights():
    catalog = default_catalog()
    engine = DrawEngine.seeded(catalog, 1234)
    counts = Counter(item.name for item in engine.draw_many(DRAWS))

    for item, weight in catalog.weights():
        frequency = counts[item.name] / DRAWS
        tolerance = 0.002 if item.rare else 0.005
        assert abs(frequency - weight) <= tolerance, item.name


def test_draw_returns_only_catalog_items():
    catalog = default_catalog()
    engine = DrawEngine.seeded(catalog, 7)
    assert all(item.name in catalog for item in engine.draw_many(500))


def test_single_item_catalog_always_draws_it():
    catalog = Catalog([CatalogItem("Единственный", 1.0)])
    engine = DrawEngine.seeded(catalog, 0)
    assert {item.name for item in engine.draw_many(50)} == {"Единственный"}


def test_seeded_engines_are_reproducible():
    catalog = default_catalog()
    first = [item.name for item in DrawEngine.seeded(catalog, 99).draw_many(100)]
    second = [item.name for item in DrawEngine.seeded(catalog, 99).draw_many(100)]
    assert first == second


def test_draw_many_rejects_negative_count():
    with pytest.raises(ValueError):
        DrawEngine(default_catalog()).draw_many(-1)
