import pytest

from eggforge.domain.catalog import build_catalog
from eggforge.domain.collection import CollectionService
from eggforge.storage.memory import InMemoryCollectionStore


@pytest.fixture()
def collection() -> CollectionService:
    catalog = build_catalog(["Майк", "Дастин", "Уилл"], rare={"Уилл": 0.01})
    return CollectionService(InMemoryCollectionStore(), catalog)


@pytest.mark.asyncio()
async def test_record_draw_counts_duplicates(collection):
    assert await collection.record_draw(1, "Майк") == 1
    assert await collection.record_draw(1, "Майк") == 2
    snapshot = await collection.snapshot(1)
    assert [(entry.item_name, entry.count) for entry in snapshot] == [("Майк", 2)]


@pytest.mark.asyncio()
async def test_snapshot_orders_by_count_then_catalog(collection):
    await collection.record_draw(1, "Уилл")
    await collection.record_draw(1, "Дастин")
    await collection.record_draw(1, "Майк")
    await collection.record_draw(1, "Уилл")

    snapshot = await collection.snapshot(1)
    assert [entry.item_name for entry in snapshot] == ["Уилл", "Майк", "Дастин"]
    assert await collection.total_items(1) == 4


@pytest.mark.asyncio()
async def test_collections_are_per_user(collection):
    await collection.record_draw(1, "Майк")
    assert await collection.snapshot(2) == []
