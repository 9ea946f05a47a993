"""Per-user figurine collections."""

from __future__ import annotations

from .catalog import Catalog
from ..storage.base import CollectionEntry, CollectionStore, UserId, normalize_user_id
from ..storage.guard import StoreGuard


class CollectionService:
    def __init__(
        self, store: CollectionStore, catalog: Catalog, *, guard: StoreGuard | None = None
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._guard = guard or StoreGuard()

    async def record_draw(self, user_id: UserId, item_name: str) -> int:
        """Count one more copy of ``item_name``; return the user's new total."""
        key = normalize_user_id(user_id)
        return await self._guard.call(
            "collection.increment", self._store.increment, key, item_name
        )

    async def snapshot(self, user_id: UserId) -> list[CollectionEntry]:
        """Entries by descending count; ties follow catalog order, unknown names last."""
        key = normalize_user_id(user_id)
        entries = await self._guard.read("collection.entries", self._store.entries, key)
        unknown_rank = len(self._catalog)

        def sort_key(entry: CollectionEntry) -> tuple[int, int, str]:
            position = self._catalog.position(entry.item_name)
            rank = position if position is not None else unknown_rank
            return (-entry.count, rank, entry.item_name)

        return sorted(entries, key=sort_key)

    async def total_items(self, user_id: UserId) -> int:
        return sum(entry.count for entry in await self.snapshot(user_id))
