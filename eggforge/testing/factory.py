"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field

from faker import Faker

from ..domain.catalog import Catalog, CatalogItem, build_catalog
from ..storage.base import AccountRecord


@dataclass(slots=True)
class ItemFactory:
    faker: Faker = field(default_factory=Faker)

    def names(self, count: int) -> list[str]:
        return [self.faker.unique.first_name() for _ in range(count)]

    def build_catalog(self, count: int = 10, *, rare_count: int = 1) -> Catalog:
        """Build a normalized catalog where ``rare_count`` items get a 1% weight."""
        names = self.names(count)
        rare = {name: 0.01 for name in names[:rare_count]}
        media = {name: self.faker.image_url() for name in names}
        return build_catalog(names, rare=rare, media=media)

    def uniform(self, count: int) -> Catalog:
        weight = 1 / count
        return Catalog(CatalogItem(name=name, weight=weight) for name in self.names(count))


@dataclass(slots=True)
class UserFactory:
    faker: Faker = field(default_factory=Faker)

    def user_id(self) -> int:
        return self.faker.unique.random_int(min=10_000, max=99_999_999)

    def build_account(self, user_id: int | None = None, *, free_credits: int = 5) -> AccountRecord:
        user_id = user_id or self.user_id()
        return AccountRecord(
            user_id=str(user_id),
            display_name=self.faker.user_name(),
            free_credits=free_credits,
            purchased_credits=0,
        )
