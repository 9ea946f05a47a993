"""Top level application object for EggForge bots."""

from __future__ import annotations

from random import Random
from typing import Any

from .config import EggForgeConfig
from .domain.catalog import Catalog, build_catalog, DEFAULT_FIGURES
from .domain.collection import CollectionService
from .domain.draw import DrawEngine
from .domain.events import EventBus
from .domain.ledger import LedgerService
from .domain.payments import SettlementService
from .domain.session import GameSession
from .loaders import load_catalog_from_json
from .storage.base import AccountStore, AuditStore, CollectionStore, PaymentStore
from .storage.guard import StoreGuard
from .storage.memory import (
    InMemoryAccountStore,
    InMemoryAuditStore,
    InMemoryCollectionStore,
    InMemoryPaymentStore,
)
from .storage.sqlalchemy import AsyncSQLAlchemyStorage


class EggApp:
    """Central dependency container used by bots, admin tools and tests."""

    def __init__(
        self,
        config: EggForgeConfig,
        *,
        catalog: Catalog | None = None,
        account_store: AccountStore | None = None,
        collection_store: CollectionStore | None = None,
        payment_store: PaymentStore | None = None,
        audit_store: AuditStore | None = None,
        event_bus: EventBus | None = None,
        rng: Random | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.catalog = catalog or self._load_catalog()

        self._rng = rng or (Random(config.rng_seed) if config.rng_seed is not None else Random())
        self.draw_engine = DrawEngine(self.catalog, rng=self._rng)

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        (
            self.account_store,
            self.collection_store,
            self.payment_store,
            self.audit_store,
        ) = self._wire_storage(account_store, collection_store, payment_store, audit_store)

        self.guard = StoreGuard(
            timeout_seconds=config.storage.timeout_seconds,
            read_retries=config.storage.read_retries,
        )
        self.ledger = LedgerService(self.account_store, guard=self.guard)
        self.collection = CollectionService(self.collection_store, self.catalog, guard=self.guard)
        self.settlement = SettlementService(
            self.payment_store,
            self.event_bus,
            audit=self.audit_store if config.admin.enable_audit_logs else None,
            guard=self.guard,
            currency=config.payments.currency,
            credit_unit_price=config.payments.credit_unit_price,
        )
        self.session = GameSession(
            self.ledger,
            self.collection,
            self.draw_engine,
            self.event_bus,
            credit_unit_price=config.payments.credit_unit_price,
            currency=config.payments.currency,
            max_purchase_quantity=config.payments.max_purchase_quantity,
        )

    def _load_catalog(self) -> Catalog:
        if self.config.catalog.path:
            return load_catalog_from_json(self.config.catalog.path)
        return build_catalog(DEFAULT_FIGURES, rare=self.config.catalog.rare)

    def _wire_storage(
        self,
        account_store: AccountStore | None,
        collection_store: CollectionStore | None,
        payment_store: PaymentStore | None,
        audit_store: AuditStore | None,
    ) -> tuple[AccountStore, CollectionStore, PaymentStore, AuditStore]:
        if account_store and collection_store and payment_store and audit_store:
            return account_store, collection_store, payment_store, audit_store

        grant = self.config.ledger.free_credit_grant
        backend = self.config.storage.backend
        if backend == "memory":
            accounts = account_store or InMemoryAccountStore(free_credit_grant=grant)
            if payment_store is None and not isinstance(accounts, InMemoryAccountStore):
                raise ValueError("In-memory payment store requires the in-memory account store")
            return (
                accounts,
                collection_store or InMemoryCollectionStore(),
                payment_store or InMemoryPaymentStore(accounts),
                audit_store or InMemoryAuditStore(),
            )
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(
                dsn, echo=self.config.storage.echo_sql, free_credit_grant=grant
            )
            self._sqlalchemy_storage = storage
            return (
                account_store or storage.account_store(),
                collection_store or storage.collection_store(),
                payment_store or storage.payment_store(),
                audit_store or storage.audit_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "items": self.catalog.names(),
            "rare": [item.name for item in self.catalog if item.rare],
            "free_credit_grant": self.config.ledger.free_credit_grant,
            "credit_unit_price": self.config.payments.credit_unit_price,
            "currency": self.config.payments.currency,
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
