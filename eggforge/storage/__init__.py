"""Storage backends for EggForge."""

from .base import (
    AccountRecord,
    AccountStore,
    AuditEntry,
    AuditStore,
    CollectionEntry,
    CollectionStore,
    CreditSource,
    PaymentRecord,
    PaymentStatus,
    PaymentStore,
    normalize_user_id,
)
from .guard import StoreGuard
from .memory import (
    InMemoryAccountStore,
    InMemoryAuditStore,
    InMemoryCollectionStore,
    InMemoryPaymentStore,
)
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AccountRecord",
    "AccountStore",
    "AuditEntry",
    "AuditStore",
    "CollectionEntry",
    "CollectionStore",
    "CreditSource",
    "PaymentRecord",
    "PaymentStatus",
    "PaymentStore",
    "normalize_user_id",
    "StoreGuard",
    "InMemoryAccountStore",
    "InMemoryAuditStore",
    "InMemoryCollectionStore",
    "InMemoryPaymentStore",
    "AsyncSQLAlchemyStorage",
]
