"""Storage abstractions used by the EggForge services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, Sequence

UserId = int | str


def normalize_user_id(user_id: UserId) -> str:
    if isinstance(user_id, bool):
        raise TypeError("User id must be an int or str")
    key = str(user_id).strip()
    if not key:
        raise ValueError("User id must not be empty")
    return key


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreditSource(str, Enum):
    FREE = "free"
    PURCHASED = "purchased"


class PaymentStatus(str, Enum):
    RECEIVED = "received"
    APPLIED = "applied"
    REJECTED_DUPLICATE = "rejected_duplicate"
    REJECTED_INVALID = "rejected_invalid"


@dataclass(slots=True)
class AccountRecord:
    user_id: str
    display_name: str | None = None
    free_credits: int = 0
    purchased_credits: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def available_credits(self) -> int:
        return self.free_credits + self.purchased_credits


@dataclass(slots=True)
class CollectionEntry:
    item_name: str
    count: int


@dataclass(slots=True)
class PaymentRecord:
    charge_id: str
    user_id: str
    amount_paid: int
    credits_granted: int
    status: PaymentStatus = PaymentStatus.RECEIVED
    created_at: datetime = field(default_factory=utcnow)
    applied_at: datetime | None = None


@dataclass(slots=True)
class AuditEntry:
    created_at: datetime
    action: str
    payload: dict


class AccountStore(Protocol):
    async def get_or_create(self, user_id: str, display_name: str | None = None) -> AccountRecord:
        ...

    async def get(self, user_id: str) -> AccountRecord | None:
        ...

    async def consume_credit(self, user_id: str) -> tuple[AccountRecord, CreditSource]:
        """Atomically take one credit, free first; raise InsufficientCredits when empty."""
        ...

    async def refund_credit(self, user_id: str, source: CreditSource) -> AccountRecord:
        ...

    async def grant_purchased(self, user_id: str, count: int) -> AccountRecord:
        ...


class CollectionStore(Protocol):
    async def increment(self, user_id: str, item_name: str, amount: int = 1) -> int:
        """Add ``amount`` to the entry, creating it if needed; return the new count."""
        ...

    async def entries(self, user_id: str) -> Sequence[CollectionEntry]:
        ...


class PaymentStore(Protocol):
    async def insert_received(self, record: PaymentRecord) -> None:
        """Persist a new record; raise DuplicatePayment if the charge id exists."""
        ...

    async def apply(self, charge_id: str) -> tuple[PaymentRecord, AccountRecord] | None:
        """Grant the record's credits and mark it applied in one transaction.

        Returns ``None`` when the record is missing or no longer ``received``.
        """
        ...

    async def get(self, charge_id: str) -> PaymentRecord | None:
        ...

    async def pending(self, older_than: datetime | None = None) -> Sequence[PaymentRecord]:
        ...


class AuditStore(Protocol):
    async def add_entry(self, action: str, payload: dict) -> None:
        ...

    async def recent(self, limit: int = 20) -> Sequence[AuditEntry]:
        ...
