"""In-memory storage backend for EggForge.

Suitable for tests and local experiments only: state is lost on restart.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Deque, Sequence

from ..domain.exceptions import DuplicatePayment, InsufficientCredits
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
    as_utc,
    utcnow,
)


class InMemoryAccountStore(AccountStore):
    def __init__(self, *, free_credit_grant: int = 5) -> None:
        self._records: dict[str, AccountRecord] = {}
        self._grant = free_credit_grant
        self._lock = asyncio.Lock()

    async def get_or_create(self, user_id: str, display_name: str | None = None) -> AccountRecord:
        async with self._lock:
            record = self._records.get(user_id)
            if record is None:
                record = AccountRecord(
                    user_id=user_id,
                    display_name=display_name,
                    free_credits=self._grant,
                )
                self._records[user_id] = record
            elif display_name and record.display_name != display_name:
                record.display_name = display_name
                record.updated_at = utcnow()
            return replace(record)

    async def get(self, user_id: str) -> AccountRecord | None:
        record = self._records.get(user_id)
        return replace(record) if record else None

    async def consume_credit(self, user_id: str) -> tuple[AccountRecord, CreditSource]:
        async with self._lock:
            record = self._records.get(user_id)
            if record is None or record.available_credits <= 0:
                raise InsufficientCredits(user_id)
            if record.free_credits > 0:
                record.free_credits -= 1
                source = CreditSource.FREE
            else:
                record.purchased_credits -= 1
                source = CreditSource.PURCHASED
            record.updated_at = utcnow()
            return replace(record), source

    async def refund_credit(self, user_id: str, source: CreditSource) -> AccountRecord:
        async with self._lock:
            record = self._records[user_id]
            if source is CreditSource.FREE:
                record.free_credits += 1
            else:
                record.purchased_credits += 1
            record.updated_at = utcnow()
            return replace(record)

    async def grant_purchased(self, user_id: str, count: int) -> AccountRecord:
        await self.get_or_create(user_id)
        async with self._lock:
            record = self._records[user_id]
            record.purchased_credits += count
            record.updated_at = utcnow()
            return replace(record)


class InMemoryCollectionStore(CollectionStore):
    def __init__(self) -> None:
        self._counts: dict[str, dict[str, int]] = {}
        self._lock = asyncio.Lock()

    async def increment(self, user_id: str, item_name: str, amount: int = 1) -> int:
        async with self._lock:
            items = self._counts.setdefault(user_id, {})
            items[item_name] = items.get(item_name, 0) + amount
            return items[item_name]

    async def entries(self, user_id: str) -> Sequence[CollectionEntry]:
        items = self._counts.get(user_id, {})
        return [CollectionEntry(item_name=name, count=count) for name, count in items.items()]


class InMemoryPaymentStore(PaymentStore):
    def __init__(self, accounts: InMemoryAccountStore) -> None:
        self._accounts = accounts
        self._records: dict[str, PaymentRecord] = {}
        self._lock = asyncio.Lock()

    async def insert_received(self, record: PaymentRecord) -> None:
        async with self._lock:
            if record.charge_id in self._records:
                raise DuplicatePayment(record.charge_id)
            self._records[record.charge_id] = replace(record, status=PaymentStatus.RECEIVED)

    async def apply(self, charge_id: str) -> tuple[PaymentRecord, AccountRecord] | None:
        async with self._lock:
            record = self._records.get(charge_id)
            if record is None or record.status is not PaymentStatus.RECEIVED:
                return None
            account = await self._accounts.grant_purchased(record.user_id, record.credits_granted)
            record.status = PaymentStatus.APPLIED
            record.applied_at = utcnow()
            return replace(record), account

    async def get(self, charge_id: str) -> PaymentRecord | None:
        record = self._records.get(charge_id)
        return replace(record) if record else None

    async def pending(self, older_than: datetime | None = None) -> Sequence[PaymentRecord]:
        cutoff = as_utc(older_than) if older_than else None
        return [
            replace(record)
            for record in sorted(self._records.values(), key=lambda rec: rec.created_at)
            if record.status is PaymentStatus.RECEIVED
            and (cutoff is None or as_utc(record.created_at) <= cutoff)
        ]


class InMemoryAuditStore(AuditStore):
    def __init__(self, *, maxlen: int = 1000) -> None:
        self._entries: Deque[AuditEntry] = deque(maxlen=maxlen)

    async def add_entry(self, action: str, payload: dict) -> None:
        self._entries.append(AuditEntry(created_at=utcnow(), action=action, payload=dict(payload)))

    async def recent(self, limit: int = 20) -> Sequence[AuditEntry]:
        return list(reversed(self._entries))[:limit]

    def dump(self) -> list[AuditEntry]:
        return list(self._entries)
