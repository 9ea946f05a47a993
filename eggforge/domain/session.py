"""User-facing game operations composed from ledger, draw engine and collection."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from .draw import DrawEngine
from .events import EGG_OPENED, SESSION_STARTED, EventBus
from .exceptions import ErrorKind, PersistenceUnavailable
from .collection import CollectionService
from .ledger import Balances, LedgerService
from .results import Err
from ..storage.base import CollectionEntry, CreditSource, UserId, normalize_user_id

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    START = "start"
    OPEN_EGG = "open_egg"
    INSPECT = "inspect"
    REQUEST_PURCHASE = "request_purchase"


class ResultKind(str, Enum):
    SESSION_STARTED = "session_started"
    EGG_OPENED = "egg_opened"
    COLLECTION = "collection"
    PURCHASE_INVOICE = "purchase_invoice"


@dataclass(slots=True, frozen=True)
class Command:
    user_id: UserId
    display_name: str | None
    intent: Intent
    quantity: int = 1


@dataclass(slots=True, frozen=True)
class DrawnItem:
    name: str
    media_ref: str | None
    rare: bool = False
    owned: int = 1


@dataclass(slots=True, frozen=True)
class Invoice:
    quantity: int
    amount: int
    currency: str
    payload: str


@dataclass(slots=True, frozen=True)
class SessionResult:
    """Structured outcome handed to the presentation layer."""

    success: bool
    kind: ResultKind
    item_drawn: DrawnItem | None = None
    collection_snapshot: Sequence[CollectionEntry] | None = None
    balances: Balances | None = None
    error_kind: ErrorKind | None = None
    invoice: Invoice | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "kind": self.kind.value}
        if self.item_drawn is not None:
            data["itemDrawn"] = {
                "name": self.item_drawn.name,
                "mediaRef": self.item_drawn.media_ref,
                "rare": self.item_drawn.rare,
                "owned": self.item_drawn.owned,
            }
        if self.collection_snapshot is not None:
            data["collectionSnapshot"] = [
                {"name": entry.item_name, "count": entry.count}
                for entry in self.collection_snapshot
            ]
        if self.balances is not None:
            data["balances"] = {"free": self.balances.free, "purchased": self.balances.purchased}
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind.value
        if self.invoice is not None:
            data["invoice"] = {
                "quantity": self.invoice.quantity,
                "amount": self.invoice.amount,
                "currency": self.invoice.currency,
                "payload": self.invoice.payload,
            }
        return data


class GameSession:
    """Facade for start/open/inspect/purchase requests."""

    def __init__(
        self,
        ledger: LedgerService,
        collection: CollectionService,
        draw_engine: DrawEngine,
        event_bus: EventBus,
        *,
        credit_unit_price: int = 10,
        currency: str = "XTR",
        max_purchase_quantity: int = 100,
    ) -> None:
        self._ledger = ledger
        self._collection = collection
        self._draw = draw_engine
        self._events = event_bus
        self._unit_price = credit_unit_price
        self._currency = currency
        self._max_quantity = max_purchase_quantity

    async def handle(self, command: Command) -> SessionResult:
        if command.intent is Intent.START:
            return await self.start_session(command.user_id, command.display_name)
        if command.intent is Intent.OPEN_EGG:
            return await self.open_egg(command.user_id, command.display_name)
        if command.intent is Intent.INSPECT:
            return await self.inspect_collection(command.user_id, command.display_name)
        if command.intent is Intent.REQUEST_PURCHASE:
            return await self.request_purchase(
                command.user_id, command.quantity, display_name=command.display_name
            )
        raise ValueError(f"Unsupported intent {command.intent!r}")

    async def start_session(self, user_id: UserId, display_name: str | None = None) -> SessionResult:
        try:
            account = await self._ledger.ensure_account(user_id, display_name)
        except PersistenceUnavailable:
            return _unavailable(ResultKind.SESSION_STARTED)
        await self._events.notify(SESSION_STARTED, {"user_id": account.user_id})
        return SessionResult(
            success=True,
            kind=ResultKind.SESSION_STARTED,
            balances=Balances.of(account),
        )

    async def open_egg(self, user_id: UserId, display_name: str | None = None) -> SessionResult:
        kind = ResultKind.EGG_OPENED
        try:
            account = await self._ledger.ensure_account(user_id, display_name)
        except PersistenceUnavailable:
            return _unavailable(kind)

        consumed = await self._ledger.consume_one_credit(account.user_id)
        if isinstance(consumed, Err):
            return SessionResult(
                success=False,
                kind=kind,
                balances=Balances.of(account),
                error_kind=consumed.error.kind,
            )
        consumption = consumed.value

        item = self._draw.draw()
        try:
            owned = await self._collection.record_draw(account.user_id, item.name)
        except PersistenceUnavailable:
            await self._compensate(account.user_id, consumption.source)
            return _unavailable(kind)

        logger.info("User %s opened an egg: %s", account.user_id, item.name)
        await self._events.notify(
            EGG_OPENED,
            {
                "user_id": account.user_id,
                "item": item.name,
                "rare": item.rare,
                "source": consumption.source.value,
            },
        )
        return SessionResult(
            success=True,
            kind=kind,
            item_drawn=DrawnItem(
                name=item.name,
                media_ref=item.media_ref,
                rare=item.rare,
                owned=owned,
            ),
            balances=Balances.of(consumption.account),
        )

    async def inspect_collection(
        self, user_id: UserId, display_name: str | None = None
    ) -> SessionResult:
        kind = ResultKind.COLLECTION
        try:
            account = await self._ledger.ensure_account(user_id, display_name)
            snapshot = await self._collection.snapshot(account.user_id)
        except PersistenceUnavailable:
            return _unavailable(kind)
        return SessionResult(
            success=True,
            kind=kind,
            collection_snapshot=tuple(snapshot),
            balances=Balances.of(account),
        )

    async def request_purchase(
        self, user_id: UserId, quantity: int, *, display_name: str | None = None
    ) -> SessionResult:
        kind = ResultKind.PURCHASE_INVOICE
        if (
            isinstance(quantity, bool)
            or not isinstance(quantity, int)
            or not 1 <= quantity <= self._max_quantity
        ):
            return SessionResult(
                success=False,
                kind=kind,
                error_kind=ErrorKind.INVALID_AMOUNT,
                details={"max_quantity": self._max_quantity},
            )
        key = normalize_user_id(user_id)
        try:
            account = await self._ledger.ensure_account(key, display_name)
        except PersistenceUnavailable:
            return _unavailable(kind)
        invoice = Invoice(
            quantity=quantity,
            amount=quantity * self._unit_price,
            currency=self._currency,
            payload=json.dumps({"quantity": quantity, "user_id": key}),
        )
        return SessionResult(
            success=True,
            kind=kind,
            balances=Balances.of(account),
            invoice=invoice,
        )

    async def _compensate(self, user_id: str, source: CreditSource) -> None:
        try:
            await self._ledger.refund_credit(user_id, source)
        except PersistenceUnavailable:
            logger.error("Could not return a %s credit to user %s.", source.value, user_id)


def _unavailable(kind: ResultKind) -> SessionResult:
    return SessionResult(
        success=False,
        kind=kind,
        error_kind=ErrorKind.PERSISTENCE_UNAVAILABLE,
    )
