"""Idempotent settlement of payment confirmations.

Every confirmation walks ``received -> applied | rejected_duplicate |
rejected_invalid``. The Payment Record is inserted before any credit is
granted, and its charge id is unique at the storage layer, so a redelivered
confirmation can never grant credits twice. The grant itself flips the record
from ``received`` to ``applied`` in the same transaction; a record left in
``received`` (process died between the two steps) is picked up by
:meth:`SettlementService.reconcile`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .events import PAYMENT_APPLIED, PAYMENT_REJECTED, EventBus
from .exceptions import DuplicatePayment, InvalidAmount, PaymentError, PersistenceUnavailable
from .ledger import Balances
from .results import Err, Ok, Result
from ..storage.base import (
    AccountRecord,
    AuditStore,
    PaymentRecord,
    PaymentStatus,
    PaymentStore,
    UserId,
    normalize_user_id,
    utcnow,
)
from ..storage.guard import StoreGuard

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PaymentConfirmation:
    charge_id: str
    user_id: UserId
    amount_paid: int
    credit_unit_price: int


@dataclass(slots=True, frozen=True)
class SettlementReceipt:
    charge_id: str
    user_id: str
    status: PaymentStatus
    credits_granted: int
    balances: Balances


def credits_for(amount_paid: int, credit_unit_price: int) -> int:
    """Convert a paid amount into whole credits or raise InvalidAmount."""
    for label, value in (("amount_paid", amount_paid), ("credit_unit_price", credit_unit_price)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAmount(f"{label} must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidAmount(f"{label} must be positive, got {value}")
    if amount_paid % credit_unit_price:
        raise InvalidAmount(
            f"Amount {amount_paid} is not a multiple of unit price {credit_unit_price}"
        )
    return amount_paid // credit_unit_price


class SettlementService:
    def __init__(
        self,
        payments: PaymentStore,
        event_bus: EventBus,
        *,
        audit: AuditStore | None = None,
        guard: StoreGuard | None = None,
        currency: str = "XTR",
        credit_unit_price: int = 10,
    ) -> None:
        self._payments = payments
        self._events = event_bus
        self._audit_store = audit
        self._guard = guard or StoreGuard()
        self.currency = currency
        self.credit_unit_price = credit_unit_price

    async def settle(
        self,
        charge_id: str,
        user_id: UserId,
        amount_paid: int,
        credit_unit_price: int,
    ) -> Result[SettlementReceipt, PaymentError | PersistenceUnavailable]:
        if not isinstance(charge_id, str) or not charge_id.strip():
            raise ValueError("charge_id must be a non-empty string")
        key = normalize_user_id(user_id)
        payload = {
            "charge_id": charge_id,
            "user_id": key,
            "amount_paid": amount_paid,
            "credit_unit_price": credit_unit_price,
        }

        try:
            credits = credits_for(amount_paid, credit_unit_price)
        except InvalidAmount as exc:
            logger.warning("Rejected payment %s: %s", charge_id, exc)
            await self._reject(PaymentStatus.REJECTED_INVALID, payload, str(exc))
            return Err(exc)

        record = PaymentRecord(
            charge_id=charge_id,
            user_id=key,
            amount_paid=amount_paid,
            credits_granted=credits,
        )
        try:
            await self._guard.call("payments.insert", self._payments.insert_received, record)
        except DuplicatePayment as exc:
            logger.warning("Duplicate delivery of payment %s ignored.", charge_id)
            await self._reject(PaymentStatus.REJECTED_DUPLICATE, payload, str(exc))
            return Err(exc)
        except PersistenceUnavailable as exc:
            return Err(exc)

        try:
            applied = await self._guard.call("payments.apply", self._payments.apply, charge_id)
        except PersistenceUnavailable as exc:
            logger.error(
                "Payment %s recorded but not applied; it will be picked up by reconcile.",
                charge_id,
            )
            return Err(exc)
        if applied is None:
            # Applied concurrently by a reconciliation pass.
            return Err(DuplicatePayment(charge_id))

        receipt = await self._applied(*applied, reconciled=False)
        return Ok(receipt)

    async def settle_confirmation(
        self, confirmation: PaymentConfirmation
    ) -> Result[SettlementReceipt, PaymentError | PersistenceUnavailable]:
        return await self.settle(
            confirmation.charge_id,
            confirmation.user_id,
            confirmation.amount_paid,
            confirmation.credit_unit_price,
        )

    async def reconcile(
        self,
        *,
        older_than: datetime | None = None,
        grace: timedelta = timedelta(minutes=1),
    ) -> list[SettlementReceipt]:
        """Apply payments recorded but never granted; each is granted at most once."""
        cutoff = older_than or utcnow() - grace
        pending = await self._guard.read("payments.pending", self._payments.pending, cutoff)
        receipts: list[SettlementReceipt] = []
        for record in pending:
            try:
                applied = await self._guard.call(
                    "payments.apply", self._payments.apply, record.charge_id
                )
            except PersistenceUnavailable:
                logger.error("Payment %s could not be reconciled; retrying next pass.", record.charge_id)
                continue
            if applied is None:
                continue
            receipts.append(await self._applied(*applied, reconciled=True))
        if receipts:
            logger.info("Reconciled %s pending payments.", len(receipts))
        return receipts

    def approve_checkout(self, currency: str, total_amount: int) -> Result[int, InvalidAmount]:
        """Decide a pre-checkout query; returns the credits the payment will buy."""
        if currency != self.currency:
            return Err(InvalidAmount(f"Invalid currency {currency!r}"))
        try:
            return Ok(credits_for(total_amount, self.credit_unit_price))
        except InvalidAmount as exc:
            return Err(exc)

    async def payment(self, charge_id: str) -> PaymentRecord | None:
        return await self._guard.read("payments.get", self._payments.get, charge_id)

    async def _applied(
        self, record: PaymentRecord, account: AccountRecord, *, reconciled: bool
    ) -> SettlementReceipt:
        receipt = SettlementReceipt(
            charge_id=record.charge_id,
            user_id=record.user_id,
            status=record.status,
            credits_granted=record.credits_granted,
            balances=Balances.of(account),
        )
        logger.info(
            "Payment %s applied: %s credits to user %s.",
            record.charge_id,
            record.credits_granted,
            record.user_id,
        )
        payload = {
            "charge_id": record.charge_id,
            "user_id": record.user_id,
            "amount_paid": record.amount_paid,
            "credits_granted": record.credits_granted,
            "reconciled": reconciled,
        }
        await self._audit(PaymentStatus.APPLIED.value, payload)
        await self._events.notify(PAYMENT_APPLIED, payload)
        return receipt

    async def _reject(self, status: PaymentStatus, payload: dict, reason: str) -> None:
        data = {**payload, "status": status.value, "reason": reason}
        await self._audit(status.value, data)
        await self._events.notify(PAYMENT_REJECTED, data)

    async def _audit(self, action: str, payload: dict) -> None:
        if self._audit_store is None:
            return
        try:
            await self._guard.call(
                "audit.add_entry", self._audit_store.add_entry, f"payment.{action}", payload
            )
        except PersistenceUnavailable:
            logger.warning("Audit entry for %s could not be written.", payload.get("charge_id"))
