"""Administrative operations for EggForge bots."""

from __future__ import annotations

from typing import Sequence

from ..domain.events import CREDITS_GRANTED, EventBus
from ..domain.ledger import Balances, LedgerService
from ..domain.payments import SettlementReceipt, SettlementService
from ..storage.base import AuditEntry, AuditStore, UserId, normalize_user_id, utcnow


class AdminService:
    def __init__(
        self,
        ledger: LedgerService,
        settlement: SettlementService,
        audit_store: AuditStore,
        event_bus: EventBus,
    ) -> None:
        self._ledger = ledger
        self._settlement = settlement
        self._audit_store = audit_store
        self._events = event_bus

    async def grant_credits(
        self, user_id: UserId, count: int, *, reason: str | None = None
    ) -> Balances:
        """Grant purchased credits by hand, e.g. to compensate a failed delivery."""
        user_key = normalize_user_id(user_id)
        account = await self._ledger.grant_purchased_credits(user_key, count)
        payload = {"user_id": user_key, "count": count, "reason": reason}
        await self._audit("grant_credits", payload)
        await self._events.notify(CREDITS_GRANTED, payload)
        return Balances.of(account)

    async def reconcile_payments(self) -> list[SettlementReceipt]:
        receipts = await self._settlement.reconcile()
        await self._audit(
            "reconcile", {"applied": [receipt.charge_id for receipt in receipts]}
        )
        return receipts

    async def recent_audit(self, limit: int = 20) -> Sequence[AuditEntry]:
        return await self._audit_store.recent(limit)

    async def _audit(self, action: str, payload: dict) -> None:
        await self._audit_store.add_entry(
            f"admin.{action}",
            {
                "timestamp": utcnow().isoformat(),
                **payload,
            },
        )
