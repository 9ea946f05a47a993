"""Async test client that bypasses Telegram transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from ..domain.payments import SettlementService
from ..domain.results import Err
from ..domain.session import Command, GameSession, Intent, SessionResult


@dataclass(slots=True)
class TestMessage:
    __test__ = False

    text: str
    metadata: Dict[str, Any]


class TestClient:
    __test__ = False

    """Facilitate scenario testing without Telegram HTTP calls."""

    def __init__(self, session: GameSession, settlement: SettlementService) -> None:
        self._session = session
        self._settlement = settlement
        self._log: List[TestMessage] = []

    async def send(
        self,
        user_id: int | str,
        intent: Intent,
        *,
        quantity: int = 1,
        username: str | None = None,
    ) -> SessionResult:
        result = await self._session.handle(
            Command(user_id=user_id, display_name=username, intent=intent, quantity=quantity)
        )
        self._log.append(TestMessage(text=intent.value, metadata=result.to_dict()))
        return result

    async def start(self, user_id: int | str, username: str | None = None) -> SessionResult:
        return await self.send(user_id, Intent.START, username=username)

    async def open(self, user_id: int | str, username: str | None = None) -> SessionResult:
        return await self.send(user_id, Intent.OPEN_EGG, username=username)

    async def pay(
        self, user_id: int | str, charge_id: str, amount_paid: int, credit_unit_price: int = 10
    ) -> bool:
        outcome = await self._settlement.settle(charge_id, user_id, amount_paid, credit_unit_price)
        if isinstance(outcome, Err):
            self._log.append(
                TestMessage(
                    text=f"Payment {charge_id} rejected",
                    metadata={"error_kind": outcome.error.kind.value},
                )
            )
            return False
        self._log.append(
            TestMessage(
                text=f"Payment {charge_id} applied",
                metadata={"credits_granted": outcome.value.credits_granted},
            )
        )
        return True

    def history(self) -> List[TestMessage]:
        return list(self._log)
