"""Egg-credit balances and consumption rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .exceptions import InsufficientCredits, PersistenceUnavailable
from .results import Err, Ok, Result
from ..storage.base import AccountRecord, AccountStore, CreditSource, UserId, normalize_user_id
from ..storage.guard import StoreGuard

logger = logging.getLogger(__name__)

Account = AccountRecord


@dataclass(slots=True, frozen=True)
class Balances:
    free: int
    purchased: int

    @property
    def total(self) -> int:
        return self.free + self.purchased

    @classmethod
    def of(cls, account: AccountRecord) -> "Balances":
        return cls(free=account.free_credits, purchased=account.purchased_credits)


@dataclass(slots=True, frozen=True)
class Consumption:
    account: AccountRecord
    source: CreditSource


class LedgerService:
    """Read and mutate per-user egg credits.

    Free credits are always spent before purchased ones. Every mutation is a
    single atomic store operation, so concurrent requests for the same user
    can never overdraw the balance.
    """

    def __init__(self, store: AccountStore, *, guard: StoreGuard | None = None) -> None:
        self._store = store
        self._guard = guard or StoreGuard()

    async def ensure_account(self, user_id: UserId, display_name: str | None = None) -> Account:
        key = normalize_user_id(user_id)
        return await self._guard.call(
            "accounts.get_or_create", self._store.get_or_create, key, display_name
        )

    async def fetch(self, user_id: UserId) -> Account | None:
        key = normalize_user_id(user_id)
        return await self._guard.read("accounts.get", self._store.get, key)

    async def balances(self, user_id: UserId) -> Balances:
        account = await self.fetch(user_id)
        if account is None:
            return Balances(free=0, purchased=0)
        return Balances.of(account)

    @staticmethod
    def available_credits(account: Account) -> int:
        return account.free_credits + account.purchased_credits

    async def consume_one_credit(
        self, user_id: UserId
    ) -> Result[Consumption, InsufficientCredits | PersistenceUnavailable]:
        key = normalize_user_id(user_id)
        try:
            account, source = await self._guard.call(
                "accounts.consume_credit", self._store.consume_credit, key
            )
        except InsufficientCredits as exc:
            logger.info("User %s has no credits left.", key)
            return Err(exc)
        except PersistenceUnavailable as exc:
            return Err(exc)
        return Ok(Consumption(account=account, source=source))

    async def refund_credit(self, user_id: UserId, source: CreditSource) -> Account:
        key = normalize_user_id(user_id)
        return await self._guard.call(
            "accounts.refund_credit", self._store.refund_credit, key, source
        )

    async def grant_purchased_credits(self, user_id: UserId, count: int) -> Account:
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValueError("Credit count must be a positive integer")
        key = normalize_user_id(user_id)
        account = await self._guard.call(
            "accounts.grant_purchased", self._store.grant_purchased, key, count
        )
        logger.info("Granted %s purchased credits to user %s.", count, key)
        return account
