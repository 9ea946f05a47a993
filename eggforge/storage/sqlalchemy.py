"""SQLAlchemy storage backend for EggForge."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

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


class Base(DeclarativeBase):
    pass


class AccountTable(Base):
    __tablename__ = "eggforge_accounts"
    __table_args__ = (
        CheckConstraint("free_credits >= 0", name="ck_accounts_free_non_negative"),
        CheckConstraint("purchased_credits >= 0", name="ck_accounts_purchased_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    free_credits: Mapped[int] = mapped_column(Integer, default=0)
    purchased_credits: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class CollectionTable(Base):
    __tablename__ = "eggforge_collection"
    __table_args__ = (
        UniqueConstraint("user_id", "item_name", name="uq_collection_user_item"),
        CheckConstraint("count >= 1", name="ck_collection_count_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    item_name: Mapped[str] = mapped_column(String(255))
    count: Mapped[int] = mapped_column(Integer, default=1)
    first_drawn_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PaymentTable(Base):
    __tablename__ = "eggforge_payments"

    # Primary key doubles as the idempotency constraint for redelivered charges.
    charge_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    amount_paid: Mapped[int] = mapped_column(Integer)
    credits_granted: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(32), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AuditTable(Base):
    __tablename__ = "eggforge_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    action: Mapped[str] = mapped_column(String(128))
    payload: Mapped[dict] = mapped_column(JSON)


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False, free_credit_grant: int = 5) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        self._accounts = AsyncSQLAlchemyAccountStore(
            self._session_factory, free_credit_grant=free_credit_grant
        )

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def account_store(self) -> "AsyncSQLAlchemyAccountStore":
        return self._accounts

    def collection_store(self) -> "AsyncSQLAlchemyCollectionStore":
        return AsyncSQLAlchemyCollectionStore(self._session_factory)

    def payment_store(self) -> "AsyncSQLAlchemyPaymentStore":
        return AsyncSQLAlchemyPaymentStore(self._session_factory, self._accounts)

    def audit_store(self) -> "AsyncSQLAlchemyAuditStore":
        return AsyncSQLAlchemyAuditStore(self._session_factory)


def _to_account(row: AccountTable) -> AccountRecord:
    return AccountRecord(
        user_id=row.user_id,
        display_name=row.display_name,
        free_credits=row.free_credits,
        purchased_credits=row.purchased_credits,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _to_payment(row: PaymentTable) -> PaymentRecord:
    return PaymentRecord(
        charge_id=row.charge_id,
        user_id=row.user_id,
        amount_paid=row.amount_paid,
        credits_granted=row.credits_granted,
        status=PaymentStatus(row.status),
        created_at=as_utc(row.created_at),
        applied_at=as_utc(row.applied_at) if row.applied_at else None,
    )


class AsyncSQLAlchemyAccountStore(AccountStore):
    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], *, free_credit_grant: int = 5
    ) -> None:
        self._session_factory = session_factory
        self._grant = free_credit_grant

    async def get_or_create(self, user_id: str, display_name: str | None = None) -> AccountRecord:
        async with self._session_factory() as session:
            row = await session.get(AccountTable, user_id)
            if row is None:
                now = utcnow()
                row = AccountTable(
                    user_id=user_id,
                    display_name=display_name,
                    free_credits=self._grant,
                    purchased_credits=0,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    # Another request created the account first.
                    await session.rollback()
                    row = await session.get(AccountTable, user_id)
            if display_name and row.display_name != display_name:
                row.display_name = display_name
                row.updated_at = utcnow()
                await session.commit()
            return _to_account(row)

    async def get(self, user_id: str) -> AccountRecord | None:
        async with self._session_factory() as session:
            row = await session.get(AccountTable, user_id)
            return _to_account(row) if row else None

    async def consume_credit(self, user_id: str) -> tuple[AccountRecord, CreditSource]:
        async with self._session_factory() as session:
            async with session.begin():
                for source, column in (
                    (CreditSource.FREE, AccountTable.free_credits),
                    (CreditSource.PURCHASED, AccountTable.purchased_credits),
                ):
                    stmt = (
                        update(AccountTable)
                        .where(AccountTable.user_id == user_id, column > 0)
                        .values({column: column - 1, AccountTable.updated_at: utcnow()})
                    )
                    result = await session.execute(stmt)
                    if result.rowcount == 1:
                        break
                else:
                    raise InsufficientCredits(user_id)
                row = await session.get(AccountTable, user_id, populate_existing=True)
                return _to_account(row), source

    async def refund_credit(self, user_id: str, source: CreditSource) -> AccountRecord:
        column = (
            AccountTable.free_credits
            if source is CreditSource.FREE
            else AccountTable.purchased_credits
        )
        return await self._add(user_id, column, 1)

    async def grant_purchased(self, user_id: str, count: int) -> AccountRecord:
        await self.get_or_create(user_id)
        return await self._add(user_id, AccountTable.purchased_credits, count)

    async def _add(self, user_id: str, column, amount: int) -> AccountRecord:
        async with self._session_factory() as session:
            async with session.begin():
                row = await add_credits(session, user_id, column, amount)
                return _to_account(row)


async def add_credits(session: AsyncSession, user_id: str, column, amount: int) -> AccountTable:
    """Increment a balance column inside the caller's transaction."""
    stmt = (
        update(AccountTable)
        .where(AccountTable.user_id == user_id)
        .values({column: column + amount, AccountTable.updated_at: utcnow()})
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        raise LookupError(f"Account {user_id} not found")
    return await session.get(AccountTable, user_id, populate_existing=True)


class AsyncSQLAlchemyCollectionStore(CollectionStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def increment(self, user_id: str, item_name: str, amount: int = 1) -> int:
        async with self._session_factory() as session:
            count = await self._bump(session, user_id, item_name, amount)
            if count is not None:
                return count
            try:
                async with session.begin():
                    session.add(
                        CollectionTable(
                            user_id=user_id,
                            item_name=item_name,
                            count=amount,
                            first_drawn_at=utcnow(),
                        )
                    )
                return amount
            except IntegrityError:
                # Lost the insert race; the row exists now.
                count = await self._bump(session, user_id, item_name, amount)
                if count is None:
                    raise
                return count

    async def _bump(
        self, session: AsyncSession, user_id: str, item_name: str, amount: int
    ) -> int | None:
        async with session.begin():
            stmt = (
                update(CollectionTable)
                .where(CollectionTable.user_id == user_id, CollectionTable.item_name == item_name)
                .values(count=CollectionTable.count + amount)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return None
            count = await session.scalar(
                select(CollectionTable.count).where(
                    CollectionTable.user_id == user_id, CollectionTable.item_name == item_name
                )
            )
            return int(count)

    async def entries(self, user_id: str) -> Sequence[CollectionEntry]:
        async with self._session_factory() as session:
            stmt = (
                select(CollectionTable.item_name, CollectionTable.count)
                .where(CollectionTable.user_id == user_id)
                .order_by(CollectionTable.id)
            )
            rows = (await session.execute(stmt)).all()
            return [CollectionEntry(item_name=name, count=count) for name, count in rows]


class AsyncSQLAlchemyPaymentStore(PaymentStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        accounts: AsyncSQLAlchemyAccountStore,
    ) -> None:
        self._session_factory = session_factory
        self._accounts = accounts

    async def insert_received(self, record: PaymentRecord) -> None:
        async with self._session_factory() as session:
            session.add(
                PaymentTable(
                    charge_id=record.charge_id,
                    user_id=record.user_id,
                    amount_paid=record.amount_paid,
                    credits_granted=record.credits_granted,
                    status=PaymentStatus.RECEIVED.value,
                    created_at=record.created_at,
                    applied_at=None,
                )
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicatePayment(record.charge_id) from exc

    async def apply(self, charge_id: str) -> tuple[PaymentRecord, AccountRecord] | None:
        payment = await self.get(charge_id)
        if payment is None or payment.status is not PaymentStatus.RECEIVED:
            return None
        await self._accounts.get_or_create(payment.user_id)
        async with self._session_factory() as session:
            async with session.begin():
                stmt = (
                    update(PaymentTable)
                    .where(
                        PaymentTable.charge_id == charge_id,
                        PaymentTable.status == PaymentStatus.RECEIVED.value,
                    )
                    .values(status=PaymentStatus.APPLIED.value, applied_at=utcnow())
                )
                result = await session.execute(stmt)
                if result.rowcount != 1:
                    return None
                account = await add_credits(
                    session,
                    payment.user_id,
                    AccountTable.purchased_credits,
                    payment.credits_granted,
                )
                row = await session.get(PaymentTable, charge_id, populate_existing=True)
                return _to_payment(row), _to_account(account)

    async def get(self, charge_id: str) -> PaymentRecord | None:
        async with self._session_factory() as session:
            row = await session.get(PaymentTable, charge_id)
            return _to_payment(row) if row else None

    async def pending(self, older_than: datetime | None = None) -> Sequence[PaymentRecord]:
        async with self._session_factory() as session:
            stmt = select(PaymentTable).where(PaymentTable.status == PaymentStatus.RECEIVED.value)
            if older_than is not None:
                stmt = stmt.where(PaymentTable.created_at <= older_than)
            rows = (await session.execute(stmt.order_by(PaymentTable.created_at))).scalars().all()
            return [_to_payment(row) for row in rows]


class AsyncSQLAlchemyAuditStore(AuditStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_entry(self, action: str, payload: dict) -> None:
        async with self._session_factory() as session:
            session.add(
                AuditTable(
                    created_at=utcnow(),
                    action=action,
                    payload=dict(payload),
                )
            )
            await session.commit()

    async def recent(self, limit: int = 20) -> Sequence[AuditEntry]:
        async with self._session_factory() as session:
            stmt = select(AuditTable).order_by(AuditTable.id.desc()).limit(limit)
            rows = (await session.execute(stmt)).scalars().all()
            return [
                AuditEntry(
                    created_at=as_utc(row.created_at),
                    action=row.action,
                    payload=dict(row.payload),
                )
                for row in rows
            ]
