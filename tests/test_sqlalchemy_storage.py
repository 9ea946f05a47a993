import asyncio
from datetime import timedelta
from random import Random

import pytest
import pytest_asyncio

from eggforge.app import EggApp
from eggforge.config import EggForgeConfig, StorageConfig
from eggforge.domain.exceptions import ErrorKind
from eggforge.domain.ledger import Balances
from eggforge.domain.results import Err, Ok
from eggforge.storage.base import PaymentRecord, PaymentStatus, utcnow


@pytest_asyncio.fixture()
async def sql_app(tmp_path):
    dsn = f"sqlite+aiosqlite:///{(tmp_path / 'eggs.db').as_posix()}"
    config = EggForgeConfig(
        bot_token="test",
        storage=StorageConfig(backend="sqlalchemy", dsn=dsn),
    )
    app = EggApp(config, rng=Random(11))
    await app.init_backend()
    yield app
    await app.close()


@pytest.mark.asyncio()
async def test_account_lifecycle(sql_app):
    account = await sql_app.ledger.ensure_account(100, "first")
    assert account.free_credits == 5

    account = await sql_app.ledger.ensure_account(100, "renamed")
    assert account.display_name == "renamed"
    assert account.free_credits == 5


@pytest.mark.asyncio()
async def test_consumption_and_exhaustion(sql_app):
    await sql_app.ledger.ensure_account(1)
    for remaining in range(4, -1, -1):
        result = await sql_app.ledger.consume_one_credit(1)
        assert isinstance(result, Ok)
        assert result.value.account.free_credits == remaining

    result = await sql_app.ledger.consume_one_credit(1)
    assert isinstance(result, Err)
    assert result.error.kind is ErrorKind.INSUFFICIENT_CREDITS


@pytest.mark.asyncio()
async def test_collection_counts(sql_app):
    assert await sql_app.collection.record_draw(1, "Майк") == 1
    assert await sql_app.collection.record_draw(1, "Майк") == 2
    assert await sql_app.collection.record_draw(1, "Уилл") == 1

    snapshot = await sql_app.collection.snapshot(1)
    assert [(entry.item_name, entry.count) for entry in snapshot] == [("Майк", 2), ("Уилл", 1)]


@pytest.mark.asyncio()
async def test_settlement_is_idempotent(sql_app):
    await sql_app.ledger.ensure_account(1)
    first = await sql_app.settlement.settle("abc", 1, 50, 10)
    assert isinstance(first, Ok)
    assert first.value.balances == Balances(free=5, purchased=5)

    second = await sql_app.settlement.settle("abc", 1, 50, 10)
    assert isinstance(second, Err)
    assert second.error.kind is ErrorKind.DUPLICATE_PAYMENT
    assert await sql_app.ledger.balances(1) == Balances(free=5, purchased=5)

    record = await sql_app.settlement.payment("abc")
    assert record.status is PaymentStatus.APPLIED


@pytest.mark.asyncio()
async def test_settlement_creates_missing_account(sql_app):
    result = await sql_app.settlement.settle("new-user", 77, 20, 10)
    assert isinstance(result, Ok)
    assert await sql_app.ledger.balances(77) == Balances(free=5, purchased=2)


@pytest.mark.asyncio()
async def test_reconcile_applies_stuck_payment(sql_app):
    await sql_app.payment_store.insert_received(
        PaymentRecord(
            charge_id="stuck",
            user_id="5",
            amount_paid=30,
            credits_granted=3,
            created_at=utcnow() - timedelta(minutes=5),
        )
    )

    receipts = await sql_app.settlement.reconcile()
    assert [receipt.charge_id for receipt in receipts] == ["stuck"]
    assert await sql_app.settlement.reconcile() == []
    assert await sql_app.ledger.balances(5) == Balances(free=5, purchased=3)


@pytest.mark.asyncio()
async def test_audit_entries_are_persisted(sql_app):
    await sql_app.settlement.settle("abc", 1, 50, 10)
    entries = await sql_app.audit_store.recent(5)
    assert entries[0].action == "payment.applied"
    assert entries[0].payload["charge_id"] == "abc"


@pytest.mark.asyncio()
async def test_session_scenario_on_sqlite(sql_app):
    for _ in range(5):
        assert (await sql_app.session.open_egg(1)).success
    assert (await sql_app.session.open_egg(1)).error_kind is ErrorKind.INSUFFICIENT_CREDITS

    await sql_app.settlement.settle("abc", 1, 10, 10)
    result = await sql_app.session.open_egg(1)
    assert result.success
    assert result.balances == Balances(free=0, purchased=0)

    collection = await sql_app.session.inspect_collection(1)
    assert sum(entry.count for entry in collection.collection_snapshot) == 6


@pytest.mark.asyncio()
async def test_concurrent_consumption_never_overdraws(sql_app):
    await sql_app.ledger.ensure_account(1)
    results = await asyncio.gather(*(sql_app.ledger.consume_one_credit(1) for _ in range(20)))

    assert sum(isinstance(result, Ok) for result in results) == 5
    assert await sql_app.ledger.balances(1) == Balances(free=0, purchased=0)


@pytest.mark.asyncio()
async def test_concurrent_opens_for_new_user(sql_app):
    results = await asyncio.gather(*(sql_app.session.open_egg(42) for _ in range(8)))

    opened = [result for result in results if result.success]
    assert len(opened) == 5
    assert all(
        result.error_kind is ErrorKind.INSUFFICIENT_CREDITS
        for result in results
        if not result.success
    )
    snapshot = await sql_app.collection.snapshot(42)
    assert sum(entry.count for entry in snapshot) == 5
    assert await sql_app.ledger.balances(42) == Balances(free=0, purchased=0)


@pytest.mark.asyncio()
async def test_concurrent_first_draws_share_one_row(sql_app):
    counts = await asyncio.gather(*(sql_app.collection.record_draw(1, "Майк") for _ in range(10)))

    assert max(counts) == 10
    snapshot = await sql_app.collection.snapshot(1)
    assert [(entry.item_name, entry.count) for entry in snapshot] == [("Майк", 10)]


@pytest.mark.asyncio()
async def test_concurrent_duplicate_settlement_grants_once(sql_app):
    await sql_app.ledger.ensure_account(1)
    results = await asyncio.gather(*(sql_app.settlement.settle("dup", 1, 30, 10) for _ in range(6)))

    assert sum(isinstance(result, Ok) for result in results) == 1
    assert all(
        result.error.kind is ErrorKind.DUPLICATE_PAYMENT
        for result in results
        if isinstance(result, Err)
    )
    assert await sql_app.ledger.balances(1) == Balances(free=5, purchased=3)
