from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.filters import CommandObject

from eggforge.domain.ledger import Balances
from eggforge.telegram.aiogram_router import build_router
from eggforge.testing import memory_app  # noqa: F401


def _handler(observer, name):
    return next(handler.callback for handler in observer.handlers if handler.callback.__name__ == name)


def _message(text: str = "", user_id: int = 1, **extra):
    return SimpleNamespace(
        text=text,
        from_user=SimpleNamespace(id=user_id, username="tester"),
        answer=AsyncMock(),
        answer_photo=AsyncMock(),
        answer_invoice=AsyncMock(),
        **extra,
    )


@pytest.mark.asyncio()
async def test_start_creates_account(memory_app):
    router = build_router(memory_app)
    message = _message("/start")
    await _handler(router.message, "handle_start")(message)

    text = message.answer.await_args.args[0]
    assert "Осталось яиц: 5" in text
    account = await memory_app.ledger.fetch(1)
    assert account.display_name == "tester"


@pytest.mark.asyncio()
async def test_open_sends_result(memory_app):
    router = build_router(memory_app)
    message = _message("/open")
    await _handler(router.message, "handle_open")(message)

    text = message.answer.await_args.args[0]
    assert "Тебе выпала" in text
    assert await memory_app.ledger.balances(1) == Balances(free=4, purchased=0)


@pytest.mark.asyncio()
async def test_buy_command_sends_invoice(memory_app):
    router = build_router(memory_app)
    message = _message("/buy 3")
    command = CommandObject(prefix="/", command="buy", args="3")
    await _handler(router.message, "handle_buy")(message, command)

    kwargs = message.answer_invoice.await_args.kwargs
    assert kwargs["currency"] == "XTR"
    assert kwargs["prices"][0].amount == 30
    assert kwargs["provider_token"] == ""
    assert kwargs["title"] == "🥚 3 Киндер-яиц"


@pytest.mark.asyncio()
async def test_text_purchase_keyword(memory_app):
    router = build_router(memory_app)
    message = _message("Хочу купить 2 яйца")
    await _handler(router.message, "handle_text")(message)
    assert message.answer_invoice.await_args.kwargs["prices"][0].amount == 20


@pytest.mark.asyncio()
async def test_text_purchase_over_limit_is_refused(memory_app):
    router = build_router(memory_app)
    message = _message("buy 1000")
    await _handler(router.message, "handle_text")(message)
    message.answer_invoice.assert_not_awaited()
    assert "от 1 до 100" in message.answer.await_args.args[0]


@pytest.mark.asyncio()
async def test_text_purchase_of_zero_is_refused(memory_app):
    router = build_router(memory_app)
    message = _message("купить 0")
    await _handler(router.message, "handle_text")(message)
    message.answer_invoice.assert_not_awaited()
    assert "от 1 до 100" in message.answer.await_args.args[0]


@pytest.mark.asyncio()
async def test_text_purchase_defaults_to_one_egg(memory_app):
    router = build_router(memory_app)
    message = _message("купить")
    await _handler(router.message, "handle_text")(message)
    assert message.answer_invoice.await_args.kwargs["prices"][0].amount == 10


@pytest.mark.asyncio()
async def test_pre_checkout_rejects_foreign_currency(memory_app):
    router = build_router(memory_app)
    handler = _handler(router.pre_checkout_query, "handle_pre_checkout")

    query = SimpleNamespace(id="q1", currency="USD", total_amount=50, answer=AsyncMock())
    await handler(query)
    assert query.answer.await_args.kwargs["ok"] is False

    query = SimpleNamespace(id="q2", currency="XTR", total_amount=50, answer=AsyncMock())
    await handler(query)
    query.answer.assert_awaited_once_with(ok=True)


@pytest.mark.asyncio()
async def test_successful_payment_is_settled_once(memory_app):
    router = build_router(memory_app)
    handler = _handler(router.message, "handle_successful_payment")
    payment = SimpleNamespace(telegram_payment_charge_id="abc", total_amount=50, currency="XTR")

    first = _message(successful_payment=payment)
    await handler(first)
    assert "Начислено яиц: 5" in first.answer.await_args.args[0]

    second = _message(successful_payment=payment)
    await handler(second)
    assert "уже был учтён" in second.answer.await_args.args[0]
    assert await memory_app.ledger.balances(1) == Balances(free=5, purchased=5)
