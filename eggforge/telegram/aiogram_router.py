"""Factory helpers to wire EggForge services into aiogram.

Everything user-visible is rendered here from the structured results the
core returns; the core never produces chat text.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, LabeledPrice, Message, PreCheckoutQuery, User

from ..app import EggApp
from ..domain.exceptions import ErrorKind
from ..domain.ledger import Balances
from ..domain.payments import SettlementReceipt
from ..domain.results import Err
from ..domain.session import Invoice, SessionResult
from ..storage.base import CollectionEntry
from .keyboards import (
    BUY_CALLBACK_PREFIX,
    COLLECTION_CALLBACK,
    HELP_CALLBACK,
    OPEN_CALLBACK,
    egg_keyboard,
    parse_buy_callback,
    purchase_keyboard,
    welcome_keyboard,
)

logger = logging.getLogger(__name__)

_PURCHASE_WORDS = ("купить", "buy")
_OPEN_WORDS = ("открыть", "открой", "open")
_COLLECTION_WORDS = ("коллекц", "collection")
_NUMBER = re.compile(r"(\d+)")

ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INSUFFICIENT_CREDITS: "😢 Яйца закончились! Купи ещё, чтобы продолжить собирать коллекцию.",
    ErrorKind.INVALID_EGG_SELECTION: "Такого яйца нет. Попробуй ещё раз!",
    ErrorKind.INVALID_AMOUNT: "Некорректное количество яиц.",
    ErrorKind.DUPLICATE_PAYMENT: "Этот платёж уже был учтён.",
    ErrorKind.PERSISTENCE_UNAVAILABLE: "⚠️ Сервис временно недоступен. Попробуй чуть позже.",
}


def build_router(app: EggApp) -> Router:
    router = Router()
    session = app.session
    settlement = app.settlement
    unit_price = app.config.payments.credit_unit_price

    async def reply_open(message: Message, user: User) -> None:
        result = await session.open_egg(user.id, display_name(user))
        text = format_egg_message(result)
        if not result.success:
            markup = (
                purchase_keyboard(unit_price)
                if result.error_kind is ErrorKind.INSUFFICIENT_CREDITS
                else None
            )
            await message.answer(text, reply_markup=markup)
            return
        if result.item_drawn and result.item_drawn.media_ref:
            await message.answer_photo(
                result.item_drawn.media_ref, caption=text, reply_markup=egg_keyboard()
            )
        else:
            await message.answer(text, reply_markup=egg_keyboard())

    async def reply_collection(message: Message, user: User) -> None:
        result = await session.inspect_collection(user.id, display_name(user))
        await message.answer(format_collection_message(result), reply_markup=egg_keyboard())

    async def reply_purchase(message: Message, user: User, quantity: int) -> None:
        result = await session.request_purchase(user.id, quantity, display_name=display_name(user))
        if not result.success or result.invoice is None:
            await message.answer(
                format_error(result.error_kind, max_quantity=result.details.get("max_quantity"))
            )
            return
        invoice = result.invoice
        logger.info("Sending invoice for %s eggs to user %s.", invoice.quantity, user.id)
        await message.answer_invoice(
            title=invoice_title(invoice),
            description=invoice_description(invoice),
            payload=invoice.payload,
            currency=invoice.currency,
            prices=[LabeledPrice(label=f"{invoice.quantity} яиц", amount=invoice.amount)],
            provider_token="",
        )

    @router.message(Command("start"))
    async def handle_start(message: Message) -> None:
        user = message.from_user
        if not user:
            return
        result = await session.start_session(user.id, display_name(user))
        await message.answer(render_welcome_message(result, unit_price), reply_markup=welcome_keyboard())

    @router.message(Command("help"))
    async def handle_help(message: Message) -> None:
        await message.answer(render_help_message(unit_price), reply_markup=welcome_keyboard())

    @router.message(Command("open"))
    async def handle_open(message: Message) -> None:
        if message.from_user:
            await reply_open(message, message.from_user)

    @router.message(Command("collection"))
    async def handle_collection(message: Message) -> None:
        if message.from_user:
            await reply_collection(message, message.from_user)

    @router.message(Command("buy"))
    async def handle_buy(message: Message, command: CommandObject) -> None:
        if not message.from_user:
            return
        quantity = parse_quantity(command.args)
        if quantity is None:
            await message.answer(
                "Сколько яиц купить?", reply_markup=purchase_keyboard(unit_price)
            )
            return
        await reply_purchase(message, message.from_user, quantity)

    @router.callback_query(F.data == OPEN_CALLBACK)
    async def handle_open_callback(callback: CallbackQuery) -> None:
        await callback.answer()
        if callback.message:
            await reply_open(callback.message, callback.from_user)

    @router.callback_query(F.data == COLLECTION_CALLBACK)
    async def handle_collection_callback(callback: CallbackQuery) -> None:
        await callback.answer()
        if callback.message:
            await reply_collection(callback.message, callback.from_user)

    @router.callback_query(F.data == HELP_CALLBACK)
    async def handle_help_callback(callback: CallbackQuery) -> None:
        await callback.answer()
        if callback.message:
            await callback.message.answer(
                render_help_message(unit_price), reply_markup=welcome_keyboard()
            )

    @router.callback_query(F.data.startswith(BUY_CALLBACK_PREFIX))
    async def handle_buy_callback(callback: CallbackQuery) -> None:
        quantity = parse_buy_callback(callback.data)
        await callback.answer()
        if quantity is not None and callback.message:
            await reply_purchase(callback.message, callback.from_user, quantity)

    @router.pre_checkout_query()
    async def handle_pre_checkout(query: PreCheckoutQuery) -> None:
        decision = settlement.approve_checkout(query.currency, query.total_amount)
        if isinstance(decision, Err):
            logger.warning("Pre-checkout %s rejected: %s", query.id, decision.error)
            await query.answer(ok=False, error_message=str(decision.error))
            return
        await query.answer(ok=True)

    @router.message(F.successful_payment)
    async def handle_successful_payment(message: Message) -> None:
        user = message.from_user
        payment = message.successful_payment
        if not user or not payment:
            return
        outcome = await settlement.settle(
            payment.telegram_payment_charge_id,
            user.id,
            payment.total_amount,
            unit_price,
        )
        if isinstance(outcome, Err):
            await message.answer(format_error(outcome.error.kind))
            return
        await message.answer(format_settlement_message(outcome.value), reply_markup=egg_keyboard())

    @router.message(F.text)
    async def handle_text(message: Message) -> None:
        user = message.from_user
        if not user or not message.text:
            return
        text = message.text.lower()
        if any(word in text for word in _PURCHASE_WORDS):
            quantity = parse_quantity(text)
            await reply_purchase(message, user, 1 if quantity is None else quantity)
        elif any(word in text for word in _OPEN_WORDS):
            await reply_open(message, user)
        elif any(word in text for word in _COLLECTION_WORDS):
            await reply_collection(message, user)
        else:
            await message.answer(render_help_message(unit_price), reply_markup=welcome_keyboard())

    return router


def display_name(user: User) -> str:
    return user.username or f"user_{user.id}"


def parse_quantity(text: str | None) -> int | None:
    """Return the first integer in ``text``, if any."""
    if not text:
        return None
    match = _NUMBER.search(text)
    return int(match.group(1)) if match else None


def format_balances(balances: Balances | None) -> str:
    if balances is None:
        return ""
    return (
        f"🥚 Осталось яиц: {balances.total} "
        f"(бесплатных: {balances.free}, купленных: {balances.purchased})"
    )


def format_error(kind: ErrorKind | None, *, max_quantity: int | None = None) -> str:
    if kind is ErrorKind.INVALID_AMOUNT and max_quantity:
        return f"Можно купить от 1 до {max_quantity} яиц за раз."
    if kind is None:
        return "Что-то пошло не так."
    return ERROR_MESSAGES[kind]


def render_welcome_message(result: SessionResult, credit_unit_price: int) -> str:
    if not result.success:
        return format_error(result.error_kind)
    lines = [
        "🥚 Игра началась! Открывай Киндер-яйца и собирай фигурки «Очень странных дел».",
        format_balances(result.balances),
        "",
        render_help_message(credit_unit_price),
    ]
    return "\n".join(lines)


def render_help_message(credit_unit_price: int) -> str:
    lines = [
        "Команды:",
        "• /open — открыть яйцо",
        "• /collection — посмотреть коллекцию",
        f"• /buy <кол-во> — купить яйца ({credit_unit_price} ⭐ за штуку)",
        "• /help — показать это сообщение",
        "",
        "Некоторые фигурки очень редкие. Уилл — самый редкий!",
    ]
    return "\n".join(lines)


def format_egg_message(result: SessionResult) -> str:
    if not result.success or result.item_drawn is None:
        lines = [format_error(result.error_kind)]
        if result.error_kind is ErrorKind.INSUFFICIENT_CREDITS:
            lines.append("Используй /buy 5, чтобы купить ещё яиц.")
        return "\n".join(lines)
    item = result.item_drawn
    lines = ["🥚 Ты открыл яйцо!", "", f"🎁 Тебе выпала: {item.name}!"]
    if item.rare:
        lines.append("🌟 Это редкая фигурка!")
    if item.owned > 1:
        lines.append(f"У тебя уже {item.owned} шт.")
    lines.append("")
    lines.append(format_balances(result.balances))
    return "\n".join(lines)


def format_collection_message(result: SessionResult) -> str:
    if not result.success:
        return format_error(result.error_kind)
    entries: Sequence[CollectionEntry] = result.collection_snapshot or ()
    if not entries:
        lines = ["Твоя коллекция пуста. Открой яйцо командой /open!"]
    else:
        lines = ["📦 Твоя коллекция:"]
        lines.extend(f"• {entry.item_name}: {entry.count}" for entry in entries)
    lines.append("")
    lines.append(format_balances(result.balances))
    return "\n".join(lines)


def format_settlement_message(receipt: SettlementReceipt) -> str:
    return "\n".join(
        [
            f"✅ Оплата получена! Начислено яиц: {receipt.credits_granted}.",
            format_balances(receipt.balances),
        ]
    )


def invoice_title(invoice: Invoice) -> str:
    return f"🥚 {invoice.quantity} Киндер-яиц"


def invoice_description(invoice: Invoice) -> str:
    return (
        f"Купить {invoice.quantity} яиц для игры в Киндер-сюрприз. "
        "Открывай яйца и собирай фигурки Stranger Things!"
    )
