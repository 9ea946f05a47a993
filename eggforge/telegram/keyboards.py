"""Keyboard helpers for EggForge bots."""

from __future__ import annotations

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

OPEN_CALLBACK = "eggforge:open"
COLLECTION_CALLBACK = "eggforge:collection"
HELP_CALLBACK = "eggforge:help"
BUY_CALLBACK_PREFIX = "eggforge:buy:"

DEFAULT_BUNDLES: tuple[int, ...] = (1, 5, 10)


def egg_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🥚 Открыть ещё", callback_data=OPEN_CALLBACK)],
            [InlineKeyboardButton(text="📦 Коллекция", callback_data=COLLECTION_CALLBACK)],
        ]
    )


def welcome_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🥚 Открыть яйцо", callback_data=OPEN_CALLBACK)],
            [InlineKeyboardButton(text="📦 Коллекция", callback_data=COLLECTION_CALLBACK)],
            [InlineKeyboardButton(text="ℹ️ Помощь", callback_data=HELP_CALLBACK)],
        ]
    )


def purchase_keyboard(
    credit_unit_price: int, bundles: Sequence[int] = DEFAULT_BUNDLES
) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=f"🛒 {quantity} шт. за {quantity * credit_unit_price} ⭐",
                    callback_data=f"{BUY_CALLBACK_PREFIX}{quantity}",
                )
            ]
            for quantity in bundles
        ]
    )


def parse_buy_callback(data: str | None) -> int | None:
    if not data or not data.startswith(BUY_CALLBACK_PREFIX):
        return None
    raw = data[len(BUY_CALLBACK_PREFIX):]
    return int(raw) if raw.isdigit() else None
