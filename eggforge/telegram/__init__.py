"""Telegram integration helpers."""

from .aiogram_router import build_router
from .filters import AdminFilter
from .keyboards import egg_keyboard, purchase_keyboard, welcome_keyboard

__all__ = [
    "build_router",
    "AdminFilter",
    "egg_keyboard",
    "purchase_keyboard",
    "welcome_keyboard",
]
