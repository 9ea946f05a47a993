"""Reusable aiogram filters for EggForge bots."""

from __future__ import annotations

from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message

from ..config import EggForgeConfig


class AdminFilter(BaseFilter):
    """Let through only users listed in ``AdminConfig.admin_ids``."""

    def __init__(self, config: EggForgeConfig) -> None:
        self._admins = frozenset(config.admin.admin_ids)

    async def __call__(self, event: Message | CallbackQuery) -> bool:
        user = event.from_user
        return bool(user and user.id in self._admins)
