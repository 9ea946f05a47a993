"""Admin command wiring for aiogram."""

from __future__ import annotations

from typing import Sequence

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ..app import EggApp
from ..storage.base import AuditEntry
from ..telegram.aiogram_router import format_balances
from ..telegram.filters import AdminFilter
from .service import AdminService


def build_admin_router(app: EggApp) -> Router:
    router = Router()
    router.message.filter(AdminFilter(app.config))
    service = app_admin_service(app)
    commands = app.config.admin.commands

    @router.message(Command(commands.grant_credits))
    async def handle_grant_credits(message: Message) -> None:
        parts = (message.text or "").split()
        if len(parts) < 3 or not parts[2].isdigit():
            await message.answer(
                f"Использование: /{commands.grant_credits} <user_id> <кол-во>"
            )
            return
        target = parts[1]
        count = int(parts[2])
        try:
            balances = await service.grant_credits(
                target, count, reason=f"by {message.from_user.id}"
            )
        except ValueError as exc:
            await message.answer(f"Ошибка: {exc}")
            return
        await message.answer(
            f"Выдано {count} яиц пользователю {target}.\n{format_balances(balances)}"
        )

    @router.message(Command(commands.reconcile))
    async def handle_reconcile(message: Message) -> None:
        receipts = await service.reconcile_payments()
        if not receipts:
            await message.answer("Незавершённых платежей нет.")
            return
        lines = [f"Проведено платежей: {len(receipts)}"]
        lines.extend(
            f"• {receipt.charge_id}: +{receipt.credits_granted} яиц для {receipt.user_id}"
            for receipt in receipts
        )
        await message.answer("\n".join(lines))

    @router.message(Command(commands.audit))
    async def handle_audit(message: Message) -> None:
        parts = (message.text or "").split()
        limit = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 10
        entries = await service.recent_audit(limit)
        await message.answer(format_audit(entries))

    return router


def app_admin_service(app: EggApp) -> AdminService:
    return AdminService(
        ledger=app.ledger,
        settlement=app.settlement,
        audit_store=app.audit_store,
        event_bus=app.event_bus,
    )


def format_audit(entries: Sequence[AuditEntry]) -> str:
    if not entries:
        return "Журнал пуст."
    lines = ["Последние записи журнала:"]
    for entry in entries:
        details = ", ".join(f"{key}={value}" for key, value in entry.payload.items())
        lines.append(f"{entry.created_at:%Y-%m-%d %H:%M:%S} {entry.action}: {details}")
    return "\n".join(lines)
