"""Automated checks to highlight configuration issues."""

from __future__ import annotations

from dataclasses import dataclass

from ..app import EggApp
from ..domain.catalog import WEIGHT_TOLERANCE


@dataclass(slots=True)
class ChecklistIssue:
    severity: str
    message: str


def run_checklist(app: EggApp) -> list[ChecklistIssue]:
    issues: list[ChecklistIssue] = []
    catalog = app.catalog
    total = catalog.total_weight()
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        issues.append(
            ChecklistIssue("error", f"Сумма вероятностей равна {total!r}, ожидалось 1.0.")
        )

    rare = [item for item in catalog if item.rare]
    if not rare:
        issues.append(ChecklistIssue("warning", "В каталоге нет редких фигурок."))
    common = [item for item in catalog if not item.rare]
    if rare and common and max(item.weight for item in rare) > min(item.weight for item in common):
        issues.append(
            ChecklistIssue("warning", "Редкая фигурка выпадает чаще, чем обычная.")
        )

    missing_media = [item.name for item in catalog if not item.media_ref]
    if missing_media:
        issues.append(
            ChecklistIssue(
                "info",
                f"Без изображения: {len(missing_media)} из {len(catalog)} фигурок.",
            )
        )

    if app.config.ledger.free_credit_grant <= 0:
        issues.append(ChecklistIssue("warning", "Новые игроки не получают бесплатных яиц."))

    payments = app.config.payments
    if payments.credit_unit_price <= 0:
        issues.append(ChecklistIssue("error", "Цена яйца должна быть положительной."))
    if payments.currency != "XTR":
        issues.append(
            ChecklistIssue("warning", f"Валюта {payments.currency} не является Telegram Stars.")
        )

    storage = app.config.storage
    if storage.backend == "memory":
        issues.append(
            ChecklistIssue("warning", "Хранилище в памяти: балансы и платежи пропадут при перезапуске.")
        )
    elif ":memory:" in (storage.resolve_dsn() or ""):
        issues.append(
            ChecklistIssue("warning", "SQLite в памяти: данные не переживут перезапуск.")
        )

    if not app.config.admin.admin_ids:
        issues.append(ChecklistIssue("info", "Не заданы администраторы."))

    return issues
