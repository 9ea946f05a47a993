"""Command line helpers for EggForge."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from random import Random

from .app import EggApp
from .config import EggForgeConfig
from .diagnostics.checklist import run_checklist as checklist_run
from .diagnostics.draw_simulator import DrawSimulator
from .loaders import validate_catalog_file
from .validators import validate_app


def run_simulator() -> None:
    parser = argparse.ArgumentParser(description="EggForge draw simulator")
    parser.add_argument("--draws", type=int, default=100_000, help="Количество яиц для симуляции")
    parser.add_argument("--seed", type=int, default=None, help="Seed генератора случайных чисел")
    parser.add_argument("--catalog", help="Путь к JSON-каталогу фигурок")
    parser.add_argument(
        "--complete",
        type=int,
        default=0,
        metavar="TRIALS",
        help="Оценить, сколько яиц нужно для полной коллекции",
    )
    args = parser.parse_args()

    config = _config(args.catalog)
    config.storage.backend = "memory"
    app = EggApp(config)

    simulator = DrawSimulator(app, rng=Random(args.seed))
    result = simulator.simulate(draws=args.draws)
    print(f"Симулировано {result.draws} яиц.")
    for name, expected in result.expected.items():
        observed = result.frequency(name)
        print(f"  {name}: {observed:.4%} (ожидалось {expected:.4%})")
    print(f"Максимальное отклонение: {result.max_deviation():.4%}")
    if args.complete:
        average = simulator.eggs_to_complete(trials=args.complete)
        print(f"В среднем яиц до полной коллекции: {average:.0f}")


def run_checklist() -> None:
    parser = argparse.ArgumentParser(description="EggForge sanity checks")
    parser.add_argument("--catalog", help="Путь к JSON-каталогу фигурок")
    args = parser.parse_args()

    app = EggApp(_config(args.catalog))
    issues = checklist_run(app)
    if not issues:
        print("Проблем не обнаружено ✅")
        return
    for issue in issues:
        print(f"[{issue.severity.upper()}] {issue.message}")
    if any(issue.severity == "error" for issue in issues):
        sys.exit(1)


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="EggForge validator")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--catalog",
        help="Path to catalog JSON file for validation",
    )
    group.add_argument(
        "--env",
        action="store_true",
        help="Validate the application configured from EGGFORGE_* variables",
    )
    args = parser.parse_args()

    if args.catalog:
        errors = validate_catalog_file(Path(args.catalog))
        if errors:
            print("Ошибки каталога:")
            for err in errors:
                print(f"- {err}")
            sys.exit(1)
        print("Каталог валиден ✅")
        return

    app = EggApp(EggForgeConfig.from_env())
    issues = validate_app(app)
    if issues:
        print("Обнаружены ошибки конфигурации:")
        for issue in issues:
            print(f"- {issue}")
        sys.exit(1)
    print("Конфигурация бота валидна ✅")


def run_reconcile() -> None:
    parser = argparse.ArgumentParser(description="Apply payments that were recorded but not granted")
    parser.add_argument("--dsn", help="DSN базы данных (по умолчанию из EGGFORGE_STORAGE_DSN)")
    args = parser.parse_args()

    config = EggForgeConfig.from_env()
    if args.dsn:
        config.storage.dsn = args.dsn
    if config.storage.backend != "sqlalchemy":
        print("Сверка платежей доступна только для SQLAlchemy-хранилища.")
        sys.exit(1)

    receipts = asyncio.run(_reconcile(EggApp(config)))
    if not receipts:
        print("Незавершённых платежей нет ✅")
        return
    for receipt in receipts:
        print(f"{receipt.charge_id}: +{receipt.credits_granted} яиц пользователю {receipt.user_id}")


async def _reconcile(app: EggApp):
    try:
        await app.init_backend()
        return await app.settlement.reconcile()
    finally:
        await app.close()


def _config(catalog_path: str | None) -> EggForgeConfig:
    config = EggForgeConfig.from_env()
    if catalog_path:
        config.catalog.path = catalog_path
    return config
