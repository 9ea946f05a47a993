"""High-level helpers that simplify bootstrapping EggForge bots.

This module provides a straightforward, batteries-included API oriented towards
developers who do not want to dive into the full async/config ecosystem.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from random import Random
from typing import Sequence

from aiogram import Bot, Dispatcher
from rich.console import Console

from . import EggApp, EggForgeConfig
from .diagnostics.draw_simulator import DrawSimulator
from .loaders import validate_catalog_dict
from .telegram import build_router
from .admin import build_admin_router

console = Console()
logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SimpleBotConfig:
    """Minimal settings required to run an EggForge bot."""

    bot_token: str
    catalog_path: Path | None = None
    storage: str = "eggforge.db"  # "memory" or path to SQLite file
    admin_ids: Sequence[int] = ()


async def run_simple_bot(config: SimpleBotConfig) -> None:
    """Spin up a ready-to-go aiogram bot with sensible defaults."""

    eggforge_config = EggForgeConfig.from_env()
    eggforge_config.bot_token = config.bot_token
    if config.storage == "memory":
        eggforge_config.storage.backend = "memory"
    else:
        db_path = Path(config.storage).expanduser().resolve()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        eggforge_config.storage.backend = "sqlalchemy"
        eggforge_config.storage.dsn = f"sqlite+aiosqlite:///{db_path.as_posix()}"
    if config.catalog_path:
        eggforge_config.catalog.path = str(config.catalog_path)
    if config.admin_ids:
        eggforge_config.admin.admin_ids = set(config.admin_ids)

    app = EggApp(eggforge_config)
    await app.init_backend()
    receipts = await app.settlement.reconcile()
    if receipts:
        logger.info("Applied %s payments left over from a previous run.", len(receipts))

    bot = Bot(app.config.bot_token)
    dp = Dispatcher()
    dp.include_router(build_admin_router(app))
    dp.include_router(build_router(app))

    summary = DrawSimulator(app, rng=Random(0)).simulate(draws=10_000)
    console.print(
        f"[bold green]EggForge ready![/bold green]\n"
        f"Figurines: {len(app.catalog)}, storage: {eggforge_config.storage.backend}, "
        f"max draw deviation: {summary.max_deviation():.3%}",
    )

    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


def run_simple_bot_sync(config: SimpleBotConfig) -> None:
    """Synchronous wrapper for run_simple_bot."""

    asyncio.run(run_simple_bot(config))


@dataclass(slots=True)
class CatalogBuilder:
    """Imperative builder that produces JSON catalogs."""

    items: list[dict] = field(default_factory=list)

    def add_item(
        self,
        name: str,
        *,
        weight: float | None = None,
        image: str | None = None,
        rare: bool | None = None,
    ) -> "CatalogBuilder":
        item: dict = {"name": name}
        if weight is not None:
            item["weight"] = weight
        if image:
            item["image"] = image
        if rare is not None:
            item["rare"] = rare
        self.items.append(item)
        return self

    def build(self) -> dict:
        catalog = {"items": self.items}
        errors = validate_catalog_dict(catalog)
        if errors:
            raise ValueError("Catalog validation failed:\n" + "\n".join(f"- {err}" for err in errors))
        return catalog

    def save(self, path: Path) -> None:
        catalog = self.build()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(catalog, ensure_ascii=False, indent=2), encoding="utf-8")


__all__ = [
    "SimpleBotConfig",
    "CatalogBuilder",
    "run_simple_bot",
    "run_simple_bot_sync",
]
