"""Пример бота EggForge: Киндер-яйца с фигурками и оплатой в Telegram Stars."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from random import Random

from eggforge import EggApp, EggForgeConfig
from eggforge.diagnostics.draw_simulator import DrawSimulator

CATALOG_PATH = Path(__file__).with_name("catalog") / "figures.json"


def build_app() -> EggApp:
    config = EggForgeConfig.from_env()
    config.catalog.path = str(CATALOG_PATH)

    # Пример кастомизации команд администраторов.
    config.admin.commands.grant_credits = "giveeggs"
    return EggApp(config)


def simulate() -> None:
    app = build_app()
    result = DrawSimulator(app, rng=Random(7)).simulate(draws=10_000)
    for name, frequency in result.frequencies().items():
        print(f"{name}: {frequency:.2%}")


async def run_bot() -> None:
    from aiogram import Bot, Dispatcher

    from eggforge.admin import build_admin_router
    from eggforge.telegram import build_router

    logging.basicConfig(level=logging.INFO)
    app = build_app()
    await app.init_backend()

    bot = Bot(app.config.bot_token)
    dp = Dispatcher()
    dp.include_router(build_admin_router(app))
    dp.include_router(build_router(app))
    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


if __name__ == "__main__":
    asyncio.run(run_bot())
