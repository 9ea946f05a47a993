"""Pytest fixtures for EggForge."""

from __future__ import annotations

from random import Random

import pytest

from ..app import EggApp
from ..config import EggForgeConfig, StorageConfig


@pytest.fixture()
def memory_app() -> EggApp:
    config = EggForgeConfig(bot_token="test", storage=StorageConfig(backend="memory"))
    return EggApp(config, rng=Random(42))


def app_fixture(bot_token: str = "test", **kwargs) -> EggApp:
    """Helper for ad-hoc tests where pytest is not available."""
    kwargs.setdefault("storage", StorageConfig(backend="memory"))
    config = EggForgeConfig(bot_token=bot_token, **kwargs)
    return EggApp(config)
