"""EggForge framework public API."""

from .config import EggForgeConfig
from .app import EggApp

__all__ = [
    "EggApp",
    "EggForgeConfig",
]
