"""Testing utilities for EggForge."""

from .factory import ItemFactory, UserFactory
from .fixtures import app_fixture, memory_app
from .test_client import TestClient

__all__ = [
    "ItemFactory",
    "UserFactory",
    "app_fixture",
    "memory_app",
    "TestClient",
]
