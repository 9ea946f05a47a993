"""Bounded-time wrappers around store calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..domain.exceptions import PersistenceUnavailable

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)


class StoreGuard:
    """Apply a timeout to every store call and translate backend failures.

    Mutations run exactly once. Reads may be retried because repeating them has
    no side effects.
    """

    def __init__(self, *, timeout_seconds: float = 5.0, read_retries: int = 2) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if read_retries < 0:
            raise ValueError("read_retries cannot be negative")
        self.timeout_seconds = timeout_seconds
        self.read_retries = read_retries

    async def call(
        self,
        label: str,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning("Store call '%s' timed out after %.1f s.", label, self.timeout_seconds)
            raise PersistenceUnavailable(f"Store call '{label}' timed out") from exc
        except SQLAlchemyError as exc:
            logger.error("Store call '%s' failed: %s", label, exc, exc_info=True)
            raise PersistenceUnavailable(f"Store call '{label}' failed") from exc

    async def read(
        self,
        label: str,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        attempt = 0
        while True:
            try:
                return await self.call(label, func, *args, **kwargs)
            except PersistenceUnavailable:
                attempt += 1
                if attempt > self.read_retries:
                    raise
                logger.info(
                    "Retrying read '%s' (attempt %s/%s).",
                    label,
                    attempt,
                    self.read_retries,
                )
