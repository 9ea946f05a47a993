"""Configuration models for EggForge."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Literal, Mapping

from .domain.catalog import DEFAULT_RARE

StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure how accounts, collections and payments are persisted."""

    backend: StorageBackend = "sqlalchemy"
    dsn: str | None = None
    echo_sql: bool = False
    timeout_seconds: float = 5.0
    read_retries: int = 2

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./eggforge.db"
        return None


@dataclass(slots=True)
class LedgerConfig:
    free_credit_grant: int = 5


@dataclass(slots=True)
class PaymentConfig:
    """Telegram Stars pricing."""

    currency: str = "XTR"
    credit_unit_price: int = 10
    max_purchase_quantity: int = 100


@dataclass(slots=True)
class CatalogConfig:
    path: str | None = None
    rare: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_RARE))


@dataclass(slots=True)
class AdminCommandConfig:
    """Allows renaming admin bot commands."""

    grant_credits: str = "grantcredits"
    reconcile: str = "reconcile"
    audit: str = "audit"


@dataclass(slots=True)
class AdminConfig:
    admin_ids: set[int] = field(default_factory=set)
    enable_audit_logs: bool = True
    commands: AdminCommandConfig = field(default_factory=AdminCommandConfig)


@dataclass(slots=True)
class EggForgeConfig:
    """Top-level configuration container."""

    bot_token: str = ""
    storage: StorageConfig = field(default_factory=StorageConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    payments: PaymentConfig = field(default_factory=PaymentConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    rng_seed: int | None = None

    @classmethod
    def from_env(cls) -> "EggForgeConfig":
        """Create config from environment variables prefixed with EGGFORGE_."""
        prefix = "EGGFORGE_"

        def env(name: str, default: str = "") -> str:
            return os.getenv(f"{prefix}{name}", default)

        storage = StorageConfig(
            backend=env("STORAGE_BACKEND", "sqlalchemy"),  # type: ignore[arg-type]
            dsn=env("STORAGE_DSN") or None,
            echo_sql=env("STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
            timeout_seconds=float(env("STORAGE_TIMEOUT", "5.0")),
            read_retries=int(env("STORAGE_READ_RETRIES", "2")),
        )
        if storage.backend not in ("memory", "sqlalchemy"):
            raise ValueError(f"Unsupported {prefix}STORAGE_BACKEND {storage.backend!r}")

        admin_ids = {
            int(_id.strip())
            for _id in env("ADMIN_IDS").split(",")
            if _id.strip()
        }
        admin = AdminConfig(
            admin_ids=admin_ids,
            enable_audit_logs=env("ADMIN_ENABLE_AUDIT_LOGS", "true").lower() in _TRUTHY,
            commands=AdminCommandConfig(
                grant_credits=env("ADMIN_CMD_GRANT_CREDITS", "grantcredits") or "grantcredits",
                reconcile=env("ADMIN_CMD_RECONCILE", "reconcile") or "reconcile",
                audit=env("ADMIN_CMD_AUDIT", "audit") or "audit",
            ),
        )

        catalog = CatalogConfig(path=env("CATALOG_PATH") or None)
        rare = _parse_rare_weights(env("CATALOG_RARE_WEIGHTS") or None)
        if rare:
            catalog.rare = rare

        return cls(
            bot_token=env("BOT_TOKEN"),
            storage=storage,
            ledger=LedgerConfig(free_credit_grant=int(env("FREE_CREDIT_GRANT", "5"))),
            payments=PaymentConfig(
                currency=env("PAYMENT_CURRENCY", "XTR") or "XTR",
                credit_unit_price=int(env("CREDIT_UNIT_PRICE", "10")),
                max_purchase_quantity=int(env("MAX_PURCHASE_QUANTITY", "100")),
            ),
            catalog=catalog,
            admin=admin,
            rng_seed=int(env("RNG_SEED")) if env("RNG_SEED") else None,
        )


def _parse_rare_weights(raw: str | None) -> Mapping[str, float]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON for EGGFORGE_CATALOG_RARE_WEIGHTS") from exc
    if not isinstance(data, dict):
        raise ValueError("EGGFORGE_CATALOG_RARE_WEIGHTS must be a JSON object")
    return {str(k): float(v) for k, v in data.items()}
