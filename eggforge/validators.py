"""Validation utilities for EggForge applications."""

from __future__ import annotations

from pathlib import Path

from .app import EggApp
from .domain.catalog import WEIGHT_TOLERANCE


def validate_app(app: EggApp) -> list[str]:
    """Return list of validation errors discovered in configured app."""
    errors: list[str] = []

    catalog = app.catalog
    total = catalog.total_weight()
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        errors.append(f"Catalog weights sum to {total!r} instead of 1.0.")

    for item in catalog:
        if not 0 < item.weight <= 1:
            errors.append(f"Item '{item.name}' has weight '{item.weight}' outside (0, 1].")
        if item.media_ref and not item.media_ref.startswith(("http://", "https://")):
            resolved = Path(item.media_ref)
            if not resolved.is_absolute():
                resolved = Path.cwd() / resolved
            if not resolved.exists():
                errors.append(f"Item '{item.name}' local image '{item.media_ref}' not found.")

    if not app.config.catalog.path:
        for name in app.config.catalog.rare:
            if name not in catalog:
                errors.append(f"Rare weight configured for unknown item '{name}'.")

    if app.config.ledger.free_credit_grant < 0:
        errors.append("Ledger configuration 'free_credit_grant' cannot be negative.")

    payments = app.config.payments
    if not payments.currency:
        errors.append("Payment configuration 'currency' must not be empty.")
    if payments.credit_unit_price <= 0:
        errors.append("Payment configuration 'credit_unit_price' must be positive.")
    if payments.max_purchase_quantity <= 0:
        errors.append("Payment configuration 'max_purchase_quantity' must be positive.")

    storage = app.config.storage
    if storage.timeout_seconds <= 0:
        errors.append("Storage configuration 'timeout_seconds' must be positive.")
    if storage.read_retries < 0:
        errors.append("Storage configuration 'read_retries' cannot be negative.")

    return errors


__all__ = ["validate_app"]
