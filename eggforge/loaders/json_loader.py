"""Load the figurine catalog from JSON definitions.

Format::

    {
      "items": [
        {"name": "Уилл", "weight": 0.005, "image": "https://..."},
        {"name": "Майк", "image": "https://..."}
      ]
    }

Items with an explicit ``weight`` keep it; the remaining probability mass is
split evenly across the items without one.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Iterable

from ..domain.catalog import WEIGHT_TOLERANCE, Catalog, CatalogItem, build_catalog


def load_catalog_from_json(path: str | Path) -> Catalog:
    """Read, validate and build a catalog from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_catalog_dict(data)


def parse_catalog_dict(data: dict[str, Any]) -> Catalog:
    """Parse an already decoded JSON dict into a catalog."""
    errors = validate_catalog_dict(data)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    entries = data["items"]
    names = [entry["name"] for entry in entries]
    media = {entry["name"]: entry["image"] for entry in entries if entry.get("image")}
    fixed = {entry["name"]: float(entry["weight"]) for entry in entries if "weight" in entry}
    if len(fixed) == len(entries):
        return Catalog(
            CatalogItem(
                name=entry["name"],
                weight=float(entry["weight"]),
                media_ref=entry.get("image"),
                rare=bool(entry.get("rare", False)),
            )
            for entry in entries
        )
    return build_catalog(names, rare=fixed, media=media)


def validate_catalog_file(path: str | Path) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        return [f"Catalog file is not valid JSON: {exc}"]
    return validate_catalog_dict(data)


def validate_catalog_dict(data: Any) -> list[str]:
    errors: list[str] = []
    if not isinstance(data, dict):
        return ["Catalog must be a JSON object."]

    items_raw = data.get("items")
    if not isinstance(items_raw, list) or not items_raw:
        return ["Catalog must contain non-empty 'items' array."]

    names: set[str] = set()
    fixed_weights: list[float] = []
    for idx, entry in enumerate(items_raw, start=1):
        if not isinstance(entry, dict):
            errors.append(f"Item #{idx} must be an object.")
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"Item #{idx} must define non-empty 'name'.")
            continue
        if name in names:
            errors.append(f"Item name '{name}' defined multiple times.")
        names.add(name)

        if "weight" in entry:
            weight = entry["weight"]
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                errors.append(f"Item '{name}' has invalid 'weight' value '{weight}'.")
            elif not 0 < float(weight) <= 1:
                errors.append(f"Item '{name}' weight must be in (0, 1], got {weight}.")
            else:
                fixed_weights.append(float(weight))

        image = entry.get("image")
        if image is not None and (not isinstance(image, str) or not image.strip()):
            errors.append(f"Item '{name}' image must be a non-empty string.")

        rare = entry.get("rare")
        if rare is not None and not isinstance(rare, bool):
            errors.append(f"Item '{name}' 'rare' flag must be boolean.")

    if errors:
        return errors

    fixed_mass = math.fsum(fixed_weights)
    if len(fixed_weights) == len(items_raw):
        if abs(fixed_mass - 1.0) > WEIGHT_TOLERANCE:
            errors.append(f"Item weights must sum to 1.0, got {fixed_mass!r}.")
    elif fixed_mass >= 1:
        errors.append("Explicit weights leave no probability for the remaining items.")
    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
