"""
YAML → MovementDefinition loader.

Loads the movement catalog from the bundled ``src/pt_planner/movements.yaml``.
The file holds a ``movements`` list; each entry matches the
MovementDefinition schema, with an optional nested ``unlock`` mapping.

User overrides: ``~/.pt-planner/movements.yaml`` may list partial entries
keyed by ``movement_id``.  Each is deep-merged over the bundled entry, so only
changed keys need to be listed.  Entries for unknown movements are skipped
with a warning: the catalog is fixed at six movements.

Usage (internal, called by registry.py):
    from .loader import load_movements_from_yaml
    movements = load_movements_from_yaml()   # list or None on failure
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

import yaml

from ..models import CATEGORIES, MOVEMENT_IDS
from .base import EQUIPMENT_TAGS, MovementDefinition, UnlockRule

_REQUIRED_MOVEMENT_FIELDS: frozenset[str] = frozenset(
    {
        "movement_id",
        "display_name",
        "category",
        "base_rank",
        "min_rest_days",
    }
)


def _unlock_from_dict(d: dict | None) -> UnlockRule:
    """Convert a raw ``unlock`` mapping to an UnlockRule (absent → always unlocked)."""
    if not d:
        return UnlockRule()
    return UnlockRule(
        kind=str(d.get("kind", "always")),  # type: ignore[arg-type]
        prerequisites=tuple(str(p) for p in d.get("prerequisites", ())),
        min_step=int(d.get("min_step", 0)),
    )


def movement_from_dict(d: dict) -> MovementDefinition:
    """Convert a raw dict (from YAML) to a MovementDefinition.

    Raises ValueError if a required field is absent or a value is invalid.
    """
    missing = _REQUIRED_MOVEMENT_FIELDS - set(d)
    if missing:
        raise ValueError(f"MovementDefinition missing fields: {sorted(missing)}")

    movement_id = str(d["movement_id"])
    if movement_id not in MOVEMENT_IDS:
        raise ValueError(f"Unknown movement_id {movement_id!r}")

    category = str(d["category"])
    if category not in CATEGORIES:
        raise ValueError(f"Invalid category {category!r} for {movement_id}")

    required_equipment = d.get("required_equipment")
    if required_equipment is not None and required_equipment not in EQUIPMENT_TAGS:
        raise ValueError(
            f"Invalid required_equipment {required_equipment!r} for {movement_id}"
        )

    unlock = _unlock_from_dict(d.get("unlock"))
    unknown = [p for p in unlock.prerequisites if p not in MOVEMENT_IDS]
    if unknown:
        raise ValueError(f"Unknown prerequisites for {movement_id}: {unknown}")

    min_rest_days = int(d["min_rest_days"])
    if min_rest_days < 0:
        raise ValueError(f"min_rest_days must be non-negative for {movement_id}")

    return MovementDefinition(
        movement_id=movement_id,
        display_name=str(d["display_name"]),
        category=category,
        base_rank=float(d["base_rank"]),
        min_rest_days=min_rest_days,
        required_equipment=required_equipment,
        unlock=unlock,
    )


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} on any read or parse error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def get_bundled_catalog_path() -> Path | None:
    """Return path to the bundled movements.yaml, or None if not found."""
    # loader.py lives at src/pt_planner/core/movements/loader.py
    # three levels up → src/pt_planner/
    candidate = Path(__file__).parent.parent.parent / "movements.yaml"
    return candidate if candidate.is_file() else None


def get_user_catalog_path() -> Path | None:
    """Return ~/.pt-planner/movements.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".pt-planner" / "movements.yaml"
    return p if p.is_file() else None


def _entries(raw: dict) -> list[dict]:
    entries = raw.get("movements") or []
    return [e for e in entries if isinstance(e, dict)]


def load_movements_from_yaml(
    bundled_path: Path | None = None,
    user_path: Path | None = None,
) -> list[MovementDefinition] | None:
    """Return the movement catalog, in file order, loaded from YAML.

    Args:
        bundled_path: Catalog file (default: the bundled movements.yaml)
        user_path: Override file (default: ~/.pt-planner/movements.yaml if present)

    Returns None (rather than raising) when nothing could be loaded so the
    registry can report the failure.
    """
    bundled_path = bundled_path or get_bundled_catalog_path()
    if bundled_path is None:
        return None
    if user_path is None:
        user_path = get_user_catalog_path()

    bundled = _entries(_load_yaml_file(bundled_path))
    if not bundled:
        return None

    overrides: dict[str, dict] = {}
    if user_path is not None:
        for entry in _entries(_load_yaml_file(user_path)):
            movement_id = entry.get("movement_id")
            if movement_id in MOVEMENT_IDS:
                overrides[movement_id] = entry
            else:
                warnings.warn(
                    f"pt-planner: ignoring override for unknown movement {movement_id!r}",
                    stacklevel=2,
                )

    result: list[MovementDefinition] = []
    for raw in bundled:
        movement_id = raw.get("movement_id")
        if movement_id in overrides:
            raw = _deep_merge(raw, overrides[movement_id])
        try:
            result.append(movement_from_dict(raw))
        except (ValueError, TypeError) as exc:
            warnings.warn(
                f"pt-planner: skipping movement {movement_id!r}: {exc}",
                stacklevel=2,
            )

    return result if result else None
