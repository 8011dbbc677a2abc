"""
Movement registry.

The six supported movements are loaded from the bundled
``src/pt_planner/movements.yaml`` at import time.  If loading fails, or the
catalog does not contain exactly the six known movements, a RuntimeError is
raised; the planner cannot start without a complete catalog.

User overrides: ``~/.pt-planner/movements.yaml`` (see loader.py).
"""

from ..models import MOVEMENT_IDS
from .base import MovementDefinition


def _build_catalog() -> tuple[MovementDefinition, ...]:
    from .loader import load_movements_from_yaml

    loaded = load_movements_from_yaml()
    if not loaded:
        raise RuntimeError(
            "pt-planner: no movement definitions could be loaded from YAML. "
            "Check that src/pt_planner/movements.yaml is present and valid."
        )
    ids = [m.movement_id for m in loaded]
    if sorted(ids) != sorted(MOVEMENT_IDS):
        raise RuntimeError(
            f"pt-planner: movement catalog must define exactly {list(MOVEMENT_IDS)}, "
            f"got {ids}"
        )
    return tuple(loaded)


DEFAULT_MOVEMENTS: tuple[MovementDefinition, ...] = _build_catalog()

MOVEMENT_REGISTRY: dict[str, MovementDefinition] = {
    m.movement_id: m for m in DEFAULT_MOVEMENTS
}


def get_movement(movement_id: str) -> MovementDefinition:
    """
    Return the MovementDefinition for the given movement_id.

    Raises:
        ValueError: If movement_id is not in the registry
    """
    if movement_id not in MOVEMENT_REGISTRY:
        valid = ", ".join(MOVEMENT_REGISTRY)
        raise ValueError(f"Unknown movement '{movement_id}'. Valid IDs: {valid}")
    return MOVEMENT_REGISTRY[movement_id]
