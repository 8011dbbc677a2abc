"""
Movement definitions for pt-planner.

Each movement is described by a MovementDefinition; the six built-ins are
loaded once into the registry.
"""

from .base import MovementDefinition, UnlockRule
from .registry import DEFAULT_MOVEMENTS, MOVEMENT_REGISTRY, get_movement

__all__ = [
    "MovementDefinition",
    "UnlockRule",
    "DEFAULT_MOVEMENTS",
    "MOVEMENT_REGISTRY",
    "get_movement",
]
