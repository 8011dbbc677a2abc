"""
Base types for movement definitions.

MovementDefinition describes one of the six movements the daily plan
generator knows about.  UnlockRule is a small tagged variant instead of an
arbitrary predicate so every unlock condition stays enumerable.
"""

from dataclasses import dataclass
from typing import Literal

UnlockKind = Literal["always", "any_prerequisite_step"]
RequiredEquipment = Literal["pullupBar", "wallSpace"]

UNLOCK_KINDS: tuple[str, ...] = ("always", "any_prerequisite_step")
EQUIPMENT_TAGS: tuple[str, ...] = ("pullupBar", "wallSpace")


@dataclass(frozen=True)
class UnlockRule:
    """
    Unlock condition for a movement.

    always                 -- no condition
    any_prerequisite_step  -- unlocked once any movement in ``prerequisites``
                              has reached ``min_step``
    """

    kind: UnlockKind = "always"
    prerequisites: tuple[str, ...] = ()
    min_step: int = 0

    def __post_init__(self) -> None:
        if self.kind not in UNLOCK_KINDS:
            raise ValueError(f"Invalid unlock kind: {self.kind!r}")
        if self.kind == "any_prerequisite_step":
            if not self.prerequisites:
                raise ValueError("any_prerequisite_step requires at least one prerequisite")
            if self.min_step < 1:
                raise ValueError("any_prerequisite_step requires min_step >= 1")

    @property
    def lock_reason(self) -> str:
        """Reason reported while the rule is unmet."""
        return f"prerequisite unmet: Step{self.min_step}"


ALWAYS_UNLOCKED = UnlockRule()


@dataclass(frozen=True)
class MovementDefinition:
    """
    Full configuration for one movement.

    base_rank is the fixed priority weight the ranking starts from
    (push/legs sit above skill work).  min_rest_days is the movement's own
    rest floor; the user's min_rest_days_per_movement may raise it.
    """

    # Identity
    movement_id: str          # e.g. "pushup", "leg-raise"
    display_name: str         # e.g. "Leg Raise" (also the ranking tie-break)
    category: str             # "push" | "pull" | "legs" | "core" | "bridge" | "skill"

    # Ranking
    base_rank: float
    min_rest_days: int

    # Gating
    required_equipment: RequiredEquipment | None = None
    unlock: UnlockRule = ALWAYS_UNLOCKED
