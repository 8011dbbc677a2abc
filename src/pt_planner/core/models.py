"""
Data models for pt-planner.

Snapshots describe the user's situation on the day a plan is generated;
DailyPlan and its parts are the generator's output.  Step identifiers are
always derived from (movement_id, step) and never stored on the models.
"""

from dataclasses import dataclass, field
from typing import Literal

from .config import DEFAULT_GENERATION_CONFIG, PTGenerationConfig

Tier = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED"]
MovementId = Literal["pushup", "squat", "pullup", "leg-raise", "bridge", "handstand-pushup"]
MovementCategory = Literal["push", "pull", "legs", "core", "bridge", "skill"]
BridgeRule = Literal["any-step5", "none"]

TIERS: tuple[str, ...] = ("BEGINNER", "INTERMEDIATE", "ADVANCED")
MOVEMENT_IDS: tuple[str, ...] = (
    "pushup",
    "squat",
    "pullup",
    "leg-raise",
    "bridge",
    "handstand-pushup",
)
CATEGORIES: tuple[str, ...] = ("push", "pull", "legs", "core", "bridge", "skill")
BRIDGE_RULES: tuple[str, ...] = ("any-step5", "none")


def step_id_for(movement_id: str, step: int) -> str:
    """Return the step identifier, e.g. ``pushup-step3``."""
    return f"{movement_id}-step{step}"


@dataclass(frozen=True)
class MovementProgressSnapshot:
    """Current step and tier for one movement."""

    step: int
    tier: Tier

    def __post_init__(self) -> None:
        """Validate snapshot data."""
        if isinstance(self.step, bool) or not isinstance(self.step, int) or self.step < 1:
            raise ValueError(f"step must be an integer >= 1, got {self.step!r}")
        if self.tier not in TIERS:
            raise ValueError(f"Invalid tier: {self.tier!r}. Must be one of {TIERS}")


MovementProgressMap = dict[str, MovementProgressSnapshot]
RadarScoreMap = dict[str, float]
LastSessionMap = dict[str, str | None]


@dataclass(frozen=True)
class EquipmentSnapshot:
    """What the user can train with today."""

    has_pullup_bar: bool = False
    has_wall_space: bool = False


@dataclass(frozen=True)
class MovementRuleSnapshot:
    """User-selected unlock rules."""

    bridge_depends_on: BridgeRule = "any-step5"

    def __post_init__(self) -> None:
        if self.bridge_depends_on not in BRIDGE_RULES:
            raise ValueError(
                f"Invalid bridge_depends_on: {self.bridge_depends_on!r}. "
                f"Must be one of {BRIDGE_RULES}"
            )


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Outcome of the availability check for one movement.

    days_since_last is None when the movement was never trained (or the
    stored date could not be read), which counts as fully rested.
    """

    available: bool
    reason: str | None = None
    days_since_last: int | None = None


@dataclass(frozen=True)
class DailyPlanItem:
    """A movement selected for today."""

    movement_id: str
    step: int
    tier: Tier
    note: str | None = None
    reason_tags: tuple[str, ...] = ()

    @property
    def step_id(self) -> str:
        return step_id_for(self.movement_id, self.step)


@dataclass(frozen=True)
class DailyPlanSuggestion:
    """A movement that was excluded but is surfaced with its lock reason."""

    movement_id: str
    reason: str
    tier: Tier
    step: int

    @property
    def step_id(self) -> str:
        return step_id_for(self.movement_id, self.step)


@dataclass(frozen=True)
class DailyPlan:
    """
    The plan for one date.

    locked_suggestions is None (not an empty list) when suggestions are
    disabled or nothing was excluded.
    """

    date: str  # ISO format: YYYY-MM-DD
    items: list[DailyPlanItem] = field(default_factory=list)
    seed: str | None = None
    locked_suggestions: list[DailyPlanSuggestion] | None = None

    def movement_ids(self) -> list[str]:
        return [item.movement_id for item in self.items]


@dataclass(frozen=True)
class StoredDailyPlan(DailyPlan):
    """A DailyPlan as persisted for a (user, date) pair."""

    reroll_count: int = 0

    def __post_init__(self) -> None:
        if self.reroll_count < 0:
            raise ValueError("reroll_count must be non-negative")

    @classmethod
    def from_plan(cls, plan: DailyPlan, reroll_count: int = 0) -> "StoredDailyPlan":
        return cls(
            date=plan.date,
            items=list(plan.items),
            seed=plan.seed,
            locked_suggestions=(
                list(plan.locked_suggestions) if plan.locked_suggestions is not None else None
            ),
            reroll_count=reroll_count,
        )


@dataclass
class PlanContext:
    """
    Everything the generator needs besides the date and seed.

    Assembled from storage by io.plan_store.load_plan_context().
    """

    config: PTGenerationConfig = DEFAULT_GENERATION_CONFIG
    progress: MovementProgressMap = field(default_factory=dict)
    equipment: EquipmentSnapshot = field(default_factory=EquipmentSnapshot)
    rules: MovementRuleSnapshot = field(default_factory=MovementRuleSnapshot)
    radar_scores: RadarScoreMap = field(default_factory=dict)
    last_sessions: LastSessionMap = field(default_factory=dict)


@dataclass
class Profile:
    """User-facing profile document."""

    display_name: str
    updated_at: str  # ISO timestamp


@dataclass
class MovementProgress:
    """
    Stored progress for one movement, keyed by radar slug.

    score, when present, overrides the score derived from step_no/tier.
    """

    slug: str
    step_no: int
    tier: Tier
    updated_at: str
    score: float | None = None

    def __post_init__(self) -> None:
        """Validate progress data."""
        if not 0 <= self.step_no <= 10:
            raise ValueError(f"step_no must be between 0 and 10, got {self.step_no}")
        if self.tier not in TIERS:
            raise ValueError(f"Invalid tier: {self.tier!r}")


@dataclass
class Progress:
    """Stored progress document: one entry per radar slug."""

    movements: list[MovementProgress] = field(default_factory=list)
    version: int = 1
