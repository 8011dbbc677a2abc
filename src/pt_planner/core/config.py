"""
Configuration constants for the daily plan generator.

All adjustable parameters are centralized here for easy tuning.
PTGenerationConfig holds the per-user options; everything else is a
model constant shared by every user.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Final, Mapping

# =============================================================================
# SCORE DERIVATION
# =============================================================================

MAX_SCORE: Final[float] = 10.0
MIN_SCORE: Final[float] = 0.0
SCORE_DECIMALS: Final[int] = 2

TIER_BASE: Final[dict[str, float]] = {
    "BEGINNER": 1 / 3,
    "INTERMEDIATE": 2 / 3,
    "ADVANCED": 1.0,
}

# =============================================================================
# SEEDED BIAS
# =============================================================================

BIAS_HASH_MULTIPLIER: Final[int] = 33
BIAS_HASH_MODULUS: Final[int] = 1_000_003
BIAS_SPAN: Final[float] = 0.6  # Output range width: [-0.3, +0.3]
BIAS_OFFSET: Final[float] = 0.3

# =============================================================================
# RANKING
# =============================================================================

UNDERTRAINED_WEIGHT: Final[float] = 0.5  # Rank bonus per score point below MAX_SCORE
UNDERTRAINED_TAG_THRESHOLD: Final[float] = 0.5  # Bonus must exceed this to tag
ROTATION_PENALTY: Final[float] = 2.0  # Subtracted when trained too recently

# =============================================================================
# REASON TAGS, NOTES, LOCK REASONS
# =============================================================================

TAG_AVAILABLE: Final[str] = "available"
TAG_UNDERTRAINED: Final[str] = "undertrained"
TAG_ROTATION: Final[str] = "rotation"

NOTE_UNDERTRAINED: Final[str] = "prioritizing weak point"
NOTE_ROTATION: Final[str] = "rotation priority"
NOTE_SEPARATOR: Final[str] = " / "

REASON_NOT_REGISTERED: Final[str] = "progress not registered"
REASON_NO_EQUIPMENT: Final[str] = "no equipment"
REASON_NO_WALL_SPACE: Final[str] = "no wall space"
REASON_INSUFFICIENT_REST: Final[str] = "insufficient rest"
REASON_LOCKED: Final[str] = "locked"

# =============================================================================
# STORAGE KEYS
# =============================================================================

PLAN_KEY_PREFIX: Final[str] = "pt-daily-plan"
CONFIG_KEY_PREFIX: Final[str] = "pt-generation-config"
USER_KEY_PREFIX: Final[str] = "pt:user"

DEFAULT_USER_ID: Final[str] = "demo-user"
PROFILE_FALLBACK_DISPLAY_NAME: Final[str] = "Guest"

# =============================================================================
# PER-USER GENERATION CONFIG
# =============================================================================

MAX_DAILY_MOVEMENTS: Final[int] = 6


@dataclass(frozen=True)
class PTGenerationConfig:
    """Tunable options for one user's daily plan generation."""

    daily_max_movements: int = 2
    allow_same_category_twice: bool = False
    min_rest_days_per_movement: int = 1
    prefer_undertrained: bool = True
    prefer_rotation_days: int = 2  # 0 disables the recent-training penalty
    include_locked_as_suggestions: bool = False

    def __post_init__(self) -> None:
        """Validate option ranges."""
        if not 1 <= self.daily_max_movements <= MAX_DAILY_MOVEMENTS:
            raise ValueError(
                f"daily_max_movements must be between 1 and {MAX_DAILY_MOVEMENTS}, "
                f"got {self.daily_max_movements}"
            )
        if self.min_rest_days_per_movement < 0:
            raise ValueError("min_rest_days_per_movement must be non-negative")
        if self.prefer_rotation_days < 0:
            raise ValueError("prefer_rotation_days must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_GENERATION_CONFIG: Final[PTGenerationConfig] = PTGenerationConfig()

_BOOL_OPTIONS: Final[frozenset[str]] = frozenset(
    {"allow_same_category_twice", "prefer_undertrained", "include_locked_as_suggestions"}
)
_INT_OPTIONS: Final[frozenset[str]] = frozenset(
    {"daily_max_movements", "min_rest_days_per_movement", "prefer_rotation_days"}
)


def resolve_generation_config(
    partial: Mapping[str, Any] | None,
    base: PTGenerationConfig = DEFAULT_GENERATION_CONFIG,
) -> PTGenerationConfig:
    """
    Merge a partial option mapping over *base* and return a full config.

    Unknown keys are ignored so documents written by newer versions still load.

    Args:
        partial: Stored or user-supplied options (any subset, may be None)
        base: Config supplying every option absent from *partial*

    Returns:
        Fully populated PTGenerationConfig

    Raises:
        ValueError: If a supplied option has the wrong type or is out of range
    """
    merged = base.to_dict()
    if not partial:
        return PTGenerationConfig(**merged)

    known = {f.name for f in fields(PTGenerationConfig)}
    for key, value in partial.items():
        if key not in known or value is None:
            continue
        if key in _BOOL_OPTIONS:
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean, got {value!r}")
        elif key in _INT_OPTIONS:
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{key} must be an integer, got {value!r}")
        merged[key] = value

    return PTGenerationConfig(**merged)
