"""
Scoring formulas shared by the planner and the radar display.

All functions are pure.  to_score() derives the 0-10 progress score from a
step/tier pair; compute_seed_bias() is the deterministic rank nudge that
makes rerolls differ without any stored random state.
"""

import math
from dataclasses import dataclass, replace

from .config import (
    BIAS_HASH_MODULUS,
    BIAS_HASH_MULTIPLIER,
    BIAS_OFFSET,
    BIAS_SPAN,
    MAX_SCORE,
    MIN_SCORE,
    SCORE_DECIMALS,
    TIER_BASE,
)
from .models import MovementProgressSnapshot, Tier

# =============================================================================
# SCORE DERIVATION
# =============================================================================


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return min(max(value, low), high)


def to_score(step: int, tier: Tier) -> float:
    """
    Derive a 0-10 progress score from a step and tier.

    score = min(10, round(max(step - 1, 0) + tier_base, 2))
    tier_base: BEGINNER 1/3, INTERMEDIATE 2/3, ADVANCED 1

    Examples:
        step 1 BEGINNER      → 0.33
        step 6 INTERMEDIATE  → 5.67
        step 10 ADVANCED     → 10.0 (saturated)
    """
    base = max(step - 1, 0)
    return min(MAX_SCORE, round(base + TIER_BASE[tier], SCORE_DECIMALS))


def resolve_score(
    snapshot: MovementProgressSnapshot,
    explicit: float | None = None,
) -> float:
    """
    Return the score used for ranking: explicit score if usable, else derived.

    Non-finite explicit scores are treated as absent.  The result is always
    clamped to [0, 10].
    """
    if explicit is None or not math.isfinite(explicit):
        value = to_score(snapshot.step, snapshot.tier)
    else:
        value = float(explicit)
    return clamp(value, MIN_SCORE, MAX_SCORE)


# =============================================================================
# SEEDED BIAS
# =============================================================================


def _utf16_code_units(text: str) -> list[int]:
    """Return the UTF-16 code units of text (surrogate pairs for non-BMP chars)."""
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def seed_hash(key: str) -> int:
    """
    Rolling hash over the UTF-16 code units of key.

        h = (h * 33 + unit) mod 1_000_003
    """
    h = 0
    for unit in _utf16_code_units(key):
        h = (h * BIAS_HASH_MULTIPLIER + unit) % BIAS_HASH_MODULUS
    return h


def compute_seed_bias(movement_id: str, seed: str) -> float:
    """
    Deterministic rank nudge in [-0.3, +0.3] for (movement_id, seed).

    The hash of ``"<seed>:<movement_id>"`` is normalised to [0, 1) and mapped
    linearly onto the bias range.  The same pair always yields the same float,
    so a plan can be regenerated exactly from its seed.
    """
    normalized = seed_hash(f"{seed}:{movement_id}") / BIAS_HASH_MODULUS
    return normalized * BIAS_SPAN - BIAS_OFFSET


# =============================================================================
# RADAR AXES
# =============================================================================

# Stored progress documents and the radar use short slugs.
RADAR_ORDER: tuple[str, ...] = ("pushup", "squat", "pullup", "legraise", "bridge", "hspu")

SLUG_TO_MOVEMENT: dict[str, str] = {
    "pushup": "pushup",
    "squat": "squat",
    "pullup": "pullup",
    "legraise": "leg-raise",
    "bridge": "bridge",
    "hspu": "handstand-pushup",
}

MOVEMENT_TO_SLUG: dict[str, str] = {v: k for k, v in SLUG_TO_MOVEMENT.items()}


@dataclass(frozen=True)
class RadarAxis:
    """One axis of the six-movement progress radar."""

    slug: str
    step_no: int
    tier: Tier
    locked: bool = False
    lock_reason: str | None = None
    score: float = 0.0


def prepare_radar_axes(axes: list[RadarAxis]) -> list[RadarAxis]:
    """
    Return exactly six axes in RADAR_ORDER with scores filled in.

    Missing slugs become locked step-0 BEGINNER axes; locked axes score 0;
    everything else scores to_score(step_no, tier).
    """
    by_slug = {axis.slug: axis for axis in axes}
    prepared: list[RadarAxis] = []
    for slug in RADAR_ORDER:
        axis = by_slug.get(slug)
        if axis is None:
            prepared.append(RadarAxis(slug=slug, step_no=0, tier="BEGINNER", locked=True))
            continue
        score = 0.0 if axis.locked else to_score(axis.step_no, axis.tier)
        prepared.append(replace(axis, score=score))
    return prepared
