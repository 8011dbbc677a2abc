"""
Availability evaluation for one movement on one date.

Checks run in a fixed order and the first failure is reported:

    1. progress registered
    2. required equipment present
    3. unlock rule satisfied
    4. enough rest since the last session

Everything is modelled as data: an unavailable movement yields a reason
string, never an exception.
"""

from datetime import datetime
from typing import Any, Mapping

from .config import (
    PTGenerationConfig,
    REASON_INSUFFICIENT_REST,
    REASON_NO_EQUIPMENT,
    REASON_NO_WALL_SPACE,
    REASON_NOT_REGISTERED,
)
from .models import (
    AvailabilityResult,
    EquipmentSnapshot,
    MovementProgressSnapshot,
    MovementRuleSnapshot,
)
from .movements.base import MovementDefinition, UnlockRule


def as_progress_snapshot(value: Any) -> MovementProgressSnapshot | None:
    """
    Return value as a MovementProgressSnapshot, or None if it is unusable.

    Accepts snapshots and ``{"step": ..., "tier": ...}`` mappings; anything
    missing a field or holding an invalid value counts as not registered.
    """
    if isinstance(value, MovementProgressSnapshot):
        return value
    if isinstance(value, Mapping):
        try:
            return MovementProgressSnapshot(step=value["step"], tier=value["tier"])
        except (KeyError, ValueError):
            return None
    return None


def days_between(recent: str | None, today: str) -> int | None:
    """
    Whole days from recent to today, clamped to >= 0.

    Returns None when recent is empty or either date cannot be parsed,
    which callers treat as "never trained".
    """
    if not recent:
        return None
    try:
        reference = datetime.strptime(today, "%Y-%m-%d")
        last = datetime.strptime(recent, "%Y-%m-%d")
    except (TypeError, ValueError):
        return None
    return max((reference - last).days, 0)


def rest_threshold(movement: MovementDefinition, config: PTGenerationConfig) -> int:
    """Minimum days between sessions: the stricter of movement and user floor."""
    return max(movement.min_rest_days, config.min_rest_days_per_movement)


def check_unlock(
    rule: UnlockRule,
    progress: Mapping[str, Any],
    rules: MovementRuleSnapshot,
) -> str | None:
    """
    Evaluate an unlock rule.

    Returns None when unlocked, else the lock reason.  Prerequisite-gated
    movements are always unlocked when the user turned the dependency off
    (``bridge_depends_on == "none"``).
    """
    if rule.kind == "always":
        return None
    if rules.bridge_depends_on == "none":
        return None
    for prerequisite in rule.prerequisites:
        snapshot = as_progress_snapshot(progress.get(prerequisite))
        if snapshot is not None and snapshot.step >= rule.min_step:
            return None
    return rule.lock_reason


def evaluate_availability(
    movement: MovementDefinition,
    config: PTGenerationConfig,
    progress: Mapping[str, Any],
    equipment: EquipmentSnapshot,
    rules: MovementRuleSnapshot,
    last_sessions: Mapping[str, str | None],
    date: str,
) -> AvailabilityResult:
    """
    Decide whether a movement can be trained on date.

    Args:
        movement: Movement to check
        config: User's generation config (rest floor)
        progress: movement_id → progress snapshot (partial)
        equipment: Equipment available today
        rules: Unlock rule settings
        last_sessions: movement_id → ISO date of last session (partial)
        date: ISO date being planned

    Returns:
        AvailabilityResult; days_since_last is populated only by the rest check
        and on success.
    """
    if as_progress_snapshot(progress.get(movement.movement_id)) is None:
        return AvailabilityResult(available=False, reason=REASON_NOT_REGISTERED)

    if movement.required_equipment == "pullupBar" and not equipment.has_pullup_bar:
        return AvailabilityResult(available=False, reason=REASON_NO_EQUIPMENT)
    if movement.required_equipment == "wallSpace" and not equipment.has_wall_space:
        return AvailabilityResult(available=False, reason=REASON_NO_WALL_SPACE)

    lock_reason = check_unlock(movement.unlock, progress, rules)
    if lock_reason is not None:
        return AvailabilityResult(available=False, reason=lock_reason)

    days_since_last = days_between(last_sessions.get(movement.movement_id), date)
    if days_since_last is not None and days_since_last < rest_threshold(movement, config):
        return AvailabilityResult(
            available=False,
            reason=REASON_INSUFFICIENT_REST,
            days_since_last=days_since_last,
        )

    return AvailabilityResult(available=True, days_since_last=days_since_last)
