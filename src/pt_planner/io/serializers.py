"""
JSON serialization for pt-planner models.

Handles conversion between dataclasses and JSON-compatible dicts.  Plan,
profile, progress and settings documents use the camelCase keys the web
front-end reads; the generation config keeps its snake_case option names.
"""

import json
import math
import re
from datetime import datetime, timezone
from typing import Any

from ..core.availability import check_unlock
from ..core.config import PROFILE_FALLBACK_DISPLAY_NAME, PTGenerationConfig, resolve_generation_config
from ..core.metrics import RADAR_ORDER, SLUG_TO_MOVEMENT, RadarAxis, clamp, prepare_radar_axes, to_score
from ..core.models import (
    BRIDGE_RULES,
    MOVEMENT_IDS,
    TIERS,
    DailyPlanItem,
    DailyPlanSuggestion,
    EquipmentSnapshot,
    MovementProgress,
    MovementProgressSnapshot,
    MovementRuleSnapshot,
    Profile,
    Progress,
    StoredDailyPlan,
    Tier,
)
from ..core.movements.registry import get_movement


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


_STEP_ID_RE = re.compile(r"^(?P<movement>.+)-step(?P<step>\d+)$")
MAX_DISPLAY_NAME_LENGTH = 50


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def validate_tier(tier: Any) -> Tier:
    """
    Validate a tier label.

    Raises:
        ValidationError: If tier is not BEGINNER, INTERMEDIATE or ADVANCED
    """
    if tier not in TIERS:
        raise ValidationError(f"Invalid tier: {tier!r}. Must be one of {TIERS}")
    return tier


def validate_movement_id(movement_id: Any) -> str:
    """
    Validate a movement identifier.

    Raises:
        ValidationError: If movement_id is not one of the six movements
    """
    if movement_id not in MOVEMENT_IDS:
        raise ValidationError(
            f"Invalid movement: {movement_id!r}. Must be one of {MOVEMENT_IDS}"
        )
    return movement_id


def parse_step_id(step_id: str, movement_id: str) -> int:
    """
    Recover the step number from a stored step identifier.

    Raises:
        ValidationError: If step_id is malformed or belongs to another movement
    """
    match = _STEP_ID_RE.match(step_id) if isinstance(step_id, str) else None
    if match is None or match.group("movement") != movement_id:
        raise ValidationError(f"Invalid stepId {step_id!r} for movement {movement_id!r}")
    return int(match.group("step"))


# =============================================================================
# DAILY PLAN
# =============================================================================


def plan_item_to_dict(item: DailyPlanItem) -> dict[str, Any]:
    d: dict[str, Any] = {
        "movementId": item.movement_id,
        "stepId": item.step_id,
        "tier": item.tier,
        "reasonTags": list(item.reason_tags),
    }
    if item.note is not None:
        d["note"] = item.note
    return d


def dict_to_plan_item(data: dict[str, Any]) -> DailyPlanItem:
    """
    Convert dict to DailyPlanItem.

    Raises:
        ValidationError: If data is invalid
    """
    movement_id = validate_movement_id(data.get("movementId"))
    tags = data.get("reasonTags", [])
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError(f"Invalid reasonTags: {tags!r}")
    note = data.get("note")
    return DailyPlanItem(
        movement_id=movement_id,
        step=parse_step_id(data.get("stepId", ""), movement_id),
        tier=validate_tier(data.get("tier")),
        note=str(note) if note is not None else None,
        reason_tags=tuple(tags),
    )


def suggestion_to_dict(suggestion: DailyPlanSuggestion) -> dict[str, Any]:
    return {
        "movementId": suggestion.movement_id,
        "reason": suggestion.reason,
        "tier": suggestion.tier,
        "stepId": suggestion.step_id,
    }


def dict_to_suggestion(data: dict[str, Any]) -> DailyPlanSuggestion:
    movement_id = validate_movement_id(data.get("movementId"))
    reason = data.get("reason")
    if not isinstance(reason, str):
        raise ValidationError(f"Invalid suggestion reason: {reason!r}")
    return DailyPlanSuggestion(
        movement_id=movement_id,
        reason=reason,
        tier=validate_tier(data.get("tier")),
        step=parse_step_id(data.get("stepId", ""), movement_id),
    )


def stored_plan_to_dict(plan: StoredDailyPlan) -> dict[str, Any]:
    """
    Convert StoredDailyPlan to JSON-compatible dict.

    Optional fields (seed, lockedSuggestions) are omitted when absent.
    """
    d: dict[str, Any] = {
        "date": plan.date,
        "items": [plan_item_to_dict(i) for i in plan.items],
        "rerollCount": plan.reroll_count,
    }
    if plan.seed is not None:
        d["seed"] = plan.seed
    if plan.locked_suggestions is not None:
        d["lockedSuggestions"] = [suggestion_to_dict(s) for s in plan.locked_suggestions]
    return d


def dict_to_stored_plan(data: Any) -> StoredDailyPlan:
    """
    Convert dict to StoredDailyPlan.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Stored plan must be a JSON object")
    validate_date(data.get("date"))

    items = data.get("items", [])
    if not isinstance(items, list):
        raise ValidationError("Stored plan items must be a list")

    reroll_count = data.get("rerollCount", 0)
    if isinstance(reroll_count, bool) or not isinstance(reroll_count, int) or reroll_count < 0:
        raise ValidationError(f"Invalid rerollCount: {reroll_count!r}")

    raw_suggestions = data.get("lockedSuggestions")
    if raw_suggestions is not None and not isinstance(raw_suggestions, list):
        raise ValidationError("lockedSuggestions must be a list")

    seed = data.get("seed")
    return StoredDailyPlan(
        date=data["date"],
        items=[dict_to_plan_item(i) for i in items],
        seed=str(seed) if seed is not None else None,
        locked_suggestions=(
            [dict_to_suggestion(s) for s in raw_suggestions]
            if raw_suggestions is not None
            else None
        ),
        reroll_count=reroll_count,
    )


# =============================================================================
# GENERATION CONFIG
# =============================================================================


def config_to_dict(config: PTGenerationConfig) -> dict[str, Any]:
    return config.to_dict()


def dict_to_config(data: Any) -> PTGenerationConfig:
    """
    Merge a stored (possibly partial) config dict over the defaults.

    Raises:
        ValidationError: If data is not an object or holds invalid options
    """
    if not isinstance(data, dict):
        raise ValidationError("Generation config must be a JSON object")
    try:
        return resolve_generation_config(data)
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# SETTINGS (EQUIPMENT + RULES)
# =============================================================================


def settings_to_dict(equipment: EquipmentSnapshot, rules: MovementRuleSnapshot) -> dict[str, Any]:
    return {
        "hasPullupBar": equipment.has_pullup_bar,
        "hasWallSpace": equipment.has_wall_space,
        "rules": {"bridgeDependsOn": rules.bridge_depends_on},
    }


def dict_to_settings(data: Any) -> tuple[EquipmentSnapshot, MovementRuleSnapshot]:
    """
    Convert a settings dict to (equipment, rules); absent fields use defaults.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Settings must be a JSON object")
    for key in ("hasPullupBar", "hasWallSpace"):
        if key in data and not isinstance(data[key], bool):
            raise ValidationError(f"{key} must be a boolean")
    rules = data.get("rules") or {}
    if not isinstance(rules, dict):
        raise ValidationError("rules must be a JSON object")
    bridge_rule = rules.get("bridgeDependsOn", "any-step5")
    if bridge_rule not in BRIDGE_RULES:
        raise ValidationError(f"Invalid bridgeDependsOn: {bridge_rule!r}")
    return (
        EquipmentSnapshot(
            has_pullup_bar=data.get("hasPullupBar", False),
            has_wall_space=data.get("hasWallSpace", False),
        ),
        MovementRuleSnapshot(bridge_depends_on=bridge_rule),
    )


# =============================================================================
# PROFILE
# =============================================================================


def make_default_profile() -> Profile:
    return Profile(display_name=PROFILE_FALLBACK_DISPLAY_NAME, updated_at=_utc_now())


def safe_display_name(value: Any) -> str:
    """Trimmed display name, or the fallback name when empty or missing."""
    if isinstance(value, Profile):
        value = value.display_name
    if isinstance(value, str) and value.strip():
        return value.strip()
    return PROFILE_FALLBACK_DISPLAY_NAME


def normalise_profile(data: Any) -> Profile:
    """
    Build a Profile from a (possibly partial) dict.

    Missing or blank names fall back to "Guest"; a missing timestamp becomes now.
    """
    data = data if isinstance(data, dict) else {}
    updated_at = data.get("updatedAt")
    if not isinstance(updated_at, str) or not updated_at.strip():
        updated_at = _utc_now()
    return Profile(
        display_name=safe_display_name(data.get("displayName"))[:MAX_DISPLAY_NAME_LENGTH],
        updated_at=updated_at,
    )


def profile_to_dict(profile: Profile) -> dict[str, Any]:
    return {"displayName": profile.display_name, "updatedAt": profile.updated_at}


# =============================================================================
# PROGRESS
# =============================================================================


def _default_movement_progress(slug: str, now: str) -> MovementProgress:
    return MovementProgress(slug=slug, step_no=1, tier="BEGINNER", score=0.0, updated_at=now)


def make_default_progress() -> Progress:
    now = _utc_now()
    return Progress(
        movements=[_default_movement_progress(slug, now) for slug in RADAR_ORDER],
        version=1,
    )


def dict_to_movement_progress(data: Any) -> MovementProgress:
    """
    Convert dict to MovementProgress.

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Movement progress must be a JSON object")
    slug = data.get("slug")
    if slug not in RADAR_ORDER:
        raise ValidationError(f"Invalid slug: {slug!r}")
    step_no = data.get("stepNo")
    if isinstance(step_no, bool) or not isinstance(step_no, int) or not 0 <= step_no <= 10:
        raise ValidationError(f"Invalid stepNo for {slug}: {step_no!r}")
    score = data.get("score")
    if score is not None and (isinstance(score, bool) or not isinstance(score, (int, float))):
        raise ValidationError(f"Invalid score for {slug}: {score!r}")
    updated_at = data.get("updatedAt")
    if not isinstance(updated_at, str):
        raise ValidationError(f"Invalid updatedAt for {slug}: {updated_at!r}")
    return MovementProgress(
        slug=slug,
        step_no=step_no,
        tier=validate_tier(data.get("tier")),
        score=float(score) if score is not None else None,
        updated_at=updated_at,
    )


def movement_progress_to_dict(entry: MovementProgress) -> dict[str, Any]:
    d: dict[str, Any] = {
        "slug": entry.slug,
        "stepNo": entry.step_no,
        "tier": entry.tier,
        "updatedAt": entry.updated_at,
    }
    if entry.score is not None:
        d["score"] = entry.score
    return d


def progress_to_dict(progress: Progress) -> dict[str, Any]:
    return {
        "movements": [movement_progress_to_dict(m) for m in progress.movements],
        "version": progress.version,
    }


def dict_to_progress(data: Any) -> Progress:
    """
    Convert dict to Progress (not normalised).

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict) or not isinstance(data.get("movements"), list):
        raise ValidationError("Progress must be an object with a movements list")
    version = data.get("version", 1)
    return Progress(
        movements=[dict_to_movement_progress(m) for m in data["movements"]],
        version=version if isinstance(version, int) and not isinstance(version, bool) else 1,
    )


def normalise_progress(progress: Progress) -> Progress:
    """
    Return progress with exactly one entry per slug, in radar order.

    Missing slugs get a step-1 BEGINNER entry; stored scores are clamped to
    [0, 10] (non-finite scores become 0).
    """
    now = _utc_now()
    by_slug = {m.slug: m for m in progress.movements}
    movements: list[MovementProgress] = []
    for slug in RADAR_ORDER:
        entry = by_slug.get(slug)
        if entry is None:
            movements.append(_default_movement_progress(slug, now))
            continue
        score = entry.score
        if score is not None:
            score = clamp(score if math.isfinite(score) else 0.0, 0.0, 10.0)
        movements.append(
            MovementProgress(
                slug=entry.slug,
                step_no=entry.step_no,
                tier=entry.tier,
                score=score,
                updated_at=entry.updated_at,
            )
        )
    return Progress(movements=movements, version=progress.version)


def build_progress_map(progress: Progress) -> dict[str, MovementProgressSnapshot]:
    """
    Convert a progress document to the generator's movement_id → snapshot map.

    Entries at step 0 (not started) are left out, i.e. not registered.
    """
    result: dict[str, MovementProgressSnapshot] = {}
    for entry in progress.movements:
        movement_id = SLUG_TO_MOVEMENT.get(entry.slug)
        if movement_id is None or entry.step_no < 1:
            continue
        result[movement_id] = MovementProgressSnapshot(step=entry.step_no, tier=entry.tier)
    return result


def build_radar_scores(progress: Progress) -> dict[str, float]:
    """Stored score per movement, else derived from step/tier; clamped to [0, 10]."""
    result: dict[str, float] = {}
    for entry in progress.movements:
        movement_id = SLUG_TO_MOVEMENT.get(entry.slug)
        if movement_id is None:
            continue
        score = entry.score if entry.score is not None else to_score(entry.step_no, entry.tier)
        result[movement_id] = clamp(score if math.isfinite(score) else 0.0, 0.0, 10.0)
    return result


def to_json(data: dict[str, Any]) -> str:
    """Serialize a document to a compact JSON string."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def build_radar_axes(progress: Progress, rules: MovementRuleSnapshot) -> list[RadarAxis]:
    """
    Radar axes for a progress document, ready for display.

    An axis is locked when the movement is not started (step 0) or its
    unlock rule is unmet under rules.
    """
    progress_map = build_progress_map(progress)
    axes: list[RadarAxis] = []
    for entry in progress.movements:
        movement_id = SLUG_TO_MOVEMENT.get(entry.slug)
        if movement_id is None:
            continue
        if entry.step_no < 1:
            axes.append(RadarAxis(entry.slug, entry.step_no, entry.tier, locked=True, lock_reason="not started"))
            continue
        lock_reason = check_unlock(get_movement(movement_id).unlock, progress_map, rules)
        axes.append(
            RadarAxis(
                entry.slug,
                entry.step_no,
                entry.tier,
                locked=lock_reason is not None,
                lock_reason=lock_reason,
            )
        )
    return prepare_radar_axes(axes)
