"""
Persistence for daily plans, generation configs and per-user documents.

Every function takes the store as its first argument.  Loaders never raise
on bad data: unreadable backends and corrupt documents are logged and the
"absent" value (None or defaults) is returned instead.

Keys:
    pt-daily-plan:<user>:<date>     StoredDailyPlan
    pt-generation-config:<user>     PTGenerationConfig (partial allowed)
    pt:user:<user>:profile          Profile
    pt:user:<user>:progress         Progress
    pt:user:<user>:settings         equipment + unlock rules
    pt:user:<user>:last-sessions    movement_id -> last session date
"""

import json
import logging
from typing import Any

from ..core.config import (
    CONFIG_KEY_PREFIX,
    DEFAULT_GENERATION_CONFIG,
    PLAN_KEY_PREFIX,
    USER_KEY_PREFIX,
    PTGenerationConfig,
)
from ..core.models import (
    MOVEMENT_IDS,
    EquipmentSnapshot,
    MovementRuleSnapshot,
    PlanContext,
    Profile,
    Progress,
    StoredDailyPlan,
)
from ..core.planner import generate_from_context, plan_seed
from .kv_store import KeyValueStore, StoreError
from .serializers import (
    ValidationError,
    build_progress_map,
    build_radar_scores,
    config_to_dict,
    dict_to_config,
    dict_to_progress,
    dict_to_settings,
    dict_to_stored_plan,
    make_default_profile,
    make_default_progress,
    normalise_profile,
    normalise_progress,
    profile_to_dict,
    progress_to_dict,
    settings_to_dict,
    stored_plan_to_dict,
    to_json,
    validate_date,
    validate_movement_id,
)

logger = logging.getLogger(__name__)

# Errors a loader recovers from
_LOAD_ERRORS = (StoreError, ValidationError, json.JSONDecodeError, ValueError, TypeError)


def plan_key(user_id: str, date: str) -> str:
    return f"{PLAN_KEY_PREFIX}:{user_id}:{date}"


def config_key(user_id: str) -> str:
    return f"{CONFIG_KEY_PREFIX}:{user_id}"


def user_key(user_id: str, document: str) -> str:
    """Key of a per-user document, e.g. ``pt:user:demo-user:progress``."""
    return f"{USER_KEY_PREFIX}:{user_id}:{document}"


# =============================================================================
# DAILY PLAN
# =============================================================================


def load_stored_daily_plan(
    store: KeyValueStore, user_id: str, date: str
) -> StoredDailyPlan | None:
    """
    Load the stored plan for (user_id, date).

    Returns:
        StoredDailyPlan, or None if missing, unreadable or malformed
    """
    key = plan_key(user_id, date)
    try:
        raw = store.get(key)
        if raw is None:
            return None
        plan = dict_to_stored_plan(json.loads(raw))
    except _LOAD_ERRORS as e:
        logger.warning("Ignoring unreadable plan at %s: %s", key, e)
        return None
    if plan.date != date:
        logger.warning("Ignoring plan at %s: stored for %s", key, plan.date)
        return None
    return plan


def save_stored_daily_plan(store: KeyValueStore, user_id: str, plan: StoredDailyPlan) -> None:
    """
    Persist a plan under its own date.

    Raises:
        StoreError: If the backend write fails
    """
    store.set(plan_key(user_id, plan.date), to_json(stored_plan_to_dict(plan)))


# =============================================================================
# GENERATION CONFIG
# =============================================================================


def load_generation_config(store: KeyValueStore, user_id: str) -> PTGenerationConfig:
    """
    Load the user's generation config merged over the defaults.

    Missing keys take their default value; a corrupt document (or an
    unreadable store) yields the full defaults.
    """
    key = config_key(user_id)
    try:
        raw = store.get(key)
        if raw is None:
            return DEFAULT_GENERATION_CONFIG
        return dict_to_config(json.loads(raw))
    except _LOAD_ERRORS as e:
        logger.warning("Using default generation config, %s is unreadable: %s", key, e)
        return DEFAULT_GENERATION_CONFIG


def save_generation_config(
    store: KeyValueStore, user_id: str, config: PTGenerationConfig
) -> None:
    store.set(config_key(user_id), to_json(config_to_dict(config)))


# =============================================================================
# PROFILE / PROGRESS / SETTINGS
# =============================================================================


def _decode_json(raw: str | None, key: str) -> Any:
    """Parse a stored JSON value; None when missing or malformed."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed JSON at %s: %s", key, e)
        return None


def _progress_from_json(data: Any, key: str) -> Progress:
    if data is None:
        return make_default_progress()
    try:
        return normalise_progress(dict_to_progress(data))
    except (ValidationError, ValueError) as e:
        logger.warning("Using default progress, %s is invalid: %s", key, e)
        return make_default_progress()


def _settings_from_json(data: Any, key: str) -> tuple[EquipmentSnapshot, MovementRuleSnapshot]:
    if data is None:
        return EquipmentSnapshot(), MovementRuleSnapshot()
    try:
        return dict_to_settings(data)
    except (ValidationError, ValueError) as e:
        logger.warning("Using default settings, %s is invalid: %s", key, e)
        return EquipmentSnapshot(), MovementRuleSnapshot()


def load_user_documents(
    store: KeyValueStore, user_id: str
) -> tuple[Profile, Progress, tuple[EquipmentSnapshot, MovementRuleSnapshot]]:
    """
    Fetch profile, progress and settings in a single ``mget`` round trip.

    Each document falls back to its default independently.
    """
    keys = [user_key(user_id, doc) for doc in ("profile", "progress", "settings")]
    try:
        raw_profile, raw_progress, raw_settings = store.mget(keys)
    except StoreError as e:
        logger.warning("Cannot read documents for %s: %s", user_id, e)
        raw_profile = raw_progress = raw_settings = None

    profile_data = _decode_json(raw_profile, keys[0])
    profile = normalise_profile(profile_data) if profile_data is not None else make_default_profile()
    progress = _progress_from_json(_decode_json(raw_progress, keys[1]), keys[1])
    settings = _settings_from_json(_decode_json(raw_settings, keys[2]), keys[2])
    return profile, progress, settings


def load_profile(store: KeyValueStore, user_id: str) -> Profile:
    key = user_key(user_id, "profile")
    try:
        data = _decode_json(store.get(key), key)
    except StoreError as e:
        logger.warning("Cannot read %s: %s", key, e)
        data = None
    return normalise_profile(data) if data is not None else make_default_profile()


def save_profile(store: KeyValueStore, user_id: str, profile: Profile) -> Profile:
    """Normalise and persist a profile; returns what was stored."""
    normalised = normalise_profile(profile_to_dict(profile))
    store.set(user_key(user_id, "profile"), to_json(profile_to_dict(normalised)))
    return normalised


def load_progress(store: KeyValueStore, user_id: str) -> Progress:
    key = user_key(user_id, "progress")
    try:
        raw = store.get(key)
    except StoreError as e:
        logger.warning("Cannot read %s: %s", key, e)
        raw = None
    return _progress_from_json(_decode_json(raw, key), key)


def save_progress(store: KeyValueStore, user_id: str, progress: Progress) -> Progress:
    """Normalise and persist a progress document; returns what was stored."""
    normalised = normalise_progress(progress)
    store.set(user_key(user_id, "progress"), to_json(progress_to_dict(normalised)))
    return normalised


def load_settings(
    store: KeyValueStore, user_id: str
) -> tuple[EquipmentSnapshot, MovementRuleSnapshot]:
    key = user_key(user_id, "settings")
    try:
        raw = store.get(key)
    except StoreError as e:
        logger.warning("Cannot read %s: %s", key, e)
        raw = None
    return _settings_from_json(_decode_json(raw, key), key)


def save_settings(
    store: KeyValueStore,
    user_id: str,
    equipment: EquipmentSnapshot,
    rules: MovementRuleSnapshot,
) -> None:
    store.set(user_key(user_id, "settings"), to_json(settings_to_dict(equipment, rules)))


# =============================================================================
# SESSION LOG
# =============================================================================


def load_last_sessions(store: KeyValueStore, user_id: str) -> dict[str, str]:
    """
    Load movement_id → ISO date of the latest session.

    Unknown movements and invalid dates are dropped.
    """
    key = user_key(user_id, "last-sessions")
    try:
        data = _decode_json(store.get(key), key)
    except StoreError as e:
        logger.warning("Cannot read %s: %s", key, e)
        return {}
    if not isinstance(data, dict):
        return {}

    sessions: dict[str, str] = {}
    for movement_id, date in data.items():
        try:
            sessions[validate_movement_id(movement_id)] = validate_date(date)
        except ValidationError as e:
            logger.warning("Skipping session entry in %s: %s", key, e)
    return sessions


def record_session(store: KeyValueStore, user_id: str, movement_id: str, date: str) -> dict[str, str]:
    """
    Record that movement_id was trained on date.

    Only the latest date per movement is kept, so logging an older session
    never moves the last-session date backwards.

    Returns:
        The updated movement_id → date map

    Raises:
        ValidationError: If movement_id or date is invalid
        StoreError: If the backend write fails
    """
    validate_movement_id(movement_id)
    validate_date(date)
    sessions = load_last_sessions(store, user_id)
    if sessions.get(movement_id, "") < date:
        sessions[movement_id] = date
    ordered = {m: sessions[m] for m in MOVEMENT_IDS if m in sessions}
    store.set(user_key(user_id, "last-sessions"), to_json(ordered))
    return ordered


# =============================================================================
# PLAN LIFECYCLE
# =============================================================================


def load_plan_context(store: KeyValueStore, user_id: str) -> PlanContext:
    """Assemble everything the generator needs for user_id from the store."""
    _, progress, (equipment, rules) = load_user_documents(store, user_id)
    return PlanContext(
        config=load_generation_config(store, user_id),
        progress=build_progress_map(progress),
        equipment=equipment,
        rules=rules,
        radar_scores=build_radar_scores(progress),
        last_sessions=load_last_sessions(store, user_id),
    )


def get_or_create_daily_plan(
    store: KeyValueStore,
    user_id: str,
    date: str,
    context: PlanContext | None = None,
) -> StoredDailyPlan:
    """
    Return the stored plan for date, generating and saving the first one.

    A new date always starts from a fresh ``<date>#0`` plan.
    """
    existing = load_stored_daily_plan(store, user_id, date)
    if existing is not None:
        return existing

    context = context if context is not None else load_plan_context(store, user_id)
    plan = StoredDailyPlan.from_plan(
        generate_from_context(date, context, seed=plan_seed(date, 0)),
        reroll_count=0,
    )
    save_stored_daily_plan(store, user_id, plan)
    logger.info("Generated plan for %s on %s", user_id, date)
    return plan


def reroll_daily_plan(
    store: KeyValueStore,
    user_id: str,
    date: str,
    context: PlanContext | None = None,
) -> StoredDailyPlan:
    """
    Regenerate date's plan with the next seed and persist it.

    The reroll count continues from the stored plan (0 if there is none),
    so the n-th reroll always uses seed ``<date>#<n>``.
    """
    existing = load_stored_daily_plan(store, user_id, date)
    reroll_count = (existing.reroll_count if existing is not None else 0) + 1

    context = context if context is not None else load_plan_context(store, user_id)
    plan = StoredDailyPlan.from_plan(
        generate_from_context(date, context, seed=plan_seed(date, reroll_count)),
        reroll_count=reroll_count,
    )
    save_stored_daily_plan(store, user_id, plan)
    logger.info("Rerolled plan for %s on %s (#%d)", user_id, date, reroll_count)
    return plan
