"""
Daily plan generation for pt-planner.

Ranks the available movements for one date and greedily selects a bounded,
category-diverse subset.  Generation is deterministic for a given seed: the
only source of variety is compute_seed_bias(), so a reroll is just a new
seed.  Every selected item carries reason tags explaining why it ranked
where it did; excluded movements can be surfaced with their lock reason.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .availability import as_progress_snapshot, evaluate_availability, rest_threshold
from .config import (
    MAX_SCORE,
    NOTE_ROTATION,
    NOTE_SEPARATOR,
    NOTE_UNDERTRAINED,
    PTGenerationConfig,
    REASON_LOCKED,
    REASON_NOT_REGISTERED,
    ROTATION_PENALTY,
    TAG_AVAILABLE,
    TAG_ROTATION,
    TAG_UNDERTRAINED,
    UNDERTRAINED_TAG_THRESHOLD,
    UNDERTRAINED_WEIGHT,
)
from .metrics import compute_seed_bias, resolve_score
from .models import (
    AvailabilityResult,
    DailyPlan,
    DailyPlanItem,
    DailyPlanSuggestion,
    EquipmentSnapshot,
    MovementProgressSnapshot,
    MovementRuleSnapshot,
    PlanContext,
)
from .movements.base import MovementDefinition
from .movements.registry import DEFAULT_MOVEMENTS

logger = logging.getLogger(__name__)

Outcome = str  # "selected" | "category taken" | "limit reached" | "unavailable" | "not registered"


@dataclass
class _CandidateTrace:
    """
    All intermediate values from _plan_core() for one movement.

    Consumed by _format_explain() so the explanation never re-computes
    (and can never diverge from) the plan.
    """

    movement: MovementDefinition
    availability: AvailabilityResult
    snapshot: MovementProgressSnapshot | None = None
    score: float | None = None
    rest_days_required: int = 0

    # Rank components (only for available movements)
    undertrained_bonus: float = 0.0
    rotation_adjustment: float = 0.0
    seed_bias: float = 0.0
    rank: float | None = None

    reason_tags: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    outcome: Outcome = "unavailable"

    @property
    def note(self) -> str | None:
        return NOTE_SEPARATOR.join(self.notes) if self.notes else None


def plan_seed(date: str, reroll_count: int = 0) -> str:
    """Seed for the n-th generation of a date's plan (``<date>#<n>``)."""
    return f"{date}#{reroll_count}"


def _add_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _rank_candidate(
    trace: _CandidateTrace,
    score: float,
    config: PTGenerationConfig,
    seed: str,
) -> None:
    """Fill in the rank, tags and notes of an available candidate."""
    movement = trace.movement
    rank = movement.base_rank
    _add_unique(trace.reason_tags, TAG_AVAILABLE)

    if config.prefer_undertrained:
        bonus = (MAX_SCORE - score) * UNDERTRAINED_WEIGHT
        trace.undertrained_bonus = bonus
        rank += bonus
        if bonus > UNDERTRAINED_TAG_THRESHOLD:
            _add_unique(trace.reason_tags, TAG_UNDERTRAINED)
            _add_unique(trace.notes, NOTE_UNDERTRAINED)

    days_since_last = trace.availability.days_since_last
    if days_since_last is None:
        # Never trained: always worth rotating in
        _add_unique(trace.reason_tags, TAG_ROTATION)
        _add_unique(trace.notes, NOTE_ROTATION)
    elif config.prefer_rotation_days > 0:
        if days_since_last < config.prefer_rotation_days:
            trace.rotation_adjustment = -ROTATION_PENALTY
            rank -= ROTATION_PENALTY
        else:
            _add_unique(trace.reason_tags, TAG_ROTATION)
            _add_unique(trace.notes, NOTE_ROTATION)

    trace.seed_bias = compute_seed_bias(movement.movement_id, seed)
    trace.rank = rank + trace.seed_bias


def _plan_core(
    date: str,
    config: PTGenerationConfig,
    progress: Mapping[str, Any],
    equipment: EquipmentSnapshot,
    rules: MovementRuleSnapshot,
    radar_scores: Mapping[str, float] | None = None,
    last_sessions: Mapping[str, str | None] | None = None,
    seed: str | None = None,
    movements: Sequence[MovementDefinition] | None = None,
) -> tuple[DailyPlan, list[_CandidateTrace]]:
    """
    Shared engine behind generate_daily_plan() and explain_daily_plan().

    Returns the plan and one trace per movement, in catalog order.
    """
    radar_scores = radar_scores or {}
    last_sessions = last_sessions or {}
    seed = date if seed is None else seed
    movements = DEFAULT_MOVEMENTS if movements is None else movements

    items: list[DailyPlanItem] = []
    suggestions: list[DailyPlanSuggestion] = []
    traces: list[_CandidateTrace] = []
    candidates: list[_CandidateTrace] = []

    for movement in movements:
        availability = evaluate_availability(
            movement, config, progress, equipment, rules, last_sessions, date
        )
        trace = _CandidateTrace(
            movement=movement,
            availability=availability,
            rest_days_required=rest_threshold(movement, config),
        )
        traces.append(trace)

        snapshot = as_progress_snapshot(progress.get(movement.movement_id))
        if snapshot is None:
            trace.outcome = "not registered"
            if config.include_locked_as_suggestions:
                suggestions.append(
                    DailyPlanSuggestion(
                        movement_id=movement.movement_id,
                        reason=REASON_NOT_REGISTERED,
                        tier="BEGINNER",
                        step=1,
                    )
                )
            continue

        trace.snapshot = snapshot
        score = resolve_score(snapshot, radar_scores.get(movement.movement_id))
        trace.score = score

        if not availability.available:
            trace.outcome = "unavailable"
            if config.include_locked_as_suggestions:
                suggestions.append(
                    DailyPlanSuggestion(
                        movement_id=movement.movement_id,
                        reason=availability.reason or REASON_LOCKED,
                        tier=snapshot.tier,
                        step=snapshot.step,
                    )
                )
            continue

        _rank_candidate(trace, score, config, seed)
        candidates.append(trace)
        logger.debug(
            "candidate %s: rank=%.3f score=%.2f tags=%s",
            movement.movement_id,
            trace.rank,
            trace.score,
            trace.reason_tags,
        )

    # Highest rank first; display name breaks exact ties
    candidates.sort(key=lambda c: (-c.rank, c.movement.display_name))

    used_categories: set[str] = set()
    for candidate in candidates:
        if len(items) >= config.daily_max_movements:
            candidate.outcome = "limit reached"
            continue
        category = candidate.movement.category
        if not config.allow_same_category_twice and category in used_categories:
            candidate.outcome = "category taken"
            continue

        snapshot = candidate.snapshot
        assert snapshot is not None  # set for every ranked candidate
        items.append(
            DailyPlanItem(
                movement_id=candidate.movement.movement_id,
                step=snapshot.step,
                tier=snapshot.tier,
                note=candidate.note,
                reason_tags=tuple(candidate.reason_tags),
            )
        )
        candidate.outcome = "selected"
        used_categories.add(category)

    plan = DailyPlan(
        date=date,
        items=items,
        seed=seed,
        locked_suggestions=suggestions if config.include_locked_as_suggestions and suggestions else None,
    )

    logger.debug(
        "plan %s (seed %s): %s", date, seed, [item.step_id for item in plan.items]
    )
    return plan, traces


def generate_daily_plan(
    date: str,
    config: PTGenerationConfig,
    progress: Mapping[str, Any],
    equipment: EquipmentSnapshot,
    rules: MovementRuleSnapshot,
    radar_scores: Mapping[str, float] | None = None,
    last_sessions: Mapping[str, str | None] | None = None,
    seed: str | None = None,
    movements: Sequence[MovementDefinition] | None = None,
) -> DailyPlan:
    """
    Generate the plan for one date.

    Args:
        date: ISO date being planned (drives rest-day math)
        config: User's generation config
        progress: movement_id → MovementProgressSnapshot; missing or malformed
            entries are treated as not registered
        equipment: Equipment available today
        rules: Unlock rule settings
        radar_scores: Optional explicit 0-10 scores overriding derived ones
        last_sessions: Optional movement_id → ISO date of last session
        seed: Bias seed (default: date)
        movements: Catalog override (default: the six built-ins)

    Returns:
        DailyPlan with at most config.daily_max_movements items.  An empty
        items list is a valid result.
    """
    plan, _ = _plan_core(
        date,
        config,
        progress,
        equipment,
        rules,
        radar_scores=radar_scores,
        last_sessions=last_sessions,
        seed=seed,
        movements=movements,
    )
    return plan


def generate_from_context(
    date: str,
    context: PlanContext,
    seed: str | None = None,
) -> DailyPlan:
    """Generate a plan from a PlanContext assembled by the storage layer."""
    return generate_daily_plan(
        date,
        context.config,
        context.progress,
        context.equipment,
        context.rules,
        radar_scores=context.radar_scores,
        last_sessions=context.last_sessions,
        seed=seed,
    )


def explain_daily_plan(
    date: str,
    context: PlanContext,
    seed: str | None = None,
) -> str:
    """
    Return a Rich-markup explanation of how each movement was ranked.

    Uses the same engine as generate_daily_plan(), so the explanation always
    matches the plan produced for the same inputs.
    """
    plan, traces = _plan_core(
        date,
        context.config,
        context.progress,
        context.equipment,
        context.rules,
        radar_scores=context.radar_scores,
        last_sessions=context.last_sessions,
        seed=seed,
    )
    return _format_explain(plan, traces, context.config)


_OUTCOME_STYLE: dict[str, str] = {
    "selected": "green",
    "category taken": "yellow",
    "limit reached": "yellow",
    "unavailable": "red",
    "not registered": "dim",
}


def _format_explain(
    plan: DailyPlan,
    traces: list[_CandidateTrace],
    config: PTGenerationConfig,
) -> str:
    """
    Format traces into a step-by-step explanation.

    Pure formatter: all values come from the traces built by _plan_core().
    """
    rule = "─" * 54
    L: list[str] = []

    L.append(f"[bold cyan]Daily plan  ·  {plan.date}  ·  seed {plan.seed}[/bold cyan]")
    L.append(rule)
    L.append(
        f"  Up to {config.daily_max_movements} movement(s); "
        + ("categories may repeat." if config.allow_same_category_twice else "one per category.")
    )

    ranked = sorted(
        (t for t in traces if t.rank is not None),
        key=lambda t: (-t.rank, t.movement.display_name),  # type: ignore[operator]
    )
    unranked = [t for t in traces if t.rank is None]

    for t in ranked + unranked:
        m = t.movement
        style = _OUTCOME_STYLE.get(t.outcome, "white")
        L.append(f"\n[bold]{m.display_name}[/bold] ({m.category})  [{style}]{t.outcome}[/{style}]")

        if t.snapshot is None:
            L.append("  No progress recorded for this movement.")
            continue

        L.append(f"  Step {t.snapshot.step} {t.snapshot.tier}, score {t.score:.2f}.")
        days = t.availability.days_since_last
        if days is None:
            L.append("  Never trained (or no readable date): fully rested.")
        else:
            L.append(f"  {days} day(s) since last session; needs {t.rest_days_required}.")

        if t.rank is None:
            L.append(f"  Excluded: {t.availability.reason or REASON_LOCKED}.")
            continue

        L.append(f"  Base rank                {m.base_rank:+.2f}")
        if config.prefer_undertrained:
            L.append(
                f"  Undertrained (10 - {t.score:.2f}) × {UNDERTRAINED_WEIGHT}"
                f" {t.undertrained_bonus:+.2f}"
            )
        if t.rotation_adjustment:
            L.append(f"  Recently trained         {t.rotation_adjustment:+.2f}")
        L.append(f"  Seed bias                {t.seed_bias:+.2f}")
        L.append(f"  [bold]Rank                     {t.rank:.2f}[/bold]")
        L.append(f"  Tags: {', '.join(t.reason_tags)}")

    if not plan.items:
        L.append("\n[yellow]Not enough candidates: check equipment and prerequisites.[/yellow]")

    return "\n".join(L)
