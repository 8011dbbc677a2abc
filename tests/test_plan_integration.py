"""
Integration tests for the daily plan generator.

Each test runs the full pipeline: catalog → availability → ranking →
selection.  Fixtures mirror a mid-level user:

  movement          step  tier          score
  pushup            6     INTERMEDIATE  8
  squat             7     ADVANCED      9
  leg-raise         5     INTERMEDIATE  7
  pullup            3     BEGINNER      5
  bridge            4     BEGINNER      6
  handstand-pushup  2     BEGINNER      4

Rank before bias = base_rank + (10 - score) * 0.5:
  pushup 11.0, squat 10.0, pullup 11.5, leg-raise 10.0, bridge 10.0, hspu 10.5
The seed bias moves each rank by at most ±0.3, so expectations below only
rely on gaps wider than 0.6.
"""

from dataclasses import FrozenInstanceError, replace

import pytest

from pt_planner.core.config import DEFAULT_GENERATION_CONFIG, PTGenerationConfig
from pt_planner.core.models import (
    MOVEMENT_IDS,
    EquipmentSnapshot,
    MovementProgressSnapshot,
    MovementRuleSnapshot,
    PlanContext,
)
from pt_planner.core.movements.loader import get_user_catalog_path, load_movements_from_yaml
from pt_planner.core.movements.registry import DEFAULT_MOVEMENTS, get_movement
from pt_planner.core.planner import (
    explain_daily_plan,
    generate_daily_plan,
    generate_from_context,
    plan_seed,
)


# ===========================================================================
# Helpers
# ===========================================================================

DATE = "2024-05-15"

BASE_PROGRESS = {
    "pushup": MovementProgressSnapshot(6, "INTERMEDIATE"),
    "squat": MovementProgressSnapshot(7, "ADVANCED"),
    "leg-raise": MovementProgressSnapshot(5, "INTERMEDIATE"),
    "pullup": MovementProgressSnapshot(3, "BEGINNER"),
    "bridge": MovementProgressSnapshot(4, "BEGINNER"),
    "handstand-pushup": MovementProgressSnapshot(2, "BEGINNER"),
}

SCORES = {
    "pushup": 8,
    "squat": 9,
    "leg-raise": 7,
    "pullup": 5,
    "bridge": 6,
    "handstand-pushup": 4,
}

EQUIPMENT = EquipmentSnapshot(has_pullup_bar=True, has_wall_space=True)
RULES = MovementRuleSnapshot(bridge_depends_on="any-step5")


def _config(**overrides) -> PTGenerationConfig:
    return replace(DEFAULT_GENERATION_CONFIG, **overrides)


def _plan(config=None, progress=None, equipment=EQUIPMENT, scores=None, last_sessions=None, **kwargs):
    return generate_daily_plan(
        DATE,
        config or DEFAULT_GENERATION_CONFIG,
        BASE_PROGRESS if progress is None else progress,
        equipment,
        RULES,
        radar_scores=SCORES if scores is None else scores,
        last_sessions=last_sessions,
        **kwargs,
    )


def _item(plan, movement_id):
    return next(i for i in plan.items if i.movement_id == movement_id)


# ===========================================================================
# Limits and exclusions
# ===========================================================================


class TestLimits:
    def test_respects_daily_max(self):
        assert len(_plan(_config(daily_max_movements=2)).items) == 2

    def test_all_six_when_max_is_six(self):
        # six distinct categories, everything available
        plan = _plan(_config(daily_max_movements=6))
        assert sorted(plan.movement_ids()) == sorted(MOVEMENT_IDS)

    def test_no_duplicate_movements(self):
        plan = _plan(_config(daily_max_movements=6, allow_same_category_twice=True))
        ids = plan.movement_ids()
        assert len(ids) == len(set(ids))

    def test_empty_progress_gives_empty_plan(self):
        plan = _plan(progress={})
        assert plan.items == []
        assert plan.locked_suggestions is None


class TestExclusions:
    LOCKED_BY_RULE = {
        **BASE_PROGRESS,
        "pushup": MovementProgressSnapshot(4, "BEGINNER"),
        "squat": MovementProgressSnapshot(4, "BEGINNER"),
        "leg-raise": MovementProgressSnapshot(4, "BEGINNER"),
    }

    def _locked_plan(self, suggestions: bool):
        return _plan(
            _config(
                daily_max_movements=4,
                include_locked_as_suggestions=suggestions,
                min_rest_days_per_movement=2,
            ),
            progress=self.LOCKED_BY_RULE,
            equipment=EquipmentSnapshot(has_pullup_bar=False, has_wall_space=True),
            last_sessions={"pushup": "2024-05-14"},
        )

    def test_locked_movements_excluded(self):
        ids = self._locked_plan(False).movement_ids()
        assert "pullup" not in ids
        assert "pushup" not in ids
        assert "bridge" not in ids

    def test_remaining_movements_selected(self):
        assert sorted(self._locked_plan(False).movement_ids()) == ["handstand-pushup", "leg-raise", "squat"]

    def test_suggestions_disabled_is_none(self):
        assert self._locked_plan(False).locked_suggestions is None

    def test_suggestions_carry_reasons_in_catalog_order(self):
        suggestions = self._locked_plan(True).locked_suggestions
        assert [(s.movement_id, s.reason) for s in suggestions] == [
            ("pushup", "insufficient rest"),
            ("pullup", "no equipment"),
            ("bridge", "prerequisite unmet: Step5"),
        ]
        assert suggestions[1].step_id == "pullup-step3"
        assert suggestions[1].tier == "BEGINNER"

    def test_unregistered_suggestion_is_step1_beginner(self):
        progress = {k: v for k, v in BASE_PROGRESS.items() if k != "handstand-pushup"}
        plan = _plan(_config(include_locked_as_suggestions=True), progress=progress)
        (suggestion,) = plan.locked_suggestions
        assert suggestion.movement_id == "handstand-pushup"
        assert suggestion.reason == "progress not registered"
        assert suggestion.step_id == "handstand-pushup-step1"
        assert suggestion.tier == "BEGINNER"

    def test_enabled_but_nothing_excluded_is_none(self):
        plan = _plan(_config(include_locked_as_suggestions=True, daily_max_movements=1))
        assert plan.locked_suggestions is None

    def test_malformed_entry_counts_as_unregistered(self):
        progress = {**BASE_PROGRESS, "pullup": {"step": "three", "tier": "BEGINNER"}}
        plan = _plan(_config(include_locked_as_suggestions=True, daily_max_movements=6), progress=progress)
        assert "pullup" not in plan.movement_ids()
        assert [s.reason for s in plan.locked_suggestions] == ["progress not registered"]


# ===========================================================================
# Ranking
# ===========================================================================


class TestRanking:
    def test_undertrained_boost(self):
        # pullup score 2: 9 + 4 = 13 vs next best 11.0 → always first
        plan = _plan(_config(daily_max_movements=2), scores={**SCORES, "pullup": 2})
        assert plan.items[0].movement_id == "pullup"

    def test_undertrained_tags_and_note(self):
        plan = _plan(scores={**SCORES, "pullup": 2})
        item = _item(plan, "pullup")
        assert item.reason_tags == ("available", "undertrained", "rotation")
        assert item.note == "prioritizing weak point / rotation priority"

    def test_small_bonus_not_tagged(self):
        # squat score 9: bonus 0.5 is not > 0.5
        plan = _plan(_config(daily_max_movements=6))
        item = _item(plan, "squat")
        assert item.reason_tags == ("available", "rotation")
        assert item.note == "rotation priority"

    def test_no_undertrained_without_preference(self):
        plan = _plan(_config(daily_max_movements=6, prefer_undertrained=False))
        assert all("undertrained" not in i.reason_tags for i in plan.items)

    def test_recently_trained_penalised(self):
        # pushup trained yesterday: 11 - 2 = 9 vs pullup 11.5
        plan = _plan(
            _config(daily_max_movements=2, prefer_rotation_days=3),
            last_sessions={"pushup": "2024-05-14"},
        )
        assert plan.items[0].movement_id != "pushup"

    def test_penalised_item_has_no_rotation_tag(self):
        plan = _plan(
            _config(daily_max_movements=6, prefer_rotation_days=3),
            last_sessions={"pushup": "2024-05-14"},
        )
        assert _item(plan, "pushup").reason_tags == ("available", "undertrained")

    def test_rested_long_enough_gets_rotation(self):
        plan = _plan(_config(daily_max_movements=6), last_sessions={"pushup": "2024-05-13"})
        assert "rotation" in _item(plan, "pushup").reason_tags

    def test_rotation_disabled(self):
        # trained movement: no tag; never-trained movement: still tagged
        plan = _plan(
            _config(daily_max_movements=6, prefer_rotation_days=0),
            last_sessions={"pushup": "2024-05-13"},
        )
        assert _item(plan, "pushup").reason_tags == ("available", "undertrained")
        assert "rotation" in _item(plan, "squat").reason_tags

    def test_available_tag_first(self):
        plan = _plan(_config(daily_max_movements=6))
        assert all(i.reason_tags[0] == "available" for i in plan.items)

    def test_item_step_ids(self):
        plan = _plan(_config(daily_max_movements=6))
        assert _item(plan, "pushup").step_id == "pushup-step6"
        assert _item(plan, "squat").tier == "ADVANCED"


class TestCategoryDiversity:
    MOVEMENTS = (
        get_movement("pushup"),
        replace(get_movement("squat"), category="push"),
    )

    def test_one_per_category(self):
        # pushup 11.0 beats squat 10.0
        plan = _plan(movements=self.MOVEMENTS)
        assert plan.movement_ids() == ["pushup"]

    def test_same_category_allowed(self):
        plan = _plan(_config(allow_same_category_twice=True), movements=self.MOVEMENTS)
        assert plan.movement_ids() == ["pushup", "squat"]

    def test_default_catalog_categories_unique(self):
        plan = _plan(_config(daily_max_movements=6))
        categories = [get_movement(i.movement_id).category for i in plan.items]
        assert len(categories) == len(set(categories))


# ===========================================================================
# Determinism and seeds
# ===========================================================================


class TestDeterminism:
    def test_same_inputs_same_plan(self):
        assert _plan(seed="x#1") == _plan(seed="x#1")

    def test_seed_defaults_to_date(self):
        assert _plan().seed == DATE

    def test_explicit_seed_recorded(self):
        assert _plan(seed=plan_seed(DATE, 3)).seed == "2024-05-15#3"

    def test_plan_seed_format(self):
        assert plan_seed(DATE) == "2024-05-15#0"
        assert plan_seed(DATE, 2) == "2024-05-15#2"

    def test_generate_from_context_matches(self):
        context = PlanContext(
            config=_config(daily_max_movements=3),
            progress=BASE_PROGRESS,
            equipment=EQUIPMENT,
            rules=RULES,
            radar_scores=SCORES,
        )
        expected = _plan(_config(daily_max_movements=3), seed="s")
        assert generate_from_context(DATE, context, seed="s") == expected

    def test_plan_is_immutable(self):
        plan = _plan(_config(include_locked_as_suggestions=True), equipment=EquipmentSnapshot())
        with pytest.raises(FrozenInstanceError):
            plan.seed = "other"
        with pytest.raises(FrozenInstanceError):
            plan.items[0].step = 2
        with pytest.raises(FrozenInstanceError):
            plan.locked_suggestions[0].reason = "other"


# ===========================================================================
# Explain
# ===========================================================================


class TestExplain:
    def _context(self, **overrides):
        values = dict(
            config=_config(daily_max_movements=2),
            progress=BASE_PROGRESS,
            equipment=EquipmentSnapshot(has_pullup_bar=False, has_wall_space=True),
            rules=RULES,
            radar_scores=SCORES,
        )
        values.update(overrides)
        return PlanContext(**values)

    def test_selected_count_matches_plan(self):
        context = self._context()
        plan = generate_from_context(DATE, context, seed="s")
        text = explain_daily_plan(DATE, context, seed="s")
        assert text.count("[green]selected[/green]") == len(plan.items)

    def test_mentions_exclusion_reason(self):
        text = explain_daily_plan(DATE, self._context(), seed="s")
        assert "Pullup" in text
        assert "Excluded: no equipment." in text

    def test_empty_plan_hint(self):
        text = explain_daily_plan(DATE, self._context(progress={}))
        assert "Not enough candidates" in text
        assert "No progress recorded" in text


# ===========================================================================
# Catalog
# ===========================================================================


class TestCatalog:
    def test_registry_order(self):
        assert tuple(m.movement_id for m in DEFAULT_MOVEMENTS) == MOVEMENT_IDS

    def test_catalog_ignores_developer_overrides(self):
        # conftest points HOME at an empty directory
        assert get_user_catalog_path() is None
        assert [m.base_rank for m in DEFAULT_MOVEMENTS] == [10.0, 9.5, 9.0, 8.5, 8.0, 7.5]

    def test_unknown_movement(self):
        with pytest.raises(ValueError):
            get_movement("muscle-up")

    def test_bridge_gated_by_prerequisites(self):
        unlock = get_movement("bridge").unlock
        assert unlock.kind == "any_prerequisite_step"
        assert set(unlock.prerequisites) == {"pushup", "squat", "leg-raise"}
        assert unlock.min_step == 5

    def test_user_override_merged(self, tmp_path):
        override = tmp_path / "movements.yaml"
        override.write_text("movements:\n  - movement_id: pushup\n    base_rank: 3.0\n")
        loaded = load_movements_from_yaml(user_path=override)
        by_id = {m.movement_id: m for m in loaded}
        assert by_id["pushup"].base_rank == 3.0
        assert by_id["pushup"].display_name == "Pushup"
        assert by_id["squat"].base_rank == 9.5

    def test_unknown_override_warns(self, tmp_path):
        override = tmp_path / "movements.yaml"
        override.write_text("movements:\n  - movement_id: muscle-up\n    base_rank: 3.0\n")
        with pytest.warns(UserWarning, match="muscle-up"):
            loaded = load_movements_from_yaml(user_path=override)
        assert len(loaded) == 6

    def test_missing_catalog_returns_none(self, tmp_path):
        assert load_movements_from_yaml(
            bundled_path=tmp_path / "absent.yaml",
            user_path=tmp_path / "none.yaml",
        ) is None
