"""
Unit tests for complexity bounds and skill cost pricing.
"""

import pytest

from abacus_engine.core.config import ComplexityBounds, ComplexityConfig
from abacus_engine.core.problems import PartType, SlotPurpose
from abacus_engine.curriculum.complexity import (
    SkillCostCalculator,
    base_term_cost,
    get_base_complexity,
    get_complexity_bounds,
    get_complexity_budget,
)


class TestComplexityBounds:
    @pytest.mark.parametrize("purpose", [SlotPurpose.FOCUS, SlotPurpose.REINFORCE, SlotPurpose.REVIEW])
    def test_standard_purposes_have_ceiling_only(self, purpose):
        abacus = get_complexity_bounds(purpose, PartType.ABACUS)
        linear = get_complexity_bounds(purpose, PartType.LINEAR)
        visualization = get_complexity_bounds(purpose, PartType.VISUALIZATION)
        assert abacus.min is None
        assert abacus.max == linear.max
        assert visualization.max < abacus.max

    @pytest.mark.parametrize("part_type", list(PartType))
    def test_challenge_has_floor_only(self, part_type):
        bounds = get_complexity_bounds(SlotPurpose.CHALLENGE, part_type)
        assert bounds == ComplexityBounds(min=1, max=None)

    def test_lookup_is_stable(self):
        first = get_complexity_bounds(SlotPurpose.FOCUS, PartType.VISUALIZATION)
        second = get_complexity_bounds(SlotPurpose.FOCUS, PartType.VISUALIZATION)
        assert first == second

    def test_table_is_configurable(self):
        config = ComplexityConfig()
        config.purpose_bounds[SlotPurpose.REVIEW][PartType.LINEAR] = ComplexityBounds(max=2)
        assert get_complexity_bounds(SlotPurpose.REVIEW, PartType.LINEAR, config).max == 2
        assert get_complexity_bounds(SlotPurpose.REVIEW, PartType.LINEAR).max == 7

    def test_budgets(self):
        assert get_complexity_budget(PartType.ABACUS) == 12
        assert get_complexity_budget(PartType.VISUALIZATION) == 6
        assert get_complexity_budget(PartType.LINEAR) == 8


class TestBaseComplexity:
    def test_by_category(self):
        assert get_base_complexity("basic.directAddition") == 0
        assert get_base_complexity("fiveComplements.4=5-1") == 1
        assert get_base_complexity("tenComplementsSub.-9=+1-10") == 2
        assert get_base_complexity("advanced.cascadingCarry") == 3

    def test_unknown_uses_default(self):
        assert get_base_complexity("mystery.skill") == 1

    def test_term_cost_sums(self):
        assert base_term_cost(["fiveComplements.1=5-4", "tenComplements.9=10-1"]) == 3
        assert base_term_cost([]) == 0


class TestSkillCostCalculator:
    def test_confident_skill_uses_bkt_multiplier(self, make_bkt):
        calculator = SkillCostCalculator({"tenComplements.9=10-1": make_bkt("tenComplements.9=10-1", 1.0, 0.9)})
        assert calculator.multiplier_for("tenComplements.9=10-1") == pytest.approx(1.0)
        assert calculator.calculate_skill_cost("tenComplements.9=10-1") == pytest.approx(2.0)

    def test_unconfident_skill_in_rotation(self, make_bkt):
        calculator = SkillCostCalculator(
            {"fiveComplements.4=5-1": make_bkt("fiveComplements.4=5-1", 1.0, 0.1)},
            rotation_skill_ids=["fiveComplements.4=5-1"],
        )
        assert calculator.multiplier_for("fiveComplements.4=5-1") == 3

    def test_out_of_rotation(self):
        calculator = SkillCostCalculator(rotation_skill_ids=["basic.directAddition"])
        assert calculator.calculate_skill_cost("tenComplements.8=10-2") == 8

    def test_basic_skills_are_free(self):
        calculator = SkillCostCalculator()
        assert calculator.calculate_term_cost(["basic.directAddition", "basic.heavenBead"]) == 0

    def test_mastery_lowers_cost(self, make_bkt):
        sid = "fiveComplements.3=5-2"
        weak = SkillCostCalculator({sid: make_bkt(sid, 0.1, 0.9)})
        strong = SkillCostCalculator({sid: make_bkt(sid, 0.95, 0.9)})
        assert strong.calculate_skill_cost(sid) < weak.calculate_skill_cost(sid)

    def test_describe(self, make_bkt):
        calculator = SkillCostCalculator(rotation_skill_ids=["basic.heavenBead"])
        assert calculator.describe() == {"basic.heavenBead": 3}
