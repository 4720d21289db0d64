"""
Unit tests for bead-level skill detection.

Each case is checked against the actual soroban state, so the same delta
can map to different techniques depending on the starting value.
"""

import pytest

from abacus_engine.generation.skill_analysis import (
    StepSkillsCache,
    analyze_required_skills,
    analyze_step_skills,
    build_generation_trace,
    explain_step,
)


class TestAdditionSkills:
    @pytest.mark.parametrize(
        "current,term,expected",
        [
            (0, 3, ["basic.directAddition"]),
            (0, 4, ["basic.directAddition"]),
            (2, 4, ["fiveComplements.4=5-1"]),
            (4, 1, ["fiveComplements.1=5-4"]),
            (0, 5, ["basic.heavenBead"]),
            (0, 7, ["basic.simpleCombinations"]),
            (5, 3, ["basic.directAddition"]),
            (3, 7, ["tenComplements.7=10-3"]),
            (9, 1, ["tenComplements.1=10-9"]),
        ],
    )
    def test_single_column(self, current, term, expected):
        assert analyze_step_skills(current, term) == expected

    def test_carry_into_four_needs_five_complement(self):
        assert analyze_step_skills(46, 5) == ["tenComplements.5=10-5", "fiveComplements.1=5-4"]

    def test_cascading_carry(self):
        assert analyze_step_skills(99, 1) == ["tenComplements.1=10-9", "advanced.cascadingCarry"]

    def test_multi_digit_term(self):
        assert analyze_step_skills(3, 12) == ["basic.directAddition", "fiveComplements.2=5-3"]

    def test_new_value_is_ignored(self):
        assert analyze_step_skills(2, 4, 6) == analyze_step_skills(2, 4)


class TestSubtractionSkills:
    @pytest.mark.parametrize(
        "current,term,expected",
        [
            (8, -3, ["basic.directSubtraction"]),
            (7, -3, ["fiveComplementsSub.-3=-5+2"]),
            (5, -5, ["basic.heavenBeadSubtraction"]),
            (9, -7, ["basic.simpleCombinationsSub"]),
            (10, -1, ["tenComplementsSub.-1=+9-10"]),
        ],
    )
    def test_single_column(self, current, term, expected):
        assert analyze_step_skills(current, term) == expected

    def test_cascading_borrow(self):
        assert analyze_step_skills(100, -1) == ["tenComplementsSub.-1=+9-10", "advanced.cascadingBorrow"]

    def test_borrow_from_five_needs_five_complement(self):
        assert analyze_step_skills(51, -2) == ["tenComplementsSub.-2=+8-10", "fiveComplementsSub.-1=-5+4"]

    def test_negative_result_is_impossible(self):
        assert analyze_step_skills(3, -5) == []
        assert analyze_step_skills(0, -1) == []

    def test_zero_term(self):
        assert analyze_step_skills(4, 0) == []


class TestStepSkillsCache:
    def test_hits_and_misses(self):
        cache = StepSkillsCache()
        first = cache.analyze(2, 4)
        second = cache.analyze(2, 4)
        assert first == ("fiveComplements.4=5-1",)
        assert second is first
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_caches_are_independent(self):
        a, b = StepSkillsCache(), StepSkillsCache()
        a.analyze(0, 3)
        assert b.size == 0

    def test_clear(self):
        cache = StepSkillsCache()
        cache.analyze(0, 3)
        cache.clear()
        assert cache.stats() == {"size": 0, "hits": 0, "misses": 0}


class TestRequiredSkillsAndTrace:
    def test_union_in_first_use_order(self):
        assert analyze_required_skills([3, 4, 2]) == ["basic.directAddition", "fiveComplements.4=5-1"]

    def test_cache_gives_same_answer(self):
        cache = StepSkillsCache()
        assert analyze_required_skills([3, 4, 2], cache) == analyze_required_skills([3, 4, 2])
        assert cache.misses == 3

    def test_trace_steps(self):
        trace = build_generation_trace([3, 4, 2])
        assert trace.answer == 9
        assert [s.step_number for s in trace.steps] == [1, 2, 3]
        assert trace.steps[0].operation == "0 + 3 = 3"
        assert trace.steps[1].accumulated_before == 3
        assert trace.steps[1].accumulated_after == 7
        assert trace.steps[1].skills_used == ("fiveComplements.4=5-1",)
        assert [s.complexity_cost for s in trace.steps] == [0, 1, 0]
        assert trace.total_complexity_cost == 1

    def test_trace_with_subtraction_and_budget(self):
        trace = build_generation_trace([8, -3], cost_fn=lambda skills: 2.0 * len(skills), budget_constraint=5)
        assert trace.steps[1].operation == "8 - 3 = 5"
        assert trace.steps[1].complexity_cost == 2.0
        assert trace.budget_constraint == 5
        assert trace.all_skills == ("basic.simpleCombinations", "basic.directSubtraction")

    def test_explanation(self):
        assert explain_step(4, ["fiveComplements.4=5-1"]) == "Add 4 using five complement (4=5-1)"
        assert explain_step(-2, []) == "Subtract 2"
