"""
Unit tests for the constraint-based problem generator.
"""

import random

import pytest

from abacus_engine.core.problems import GeneratedProblem
from abacus_engine.core.skills import SkillCategory, SkillSet
from abacus_engine.curriculum.complexity import SkillCostCalculator
from abacus_engine.generation.problem_generator import (
    NumberRange,
    ProblemConstraints,
    explain_generation_failure,
    generate_single_problem,
    generate_single_problem_with_diagnostics,
    problem_matches_skills,
    validate_constraints,
)
from abacus_engine.generation.skill_analysis import StepSkillsCache, analyze_required_skills

TEN_AND_ADVANCED = [
    f"{category.value}.{key}"
    for category in (SkillCategory.TEN_COMPLEMENTS, SkillCategory.TEN_COMPLEMENTS_SUB, SkillCategory.ADVANCED)
    for key in category.skill_keys
]


def prefix_sums(terms):
    total = 0
    for term in terms:
        total += term
        yield total


class TestGeneratedProblems:
    @pytest.mark.parametrize("seed", range(15))
    def test_answer_is_sum_and_prefixes_non_negative(self, seed):
        constraints = ProblemConstraints(number_range=NumberRange(1, 9), min_terms=3, max_terms=6)
        problem = generate_single_problem(constraints, SkillSet.full(), rng=random.Random(seed))
        assert problem is not None
        assert problem.answer == sum(problem.terms)
        assert all(total >= 0 for total in prefix_sums(problem.terms))
        assert 3 <= problem.term_count <= 6

    def test_skills_required_match_replay(self, rng):
        problem = generate_single_problem(ProblemConstraints(), SkillSet.full(), rng=rng)
        assert list(problem.skills_required) == analyze_required_skills(problem.terms)
        assert problem.generation_trace.answer == problem.answer

    def test_same_seed_same_problem(self):
        constraints = ProblemConstraints(min_terms=4, max_terms=4)
        first = generate_single_problem(constraints, SkillSet.full(), rng=random.Random(7))
        second = generate_single_problem(constraints, SkillSet.full(), rng=random.Random(7))
        assert first == second

    def test_addition_only_without_subtraction_skills(self, rng):
        for _ in range(10):
            problem = generate_single_problem(ProblemConstraints(), SkillSet.basic_addition(), rng=rng)
            assert problem is not None
            assert all(term > 0 for term in problem.terms)
            allowed = SkillSet.basic_addition()
            assert all(allowed.is_enabled(s) for s in problem.skills_required)

    def test_max_sum_respected(self, rng):
        constraints = ProblemConstraints(number_range=NumberRange(1, 4), min_terms=3, max_terms=3, max_sum=10)
        problem = generate_single_problem(constraints, SkillSet.full().disable(*TEN_AND_ADVANCED), rng=rng)
        assert problem is not None
        assert problem.answer <= 10

    def test_forbidden_skills_never_used(self, rng):
        forbidden = SkillSet.from_skill_ids(TEN_AND_ADVANCED)
        for _ in range(10):
            problem = generate_single_problem(ProblemConstraints(), SkillSet.full(), forbidden_skills=forbidden, rng=rng)
            assert problem is not None
            assert not any(forbidden.is_enabled(s) for s in problem.skills_required)

    def test_target_skill_is_exercised(self, rng):
        allowed = SkillSet.basic_addition().enable("fiveComplements.4=5-1")
        target = SkillSet.from_skill_ids(["fiveComplements.4=5-1"])
        problem = generate_single_problem(ProblemConstraints(), allowed, target_skills=target, rng=rng)
        assert problem is not None
        assert "fiveComplements.4=5-1" in problem.skills_required

    def test_zero_ceiling_keeps_basic_skills(self, rng):
        constraints = ProblemConstraints(max_complexity_per_term=0)
        problem = generate_single_problem(constraints, SkillSet.full(), rng=rng)
        assert problem is not None
        assert all(s.startswith("basic.") for s in problem.skills_required)

    def test_floor_applies_after_first_term(self, rng):
        constraints = ProblemConstraints(min_terms=4, max_terms=4, min_complexity_per_term=1)
        problem = generate_single_problem(constraints, SkillSet.full(), rng=rng)
        assert problem is not None
        assert all(step.complexity_cost >= 1 for step in problem.generation_trace.steps[1:])
        assert problem.generation_trace.min_budget_constraint == 1

    def test_cost_calculator_and_cache(self, rng):
        cache = StepSkillsCache()
        calculator = SkillCostCalculator(rotation_skill_ids=["fiveComplements.4=5-1"])
        constraints = ProblemConstraints(max_complexity_per_term=3)
        problem = generate_single_problem(
            constraints, SkillSet.full(), rng=rng, cost_calculator=calculator, cache=cache
        )
        assert problem is not None
        assert cache.size > 0
        assert all(step.complexity_cost <= 3 for step in problem.generation_trace.steps)

    def test_subtraction_from_zero_is_never_chosen(self, rng):
        allowed = SkillSet.from_skill_ids(["basic.directSubtraction"])
        assert generate_single_problem(ProblemConstraints(), allowed, max_attempts=5, rng=rng) is None


class TestGenerationDiagnostics:
    def test_infeasible_sum(self, rng):
        constraints = ProblemConstraints(number_range=NumberRange(1, 3), min_terms=3, max_terms=3, max_sum=1)
        result = generate_single_problem_with_diagnostics(constraints, SkillSet.basic_addition(), rng=rng)
        assert result.problem is None
        assert result.diagnostics.total_attempts == 100
        assert result.diagnostics.sequence_failures == 100
        assert explain_generation_failure(result.diagnostics) == "All attempts failed during sequence generation"

    def test_no_allowed_skills(self, rng):
        result = generate_single_problem_with_diagnostics(ProblemConstraints(), SkillSet.empty(), rng=rng)
        assert result.problem is None
        assert result.diagnostics.total_attempts == 0
        assert explain_generation_failure(result.diagnostics) == "No allowed skills are enabled"

    def test_unreachable_target_counts_skill_mismatches(self, rng):
        target = SkillSet.from_skill_ids(["tenComplements.9=10-1"])
        result = generate_single_problem_with_diagnostics(
            ProblemConstraints(), SkillSet.basic_addition(), target, max_attempts=10, rng=rng
        )
        assert result.problem is None
        assert result.diagnostics.total_attempts == 10
        assert result.diagnostics.skill_match_failures > 0
        assert result.diagnostics.enabled_target_skills == ["tenComplements.9=10-1"]

    def test_min_sum_failures_counted(self, rng):
        constraints = ProblemConstraints(number_range=NumberRange(1, 2), min_terms=2, max_terms=2, min_sum=100)
        result = generate_single_problem_with_diagnostics(
            constraints, SkillSet.basic_addition(), max_attempts=5, rng=rng
        )
        assert result.problem is None
        assert result.diagnostics.sum_constraint_failures == 5
        assert explain_generation_failure(result.diagnostics) == "Generated problems failed sum constraints"

    def test_success_reports_attempts(self, rng):
        result = generate_single_problem_with_diagnostics(ProblemConstraints(), SkillSet.full(), rng=rng)
        assert result.problem is not None
        assert result.diagnostics.total_attempts >= 1
        assert "attempts" in result.diagnostics.summary()


class TestProblemMatchesSkills:
    def _problem(self, *skills):
        return GeneratedProblem(terms=(1, 2), answer=3, skills_required=skills)

    def test_all_allowed(self):
        assert problem_matches_skills(self._problem("basic.directAddition"), SkillSet.basic_addition())

    def test_disallowed_skill(self):
        assert not problem_matches_skills(self._problem("fiveComplements.4=5-1"), SkillSet.basic_addition())

    def test_unknown_category_fails(self):
        assert not problem_matches_skills(self._problem("mystery.skill"), SkillSet.full())

    def test_forbidden_skill(self):
        forbidden = SkillSet.from_skill_ids(["basic.directAddition"])
        assert not problem_matches_skills(self._problem("basic.directAddition"), SkillSet.full(), None, forbidden)

    def test_disabled_forbidden_entry_is_ignored(self):
        forbidden = SkillSet.empty()
        assert problem_matches_skills(self._problem("basic.directAddition"), SkillSet.full(), None, forbidden)

    def test_target_required_when_enabled(self):
        target = SkillSet.from_skill_ids(["basic.heavenBead"])
        assert not problem_matches_skills(self._problem("basic.directAddition"), SkillSet.full(), target)
        assert problem_matches_skills(
            self._problem("basic.directAddition", "basic.heavenBead"), SkillSet.full(), target
        )

    def test_empty_target_is_vacuous(self):
        assert problem_matches_skills(self._problem("basic.directAddition"), SkillSet.full(), SkillSet.empty())


class TestValidateConstraints:
    def test_valid(self):
        assert validate_constraints(ProblemConstraints(), SkillSet.full()).is_valid

    def test_infeasible_max_sum(self):
        constraints = ProblemConstraints(number_range=NumberRange(1, 3), min_terms=3, max_terms=3, max_sum=1)
        validation = validate_constraints(constraints, SkillSet.basic_addition())
        assert not validation.is_valid

    def test_term_bounds_reversed(self):
        validation = validate_constraints(ProblemConstraints(min_terms=5, max_terms=3), SkillSet.full())
        assert any("min_terms" in e for e in validation.errors)

    def test_floor_with_only_basic_skills_warns(self):
        constraints = ProblemConstraints(min_complexity_per_term=1)
        validation = validate_constraints(constraints, SkillSet.basic_addition())
        assert validation.is_valid
        assert validation.warnings
