"""
Constraint-Based Problem Generator.

Builds multi-term addition/subtraction problems that a student can work on
an abacus using only the techniques they are allowed to practice.

Generation is rejection sampling with a bounded attempt budget:
1. Pick a term count uniformly in [min_terms, max_terms].
2. Build terms left to right. At each step every candidate term is checked
   against the running total (never negative), the skills the step needs
   (allowed and not forbidden), and the per-term complexity bounds.
   Steps that exercise a not-yet-seen target skill are preferred.
3. Reject the completed sequence if the answer violates the sum bounds or
   the problem's skills do not satisfy problem_matches_skills.

Infeasible constraints return None together with diagnostics; they are not
an error at this level.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Sequence

from loguru import logger

from ..core.config import ComplexityConfig, GenerationConfig
from ..core.problems import GeneratedProblem
from ..core.skills import SkillSet, parse_skill_id
from ..curriculum.complexity import SkillCostCalculator, base_term_cost
from .skill_analysis import StepSkillsCache, analyze_required_skills, analyze_step_skills, build_generation_trace


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class NumberRange:
    """Inclusive bounds on a term's absolute value."""

    min: int
    max: int


@dataclass(frozen=True)
class ProblemConstraints:
    number_range: NumberRange = NumberRange(1, 9)
    min_terms: int = 3
    max_terms: int = 5
    min_sum: int | None = None
    max_sum: int | None = None
    min_complexity_per_term: float | None = None
    max_complexity_per_term: float | None = None


@dataclass
class GenerationDiagnostics:
    """Why generation succeeded or failed."""

    total_attempts: int = 0
    sequence_failures: int = 0
    sum_constraint_failures: int = 0
    skill_match_failures: int = 0
    enabled_allowed_skills: list[str] = field(default_factory=list)
    enabled_target_skills: list[str] = field(default_factory=list)
    last_generated_skills: list[str] | None = None

    def summary(self) -> str:
        return (
            f"{self.total_attempts} attempts: {self.sequence_failures} sequence, "
            f"{self.sum_constraint_failures} sum, {self.skill_match_failures} skill-match failures"
        )


@dataclass(frozen=True)
class GenerationResult:
    problem: GeneratedProblem | None
    diagnostics: GenerationDiagnostics


class ProblemGenerationError(Exception):
    """Raised when a caller's fallback chain cannot produce any problem."""

    def __init__(self, message: str, constraints: ProblemConstraints, diagnostics: GenerationDiagnostics):
        super().__init__(message)
        self.constraints = constraints
        self.diagnostics = diagnostics


def explain_generation_failure(diagnostics: GenerationDiagnostics) -> str:
    """Human-readable reason for a failed generation run."""
    if not diagnostics.enabled_allowed_skills:
        return "No allowed skills are enabled"
    if diagnostics.total_attempts and diagnostics.sequence_failures == diagnostics.total_attempts:
        return "All attempts failed during sequence generation"
    if diagnostics.skill_match_failures >= diagnostics.sum_constraint_failures:
        return "Generated problems didn't match skill requirements"
    return "Generated problems failed sum constraints"


# =============================================================================
# Skill filtering
# =============================================================================


def problem_matches_skills(
    problem: GeneratedProblem,
    allowed_skills: SkillSet,
    target_skills: SkillSet | None = None,
    forbidden_skills: SkillSet | None = None,
) -> bool:
    """
    Check a problem's required skills against allowed/target/forbidden sets.

    Unknown categories never match. When the target set has at least one
    skill enabled, the problem must exercise one of them.
    """
    if not problem.skills_required:
        return False
    for sid in problem.skills_required:
        if parse_skill_id(sid) is None:
            return False
        if not allowed_skills.is_enabled(sid):
            return False
        if forbidden_skills is not None and forbidden_skills.is_enabled(sid):
            return False
    if target_skills is not None and target_skills.has_any_enabled():
        return any(target_skills.is_enabled(sid) for sid in problem.skills_required)
    return True


# =============================================================================
# Sequence building
# =============================================================================


def _candidate_magnitudes(number_range: NumberRange, sample_size: int, rng: random.Random) -> list[int]:
    magnitudes = range(max(1, number_range.min), number_range.max + 1)
    if len(magnitudes) <= sample_size:
        return list(magnitudes)
    return rng.sample(magnitudes, sample_size)


def _build_sequence(
    term_count: int,
    constraints: ProblemConstraints,
    allowed: SkillSet,
    forbidden: SkillSet | None,
    target_ids: set[str],
    cost_fn: Callable[[Sequence[str]], float],
    cache: StepSkillsCache | None,
    rng: random.Random,
    sample_size: int,
) -> list[int] | None:
    allow_subtraction = allowed.allows_subtraction()
    signs = (1, -1) if allow_subtraction else (1,)
    terms: list[int] = []
    total = 0
    target_hit = not target_ids

    for index in range(term_count):
        candidates: list[tuple[int, Sequence[str]]] = []
        for magnitude in _candidate_magnitudes(constraints.number_range, sample_size, rng):
            for sign in signs:
                term = sign * magnitude
                new_total = total + term
                if new_total < 0:
                    continue
                # Without subtraction the total only grows
                if not allow_subtraction and constraints.max_sum is not None and new_total > constraints.max_sum:
                    continue
                skills = cache.analyze(total, term) if cache is not None else analyze_step_skills(total, term)
                if not skills:
                    continue
                if any(not allowed.is_enabled(s) for s in skills):
                    continue
                if forbidden is not None and any(forbidden.is_enabled(s) for s in skills):
                    continue
                cost = cost_fn(skills)
                if constraints.max_complexity_per_term is not None and cost > constraints.max_complexity_per_term:
                    continue
                # The first term only sets the abacus, so the floor does not apply
                if (
                    index > 0
                    and constraints.min_complexity_per_term is not None
                    and cost < constraints.min_complexity_per_term
                ):
                    continue
                candidates.append((term, skills))

        if not candidates:
            return None
        if not target_hit:
            preferred = [c for c in candidates if target_ids.intersection(c[1])]
            if preferred:
                candidates = preferred
        term, skills = rng.choice(candidates)
        if target_ids.intersection(skills):
            target_hit = True
        terms.append(term)
        total += term

    return terms


# =============================================================================
# Public API
# =============================================================================


def generate_single_problem_with_diagnostics(
    constraints: ProblemConstraints,
    allowed_skills: SkillSet,
    target_skills: SkillSet | None = None,
    forbidden_skills: SkillSet | None = None,
    max_attempts: int | None = None,
    rng: random.Random | None = None,
    cost_calculator: SkillCostCalculator | None = None,
    cache: StepSkillsCache | None = None,
    config: GenerationConfig | None = None,
    complexity_config: ComplexityConfig | None = None,
) -> GenerationResult:
    """
    Generate one problem and report how the attempts went.

    Args:
        constraints: Term count, magnitude, sum and complexity bounds
        allowed_skills: Techniques the problem may use
        target_skills: If any are enabled, the problem must use one
        forbidden_skills: Techniques the problem must not use
        max_attempts: Attempt budget (config default: 100)
        rng: Random source; pass a seeded Random for reproducible output
        cost_calculator: Student-aware skill pricing; base costs when omitted
        cache: Caller-owned step-skills cache
        config: Generation defaults
        complexity_config: Base skill costs used without a calculator

    Returns:
        GenerationResult with the problem (or None) and diagnostics
    """
    config = config or GenerationConfig()
    complexity_config = complexity_config or ComplexityConfig()
    rng = rng or random.Random()
    attempts = config.max_attempts if max_attempts is None else max_attempts

    diagnostics = GenerationDiagnostics(
        enabled_allowed_skills=allowed_skills.enabled_skill_ids(),
        enabled_target_skills=target_skills.enabled_skill_ids() if target_skills else [],
    )
    if not diagnostics.enabled_allowed_skills:
        logger.debug("Generation skipped: no allowed skills enabled")
        return GenerationResult(problem=None, diagnostics=diagnostics)

    if cost_calculator is not None:
        cost_fn = cost_calculator.calculate_term_cost
    else:
        def cost_fn(skills: Sequence[str]) -> float:
            return base_term_cost(skills, complexity_config)

    target_ids = set(diagnostics.enabled_target_skills)
    low_terms, high_terms = sorted((constraints.min_terms, constraints.max_terms))

    for _ in range(attempts):
        diagnostics.total_attempts += 1
        term_count = rng.randint(low_terms, high_terms)
        terms = _build_sequence(
            term_count,
            constraints,
            allowed_skills,
            forbidden_skills,
            target_ids,
            cost_fn,
            cache,
            rng,
            config.candidate_sample_size,
        )
        if terms is None:
            diagnostics.sequence_failures += 1
            continue

        answer = sum(terms)
        if (constraints.min_sum is not None and answer < constraints.min_sum) or (
            constraints.max_sum is not None and answer > constraints.max_sum
        ):
            diagnostics.sum_constraint_failures += 1
            continue

        skills = analyze_required_skills(terms, cache)
        diagnostics.last_generated_skills = skills
        candidate = GeneratedProblem(terms=tuple(terms), answer=answer, skills_required=tuple(skills))
        if not problem_matches_skills(candidate, allowed_skills, target_skills, forbidden_skills):
            diagnostics.skill_match_failures += 1
            continue

        trace = build_generation_trace(
            terms,
            cost_fn=cost_fn,
            cache=cache,
            budget_constraint=constraints.max_complexity_per_term,
            min_budget_constraint=constraints.min_complexity_per_term,
        )
        problem = GeneratedProblem(
            terms=candidate.terms,
            answer=answer,
            skills_required=candidate.skills_required,
            generation_trace=trace,
        )
        logger.debug(f"Generated {problem.to_display()} after {diagnostics.total_attempts} attempts")
        return GenerationResult(problem=problem, diagnostics=diagnostics)

    logger.debug(f"Generation failed: {diagnostics.summary()}")
    return GenerationResult(problem=None, diagnostics=diagnostics)


def generate_single_problem(
    constraints: ProblemConstraints,
    allowed_skills: SkillSet,
    target_skills: SkillSet | None = None,
    forbidden_skills: SkillSet | None = None,
    max_attempts: int | None = None,
    rng: random.Random | None = None,
    cost_calculator: SkillCostCalculator | None = None,
    cache: StepSkillsCache | None = None,
    config: GenerationConfig | None = None,
) -> GeneratedProblem | None:
    """Generate one problem, or None when the constraints are infeasible."""
    return generate_single_problem_with_diagnostics(
        constraints,
        allowed_skills,
        target_skills,
        forbidden_skills,
        max_attempts=max_attempts,
        rng=rng,
        cost_calculator=cost_calculator,
        cache=cache,
        config=config,
    ).problem


# =============================================================================
# Constraint validation
# =============================================================================


@dataclass
class ConstraintValidation:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_constraints(constraints: ProblemConstraints, allowed_skills: SkillSet) -> ConstraintValidation:
    """Spot constraint combinations that can never (or rarely) succeed."""
    result = ConstraintValidation()
    rng_min, rng_max = constraints.number_range.min, constraints.number_range.max

    if constraints.min_terms > constraints.max_terms:
        result.errors.append(f"min_terms ({constraints.min_terms}) exceeds max_terms ({constraints.max_terms})")
    if rng_min > rng_max:
        result.errors.append(f"number range min ({rng_min}) exceeds max ({rng_max})")
    if rng_max < 1:
        result.errors.append("number range allows no nonzero terms")
    if not allowed_skills.has_any_enabled():
        result.errors.append("No allowed skills are enabled")
    if (
        constraints.min_sum is not None
        and constraints.max_sum is not None
        and constraints.min_sum > constraints.max_sum
    ):
        result.errors.append(f"min_sum ({constraints.min_sum}) exceeds max_sum ({constraints.max_sum})")

    if not allowed_skills.allows_subtraction():
        smallest = constraints.min_terms * max(1, rng_min)
        largest = constraints.max_terms * rng_max
        if constraints.max_sum is not None and smallest > constraints.max_sum:
            result.errors.append(
                f"{constraints.min_terms} terms of at least {max(1, rng_min)} cannot sum to {constraints.max_sum} or less"
            )
        if constraints.min_sum is not None and largest < constraints.min_sum:
            result.errors.append(
                f"{constraints.max_terms} terms of at most {rng_max} cannot reach {constraints.min_sum}"
            )

    if (
        constraints.min_complexity_per_term is not None
        and constraints.max_complexity_per_term is not None
        and constraints.min_complexity_per_term > constraints.max_complexity_per_term
    ):
        result.errors.append("complexity floor exceeds complexity ceiling")
    elif constraints.min_complexity_per_term is not None and allowed_skills.enabled_skill_ids() and all(
        sid.startswith("basic.") for sid in allowed_skills.enabled_skill_ids()
    ):
        result.warnings.append("complexity floor with only basic skills enabled will rarely be met")

    return result
