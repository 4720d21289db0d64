"""
Session Planner.

Assembles a three-part session plan for a student:

1. Pick (or accept) the session mode and compute the comfort level.
2. Size the session. With enough recent results each part gets its share of
   the minutes divided by the student's own per-problem time for that part
   (seconds per term x expected terms, part multiplier applied). Otherwise
   target minutes / seconds per problem, divided among the parts by time
   weight.
3. Within each part reserve a share of challenge slots, then split the rest
   among focus, reinforce and review by purpose weight.
4. Give every slot constraints (skills, term counts from comfort scaling,
   complexity bounds by purpose and part) and generate its problem.

Slot generation falls back step by step (drop target skills, then drop
complexity bounds) before giving up with ProblemGenerationError.
"""

from __future__ import annotations

import random
import uuid
from datetime import UTC, datetime

from loguru import logger

from ..core.bkt import SkillBktResult
from ..core.config import EngineConfig, SlotDistributionConfig, TermCountRange
from ..core.problems import GeneratedProblem, PartType, ProblemResultWithContext, SlotPurpose
from ..core.skills import SkillSet
from ..curriculum.comfort import (
    ComfortLevelResult,
    TermCountExplanation,
    compute_comfort_level,
    explain_term_count,
)
from ..curriculum.complexity import SkillCostCalculator, get_complexity_bounds
from ..curriculum.session_mode import (
    ProgressionMode,
    SessionMode,
    classify_session_mode,
    get_weak_skill_ids,
)
from ..curriculum.time_estimation import (
    estimate_problem_time_seconds,
    estimate_session_problem_count,
    get_time_estimation_profile,
)
from ..generation.problem_generator import (
    NumberRange,
    ProblemConstraints,
    ProblemGenerationError,
    explain_generation_failure,
    generate_single_problem_with_diagnostics,
)
from ..generation.skill_analysis import StepSkillsCache
from .session_plan import (
    PartFormat,
    ProblemSlot,
    SessionPart,
    SessionPlan,
    SlotConstraints,
)

PART_ORDER = (PartType.ABACUS, PartType.VISUALIZATION, PartType.LINEAR)


# =============================================================================
# Slot counts
# =============================================================================


def fixed_term_count_range(part_type: PartType, config: SlotDistributionConfig | None = None) -> TermCountRange:
    """Term counts used when comfort scaling is turned off."""
    config = config or SlotDistributionConfig()
    base = config.abacus_term_count
    if part_type == PartType.VISUALIZATION:
        factor = config.visualization_term_factor
        return TermCountRange(min=max(2, int(base.min * factor)), max=max(3, int(base.max * factor)))
    return base


def distribute_problems(total_problems: int, config: SlotDistributionConfig | None = None) -> dict[PartType, int]:
    """Problems per part by time weight, at least min_problems_per_part each."""
    config = config or SlotDistributionConfig()
    return {
        part_type: max(config.min_problems_per_part, round(total_problems * config.part_time_weights[part_type]))
        for part_type in PART_ORDER
    }


def distribute_purposes(
    slot_count: int,
    part_type: PartType,
    config: SlotDistributionConfig | None = None,
) -> dict[SlotPurpose, int]:
    """Challenge share first, the remainder split by purpose weight."""
    config = config or SlotDistributionConfig()
    challenge = min(slot_count, round(slot_count * config.challenge_ratio_by_part[part_type]))
    remaining = slot_count - challenge

    weights = config.purpose_weights
    weight_total = sum(weights.get(p, 0.0) for p in (SlotPurpose.FOCUS, SlotPurpose.REINFORCE, SlotPurpose.REVIEW))
    if weight_total <= 0:
        return {SlotPurpose.FOCUS: remaining, SlotPurpose.REINFORCE: 0, SlotPurpose.REVIEW: 0, SlotPurpose.CHALLENGE: challenge}

    focus = round(remaining * weights.get(SlotPurpose.FOCUS, 0.0) / weight_total)
    reinforce = min(remaining - focus, round(remaining * weights.get(SlotPurpose.REINFORCE, 0.0) / weight_total))
    review = remaining - focus - reinforce
    return {
        SlotPurpose.FOCUS: focus,
        SlotPurpose.REINFORCE: reinforce,
        SlotPurpose.REVIEW: review,
        SlotPurpose.CHALLENGE: challenge,
    }


# =============================================================================
# Slot generation
# =============================================================================


def constraints_from_slot(slot: ProblemSlot) -> ProblemConstraints:
    """Translate slot constraints into generator constraints."""
    c = slot.constraints
    low_digits, high_digits = c.digit_range.min, c.digit_range.max
    return ProblemConstraints(
        number_range=NumberRange(1 if low_digits <= 1 else 10 ** (low_digits - 1), 10**high_digits - 1),
        min_terms=c.term_count.min,
        max_terms=c.term_count.max,
        min_complexity_per_term=c.min_complexity_per_term,
        max_complexity_per_term=c.max_complexity_per_term,
    )


def generate_problem_for_slot(
    slot: ProblemSlot,
    rng: random.Random | None = None,
    cost_calculator: SkillCostCalculator | None = None,
    cache: StepSkillsCache | None = None,
    config: EngineConfig | None = None,
) -> GeneratedProblem:
    """
    Generate a slot's problem, relaxing constraints if needed.

    Order: full constraints, then without target skills, then without
    complexity bounds.

    Raises:
        ProblemGenerationError: when every relaxation fails
    """
    config = config or EngineConfig()
    rng = rng or random.Random()
    full = constraints_from_slot(slot)
    unbounded = ProblemConstraints(
        number_range=full.number_range,
        min_terms=full.min_terms,
        max_terms=full.max_terms,
    )
    allowed = slot.constraints.allowed_skills
    forbidden = slot.constraints.forbidden_skills

    attempts = [
        ("full constraints", full, slot.constraints.target_skills),
        ("without target skills", full, None),
        ("without complexity bounds", unbounded, None),
    ]
    result = None
    for label, constraints, target in attempts:
        result = generate_single_problem_with_diagnostics(
            constraints,
            allowed,
            target,
            forbidden,
            rng=rng,
            cost_calculator=cost_calculator,
            cache=cache,
            config=config.generation,
            complexity_config=config.complexity,
        )
        if result.problem is not None:
            if label != "full constraints":
                logger.warning(f"Slot {slot.index} ({slot.purpose.value}): generated {label}")
            return result.problem
        logger.debug(f"Slot {slot.index}: {label} failed ({result.diagnostics.summary()})")

    reason = explain_generation_failure(result.diagnostics)
    raise ProblemGenerationError(f"Slot {slot.index} ({slot.purpose.value}): {reason}", full, result.diagnostics)


# =============================================================================
# Plan assembly
# =============================================================================


def _target_skills(purpose: SlotPurpose, mode: SessionMode) -> SkillSet | None:
    if purpose != SlotPurpose.FOCUS:
        return None
    if isinstance(mode, ProgressionMode):
        return SkillSet.from_skill_ids([mode.next_skill_id])
    weak = get_weak_skill_ids(mode)
    return SkillSet.from_skill_ids(weak) if weak else None


def _part_term_count(
    part_type: PartType,
    comfort: ComfortLevelResult,
    term_count_override: TermCountRange | None,
    use_comfort_scaling: bool,
    config: EngineConfig,
) -> tuple[TermCountRange, TermCountExplanation | None]:
    if use_comfort_scaling:
        explanation = explain_term_count(part_type, comfort, term_count_override, config.term_count_scaling)
        return explanation.final_range, explanation
    return fixed_term_count_range(part_type, config.slots), None


def _build_part(
    part_type: PartType,
    slot_count: int,
    allowed: SkillSet,
    mode: SessionMode,
    term_count: TermCountRange,
    explanation: TermCountExplanation | None,
    seconds_per_problem: float,
    rng: random.Random,
    config: EngineConfig,
) -> SessionPart:
    counts = distribute_purposes(slot_count, part_type, config.slots)
    purposes = [purpose for purpose, count in counts.items() for _ in range(count)]
    # Challenge slots stay at the end; the rest are interleaved
    body = [p for p in purposes if p != SlotPurpose.CHALLENGE]
    rng.shuffle(body)
    purposes = body + [p for p in purposes if p == SlotPurpose.CHALLENGE]

    slots = []
    for index, purpose in enumerate(purposes):
        bounds = get_complexity_bounds(purpose, part_type, config.complexity)
        slots.append(
            ProblemSlot(
                index=index,
                purpose=purpose,
                constraints=SlotConstraints(
                    allowed_skills=allowed,
                    term_count=term_count,
                    digit_range=NumberRange(config.slots.digit_range_min, config.slots.digit_range_max),
                    target_skills=_target_skills(purpose, mode),
                    min_complexity_per_term=bounds.min,
                    max_complexity_per_term=bounds.max,
                ),
                complexity_bounds=bounds,
                term_count_explanation=explanation,
            )
        )

    return SessionPart(
        part_number=part_type.part_number,
        type=part_type,
        format=PartFormat.LINEAR if part_type == PartType.LINEAR else PartFormat.VERTICAL,
        use_abacus=part_type == PartType.ABACUS,
        slots=slots,
        estimated_minutes=len(slots) * seconds_per_problem / 60,
    )


def build_session_plan(
    player_id: str,
    duration_minutes: float,
    practicing_skill_ids: list[str],
    bkt_results: dict[str, SkillBktResult] | None = None,
    session_mode: SessionMode | None = None,
    term_count_override: TermCountRange | None = None,
    avg_time_per_problem_seconds: float | None = None,
    recent_results: list[ProblemResultWithContext] | None = None,
    use_comfort_scaling: bool = True,
    generate_problems: bool = True,
    rng: random.Random | None = None,
    cache: StepSkillsCache | None = None,
    config: EngineConfig | None = None,
    plan_id: str | None = None,
    now: datetime | None = None,
) -> SessionPlan:
    """
    Build a draft session plan.

    Args:
        player_id: Student the plan is for
        duration_minutes: Target session length
        practicing_skill_ids: Skills in the student's active rotation
        bkt_results: BKT estimates by skill (optional)
        session_mode: Mode from the caller; classified from BKT when omitted
        term_count_override: Operator ceiling on terms per problem
        avg_time_per_problem_seconds: Fixed pace; overrides recent_results
        recent_results: Attempt history used to measure the student's pace
        use_comfort_scaling: Size term counts by comfort level (else fixed ranges)
        generate_problems: Fill every slot with a problem
        rng: Random source for slot order and generation
        cache: Caller-owned step-skills cache shared across slots
        config: Engine configuration
        plan_id: Explicit plan id (random uuid when omitted)
        now: Creation timestamp

    Returns:
        SessionPlan in draft status

    Raises:
        ProblemGenerationError: when a slot cannot be filled
    """
    config = config or EngineConfig()
    rng = rng or random.Random()

    mode = session_mode or classify_session_mode(bkt_results, practicing_skill_ids, config=config.bkt)
    comfort = compute_comfort_level(bkt_results, practicing_skill_ids, mode, config.comfort)

    allowed_ids = list(practicing_skill_ids)
    if isinstance(mode, ProgressionMode) and mode.next_skill_id not in allowed_ids:
        allowed_ids.append(mode.next_skill_id)
    allowed = SkillSet.from_skill_ids(allowed_ids)

    term_counts = {
        part_type: _part_term_count(part_type, comfort, term_count_override, use_comfort_scaling, config)
        for part_type in PART_ORDER
    }

    profile = None
    if avg_time_per_problem_seconds is None and recent_results:
        profile = get_time_estimation_profile(recent_results, config.time_estimation)
        if profile.is_default:
            profile = None

    if profile is None:
        avg_seconds = avg_time_per_problem_seconds or config.slots.default_avg_time_per_problem_seconds
        seconds_by_part = {part_type: avg_seconds for part_type in PART_ORDER}
        total_problems = max(1, round(duration_minutes * 60 / avg_seconds))
        per_part = distribute_problems(total_problems, config.slots)
    else:
        seconds_by_part = {}
        per_part = {}
        for part_type in PART_ORDER:
            term_range = term_counts[part_type][0]
            expected_terms = (term_range.min + term_range.max) / 2
            seconds_by_part[part_type] = estimate_problem_time_seconds(
                expected_terms, profile.seconds_per_term, part_type, config.time_estimation
            )
            per_part[part_type] = estimate_session_problem_count(
                duration_minutes * config.slots.part_time_weights[part_type],
                expected_terms,
                profile.seconds_per_term,
                part_type,
                config.time_estimation,
                min_problems=config.slots.min_problems_per_part,
            )
        total_seconds = sum(per_part[p] * seconds_by_part[p] for p in PART_ORDER)
        avg_seconds = total_seconds / sum(per_part.values())
        logger.debug(
            f"Sizing {player_id} from {profile.sample_size} results at {profile.seconds_per_term:.1f}s/term"
        )

    parts = [
        _build_part(
            part_type,
            per_part[part_type],
            allowed,
            mode,
            *term_counts[part_type],
            seconds_by_part[part_type],
            rng,
            config,
        )
        for part_type in PART_ORDER
    ]

    if generate_problems:
        cost_calculator = SkillCostCalculator(
            bkt_results,
            rotation_skill_ids=practicing_skill_ids,
            config=config.complexity,
            bkt_config=config.bkt,
        )
        cache = cache if cache is not None else StepSkillsCache()
        for part in parts:
            for slot in part.slots:
                slot.problem = generate_problem_for_slot(slot, rng, cost_calculator, cache, config)

    plan = SessionPlan(
        id=plan_id or str(uuid.uuid4()),
        player_id=player_id,
        parts=parts,
        target_duration_minutes=duration_minutes,
        avg_time_per_problem_seconds=avg_seconds,
        estimated_problem_count=sum(len(part.slots) for part in parts),
        session_mode=mode.type.value,
        comfort_level=comfort.comfort_level,
        created_at=now or datetime.now(UTC),
    )
    logger.info(
        f"Built plan {plan.id} for {player_id}: {plan.estimated_problem_count} problems, "
        f"mode={plan.session_mode}, comfort={comfort.comfort_level:.2f}"
    )
    return plan
