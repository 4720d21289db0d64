"""
Comfort Level & Term Counts.

Comfort level is a 0-1 scalar summarizing how ready a student is for the
current session. It sizes problems: higher comfort means more terms per
problem.

    comfort = clamp(avg_mastery * mode_multiplier + skill_count_bonus, 0, 1)

where avg_mastery is the confidence-weighted mean pKnown of the practicing
skills and skill_count_bonus = min(0.15, ln(skill_count + 1) / 20).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..core.bkt import SkillBktResult
from ..core.config import ComfortConfig, TermCountRange, TermCountScaling
from ..core.problems import PartType
from .session_mode import SessionMode, SessionModeType

MIN_TERM_COUNT = 2


@dataclass(frozen=True)
class ComfortFactors:
    """Inputs behind a comfort level, exposed for debugging and tooltips."""

    avg_mastery: float | None
    session_mode: SessionModeType
    mode_multiplier: float
    skill_count_bonus: float


@dataclass(frozen=True)
class ComfortLevelResult:
    comfort_level: float
    factors: ComfortFactors


def compute_comfort_level(
    bkt_results: dict[str, SkillBktResult] | None,
    practicing_skill_ids: list[str],
    session_mode: SessionMode,
    config: ComfortConfig | None = None,
) -> ComfortLevelResult:
    """
    Compute the comfort level for a session.

    Args:
        bkt_results: BKT estimates by skill id (None when unavailable)
        practicing_skill_ids: Skills the student is actively practicing
        session_mode: Planned session mode
        config: Multipliers, default comfort and bonus cap

    Returns:
        ComfortLevelResult; the conservative default comfort is returned when
        no practicing skill has a nonzero-confidence estimate.
    """
    config = config or ComfortConfig()
    mode_type = session_mode.type
    mode_multiplier = config.mode_multipliers.get(mode_type.value, 1.0)
    skill_count_bonus = min(
        config.max_skill_count_bonus,
        math.log(len(practicing_skill_ids) + 1) / config.skill_count_bonus_divisor,
    )

    weighted_sum = 0.0
    total_weight = 0.0
    for sid in practicing_skill_ids:
        result = (bkt_results or {}).get(sid)
        if result is None or result.confidence <= 0:
            continue
        weighted_sum += result.p_known * result.confidence
        total_weight += result.confidence

    if total_weight <= 0:
        return ComfortLevelResult(
            comfort_level=config.default_comfort,
            factors=ComfortFactors(
                avg_mastery=None,
                session_mode=mode_type,
                mode_multiplier=mode_multiplier,
                skill_count_bonus=skill_count_bonus,
            ),
        )

    avg_mastery = weighted_sum / total_weight
    comfort = min(1.0, max(0.0, avg_mastery * mode_multiplier + skill_count_bonus))
    return ComfortLevelResult(
        comfort_level=comfort,
        factors=ComfortFactors(
            avg_mastery=avg_mastery,
            session_mode=mode_type,
            mode_multiplier=mode_multiplier,
            skill_count_bonus=skill_count_bonus,
        ),
    )


# =============================================================================
# Term-count range
# =============================================================================


@dataclass(frozen=True)
class TermCountExplanation:
    """How a slot's term-count range was derived."""

    comfort_level: float
    factors: ComfortFactors | None
    dynamic_range: TermCountRange
    override: TermCountRange | None
    final_range: TermCountRange
    notes: list[str] = field(default_factory=list)


def compute_term_count_range(
    part_type: PartType,
    comfort_level: float,
    scaling: TermCountScaling | None = None,
) -> TermCountRange:
    """Interpolate between the part's floor and ceiling ranges by comfort."""
    scaling = scaling or TermCountScaling()
    entry = scaling.parts[part_type]
    t = min(1.0, max(0.0, comfort_level))
    low = math.floor(entry.floor.min + t * (entry.ceiling.min - entry.floor.min) + 0.5)
    high = math.floor(entry.floor.max + t * (entry.ceiling.max - entry.floor.max) + 0.5)
    low = max(MIN_TERM_COUNT, low)
    return TermCountRange(min=low, max=max(low, high))


def apply_term_count_override(
    computed: TermCountRange,
    override: TermCountRange | None,
) -> TermCountRange:
    """
    Apply an operator override as a ceiling only.

    Both ends are capped at override.max, floored at 2, and kept min <= max.
    """
    if override is None:
        return computed
    final_min = min(computed.min, override.max)
    final_max = min(computed.max, override.max)
    return TermCountRange(
        min=max(MIN_TERM_COUNT, min(final_min, final_max)),
        max=max(MIN_TERM_COUNT, final_max),
    )


def validate_term_count_scaling(scaling: TermCountScaling) -> str | None:
    """Return an error message for an invalid scaling table, or None."""
    for part_type, entry in scaling.parts.items():
        for label, rng in (("floor", entry.floor), ("ceiling", entry.ceiling)):
            if rng.min < MIN_TERM_COUNT or rng.max < MIN_TERM_COUNT:
                return f"{part_type.value} {label}: term counts must be at least {MIN_TERM_COUNT}"
            if rng.min > rng.max:
                return f"{part_type.value} {label}: min ({rng.min}) exceeds max ({rng.max})"
        if entry.floor.min > entry.ceiling.min or entry.floor.max > entry.ceiling.max:
            return f"{part_type.value}: floor must not exceed ceiling"
    return None


def explain_term_count(
    part_type: PartType,
    comfort: ComfortLevelResult,
    override: TermCountRange | None = None,
    scaling: TermCountScaling | None = None,
) -> TermCountExplanation:
    """Compute the final range for a part and record each step."""
    dynamic = compute_term_count_range(part_type, comfort.comfort_level, scaling)
    final = apply_term_count_override(dynamic, override)
    notes = []
    if override is not None and final != dynamic:
        notes.append(f"override capped range at {override.max}")
    return TermCountExplanation(
        comfort_level=comfort.comfort_level,
        factors=comfort.factors,
        dynamic_range=dynamic,
        override=override,
        final_range=final,
        notes=notes,
    )
