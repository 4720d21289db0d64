"""
Skill Readiness.

Decides whether a practicing skill is "solid" enough to retire from active
practice. Four independent dimensions are evaluated, each reporting its raw
metric alongside a pass/fail flag:

1. Mastery: BKT pKnown and confidence above thresholds
2. Volume: enough qualifying attempts spread over enough sessions
3. Speed: median seconds per term over recent attempts
4. Consistency: recent accuracy, a clean last-five streak, and no help

Retry answers and bookkeeping records (recency refresh, teacher exclusion)
are not readiness evidence and are dropped before any dimension is computed.
Teacher-corrected answers count as correct, as they do for BKT.
A skill with no qualifying attempts is solid: it cannot block advancement.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from ..core.bkt import SkillBktResult
from ..core.config import ReadinessThresholds
from ..core.problems import ProblemResultWithContext


@dataclass(frozen=True)
class MasteryDimension:
    met: bool
    p_known: float
    confidence: float


@dataclass(frozen=True)
class VolumeDimension:
    met: bool
    opportunities: int
    session_count: int


@dataclass(frozen=True)
class SpeedDimension:
    met: bool
    median_seconds_per_term: float | None


@dataclass(frozen=True)
class ConsistencyDimension:
    met: bool
    recent_accuracy: float | None
    last_five_all_correct: bool
    recent_help_count: int


@dataclass(frozen=True)
class ReadinessDimensions:
    mastery: MasteryDimension
    volume: VolumeDimension
    speed: SpeedDimension
    consistency: ConsistencyDimension


@dataclass(frozen=True)
class SkillReadinessResult:
    skill_id: str
    is_solid: bool
    dimensions: ReadinessDimensions

    @property
    def unmet_dimensions(self) -> list[str]:
        dims = self.dimensions
        return [
            name
            for name, dim in (
                ("mastery", dims.mastery),
                ("volume", dims.volume),
                ("speed", dims.speed),
                ("consistency", dims.consistency),
            )
            if not dim.met
        ]


def qualifying_results(
    skill_id: str,
    results: Iterable[ProblemResultWithContext],
) -> list[ProblemResultWithContext]:
    """Readiness evidence for one skill, most recent first."""
    filtered = [
        r
        for r in results
        if skill_id in r.skills_exercised and not r.is_retry and r.source.carries_evidence
    ]
    return sorted(filtered, key=lambda r: r.timestamp, reverse=True)


# =============================================================================
# Dimensions
# =============================================================================


def _assess_mastery(bkt_result: SkillBktResult | None, thresholds: ReadinessThresholds) -> MasteryDimension:
    p_known = bkt_result.p_known if bkt_result else 0.0
    confidence = bkt_result.confidence if bkt_result else 0.0
    return MasteryDimension(
        met=p_known >= thresholds.mastery_p_known and confidence >= thresholds.mastery_confidence,
        p_known=p_known,
        confidence=confidence,
    )


def _assess_volume(recent: list[ProblemResultWithContext], thresholds: ReadinessThresholds) -> VolumeDimension:
    opportunities = len(recent)
    session_count = len({r.session_id for r in recent})
    met = opportunities == 0 or (
        opportunities >= thresholds.min_opportunities and session_count >= thresholds.min_sessions
    )
    return VolumeDimension(met=met, opportunities=opportunities, session_count=session_count)


def _assess_speed(recent: list[ProblemResultWithContext], thresholds: ReadinessThresholds) -> SpeedDimension:
    window = recent[: thresholds.speed_window]
    if not window:
        return SpeedDimension(met=False, median_seconds_per_term=None)
    median = statistics.median(r.seconds_per_term for r in window)
    return SpeedDimension(met=median <= thresholds.max_seconds_per_term, median_seconds_per_term=median)


def _assess_consistency(
    recent: list[ProblemResultWithContext],
    thresholds: ReadinessThresholds,
) -> ConsistencyDimension:
    accuracy_window = recent[: thresholds.accuracy_window]
    streak_window = recent[: thresholds.streak_window]
    help_window = recent[: thresholds.help_window]

    recent_accuracy = None
    if accuracy_window:
        recent_accuracy = sum(1 for r in accuracy_window if r.counts_as_correct) / len(accuracy_window)
    accuracy_met = (
        recent_accuracy is not None
        and len(accuracy_window) >= thresholds.accuracy_window
        and recent_accuracy >= thresholds.min_accuracy
    )
    last_five_all_correct = len(streak_window) >= thresholds.streak_window and all(
        r.counts_as_correct for r in streak_window
    )
    recent_help_count = sum(1 for r in help_window if r.had_help)
    help_free = len(help_window) >= thresholds.help_window and recent_help_count == 0

    return ConsistencyDimension(
        met=accuracy_met and last_five_all_correct and help_free,
        recent_accuracy=recent_accuracy,
        last_five_all_correct=last_five_all_correct,
        recent_help_count=recent_help_count,
    )


# =============================================================================
# Public API
# =============================================================================


def assess_skill_readiness(
    skill_id: str,
    results: Iterable[ProblemResultWithContext],
    bkt_result: SkillBktResult | None,
    thresholds: ReadinessThresholds | None = None,
) -> SkillReadinessResult:
    """
    Evaluate all four readiness dimensions for one skill.

    Args:
        skill_id: Skill to assess
        results: Attempt history (may include other skills; filtered here)
        bkt_result: Current BKT estimate, or None when the skill has none
        thresholds: Readiness thresholds

    Returns:
        SkillReadinessResult with every dimension populated
    """
    thresholds = thresholds or ReadinessThresholds()
    recent = qualifying_results(skill_id, results)

    dimensions = ReadinessDimensions(
        mastery=_assess_mastery(bkt_result, thresholds),
        volume=_assess_volume(recent, thresholds),
        speed=_assess_speed(recent, thresholds),
        consistency=_assess_consistency(recent, thresholds),
    )
    is_solid = not recent or (
        dimensions.mastery.met
        and dimensions.volume.met
        and dimensions.speed.met
        and dimensions.consistency.met
    )
    return SkillReadinessResult(skill_id=skill_id, is_solid=is_solid, dimensions=dimensions)


def assess_all_skills_readiness(
    results: Iterable[ProblemResultWithContext],
    bkt_results: dict[str, SkillBktResult] | None,
    practicing_skill_ids: Iterable[str],
    thresholds: ReadinessThresholds | None = None,
) -> dict[str, SkillReadinessResult]:
    """Assess every practicing skill."""
    results = list(results)
    bkt_results = bkt_results or {}
    readiness = {
        sid: assess_skill_readiness(sid, results, bkt_results.get(sid), thresholds)
        for sid in practicing_skill_ids
    }
    solid = sum(1 for r in readiness.values() if r.is_solid)
    logger.debug(f"Readiness: {solid}/{len(readiness)} skills solid")
    return readiness


def all_skills_solid(readiness: dict[str, SkillReadinessResult]) -> bool:
    return all(result.is_solid for result in readiness.values())
