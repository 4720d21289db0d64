"""
Bayesian Knowledge Tracing.

Converts a chronological attempt history for one skill into a mastery
estimate (pKnown), a confidence score, and a weak/developing/strong
classification.

Each observation applies the standard two-state BKT posterior followed by the
learning transition. Observations carry a weight in [0, 1]: weight 1 is a full
update, weight 0 only refreshes the last-practiced timestamp, and anything in
between interpolates toward the full update. Retry answers therefore count
less than first-try answers.

Everything here is a pure function of its inputs.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

from loguru import logger

from .config import BktConfig, BktParams
from .problems import ProblemResultWithContext
from .skills import parse_skill_id


class SkillClassification(str, Enum):
    """Mastery band for a confidently-estimated skill."""

    WEAK = "weak"
    DEVELOPING = "developing"
    STRONG = "strong"


@dataclass(frozen=True)
class BktObservation:
    """One piece of evidence for a skill."""

    is_correct: bool
    timestamp: datetime
    weight: float = 1.0


@dataclass(frozen=True)
class SkillBktResult:
    """Mastery estimate for one skill, rebuilt from its full history."""

    skill_id: str
    p_known: float
    confidence: float
    uncertainty_range: tuple[float, float]
    opportunities: int
    success_count: int
    last_practiced_at: datetime | None
    days_since_last_practice: float | None
    classification: SkillClassification | None
    params: BktParams

    @property
    def accuracy(self) -> float:
        return self.success_count / self.opportunities if self.opportunities else 0.0


# =============================================================================
# Parameters
# =============================================================================


def default_params_for(skill_id: str, config: BktConfig | None = None) -> BktParams:
    """Per-category priors, falling back to the global defaults."""
    config = config or BktConfig()
    parsed = parse_skill_id(skill_id)
    if parsed is None:
        return config.default_params
    return config.category_params.get(parsed[0], config.default_params)


# =============================================================================
# Core update
# =============================================================================


def bkt_update(p_known: float, is_correct: bool, params: BktParams) -> float:
    """
    Bayesian posterior P(known | observation).

    Args:
        p_known: Prior mastery probability
        is_correct: Whether the observed answer was correct
        params: Model parameters (slip and guess are used)

    Returns:
        Posterior mastery probability
    """
    if is_correct:
        numerator = p_known * (1 - params.p_slip)
        denominator = numerator + (1 - p_known) * params.p_guess
    else:
        numerator = p_known * params.p_slip
        denominator = numerator + (1 - p_known) * (1 - params.p_guess)

    if denominator <= 0:
        return p_known
    return numerator / denominator


def apply_learning(p_known: float, p_learn: float) -> float:
    """Learning transition: an unknown skill may become known after practice."""
    return p_known + (1 - p_known) * p_learn


def update_mastery(
    p_known: float,
    is_correct: bool,
    params: BktParams,
    weight: float = 1.0,
) -> float:
    """
    Posterior plus learning transition, scaled by evidence weight.

    Weight 0 returns the prior unchanged; weight 1 is the full update.
    """
    if weight <= 0:
        return p_known
    full = apply_learning(bkt_update(p_known, is_correct, params), params.p_learn)
    weight = min(weight, 1.0)
    return p_known + weight * (full - p_known)


def compute_confidence(effective_opportunities: float, saturation: float = 10.0) -> float:
    """Saturating confidence: 1 - exp(-n / k)."""
    if effective_opportunities <= 0:
        return 0.0
    return 1 - math.exp(-effective_opportunities / saturation)


def compute_uncertainty_range(p_known: float, effective_opportunities: float) -> tuple[float, float]:
    """Normal-approximation band around pKnown that narrows with evidence."""
    half_width = 1.96 * math.sqrt(max(p_known * (1 - p_known), 0.01) / (effective_opportunities + 1))
    return max(0.0, p_known - half_width), min(1.0, p_known + half_width)


# =============================================================================
# Classification
# =============================================================================


def classify_skill(
    p_known: float,
    confidence: float,
    config: BktConfig | None = None,
) -> SkillClassification | None:
    """
    Classify a skill into a mastery band.

    Returns None when confidence is below the threshold. Band boundaries are
    inclusive on their lower edge.
    """
    config = config or BktConfig()
    if confidence < config.confidence_threshold:
        return None
    if p_known >= config.strong_threshold:
        return SkillClassification.STRONG
    if p_known < config.weak_threshold:
        return SkillClassification.WEAK
    return SkillClassification.DEVELOPING


def is_bkt_confident(confidence: float, config: BktConfig | None = None) -> bool:
    config = config or BktConfig()
    return confidence >= config.confidence_threshold


def should_target_skill(p_known: float, confidence: float, config: BktConfig | None = None) -> bool:
    """A skill is targeted for extra practice when it is confidently weak."""
    return classify_skill(p_known, confidence, config) == SkillClassification.WEAK


def calculate_bkt_multiplier(p_known: float, config: BktConfig | None = None) -> float:
    """
    Map mastery to a cost multiplier.

    Squared mapping from max_multiplier (pKnown 0) down to min_multiplier
    (pKnown 1), so cost falls off slowly at first and quickly near mastery.
    Non-finite input returns the maximum.
    """
    config = config or BktConfig()
    if not math.isfinite(p_known):
        return config.max_multiplier
    p = min(1.0, max(0.0, p_known))
    spread = config.max_multiplier - config.min_multiplier
    return min(config.max_multiplier, max(config.min_multiplier, config.max_multiplier - p * p * spread))


# =============================================================================
# History -> result
# =============================================================================


def estimate_skill(
    skill_id: str,
    observations: Iterable[BktObservation],
    params: BktParams | None = None,
    now: datetime | None = None,
    config: BktConfig | None = None,
) -> SkillBktResult:
    """
    Rebuild a skill's mastery estimate from its full history.

    Args:
        skill_id: Skill being estimated
        observations: Evidence for this skill (sorted by timestamp here)
        params: Model parameters; defaults to the skill's category priors
        now: Reference time for days-since-last-practice
        config: Thresholds and confidence saturation

    Returns:
        SkillBktResult
    """
    config = config or BktConfig()
    params = params or default_params_for(skill_id, config)

    p_known = params.p_init
    opportunities = 0
    success_count = 0
    effective = 0.0
    last_practiced_at: datetime | None = None

    for obs in sorted(observations, key=lambda o: o.timestamp):
        last_practiced_at = obs.timestamp
        if obs.weight <= 0:
            continue
        p_known = update_mastery(p_known, obs.is_correct, params, obs.weight)
        opportunities += 1
        effective += min(obs.weight, 1.0)
        if obs.is_correct:
            success_count += 1

    confidence = compute_confidence(effective, config.confidence_saturation)
    days_since = None
    if now is not None and last_practiced_at is not None:
        days_since = max(0.0, (now - last_practiced_at).total_seconds() / 86400)

    return SkillBktResult(
        skill_id=skill_id,
        p_known=p_known,
        confidence=confidence,
        uncertainty_range=compute_uncertainty_range(p_known, effective),
        opportunities=opportunities,
        success_count=success_count,
        last_practiced_at=last_practiced_at,
        days_since_last_practice=days_since,
        classification=classify_skill(p_known, confidence, config),
        params=params,
    )


def evidence_weight(result: ProblemResultWithContext) -> float:
    """
    How much a recorded attempt counts as BKT evidence.

    Staleness resets and teacher exclusions carry nothing. First-try answers
    count fully; retry answers decay by half per epoch whether right or wrong.

    The stored ``mastery_weight`` is not consulted. It is 0 for every wrong
    answer, and feeding that here would drop wrong answers from the update
    entirely; the weight is rebuilt from ``is_retry`` and ``epoch_number``.
    """
    if not result.source.carries_evidence:
        return 0.0
    if not result.is_retry:
        return 1.0
    return 1.0 / (2 ** result.epoch_number)


def observation_from_result(result: ProblemResultWithContext) -> BktObservation:
    return BktObservation(
        is_correct=result.counts_as_correct,
        timestamp=result.timestamp,
        weight=evidence_weight(result),
    )


def compute_bkt_results(
    results: Iterable[ProblemResultWithContext],
    now: datetime | None = None,
    config: BktConfig | None = None,
) -> dict[str, SkillBktResult]:
    """
    Estimate every skill exercised in a result history.

    Manual redos are bookkeeping for the plan and are not counted here.
    """
    by_skill: dict[str, list[BktObservation]] = defaultdict(list)
    for result in results:
        if result.is_manual_redo:
            continue
        observation = observation_from_result(result)
        for sid in dict.fromkeys(result.skills_exercised):
            by_skill[sid].append(observation)

    estimates = {sid: estimate_skill(sid, obs, now=now, config=config) for sid, obs in by_skill.items()}
    logger.debug(f"Computed BKT for {len(estimates)} skills")
    return estimates
