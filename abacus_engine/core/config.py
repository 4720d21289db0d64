"""
Engine Configuration.

Every tunable used by the engine lives here as a pydantic model with defaults.
Public operations accept the relevant model as an optional argument so callers
(and tests) can override thresholds without touching logic.

Design:
- BktParams / BktConfig: knowledge-tracing parameters and classification thresholds
- ReadinessThresholds: the four readiness dimensions
- ComfortConfig / TermCountScaling: comfort level and term-count sizing
- ComplexityConfig: purpose x part complexity bounds, skill base costs
- SlotDistributionConfig: how a session's problems are divided into parts and purposes
- TimeEstimationConfig: seconds-per-term pace from recent results
- RetryConfig, GenerationConfig, HealthConfig
- EngineConfig: all of the above composed
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .problems import PartType, SlotPurpose
from .skills import SkillCategory

MAX_RETRY_EPOCHS = 2


# =============================================================================
# Shared value types
# =============================================================================


class ComplexityBounds(BaseModel):
    """Per-term complexity bounds; None means unbounded on that side."""

    model_config = ConfigDict(frozen=True)

    min: float | None = None
    max: float | None = None


class TermCountRange(BaseModel):
    """Inclusive range of terms per problem."""

    model_config = ConfigDict(frozen=True)

    min: int
    max: int


# =============================================================================
# BKT
# =============================================================================


class BktParams(BaseModel):
    """Two-state BKT model parameters."""

    model_config = ConfigDict(frozen=True)

    p_init: float = 0.3
    p_learn: float = 0.1
    p_slip: float = 0.1
    p_guess: float = 0.2


def _default_category_params() -> dict[SkillCategory, BktParams]:
    return {
        SkillCategory.BASIC: BktParams(p_init=0.3, p_learn=0.2, p_slip=0.1, p_guess=0.2),
        SkillCategory.FIVE_COMPLEMENTS: BktParams(p_init=0.2, p_learn=0.15, p_slip=0.1, p_guess=0.15),
        SkillCategory.FIVE_COMPLEMENTS_SUB: BktParams(p_init=0.2, p_learn=0.15, p_slip=0.1, p_guess=0.15),
        SkillCategory.TEN_COMPLEMENTS: BktParams(p_init=0.1, p_learn=0.1, p_slip=0.1, p_guess=0.1),
        SkillCategory.TEN_COMPLEMENTS_SUB: BktParams(p_init=0.1, p_learn=0.1, p_slip=0.1, p_guess=0.1),
        SkillCategory.ADVANCED: BktParams(p_init=0.05, p_learn=0.08, p_slip=0.15, p_guess=0.08),
    }


class BktConfig(BaseModel):
    """Classification thresholds and mastery-to-cost mapping."""

    strong_threshold: float = 0.8
    weak_threshold: float = 0.5
    confidence_threshold: float = 0.3

    # Confidence = 1 - exp(-effective_opportunities / confidence_saturation)
    confidence_saturation: float = 10.0

    # Cost multiplier range for confidently-estimated skills
    min_multiplier: float = 1.0
    max_multiplier: float = 4.0

    default_params: BktParams = Field(default_factory=BktParams)
    category_params: dict[SkillCategory, BktParams] = Field(default_factory=_default_category_params)


# =============================================================================
# Readiness
# =============================================================================


class ReadinessThresholds(BaseModel):
    """Thresholds for the four readiness dimensions."""

    # Mastery
    mastery_p_known: float = 0.85
    mastery_confidence: float = 0.5

    # Volume
    min_opportunities: int = 20
    min_sessions: int = 3

    # Speed
    speed_window: int = 10
    max_seconds_per_term: float = 4.0

    # Consistency
    accuracy_window: int = 15
    min_accuracy: float = 0.85
    streak_window: int = 5
    help_window: int = 5


# =============================================================================
# Comfort level & term counts
# =============================================================================


class ComfortConfig(BaseModel):
    """Comfort-level inputs."""

    default_comfort: float = 0.3
    mode_multipliers: dict[str, float] = Field(
        default_factory=lambda: {"remediation": 0.6, "progression": 0.85, "maintenance": 1.0}
    )
    max_skill_count_bonus: float = 0.15
    skill_count_bonus_divisor: float = 20.0


class TermCountScalingEntry(BaseModel):
    """Term-count range at comfort 0 (floor) and comfort 1 (ceiling)."""

    floor: TermCountRange
    ceiling: TermCountRange


def _default_term_count_scaling() -> dict[PartType, TermCountScalingEntry]:
    return {
        PartType.ABACUS: TermCountScalingEntry(
            floor=TermCountRange(min=2, max=3), ceiling=TermCountRange(min=4, max=8)
        ),
        PartType.VISUALIZATION: TermCountScalingEntry(
            floor=TermCountRange(min=2, max=2), ceiling=TermCountRange(min=4, max=8)
        ),
        PartType.LINEAR: TermCountScalingEntry(
            floor=TermCountRange(min=2, max=2), ceiling=TermCountRange(min=4, max=8)
        ),
    }


class TermCountScaling(BaseModel):
    parts: dict[PartType, TermCountScalingEntry] = Field(default_factory=_default_term_count_scaling)


# =============================================================================
# Complexity
# =============================================================================


def _default_purpose_bounds() -> dict[SlotPurpose, dict[PartType, ComplexityBounds]]:
    standard = {
        PartType.ABACUS: ComplexityBounds(min=None, max=7),
        PartType.VISUALIZATION: ComplexityBounds(min=None, max=5),
        PartType.LINEAR: ComplexityBounds(min=None, max=7),
    }
    challenge = {part: ComplexityBounds(min=1, max=None) for part in PartType}
    return {
        SlotPurpose.FOCUS: dict(standard),
        SlotPurpose.REINFORCE: dict(standard),
        SlotPurpose.REVIEW: dict(standard),
        SlotPurpose.CHALLENGE: challenge,
    }


def _default_base_complexity() -> dict[SkillCategory, float]:
    return {
        SkillCategory.BASIC: 0,
        SkillCategory.FIVE_COMPLEMENTS: 1,
        SkillCategory.FIVE_COMPLEMENTS_SUB: 1,
        SkillCategory.TEN_COMPLEMENTS: 2,
        SkillCategory.TEN_COMPLEMENTS_SUB: 2,
        SkillCategory.ADVANCED: 3,
    }


class ComplexityConfig(BaseModel):
    """Complexity bounds table and skill cost model."""

    purpose_bounds: dict[SlotPurpose, dict[PartType, ComplexityBounds]] = Field(
        default_factory=_default_purpose_bounds
    )

    # Whole-problem budgets by presentation
    use_abacus_budget: float = 12
    visualization_budget: float = 6
    linear_budget: float = 8

    base_skill_complexity: dict[SkillCategory, float] = Field(default_factory=_default_base_complexity)
    default_base_complexity: float = 1

    # Multipliers for skills without a confident BKT estimate
    in_rotation_multiplier: float = 3
    out_of_rotation_multiplier: float = 4


# =============================================================================
# Session structure
# =============================================================================


class SlotDistributionConfig(BaseModel):
    """How a session's problems divide into parts and purposes."""

    part_time_weights: dict[PartType, float] = Field(
        default_factory=lambda: {
            PartType.ABACUS: 0.5,
            PartType.VISUALIZATION: 0.3,
            PartType.LINEAR: 0.2,
        }
    )
    challenge_ratio_by_part: dict[PartType, float] = Field(
        default_factory=lambda: {
            PartType.ABACUS: 0.25,
            PartType.VISUALIZATION: 0.15,
            PartType.LINEAR: 0.2,
        }
    )
    purpose_weights: dict[SlotPurpose, float] = Field(
        default_factory=lambda: {
            SlotPurpose.FOCUS: 0.6,
            SlotPurpose.REINFORCE: 0.2,
            SlotPurpose.REVIEW: 0.15,
        }
    )
    # Fixed term-count ranges used when comfort scaling is disabled
    abacus_term_count: TermCountRange = Field(default_factory=lambda: TermCountRange(min=3, max=6))
    visualization_term_factor: float = 0.75

    default_avg_time_per_problem_seconds: float = 30.0
    min_problems_per_part: int = 1
    digit_range_min: int = 1
    digit_range_max: int = 1


class RetryConfig(BaseModel):
    max_retry_epochs: int = MAX_RETRY_EPOCHS


class GenerationConfig(BaseModel):
    max_attempts: int = 100
    # Candidate magnitudes sampled per step
    candidate_sample_size: int = 24


class TimeEstimationConfig(BaseModel):
    """History-driven pace estimation: seconds per term plus a fixed overhead."""

    default_seconds_per_term: float = 8.0
    min_seconds_per_term: float = 3.0
    max_seconds_per_term: float = 30.0
    overhead_seconds: float = 2.0
    default_terms_per_problem: int = 3
    min_results: int = 5
    # Newest results considered
    recent_window: int = 50
    # Outlier exclusion only kicks in with enough samples
    outlier_min_results: int = 10
    exclude_outliers: bool = True
    min_problems_per_part: int = 2
    part_multipliers: dict[PartType, float] = Field(
        default_factory=lambda: {
            PartType.ABACUS: 1.0,
            PartType.VISUALIZATION: 1.2,
            PartType.LINEAR: 0.85,
        }
    )


class HealthConfig(BaseModel):
    """Thresholds for the live session-health indicator."""

    struggling_accuracy: float = 0.6
    warning_accuracy: float = 0.8
    struggling_pace: float = 70
    warning_pace: float = 90
    struggling_streak: int = -3
    warning_streak: int = -2


class EngineConfig(BaseModel):
    """Every engine tunable in one place."""

    bkt: BktConfig = Field(default_factory=BktConfig)
    readiness: ReadinessThresholds = Field(default_factory=ReadinessThresholds)
    comfort: ComfortConfig = Field(default_factory=ComfortConfig)
    term_count_scaling: TermCountScaling = Field(default_factory=TermCountScaling)
    complexity: ComplexityConfig = Field(default_factory=ComplexityConfig)
    slots: SlotDistributionConfig = Field(default_factory=SlotDistributionConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    time_estimation: TimeEstimationConfig = Field(default_factory=TimeEstimationConfig)
