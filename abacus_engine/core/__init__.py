"""
Core Engine Types.

Components:
- skills: closed skill catalogue and SkillSet filters
- problems: generated problems, traces, attempt records
- bkt: Bayesian Knowledge Tracing estimator
- config: pydantic configuration models for every tunable
"""

from .bkt import (
    BktObservation,
    SkillBktResult,
    SkillClassification,
    classify_skill,
    compute_bkt_results,
    estimate_skill,
)
from .config import MAX_RETRY_EPOCHS, EngineConfig
from .problems import (
    GeneratedProblem,
    PartType,
    ProblemResultWithContext,
    ResultSource,
    SlotPurpose,
)
from .skills import SkillCategory, SkillSet, parse_skill_id

__all__ = [
    "BktObservation",
    "SkillBktResult",
    "SkillClassification",
    "classify_skill",
    "compute_bkt_results",
    "estimate_skill",
    "MAX_RETRY_EPOCHS",
    "EngineConfig",
    "GeneratedProblem",
    "PartType",
    "ProblemResultWithContext",
    "ResultSource",
    "SlotPurpose",
    "SkillCategory",
    "SkillSet",
    "parse_skill_id",
]
