"""
Curriculum Logic.

Components:
- session_mode: remediation / progression / maintenance
- comfort: comfort level and term-count sizing
- complexity: per-term complexity bounds and skill costs
- readiness: four-dimension skill readiness
- time_estimation: seconds-per-term pace from recent results
"""

from .comfort import apply_term_count_override, compute_comfort_level, compute_term_count_range
from .complexity import SkillCostCalculator, get_complexity_bounds
from .readiness import all_skills_solid, assess_all_skills_readiness, assess_skill_readiness
from .session_mode import MaintenanceMode, ProgressionMode, RemediationMode, classify_session_mode
from .time_estimation import (
    calculate_seconds_per_term,
    estimate_problem_time_ms,
    estimate_session_duration_minutes,
    estimate_session_problem_count,
    get_time_estimation_profile,
)

__all__ = [
    "apply_term_count_override",
    "compute_comfort_level",
    "compute_term_count_range",
    "SkillCostCalculator",
    "get_complexity_bounds",
    "all_skills_solid",
    "assess_all_skills_readiness",
    "assess_skill_readiness",
    "MaintenanceMode",
    "ProgressionMode",
    "RemediationMode",
    "classify_session_mode",
    "calculate_seconds_per_term",
    "estimate_problem_time_ms",
    "estimate_session_duration_minutes",
    "estimate_session_problem_count",
    "get_time_estimation_profile",
]
