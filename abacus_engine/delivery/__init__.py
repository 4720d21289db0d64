"""
Session Delivery.

Components:
- session_plan: plan structure, lifecycle and progress queries
- retry: answer recording, retry epochs and manual redo
- health: live session health indicator
- planner: three-part plan assembly with slot generation fallbacks
- cli: Rich terminal interface
"""

from .health import HealthStatus, SessionHealth, calculate_session_health
from .planner import build_session_plan, generate_problem_for_slot
from .retry import (
    CurrentProblemInfo,
    advance_plan,
    calculate_mastery_weight,
    get_current_problem_info,
    record_answer,
    record_manual_redo,
)
from .session_plan import (
    InvalidPlanTransitionError,
    SessionPlan,
    SessionPlanError,
    SessionStatus,
    abandon_plan,
    approve_plan,
    complete_plan,
    start_plan,
)

__all__ = [
    # Plans
    "SessionPlan",
    "SessionStatus",
    "SessionPlanError",
    "InvalidPlanTransitionError",
    "approve_plan",
    "start_plan",
    "complete_plan",
    "abandon_plan",
    # Planning
    "build_session_plan",
    "generate_problem_for_slot",
    # Answers and retries
    "CurrentProblemInfo",
    "get_current_problem_info",
    "record_answer",
    "record_manual_redo",
    "advance_plan",
    "calculate_mastery_weight",
    # Health
    "HealthStatus",
    "SessionHealth",
    "calculate_session_health",
]
