"""
Session Health.

A live indicator derived from a plan's results and elapsed time: accuracy,
pace against the planned time per problem, and the current streak.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from ..core.config import HealthConfig
from .session_plan import SessionPlan


class HealthStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    STRUGGLING = "struggling"


@dataclass(frozen=True)
class SessionHealth:
    overall: HealthStatus
    accuracy: float
    pace_percent: float
    current_streak: int  # positive = consecutive correct, negative = consecutive wrong
    avg_response_time_ms: float


def _current_streak(outcomes: list[bool]) -> int:
    if not outcomes:
        return 0
    latest = outcomes[-1]
    count = 0
    for outcome in reversed(outcomes):
        if outcome != latest:
            break
        count += 1
    return count if latest else -count


def calculate_session_health(
    plan: SessionPlan,
    elapsed_ms: float,
    config: HealthConfig | None = None,
) -> SessionHealth:
    """
    Summarize how the session is going.

    Args:
        plan: Current plan snapshot
        elapsed_ms: Time since the session started
        config: Status thresholds

    Returns:
        SessionHealth; with no answers yet accuracy is 1.0 and pace 100%
    """
    config = config or HealthConfig()
    results = [r for r in plan.results if not r.is_manual_redo]

    accuracy = sum(1 for r in results if r.is_correct) / len(results) if results else 1.0

    expected = math.floor(elapsed_ms / 1000 / plan.avg_time_per_problem_seconds)
    pace = (len(results) / expected) * 100 if expected > 0 else 100.0

    streak = _current_streak([r.is_correct for r in results])
    avg_response = sum(r.response_time_ms for r in results) / len(results) if results else 0.0

    if accuracy < config.struggling_accuracy or pace < config.struggling_pace or streak <= config.struggling_streak:
        overall = HealthStatus.STRUGGLING
    elif accuracy < config.warning_accuracy or pace < config.warning_pace or streak <= config.warning_streak:
        overall = HealthStatus.WARNING
    else:
        overall = HealthStatus.GOOD

    return SessionHealth(
        overall=overall,
        accuracy=accuracy,
        pace_percent=pace,
        current_streak=streak,
        avg_response_time_ms=avg_response,
    )
