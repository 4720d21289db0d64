"""
Session Plans.

A session plan holds three parts (abacus, visualization, linear), each an
ordered list of problem slots. The plan carries two cursors
(current_part_index, current_slot_index), an append-only results log, retry
state per part, and a lifecycle status:

    draft -> approved -> in_progress -> completed
       \\________\\____________\\-------> abandoned

Every transition returns a new plan with its version incremented; the input
plan is never modified.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from loguru import logger

from ..core.config import ComplexityBounds, TermCountRange
from ..core.problems import GeneratedProblem, PartType, ProblemResultWithContext, SlotPurpose
from ..core.skills import SkillSet
from ..curriculum.comfort import TermCountExplanation
from ..generation.problem_generator import NumberRange


# =============================================================================
# Errors
# =============================================================================


class SessionPlanError(Exception):
    """The caller violated the session plan's state machine contract."""


class InvalidPlanTransitionError(SessionPlanError):
    """Illegal lifecycle status change."""

    def __init__(self, from_status: SessionStatus, to_status: SessionStatus):
        super().__init__(f"Cannot transition plan from {from_status.value} to {to_status.value}")
        self.from_status = from_status
        self.to_status = to_status


# =============================================================================
# Types
# =============================================================================


class SessionStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)


ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.DRAFT: frozenset({SessionStatus.APPROVED, SessionStatus.ABANDONED}),
    SessionStatus.APPROVED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.ABANDONED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.ABANDONED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.ABANDONED: frozenset(),
}


class PartFormat(str, Enum):
    VERTICAL = "vertical"
    LINEAR = "linear"


@dataclass
class SlotConstraints:
    """What a slot's problem must satisfy."""

    allowed_skills: SkillSet
    term_count: TermCountRange
    digit_range: NumberRange = field(default_factory=lambda: NumberRange(1, 1))
    target_skills: SkillSet | None = None
    forbidden_skills: SkillSet | None = None
    min_complexity_per_term: float | None = None
    max_complexity_per_term: float | None = None


@dataclass
class ProblemSlot:
    index: int
    purpose: SlotPurpose
    constraints: SlotConstraints
    problem: GeneratedProblem | None = None
    complexity_bounds: ComplexityBounds | None = None
    term_count_explanation: TermCountExplanation | None = None


@dataclass
class SessionPart:
    part_number: int
    type: PartType
    format: PartFormat
    use_abacus: bool
    slots: list[ProblemSlot]
    estimated_minutes: float = 0.0


@dataclass
class RetryItem:
    """A missed problem queued for replay (same problem, never regenerated)."""

    original_slot_index: int
    problem: GeneratedProblem
    epoch_number: int
    original_purpose: SlotPurpose


@dataclass
class PartRetryState:
    current_epoch: int = 0
    pending_retries: list[RetryItem] = field(default_factory=list)
    current_epoch_items: list[RetryItem] = field(default_factory=list)
    current_retry_index: int = 0
    redeemed_slots: list[int] = field(default_factory=list)


@dataclass
class SessionPlan:
    id: str
    player_id: str
    parts: list[SessionPart]
    status: SessionStatus = SessionStatus.DRAFT
    current_part_index: int = 0
    current_slot_index: int = 0
    results: list[ProblemResultWithContext] = field(default_factory=list)
    retry_state: dict[int, PartRetryState] = field(default_factory=dict)
    target_duration_minutes: float = 10.0
    avg_time_per_problem_seconds: float = 30.0
    estimated_problem_count: int = 0
    session_mode: str | None = None
    comfort_level: float | None = None
    created_at: datetime | None = None
    approved_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    version: int = 0


def evolve_plan(plan: SessionPlan) -> SessionPlan:
    """Deep copy of a plan with the version bumped, ready to be modified."""
    new_plan = copy.deepcopy(plan)
    new_plan.version = plan.version + 1
    return new_plan


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


# =============================================================================
# Lifecycle
# =============================================================================


def transition_plan(plan: SessionPlan, to_status: SessionStatus, now: datetime | None = None) -> SessionPlan:
    """
    Move a plan to a new lifecycle status.

    Raises:
        InvalidPlanTransitionError: when the change is not allowed
    """
    if to_status not in ALLOWED_TRANSITIONS[plan.status]:
        raise InvalidPlanTransitionError(plan.status, to_status)

    new_plan = evolve_plan(plan)
    new_plan.status = to_status
    stamp = _now(now)
    if to_status == SessionStatus.APPROVED:
        new_plan.approved_at = stamp
    elif to_status == SessionStatus.IN_PROGRESS:
        new_plan.started_at = stamp
    elif to_status.is_terminal:
        new_plan.completed_at = stamp
    logger.info(f"Plan {plan.id}: {plan.status.value} -> {to_status.value}")
    return new_plan


def approve_plan(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    for part in plan.parts:
        for slot in part.slots:
            if slot.problem is None:
                raise SessionPlanError(f"Part {part.part_number} slot {slot.index} has no problem")
    return transition_plan(plan, SessionStatus.APPROVED, now)


def start_plan(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    return transition_plan(plan, SessionStatus.IN_PROGRESS, now)


def complete_plan(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    return transition_plan(plan, SessionStatus.COMPLETED, now)


def abandon_plan(plan: SessionPlan, now: datetime | None = None) -> SessionPlan:
    return transition_plan(plan, SessionStatus.ABANDONED, now)


# =============================================================================
# Progress queries
# =============================================================================


def get_current_part(plan: SessionPlan) -> SessionPart | None:
    if plan.current_part_index >= len(plan.parts):
        return None
    return plan.parts[plan.current_part_index]


def get_next_slot(plan: SessionPlan) -> ProblemSlot | None:
    """The next original (epoch 0) slot of the current part, if any."""
    part = get_current_part(plan)
    if part is None or plan.current_slot_index >= len(part.slots):
        return None
    return part.slots[plan.current_slot_index]


def _scored_results(plan: SessionPlan) -> list[ProblemResultWithContext]:
    return [r for r in plan.results if not r.is_manual_redo]


def get_total_problem_count(plan: SessionPlan) -> int:
    return sum(len(part.slots) for part in plan.parts)


def get_completed_problem_count(plan: SessionPlan) -> int:
    """Original slots answered so far (retries and redos excluded)."""
    return sum(1 for r in _scored_results(plan) if not r.is_retry)


def get_session_plan_accuracy(plan: SessionPlan) -> float:
    results = _scored_results(plan)
    if not results:
        return 0.0
    return sum(1 for r in results if r.is_correct) / len(results)


def is_part_complete(plan: SessionPlan, part_index: int) -> bool:
    if part_index < 0 or part_index >= len(plan.parts):
        raise SessionPlanError(f"Part index {part_index} out of range")
    return plan.current_part_index > part_index


def is_session_complete(plan: SessionPlan) -> bool:
    return plan.current_part_index >= len(plan.parts)
