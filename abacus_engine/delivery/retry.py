"""
Retry Epochs.

Missed problems are replayed, unchanged, at the end of their part:

- epoch 0 is the original pass through a part's slots
- a wrong original answer queues the problem for epoch 1
- a wrong epoch-1 answer queues it again for epoch 2
- nothing is queued beyond RetryConfig.max_retry_epochs (2); the part then completes

Correct answers earn geometrically decaying mastery credit
(1.0, 0.5, 0.25 by epoch); wrong answers earn nothing.

A manual redo lets the student re-attempt a slot outside the cursor flow.
It never moves the cursor past the redone slot, but a correct redo of a
missed slot redeems it so later epochs skip it. Redeeming the last item of an
active epoch moves the plan on to the next epoch or part.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from ..core.config import RetryConfig
from ..core.problems import GeneratedProblem, ProblemResultWithContext, ResultSource, SlotPurpose
from .session_plan import (
    PartRetryState,
    RetryItem,
    SessionPlan,
    SessionPlanError,
    SessionStatus,
    evolve_plan,
)


def calculate_mastery_weight(is_correct: bool, epoch_number: int) -> float:
    """Credit for an answer: 1 / 2^epoch when correct, 0 when wrong."""
    if epoch_number < 0:
        raise SessionPlanError(f"Negative epoch number {epoch_number}")
    if not is_correct:
        return 0.0
    return 1.0 / (2 ** epoch_number)


def init_retry_state(retry_state: dict[int, PartRetryState], part_index: int) -> PartRetryState:
    """Return the part's retry state, creating it in the caller's map if missing."""
    state = retry_state.get(part_index)
    if state is None:
        state = PartRetryState()
        retry_state[part_index] = state
    return state


# =============================================================================
# Current problem
# =============================================================================


@dataclass(frozen=True)
class CurrentProblemInfo:
    """What the student should see now."""

    problem: GeneratedProblem
    part_index: int
    slot_index: int  # original slot index, also for retries
    purpose: SlotPurpose
    is_retry: bool
    epoch_number: int
    retry_index: int | None = None


def _next_retry_index(state: PartRetryState) -> int | None:
    index = state.current_retry_index
    while index < len(state.current_epoch_items):
        if state.current_epoch_items[index].original_slot_index not in state.redeemed_slots:
            return index
        index += 1
    return None


def get_current_problem_info(plan: SessionPlan) -> CurrentProblemInfo | None:
    """
    Resolve the problem to show right now.

    An active retry epoch serves its next unredeemed item; otherwise the next
    original slot is served. None when the part (or plan) is exhausted.
    """
    if plan.status.is_terminal or plan.current_part_index >= len(plan.parts):
        return None

    part_index = plan.current_part_index
    part = plan.parts[part_index]
    state = plan.retry_state.get(part_index)

    if state is not None and state.current_epoch > 0:
        index = _next_retry_index(state)
        if index is None:
            return None
        item = state.current_epoch_items[index]
        return CurrentProblemInfo(
            problem=item.problem,
            part_index=part_index,
            slot_index=item.original_slot_index,
            purpose=item.original_purpose,
            is_retry=True,
            epoch_number=item.epoch_number,
            retry_index=index,
        )

    if plan.current_slot_index >= len(part.slots):
        return None
    slot = part.slots[plan.current_slot_index]
    if slot.problem is None:
        raise SessionPlanError(f"Part {part.part_number} slot {slot.index} has no problem")
    return CurrentProblemInfo(
        problem=slot.problem,
        part_index=part_index,
        slot_index=slot.index,
        purpose=slot.purpose,
        is_retry=False,
        epoch_number=0,
    )


# =============================================================================
# Epoch and part transitions
# =============================================================================


def _pending_unredeemed(state: PartRetryState) -> list[RetryItem]:
    return [item for item in state.pending_retries if item.original_slot_index not in state.redeemed_slots]


def needs_retry_transition(plan: SessionPlan, config: RetryConfig | None = None) -> bool:
    """True when the current part should start its next retry epoch."""
    config = config or RetryConfig()
    if plan.current_part_index >= len(plan.parts):
        return False
    part = plan.parts[plan.current_part_index]
    state = plan.retry_state.get(plan.current_part_index)
    if state is None or plan.current_slot_index < len(part.slots):
        return False
    if _next_retry_index(state) is not None:
        return False
    return bool(_pending_unredeemed(state)) and state.current_epoch < config.max_retry_epochs


def _settle(plan: SessionPlan, config: RetryConfig, now: datetime | None) -> None:
    """Apply epoch starts and part completions in place on a fresh copy."""
    while plan.current_part_index < len(plan.parts):
        part_index = plan.current_part_index
        part = plan.parts[part_index]
        if plan.current_slot_index < len(part.slots):
            return

        state = plan.retry_state.get(part_index)
        if state is not None:
            if state.current_epoch > config.max_retry_epochs:
                raise SessionPlanError(
                    f"Part {part.part_number} is in epoch {state.current_epoch}, "
                    f"beyond the maximum of {config.max_retry_epochs}"
                )
            if state.current_epoch > 0 and _next_retry_index(state) is not None:
                return
            pending = _pending_unredeemed(state)
            if pending and state.current_epoch < config.max_retry_epochs:
                state.current_epoch += 1
                state.current_epoch_items = pending
                state.pending_retries = []
                state.current_retry_index = 0
                logger.info(
                    f"Plan {plan.id}: part {part.part_number} starting retry epoch "
                    f"{state.current_epoch} with {len(pending)} problems"
                )
                continue
            state.current_retry_index = len(state.current_epoch_items)
            state.pending_retries = []

        logger.info(f"Plan {plan.id}: part {part.part_number} complete")
        plan.current_part_index += 1
        plan.current_slot_index = 0

    if plan.status == SessionStatus.IN_PROGRESS:
        plan.status = SessionStatus.COMPLETED
        plan.completed_at = now or datetime.now(UTC)
        logger.info(f"Plan {plan.id}: all parts complete")


def advance_plan(plan: SessionPlan, config: RetryConfig | None = None, now: datetime | None = None) -> SessionPlan:
    """
    Apply any pending epoch start or part completion.

    Answers and redos settle on their own; this is for callers that edit
    cursors or retry state directly.
    """
    new_plan = evolve_plan(plan)
    _settle(new_plan, config or RetryConfig(), now)
    return new_plan


# =============================================================================
# Answers
# =============================================================================


def record_answer(
    plan: SessionPlan,
    student_answer: int,
    response_time_ms: float,
    timestamp: datetime | None = None,
    had_help: bool = False,
    incorrect_attempts: int = 0,
    help_trigger: str | None = None,
    source: ResultSource = ResultSource.PRACTICE,
    config: RetryConfig | None = None,
) -> SessionPlan:
    """
    Record the student's answer to the current problem.

    Appends the result, advances the cursor, queues a retry when the answer is
    wrong and the epoch cap allows, then starts the next epoch or part as
    needed.

    Raises:
        SessionPlanError: when the plan is not in progress or nothing is current
    """
    config = config or RetryConfig()
    if plan.status != SessionStatus.IN_PROGRESS:
        raise SessionPlanError(f"Cannot record an answer on a {plan.status.value} plan")
    info = get_current_problem_info(plan)
    if info is None:
        raise SessionPlanError(f"Plan {plan.id} has no current problem")

    new_plan = evolve_plan(plan)
    part = new_plan.parts[info.part_index]
    is_correct = student_answer == info.problem.answer
    timestamp = timestamp or datetime.now(UTC)

    new_plan.results.append(
        ProblemResultWithContext(
            session_id=plan.id,
            part_number=part.part_number,
            slot_index=info.slot_index,
            problem=info.problem,
            student_answer=student_answer,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            skills_exercised=list(info.problem.skills_required),
            timestamp=timestamp,
            had_help=had_help,
            incorrect_attempts=incorrect_attempts,
            source=source,
            is_retry=info.is_retry,
            epoch_number=info.epoch_number,
            mastery_weight=calculate_mastery_weight(is_correct, info.epoch_number),
            original_slot_index=info.slot_index if info.is_retry else None,
            part_type=part.type,
            help_trigger=help_trigger,
        )
    )

    state = init_retry_state(new_plan.retry_state, info.part_index)
    if info.is_retry:
        state.current_retry_index = info.retry_index + 1
    else:
        new_plan.current_slot_index += 1

    if not is_correct and info.epoch_number < config.max_retry_epochs:
        state.pending_retries.append(
            RetryItem(
                original_slot_index=info.slot_index,
                problem=info.problem,
                epoch_number=info.epoch_number + 1,
                original_purpose=info.purpose,
            )
        )

    _settle(new_plan, config, timestamp)
    return new_plan


def record_manual_redo(
    plan: SessionPlan,
    part_index: int,
    slot_index: int,
    student_answer: int,
    response_time_ms: float,
    timestamp: datetime | None = None,
    had_help: bool = False,
    config: RetryConfig | None = None,
) -> SessionPlan:
    """
    Record a re-attempt of an already answered slot.

    Cursors do not move for the redone slot. A correct redo of a slot whose
    latest answer was wrong adds it to the part's redeemed slots and drops it
    from the queue; if that empties the part's active epoch, the next epoch
    or part starts as it would after a regular answer.

    Raises:
        SessionPlanError: when the plan is not in progress, the slot is out of
            range, or the slot has not been attempted
    """
    config = config or RetryConfig()
    if plan.status != SessionStatus.IN_PROGRESS:
        raise SessionPlanError(f"Cannot record a redo on a {plan.status.value} plan")
    if part_index < 0 or part_index >= len(plan.parts):
        raise SessionPlanError(f"Part index {part_index} out of range")
    part = plan.parts[part_index]
    if slot_index < 0 or slot_index >= len(part.slots):
        raise SessionPlanError(f"Slot index {slot_index} out of range for part {part.part_number}")
    slot = part.slots[slot_index]
    if slot.problem is None:
        raise SessionPlanError(f"Part {part.part_number} slot {slot_index} has no problem")

    previous = [
        r
        for r in plan.results
        if r.part_number == part.part_number and r.slot_index == slot_index
    ]
    if not previous:
        raise SessionPlanError(f"Part {part.part_number} slot {slot_index} has not been attempted")

    new_plan = evolve_plan(plan)
    is_correct = student_answer == slot.problem.answer
    timestamp = timestamp or datetime.now(UTC)
    new_plan.results.append(
        ProblemResultWithContext(
            session_id=plan.id,
            part_number=part.part_number,
            slot_index=slot_index,
            problem=slot.problem,
            student_answer=student_answer,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            skills_exercised=list(slot.problem.skills_required),
            timestamp=timestamp,
            had_help=had_help,
            mastery_weight=calculate_mastery_weight(is_correct, 0),
            is_manual_redo=True,
            part_type=part.type,
        )
    )

    if is_correct and not previous[-1].is_correct:
        state = init_retry_state(new_plan.retry_state, part_index)
        if slot_index not in state.redeemed_slots:
            state.redeemed_slots.append(slot_index)
        state.pending_retries = [
            item for item in state.pending_retries if item.original_slot_index != slot_index
        ]
        logger.info(f"Plan {plan.id}: part {part.part_number} slot {slot_index} redeemed")

    _settle(new_plan, config, timestamp)
    return new_plan


# =============================================================================
# Retry status
# =============================================================================


@dataclass(frozen=True)
class SlotRetryStatus:
    attempts: int
    latest_correct: bool | None
    highest_epoch: int
    is_pending_retry: bool
    is_redeemed: bool


def get_slot_retry_status(plan: SessionPlan, part_index: int, slot_index: int) -> SlotRetryStatus:
    if part_index < 0 or part_index >= len(plan.parts):
        raise SessionPlanError(f"Part index {part_index} out of range")
    part = plan.parts[part_index]
    attempts = [
        r
        for r in plan.results
        if r.part_number == part.part_number and r.slot_index == slot_index and not r.is_manual_redo
    ]
    state = plan.retry_state.get(part_index) or PartRetryState()
    queued = list(state.pending_retries)
    next_index = _next_retry_index(state)
    if next_index is not None:
        queued.extend(state.current_epoch_items[next_index:])
    return SlotRetryStatus(
        attempts=len(attempts),
        latest_correct=attempts[-1].is_correct if attempts else None,
        highest_epoch=max((r.epoch_number for r in attempts), default=0),
        is_pending_retry=any(
            item.original_slot_index == slot_index and slot_index not in state.redeemed_slots for item in queued
        ),
        is_redeemed=slot_index in state.redeemed_slots,
    )


def is_in_retry_epoch(plan: SessionPlan, part_index: int) -> bool:
    state = plan.retry_state.get(part_index)
    return state is not None and state.current_epoch > 0


def calculate_total_problems_with_retries(plan: SessionPlan) -> int:
    """Original slots plus every retry answered, in progress, or queued."""
    total = sum(len(part.slots) for part in plan.parts)
    total += sum(1 for r in plan.results if r.is_retry and not r.is_manual_redo)
    for state in plan.retry_state.values():
        next_index = _next_retry_index(state)
        if next_index is not None:
            total += sum(
                1
                for item in state.current_epoch_items[next_index:]
                if item.original_slot_index not in state.redeemed_slots
            )
        total += len(_pending_unredeemed(state))
    return total
