"""
Unit tests for session plan lifecycle and progress queries.
"""

import pytest

from abacus_engine.delivery.session_plan import (
    InvalidPlanTransitionError,
    SessionPlanError,
    SessionStatus,
    abandon_plan,
    approve_plan,
    complete_plan,
    get_completed_problem_count,
    get_current_part,
    get_next_slot,
    get_session_plan_accuracy,
    get_total_problem_count,
    is_part_complete,
    is_session_complete,
    start_plan,
    transition_plan,
)


class TestLifecycle:
    def test_happy_path(self, make_plan, t0):
        draft = make_plan()
        approved = approve_plan(draft, t0)
        started = start_plan(approved, t0)
        completed = complete_plan(started, t0)
        assert [p.status for p in (draft, approved, started, completed)] == [
            SessionStatus.DRAFT,
            SessionStatus.APPROVED,
            SessionStatus.IN_PROGRESS,
            SessionStatus.COMPLETED,
        ]
        assert completed.version == 3
        assert approved.approved_at == t0
        assert started.started_at == t0
        assert completed.completed_at == t0

    def test_transition_returns_new_plan(self, make_plan, t0):
        draft = make_plan()
        approved = approve_plan(draft, t0)
        assert approved is not draft
        assert draft.status == SessionStatus.DRAFT
        assert draft.version == 0

    @pytest.mark.parametrize("status", [SessionStatus.DRAFT, SessionStatus.APPROVED, SessionStatus.IN_PROGRESS])
    def test_can_abandon_before_completion(self, make_plan, t0, status):
        plan = make_plan()
        plan.status = status
        assert abandon_plan(plan, t0).status == SessionStatus.ABANDONED

    def test_cannot_skip_approval(self, make_plan):
        with pytest.raises(InvalidPlanTransitionError) as exc_info:
            start_plan(make_plan())
        assert exc_info.value.from_status == SessionStatus.DRAFT
        assert exc_info.value.to_status == SessionStatus.IN_PROGRESS

    @pytest.mark.parametrize("terminal", [SessionStatus.COMPLETED, SessionStatus.ABANDONED])
    def test_terminal_states_are_final(self, make_plan, terminal):
        plan = make_plan()
        plan.status = terminal
        for target in SessionStatus:
            with pytest.raises(InvalidPlanTransitionError):
                transition_plan(plan, target)

    def test_approve_requires_problems(self, make_plan):
        with pytest.raises(SessionPlanError):
            approve_plan(make_plan(with_problems=False))


class TestProgressQueries:
    def test_fresh_plan(self, make_plan):
        plan = make_plan((2, 1, 1))
        assert get_total_problem_count(plan) == 4
        assert get_completed_problem_count(plan) == 0
        assert get_session_plan_accuracy(plan) == 0.0
        assert get_current_part(plan).part_number == 1
        assert get_next_slot(plan).index == 0
        assert not is_part_complete(plan, 0)
        assert not is_session_complete(plan)

    def test_exhausted_plan(self, make_plan):
        plan = make_plan()
        plan.current_part_index = 3
        assert get_current_part(plan) is None
        assert get_next_slot(plan) is None
        assert is_part_complete(plan, 2)
        assert is_session_complete(plan)

    def test_part_index_out_of_range(self, make_plan):
        with pytest.raises(SessionPlanError):
            is_part_complete(make_plan(), 3)
        with pytest.raises(SessionPlanError):
            is_part_complete(make_plan(), -1)
