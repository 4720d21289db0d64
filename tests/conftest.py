"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from abacus_engine.core.problems import GeneratedProblem, ProblemResultWithContext, ResultSource  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def rng():
    """Seeded random source for reproducible generation."""
    return random.Random(42)


@pytest.fixture
def t0():
    """Fixed reference timestamp."""
    return datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def make_result(t0):
    """Factory for ProblemResultWithContext with sensible defaults."""

    def _make(
        skill="basic.directAddition",
        is_correct=True,
        minutes=0,
        session_id="s1",
        response_time_ms=4000,
        terms=(1, 2),
        **overrides,
    ):
        problem = GeneratedProblem(terms=tuple(terms), answer=sum(terms), skills_required=(skill,))
        fields = dict(
            session_id=session_id,
            part_number=1,
            slot_index=0,
            problem=problem,
            student_answer=problem.answer if is_correct else problem.answer + 1,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            skills_exercised=[skill],
            timestamp=t0 + timedelta(minutes=minutes),
            source=ResultSource.PRACTICE,
        )
        fields.update(overrides)
        return ProblemResultWithContext(**fields)

    return _make


@pytest.fixture
def make_bkt():
    """Factory for SkillBktResult with a given pKnown and confidence."""
    from abacus_engine.core.bkt import SkillBktResult, classify_skill
    from abacus_engine.core.config import BktParams

    def _make(skill_id, p_known, confidence, opportunities=10):
        return SkillBktResult(
            skill_id=skill_id,
            p_known=p_known,
            confidence=confidence,
            uncertainty_range=(max(0.0, p_known - 0.1), min(1.0, p_known + 0.1)),
            opportunities=opportunities,
            success_count=round(opportunities * p_known),
            last_practiced_at=None,
            days_since_last_practice=None,
            classification=classify_skill(p_known, confidence),
            params=BktParams(),
        )

    return _make


@pytest.fixture
def make_plan(t0):
    """
    Factory for a draft plan with fixed problems.

    Every slot holds 1 + 2 = 3 unless ``problems`` supplies per-part terms.
    """
    from abacus_engine.core.config import TermCountRange
    from abacus_engine.core.problems import PartType, SlotPurpose
    from abacus_engine.core.skills import SkillSet
    from abacus_engine.delivery.session_plan import (
        PartFormat,
        ProblemSlot,
        SessionPart,
        SessionPlan,
        SlotConstraints,
    )

    def _make(slot_counts=(2, 1, 1), with_problems=True):
        parts = []
        for part_type, count in zip((PartType.ABACUS, PartType.VISUALIZATION, PartType.LINEAR), slot_counts):
            slots = [
                ProblemSlot(
                    index=i,
                    purpose=SlotPurpose.FOCUS,
                    constraints=SlotConstraints(
                        allowed_skills=SkillSet.basic_addition(),
                        term_count=TermCountRange(min=2, max=2),
                    ),
                    problem=(
                        GeneratedProblem(terms=(1, 2), answer=3, skills_required=("basic.directAddition",))
                        if with_problems
                        else None
                    ),
                )
                for i in range(count)
            ]
            parts.append(
                SessionPart(
                    part_number=part_type.part_number,
                    type=part_type,
                    format=PartFormat.LINEAR if part_type == PartType.LINEAR else PartFormat.VERTICAL,
                    use_abacus=part_type == PartType.ABACUS,
                    slots=slots,
                )
            )
        return SessionPlan(id="plan-1", player_id="student-1", parts=parts, created_at=t0)

    return _make


@pytest.fixture
def started_plan(make_plan, t0):
    """Factory for a plan that has been approved and started."""
    from abacus_engine.delivery.session_plan import approve_plan, start_plan

    def _make(slot_counts=(2, 1, 1)):
        return start_plan(approve_plan(make_plan(slot_counts), t0), t0)

    return _make
