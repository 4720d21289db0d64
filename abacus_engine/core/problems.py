"""
Problem and Result Types.

Shared vocabulary for generated problems, their step-by-step traces, and the
attempt records students produce when answering them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PartType(str, Enum):
    """The three session parts, in the order they are practiced."""

    ABACUS = "abacus"  # physical abacus in hand
    VISUALIZATION = "visualization"  # mental abacus
    LINEAR = "linear"  # mental math from a sentence-style prompt

    @property
    def part_number(self) -> int:
        return list(PartType).index(self) + 1


class SlotPurpose(str, Enum):
    """Why a slot exists in the plan."""

    FOCUS = "focus"
    REINFORCE = "reinforce"
    REVIEW = "review"
    CHALLENGE = "challenge"


class ResultSource(str, Enum):
    """Where an attempt record came from."""

    PRACTICE = "practice"
    RECENCY_REFRESH = "recency-refresh"
    TEACHER_CORRECTED = "teacher-corrected"
    TEACHER_EXCLUDED = "teacher-excluded"

    @property
    def carries_evidence(self) -> bool:
        """False for records that only reset staleness or mark exclusion."""
        return self not in (ResultSource.RECENCY_REFRESH, ResultSource.TEACHER_EXCLUDED)


@dataclass(frozen=True)
class GenerationTraceStep:
    """One step of replaying a problem on the abacus."""

    step_number: int
    operation: str  # e.g. "3 + 4 = 7"
    accumulated_before: int
    term_added: int
    accumulated_after: int
    skills_used: tuple[str, ...]
    explanation: str
    complexity_cost: float | None = None


@dataclass(frozen=True)
class GenerationTrace:
    """Full replay of a problem with per-step skills and costs."""

    terms: tuple[int, ...]
    answer: int
    steps: tuple[GenerationTraceStep, ...]
    all_skills: tuple[str, ...]
    budget_constraint: float | None = None
    min_budget_constraint: float | None = None
    total_complexity_cost: float | None = None


@dataclass(frozen=True)
class GeneratedProblem:
    """An immutable arithmetic problem: signed terms and their sum."""

    terms: tuple[int, ...]
    answer: int
    skills_required: tuple[str, ...]
    generation_trace: GenerationTrace | None = None

    @property
    def term_count(self) -> int:
        return len(self.terms)

    def to_display(self) -> str:
        """Render as ``3 + 4 - 2 = 5``."""
        if not self.terms:
            return f"= {self.answer}"
        parts = [str(self.terms[0])]
        for term in self.terms[1:]:
            parts.append(f"- {abs(term)}" if term < 0 else f"+ {term}")
        return f"{' '.join(parts)} = {self.answer}"


@dataclass
class ProblemResultWithContext:
    """One completed attempt at a generated problem."""

    session_id: str
    part_number: int
    slot_index: int
    problem: GeneratedProblem
    student_answer: int
    is_correct: bool
    response_time_ms: float
    skills_exercised: list[str]
    timestamp: datetime
    had_help: bool = False
    incorrect_attempts: int = 0
    source: ResultSource = ResultSource.PRACTICE
    is_retry: bool = False
    epoch_number: int = 0
    mastery_weight: float = 1.0
    original_slot_index: int | None = None
    is_manual_redo: bool = False
    part_type: PartType | None = None
    help_trigger: str | None = None

    @property
    def counts_as_correct(self) -> bool:
        """Correct as graded, or overridden to correct by the teacher."""
        return self.is_correct or self.source == ResultSource.TEACHER_CORRECTED

    @property
    def seconds_per_term(self) -> float:
        return self.response_time_ms / (max(1, self.problem.term_count) * 1000)
