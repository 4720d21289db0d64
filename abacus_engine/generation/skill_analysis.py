"""
Abacus Skill Detection.

Replays a term on a soroban, column by column from the highest place of the
term down to the ones column, and records which technique each bead movement
requires. The same delta can need different techniques depending on the
current beads: +4 from 0 is direct, +4 from 2 needs the five complement.

Per column digit d and amount a (1-9):

Addition, d + a <= 9:
    a < 5 and d%5 + a <= 4 -> basic.directAddition
    a < 5 otherwise         -> fiveComplements.{a}=5-{5-a}
    a == 5                  -> basic.heavenBead
    a in 6..9               -> basic.simpleCombinations
Addition, d + a > 9:
    tenComplements.{a}=10-{10-a}, then +1 on the next column. A 9 there
    becomes 0 and the carry moves on (advanced.cascadingCarry); adding the
    final 1 onto a 4 needs fiveComplements.1=5-4.

Subtraction mirrors addition with fiveComplementsSub, tenComplementsSub and
advanced.cascadingBorrow.
"""

from __future__ import annotations

from typing import Callable, Sequence

from ..core.problems import GenerationTrace, GenerationTraceStep
from ..curriculum.complexity import base_term_cost

DIRECT_ADDITION = "basic.directAddition"
HEAVEN_BEAD = "basic.heavenBead"
SIMPLE_COMBINATIONS = "basic.simpleCombinations"
DIRECT_SUBTRACTION = "basic.directSubtraction"
HEAVEN_BEAD_SUBTRACTION = "basic.heavenBeadSubtraction"
SIMPLE_COMBINATIONS_SUB = "basic.simpleCombinationsSub"
CASCADING_CARRY = "advanced.cascadingCarry"
CASCADING_BORROW = "advanced.cascadingBorrow"


def five_complement(amount: int) -> str:
    return f"fiveComplements.{amount}=5-{5 - amount}"


def five_complement_sub(amount: int) -> str:
    return f"fiveComplementsSub.-{amount}=-5+{5 - amount}"


def ten_complement(amount: int) -> str:
    return f"tenComplements.{amount}=10-{10 - amount}"


def ten_complement_sub(amount: int) -> str:
    return f"tenComplementsSub.-{amount}=+{10 - amount}-10"


class ImpossibleStepError(Exception):
    """The bead movement cannot be performed (value would go negative)."""


class _Soroban:
    """Column digits, ones first, with skill recording."""

    def __init__(self, value: int):
        self.digits = [int(c) for c in reversed(str(value))]
        self.skills: list[str] = []

    def _digit(self, place: int) -> int:
        while len(self.digits) <= place:
            self.digits.append(0)
        return self.digits[place]

    def _record(self, skill: str) -> None:
        if skill not in self.skills:
            self.skills.append(skill)

    def add(self, place: int, amount: int) -> None:
        d = self._digit(place)
        if d + amount <= 9:
            if amount < 5:
                self._record(DIRECT_ADDITION if d % 5 + amount <= 4 else five_complement(amount))
            elif amount == 5:
                self._record(HEAVEN_BEAD)
            else:
                self._record(SIMPLE_COMBINATIONS)
            self.digits[place] = d + amount
            return

        self._record(ten_complement(amount))
        self.digits[place] = d + amount - 10
        self._carry(place + 1)

    def _carry(self, place: int) -> None:
        d = self._digit(place)
        while d == 9:
            self._record(CASCADING_CARRY)
            self.digits[place] = 0
            place += 1
            d = self._digit(place)
        if d % 5 == 4:
            self._record(five_complement(1))
        self.digits[place] = d + 1

    def subtract(self, place: int, amount: int) -> None:
        d = self._digit(place)
        if d - amount >= 0:
            if amount < 5:
                self._record(DIRECT_SUBTRACTION if d % 5 >= amount else five_complement_sub(amount))
            elif amount == 5:
                self._record(HEAVEN_BEAD_SUBTRACTION)
            else:
                self._record(SIMPLE_COMBINATIONS_SUB)
            self.digits[place] = d - amount
            return

        self._record(ten_complement_sub(amount))
        self.digits[place] = d + 10 - amount
        self._borrow(place + 1)

    def _borrow(self, place: int) -> None:
        if place >= len(self.digits):
            raise ImpossibleStepError("borrow past the highest column")
        d = self.digits[place]
        while d == 0:
            self._record(CASCADING_BORROW)
            self.digits[place] = 9
            place += 1
            if place >= len(self.digits):
                raise ImpossibleStepError("borrow past the highest column")
            d = self.digits[place]
        if d == 5:
            self._record(five_complement_sub(1))
        self.digits[place] = d - 1


def analyze_step_skills(current_value: int, term: int, new_value: int | None = None) -> list[str]:
    """
    Techniques needed to apply ``term`` to an abacus showing ``current_value``.

    ``new_value`` is accepted for call-site symmetry and ignored. Returns an
    empty list when the step is impossible (the result would be negative).
    Skills are unique and in the order they are first needed.
    """
    if current_value < 0 or current_value + term < 0 or term == 0:
        return []

    soroban = _Soroban(current_value)
    magnitude = str(abs(term))
    try:
        for offset, char in enumerate(magnitude):
            place = len(magnitude) - 1 - offset
            amount = int(char)
            if amount == 0:
                continue
            if term > 0:
                soroban.add(place, amount)
            else:
                soroban.subtract(place, amount)
    except ImpossibleStepError:
        return []
    return soroban.skills


class StepSkillsCache:
    """
    Memoized step analysis owned by the caller.

    Keyed by (current_value, term); the resulting value is implied by the key.
    Cached entries are tuples and are returned as-is on a hit.
    """

    def __init__(self):
        self._entries: dict[tuple[int, int], tuple[str, ...]] = {}
        self.hits = 0
        self.misses = 0

    @property
    def size(self) -> int:
        return len(self._entries)

    def analyze(self, current_value: int, term: int, new_value: int | None = None) -> tuple[str, ...]:
        key = (current_value, term)
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        skills = tuple(analyze_step_skills(current_value, term))
        self._entries[key] = skills
        return skills

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, int]:
        return {"size": self.size, "hits": self.hits, "misses": self.misses}


def _step_skills(current_value: int, term: int, cache: StepSkillsCache | None) -> Sequence[str]:
    if cache is not None:
        return cache.analyze(current_value, term)
    return analyze_step_skills(current_value, term)


def analyze_required_skills(terms: Sequence[int], cache: StepSkillsCache | None = None) -> list[str]:
    """Union of the skills needed across all steps, first-use order."""
    skills: list[str] = []
    total = 0
    for term in terms:
        for skill in _step_skills(total, term, cache):
            if skill not in skills:
                skills.append(skill)
        total += term
    return skills


# =============================================================================
# Trace
# =============================================================================

_SKILL_PHRASES = {
    "basic": "direct bead movement",
    "fiveComplements": "five complement",
    "fiveComplementsSub": "five complement",
    "tenComplements": "ten complement",
    "tenComplementsSub": "ten complement",
    "advanced": "cascading carry/borrow",
}


def explain_step(term: int, skills: Sequence[str]) -> str:
    verb = "Add" if term >= 0 else "Subtract"
    if not skills:
        return f"{verb} {abs(term)}"
    described = []
    for skill in skills:
        category, _, key = skill.partition(".")
        phrase = _SKILL_PHRASES.get(category, category)
        described.append(f"{phrase} ({key})")
    return f"{verb} {abs(term)} using {', '.join(described)}"


def build_generation_trace(
    terms: Sequence[int],
    cost_fn: Callable[[Sequence[str]], float] | None = None,
    cache: StepSkillsCache | None = None,
    budget_constraint: float | None = None,
    min_budget_constraint: float | None = None,
) -> GenerationTrace:
    """
    Replay terms step by step, recording skills and per-step cost.

    Args:
        terms: Signed terms in order
        cost_fn: Prices a step's skills; base complexity when omitted
        cache: Optional step-skills cache
        budget_constraint: Per-term max cost in force during generation
        min_budget_constraint: Per-term min cost in force during generation
    """
    cost_fn = cost_fn or base_term_cost
    steps = []
    all_skills: list[str] = []
    total = 0
    total_cost = 0.0
    for index, term in enumerate(terms):
        skills = tuple(_step_skills(total, term, cache))
        cost = cost_fn(skills)
        after = total + term
        sign = "-" if term < 0 else "+"
        steps.append(
            GenerationTraceStep(
                step_number=index + 1,
                operation=f"{total} {sign} {abs(term)} = {after}",
                accumulated_before=total,
                term_added=term,
                accumulated_after=after,
                skills_used=skills,
                explanation=explain_step(term, skills),
                complexity_cost=cost,
            )
        )
        for skill in skills:
            if skill not in all_skills:
                all_skills.append(skill)
        total_cost += cost
        total = after

    return GenerationTrace(
        terms=tuple(terms),
        answer=total,
        steps=tuple(steps),
        all_skills=tuple(all_skills),
        budget_constraint=budget_constraint,
        min_budget_constraint=min_budget_constraint,
        total_complexity_cost=total_cost,
    )
