"""
Complexity Budgets.

Per-term complexity is the summed cost of the techniques a step needs.
A skill's cost is its category's base complexity times a multiplier that
reflects how well the student knows it:

- confidently estimated skills use the BKT multiplier (1x mastered .. 4x unknown)
- otherwise skills in the current rotation cost 3x and the rest 4x

Slots bound per-term cost by purpose and part type; challenge slots set a
floor instead of a ceiling.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from ..core.bkt import SkillBktResult, calculate_bkt_multiplier, is_bkt_confident
from ..core.config import BktConfig, ComplexityBounds, ComplexityConfig
from ..core.problems import PartType, SlotPurpose
from ..core.skills import parse_skill_id


def get_complexity_bounds(
    purpose: SlotPurpose,
    part_type: PartType,
    config: ComplexityConfig | None = None,
) -> ComplexityBounds:
    """Look up per-term complexity bounds for a slot."""
    config = config or ComplexityConfig()
    return config.purpose_bounds[purpose][part_type]


def get_complexity_budget(part_type: PartType, config: ComplexityConfig | None = None) -> float:
    """Whole-problem budget by presentation."""
    config = config or ComplexityConfig()
    return {
        PartType.ABACUS: config.use_abacus_budget,
        PartType.VISUALIZATION: config.visualization_budget,
        PartType.LINEAR: config.linear_budget,
    }[part_type]


def get_base_complexity(skill_id: str, config: ComplexityConfig | None = None) -> float:
    """Base cost of a skill; unknown categories get the default."""
    config = config or ComplexityConfig()
    parsed = parse_skill_id(skill_id)
    if parsed is None:
        return config.default_base_complexity
    return config.base_skill_complexity.get(parsed[0], config.default_base_complexity)


def base_term_cost(skill_ids: Iterable[str], config: ComplexityConfig | None = None) -> float:
    config = config or ComplexityConfig()
    return sum(get_base_complexity(sid, config) for sid in skill_ids)


class SkillCostCalculator:
    """
    Student-aware skill pricing.

    Usage:
        calculator = SkillCostCalculator(bkt_results, rotation_skill_ids=practicing)
        cost = calculator.calculate_term_cost(["fiveComplements.4=5-1"])
    """

    def __init__(
        self,
        bkt_results: dict[str, SkillBktResult] | None = None,
        rotation_skill_ids: Iterable[str] | None = None,
        config: ComplexityConfig | None = None,
        bkt_config: BktConfig | None = None,
    ):
        self.bkt_results = bkt_results or {}
        self.rotation_skill_ids = frozenset(rotation_skill_ids or ())
        self.config = config or ComplexityConfig()
        self.bkt_config = bkt_config or BktConfig()

    def multiplier_for(self, skill_id: str) -> float:
        result = self.bkt_results.get(skill_id)
        if result is not None and is_bkt_confident(result.confidence, self.bkt_config):
            return calculate_bkt_multiplier(result.p_known, self.bkt_config)
        if skill_id in self.rotation_skill_ids:
            return self.config.in_rotation_multiplier
        return self.config.out_of_rotation_multiplier

    def calculate_skill_cost(self, skill_id: str) -> float:
        return get_base_complexity(skill_id, self.config) * self.multiplier_for(skill_id)

    def calculate_term_cost(self, skill_ids: Iterable[str]) -> float:
        return sum(self.calculate_skill_cost(sid) for sid in skill_ids)

    def describe(self) -> dict[str, float]:
        """Multiplier per known skill, for debugging."""
        skill_ids = sorted(set(self.bkt_results) | self.rotation_skill_ids)
        multipliers = {sid: self.multiplier_for(sid) for sid in skill_ids}
        logger.debug(f"Skill cost multipliers: {multipliers}")
        return multipliers
