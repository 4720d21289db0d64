"""
Skill Catalogue.

Every abacus technique is identified by a dotted skill id ``category.key``
(e.g. ``basic.directAddition`` or ``fiveComplements.4=5-1``). Categories form a
closed set; each category enumerates its keys.

Design:
- SkillCategory: closed enum of technique families
- SkillSet: category -> {key -> enabled} mapping used for allowed/target/forbidden filters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


class SkillCategory(str, Enum):
    """Technique families on the soroban."""

    BASIC = "basic"
    FIVE_COMPLEMENTS = "fiveComplements"
    FIVE_COMPLEMENTS_SUB = "fiveComplementsSub"
    TEN_COMPLEMENTS = "tenComplements"
    TEN_COMPLEMENTS_SUB = "tenComplementsSub"
    ADVANCED = "advanced"

    @property
    def skill_keys(self) -> tuple[str, ...]:
        """All keys belonging to this category."""
        return SKILL_KEYS[self]

    @property
    def display_name(self) -> str:
        return {
            SkillCategory.BASIC: "Basic",
            SkillCategory.FIVE_COMPLEMENTS: "Five Complements",
            SkillCategory.FIVE_COMPLEMENTS_SUB: "Five Complements (Subtraction)",
            SkillCategory.TEN_COMPLEMENTS: "Ten Complements",
            SkillCategory.TEN_COMPLEMENTS_SUB: "Ten Complements (Subtraction)",
            SkillCategory.ADVANCED: "Advanced",
        }[self]


SKILL_KEYS: dict[SkillCategory, tuple[str, ...]] = {
    SkillCategory.BASIC: (
        "directAddition",
        "heavenBead",
        "simpleCombinations",
        "directSubtraction",
        "heavenBeadSubtraction",
        "simpleCombinationsSub",
    ),
    SkillCategory.FIVE_COMPLEMENTS: ("4=5-1", "3=5-2", "2=5-3", "1=5-4"),
    SkillCategory.FIVE_COMPLEMENTS_SUB: ("-4=-5+1", "-3=-5+2", "-2=-5+3", "-1=-5+4"),
    SkillCategory.TEN_COMPLEMENTS: tuple(f"{n}=10-{10 - n}" for n in range(9, 0, -1)),
    SkillCategory.TEN_COMPLEMENTS_SUB: tuple(f"-{n}=+{10 - n}-10" for n in range(9, 0, -1)),
    SkillCategory.ADVANCED: ("cascadingCarry", "cascadingBorrow"),
}

# Skills whose presence in an allowed set permits subtraction terms
SUBTRACTION_SKILL_IDS: frozenset[str] = frozenset(
    ["basic.directSubtraction", "basic.heavenBeadSubtraction", "basic.simpleCombinationsSub"]
    + [f"fiveComplementsSub.{k}" for k in SKILL_KEYS[SkillCategory.FIVE_COMPLEMENTS_SUB]]
    + [f"tenComplementsSub.{k}" for k in SKILL_KEYS[SkillCategory.TEN_COMPLEMENTS_SUB]]
    + ["advanced.cascadingBorrow"]
)


def skill_id(category: SkillCategory, key: str) -> str:
    """Build a dotted skill id."""
    return f"{category.value}.{key}"


def parse_skill_id(value: str) -> tuple[SkillCategory, str] | None:
    """
    Split a dotted skill id into (category, key).

    Returns None when the category is not part of the catalogue.
    """
    category_name, sep, key = value.partition(".")
    if not sep or not key:
        return None
    try:
        category = SkillCategory(category_name)
    except ValueError:
        return None
    return category, key


def all_skill_ids() -> list[str]:
    """Every skill id in catalogue order."""
    return [skill_id(category, key) for category in SkillCategory for key in category.skill_keys]


@dataclass
class SkillSet:
    """
    Enabled/disabled flags per skill.

    Partial sets are allowed: a category (or key) absent from ``skills`` is
    simply not enabled.
    """

    skills: dict[SkillCategory, dict[str, bool]] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls) -> SkillSet:
        """All categories present, every skill disabled."""
        return cls({category: {key: False for key in category.skill_keys} for category in SkillCategory})

    @classmethod
    def basic_addition(cls) -> SkillSet:
        """Direct addition, heaven bead and simple combinations only."""
        return cls.empty().enable(
            "basic.directAddition",
            "basic.heavenBead",
            "basic.simpleCombinations",
        )

    @classmethod
    def full(cls) -> SkillSet:
        """Every technique in the catalogue enabled."""
        return cls({category: {key: True for key in category.skill_keys} for category in SkillCategory})

    @classmethod
    def from_skill_ids(cls, skill_ids: Iterable[str]) -> SkillSet:
        """Build a set with exactly the given skills enabled (unknown ids ignored)."""
        return cls.empty().enable(*skill_ids)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_enabled(self, value: str) -> bool:
        """True when the skill's category is known and the flag is set."""
        parsed = parse_skill_id(value)
        if parsed is None:
            return False
        category, key = parsed
        return bool(self.skills.get(category, {}).get(key, False))

    def enabled_skill_ids(self) -> list[str]:
        return [
            skill_id(category, key)
            for category in SkillCategory
            for key, enabled in self.skills.get(category, {}).items()
            if enabled
        ]

    def has_any_enabled(self) -> bool:
        return any(enabled for keys in self.skills.values() for enabled in keys.values())

    def allows_subtraction(self) -> bool:
        """True when at least one subtraction-capable skill is enabled."""
        return any(self.is_enabled(sid) for sid in SUBTRACTION_SKILL_IDS)

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def enable(self, *skill_ids: str) -> SkillSet:
        """Return a copy with the given skills enabled."""
        return self._with_flags(skill_ids, True)

    def disable(self, *skill_ids: str) -> SkillSet:
        """Return a copy with the given skills disabled."""
        return self._with_flags(skill_ids, False)

    def _with_flags(self, skill_ids: Iterable[str], flag: bool) -> SkillSet:
        skills = {category: dict(keys) for category, keys in self.skills.items()}
        for value in skill_ids:
            parsed = parse_skill_id(value)
            if parsed is None:
                continue
            category, key = parsed
            if key not in category.skill_keys:
                continue
            skills.setdefault(category, {})[key] = flag
        return SkillSet(skills)
