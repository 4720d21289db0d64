"""
Session Modes.

A session is planned in one of three modes:
- remediation: some practicing skills are confidently weak and get targeted
- progression: everything is fine and a new skill is being introduced
- maintenance: everything is fine and there is nothing new to introduce
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..core.bkt import SkillBktResult, should_target_skill
from ..core.config import BktConfig


class SessionModeType(str, Enum):
    REMEDIATION = "remediation"
    PROGRESSION = "progression"
    MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class WeakSkillInfo:
    skill_id: str
    display_name: str
    p_known: float


@dataclass(frozen=True)
class RemediationMode:
    weak_skills: tuple[WeakSkillInfo, ...] = field(default_factory=tuple)
    focus_description: str = ""

    @property
    def type(self) -> SessionModeType:
        return SessionModeType.REMEDIATION


@dataclass(frozen=True)
class ProgressionMode:
    next_skill_id: str
    tutorial_required: bool = False
    focus_description: str = ""

    @property
    def type(self) -> SessionModeType:
        return SessionModeType.PROGRESSION


@dataclass(frozen=True)
class MaintenanceMode:
    skill_count: int = 0
    focus_description: str = ""

    @property
    def type(self) -> SessionModeType:
        return SessionModeType.MAINTENANCE


SessionMode = Union[RemediationMode, ProgressionMode, MaintenanceMode]


def is_remediation_mode(mode: SessionMode) -> bool:
    return isinstance(mode, RemediationMode)


def is_progression_mode(mode: SessionMode) -> bool:
    return isinstance(mode, ProgressionMode)


def is_maintenance_mode(mode: SessionMode) -> bool:
    return isinstance(mode, MaintenanceMode)


def get_weak_skill_ids(mode: SessionMode) -> list[str]:
    """Weak skill ids for remediation sessions, empty otherwise."""
    if isinstance(mode, RemediationMode):
        return [info.skill_id for info in mode.weak_skills]
    return []


def classify_session_mode(
    bkt_results: dict[str, SkillBktResult] | None,
    practicing_skill_ids: list[str],
    next_skill_id: str | None = None,
    tutorial_required: bool = False,
    config: BktConfig | None = None,
) -> SessionMode:
    """
    Pick the session mode from the practicing skills' BKT state.

    Confidently weak skills win over everything; otherwise an available next
    skill means progression, and anything else is maintenance.
    """
    bkt_results = bkt_results or {}
    weak = [
        WeakSkillInfo(skill_id=sid, display_name=sid.partition(".")[2] or sid, p_known=bkt_results[sid].p_known)
        for sid in practicing_skill_ids
        if sid in bkt_results
        and should_target_skill(bkt_results[sid].p_known, bkt_results[sid].confidence, config)
    ]
    if weak:
        weak.sort(key=lambda info: info.p_known)
        names = ", ".join(info.display_name for info in weak)
        return RemediationMode(weak_skills=tuple(weak), focus_description=f"Strengthening {names}")
    if next_skill_id is not None:
        return ProgressionMode(
            next_skill_id=next_skill_id,
            tutorial_required=tutorial_required,
            focus_description=f"Introducing {next_skill_id}",
        )
    return MaintenanceMode(
        skill_count=len(practicing_skill_ids),
        focus_description=f"Maintaining {len(practicing_skill_ids)} skills",
    )
