"""
Problem Generation.

Components:
- skill_analysis: bead-level skill detection, caller-owned step cache, traces
- problem_generator: constraint-based generation with diagnostics
"""

from .problem_generator import (
    GenerationDiagnostics,
    GenerationResult,
    NumberRange,
    ProblemConstraints,
    ProblemGenerationError,
    generate_single_problem,
    generate_single_problem_with_diagnostics,
    problem_matches_skills,
)
from .skill_analysis import StepSkillsCache, analyze_required_skills, analyze_step_skills

__all__ = [
    "GenerationDiagnostics",
    "GenerationResult",
    "NumberRange",
    "ProblemConstraints",
    "ProblemGenerationError",
    "generate_single_problem",
    "generate_single_problem_with_diagnostics",
    "problem_matches_skills",
    "StepSkillsCache",
    "analyze_required_skills",
    "analyze_step_skills",
]
