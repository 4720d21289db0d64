"""
Abacus Practice Engine.

Skill mastery estimation and session planning for abacus mental-arithmetic
practice.

Subpackages:
- core: skill catalogue, Bayesian Knowledge Tracing, problem/result types
- curriculum: configuration tables, comfort level, complexity budgets, readiness
- generation: bead-level skill detection and constraint-based problem generation
- delivery: session plans, retry epochs, session health, developer CLI
"""

__version__ = "1.0.0"
