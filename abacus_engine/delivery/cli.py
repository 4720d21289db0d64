"""
Abacus Engine CLI.

A Rich terminal front end for the practice engine.

Commands:
- abacus-engine skills    - List the skill catalogue
- abacus-engine generate  - Generate one problem and show its trace
- abacus-engine classify  - Classify a BKT estimate
- abacus-engine plan      - Build a session plan
- abacus-engine simulate  - Play a plan with simulated answers
"""
from __future__ import annotations

import random
import sys
from datetime import UTC, datetime, timedelta
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings

from ..core.bkt import calculate_bkt_multiplier, classify_skill
from ..core.problems import GeneratedProblem
from ..core.skills import SkillCategory, SkillSet, all_skill_ids, parse_skill_id
from ..generation.problem_generator import (
    NumberRange,
    ProblemConstraints,
    explain_generation_failure,
    generate_single_problem_with_diagnostics,
    validate_constraints,
)
from ..generation.skill_analysis import StepSkillsCache
from .health import HealthStatus, calculate_session_health
from .planner import build_session_plan
from .retry import get_current_problem_info, record_answer
from .session_plan import SessionPlan, approve_plan, get_session_plan_accuracy, start_plan


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="abacus-engine",
    help="Abacus practice engine: problems, mastery and session plans",
    no_args_is_help=True,
)
console = Console()


STYLES = {
    "weak": "bold red",
    "developing": "bold yellow",
    "strong": "bold green",
    "health": {
        HealthStatus.GOOD: "green",
        HealthStatus.WARNING: "yellow",
        HealthStatus.STRUGGLING: "red",
    },
}


# =============================================================================
# Helpers
# =============================================================================

def _resolve_skills(preset: str, skill_ids: Optional[str]) -> SkillSet:
    """Build a skill set from a preset name or a comma-separated id list."""
    if skill_ids:
        ids = [s.strip() for s in skill_ids.split(",") if s.strip()]
        unknown = [s for s in ids if parse_skill_id(s) is None]
        if unknown:
            console.print(f"[red]Unknown skill ids: {', '.join(unknown)}[/red]")
            raise typer.Exit(1)
        return SkillSet.from_skill_ids(ids)
    if preset == "basic":
        return SkillSet.basic_addition()
    if preset == "full":
        return SkillSet.full()
    console.print(f"[red]Unknown preset '{preset}' (use basic or full)[/red]")
    raise typer.Exit(1)


def display_trace(problem: GeneratedProblem) -> None:
    """Show a problem's step-by-step abacus trace."""
    console.print(Panel(
        f"[bold]{problem.to_display()}[/bold]",
        title="Problem",
        title_align="left",
        border_style="cyan",
    ))
    trace = problem.generation_trace
    if trace is None:
        return

    table = Table(title="Trace")
    table.add_column("#", justify="right")
    table.add_column("Operation")
    table.add_column("Skills")
    table.add_column("Cost", justify="right")
    for step in trace.steps:
        cost = "-" if step.complexity_cost is None else f"{step.complexity_cost:g}"
        table.add_row(str(step.step_number), step.operation, ", ".join(step.skills_used) or "[dim]none[/dim]", cost)
    console.print(table)

    if trace.total_complexity_cost is not None:
        console.print(f"[dim]Total complexity: {trace.total_complexity_cost:g}[/dim]")


def display_plan(plan: SessionPlan) -> None:
    table = Table(title=f"Session plan {plan.id[:8]}")
    table.add_column("Part")
    table.add_column("Slot", justify="right")
    table.add_column("Purpose")
    table.add_column("Terms")
    table.add_column("Problem")
    for part in plan.parts:
        for slot in part.slots:
            term_count = slot.constraints.term_count
            table.add_row(
                f"{part.part_number} {part.type.value}",
                str(slot.index),
                slot.purpose.value,
                f"{term_count.min}-{term_count.max}",
                slot.problem.to_display() if slot.problem else "[dim]-[/dim]",
            )
    console.print(table)
    console.print(
        f"Mode: [bold]{plan.session_mode}[/bold]  |  "
        f"Comfort: {plan.comfort_level:.2f}  |  "
        f"Problems: {plan.estimated_problem_count}"
    )


# =============================================================================
# Commands
# =============================================================================

@app.command()
def skills() -> None:
    """List the skill catalogue."""
    table = Table()
    table.add_column("Category")
    table.add_column("Skill id")
    for skill in all_skill_ids():
        category, _ = parse_skill_id(skill)
        table.add_row(category.display_name, skill)
    console.print(table)
    console.print(f"[dim]{len(SkillCategory)} categories[/dim]")


@app.command()
def generate(
    min_terms: int = typer.Option(3, "--min-terms", help="Fewest terms"),
    max_terms: int = typer.Option(5, "--max-terms", help="Most terms"),
    min_value: int = typer.Option(1, "--min-value", help="Smallest term magnitude"),
    max_value: int = typer.Option(9, "--max-value", help="Largest term magnitude"),
    min_sum: Optional[int] = typer.Option(None, "--min-sum", help="Smallest allowed answer"),
    max_sum: Optional[int] = typer.Option(None, "--max-sum", help="Largest allowed answer"),
    max_complexity: Optional[float] = typer.Option(None, "--max-complexity", help="Per-term cost ceiling"),
    min_complexity: Optional[float] = typer.Option(None, "--min-complexity", help="Per-term cost floor"),
    preset: str = typer.Option("basic", "--preset", "-p", help="Skill preset: basic or full"),
    skill_ids: Optional[str] = typer.Option(None, "--skills", "-s", help="Comma-separated skill ids"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Comma-separated target skill ids"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """Generate one problem and show its trace."""
    settings = get_settings()
    engine_config = settings.to_engine_config()
    allowed = _resolve_skills(preset, skill_ids)
    target_skills = _resolve_skills(preset, target) if target else None

    constraints = ProblemConstraints(
        number_range=NumberRange(min_value, max_value),
        min_terms=min_terms,
        max_terms=max_terms,
        min_sum=min_sum,
        max_sum=max_sum,
        min_complexity_per_term=min_complexity,
        max_complexity_per_term=max_complexity,
    )
    validation = validate_constraints(constraints, allowed)
    for warning in validation.warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    if not validation.is_valid:
        for error in validation.errors:
            console.print(f"[red]{error}[/red]")
        raise typer.Exit(1)

    result = generate_single_problem_with_diagnostics(
        constraints,
        allowed,
        target_skills,
        rng=random.Random(seed),
        config=engine_config.generation,
        complexity_config=engine_config.complexity,
    )
    if result.problem is None:
        console.print(f"[red]{explain_generation_failure(result.diagnostics)}[/red]")
        console.print(f"[dim]{result.diagnostics.summary()}[/dim]")
        raise typer.Exit(1)

    display_trace(result.problem)
    console.print(f"[dim]{result.diagnostics.summary()}[/dim]")


@app.command()
def classify(
    p_known: float = typer.Argument(..., help="Probability the skill is known"),
    confidence: float = typer.Argument(..., help="Confidence in the estimate"),
) -> None:
    """Classify a BKT estimate and show its cost multiplier."""
    bkt_config = get_settings().to_engine_config().bkt
    classification = classify_skill(p_known, confidence, bkt_config)
    if classification is None:
        label = "[dim]insufficient data[/dim]"
    else:
        style = STYLES[classification.value]
        label = f"[{style}]{classification.value}[/{style}]"

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Classification", label)
    table.add_row("Cost multiplier", f"{calculate_bkt_multiplier(p_known, bkt_config):.2f}")
    console.print(table)


@app.command()
def plan(
    minutes: Optional[float] = typer.Option(None, "--minutes", "-m", help="Session length in minutes"),
    preset: str = typer.Option("basic", "--preset", "-p", help="Skill preset: basic or full"),
    skill_ids: Optional[str] = typer.Option(None, "--skills", "-s", help="Comma-separated skill ids"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    player: str = typer.Option("student", "--player", help="Player id"),
) -> None:
    """Build and show a session plan."""
    settings = get_settings()
    practicing = _resolve_skills(preset, skill_ids).enabled_skill_ids()
    session = build_session_plan(
        player,
        minutes or settings.default_session_minutes,
        practicing,
        rng=random.Random(seed),
        config=settings.to_engine_config(),
    )
    display_plan(session)


@app.command()
def simulate(
    accuracy: float = typer.Option(0.8, "--accuracy", "-a", help="Chance each answer is correct"),
    minutes: Optional[float] = typer.Option(None, "--minutes", "-m", help="Session length in minutes"),
    preset: str = typer.Option("basic", "--preset", "-p", help="Skill preset: basic or full"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """Play a plan to completion with simulated answers, retries included."""
    settings = get_settings()
    engine_config = settings.to_engine_config()
    rng = random.Random(seed)
    practicing = _resolve_skills(preset, None).enabled_skill_ids()

    session = build_session_plan(
        "simulated",
        minutes or settings.default_session_minutes,
        practicing,
        rng=rng,
        cache=StepSkillsCache(),
        config=engine_config,
    )
    clock = datetime.now(UTC)
    session = start_plan(approve_plan(session, clock), clock)

    answered = 0
    while (info := get_current_problem_info(session)) is not None:
        correct = rng.random() < accuracy
        answer = info.problem.answer if correct else info.problem.answer + 1
        response_ms = rng.uniform(0.5, 1.5) * session.avg_time_per_problem_seconds * 1000
        clock += timedelta(milliseconds=response_ms)
        session = record_answer(session, answer, response_ms, clock, config=engine_config.retry)
        answered += 1

    elapsed_ms = (clock - session.started_at).total_seconds() * 1000
    health = calculate_session_health(session, elapsed_ms, engine_config.health)
    color = STYLES["health"][health.overall]
    retries = sum(1 for r in session.results if r.is_retry)

    console.print(Panel(
        f"[bold]Session {session.status.value}[/bold]\n\n"
        f"Answers: {answered} ({retries} retries)\n"
        f"Accuracy: {get_session_plan_accuracy(session) * 100:.1f}%\n"
        f"Pace: {health.pace_percent:.0f}%\n"
        f"Health: [{color}]{health.overall.value}[/{color}]",
        title="Summary",
        border_style=color,
    ))


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB")

    app()


if __name__ == "__main__":
    main()
