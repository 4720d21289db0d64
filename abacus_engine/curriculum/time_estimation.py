"""
Time Estimation.

Sizes sessions from how fast the student actually works. Pace is measured
as seconds per term (SPT) over recent attempts:

    problem time = (terms x SPT + overhead) x part multiplier

Visualization (no abacus in hand) is slower than the abacus part; linear
problems are read left to right and go faster. Without enough history the
default SPT applies.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from ..core.config import TimeEstimationConfig
from ..core.problems import PartType, ProblemResultWithContext


@dataclass(frozen=True)
class TimeEstimationProfile:
    """A student's pace, or the default when history is too thin."""

    seconds_per_term: float
    seconds_per_problem: float
    sample_size: int
    is_default: bool


def _valid_results(
    results: Iterable[ProblemResultWithContext],
    config: TimeEstimationConfig,
) -> list[ProblemResultWithContext]:
    valid = [r for r in results if r.response_time_ms > 0 and r.problem.term_count > 0]
    valid.sort(key=lambda r: r.timestamp, reverse=True)
    return valid[: config.recent_window]


def _drop_outliers(values: list[float]) -> list[float]:
    """Tukey fences at 1.5 IQR."""
    if len(values) < 4:
        return values
    q1, _, q3 = statistics.quantiles(values, n=4)
    spread = 1.5 * (q3 - q1)
    kept = [v for v in values if q1 - spread <= v <= q3 + spread]
    return kept or values


def calculate_seconds_per_term(
    results: Iterable[ProblemResultWithContext],
    config: TimeEstimationConfig | None = None,
    min_results: int | None = None,
    exclude_outliers: bool | None = None,
) -> float | None:
    """
    Average seconds per term over the newest results.

    Args:
        results: Attempt history; zero response times are ignored
        config: Time-estimation configuration
        min_results: Results required before an estimate is made
        exclude_outliers: Drop outliers (only with enough results)

    Returns:
        SPT clamped to the configured range, or None without enough data
    """
    config = config or TimeEstimationConfig()
    min_results = config.min_results if min_results is None else min_results
    exclude_outliers = config.exclude_outliers if exclude_outliers is None else exclude_outliers

    valid = _valid_results(results, config)
    if not valid or len(valid) < min_results:
        return None

    values = [r.seconds_per_term for r in valid]
    if exclude_outliers and len(values) >= config.outlier_min_results:
        values = _drop_outliers(values)

    spt = statistics.fmean(values)
    return min(config.max_seconds_per_term, max(config.min_seconds_per_term, spt))


def estimate_problem_time_ms(
    term_count: float,
    seconds_per_term: float,
    part_type: PartType | None = None,
    config: TimeEstimationConfig | None = None,
) -> float:
    config = config or TimeEstimationConfig()
    multiplier = config.part_multipliers.get(part_type, 1.0) if part_type else 1.0
    return (term_count * seconds_per_term + config.overhead_seconds) * multiplier * 1000


def estimate_problem_time_seconds(
    term_count: float,
    seconds_per_term: float,
    part_type: PartType | None = None,
    config: TimeEstimationConfig | None = None,
) -> float:
    return estimate_problem_time_ms(term_count, seconds_per_term, part_type, config) / 1000


def estimate_session_problem_count(
    duration_minutes: float,
    term_count: float | None = None,
    seconds_per_term: float | None = None,
    part_type: PartType | None = None,
    config: TimeEstimationConfig | None = None,
    min_problems: int | None = None,
) -> int:
    """Problems that fit in the given minutes, never fewer than the minimum."""
    config = config or TimeEstimationConfig()
    term_count = term_count or config.default_terms_per_problem
    seconds_per_term = seconds_per_term or config.default_seconds_per_term
    min_problems = config.min_problems_per_part if min_problems is None else min_problems

    per_problem = estimate_problem_time_seconds(term_count, seconds_per_term, part_type, config)
    return max(min_problems, round(duration_minutes * 60 / per_problem))


def estimate_session_duration_minutes(
    problem_count: int,
    term_count: float | None = None,
    seconds_per_term: float | None = None,
    part_type: PartType | None = None,
    config: TimeEstimationConfig | None = None,
) -> float:
    config = config or TimeEstimationConfig()
    term_count = term_count or config.default_terms_per_problem
    seconds_per_term = seconds_per_term or config.default_seconds_per_term
    return problem_count * estimate_problem_time_seconds(term_count, seconds_per_term, part_type, config) / 60


def convert_spt_to_seconds_per_problem(
    seconds_per_term: float,
    term_count: int | None = None,
    config: TimeEstimationConfig | None = None,
) -> float:
    config = config or TimeEstimationConfig()
    term_count = term_count or config.default_terms_per_problem
    return seconds_per_term * term_count + config.overhead_seconds


def convert_seconds_per_problem_to_spt(
    seconds_per_problem: float,
    term_count: int | None = None,
    config: TimeEstimationConfig | None = None,
) -> float:
    """Inverse of convert_spt_to_seconds_per_problem, floored at 0."""
    config = config or TimeEstimationConfig()
    term_count = term_count or config.default_terms_per_problem
    return max(0.0, (seconds_per_problem - config.overhead_seconds) / term_count)


def get_time_estimation_profile(
    results: Iterable[ProblemResultWithContext],
    config: TimeEstimationConfig | None = None,
) -> TimeEstimationProfile:
    """Measured pace when the history allows it, the default otherwise."""
    config = config or TimeEstimationConfig()
    results = list(results)
    sample_size = len(_valid_results(results, config))
    spt = calculate_seconds_per_term(results, config)

    is_default = spt is None
    if is_default:
        spt = config.default_seconds_per_term
    profile = TimeEstimationProfile(
        seconds_per_term=spt,
        seconds_per_problem=convert_spt_to_seconds_per_problem(spt, config=config),
        sample_size=sample_size,
        is_default=is_default,
    )
    logger.debug(
        f"Time profile: {profile.seconds_per_term:.1f}s/term over {sample_size} results"
        f"{' (default)' if is_default else ''}"
    )
    return profile
