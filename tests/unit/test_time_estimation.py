"""
Unit tests for history-driven time estimation.
"""

import pytest

from abacus_engine.core.config import TimeEstimationConfig
from abacus_engine.core.problems import PartType
from abacus_engine.curriculum.time_estimation import (
    calculate_seconds_per_term,
    convert_seconds_per_problem_to_spt,
    convert_spt_to_seconds_per_problem,
    estimate_problem_time_ms,
    estimate_problem_time_seconds,
    estimate_session_duration_minutes,
    estimate_session_problem_count,
    get_time_estimation_profile,
)

DEFAULTS = TimeEstimationConfig()


@pytest.fixture
def timed(make_result):
    """Results of three terms each answered in ``ms`` milliseconds."""

    def _make(ms, count, start=0):
        return [make_result(minutes=start + i, response_time_ms=ms, terms=(1, 2, 3)) for i in range(count)]

    return _make


class TestSecondsPerTerm:
    def test_insufficient_results(self, timed):
        assert calculate_seconds_per_term(timed(3000, 1)) is None

    def test_average(self, timed):
        # 15 s over 3 terms
        assert calculate_seconds_per_term(timed(15000, 5)) == pytest.approx(5.0)

    def test_clamps_to_minimum(self, timed):
        assert calculate_seconds_per_term(timed(300, 5)) == DEFAULTS.min_seconds_per_term

    def test_clamps_to_maximum(self, timed):
        assert calculate_seconds_per_term(timed(300_000, 5)) == DEFAULTS.max_seconds_per_term

    def test_zero_response_times_ignored(self, timed):
        results = timed(15000, 4) + timed(0, 3, start=10)
        assert calculate_seconds_per_term(results) is None
        assert calculate_seconds_per_term(results + timed(15000, 1, start=20)) == pytest.approx(5.0)

    def test_custom_min_results(self, timed):
        results = timed(27000, 3)
        assert calculate_seconds_per_term(results, min_results=3) == pytest.approx(9.0)
        assert calculate_seconds_per_term(results, min_results=5) is None

    def test_outlier_excluded_with_enough_results(self, timed):
        results = timed(9000, 12) + timed(900_000, 1, start=50)
        with_outlier = calculate_seconds_per_term(results, exclude_outliers=False)
        without_outlier = calculate_seconds_per_term(results, exclude_outliers=True)
        assert without_outlier == pytest.approx(3.0)
        assert without_outlier < with_outlier

    def test_outliers_kept_below_threshold(self, timed):
        results = timed(15000, 8) + timed(90_000, 1, start=50)
        # 9 results: (8 * 5 + 30) / 9
        assert calculate_seconds_per_term(results) == pytest.approx(70 / 9)

    def test_only_newest_window(self, timed):
        config = TimeEstimationConfig(recent_window=5)
        results = timed(90_000, 5) + timed(15000, 5, start=100)
        assert calculate_seconds_per_term(results, config) == pytest.approx(5.0)


class TestProblemTime:
    def test_terms_times_spt_plus_overhead(self):
        assert estimate_problem_time_ms(3, 5) == 17000

    def test_visualization_is_slower(self):
        assert estimate_problem_time_ms(3, 5, PartType.VISUALIZATION) > estimate_problem_time_ms(3, 5)

    def test_linear_is_faster(self):
        assert estimate_problem_time_ms(3, 5, PartType.LINEAR) < estimate_problem_time_ms(3, 5, PartType.ABACUS)

    def test_seconds(self):
        assert estimate_problem_time_seconds(2, 5) == estimate_problem_time_ms(2, 5) / 1000


class TestSessionEstimates:
    def test_problem_count(self):
        # 300 s / (3 * 8 + 2) s
        assert estimate_session_problem_count(5) == 12

    def test_minimum_problems(self):
        assert estimate_session_problem_count(0.01) == DEFAULTS.min_problems_per_part
        assert estimate_session_problem_count(0.01, min_problems=1) == 1

    def test_visualization_fits_fewer(self):
        assert estimate_session_problem_count(10, 3, 8, PartType.VISUALIZATION) < estimate_session_problem_count(
            10, 3, 8
        )

    def test_duration_inverts_count(self):
        count = estimate_session_problem_count(5)
        assert 4 <= estimate_session_duration_minutes(count) <= 6

    def test_spt_conversions(self):
        assert convert_spt_to_seconds_per_problem(5) == 17
        assert convert_spt_to_seconds_per_problem(5, 5) == 27
        assert convert_seconds_per_problem_to_spt(convert_spt_to_seconds_per_problem(6)) == pytest.approx(6)
        assert convert_seconds_per_problem_to_spt(1) == 0.0


class TestProfile:
    def test_default_without_history(self):
        profile = get_time_estimation_profile([])
        assert profile.is_default
        assert profile.seconds_per_term == DEFAULTS.default_seconds_per_term
        assert profile.sample_size == 0

    def test_measured_with_history(self, timed):
        profile = get_time_estimation_profile(timed(30000, 10))
        assert not profile.is_default
        assert profile.sample_size == 10
        assert profile.seconds_per_term == pytest.approx(10.0)
        assert profile.seconds_per_problem == pytest.approx(32.0)
