"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(command: str, timeout: int = 60) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m abacus_engine.delivery')
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f"{sys.executable} -m abacus_engine.delivery {command}"

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["skills", "generate", "classify", "plan", "simulate"])
    def test_command_help(self, command):
        code, stdout, stderr = run_cli_command(f"{command} --help")

        assert code == 0, f"{command} help failed: {stderr}"


class TestCLISkills:
    def test_lists_catalogue(self):
        code, stdout, stderr = run_cli_command("skills")

        assert code == 0, f"Skills failed: {stderr}"
        assert "basic.directAddition" in stdout


class TestCLIGenerate:
    def test_generate_with_seed(self):
        code, stdout, stderr = run_cli_command("generate --seed 1 --preset full")

        assert code == 0, f"Generate failed: {stderr}"
        assert "Problem" in stdout
        assert "attempts" in stdout

    def test_infeasible_constraints_exit_nonzero(self):
        code, stdout, stderr = run_cli_command(
            "generate --min-terms 3 --max-terms 3 --max-value 3 --max-sum 1"
        )

        assert code == 1
        assert "cannot sum" in stdout

    def test_unknown_skill_rejected(self):
        code, stdout, stderr = run_cli_command("generate --skills bogus.skill")

        assert code == 1


class TestCLIClassify:
    def test_low_confidence(self):
        code, stdout, stderr = run_cli_command("classify 0.9 0.1")

        assert code == 0, f"Classify failed: {stderr}"
        assert "insufficient data" in stdout

    def test_strong(self):
        code, stdout, stderr = run_cli_command("classify 0.8 0.5")

        assert code == 0, f"Classify failed: {stderr}"
        assert "strong" in stdout


class TestCLIPlan:
    def test_plan_runs(self):
        code, stdout, stderr = run_cli_command("plan --minutes 3 --preset full --seed 4")

        assert code == 0, f"Plan failed: {stderr}"
        assert "maintenance" in stdout

    def test_simulate_runs(self):
        code, stdout, stderr = run_cli_command("simulate --minutes 3 --seed 2 --accuracy 0.7")

        assert code == 0, f"Simulate failed: {stderr}"
        assert "Session completed" in stdout
