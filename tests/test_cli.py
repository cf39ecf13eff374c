"""Tests for the CLI.

These tests drive the Typer app with CliRunner. Builds use the fake
build tool from conftest.py, configured through environment variables.
"""

import json
import shlex
import sys

import pytest
from typer.testing import CliRunner

from idf_example_ci import __version__
from idf_example_ci.cli import app

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, idf_root, fake_tool, tool_counter):
    """Environment pointing the CLI at the temporary IDF tree."""
    return {
        "IDF_PATH": str(idf_root),
        "LOG_PATH": str(tmp_path / "logs"),
        "IDF_CI_BUILDS_DIR": str(tmp_path / "out" / "example_builds"),
        "IDF_CI_BUILD_COMMAND": shlex.join([sys.executable, str(fake_tool)]),
        "IDF_CI_EXTRA_ENV": json.dumps({"FAKE_TOOL_COUNTER": str(tool_counter)}),
        "IDF_CI_MIN_EXAMPLES": "0",
        "IDF_CI_ECHO_LOGS": "false",
    }


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "IDF example CI builds" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        """CLI -V should print version and exit 0."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """CLI with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage:" in result.output


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self, cli_env) -> None:
        """CLI config should show configuration."""
        result = runner.invoke(app, ["config"], env=cli_env)
        assert result.exit_code == 0
        assert "Paths:" in result.stdout
        assert "Build command" in result.stdout
        assert "Issues exit code" in result.stdout

    def test_config_json(self, cli_env) -> None:
        """CLI config --json should output JSON."""
        result = runner.invoke(app, ["config", "--json"], env=cli_env)
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["idf_path"] == cli_env["IDF_PATH"]
        assert parsed["min_examples"] == 0

    def test_invalid_log_level(self, cli_env) -> None:
        """An unknown --log-level should fail."""
        result = runner.invoke(app, ["--log-level", "LOUD", "config"], env=cli_env)
        assert result.exit_code == 1


class TestCLIPlan:
    """Test CLI plan command."""

    def test_plan_json(self, cli_env, idf_root, make_example) -> None:
        """plan --json should list the examples owned by the job."""
        for i in range(5):
            make_example(f"group/ex{i}")
        (idf_root / ".gitlab-ci.yml").write_text("nightly_0:\nnightly_1:\n")

        result = runner.invoke(app, ["plan", "nightly_1", "--json"], env=cli_env)

        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["start"] == 3
        assert parsed["end"] == 6
        assert [e["name"] for e in parsed["examples"]] == ["ex3", "ex4"]

    def test_plan_all(self, cli_env, make_example) -> None:
        """plan without a job name should include every example."""
        make_example("group/ex0")

        result = runner.invoke(app, ["plan"], env=cli_env)

        assert result.exit_code == 0
        assert "ex0" in result.stdout

    def test_plan_out_of_range(self, cli_env, idf_root, make_example) -> None:
        """plan should say when a job owns no examples."""
        make_example("group/ex0")
        (idf_root / ".gitlab-ci.yml").write_text("nightly_0:\n")

        result = runner.invoke(app, ["plan", "nightly_4"], env=cli_env)

        assert result.exit_code == 0
        assert "No examples in range" in result.stdout

    def test_plan_bad_job_name(self, cli_env) -> None:
        """plan should fail on a malformed job name."""
        result = runner.invoke(app, ["plan", "nightly"], env=cli_env)
        assert result.exit_code == 1


class TestCLIBuild:
    """Test CLI build command."""

    def test_build_success(self, cli_env, make_example, invocations) -> None:
        """A clean build should exit 0."""
        make_example("get-started/blink")

        result = runner.invoke(app, ["build"], env=cli_env)

        assert result.exit_code == 0
        assert "Return code = 0" in result.stdout
        assert "None" in result.stdout
        assert len(invocations()) == 1

    def test_build_rerun_skips(self, cli_env, make_example, invocations) -> None:
        """A second build should skip finished variants."""
        make_example("get-started/blink")
        runner.invoke(app, ["build"], env=cli_env)

        result = runner.invoke(app, ["build"], env=cli_env)

        assert result.exit_code == 0
        assert "already built" in result.stdout
        assert len(invocations()) == 1

    def test_build_issues_exit_code(self, cli_env, make_example) -> None:
        """Warnings in logs should exit with the issues code."""
        make_example("get-started/blink", defaults="CONFIG_WARN=y\n")

        result = runner.invoke(app, ["build"], env=cli_env)

        assert result.exit_code == 22
        assert "Return code = 22" in result.stdout

    def test_build_failure_exit_code(self, cli_env, make_example) -> None:
        """A failed build should exit with the build tool's code."""
        make_example("get-started/broken", sdkconfig_ci="CONFIG_FAIL_BUILD=y\n")

        result = runner.invoke(app, ["build"], env=cli_env)

        assert result.exit_code == 2
        assert "broken" in result.stdout

    def test_build_echoes_logs(self, cli_env, make_example) -> None:
        """With echo enabled the variant log should be printed."""
        make_example("get-started/blink")
        env = dict(cli_env, IDF_CI_ECHO_LOGS="true")

        result = runner.invoke(app, ["build"], env=env)

        assert result.exit_code == 0
        assert "Project build complete." in result.stdout

    def test_build_missing_idf_path(self, cli_env) -> None:
        """Missing IDF_PATH should abort with exit code 1."""
        env = dict(cli_env, IDF_PATH=None)

        result = runner.invoke(app, ["build"], env=env)

        assert result.exit_code == 1
        assert "IDF_PATH is not set" in result.output
