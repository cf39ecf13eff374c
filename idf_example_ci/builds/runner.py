"""Build runner for executing the external build tool.

This module handles:
- Composing the CI build environment (strict warnings, batch mode)
- Executing the build tool inside a workspace with subprocess
- Appending combined stdout/stderr to a per-variant log file
- Finalizing a successful build (download.config, success marker)
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from idf_example_ci.builds.workspace import Workspace
from idf_example_ci.errors import BuildExecutionError

if TYPE_CHECKING:
    from idf_example_ci.config import Settings

logger = logging.getLogger(__name__)

# Placeholder broker URLs so protocol examples configure without secrets
BROKER_PLACEHOLDER_URL = "https://www.espressif.com/"
BROKER_URL_VARIABLES = [
    "EXAMPLE_MQTT_BROKER_CERTIFICATE",
    "EXAMPLE_MQTT_BROKER_WS",
    "EXAMPLE_MQTT_BROKER_WSS",
    "EXAMPLE_MQTT_BROKER_SSL",
    "EXAMPLE_MQTT_BROKER_TCP",
]

FLASH_PROJECT_ARGS = "flash_project_args"
DOWNLOAD_CONFIG = "download.config"


@dataclass
class ToolResult:
    """Result of one build tool invocation.

    Attributes:
        success: Whether the tool exited with status 0.
        exit_code: Process exit code.
        log_path: Per-variant log file the output was appended to.
        command: The command that was executed.
        started_at: Start time.
        finished_at: Finish time.
    """

    success: bool
    exit_code: int
    log_path: Path
    command: str
    started_at: datetime
    finished_at: datetime


def compose_build_env(settings: Settings) -> dict[str, str]:
    """Compose environment overrides for the build tool.

    Args:
        settings: Application settings.

    Returns:
        Environment variables to set on top of the current environment.
    """
    env: dict[str, str] = {
        "BATCH_BUILD": "1",
        # only build verbose if there's an error
        "V": "0",
        "IDF_CI_BUILD": "1",
        "EXTRA_CFLAGS": settings.extra_cflags,
        "EXTRA_CXXFLAGS": settings.extra_cflags,
    }
    for name in BROKER_URL_VARIABLES:
        env[name] = BROKER_PLACEHOLDER_URL

    if settings.idf_path is not None:
        tools_dir = str(settings.idf_path / "tools")
        env["PATH"] = os.pathsep.join([tools_dir, os.environ.get("PATH", "")])

    env.update(settings.extra_env)
    return env


def variant_log_path(log_dir: Path, variant_name: str) -> Path:
    """Return the per-variant log file path."""
    return log_dir / f"ex_{variant_name}_log.txt"


def run_build_tool(
    command: list[str],
    workspace: Path,
    log_path: Path,
    env_override: dict[str, str] | None = None,
    timeout: int | None = None,
) -> ToolResult:
    """Run the build tool inside a workspace.

    Output is appended to log_path; earlier content is kept.

    Args:
        command: Command as a list of arguments.
        workspace: Working directory for the build.
        log_path: Per-variant log file.
        env_override: Optional environment variable overrides.
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        ToolResult with execution details.

    Raises:
        BuildExecutionError: If the tool cannot be started or times out.
    """
    cmd_str = shlex.join(command)
    logger.info("Executing build: %s", cmd_str)
    logger.debug("Working directory: %s", workspace)

    env: dict[str, str] | None = None
    if env_override:
        env = dict(os.environ)
        env.update(env_override)

    log_path.parent.mkdir(parents=True, exist_ok=True)
    started_at = datetime.now(timezone.utc)

    try:
        with log_path.open("ab") as log_file:
            result = subprocess.run(
                command,
                cwd=workspace,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                env=env,
                check=False,
            )
    except subprocess.TimeoutExpired as e:
        message = f"Build timed out after {timeout} seconds"
        logger.error("%s. See log: %s", message, log_path)
        raise BuildExecutionError(message, exit_code=-1, code="build_timeout") from e
    except OSError as e:
        message = f"Failed to execute build: {e}"
        logger.error(message)
        raise BuildExecutionError(message, code="execution_error") from e

    finished_at = datetime.now(timezone.utc)
    exit_code = result.returncode
    if exit_code != 0:
        logger.error("Build failed with exit code %d. See log: %s", exit_code, log_path)

    return ToolResult(
        success=exit_code == 0,
        exit_code=exit_code,
        log_path=log_path,
        command=cmd_str,
        started_at=started_at,
        finished_at=finished_at,
    )


def finalize_success(workspace: Workspace) -> None:
    """Record a successful build in the workspace.

    Copies ``flash_project_args`` to the backwards-compatible
    ``download.config`` name, then writes the success marker.

    Args:
        workspace: Workspace handle.

    Raises:
        BuildExecutionError: If the build left no flash_project_args.
    """
    source = workspace.build_dir / FLASH_PROJECT_ARGS
    try:
        shutil.copyfile(source, workspace.build_dir / DOWNLOAD_CONFIG)
        workspace.marker.touch()
    except OSError as e:
        raise BuildExecutionError(
            f"Build output incomplete in {workspace.build_dir}: {e}",
            exit_code=1,
            code="missing_output",
        ) from e


__all__ = [
    "BROKER_PLACEHOLDER_URL",
    "BROKER_URL_VARIABLES",
    "DOWNLOAD_CONFIG",
    "FLASH_PROJECT_ARGS",
    "ToolResult",
    "compose_build_env",
    "finalize_success",
    "run_build_tool",
    "variant_log_path",
]
