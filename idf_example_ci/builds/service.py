"""Build service module.

This module provides the high-level build API:
- plan_run(): discover examples and compute this job's range
- build_example(): cache-aware build of every variant of one example
- build_range(): build the examples in a range and reach a verdict
- run_ci_build(): main entry point for one job instance

Run state (failed examples, result code) lives in a RunResult that is
threaded through the loop and returned, never in module globals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from idf_example_ci.builds.logscan import (
    SUSPECT_LOG_NAME,
    append_suspects,
    collect_issues,
    scan_log,
)
from idf_example_ci.builds.runner import (
    compose_build_env,
    finalize_success,
    run_build_tool,
    variant_log_path,
)
from idf_example_ci.builds.variants import expand_variants
from idf_example_ci.builds.workspace import (
    is_built,
    materialize_workspace,
    prepare_workspace,
)
from idf_example_ci.config import Settings, get_settings
from idf_example_ci.errors import BuildExecutionError, ConfigurationError, WorkspaceError
from idf_example_ci.examples.discovery import discover_examples, example_name
from idf_example_ci.jobs.partition import plan_job
from idf_example_ci.types import (
    BuildOutcome,
    BuildVariant,
    PartitionRange,
    RunResult,
    VariantResult,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[VariantResult], None]


def _append_log_note(log_path: Path, message: str) -> None:
    """Append an orchestration note to a variant log."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(f"\n# {message}\n")


def build_variant(
    variant: BuildVariant,
    example_dir: Path,
    settings: Settings,
    log_dir: Path,
    env: dict[str, str],
) -> VariantResult:
    """Build one variant unless its success marker already exists.

    Args:
        variant: Variant to build.
        example_dir: Example source directory.
        settings: Application settings.
        log_dir: Directory for per-variant logs.
        env: Environment overrides for the build tool.

    Returns:
        VariantResult; failures are reported, not raised.
    """
    workspace_dir = settings.builds_dir / variant.name

    if is_built(workspace_dir):
        logger.info("Project %s has been built and skip building ...", variant.name)
        return VariantResult(
            variant=variant,
            outcome=BuildOutcome.SKIPPED,
            workspace=workspace_dir,
        )

    logger.info("Building %s...", variant.name)
    log_path = variant_log_path(log_dir, variant.name)
    log_path.touch()

    try:
        workspace = materialize_workspace(example_dir, workspace_dir, variant.overlay_file)
        prepare_workspace(workspace, variant.item_name)
        tool = run_build_tool(
            settings.build_argv(),
            workspace.root,
            log_path,
            env_override=env,
            timeout=settings.build_timeout,
        )
        if not tool.success:
            exit_code = tool.exit_code
            if exit_code < 0:
                # killed by a signal: report it the way a shell does
                exit_code = 128 - exit_code
            return VariantResult(
                variant=variant,
                outcome=BuildOutcome.FAILED,
                workspace=workspace_dir,
                exit_code=exit_code,
                log_path=log_path,
                error_message=f"Build failed with exit code {tool.exit_code}",
            )
        finalize_success(workspace)
    except (WorkspaceError, BuildExecutionError) as e:
        exit_code = getattr(e, "exit_code", None)
        if not exit_code or exit_code < 0:
            exit_code = 1
        logger.error("Variant %s failed (%s): %s", variant.name, e.code, e)
        _append_log_note(log_path, str(e))
        return VariantResult(
            variant=variant,
            outcome=BuildOutcome.FAILED,
            workspace=workspace_dir,
            exit_code=exit_code,
            log_path=log_path,
            error_message=str(e),
        )

    return VariantResult(
        variant=variant,
        outcome=BuildOutcome.SUCCEEDED,
        workspace=workspace_dir,
        log_path=log_path,
    )


def build_example(
    item_id: int,
    cmakelists: Path,
    settings: Settings,
    state: RunResult,
    env: dict[str, str] | None = None,
    progress: ProgressCallback | None = None,
) -> list[VariantResult]:
    """Build every variant of one example, in overlay-suffix order.

    Failed variants are recorded in state; remaining variants are still
    attempted. Logs of variants that were built are scanned into the
    shared suspect-log sink.

    Args:
        item_id: Index of the example in the sorted example list.
        cmakelists: The example's CMakeLists.txt.
        settings: Application settings.
        state: Run state to update.
        env: Environment overrides (composed from settings if None).
        progress: Optional callback invoked after each variant.

    Returns:
        One VariantResult per variant.

    Raises:
        ConfigurationError: If LOG_PATH is not configured.
    """
    if settings.log_path is None:
        raise ConfigurationError("LOG_PATH is not set")
    log_dir = settings.log_path
    log_dir.mkdir(parents=True, exist_ok=True)
    sink = log_dir / SUSPECT_LOG_NAME
    if env is None:
        env = compose_build_env(settings)

    example_dir = cmakelists.parent
    results: list[VariantResult] = []

    for variant in expand_variants(item_id, example_dir):
        result = build_variant(variant, example_dir, settings, log_dir, env)

        if result.outcome == BuildOutcome.FAILED:
            state.record_failure(variant.item_name, result.exit_code)
        if result.log_path is not None:
            append_suspects(sink, scan_log(result.log_path))

        state.variants.append(result)
        results.append(result)
        if progress is not None:
            progress(result)

    return results


def build_range(
    examples: list[Path],
    range_: PartitionRange,
    settings: Settings,
    progress: ProgressCallback | None = None,
) -> RunResult:
    """Build the examples whose index falls in range_ and reach a verdict.

    The verdict is the first build failure's exit code; otherwise the
    issues exit code if the suspect-log sink holds unexplained lines;
    otherwise 0.

    Args:
        examples: Full sorted example list.
        range_: Range of indices owned by this job.
        settings: Application settings.
        progress: Optional callback invoked after each variant.

    Returns:
        RunResult with the accumulated state.

    Raises:
        ConfigurationError: If IDF_PATH or LOG_PATH is not configured.
    """
    _, log_dir = settings.require_build_paths()
    log_dir.mkdir(parents=True, exist_ok=True)
    sink = log_dir / SUSPECT_LOG_NAME
    sink.touch()

    env = compose_build_env(settings)
    state = RunResult()

    for index, cmakelists in enumerate(examples):
        if index not in range_:
            continue
        logger.info(">>> example [ %d ] - %s", index, cmakelists)
        build_example(index, cmakelists, settings, state, env=env, progress=progress)

    state.issues = collect_issues(sink)
    if state.issues and state.result_code == 0:
        state.result_code = settings.issues_exit_code

    if state.failed_examples:
        logger.error(
            "There are errors in the next examples: %s",
            " ".join(state.failed_examples),
        )
    logger.info("Return code = %d", state.result_code)
    return state


def plan_run(
    job_name: str | None,
    settings: Settings,
) -> tuple[list[Path], PartitionRange]:
    """Discover examples and compute the range owned by job_name.

    Args:
        job_name: ``<label>_<index>`` job name, or None for all examples.
        settings: Application settings.

    Returns:
        Tuple of (sorted example list, partition range).

    Raises:
        ConfigurationError: If required configuration is missing, the
            build command cannot be parsed or the job name is malformed.
        DiscoveryError: If too few examples were discovered.
    """
    settings.require_build_paths()
    settings.build_argv()
    examples_dir = settings.resolved_examples_dir
    if examples_dir is None:
        raise ConfigurationError("Examples directory is not set")

    examples = discover_examples(examples_dir, settings.exclude_patterns)
    range_ = plan_job(
        job_name,
        settings.resolved_ci_config,
        len(examples),
        settings.min_examples,
    )
    return examples, range_


def selected_examples(examples: list[Path], range_: PartitionRange) -> list[tuple[int, str]]:
    """Return (index, name) for each example in range_."""
    return [
        (index, example_name(cmakelists))
        for index, cmakelists in enumerate(examples)
        if index in range_
    ]


def run_ci_build(
    job_name: str | None = None,
    settings: Settings | None = None,
    progress: ProgressCallback | None = None,
) -> RunResult:
    """Run one CI job instance end to end.

    Args:
        job_name: ``<label>_<index>`` job name, or None for all examples.
        settings: Application settings.
        progress: Optional callback invoked after each variant.

    Returns:
        RunResult with the verdict in result_code.

    Raises:
        ConfigurationError: If configuration is unusable (before any build).
        DiscoveryError: If too few examples were discovered.
    """
    if settings is None:
        settings = get_settings()

    examples, range_ = plan_run(job_name, settings)
    return build_range(examples, range_, settings, progress=progress)


__all__ = [
    "ProgressCallback",
    "build_example",
    "build_range",
    "build_variant",
    "plan_run",
    "run_ci_build",
    "selected_examples",
]
