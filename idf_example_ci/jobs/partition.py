"""Partitioning of examples across parallel CI jobs.

A job named ``<label>_<index>`` owns a contiguous slice of the sorted
example list. The number of jobs sharing a label is read from the CI
configuration by counting ``<label>_<n>:`` declarations.

Slices all have width ``ceil(total_items / total_jobs)``; the last one
may extend past the end of the list.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path

from idf_example_ci.errors import (
    ConfigurationError,
    InvalidJobNameError,
    ItemDiscoveryFailedError,
    NoJobsFoundError,
)
from idf_example_ci.types import JobSpec, PartitionRange

logger = logging.getLogger(__name__)

JOB_NAME_PATTERN = re.compile(r"^(?P<label>.+)_(?P<index>[0-9]+)$")

# Below this many examples discovery is assumed to be broken
DEFAULT_MIN_ITEMS = 50


def parse_job_name(job_name: str) -> JobSpec:
    """Parse a ``<label>_<index>`` job name.

    Leading zeros in the index are ignored.

    Args:
        job_name: Job name such as ``build_examples_cmake_3``.

    Returns:
        JobSpec with label and index.

    Raises:
        InvalidJobNameError: If the name does not match.
    """
    match = JOB_NAME_PATTERN.fullmatch(job_name)
    if match is None:
        raise InvalidJobNameError(job_name)
    return JobSpec(label=match.group("label"), index=int(match.group("index")))


def count_jobs(ci_config: Path, label: str) -> int:
    """Count jobs declared as ``<label>_<n>:`` in a CI configuration.

    Only whole lines match, so indented keys and jobs with trailing
    content are not counted.

    Args:
        ci_config: Path to the CI configuration file.
        label: Job label.

    Returns:
        Number of matching job declarations.

    Raises:
        ConfigurationError: If the CI configuration cannot be read.
    """
    pattern = re.compile(rf"^{re.escape(label)}_[0-9]+:$")
    try:
        text = ci_config.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read CI configuration {ci_config}: {e}"
        ) from e
    return sum(1 for line in text.splitlines() if pattern.match(line))


def partition(
    job_name: str | None,
    total_jobs: int,
    total_items: int,
    min_items: int = DEFAULT_MIN_ITEMS,
) -> PartitionRange:
    """Compute the range of example indices owned by a job.

    Args:
        job_name: ``<label>_<index>`` job name, or None to build everything.
        total_jobs: Number of jobs sharing the label.
        total_items: Number of discovered examples.
        min_items: Sanity floor for total_items.

    Returns:
        PartitionRange; unbounded when job_name is None.

    Raises:
        InvalidJobNameError: If job_name is malformed.
        NoJobsFoundError: If total_jobs is less than 1.
        ItemDiscoveryFailedError: If total_items is below min_items.
    """
    if job_name is None:
        return PartitionRange(start=0, end=None)

    job = parse_job_name(job_name)
    if total_jobs < 1:
        raise NoJobsFoundError(job.label)
    if total_items < min_items:
        raise ItemDiscoveryFailedError(total_items, min_items)

    per_job = math.ceil(total_items / total_jobs)
    return PartitionRange(start=job.index * per_job, end=(job.index + 1) * per_job)


def plan_job(
    job_name: str | None,
    ci_config: Path | None,
    total_items: int,
    min_items: int = DEFAULT_MIN_ITEMS,
) -> PartitionRange:
    """Look up the job count for job_name and partition the examples.

    Args:
        job_name: Job name, or None to build everything.
        ci_config: CI configuration declaring the jobs.
        total_items: Number of discovered examples.
        min_items: Sanity floor for total_items.

    Returns:
        PartitionRange for this job instance.

    Raises:
        ConfigurationError: If the job name or CI configuration is unusable.
        DiscoveryError: If too few examples were discovered.
    """
    if job_name is None:
        logger.info("No job name given, building all %d examples", total_items)
        return partition(None, 0, total_items, min_items)

    job = parse_job_name(job_name)
    if ci_config is None:
        raise ConfigurationError("CI configuration path is not set")
    total_jobs = count_jobs(ci_config, job.label)
    range_ = partition(job_name, total_jobs, total_items, min_items)

    logger.info(
        "Job %s is %d of %d, examples [%d, %d) of %d",
        job_name,
        job.index,
        total_jobs,
        range_.start,
        range_.end,
        total_items,
    )
    if job.index >= total_jobs:
        logger.warning(
            "Job index %d is outside the %d declared %s_<n> jobs; "
            "no examples will be built",
            job.index,
            total_jobs,
            job.label,
        )
    return range_


__all__ = [
    "DEFAULT_MIN_ITEMS",
    "JOB_NAME_PATTERN",
    "count_jobs",
    "parse_job_name",
    "partition",
    "plan_job",
]
