"""Shared type definitions for idf_example_ci.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class BuildOutcome(str, Enum):
    """Outcome of building one variant."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class JobSpec:
    """A parsed ``<label>_<index>`` job name."""

    label: str
    index: int


@dataclass(frozen=True)
class PartitionRange:
    """Half-open range ``[start, end)`` of example indices owned by a job.

    ``end`` is None when the range is unbounded (whole-repository mode).
    ``end`` may exceed the number of examples; indices past the end of the
    example list simply do not exist.
    """

    start: int
    end: int | None = None

    def __contains__(self, index: object) -> bool:
        if not isinstance(index, int):
            return False
        if index < self.start:
            return False
        return self.end is None or index < self.end

    @property
    def width(self) -> int | None:
        """Number of indices covered, or None if unbounded."""
        if self.end is None:
            return None
        return self.end - self.start


@dataclass(frozen=True)
class BuildVariant:
    """One build configuration of an example.

    Attributes:
        item_id: Index of the example in the sorted example list.
        item_name: Example name (directory basename).
        name: Variant name, used as the build directory name.
        overlay_file: Selected ``sdkconfig.ci.<suffix>`` file, if any.
    """

    item_id: int
    item_name: str
    name: str
    overlay_file: Path | None = None

    @property
    def suffix(self) -> str | None:
        """Overlay suffix, or None for the default variant."""
        if self.overlay_file is None:
            return None
        return self.overlay_file.name.removeprefix("sdkconfig.ci.")


@dataclass
class VariantResult:
    """Result of processing one variant."""

    variant: BuildVariant
    outcome: BuildOutcome
    workspace: Path
    exit_code: int = 0
    log_path: Path | None = None
    error_message: str | None = None


@dataclass
class RunResult:
    """Accumulated state of one job instance run.

    Threaded through the orchestration loop and returned at the end.
    """

    result_code: int = 0
    failed_examples: list[str] = field(default_factory=list)
    variants: list[VariantResult] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    def record_failure(self, example_name: str, exit_code: int) -> None:
        """Record a failed example without overwriting an earlier code."""
        if example_name not in self.failed_examples:
            self.failed_examples.append(example_name)
        if self.result_code == 0:
            self.result_code = exit_code or 1

    def count(self, outcome: BuildOutcome) -> int:
        """Count variants with the given outcome."""
        return sum(1 for v in self.variants if v.outcome == outcome)


__all__ = [
    "BuildOutcome",
    "BuildVariant",
    "JobSpec",
    "PartitionRange",
    "RunResult",
    "VariantResult",
]
