"""Discovery of buildable example projects.

An example is a directory with a top-level ``CMakeLists.txt``. Component
and ``main`` directories also carry a ``CMakeLists.txt`` and are excluded
by path fragment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from idf_example_ci.config import DEFAULT_EXCLUDE_PATTERNS
from idf_example_ci.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_FILE = "CMakeLists.txt"


def is_excluded(path: Path, examples_dir: Path, exclude_patterns: Iterable[str]) -> bool:
    """Check whether a CMakeLists.txt path matches an exclusion fragment.

    The fragment is matched against the path relative to examples_dir with
    a leading ``/``, so the location of the examples tree itself never
    causes an exclusion.

    Args:
        path: Path to a CMakeLists.txt file.
        examples_dir: Examples root.
        exclude_patterns: Path fragments such as ``/main/``.

    Returns:
        True if the file should be skipped.
    """
    rel = "/" + path.relative_to(examples_dir).as_posix()
    return any(pattern in rel for pattern in exclude_patterns)


def discover_examples(
    examples_dir: Path,
    exclude_patterns: Iterable[str] | None = None,
) -> list[Path]:
    """Find all example CMakeLists.txt files below examples_dir.

    Args:
        examples_dir: Examples root.
        exclude_patterns: Path fragments to exclude (defaults to components,
            main and shared helper directories).

    Returns:
        CMakeLists.txt paths sorted by path string.

    Raises:
        ConfigurationError: If examples_dir is not a directory.
    """
    if not examples_dir.is_dir():
        raise ConfigurationError(f"Examples directory not found: {examples_dir}")

    patterns = list(DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns)
    found = [
        path
        for path in examples_dir.rglob(PROJECT_FILE)
        if path.is_file() and not is_excluded(path, examples_dir, patterns)
    ]
    found.sort(key=str)

    logger.info("Discovered %d examples under %s", len(found), examples_dir)
    return found


def example_name(cmakelists: Path) -> str:
    """Return the example name for a CMakeLists.txt path."""
    return cmakelists.parent.name


__all__ = ["PROJECT_FILE", "discover_examples", "example_name", "is_excluded"]
