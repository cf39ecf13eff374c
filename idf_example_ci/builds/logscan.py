"""Scanning of build logs for warnings and errors.

Suspect lines from every variant log are appended to a shared sink
(``common_log.txt`` in the log directory). At the end of a run the sink
is deduplicated and filtered for known benign matches; whatever is left
counts as an issue even when every build succeeded.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

SUSPECT_LOG_NAME = "common_log.txt"

SUSPECT_PATTERN = re.compile(r"error|warning", re.IGNORECASE)

# Dropped while scanning a single log
SCAN_EXCLUDES = ["error.c.obj"]

# Benign matches dropped when collecting issues:
# object and dependency files named error.*, -Werror in compiler command
# lines, Kconfig reassignment notices and the toolchain version check
IGNORE_PATTERNS = [
    re.compile(r"library/error\.o"),
    re.compile(r"(^|\s)-Werror"),
    re.compile(r"error\.d"),
    re.compile(r"reassigning to symbol"),
    re.compile(r"changes choice state"),
    re.compile(r"crosstool_version_check\.cmake"),
    re.compile(r" -Wno-dev "),
]


def is_suspect(line: str) -> bool:
    """Check whether a log line mentions an error or warning."""
    if not SUSPECT_PATTERN.search(line):
        return False
    return not any(exclude in line for exclude in SCAN_EXCLUDES)


def is_ignored(line: str) -> bool:
    """Check whether a suspect line is a known benign match."""
    return any(pattern.search(line) for pattern in IGNORE_PATTERNS)


def scan_log(log_path: Path) -> list[str]:
    """Return the suspect lines of a build log.

    Args:
        log_path: Per-variant log file.

    Returns:
        Suspect lines in log order, without line endings.
    """
    if not log_path.is_file():
        return []
    text = log_path.read_text(encoding="utf-8", errors="replace")
    return [line for line in text.splitlines() if is_suspect(line)]


def append_suspects(sink: Path, lines: Iterable[str]) -> int:
    """Append lines to the suspect-log sink.

    Args:
        sink: Shared suspect-log file.
        lines: Lines to append.

    Returns:
        Number of lines written.
    """
    count = 0
    with sink.open("a", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
            count += 1
    return count


def collect_issues(sink: Path) -> list[str]:
    """Deduplicate the sink and drop benign lines.

    Args:
        sink: Shared suspect-log file.

    Returns:
        Sorted unique lines that remain suspicious.
    """
    if not sink.is_file():
        return []
    lines = set(sink.read_text(encoding="utf-8", errors="replace").splitlines())
    issues = sorted(line for line in lines if line and not is_ignored(line))
    if issues:
        logger.warning("Found %d suspicious log line(s) in %s", len(issues), sink)
    return issues


__all__ = [
    "IGNORE_PATTERNS",
    "SCAN_EXCLUDES",
    "SUSPECT_LOG_NAME",
    "append_suspects",
    "collect_issues",
    "is_ignored",
    "is_suspect",
    "scan_log",
]
