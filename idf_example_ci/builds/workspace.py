"""Isolated per-variant build workspaces.

This module handles:
- Copying an example's source tree into its own build directory
- Selecting one configuration overlay and removing the others
- Preparing the copy for a CI build (dummy credentials, stale config
  cleanup, merging the CI overlay into sdkconfig.defaults)
- The success marker that lets later runs skip finished variants

Examples are never built in place, so variants and job instances cannot
interfere with each other. Workspaces are not removed after a build; logs
and outputs stay behind for CI inspection.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from idf_example_ci.builds.variants import CI_DEFAULTS_FILE, OVERLAY_PREFIX
from idf_example_ci.errors import WorkspaceError

logger = logging.getLogger(__name__)

BUILD_SUBDIR = "build"
SUCCESS_MARKER = "ci_build_success"
SDKCONFIG = "sdkconfig"
SDKCONFIG_DEFAULTS = "sdkconfig.defaults"

DUMMY_CERTIFICATE_TEXT = "Dummy certificate data for continuous integration\n"

# Examples that need credential files present at build time
DUMMY_CERTIFICATES: dict[str, tuple[str, ...]] = {
    "subscribe_publish": (
        "main/certs/certificate.pem.crt",
        "main/certs/private.pem.key",
    ),
    "thing_shadow": (
        "main/certs/certificate.pem.crt",
        "main/certs/private.pem.key",
    ),
}


@dataclass
class Workspace:
    """Handle on a materialized build workspace.

    Attributes:
        root: Workspace directory (a copy of the example source).
        overlay: Overlay file merged into this workspace, if any.
    """

    root: Path
    overlay: Path | None = None

    @property
    def build_dir(self) -> Path:
        """Build tool output directory."""
        return self.root / BUILD_SUBDIR

    @property
    def marker(self) -> Path:
        """Success marker path."""
        return success_marker(self.root)


def success_marker(workspace: Path) -> Path:
    """Return the success marker path for a workspace directory."""
    return workspace / BUILD_SUBDIR / SUCCESS_MARKER


def is_built(workspace: Path) -> bool:
    """Check whether a workspace already holds a successful build."""
    return success_marker(workspace).is_file()


def copy_tree(source_dir: Path, dest_dir: Path) -> None:
    """Copy a source tree into dest_dir, merging with existing content.

    Top-level hidden entries are skipped. Symlinks are copied as links.

    Args:
        source_dir: Example source directory.
        dest_dir: Workspace directory.

    Raises:
        WorkspaceError: If copying fails.
    """
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        for item in sorted(source_dir.iterdir()):
            if item.name.startswith("."):
                continue
            dest_path = dest_dir / item.name
            if item.is_dir() and not item.is_symlink():
                shutil.copytree(item, dest_path, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(item, dest_path, follow_symlinks=False)
    except OSError as e:
        raise WorkspaceError(
            f"Failed to copy {source_dir} -> {dest_dir}: {e}",
            code="copy_error",
        ) from e


def select_overlay(workspace: Path, overlay: Path) -> None:
    """Make overlay the workspace's CI defaults and drop other candidates.

    The chosen ``sdkconfig.ci.<suffix>`` becomes ``sdkconfig.ci``; every
    ``sdkconfig.ci.*`` file is then removed so the build sees exactly one.

    Args:
        workspace: Workspace directory.
        overlay: Overlay file from the example source.

    Raises:
        WorkspaceError: If the overlay cannot be installed.
    """
    try:
        shutil.copyfile(workspace / overlay.name, workspace / CI_DEFAULTS_FILE)
        for candidate in workspace.glob(f"{OVERLAY_PREFIX}*"):
            candidate.unlink()
    except OSError as e:
        raise WorkspaceError(
            f"Failed to select overlay {overlay.name} in {workspace}: {e}",
            code="overlay_error",
        ) from e


def materialize_workspace(
    example_dir: Path,
    workspace: Path,
    overlay: Path | None = None,
) -> Workspace:
    """Create an isolated copy of an example for one variant.

    Args:
        example_dir: Example source directory.
        workspace: Per-variant build directory.
        overlay: Overlay selected for this variant.

    Returns:
        Workspace handle.

    Raises:
        WorkspaceError: If the copy cannot be made.
    """
    logger.debug("Copying %s to %s", example_dir, workspace)
    copy_tree(example_dir, workspace)
    if overlay is not None:
        logger.debug("Selecting overlay %s", overlay.name)
        select_overlay(workspace, overlay)
    return Workspace(root=workspace, overlay=overlay)


def write_dummy_certificates(workspace: Path, example_name: str) -> list[Path]:
    """Write placeholder credential files for examples that need them.

    Args:
        workspace: Workspace directory.
        example_name: Example name.

    Returns:
        Paths written (empty for examples without credentials).
    """
    written: list[Path] = []
    for rel in DUMMY_CERTIFICATES.get(example_name, ()):
        path = workspace / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DUMMY_CERTIFICATE_TEXT, encoding="utf-8")
        written.append(path)
    return written


def merge_ci_defaults(workspace: Path) -> bool:
    """Append sdkconfig.ci to sdkconfig.defaults, expanding env references.

    Args:
        workspace: Workspace directory.

    Returns:
        True if a CI defaults file was merged.
    """
    ci_defaults = workspace / CI_DEFAULTS_FILE
    if not ci_defaults.is_file():
        return False

    # surrogateescape keeps bytes that are not UTF-8 unchanged
    text = os.path.expandvars(
        ci_defaults.read_text(encoding="utf-8", errors="surrogateescape")
    )
    with (workspace / SDKCONFIG_DEFAULTS).open(
        "a", encoding="utf-8", errors="surrogateescape"
    ) as f:
        f.write(text)
    logger.debug("Merged %s into %s", ci_defaults, SDKCONFIG_DEFAULTS)
    return True


def prepare_workspace(workspace: Workspace, example_name: str) -> None:
    """Prepare a materialized workspace for the build tool.

    Writes dummy credentials, removes a stale ``sdkconfig`` left by an
    earlier local run and merges the CI defaults.

    Args:
        workspace: Workspace handle.
        example_name: Example name.

    Raises:
        WorkspaceError: If preparation fails.
    """
    try:
        write_dummy_certificates(workspace.root, example_name)
        (workspace.root / SDKCONFIG).unlink(missing_ok=True)
        merge_ci_defaults(workspace.root)
    except (OSError, UnicodeError) as e:
        raise WorkspaceError(
            f"Failed to prepare workspace {workspace.root}: {e}",
            code="prepare_error",
        ) from e


__all__ = [
    "BUILD_SUBDIR",
    "DUMMY_CERTIFICATES",
    "SUCCESS_MARKER",
    "Workspace",
    "copy_tree",
    "is_built",
    "materialize_workspace",
    "merge_ci_defaults",
    "prepare_workspace",
    "select_overlay",
    "success_marker",
    "write_dummy_certificates",
]
