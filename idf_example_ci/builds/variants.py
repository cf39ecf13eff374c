"""Expansion of an example into build variants.

Each ``sdkconfig.ci.<suffix>`` file in an example directory is a
configuration overlay and yields its own variant. An example without
overlays has exactly one default variant.
"""

from __future__ import annotations

from pathlib import Path

from idf_example_ci.types import BuildVariant

OVERLAY_PREFIX = "sdkconfig.ci."
CI_DEFAULTS_FILE = "sdkconfig.ci"


def overlay_suffix(overlay: Path) -> str:
    """Return the suffix of an overlay file (text after ``sdkconfig.ci.``)."""
    return overlay.name.removeprefix(OVERLAY_PREFIX)


def find_overlays(example_dir: Path) -> list[Path]:
    """Find configuration overlays in an example directory.

    Args:
        example_dir: Example source directory.

    Returns:
        Overlay files sorted by suffix.
    """
    overlays = [
        path
        for path in example_dir.glob(f"{OVERLAY_PREFIX}*")
        if path.is_file() and overlay_suffix(path)
    ]
    return sorted(overlays, key=lambda p: (overlay_suffix(p), p.name))


def expand_variants(item_id: int, example_dir: Path) -> list[BuildVariant]:
    """Expand an example into its build variants.

    Args:
        item_id: Index of the example in the sorted example list.
        example_dir: Example source directory.

    Returns:
        ``<id>_<name>`` if there are no overlays, otherwise one
        ``<id>_<name>_<suffix>`` variant per overlay.
    """
    name = example_dir.name
    overlays = find_overlays(example_dir)
    if not overlays:
        return [BuildVariant(item_id=item_id, item_name=name, name=f"{item_id}_{name}")]

    return [
        BuildVariant(
            item_id=item_id,
            item_name=name,
            name=f"{item_id}_{name}_{overlay_suffix(overlay)}",
            overlay_file=overlay,
        )
        for overlay in overlays
    ]


__all__ = [
    "CI_DEFAULTS_FILE",
    "OVERLAY_PREFIX",
    "expand_variants",
    "find_overlays",
    "overlay_suffix",
]
