"""Build orchestration module.

This module handles:
- Variant expansion from configuration overlays
- Isolated workspace materialization
- Running the external build tool
- Log scanning and the run verdict
"""

from idf_example_ci.types import BuildOutcome, BuildVariant, RunResult, VariantResult

__all__ = ["BuildOutcome", "BuildVariant", "RunResult", "VariantResult"]

# Lazy imports for submodules to avoid circular imports
# Access via idf_example_ci.builds.service, etc.
