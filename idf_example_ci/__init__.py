"""IDF example CI builds - partitioned, incremental example builds for CI.

This package discovers example projects, splits them across parallel CI
jobs, builds each one out of tree and aggregates warnings and errors into
a single verdict.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
