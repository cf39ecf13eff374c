"""Example discovery module."""

from idf_example_ci.examples.discovery import discover_examples, example_name

__all__ = ["discover_examples", "example_name"]
