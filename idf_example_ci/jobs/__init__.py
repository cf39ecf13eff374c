"""Job partitioning module.

This module handles:
- Parsing ``<label>_<index>`` job names
- Counting declared jobs in the CI configuration
- Computing the slice of examples a job instance owns
"""

from idf_example_ci.jobs.partition import count_jobs, parse_job_name, partition, plan_job

__all__ = ["count_jobs", "parse_job_name", "partition", "plan_job"]
