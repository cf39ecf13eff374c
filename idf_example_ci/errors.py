"""Error taxonomy for idf_example_ci.

Every error carries a stable ``code`` for programmatic handling.
Configuration and discovery errors are fatal and abort a run before any
build is attempted; workspace and build execution errors are recorded
against a single variant.
"""

# Error code constants
CONFIGURATION_ERROR = "configuration_error"
INVALID_JOB_NAME = "invalid_job_name"
NO_JOBS_FOUND = "no_jobs_found"
DISCOVERY_ERROR = "discovery_error"
ITEM_DISCOVERY_FAILED = "item_discovery_failed"
WORKSPACE_ERROR = "workspace_error"
BUILD_ERROR = "build_error"


class CIBuildError(Exception):
    """Base error for all idf_example_ci failures."""

    def __init__(self, message: str, code: str = "ci_build_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(CIBuildError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, message: str, code: str = CONFIGURATION_ERROR) -> None:
        super().__init__(message, code=code)


class InvalidJobNameError(ConfigurationError):
    """Raised when a job name does not look like ``<label>_<index>``."""

    def __init__(self, job_name: str) -> None:
        super().__init__(
            f"Invalid job name {job_name!r}: expected <label>_<index>",
            code=INVALID_JOB_NAME,
        )
        self.job_name = job_name


class NoJobsFoundError(ConfigurationError):
    """Raised when the CI configuration declares no jobs for a label."""

    def __init__(self, label: str) -> None:
        super().__init__(
            f"No jobs named {label}_<n> declared in CI configuration",
            code=NO_JOBS_FOUND,
        )
        self.label = label


class DiscoveryError(CIBuildError):
    """Raised when example discovery produces an implausible result."""

    def __init__(self, message: str, code: str = DISCOVERY_ERROR) -> None:
        super().__init__(message, code=code)


class ItemDiscoveryFailedError(DiscoveryError):
    """Raised when fewer examples were found than the sanity floor."""

    def __init__(self, found: int, minimum: int) -> None:
        super().__init__(
            f"Found only {found} examples (expected at least {minimum}); "
            "example discovery looks broken",
            code=ITEM_DISCOVERY_FAILED,
        )
        self.found = found
        self.minimum = minimum


class WorkspaceError(CIBuildError):
    """Raised when an isolated build workspace cannot be prepared."""

    def __init__(self, message: str, code: str = WORKSPACE_ERROR) -> None:
        super().__init__(message, code=code)


class BuildExecutionError(CIBuildError):
    """Raised when the external build tool cannot be run."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = BUILD_ERROR,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


__all__ = [
    "BUILD_ERROR",
    "CONFIGURATION_ERROR",
    "DISCOVERY_ERROR",
    "INVALID_JOB_NAME",
    "ITEM_DISCOVERY_FAILED",
    "NO_JOBS_FOUND",
    "WORKSPACE_ERROR",
    "BuildExecutionError",
    "CIBuildError",
    "ConfigurationError",
    "DiscoveryError",
    "InvalidJobNameError",
    "ItemDiscoveryFailedError",
    "NoJobsFoundError",
    "WorkspaceError",
]
