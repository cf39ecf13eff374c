"""Configuration settings for idf_example_ci.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

``IDF_PATH`` and ``LOG_PATH`` are read without the ``IDF_CI_`` prefix so
the tool slots into existing CI environments unchanged.
"""

import shlex
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from idf_example_ci.errors import ConfigurationError

DEFAULT_EXCLUDE_PATTERNS = [
    "/components/",
    "/common_components/",
    "/main/",
    "/build_system/cmake/",
    "/mb_example_common/",
]

DEFAULT_EXTRA_CFLAGS = "-Werror -Werror=deprecated-declarations"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the IDF_CI_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDF_CI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    idf_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("IDF_PATH", "IDF_CI_IDF_PATH"),
        description="Root of the IDF tree containing examples/ and the CI configuration",
    )
    log_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("LOG_PATH", "IDF_CI_LOG_PATH"),
        description="Writable directory for per-variant build logs",
    )
    examples_dir: Path | None = Field(
        default=None,
        description="Examples root (defaults to <idf_path>/examples)",
    )
    ci_config: Path | None = Field(
        default=None,
        description="CI configuration declaring jobs (defaults to <idf_path>/.gitlab-ci.yml)",
    )
    builds_dir: Path = Field(
        default=Path("example_builds"),
        description="Directory holding one isolated workspace per variant",
    )

    # Build
    build_command: str = Field(
        default="idf.py build",
        description="Build tool command run inside each workspace",
    )
    extra_cflags: str = Field(
        default=DEFAULT_EXTRA_CFLAGS,
        description="Extra compiler flags exported as EXTRA_CFLAGS and EXTRA_CXXFLAGS",
    )
    extra_env: dict[str, str] = Field(
        default_factory=dict,
        description="Additional environment variables for the build tool",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout per build in seconds (no timeout if not set)",
    )

    # Discovery and verdict
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Path fragments excluding CMakeLists.txt files from discovery",
    )
    min_examples: int = Field(
        default=50,
        ge=0,
        description="Fewer discovered examples than this aborts a partitioned run",
    )
    issues_exit_code: int = Field(
        default=22,
        ge=1,
        le=255,
        description="Exit code when logs contain issues but no build failed",
    )

    # Output
    echo_logs: bool = Field(
        default=True,
        description="Echo each variant's build log after building it",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def resolved_examples_dir(self) -> Path | None:
        """Examples root, falling back to <idf_path>/examples."""
        if self.examples_dir is not None:
            return self.examples_dir
        if self.idf_path is None:
            return None
        return self.idf_path / "examples"

    @property
    def resolved_ci_config(self) -> Path | None:
        """CI configuration path, falling back to <idf_path>/.gitlab-ci.yml."""
        if self.ci_config is not None:
            return self.ci_config
        if self.idf_path is None:
            return None
        return self.idf_path / ".gitlab-ci.yml"

    def require_build_paths(self) -> tuple[Path, Path]:
        """Return (idf_path, log_path), failing if either is missing.

        Returns:
            Tuple of IDF root and log directory.

        Raises:
            ConfigurationError: If IDF_PATH or LOG_PATH is not set.
        """
        if self.idf_path is None:
            raise ConfigurationError("IDF_PATH is not set")
        if self.log_path is None:
            raise ConfigurationError("LOG_PATH is not set")
        return self.idf_path, self.log_path

    def build_argv(self) -> list[str]:
        """Split build_command into an argument vector.

        Raises:
            ConfigurationError: If the command cannot be parsed or is empty.
        """
        try:
            argv = shlex.split(self.build_command)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid build command {self.build_command!r}: {e}"
            ) from e
        if not argv:
            raise ConfigurationError("Build command is empty")
        return argv


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_EXCLUDE_PATTERNS",
    "DEFAULT_EXTRA_CFLAGS",
    "Settings",
    "get_settings",
    "print_settings_json",
]
