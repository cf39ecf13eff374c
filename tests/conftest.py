"""Shared fixtures for idf_example_ci tests.

The external build tool is replaced by a small Python script. Its
behaviour is driven by the workspace's sdkconfig.defaults:

- ``CONFIG_FAIL_BUILD=y``: print an error and exit 2
- ``CONFIG_NO_OUTPUT=y``: succeed without writing flash_project_args
- ``CONFIG_WARN=y``: print a compiler warning
- ``CONFIG_KILL=y``: kill itself with SIGKILL

Each invocation appends its working directory to the counter file.
"""

import shlex
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from idf_example_ci.config import Settings

FAKE_TOOL = """\
import os
import signal
import sys
from pathlib import Path

with open(os.environ["FAKE_TOOL_COUNTER"], "a") as f:
    f.write(os.getcwd() + "\\n")

defaults = Path("sdkconfig.defaults")
text = defaults.read_text(errors="replace") if defaults.exists() else ""

print("Executing action: all (aliases: build)")
print("cc -Werror -Werror=deprecated-declarations -c main/main.c")

if "CONFIG_FAIL_BUILD=y" in text:
    print("main/main.c:12:5: error: 'undeclared' undeclared")
    sys.exit(2)
if "CONFIG_KILL=y" in text:
    os.kill(os.getpid(), signal.SIGKILL)
if "CONFIG_WARN=y" in text:
    print("main/main.c:3:9: warning: unused variable 'x'")

Path("build").mkdir(exist_ok=True)
if "CONFIG_NO_OUTPUT=y" not in text:
    Path("build", "flash_project_args").write_text("--flash_mode dio\\n")
print("Project build complete.")
"""

ExampleFactory = Callable[..., Path]


@pytest.fixture
def fake_tool(tmp_path: Path) -> Path:
    """Write the fake build tool script."""
    script = tmp_path / "fake_idf.py"
    script.write_text(FAKE_TOOL)
    return script


@pytest.fixture
def tool_counter(tmp_path: Path) -> Path:
    """File the fake tool appends to on every invocation."""
    return tmp_path / "invocations.txt"


@pytest.fixture
def idf_root(tmp_path: Path) -> Path:
    """Create an empty IDF tree with an examples directory."""
    root = tmp_path / "idf"
    (root / "examples").mkdir(parents=True)
    (root / "tools").mkdir()
    return root


@pytest.fixture
def make_example(idf_root: Path) -> ExampleFactory:
    """Return a factory creating example projects under the IDF tree."""

    def factory(
        rel: str,
        overlays: dict[str, str] | None = None,
        sdkconfig_ci: str | bytes | None = None,
        defaults: str | None = None,
    ) -> Path:
        example_dir = idf_root / "examples" / rel
        (example_dir / "main").mkdir(parents=True)
        (example_dir / "CMakeLists.txt").write_text("project(example)\n")
        (example_dir / "main" / "CMakeLists.txt").write_text("idf_component_register()\n")
        (example_dir / "main" / "main.c").write_text("void app_main(void) {}\n")
        if defaults is not None:
            (example_dir / "sdkconfig.defaults").write_text(defaults)
        if isinstance(sdkconfig_ci, bytes):
            (example_dir / "sdkconfig.ci").write_bytes(sdkconfig_ci)
        elif sdkconfig_ci is not None:
            (example_dir / "sdkconfig.ci").write_text(sdkconfig_ci)
        for suffix, content in (overlays or {}).items():
            (example_dir / f"sdkconfig.ci.{suffix}").write_text(content)
        return example_dir / "CMakeLists.txt"

    return factory


@pytest.fixture
def settings(
    tmp_path: Path,
    idf_root: Path,
    fake_tool: Path,
    tool_counter: Path,
) -> Settings:
    """Settings pointing at the temporary IDF tree and the fake tool."""
    return Settings(
        idf_path=idf_root,
        log_path=tmp_path / "logs",
        builds_dir=tmp_path / "out" / "example_builds",
        build_command=shlex.join([sys.executable, str(fake_tool)]),
        extra_env={"FAKE_TOOL_COUNTER": str(tool_counter)},
        min_examples=0,
        echo_logs=False,
    )


@pytest.fixture
def invocations(tool_counter: Path) -> Callable[[], list[str]]:
    """Return a callable listing the directories the fake tool ran in."""

    def read() -> list[str]:
        if not tool_counter.exists():
            return []
        return tool_counter.read_text().splitlines()

    return read
