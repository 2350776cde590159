"""
Pytest configuration and fixtures for hotforge tests.
"""

import json
import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from hotforge.build import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from hotforge.build import BuildContext  # noqa: E402
from hotforge.errors import CompilerError  # noqa: E402
from hotforge.observability import JSONLogger  # noqa: E402


class FakeCompiler:
    """Compiler that writes a marker file instead of bundling."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.calls: list[tuple[Path, Path, str]] = []

    async def compile(self, source, output, *, platform, options):
        self.calls.append((source, output, platform))
        if self.fail_on and source.name == self.fail_on:
            raise CompilerError(str(source), "syntax error", returncode=1)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(f"// compiled from {source.name}\n", encoding="utf-8")


class FakeUiBuilder:
    """UI page builder that records the plugins it was asked to build."""

    def __init__(self):
        self.built: list[str] = []

    async def build(self, plugin, output_dir, options):
        self.built.append(plugin.name)
        html_dir = output_dir / "html"
        html_dir.mkdir(parents=True, exist_ok=True)
        (html_dir / "index.html").write_text("<html></html>", encoding="utf-8")
        return html_dir


def write_plugin(root: Path, relative: str, descriptor: dict | None = None, files: dict | None = None) -> Path:
    """Create a plugin directory with a plugin.json and the given files."""
    plugin_dir = root / relative
    plugin_dir.mkdir(parents=True, exist_ok=True)
    data = {"name": plugin_dir.name} if descriptor is None else descriptor
    (plugin_dir / "plugin.json").write_text(json.dumps(data), encoding="utf-8")
    for name, content in (files or {}).items():
        target = plugin_dir / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return plugin_dir


@pytest.fixture
def fake_compiler():
    """Compiler stand-in that never spawns a process."""
    return FakeCompiler()


@pytest.fixture
def fake_ui_builder():
    return FakeUiBuilder()


@pytest.fixture
def project(tmp_path):
    """Empty project layout: src/plugins, src/core, dist."""
    (tmp_path / "src" / "plugins").mkdir(parents=True)
    (tmp_path / "src" / "core").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def build_context(project):
    """BuildContext rooted at the temporary project."""
    return BuildContext(
        root_dir=project,
        plugins_dir=project / "src" / "plugins",
        core_dir=project / "src" / "core",
        dist_dir=project / "dist",
        logger=JSONLogger("hotforge.test"),
    )
