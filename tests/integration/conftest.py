"""
Fixtures for pipeline integration tests.

Fake latexmk/pdflatex executables are written as small shell scripts into a
per-test bin directory, which is injected into the pipeline as its tool path.
The scripts receive the main file name as their last argument and run in the
main file's directory, like the real tools.
"""

import os
import stat

import pytest

from quire.contexts.rendering import CompilationPipeline, PipelineConfig

# Shared prologue: $main is the .tex argument, $stem its basename without extension
SCRIPT_PROLOGUE = """#!/bin/sh
for main; do :; done
stem="${main%.tex}"
"""

FAKE_PDF = 'printf "%%PDF-1.4\\n%% fake\\n" > "$stem.pdf"\n'


@pytest.fixture
def tool_dir(tmp_path):
    """Directory holding fake TeX tools."""
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def work_root(tmp_path):
    """Parent directory for workspaces (created lazily by the pipeline)."""
    return tmp_path / "work"


@pytest.fixture
def install_tool(tool_dir):
    """Write an executable shell script named `name` whose body follows the prologue."""

    def _install(name: str, body: str):
        script = tool_dir / name
        script.write_text(SCRIPT_PROLOGUE + body)
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _install


@pytest.fixture
def make_pipeline(tool_dir, work_root):
    """Pipeline bound to the fake tool directory and an isolated workspace root."""

    def _make(**overrides) -> CompilationPipeline:
        settings = dict(tool_path=str(tool_dir), tmp_root=str(work_root), timeout_s=20.0)
        settings.update(overrides)
        return CompilationPipeline(PipelineConfig(**settings))

    return _make


def leftover_workspaces(work_root):
    """Workspace directories still present under the root."""
    if not work_root.exists():
        return []
    return sorted(os.listdir(work_root))


@pytest.fixture
def assert_no_workspaces(work_root):
    """Callable asserting every workspace has been removed."""

    def _check():
        assert leftover_workspaces(work_root) == []

    return _check
