"""
Unit tests for the tool prober, pipeline configuration and failure taxonomy.
"""

import os
import stat

import pytest

from quire.contexts.rendering.config import PipelineConfig, load_pipeline_config
from quire.contexts.rendering.exceptions import (
    CompileFailedError,
    FailureKind,
    MainFileNotFoundError,
    NoFilesError,
    ToolingMissingError,
)
from quire.contexts.rendering.tooling import Toolchain, find_tool, probe_toolchain

skip_on_windows = pytest.mark.skipif(os.name == "nt", reason="uses POSIX executable bits")


def _make_executable(path):
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class TestToolProbe:
    """Tests for find_tool and probe_toolchain."""

    @pytest.mark.unit
    @skip_on_windows
    def test_find_tool_on_search_path(self, tmp_path):
        """Executables on the injected search path are found."""
        tool = _make_executable(tmp_path / "latexmk")
        assert find_tool("latexmk", str(tmp_path)) == tool

    @pytest.mark.unit
    def test_missing_tool_is_none(self, tmp_path):
        """Absent tools resolve to None instead of raising."""
        assert find_tool("definitely-not-a-tex-tool", str(tmp_path)) is None

    @pytest.mark.unit
    @skip_on_windows
    def test_probe_single_pass_only(self, tmp_path):
        """Only the engine installed: full_build absent, single_pass present."""
        _make_executable(tmp_path / "pdflatex")
        toolchain = probe_toolchain(PipelineConfig(tool_path=str(tmp_path)))

        assert toolchain.full_build is None
        assert toolchain.single_pass == tmp_path / "pdflatex"
        assert toolchain.available
        assert toolchain.describe() == "pdflatex"

    @pytest.mark.unit
    def test_probe_nothing_installed(self, tmp_path):
        """Empty search path: nothing available."""
        toolchain = probe_toolchain(PipelineConfig(tool_path=str(tmp_path)))

        assert toolchain == Toolchain()
        assert not toolchain.available
        assert toolchain.describe() == "none"


class TestPipelineConfig:
    """Tests for PipelineConfig validation and loading."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "overrides",
        [{"timeout_s": 0}, {"single_pass_runs": 0}, {"single_pass_runs": 6}, {"max_log_chars": 0}],
    )
    def test_invalid_values_rejected(self, overrides):
        """Out-of-range settings raise ValueError."""
        with pytest.raises(ValueError):
            PipelineConfig(**overrides)

    @pytest.mark.unit
    def test_yaml_overrides_and_explicit_overrides(self, tmp_path):
        """YAML values override the environment; explicit values override YAML."""
        config_file = tmp_path / "pipeline.yaml"
        config_file.write_text("timeout_s: 15\nsingle_pass_runs: 3\nsingle_pass_tool: lualatex\n")

        config = load_pipeline_config(config_file, timeout_s=5, tool_path=None)

        assert config.timeout_s == 5
        assert config.single_pass_runs == 3
        assert config.single_pass_tool == "lualatex"

    @pytest.mark.unit
    def test_unknown_yaml_key_rejected(self, tmp_path):
        """Typos in the config file are reported, not ignored."""
        config_file = tmp_path / "pipeline.yaml"
        config_file.write_text("timout_s: 15\n")

        with pytest.raises(ValueError, match="timout_s"):
            load_pipeline_config(config_file)


class TestFailureTaxonomy:
    """Tests for status classes and the collaborator payload."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kind,status",
        [
            (FailureKind.TOOLING_MISSING, 500),
            (FailureKind.NO_FILES, 400),
            (FailureKind.MAIN_FILE_NOT_FOUND, 400),
            (FailureKind.INVALID_FILE, 400),
            (FailureKind.COMPILE_FAILED, 422),
            (FailureKind.TIMEOUT, 408),
        ],
    )
    def test_status_codes(self, kind, status):
        """Each failure kind maps onto an HTTP-style status."""
        assert kind.status_code == status

    @pytest.mark.unit
    def test_usage_errors_carry_no_log(self):
        """Configuration and usage errors have no tool log to show."""
        for error in (ToolingMissingError("x"), NoFilesError("x"), MainFileNotFoundError("x")):
            assert error.log is None
            assert "log" not in error.to_dict()

    @pytest.mark.unit
    def test_compile_failure_payload(self):
        """Compile failures expose kind, message, status, log and errors."""
        error = CompileFailedError("LaTeX compilation failed.", log="tail", errors=["Undefined control sequence."])

        assert error.to_dict() == {
            "kind": "COMPILE_FAILED",
            "message": "LaTeX compilation failed.",
            "status_code": 422,
            "log": "tail",
            "errors": ["Undefined control sequence."],
        }
        assert "Undefined control sequence." in str(error)
