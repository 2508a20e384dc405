"""
Unit tests for the shared loguru session setup.
"""

import io

import pytest
from loguru import logger

from quire.utils.logger import setup_logger


@pytest.fixture
def console():
    stream = io.StringIO()
    yield stream
    logger.remove()


class TestSetupLogger:
    """Tests for setup_logger sinks and the provenance header."""

    @pytest.mark.unit
    def test_transcript_has_header_and_debug(self, tmp_path, console):
        """The transcript records the provenance header and DEBUG lines."""
        log_file = setup_logger("render", tmp_path / "session", extra_provenance={"Timeout": "5.0s"}, console=console)
        logger.debug("resolving toolchain")
        logger.remove()

        transcript = log_file.read_text()
        assert log_file.name == "render.log"
        assert "Timeout: 5.0s" in transcript
        assert "Started: " in transcript
        assert "resolving toolchain" in transcript

    @pytest.mark.unit
    def test_console_stream_and_threshold(self, tmp_path, console):
        """The console sink goes to the given stream and honours its level."""
        setup_logger("patch", tmp_path, console=console, console_level="INFO")
        logger.debug("hidden detail")
        logger.warning("visible warning")

        output = console.getvalue()
        assert "visible warning" in output
        assert "hidden detail" not in output
