"""
Loguru sink configuration shared by the QUIRE contexts.

A CLI run gets one session directory holding a full DEBUG transcript, while the
console only shows what an operator needs. Every session opens with a provenance
header so a log file can be traced back to the command and toolchain that made it.

Contexts wrap this in their own logger.py (prefixes and domain helpers); library
modules only emit, they never add sinks.
"""

import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from quire.utils.timestamp import now_exact

load_dotenv()

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: dict = None,
    level_colors: dict = None,
    console_level: str = "INFO",
    console=None,
) -> Path:
    """
    Replace loguru's sinks with a session transcript and a console view.

    Args:
        context_name: Names the transcript file (<context_name>.log)
        log_dir: Session directory, created if needed
        extra_provenance: Context-specific header lines (tools, budgets, ...)
        level_colors: Console colour overrides per level
        console_level: Console threshold; the transcript always records DEBUG
        console: Stream for the console sink. The patch command passes sys.stderr
            so the patched source on stdout stays pipeable

    Returns:
        Path to the transcript file

    Example:
        log_file = setup_logger(
            "render",
            Path("outs/logs/render_20251114_123456"),
            extra_provenance={"Full-build tool": "latexmk", "Timeout": "60.0s"},
        )
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()

    for level_name, color in {**LEVEL_COLORS, **(level_colors or {})}.items():
        logger.level(level_name, color=color)

    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
    logger.add(console or sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    log_provenance(extra_provenance)

    return log_file


def log_provenance(extra_context: dict = None) -> None:
    """Write the session header: start time, invocation, cwd, interpreter, then extra_context."""
    logger.info("=" * 80)
    logger.info(f"Started: {now_exact()}")
    logger.info(f"Command: {' '.join(sys.argv)}")
    logger.info(f"Working directory: {Path.cwd()}")
    logger.info(f"Python: {sys.version.split()[0]}")

    for key, value in (extra_context or {}).items():
        logger.info(f"{key}: {value}")

    logger.info("=" * 80)
