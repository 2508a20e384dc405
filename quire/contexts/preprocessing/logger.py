"""
Preprocessing context logger.

Provides logging interface for preprocessing context with automatic [patch] prefix.
All preprocessing modules should import from this module, not from utils.logger directly.
"""

import sys
from pathlib import Path
from typing import Sequence

from loguru import logger

from quire.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[patch]"


def setup_preprocessing_logger(log_dir: Path) -> Path:
    """
    Setup logger for preprocessing context (standalone patch runs).

    Console output goes to stderr so patched source can be piped from stdout.
    """
    return _setup_logger(context_name="patch", log_dir=log_dir, console=sys.stderr)


def _log_debug(message: str) -> None:
    """Log debug message with [patch] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_patch_applied(family_name: str, constructs: Sequence[str], with_package: bool) -> None:
    """Log one injected fallback block."""
    package_note = " (+ package)" if with_package else ""
    _log_debug(f"Injected {family_name} fallbacks{package_note}: {', '.join(constructs)}")


def log_patch_failed(error: Exception) -> None:
    """Log an unexpected patcher error with traceback; the source is left untouched."""
    logger.opt(exception=error).warning(
        f"{CONTEXT_PREFIX} Fallback patching failed, compiling source unmodified"
    )
