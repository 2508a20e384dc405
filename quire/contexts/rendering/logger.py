"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from quire.utils.logger import setup_logger as _setup_logger
from quire.utils.timestamp import format_duration

CONTEXT_PREFIX = "[render]"


def setup_rendering_logger(log_dir: Path, config=None, verbose: bool = False) -> Path:
    """
    Setup logger for rendering context.

    Configures loguru with provenance tracking and rendering-specific context.

    Args:
        log_dir: Directory for this rendering session
        config: PipelineConfig whose toolchain settings are recorded in the header
        verbose: Show DEBUG messages on the console as well

    Returns:
        Path to log file

    Example:
        from quire.contexts.rendering.logger import setup_rendering_logger, _log_info

        log_file = setup_rendering_logger(log_dir, config)
        _log_info("Starting compilation...")
    """
    provenance = {}
    if config is not None:
        provenance = {
            "Full-build tool": config.full_build_tool,
            "Single-pass tool": config.single_pass_tool,
            "Tool path": config.tool_path or "$PATH",
            "Timeout": f"{config.timeout_s}s",
        }
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance=provenance,
        console_level="DEBUG" if verbose else "INFO",
    )


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_compilation_start(label: str, main_file: Path, timeout_s: float, working_dir: Path) -> None:
    """Log start of compilation with context."""
    _log_info(f"Starting compilation: {label}")
    _log_debug(f"  Workspace: {working_dir}")
    _log_debug(f"  Main file: {main_file}")
    _log_debug(f"  Budget: {timeout_s}s")


def log_tool_run(tool: Path, pass_number: int, returncode, elapsed_s: float, timed_out: bool) -> None:
    """Log one external tool invocation."""
    status = "timed out" if timed_out else f"exit {returncode}"
    _log_debug(f"  {tool.name} pass {pass_number}: {status} ({format_duration(elapsed_s)})")


def log_compilation_result(label: str, result, elapsed_s: float, verbose: bool = False) -> None:
    """
    Log a successful compilation.

    Args:
        label: Request label (document or project main file)
        result: CompileResult
        elapsed_s: Time taken to compile
        verbose: Show more warnings (default: False)
    """
    pages = f", {result.page_count} pages" if result.page_count is not None else ""
    _log_success(
        f"{label}: compiled with {result.tool} in {result.passes} pass(es), "
        f"{len(result.warnings)} warnings{pages} ({format_duration(elapsed_s)})"
    )

    if result.warnings:
        warning_limit = 10 if verbose else 3
        for i, warn in enumerate(result.warnings[:warning_limit], 1):
            _log_debug(f"  Warning {i}: {warn}")
        if len(result.warnings) > warning_limit:
            _log_debug(f"  ... and {len(result.warnings) - warning_limit} more warnings")


def log_compilation_failure(label: str, error, elapsed_s: float, verbose: bool = False) -> None:
    """
    Log a classified compilation failure with diagnostics.

    Use opt(raw=True) to bypass the format template for the multi-line build log.
    """
    _log_error(f"{label}: {error.kind.value} ({format_duration(elapsed_s)})")
    error_limit = 10 if verbose else 5
    for i, err in enumerate(error.errors[:error_limit], 1):
        _log_error(f"  Error {i}: {err}")
    if len(error.errors) > error_limit:
        _log_error(f"  ... and {len(error.errors) - error_limit} more errors")

    if error.log:
        logger.opt(raw=True).debug(f"\n{'=' * 80}\nBUILD LOG:\n{'=' * 80}\n{error.log}\n")


def log_cleanup_failed(workspace_root: Path, error: Exception) -> None:
    """Workspace removal failures are reported but never raised."""
    _log_warning(f"Failed to remove workspace {workspace_root}: {error}")
