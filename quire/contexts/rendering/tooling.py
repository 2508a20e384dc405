"""
Tool Availability Prober

Answers, at call time, whether the full-build driver and the single-pass engine
are installed. Lookup is local (shutil.which) and any failure counts as absent.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from quire.contexts.rendering.exceptions import ToolingMissingError
from quire.contexts.rendering.logger import _log_debug, _log_error

TOOLING_MISSING_MESSAGE = (
    "Neither the full-build tool nor the single-pass engine was found. "
    "Install TeX Live (latexmk, pdflatex) or set QUIRE_TOOL_PATH."
)


@dataclass(frozen=True)
class Toolchain:
    """
    Resolved executables for one request.

    Attributes:
        full_build: Absolute path of the multi-pass driver (e.g., latexmk), if present
        single_pass: Absolute path of the engine (e.g., pdflatex), if present
    """

    full_build: Optional[Path] = None
    single_pass: Optional[Path] = None

    @property
    def available(self) -> bool:
        return self.full_build is not None or self.single_pass is not None

    def describe(self) -> str:
        if self.full_build is not None:
            return self.full_build.name
        if self.single_pass is not None:
            return self.single_pass.name
        return "none"


def find_tool(name: str, search_path: Optional[str] = None) -> Optional[Path]:
    """
    Resolve an executable by name, or None.

    Args:
        name: Executable name (or path)
        search_path: os.pathsep-separated directories; None searches $PATH

    Returns:
        Absolute path of the executable, or None if absent or lookup fails
    """
    try:
        found = shutil.which(name, path=search_path)
    except (OSError, ValueError) as e:
        _log_debug(f"Lookup of {name} failed: {e}")
        return None
    # Not resolve(): engines like pdflatex are symlinks dispatched on argv[0]
    return Path(found).absolute() if found else None


def probe_toolchain(config) -> Toolchain:
    """Probe both tools named in a PipelineConfig."""
    toolchain = Toolchain(
        full_build=find_tool(config.full_build_tool, config.tool_path),
        single_pass=find_tool(config.single_pass_tool, config.tool_path),
    )
    _log_debug(
        f"Toolchain: {config.full_build_tool}={toolchain.full_build or 'absent'}, "
        f"{config.single_pass_tool}={toolchain.single_pass or 'absent'}"
    )
    return toolchain


def require_toolchain(config) -> Toolchain:
    """
    Probe both tools and fail fast when neither is installed.

    Raises:
        ToolingMissingError: If neither tool is available
    """
    toolchain = probe_toolchain(config)
    if not toolchain.available:
        _log_error(f"No LaTeX tooling: {config.full_build_tool} and {config.single_pass_tool} both absent")
        raise ToolingMissingError(TOOLING_MISSING_MESSAGE)
    return toolchain
