"""
Pipeline configuration.

Environment defaults are read once at import (via .env when present) and
materialized into an explicit PipelineConfig that is passed to the pipeline.
Deep helpers never read the environment themselves.

Examples:
    # Environment defaults
    >>> config = load_pipeline_config()

    # YAML overrides on top of the environment (later wins)
    >>> config = load_pipeline_config(Path("configs/pipeline.yaml"))
"""

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()

DEFAULT_TIMEOUT_S = float(os.getenv("QUIRE_TIMEOUT_S", "60"))
DEFAULT_TMP_ROOT = os.getenv("QUIRE_TMP_ROOT") or None
DEFAULT_TOOL_PATH = os.getenv("QUIRE_TOOL_PATH") or None
DEFAULT_FULL_BUILD_TOOL = os.getenv("QUIRE_FULL_BUILD_TOOL", "latexmk")
DEFAULT_SINGLE_PASS_TOOL = os.getenv("QUIRE_SINGLE_PASS_TOOL", "pdflatex")
DEFAULT_SINGLE_PASS_RUNS = int(os.getenv("QUIRE_SINGLE_PASS_RUNS", "2"))
DEFAULT_MAX_LOG_CHARS = int(os.getenv("QUIRE_MAX_LOG_CHARS", "60000"))
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))

# Upper bound on single-pass reruns; keeps the time budget predictable
MAX_SINGLE_PASS_RUNS = 5

# Fixed names used by the single-document path
SINGLE_DOCUMENT_NAME = "main.tex"
SINGLE_DOCUMENT_PREFIX = "quire-tex-"
PROJECT_PREFIX = "quire-project-"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Explicit configuration for CompilationPipeline.

    Attributes:
        timeout_s: Default wall-clock budget per request (seconds)
        tmp_root: Parent directory for workspaces (None = system temp dir)
        tool_path: os.pathsep-separated directories to search for tools (None = PATH)
        full_build_tool: Executable name of the multi-pass driver
        single_pass_tool: Executable name of the engine used as fallback
        single_pass_runs: Engine passes when the driver is absent (1..5)
        max_log_chars: Size bound for returned logs (tail is kept)
    """

    timeout_s: float = DEFAULT_TIMEOUT_S
    tmp_root: Optional[str] = DEFAULT_TMP_ROOT
    tool_path: Optional[str] = DEFAULT_TOOL_PATH
    full_build_tool: str = DEFAULT_FULL_BUILD_TOOL
    single_pass_tool: str = DEFAULT_SINGLE_PASS_TOOL
    single_pass_runs: int = DEFAULT_SINGLE_PASS_RUNS
    max_log_chars: int = DEFAULT_MAX_LOG_CHARS

    def __post_init__(self):
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got: {self.timeout_s}")
        if not 1 <= self.single_pass_runs <= MAX_SINGLE_PASS_RUNS:
            raise ValueError(
                f"single_pass_runs must be between 1 and {MAX_SINGLE_PASS_RUNS}, "
                f"got: {self.single_pass_runs}"
            )
        if self.max_log_chars <= 0:
            raise ValueError(f"max_log_chars must be positive, got: {self.max_log_chars}")

    def with_overrides(self, **overrides) -> "PipelineConfig":
        """Copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_pipeline_config(config_path: Optional[Path] = None, **overrides) -> PipelineConfig:
    """
    Build a PipelineConfig from environment defaults, an optional YAML file and overrides.

    Args:
        config_path: Optional YAML file whose keys match PipelineConfig fields
        **overrides: Explicit values (None values are ignored)

    Returns:
        Validated PipelineConfig

    Raises:
        ValueError: If the YAML file contains unknown keys or values are out of range
    """
    merged = OmegaConf.create(asdict(PipelineConfig()))

    if config_path is not None:
        file_conf = OmegaConf.load(config_path)
        known = {f.name for f in fields(PipelineConfig)}
        unknown = set(file_conf.keys()) - known
        if unknown:
            raise ValueError(f"Unknown pipeline config keys in {config_path}: {sorted(unknown)}")
        merged = OmegaConf.merge(merged, file_conf)

    config = PipelineConfig(**OmegaConf.to_container(merged, resolve=True))
    return config.with_overrides(**overrides)
