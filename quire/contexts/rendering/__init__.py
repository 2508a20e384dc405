"""
Rendering Context

Responsibilities:
- Materializes source files into an isolated, per-request workspace
- Probes for the LaTeX toolchain (latexmk, falling back to pdflatex)
- Compiles to PDF under a hard time budget
- Classifies failures and returns bounded diagnostic logs

Owns: Workspace lifecycle, LaTeX compilation, failure classification
Never: Persists artifacts or keeps state between requests
"""

from quire.contexts.rendering.config import PipelineConfig, load_pipeline_config
from quire.contexts.rendering.exceptions import (
    CompilationError,
    CompileFailedError,
    CompileTimeoutError,
    FailureKind,
    InvalidSourceFileError,
    MainFileNotFoundError,
    NoFilesError,
    ToolingMissingError,
)
from quire.contexts.rendering.pipeline import (
    CompilationPipeline,
    CompileResult,
    compile_document,
    compile_project,
)
from quire.contexts.rendering.workspace import SourceFile, load_project_files

__all__ = [
    # Entry points
    "CompilationPipeline",
    "compile_document",
    "compile_project",
    "CompileResult",
    "SourceFile",
    "load_project_files",
    # Configuration
    "PipelineConfig",
    "load_pipeline_config",
    # Failure taxonomy
    "FailureKind",
    "CompilationError",
    "ToolingMissingError",
    "NoFilesError",
    "MainFileNotFoundError",
    "InvalidSourceFileError",
    "CompileFailedError",
    "CompileTimeoutError",
]
