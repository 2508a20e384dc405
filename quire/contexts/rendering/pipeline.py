"""
Pipeline Facade

Composes the fallback patcher, workspace materializer, tool prober, compilation
orchestrator and diagnostic extractor into the two public operations:

    compile_document(source)             single LaTeX document -> PDF
    compile_project(files, main_file)    multi-file project    -> PDF

Every request gets its own workspace, which is removed on every exit path.
Failures are raised as CompilationError subclasses (see exceptions.py).
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from quire.contexts.preprocessing import apply_fallbacks
from quire.contexts.rendering.compiler import compile_latex
from quire.contexts.rendering.config import (
    PROJECT_PREFIX,
    SINGLE_DOCUMENT_NAME,
    SINGLE_DOCUMENT_PREFIX,
    PipelineConfig,
    load_pipeline_config,
)
from quire.contexts.rendering.diagnostics import extract_failure, extract_success_log
from quire.contexts.rendering.exceptions import (
    CompilationError,
    MainFileNotFoundError,
    NoFilesError,
)
from quire.contexts.rendering.logger import (
    _log_debug,
    log_compilation_failure,
    log_compilation_result,
    log_compilation_start,
)
from quire.contexts.rendering.tooling import Toolchain, require_toolchain
from quire.contexts.rendering.workspace import (
    SourceFile,
    Workspace,
    normalize_relative_path,
    open_workspace,
    validate_source_files,
)
from quire.utils.pdf_processing import page_count


@dataclass
class CompileResult:
    """
    Result of a successful compilation.

    Attributes:
        pdf_bytes: The rendered PDF
        log: Bounded build log (console output plus the engine's .log)
        patched_source: Exact source compiled (single-document path only)
        tool: Name of the tool that produced the PDF
        passes: Number of tool invocations
        warnings: LaTeX warnings parsed from the log
        page_count: Pages in the PDF (None if unreadable)
        elapsed_s: Wall-clock duration of the toolchain run
    """

    pdf_bytes: bytes
    log: str
    patched_source: Optional[str] = None
    tool: str = ""
    passes: int = 0
    warnings: List[str] = field(default_factory=list)
    page_count: Optional[int] = None
    elapsed_s: float = 0.0


class CompilationPipeline:
    """
    Stateless compilation service; safe to share across concurrent requests.

    Args:
        config: Explicit configuration (defaults to load_pipeline_config())
        verbose: Log more warnings/errors per request

    Example:
        >>> pipeline = CompilationPipeline(PipelineConfig(timeout_s=30))
        >>> result = pipeline.compile_document(r"\\documentclass{article}...")
        >>> Path("out.pdf").write_bytes(result.pdf_bytes)
    """

    def __init__(self, config: Optional[PipelineConfig] = None, verbose: bool = False):
        self.config = config if config is not None else load_pipeline_config()
        self.verbose = verbose

    def _budget(self, timeout_s: Optional[float]) -> float:
        budget = self.config.timeout_s if timeout_s is None else timeout_s
        if budget <= 0:
            raise ValueError(f"timeout_s must be positive, got: {budget}")
        return budget

    def compile_document(self, source: str, timeout_s: Optional[float] = None) -> CompileResult:
        """
        Patch, materialize and compile a single LaTeX document.

        Args:
            source: Complete LaTeX document source
            timeout_s: Wall-clock budget override (seconds)

        Returns:
            CompileResult including the patched source that was compiled

        Raises:
            ToolingMissingError: No LaTeX tool installed
            CompileFailedError: The toolchain produced no PDF (log attached)
            CompileTimeoutError: The budget was exceeded (log attached)
        """
        budget = self._budget(timeout_s)
        patched = apply_fallbacks(source)
        toolchain = require_toolchain(self.config)

        with open_workspace(SINGLE_DOCUMENT_PREFIX, self.config.tmp_root) as workspace:
            main_file = workspace.write_file(SourceFile(path=SINGLE_DOCUMENT_NAME, content=patched))
            result = self._run(
                workspace, main_file, toolchain, budget, label="LaTeX", display=SINGLE_DOCUMENT_NAME
            )

        result.patched_source = patched
        return result

    def compile_project(
        self,
        files: Sequence[Union[SourceFile, Dict]],
        main_file: str,
        timeout_s: Optional[float] = None,
    ) -> CompileResult:
        """
        Materialize and compile a multi-file LaTeX project.

        Validation (non-empty file list, main file present, safe paths) happens
        before any I/O. Every text .tex file is patched; binary assets never are.
        The toolchain runs in the main file's directory.

        Args:
            files: SourceFiles or {path, content, isBinary} dicts
            main_file: Workspace-relative path of the root document
            timeout_s: Wall-clock budget override (seconds)

        Returns:
            CompileResult (patched_source is not set for projects)

        Raises:
            NoFilesError: Empty file list
            MainFileNotFoundError: main_file not among files
            InvalidSourceFileError: Unsafe path or undecodable binary content
            ToolingMissingError, CompileFailedError, CompileTimeoutError: As for documents
        """
        if not files:
            raise NoFilesError("No files provided.")

        source_files = [f if isinstance(f, SourceFile) else SourceFile.from_dict(f) for f in files]
        validate_source_files(source_files)

        main_path = normalize_relative_path(main_file)
        if not any(normalize_relative_path(f.path) == main_path for f in source_files):
            raise MainFileNotFoundError(f'Main file "{main_file}" not found in provided files.')

        budget = self._budget(timeout_s)
        prepared = [
            SourceFile(path=f.path, content=apply_fallbacks(f.content), is_binary=False) if f.is_tex else f
            for f in source_files
        ]
        toolchain = require_toolchain(self.config)

        with open_workspace(PROJECT_PREFIX, self.config.tmp_root) as workspace:
            workspace.write_files(prepared)
            result = self._run(
                workspace,
                workspace.resolve(main_path),
                toolchain,
                budget,
                label="Multi-file LaTeX",
                display=main_path,
            )
        return result

    def _run(
        self,
        workspace: Workspace,
        main_file: Path,
        toolchain: Toolchain,
        budget: float,
        label: str,
        display: str,
    ) -> CompileResult:
        """Orchestrate, then turn the run into a result or a classified error."""
        log_compilation_start(display, main_file, budget, workspace.root)
        start_time = time.monotonic()

        try:
            compilation = compile_latex(
                main_file,
                toolchain,
                timeout_s=budget,
                single_pass_runs=self.config.single_pass_runs,
            )
            elapsed_s = time.monotonic() - start_time

            if not compilation.success:
                raise extract_failure(compilation, self.config.max_log_chars, label=label)
        except CompilationError as e:
            log_compilation_failure(display, e, time.monotonic() - start_time, verbose=self.verbose)
            raise

        pdf_bytes = compilation.pdf_path.read_bytes()
        log, warnings = extract_success_log(compilation, self.config.max_log_chars)
        result = CompileResult(
            pdf_bytes=pdf_bytes,
            log=log,
            tool=compilation.tool,
            passes=compilation.passes,
            warnings=warnings,
            page_count=page_count(pdf_bytes),
            elapsed_s=elapsed_s,
        )
        log_compilation_result(display, result, elapsed_s, verbose=self.verbose)
        _log_debug(f"  PDF: {len(pdf_bytes)} bytes")
        return result


def compile_document(
    source: str,
    timeout_s: Optional[float] = None,
    config: Optional[PipelineConfig] = None,
) -> CompileResult:
    """Compile a single document with an environment-configured pipeline."""
    return CompilationPipeline(config).compile_document(source, timeout_s=timeout_s)


def compile_project(
    files: Sequence[Union[SourceFile, Dict]],
    main_file: str,
    timeout_s: Optional[float] = None,
    config: Optional[PipelineConfig] = None,
) -> CompileResult:
    """Compile a multi-file project with an environment-configured pipeline."""
    return CompilationPipeline(config).compile_project(files, main_file, timeout_s=timeout_s)
