#!/usr/bin/env python3
"""
PDF Compilation CLI

Compiles LaTeX documents and multi-file projects to PDF through the QUIRE pipeline,
and previews the fallback patching applied before compilation.

Commands:
    compile  - Compile a single .tex document
    project  - Compile a multi-file project directory
    patch    - Print the patched source without compiling

Examples:\n

    compile_pdf.py compile notes.tex                          # Writes notes.pdf

    compile_pdf.py compile notes.tex --timeout 120 -o out.pdf # Longer budget, explicit output

    compile_pdf.py project thesis/ --main main.tex            # Multi-file project

    compile_pdf.py patch notes.tex                            # Show injected fallbacks
"""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from quire.contexts.preprocessing import apply_fallbacks, strip_markdown_fences
from quire.contexts.preprocessing.logger import setup_preprocessing_logger
from quire.contexts.rendering import (
    CompilationError,
    CompilationPipeline,
    CompileResult,
    load_pipeline_config,
    load_project_files,
)
from quire.contexts.rendering.config import LOGS_PATH
from quire.contexts.rendering.logger import setup_rendering_logger
from quire.utils.timestamp import now

load_dotenv()


app = typer.Typer(
    help="Compile LaTeX documents and projects to PDF with fallback patching and bounded diagnostics",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _make_pipeline(
    config_path: Optional[Path], timeout: Optional[float], verbose: bool
) -> CompilationPipeline:
    try:
        config = load_pipeline_config(config_path, timeout_s=timeout)
    except ValueError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    log_dir = LOGS_PATH / f"render_{now()}"
    setup_rendering_logger(log_dir, config, verbose=verbose)
    return CompilationPipeline(config, verbose=verbose)


def _report_success(result: CompileResult, output: Path, verbose: bool) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.pdf_bytes)

    typer.echo("")
    typer.secho("✓ Compilation succeeded", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Tool: {result.tool} ({result.passes} pass(es))")
    if result.page_count is not None:
        typer.echo(f"  Pages: {result.page_count}")
    typer.echo(f"  Warnings: {len(result.warnings)}")
    if verbose and result.warnings:
        for warning in result.warnings[:10]:  # Limit to first 10
            typer.echo(f"  - {warning}")
        if len(result.warnings) > 10:
            typer.echo(f"  ... and {len(result.warnings) - 10} more")
    typer.echo(f"  PDF: {output}")
    typer.echo("")


def _report_failure(error: CompilationError, verbose: bool) -> None:
    typer.echo("")
    typer.secho(
        f"✗ {error.message} [{error.kind.value}, status {error.status_code}]",
        fg=typer.colors.RED,
        bold=True,
    )

    if error.errors:
        typer.echo("\nErrors:")
        for err in error.errors[:10]:
            typer.secho(f"  - {err}", fg=typer.colors.RED)
        if len(error.errors) > 10:
            typer.echo(f"  ... and {len(error.errors) - 10} more")

    if error.log and verbose:
        typer.echo(f"\n{'=' * 80}\nBUILD LOG (tail)\n{'=' * 80}")
        typer.echo(error.log[-4000:])
    typer.echo("")


TimeoutOption = Annotated[
    Optional[float],
    typer.Option("--timeout", "-t", help="Wall-clock budget in seconds (default: QUIRE_TIMEOUT_S)", min=1),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML file overriding pipeline settings", exists=True, dir_okay=False),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging, warnings and the build log tail"),
]


@app.command("compile")
def compile_command(
    tex_file: Annotated[
        Path,
        typer.Argument(help="LaTeX document to compile", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF destination (default: next to the source)"),
    ] = None,
    strip_fences: Annotated[
        bool,
        typer.Option("--strip-fences", help="Remove a surrounding ``` fence before compiling"),
    ] = False,
    timeout: TimeoutOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Compile a single LaTeX document to PDF.

    Examples:\n

        $ compile_pdf.py compile notes.tex                  # Compile to notes.pdf

        $ compile_pdf.py compile draft.md --strip-fences    # Source wrapped in ``` fences
    """
    typer.secho(f"\nCompiling: {tex_file}", fg=typer.colors.BLUE, bold=True)

    source = tex_file.read_text(encoding="utf-8")
    if strip_fences:
        source = strip_markdown_fences(source)

    pipeline = _make_pipeline(config_path, timeout, verbose)
    try:
        result = pipeline.compile_document(source)
    except CompilationError as e:
        _report_failure(e, verbose)
        raise typer.Exit(code=1)

    _report_success(result, output or tex_file.with_suffix(".pdf"), verbose)


@app.command("project")
def project_command(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Project directory", exists=True, file_okay=False),
    ],
    main_file: Annotated[
        str,
        typer.Option("--main", "-m", help="Root document, relative to the project directory"),
    ] = "main.tex",
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF destination (default: <project>/<main>.pdf)"),
    ] = None,
    timeout: TimeoutOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Compile a multi-file LaTeX project to PDF.

    All files under the directory are sent; non-UTF-8 files are treated as binary assets.

    Examples:\n

        $ compile_pdf.py project thesis/ --main main.tex

        $ compile_pdf.py project slides/ --main src/deck.tex -o deck.pdf
    """
    typer.secho(f"\nCompiling project: {project_dir} (main: {main_file})", fg=typer.colors.BLUE, bold=True)

    files = [f for f in load_project_files(project_dir) if not f.path.endswith(".pdf")]
    typer.echo(f"Files: {len(files)}")

    pipeline = _make_pipeline(config_path, timeout, verbose)
    try:
        result = pipeline.compile_project(files, main_file)
    except CompilationError as e:
        _report_failure(e, verbose)
        raise typer.Exit(code=1)

    default_output = project_dir / Path(main_file).with_suffix(".pdf")
    _report_success(result, output or default_output, verbose)


@app.command("patch")
def patch_command(
    tex_file: Annotated[
        Path,
        typer.Argument(help="LaTeX document to patch", exists=True, dir_okay=False),
    ],
    in_place: Annotated[
        bool,
        typer.Option("--in-place", "-i", help="Overwrite the file instead of printing"),
    ] = False,
):
    """
    Print the source with fallback definitions injected (no compilation).

    Examples:\n

        $ compile_pdf.py patch notes.tex | diff notes.tex -
    """
    setup_preprocessing_logger(LOGS_PATH / f"patch_{now()}")

    source = tex_file.read_text(encoding="utf-8")
    patched = apply_fallbacks(source)

    if in_place:
        if patched != source:
            tex_file.write_text(patched, encoding="utf-8")
        typer.secho(
            "Patched." if patched != source else "Nothing to patch.",
            fg=typer.colors.GREEN,
            err=True,
        )
    else:
        typer.echo(patched, nl=False)


if __name__ == "__main__":
    app()
