"""
Integration tests for rendering context - tests real LaTeX compilation.
"""

import shutil

import pytest

from quire.contexts.rendering import CompilationPipeline, CompileFailedError, PipelineConfig

# Check if a TeX toolchain is available
TEX_AVAILABLE = shutil.which("latexmk") is not None or shutil.which("pdflatex") is not None
skip_if_no_tex = pytest.mark.skipif(
    not TEX_AVAILABLE,
    reason="latexmk/pdflatex not installed - install TeX Live, MiKTeX, or MacTeX"
)


@pytest.fixture
def pipeline(tmp_path):
    return CompilationPipeline(PipelineConfig(tmp_root=str(tmp_path / "work"), timeout_s=120.0))


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_tex
def test_compile_document_needing_fallbacks(pipeline, tmp_path):
    """Document using undefined \\norm and theorem compiles after patching."""
    source = r"""
\documentclass{article}
\begin{document}
\begin{theorem}
For every vector $v$, $\norm{v} \geq 0$.
\end{theorem}
\end{document}
"""

    result = pipeline.compile_document(source)

    assert result.pdf_bytes.startswith(b"%PDF")
    assert result.page_count == 1
    assert r"\usepackage{amsthm}" in result.patched_source
    assert list((tmp_path / "work").iterdir()) == []


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_tex
def test_compile_with_intentional_error(pipeline):
    """Test that compilation properly detects and reports errors."""
    broken_source = r"""
\documentclass{article}
\begin{document}
\undefinedcommand
\end{document}
"""

    with pytest.raises(CompileFailedError) as exc_info:
        pipeline.compile_document(broken_source)

    error = exc_info.value
    assert error.status_code == 422
    assert "Undefined control sequence" in error.log
    assert any("Undefined control sequence" in e for e in error.errors)
