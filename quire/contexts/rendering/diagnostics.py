"""
Diagnostic Extractor

Assembles the bounded build log returned to callers and classifies failures.

Order of operations matters: the tool's own .log file is appended to the captured
console output, classification runs on the full text, and only then is the text
cut down to its tail for transport.
"""

import re
from typing import List, Tuple

from quire.contexts.rendering.compiler import TIMEOUT_MARKER, CompilationRun
from quire.contexts.rendering.exceptions import (
    CompilationError,
    CompileFailedError,
    CompileTimeoutError,
    FailureKind,
)

# Substrings that identify a budget overrun in captured output
TIMEOUT_MARKERS = (f"[quire] {TIMEOUT_MARKER}", "ETIMEDOUT")


def parse_latex_log(log_content: str) -> Tuple[List[str], List[str]]:
    """
    Parse LaTeX output for errors and warnings.

    Args:
        log_content: Console output and/or contents of the .log file

    Returns:
        Tuple of (errors, warnings), de-duplicated in order of appearance
    """
    errors: List[str] = []
    warnings: List[str] = []

    # TeX error pattern: "! Error message"
    for match in re.finditer(r"^! (.+)$", log_content, re.MULTILINE):
        errors.append(match.group(1).strip())

    # -file-line-error style: "./main.tex:12: Undefined control sequence."
    for match in re.finditer(r"^[^\s:]+\.tex:\d+: (.+)$", log_content, re.MULTILINE):
        errors.append(match.group(0).strip())

    # Additional error patterns that don't start with "!"
    for pattern in [r"File ended while scanning use of", r"Emergency stop"]:
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match:
            errors.append(match.group(1).strip())

    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]
    for pattern in warning_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            warnings.append(match.group(1).strip())

    return _unique(errors), _unique(warnings)


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def trim_log(text: str, max_chars: int) -> str:
    """Keep the last max_chars characters; typesetting errors sit near the end."""
    if len(text) <= max_chars:
        return text
    return text[-max_chars:]


def collect_log(compilation: CompilationRun) -> str:
    """
    Captured console output followed by the tool's own log file, if it exists.

    pdflatex writes its .log in latin-1 (font metadata is not UTF-8).
    """
    log = compilation.output
    log_path = compilation.tool_log_path
    if log_path.is_file():
        log += f"\n\n----- {log_path.name} -----\n"
        log += log_path.read_text(encoding="latin-1")
    return log


def classify_failure(full_log: str, timed_out: bool) -> FailureKind:
    """TIMEOUT if the runner hit the deadline or the text carries a timeout marker."""
    if timed_out or any(marker in full_log for marker in TIMEOUT_MARKERS):
        return FailureKind.TIMEOUT
    return FailureKind.COMPILE_FAILED


def extract_failure(compilation: CompilationRun, max_chars: int, label: str = "LaTeX") -> CompilationError:
    """
    Build the classified exception for a run that produced no PDF.

    Args:
        compilation: The failed run
        max_chars: Bound on the returned log
        label: Prefix for the human message (e.g., "Multi-file LaTeX")

    Returns:
        CompileTimeoutError or CompileFailedError carrying the trimmed log
    """
    full_log = collect_log(compilation)
    if not full_log.strip():
        full_log = f"{compilation.tool} produced no output and no PDF.\n"
    kind = classify_failure(full_log, compilation.timed_out)
    errors, _ = parse_latex_log(full_log)
    if not errors:
        errors.append("PDF file was not generated")
    trimmed = trim_log(full_log, max_chars)

    if kind is FailureKind.TIMEOUT:
        return CompileTimeoutError(f"{label} compilation timed out.", log=trimmed, errors=errors)
    return CompileFailedError(f"{label} compilation failed.", log=trimmed, errors=errors)


def extract_success_log(compilation: CompilationRun, max_chars: int) -> Tuple[str, List[str]]:
    """Trimmed build log and parsed warnings for a successful run."""
    full_log = collect_log(compilation)
    _, warnings = parse_latex_log(full_log)
    return trim_log(full_log, max_chars), warnings
