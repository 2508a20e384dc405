"""
Fallback Patcher

Injects missing theorem-environment and notation-macro definitions into LaTeX source
so that documents referencing commonly-assumed constructs still compile.

Guarantees:
- Only constructs that are used and not already defined are injected
- Injection happens only immediately before \\begin{document}; without it, no-op
- Each family block starts with a marker comment, so re-patching is a no-op
- Every definition is guarded (\\providecommand, \\ifcsname) and inert if already bound
- Never raises; on any unexpected error the input is returned unchanged
"""

from typing import Iterable, List

from quire.contexts.preprocessing.fallback_rules import DEFAULT_FAMILIES, FallbackFamily
from quire.contexts.preprocessing.latex_patterns import begin_document_match
from quire.contexts.preprocessing.logger import _log_debug, log_patch_applied, log_patch_failed


def build_family_block(family: FallbackFamily, source: str) -> str:
    """
    Build the injection block for one family, or "" when nothing is needed.

    Args:
        family: Family whose pending rules should be injected
        source: Current document source

    Returns:
        Newline-terminated block (marker, optional package, definitions) or ""
    """
    if family.is_applied(source):
        _log_debug(f"{family.name} fallbacks already present, skipping")
        return ""

    pending = family.pending_rules(source)
    if not pending:
        return ""

    lines: List[str] = [family.marker]
    with_package = family.needs_package(source)
    if with_package:
        lines.append(f"\\usepackage{{{family.required_package}}}")
    lines.extend(rule.injection for rule in pending)

    log_patch_applied(family.name, [rule.name for rule in pending], with_package)
    return "\n".join(lines) + "\n"


def inject_family(source: str, family: FallbackFamily) -> str:
    """Splice one family block in front of \\begin{document}, if applicable."""
    match = begin_document_match(source)
    if match is None:
        return source

    block = build_family_block(family, source)
    if not block:
        return source

    insert_at = match.start()
    return f"{source[:insert_at]}{block}\n{source[insert_at:]}"


def apply_fallbacks(source: str, families: Iterable[FallbackFamily] = DEFAULT_FAMILIES) -> str:
    """
    Return source that is strictly more likely to compile.

    Families are applied in order (theorem environments, then math macros by
    default). Documents that are already self-sufficient come back byte-identical.

    Args:
        source: Raw LaTeX source
        families: Fallback families to apply

    Returns:
        Patched source, or the input unchanged
    """
    if not isinstance(source, str):
        return source

    try:
        if begin_document_match(source) is None:
            _log_debug("No \\begin{document} found, skipping fallbacks")
            return source

        patched = source
        for family in families:
            patched = inject_family(patched, family)
        return patched
    except Exception as e:
        log_patch_failed(e)
        return source


def strip_markdown_fences(text: str) -> str:
    """
    Remove a surrounding ``` fence pair from pasted or generated source.

    Only the outermost fence is removed, including an optional language tag
    on the opening line. Text without a leading fence is returned stripped.
    """
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    lines = stripped.split("\n")
    lines.pop(0)
    if lines and lines[-1].strip() == "```":
        lines.pop()
    return "\n".join(lines).strip()
