"""
Preprocessing Context

Responsibilities:
- Detects commonly-used constructs (theorem environments, notation macros)
  that a LaTeX source references without defining
- Injects guarded fallback definitions before \\begin{document}

Owns: Source-to-source fallback patching
Never: Touches the filesystem or invokes TeX
"""

from quire.contexts.preprocessing.fallback_rules import (
    DEFAULT_FAMILIES,
    MATH_FAMILY,
    THEOREM_FAMILY,
    FallbackFamily,
    FallbackRule,
    macro_rule,
    theorem_rule,
)
from quire.contexts.preprocessing.patcher import apply_fallbacks, strip_markdown_fences

__all__ = [
    "apply_fallbacks",
    "strip_markdown_fences",
    # Rule catalog
    "FallbackRule",
    "FallbackFamily",
    "theorem_rule",
    "macro_rule",
    "THEOREM_FAMILY",
    "MATH_FAMILY",
    "DEFAULT_FAMILIES",
]
