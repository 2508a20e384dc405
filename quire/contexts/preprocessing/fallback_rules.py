"""
Fallback definitions for constructs that LaTeX sources commonly use without defining.

Each FallbackRule pairs a usage predicate with an already-defined predicate and the
guarded definition to inject. Rules are grouped into FallbackFamily objects; each
family becomes one marked block in the patched preamble.

Detection is regex-based and therefore heuristic. In particular, a source that merely
contains a definition keyword for a construct (e.g. a malformed \\newtheorem{lemma})
is trusted as already defining it, and no fallback is injected for that construct.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Tuple

from quire.contexts.preprocessing.latex_patterns import DefinitionPatterns, loaded_packages


@dataclass(frozen=True)
class FallbackRule:
    """
    One optional macro or environment that may need a fallback definition.

    Attributes:
        name: Construct name without backslash (e.g., 'lemma', 'abs')
        trigger: Pattern that matches a usage of the construct
        satisfied: Pattern that matches an existing definition of the construct
        injection: Guarded LaTeX definition, inert if the construct is already bound
    """

    name: str
    trigger: Pattern
    satisfied: Pattern
    injection: str

    def is_used(self, source: str) -> bool:
        return self.trigger.search(source) is not None

    def is_defined(self, source: str) -> bool:
        return self.satisfied.search(source) is not None

    def needs_injection(self, source: str) -> bool:
        """Used but not already defined."""
        return self.is_used(source) and not self.is_defined(source)


@dataclass(frozen=True)
class PackageProvidedRule(FallbackRule):
    """
    Macro rule that is also satisfied when any of the given packages is loaded.

    Example: \\coloneqq is defined by mathtools and colonequals.
    """

    providing_packages: Tuple[str, ...] = ()

    def is_defined(self, source: str) -> bool:
        if super().is_defined(source):
            return True
        return bool(loaded_packages(source) & set(self.providing_packages))


@dataclass(frozen=True)
class FallbackFamily:
    """
    A group of rules injected together as one marked block.

    Attributes:
        name: Family identifier used in logs
        marker: Comment line written first in the block; its presence means the
            family was already applied
        rules: Rules in injection order
        required_package: Package the definitions depend on (loaded unless present)
    """

    name: str
    marker: str
    rules: Tuple[FallbackRule, ...] = field(default_factory=tuple)
    required_package: Optional[str] = None

    def is_applied(self, source: str) -> bool:
        return self.marker in source

    def pending_rules(self, source: str) -> Tuple[FallbackRule, ...]:
        return tuple(rule for rule in self.rules if rule.needs_injection(source))

    def needs_package(self, source: str) -> bool:
        return self.required_package is not None and self.required_package not in loaded_packages(source)


def _pattern(template: str, name: str) -> Pattern:
    return re.compile(template.format(name=re.escape(name)))


def theorem_rule(name: str, title: str) -> FallbackRule:
    """Theorem-like environment, defined with \\newtheorem only when not already bound."""
    satisfied = re.compile(
        _pattern(DefinitionPatterns.NEWTHEOREM, name).pattern
        + "|"
        + _pattern(DefinitionPatterns.ENVIRONMENT_DEFINITION, name).pattern
    )
    return FallbackRule(
        name=name,
        trigger=_pattern(DefinitionPatterns.BEGIN_ENVIRONMENT, name),
        satisfied=satisfied,
        injection=rf"\ifcsname {name}\endcsname\else\newtheorem{{{name}}}{{{title}}}\fi",
    )


def macro_rule(
    name: str,
    definition: str,
    num_args: int = 0,
    providing_packages: Tuple[str, ...] = (),
) -> FallbackRule:
    """Notation macro, defined with \\providecommand so an existing binding wins."""
    trigger_template = (
        DefinitionPatterns.COMMAND_WITH_ARGUMENT if num_args else DefinitionPatterns.COMMAND_BARE
    )
    arity = f"[{num_args}]" if num_args else ""
    kwargs = dict(
        name=name,
        trigger=_pattern(trigger_template, name),
        satisfied=_pattern(DefinitionPatterns.COMMAND_DEFINITION, name),
        injection="\\providecommand{\\" + name + "}" + arity + "{" + definition + "}",
    )
    if providing_packages:
        return PackageProvidedRule(providing_packages=tuple(providing_packages), **kwargs)
    return FallbackRule(**kwargs)


THEOREM_FAMILY = FallbackFamily(
    name="theorems",
    marker="% QUIRE_THEOREM_FALLBACKS",
    required_package="amsthm",
    rules=(
        theorem_rule("definition", "Definition"),
        theorem_rule("theorem", "Theorem"),
        theorem_rule("lemma", "Lemma"),
        theorem_rule("proposition", "Proposition"),
        theorem_rule("corollary", "Corollary"),
        theorem_rule("example", "Example"),
        theorem_rule("remark", "Remark"),
        theorem_rule("obs", "Observation"),
    ),
)

MATH_FAMILY = FallbackFamily(
    name="math",
    marker="% QUIRE_MATH_FALLBACKS",
    rules=(
        macro_rule("abs", r"\left|#1\right|", num_args=1),
        macro_rule("norm", r"\left\|#1\right\|", num_args=1),
        macro_rule(
            "coloneqq", r"\mathrel{:=}", providing_packages=("mathtools", "colonequals")
        ),
        macro_rule("generated", r"(\min\{#1\},\max\{#1\})", num_args=1),
    ),
)

# Applied in order; each family produces its own block before \begin{document}
DEFAULT_FAMILIES: Tuple[FallbackFamily, ...] = (THEOREM_FAMILY, MATH_FAMILY)
