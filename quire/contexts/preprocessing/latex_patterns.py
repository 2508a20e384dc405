"""
LaTeX Pattern Constants

Centralized regex fragments used by the fallback patcher.
Organized into frozen dataclasses by category for immutability and clear grouping.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentPatterns:
    """
    Document-level LaTeX patterns.

    BEGIN_DOCUMENT is the only valid injection point for fallback definitions.
    """
    BEGIN_DOCUMENT: str = r'\\begin\s*\{document\}'
    # \usepackage[opts]{a,b,c} - group(1) is the comma-separated package list
    USEPACKAGE: str = r'\\usepackage\s*(?:\[[^\]]*\])?\s*\{([^}]*)\}'


@dataclass(frozen=True)
class DefinitionPatterns:
    """
    Templates for detecting existing definitions and usages of a construct.

    Each template is formatted with the escaped construct name.
    """
    BEGIN_ENVIRONMENT: str = r'\\begin\s*\{{{name}\}}'
    NEWTHEOREM: str = r'\\newtheorem\s*\*?\s*\{{{name}\}}'
    # \newenvironment{example}, \declaretheorem[style=definition]{example}
    ENVIRONMENT_DEFINITION: str = (
        r'\\(?:re)?newenvironment\s*\{{{name}\}}'
        r'|\\declaretheorem\s*(?:\[[^\]]*\])?\s*\{{{name}\}}'
    )
    # \newcommand{\abs}, \renewcommand*\abs, \providecommand{\abs}, \DeclareMathOperator{\abs}, ...
    COMMAND_DEFINITION: str = (
        r'\\(?:re)?(?:new|provide)command\s*\*?\s*\{{?\s*\\{name}(?![A-Za-z])'
        r'|\\(?:DeclareMathOperator|DeclarePairedDelimiter(?:X|XPP)?)\s*\*?\s*\{{?\s*\\{name}(?![A-Za-z])'
        r'|\\(?:[egx]?def|let)\s*\\{name}(?![A-Za-z])'
    )
    # \abs{...} when the macro takes an argument, bare \coloneqq otherwise
    COMMAND_WITH_ARGUMENT: str = r'\\{name}\s*\{{'
    COMMAND_BARE: str = r'\\{name}(?![A-Za-z@])'


def begin_document_match(source: str):
    """Return the first \\begin{document} match, or None."""
    return re.search(DocumentPatterns.BEGIN_DOCUMENT, source)


def loaded_packages(source: str) -> set:
    """Names of every package loaded with \\usepackage (options stripped)."""
    packages = set()
    for match in re.finditer(DocumentPatterns.USEPACKAGE, source):
        for name in match.group(1).split(','):
            name = name.strip()
            if name:
                packages.add(name)
    return packages
