"""
QUIRE - Quarantined Untrusted Input Rendering Engine

Turns LaTeX document source (a single document or a multi-file project) into a
compiled PDF, or a bounded, classified diagnostic when compilation fails.

Architecture:
- Preprocessing Context: Fallback definitions for commonly-missing constructs
- Rendering Context: Workspace materialization, toolchain supervision, diagnostics
"""

__version__ = "0.1.0"
