"""
Shared utilities for QUIRE.

Common functionality used across contexts:
- Logger setup
- PDF inspection
- Timestamps
"""

from quire.utils.pdf_processing import page_count
from quire.utils.timestamp import format_duration, now, now_exact

__all__ = ["page_count", "format_duration", "now", "now_exact"]
