"""Timestamp formatting utilities."""

from datetime import datetime


def now() -> str:
    """Filesystem-safe timestamp for log directory names (e.g., 20251114_123456)."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """ISO 8601 timestamp with microseconds."""
    return datetime.now().isoformat()


def format_duration(seconds: float) -> str:
    """
    Format an elapsed time compactly.

    Examples:
        format_duration(0.42)   # "420ms"
        format_duration(3.2)    # "3.20s"
        format_duration(75)     # "1m 15s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"
