"""
Utility functions and classes for chat-graph.
"""

from datetime import timedelta


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKCYAN = "\033[96m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"
    UNDERLINE = "\033[4m"


def format_duration(duration: timedelta) -> str:
    """
    Format an elapsed duration for run summaries.

    Args:
        duration: Elapsed time.

    Returns:
        "1.23s" below a minute, "2m 05s" below an hour, else "1h 02m 05s".
    """
    total = duration.total_seconds()
    if total < 60:
        return f"{total:.2f}s"

    minutes, seconds = divmod(int(total), 60)
    if minutes < 60:
        return f"{minutes}m {seconds:02d}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m {seconds:02d}s"


def format_message_count(count: int) -> str:
    """
    Format message count with appropriate units.

    Args:
        count: Number of messages.

    Returns:
        Formatted string (e.g., "1,234" or "1.2K").
    """
    if count < 1000:
        return str(count)
    elif count < 1_000_000:
        return f"{count / 1000:.1f}K"
    else:
        return f"{count / 1_000_000:.1f}M"
