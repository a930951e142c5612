"""
Helper functions for formatting data into human-readable strings.
"""

from datetime import timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional


def format_progress(progress: Optional[Decimal]) -> str:
    """
    Formats a progress percentage with exactly two decimals and no padding.

    For example ``Decimal("5")`` becomes ``"5.00"`` and ``Decimal("99.999")``
    becomes ``"100.00"``. Returns an empty string for None.
    """
    if progress is None:
        return ""
    return f"{Decimal(progress).quantize(Decimal('0.01'), rounding=ROUND_HALF_EVEN):.2f}"


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Returns "00:00:00" if the input is not a timedelta.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = int(td_object.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string (B, KB, MB, GB, TB).

    For example, 1536 becomes "1.50 KB" and 2097152 becomes "2 MB".
    """
    if size_bytes < 0:
        size_bytes = 0

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    factor = 1024.0

    if size_bytes == 0:
        return "0 B"

    for unit in units:
        if size_bytes < factor:
            if unit == "B":
                return f"{size_bytes} {unit}"
            return f"{size_bytes:.2f} {unit}".replace(".00", "")
        size_bytes /= factor

    return f"{size_bytes:.2f} {units[-1]}".replace(".00", "")
