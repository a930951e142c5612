"""
Helpers for working with the ffmpeg command-line tools.

Covers locating the executables (honouring the ``paths.ffmpeg_dir`` user
setting), producing a copy-pasteable rendering of a command for logs, and
turning the ``key=value`` lines ffmpeg writes with ``-progress pipe:1`` into a
percentage.
"""

import os
import shlex
import subprocess
from decimal import Decimal
from typing import List, Optional

from loguru import logger

from ..config import common


def tool_path(name: str) -> str:
    """
    Returns the executable to run for `name` ("ffmpeg" or "ffprobe").

    When a tool directory is configured the full path inside it is returned,
    otherwise the bare name is returned and resolved through PATH.
    """
    if common.MODULE_PATH is None:
        return name
    executable = f"{name}.exe" if os.name == "nt" else name
    return str(common.MODULE_PATH / executable)


def display_command(cmd_list: List[str]) -> str:
    """Renders a command list the way it would be typed in the current shell."""
    try:
        if os.name == "nt":
            return subprocess.list2cmdline(cmd_list)
        return shlex.join(cmd_list)
    except TypeError as e:
        logger.warning(f"Could not format command list for display: {e}. Using simple join.")
        return " ".join(map(str, cmd_list))


def parse_out_time_seconds(key: str, value: str) -> Optional[float]:
    """
    Extracts the current output position in seconds from one progress field.

    ffmpeg reports the position three ways; ``out_time_ms`` is in microseconds
    despite its name, exactly like ``out_time_us``.

    Returns:
        The position in seconds, or None if the field is not a position or its
        value is not available yet (``N/A``).
    """
    value = value.strip()
    if not value or value == "N/A":
        return None
    try:
        if key in ("out_time_us", "out_time_ms"):
            return int(value) / 1_000_000
        if key == "out_time":
            hours, minutes, seconds = value.split(":")
            return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    except ValueError:
        logger.trace(f"Unparseable progress field {key}={value}")
    return None


class ProgressParser:
    """
    Converts ffmpeg ``-progress`` output into a non-decreasing percentage.

    Feed every stdout line to `feed`; it returns a new percentage whenever the
    position advanced, and None otherwise.

    Args:
        duration: Total duration of the source in seconds. With a duration of
                  0 (unknown) no percentages are produced.
    """

    def __init__(self, duration: float):
        self.duration = duration
        self.last_percent: Optional[Decimal] = None
        self.finished = False

    def feed(self, line: str) -> Optional[Decimal]:
        key, sep, value = line.strip().partition("=")
        if not sep:
            return None
        if key == "progress":
            self.finished = value.strip() == "end"
            return None
        if self.duration <= 0:
            return None
        position = parse_out_time_seconds(key, value)
        if position is None or position < 0:
            return None
        percent = Decimal(str(round(min(position / self.duration, 1.0) * 100, 2)))
        if self.last_percent is not None and percent <= self.last_percent:
            return None
        self.last_percent = percent
        return percent
