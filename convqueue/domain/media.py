"""
Media probing through ffprobe.

`MediaProbe` runs ffprobe once (via the ffmpeg-python library) and exposes the
handful of facts the engine needs: the duration, used to turn ffmpeg's time
position into a percentage, and which kinds of streams exist, used by the
encoder factory to sniff files whose extension it does not know.
"""
import re
from pathlib import Path

import ffmpeg
from loguru import logger

from ..utils.ffmpeg_utils import tool_path
from .exceptions import ProbeError


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    Accepts a plain number of seconds (``"3600.5"``) or a timecode
    (``"01:00:00.500"``, hours optional). Returns 0.0 if parsing fails.
    """
    try:
        return float(duration_str)
    except (TypeError, ValueError):
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, str(duration_str).strip())
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            return float(hours * 3600 + int(minutes_str) * 60 + float(seconds_str))
        logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


class MediaProbe:
    """
    The probed properties of one media file.

    Attributes:
        path (Path): The probed file.
        probe (dict): The raw ffprobe output.
        duration (float): Duration in seconds, 0.0 when unknown.
        format_name (str): ffprobe's container format name, e.g. ``"matroska,webm"``.
        video_streams (list): Video stream dicts, excluding attached pictures.
        audio_streams (list): Audio stream dicts.
    """

    def __init__(self, path: Path):
        self.path = path
        if not path.is_file():
            raise ProbeError(f"File not found: {path}")
        try:
            self.probe: dict = ffmpeg.probe(str(path), cmd=tool_path("ffprobe"))
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            raise ProbeError(f"ffprobe failed for {path.name}: {stderr.strip() or e}") from e
        except FileNotFoundError as e:
            raise ProbeError("ffprobe executable not found") from e

        streams = self.probe.get("streams", [])
        self.video_streams = [
            s for s in streams
            if s.get("codec_type") == "video"
            and not s.get("disposition", {}).get("attached_pic")
        ]
        self.audio_streams = [s for s in streams if s.get("codec_type") == "audio"]
        fmt = self.probe.get("format", {})
        self.format_name: str = fmt.get("format_name", "")
        self.duration: float = self._find_duration(fmt, streams)

    @staticmethod
    def _find_duration(fmt: dict, streams: list) -> float:
        if fmt.get("duration"):
            return parse_duration(fmt["duration"])
        for stream in streams:
            if stream.get("duration"):
                return parse_duration(stream["duration"])
            tag_duration = stream.get("tags", {}).get("DURATION")
            if tag_duration:
                return parse_duration(tag_duration)
        return 0.0

    @property
    def has_video(self) -> bool:
        return bool(self.video_streams)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_streams)
