"""
VideoEncoder: re-encodes video files to AV1 with Opus audio in a Matroska
container.
"""
from typing import List

from ..config.media import (
    AUDIO_BIT_RATE,
    AUDIO_CODEC,
    VIDEO_CODEC,
    VIDEO_CONTAINER_EXTENSION,
    VIDEO_CRF,
    VIDEO_EXTENSIONS,
    VIDEO_PRESET,
)
from ..domain.exceptions import EncodeError
from ..domain.media import MediaProbe
from .encoder_base import FFmpegEncoder


class VideoEncoder(FFmpegEncoder):
    """
    The default strategy for video sources.

    Keeps the first video stream and every audio stream. Subtitles and data
    streams are dropped because their codecs often cannot be carried over
    unchanged.
    """

    extensions = VIDEO_EXTENSIONS
    container_extension = VIDEO_CONTAINER_EXTENSION

    @classmethod
    def accepts_probe(cls, probe: MediaProbe) -> bool:
        return probe.has_video

    def validate(self, probe: MediaProbe):
        if not probe.has_video:
            raise EncodeError(f"No video stream found in {probe.path.name}")

    def codec_arguments(self, probe: MediaProbe) -> List[str]:
        args = ["-map", "0:v:0", "-map", "0:a?"]
        args.extend(["-c:v", VIDEO_CODEC, "-crf", str(VIDEO_CRF), "-preset", str(VIDEO_PRESET)])
        if probe.has_audio:
            args.extend(["-c:a", AUDIO_CODEC, "-b:a", str(AUDIO_BIT_RATE)])
        return args
