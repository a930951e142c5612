"""
AudioEncoder: converts audio files to Opus.
"""
from typing import List

from ..config.media import (
    AUDIO_BIT_RATE,
    AUDIO_CODEC,
    AUDIO_CONTAINER_EXTENSION,
    AUDIO_EXTENSIONS,
)
from ..domain.exceptions import EncodeError
from ..domain.media import MediaProbe
from .encoder_base import FFmpegEncoder


class AudioEncoder(FFmpegEncoder):
    """
    Encodes the first audio stream of a file to Opus.

    Cover art and any other non-audio streams are dropped.
    """

    extensions = AUDIO_EXTENSIONS
    container_extension = AUDIO_CONTAINER_EXTENSION

    def __init__(self, *args, bit_rate: int = AUDIO_BIT_RATE, **kwargs):
        super().__init__(*args, **kwargs)
        self.bit_rate = bit_rate

    @classmethod
    def accepts_probe(cls, probe: MediaProbe) -> bool:
        return probe.has_audio and not probe.has_video

    def validate(self, probe: MediaProbe):
        if not probe.has_audio:
            raise EncodeError(f"No audio stream found in {probe.path.name}")

    def codec_arguments(self, probe: MediaProbe) -> List[str]:
        return ["-vn", "-map", "0:a:0", "-c:a", AUDIO_CODEC, "-b:a", str(self.bit_rate)]
