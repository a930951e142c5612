"""
RemuxEncoder: copies every stream into a new Matroska file without
re-encoding.
"""
from typing import List

from ..config.media import REMUX_EXTENSIONS
from ..domain.media import MediaProbe
from .encoder_base import FFmpegEncoder


class RemuxEncoder(FFmpegEncoder):
    """Used for containers whose streams are already efficiently encoded."""

    extensions = REMUX_EXTENSIONS
    container_extension = ".mkv"

    def codec_arguments(self, probe: MediaProbe) -> List[str]:
        return ["-map", "0", "-c", "copy"]
