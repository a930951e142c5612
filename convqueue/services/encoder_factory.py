"""
Selection of the encoder strategy for a source file.

The factory maps file extensions to strategy classes. Files with an unknown
extension are probed with ffprobe and offered to each registered class in
order through `accepts_probe`. The same file characteristics always select the
same class.
"""
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type

from loguru import logger

from ..domain.exceptions import ProbeError, UnsupportedFormatError
from ..domain.media import MediaProbe
from .audio_encoder import AudioEncoder
from .encoder_base import EncoderStrategy
from .remux_encoder import RemuxEncoder
from .video_encoder import VideoEncoder

DEFAULT_VARIANTS: List[Type[EncoderStrategy]] = [VideoEncoder, AudioEncoder, RemuxEncoder]


class EncoderStrategyFactory:
    """
    Creates a fresh `EncoderStrategy` for each source file.

    Args:
        output_dir: Passed to every strategy; None writes next to the source.
        variants: Strategy classes in priority order. Each is registered for
                  its `extensions`; the first class to claim an extension wins.
        sniff_content: Probe files with unknown extensions instead of
                       rejecting them outright.
    """

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        variants: Optional[Iterable[Type[EncoderStrategy]]] = None,
        sniff_content: bool = True,
    ):
        self.output_dir = output_dir
        self.sniff_content = sniff_content
        self.variants: List[Type[EncoderStrategy]] = list(
            DEFAULT_VARIANTS if variants is None else variants
        )
        self.by_extension: Dict[str, Type[EncoderStrategy]] = {}
        for variant in self.variants:
            for ext in variant.extensions:
                self.by_extension.setdefault(ext.lower(), variant)

    def register(self, variant: Type[EncoderStrategy], extensions: Iterable[str] = ()):
        """
        Adds a strategy class, optionally overriding the class for `extensions`.

        Extensions from the class's own `extensions` attribute only fill in
        gaps; extensions passed here replace existing mappings.
        """
        if variant not in self.variants:
            self.variants.append(variant)
        for ext in variant.extensions:
            self.by_extension.setdefault(ext.lower(), variant)
        for ext in extensions:
            ext = ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            self.by_extension[ext] = variant

    def select(self, source: Path) -> Type[EncoderStrategy]:
        """
        Returns the strategy class for `source` without instantiating it.

        Raises:
            UnsupportedFormatError: If no registered class handles the file.
        """
        variant = self.by_extension.get(source.suffix.lower())
        if variant is not None:
            return variant

        if not self.sniff_content:
            raise UnsupportedFormatError(f"Unsupported file type: {source.name}")

        try:
            probe = MediaProbe(source)
        except ProbeError as e:
            raise UnsupportedFormatError(f"Unsupported file: {source.name} ({e})") from e

        for variant in self.variants:
            if variant.accepts_probe(probe):
                logger.debug(
                    f"Selected {variant.__name__} for {source.name} by content ({probe.format_name})"
                )
                return variant
        raise UnsupportedFormatError(
            f"Unsupported file: {source.name} has no convertible streams ({probe.format_name or 'unknown format'})"
        )

    def create(self, source: Path) -> EncoderStrategy:
        variant = self.select(source)
        logger.debug(f"Using {variant.__name__} for {source.name}")
        return variant(output_dir=self.output_dir)
