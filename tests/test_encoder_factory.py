"""
Tests for strategy selection by extension and by probed content.
"""
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from convqueue.domain.exceptions import ProbeError, UnsupportedFormatError
from convqueue.services.audio_encoder import AudioEncoder
from convqueue.services.encoder_factory import EncoderStrategyFactory
from convqueue.services.remux_encoder import RemuxEncoder
from convqueue.services.video_encoder import VideoEncoder

PROBE_TARGET = "convqueue.services.encoder_factory.MediaProbe"


def fake_probe(has_video=False, has_audio=False, format_name="unknown"):
    return SimpleNamespace(has_video=has_video, has_audio=has_audio, format_name=format_name)


class TestSelectByExtension:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("movie.mp4", VideoEncoder),
            ("MOVIE.MOV", VideoEncoder),
            ("song.flac", AudioEncoder),
            ("voice.m4a", AudioEncoder),
            ("clip.mkv", RemuxEncoder),
            ("clip.webm", RemuxEncoder),
        ],
    )
    def test_known_extensions(self, tmp_path, name, expected):
        factory = EncoderStrategyFactory()

        assert factory.select(tmp_path / name) is expected

    def test_same_extension_always_selects_same_class(self, tmp_path):
        factory = EncoderStrategyFactory()

        first = factory.select(tmp_path / "a.mp4")
        second = factory.select(tmp_path / "b.mp4")

        assert first is second

    def test_create_returns_fresh_instances(self, tmp_path):
        factory = EncoderStrategyFactory(output_dir=tmp_path / "out")

        first = factory.create(tmp_path / "a.mp4")
        second = factory.create(tmp_path / "a.mp4")

        assert isinstance(first, VideoEncoder)
        assert first is not second
        assert first.output_dir == tmp_path / "out"
        assert not first.was_terminated

    def test_register_overrides_extension(self, tmp_path):
        factory = EncoderStrategyFactory()

        factory.register(RemuxEncoder, extensions=["MP4", ".mov"])

        assert factory.select(tmp_path / "a.mp4") is RemuxEncoder
        assert factory.select(tmp_path / "a.mov") is RemuxEncoder
        assert factory.select(tmp_path / "a.avi") is VideoEncoder

    def test_custom_variants(self, tmp_path):
        factory = EncoderStrategyFactory(variants=[AudioEncoder], sniff_content=False)

        assert factory.select(tmp_path / "a.wav") is AudioEncoder
        with pytest.raises(UnsupportedFormatError):
            factory.select(tmp_path / "a.mp4")


class TestSelectByContent:
    def test_unknown_extension_without_sniffing_is_unsupported(self, tmp_path):
        factory = EncoderStrategyFactory(sniff_content=False)

        with patch(PROBE_TARGET) as probe_cls:
            with pytest.raises(UnsupportedFormatError, match="Unsupported file type: notes.txt"):
                factory.select(tmp_path / "notes.txt")

        probe_cls.assert_not_called()

    def test_video_content_selects_video_encoder(self, tmp_path):
        factory = EncoderStrategyFactory()

        with patch(PROBE_TARGET, return_value=fake_probe(has_video=True, has_audio=True)):
            assert factory.select(tmp_path / "recording.bin") is VideoEncoder

    def test_audio_only_content_selects_audio_encoder(self, tmp_path):
        factory = EncoderStrategyFactory()

        with patch(PROBE_TARGET, return_value=fake_probe(has_audio=True)):
            assert factory.select(tmp_path / "memo.dat") is AudioEncoder

    def test_no_streams_is_unsupported(self, tmp_path):
        factory = EncoderStrategyFactory()

        with patch(PROBE_TARGET, return_value=fake_probe(format_name="tty")):
            with pytest.raises(UnsupportedFormatError, match="no convertible streams"):
                factory.select(tmp_path / "readme.nfo")

    def test_probe_failure_is_unsupported(self, tmp_path):
        factory = EncoderStrategyFactory()

        with patch(PROBE_TARGET, side_effect=ProbeError("ffprobe failed for notes.txt: Invalid data")):
            with pytest.raises(UnsupportedFormatError) as exc_info:
                factory.create(tmp_path / "notes.txt")

        assert "notes.txt" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ProbeError)
