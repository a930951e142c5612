"""
Tests for the ffmpeg helper functions.
"""
from decimal import Decimal
from pathlib import Path

import pytest

from convqueue.config import common
from convqueue.utils.ffmpeg_utils import (
    ProgressParser,
    display_command,
    parse_out_time_seconds,
    tool_path,
)


class TestParseOutTime:
    @pytest.mark.parametrize(
        "key, value, expected",
        [
            ("out_time_us", "1500000", 1.5),
            ("out_time_ms", "1500000", 1.5),
            ("out_time", "00:01:02.500000", 62.5),
            ("out_time_us", "N/A", None),
            ("out_time", "bogus", None),
            ("bitrate", "100kbits/s", None),
        ],
    )
    def test_parse(self, key, value, expected):
        assert parse_out_time_seconds(key, value) == expected


class TestProgressParser:
    def test_percentages_only_increase(self):
        parser = ProgressParser(duration=20.0)

        results = [
            parser.feed(line)
            for line in (
                "out_time_us=5000000",
                "out_time_us=4000000",
                "out_time=00:00:10.000000",
                "speed=2x",
                "out_time_us=25000000",
            )
        ]

        assert results == [Decimal(25), None, Decimal(50), None, Decimal(100)]

    def test_unknown_duration_reports_nothing(self):
        parser = ProgressParser(duration=0)

        assert parser.feed("out_time_us=5000000") is None

    def test_progress_end_marks_finished(self):
        parser = ProgressParser(duration=10.0)

        parser.feed("progress=continue")
        assert not parser.finished
        parser.feed("progress=end")
        assert parser.finished

    def test_lines_without_a_field_are_ignored(self):
        assert ProgressParser(duration=10.0).feed("Stream mapping:") is None


class TestToolPath:
    def test_defaults_to_path_lookup(self, monkeypatch):
        monkeypatch.setattr(common, "MODULE_PATH", None)

        assert tool_path("ffprobe") == "ffprobe"

    def test_uses_configured_directory(self, monkeypatch, tmp_path):
        monkeypatch.setattr(common, "MODULE_PATH", tmp_path)

        assert Path(tool_path("ffmpeg")).parent == tmp_path
        assert Path(tool_path("ffmpeg")).stem == "ffmpeg"


def test_display_command_quotes_arguments():
    rendered = display_command(["ffmpeg", "-i", "my file.mp4"])

    assert "my file.mp4" in rendered
    assert rendered.startswith("ffmpeg")
