"""
Tests for the Job model and the JobQueue scheduling policy.
"""
import os
from decimal import Decimal
from pathlib import Path

import pytest

from convqueue.config.common import (
    JOB_STATUS_CANCELED,
    JOB_STATUS_COMPLETE,
    JOB_STATUS_FAILED,
    JOB_STATUS_IN_PROGRESS,
    JOB_STATUS_PENDING,
)
from convqueue.domain.job import Job, to_progress
from convqueue.domain.job_queue import JobQueue


class TestJob:
    """Status derivation and progress rules."""

    def test_new_job_is_pending(self, tmp_path):
        job = Job(tmp_path / "a.mp4")

        assert job.progress is None
        assert job.error_message is None
        assert job.status == JOB_STATUS_PENDING
        assert job.snapshot().label == str(tmp_path / "a.mp4")

    def test_relative_path_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        job = Job("clips/a.mp4")

        assert job.source_path == Path(os.getcwd()) / "clips" / "a.mp4"
        assert job.source_path.is_absolute()

    def test_status_transitions(self, tmp_path):
        job = Job(tmp_path / "a.mp4")

        job.start_attempt()
        assert job.status == JOB_STATUS_IN_PROGRESS
        job.update_progress(42.5)
        assert job.status == JOB_STATUS_IN_PROGRESS
        job.mark_failed("disk full")
        assert job.status == JOB_STATUS_FAILED
        job.start_attempt()
        assert job.error_message is None
        assert job.progress == Decimal(0)
        job.mark_canceled()
        assert job.status == JOB_STATUS_CANCELED
        job.start_attempt()
        job.mark_complete()
        assert job.status == JOB_STATUS_COMPLETE

    def test_progress_never_decreases_within_an_attempt(self, tmp_path):
        job = Job(tmp_path / "a.mp4")
        job.start_attempt()

        assert job.update_progress(40) is not None
        assert job.update_progress(20) is None
        assert job.update_progress(40) is None

        assert job.progress == Decimal(40)

    def test_reported_progress_is_stored_as_is(self, tmp_path):
        job = Job(tmp_path / "a.mp4")
        job.start_attempt()

        job.update_progress(100)
        snapshot = job.mark_failed("muxer error")

        assert snapshot.progress == Decimal(100)
        assert snapshot.status == JOB_STATUS_FAILED
        assert snapshot.description == "100.00% muxer error"

    def test_failure_keeps_progress(self, tmp_path):
        job = Job(tmp_path / "a.mp4")
        job.start_attempt()
        job.update_progress("12.345")

        snapshot = job.mark_failed("bad input")

        assert snapshot.progress == Decimal("12.35")
        assert snapshot.description == "12.35% bad input"

    def test_description_formatting(self, tmp_path):
        job = Job(tmp_path / "a.mp4")
        job.start_attempt()
        job.update_progress(5)

        assert job.snapshot().description == "5.00%"
        assert job.snapshot().label == f"{tmp_path / 'a.mp4'} - 5.00%"

    @pytest.mark.parametrize("value", ["abc", float("nan"), float("inf")])
    def test_invalid_progress_is_rejected(self, value):
        with pytest.raises(ValueError):
            to_progress(value)

    def test_progress_is_clamped(self):
        assert to_progress(-5) == Decimal("0.00")
        assert to_progress(250) == Decimal("100.00")


class TestJobQueue:
    """De-duplication and FIFO selection."""

    def test_add_keeps_first_seen_order_without_duplicates(self, tmp_path):
        queue = JobQueue()
        names = ["b.mp4", "a.mp4", "b.mp4", "c.mp4", "a.mp4"]

        added = queue.add_all(tmp_path / name for name in names)

        assert [job.source_path.name for job in added] == ["b.mp4", "a.mp4", "c.mp4"]
        assert [job.source_path.name for job in queue] == ["b.mp4", "a.mp4", "c.mp4"]
        assert len(queue) == 3

    def test_duplicate_add_returns_none(self, tmp_path):
        queue = JobQueue()
        first = queue.add(tmp_path / "a.mp4")

        assert queue.add(str(tmp_path / "a.mp4")) is None
        assert queue.find(tmp_path / "a.mp4") is first
        assert tmp_path / "a.mp4" in queue

    def test_next_pending_skips_only_complete_jobs(self, tmp_path):
        queue = JobQueue()
        done, failed, pending = queue.add_all(
            tmp_path / name for name in ("done.mp4", "failed.mp4", "pending.mp4")
        )
        done.start_attempt()
        done.mark_complete()
        failed.start_attempt()
        failed.update_progress(70)
        failed.mark_failed("boom")

        assert queue.next_pending() is failed

        failed.start_attempt()
        failed.mark_complete()
        assert queue.next_pending() is pending

    def test_next_pending_is_none_when_everything_is_complete(self, tmp_path):
        queue = JobQueue()
        assert queue.next_pending() is None

        for job in queue.add_all([tmp_path / "a.mp4", tmp_path / "b.mp4"]):
            job.start_attempt()
            job.mark_complete()

        assert queue.next_pending() is None

    def test_clear(self, tmp_path):
        queue = JobQueue()
        queue.add_all([tmp_path / "a.mp4", tmp_path / "b.mp4"])

        queue.clear()

        assert len(queue) == 0
        assert queue.snapshots() == []
        assert queue.add(tmp_path / "a.mp4") is not None

    def test_snapshots_are_independent_of_later_changes(self, tmp_path):
        queue = JobQueue()
        job = queue.add(Path(tmp_path / "a.mp4"))

        (before,) = queue.snapshots()
        job.start_attempt()

        assert before.progress is None
        assert queue.snapshots()[0].progress == Decimal(0)

    def test_next_pending_skips_excluded_paths(self, tmp_path):
        queue = JobQueue()
        failed, pending = queue.add_all([tmp_path / "failed.mp4", tmp_path / "pending.mp4"])
        failed.start_attempt()
        failed.mark_failed("boom")

        assert queue.next_pending(exclude={failed.source_path}) is pending
        assert queue.next_pending(exclude={failed.source_path, pending.source_path}) is None
        assert queue.next_pending() is failed

    def test_job_that_reached_one_hundred_before_failing_is_skipped(self, tmp_path):
        queue = JobQueue()
        job, other = queue.add_all([tmp_path / "a.mp4", tmp_path / "b.mp4"])
        job.start_attempt()
        job.update_progress(100)
        job.mark_failed("muxer error")

        assert queue.next_pending() is other
