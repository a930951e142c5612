"""
The ordered job queue and its scheduling policy.

Jobs keep their arrival order and each absolute source path appears at most
once. Scheduling is FIFO and non-preemptive: the next job to convert is the
earliest one that is not complete, which means failed and canceled jobs are
picked up again on every new start.
"""
import os
import threading
from pathlib import Path
from typing import Collection, Iterable, Iterator, List, Optional, Union

from loguru import logger

from .job import Job, JobSnapshot, normalize_source_path


class JobQueue:
    """
    An insertion-ordered, de-duplicated collection of `Job` objects.

    The orchestrator only reads from the queue (`next_pending`) and mutates the
    jobs it hands out. Structural changes (`add`, `clear`) belong to the caller
    and are only made while no conversion is running; the internal lock merely
    keeps concurrent readers from seeing a half-updated list.
    """

    def __init__(self):
        self._jobs: List[Job] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        with self._lock:
            return iter(list(self._jobs))

    def __contains__(self, path: Union[str, os.PathLike]) -> bool:
        return self.find(path) is not None

    def find(self, path: Union[str, os.PathLike]) -> Optional[Job]:
        source_path = normalize_source_path(path)
        with self._lock:
            for job in self._jobs:
                if job.source_path == source_path:
                    return job
        return None

    def add(self, path: Union[str, os.PathLike]) -> Optional[Job]:
        """
        Appends a pending job for `path` unless that path is already queued.

        Returns:
            The new job, or None if the path was a duplicate.
        """
        # Identity is the absolute path, so "a.mp4" and "./a.mp4" collapse.
        source_path = normalize_source_path(path)
        with self._lock:
            if any(job.source_path == source_path for job in self._jobs):
                logger.debug(f"Already queued, ignoring: {source_path}")
                return None
            job = Job(source_path)
            self._jobs.append(job)
        logger.debug(f"Queued: {source_path}")
        return job

    def add_all(self, paths: Iterable[Union[str, os.PathLike]]) -> List[Job]:
        """Adds each path in order and returns only the jobs actually created."""
        added = []
        for path in paths:
            job = self.add(path)
            if job is not None:
                added.append(job)
        return added

    def clear(self):
        with self._lock:
            count = len(self._jobs)
            self._jobs.clear()
        logger.debug(f"Cleared {count} job(s) from the queue.")

    def next_pending(self, exclude: Collection[Path] = ()) -> Optional[Job]:
        """
        Returns the earliest job whose progress is not exactly 100, or None.

        Args:
            exclude: Source paths to skip. The orchestrator passes the jobs it
                     already attempted in the current drain, so a failed job
                     waits for the next start instead of being retried at once.
        """
        with self._lock:
            for job in self._jobs:
                # Failed and canceled jobs are still eligible: only 100 is done.
                if job.is_complete or job.source_path in exclude:
                    continue
                return job
        return None

    def snapshots(self) -> List[JobSnapshot]:
        with self._lock:
            jobs = list(self._jobs)
        return [job.snapshot() for job in jobs]
