"""
The conversion job model.

A `Job` is shared between the worker thread that converts it and any number of
observer threads that display it, so every mutation goes through a small lock
and observers read a consistent `JobSnapshot` instead of the live fields.
"""
import os
import threading
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from ..config.common import (
    CANCELED_MESSAGE,
    JOB_STATUS_CANCELED,
    JOB_STATUS_COMPLETE,
    JOB_STATUS_FAILED,
    JOB_STATUS_IN_PROGRESS,
    JOB_STATUS_PENDING,
    PROGRESS_COMPLETE,
    PROGRESS_QUANTUM,
    PROGRESS_STARTED,
)
from ..utils.format_utils import format_progress


def to_progress(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Converts a raw progress value into a two-decimal `Decimal` in [0, 100].

    Raises:
        ValueError: If the value is not a finite number.
    """
    try:
        progress = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid progress value: {value!r}") from e
    if not progress.is_finite():
        raise ValueError(f"Invalid progress value: {value!r}")
    progress = min(max(progress, PROGRESS_STARTED), PROGRESS_COMPLETE)
    return progress.quantize(PROGRESS_QUANTUM, rounding=ROUND_HALF_UP)


def normalize_source_path(path: Union[str, os.PathLike]) -> Path:
    """Returns the absolute form of a path, used as the job identity."""
    return Path(os.path.abspath(os.path.expanduser(os.fspath(path))))


@dataclass(frozen=True)
class JobSnapshot:
    """An immutable, consistent view of a job at one instant."""

    source_path: Path
    progress: Optional[Decimal]
    error_message: Optional[str]
    status: str

    @property
    def description(self) -> str:
        """Progress followed by the error text, e.g. ``"30.00% disk full"``."""
        text = f"{format_progress(self.progress)}%" if self.progress is not None else ""
        if self.error_message is not None:
            text += f" {self.error_message}"
        return text

    @property
    def label(self) -> str:
        """The absolute source path, followed by the description when there is one."""
        description = self.description
        if description:
            return f"{self.source_path} - {description}"
        return str(self.source_path)


def derive_status(progress: Optional[Decimal], error_message: Optional[str]) -> str:
    if error_message is not None:
        return JOB_STATUS_CANCELED if error_message == CANCELED_MESSAGE else JOB_STATUS_FAILED
    if progress is None:
        return JOB_STATUS_PENDING
    if progress == PROGRESS_COMPLETE:
        return JOB_STATUS_COMPLETE
    return JOB_STATUS_IN_PROGRESS


class Job:
    """
    One source file waiting for, undergoing, or done with conversion.

    Attributes:
        source_path (Path): Absolute path of the source file. Immutable, and the
                            de-duplication key inside a `JobQueue`.
        progress (Decimal | None): Percentage in [0, 100] with two decimals.
                                   None until the first attempt starts; exactly
                                   100 once the encoder reached the end; the job
                                   is done unless an error is also set.
        error_message (str | None): Set when the last attempt failed or was
                                    canceled. Cleared when a new attempt starts.
    """

    def __init__(self, source_path: Union[str, os.PathLike]):
        self._source_path = normalize_source_path(source_path)
        self._progress: Optional[Decimal] = None
        self._error_message: Optional[str] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Job({str(self._source_path)!r}, status={self.status!r})"

    @property
    def source_path(self) -> Path:
        return self._source_path

    @property
    def progress(self) -> Optional[Decimal]:
        with self._lock:
            return self._progress

    @property
    def error_message(self) -> Optional[str]:
        with self._lock:
            return self._error_message

    @property
    def status(self) -> str:
        with self._lock:
            return derive_status(self._progress, self._error_message)

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return self._progress == PROGRESS_COMPLETE

    def snapshot(self) -> JobSnapshot:
        with self._lock:
            return JobSnapshot(
                source_path=self._source_path,
                progress=self._progress,
                error_message=self._error_message,
                status=derive_status(self._progress, self._error_message),
            )

    # --- Mutations, performed by the orchestrator's worker thread ---

    def start_attempt(self) -> JobSnapshot:
        """Resets progress to 0 and clears the error in a single step."""
        with self._lock:
            self._progress = PROGRESS_STARTED
            self._error_message = None
        return self.snapshot()

    def update_progress(self, value: Union[Decimal, float, int, str]) -> Optional[JobSnapshot]:
        """
        Records progress reported by the running strategy.

        Values are clamped to [0, 100] and stored as reported. A value lower
        than the current progress is ignored so progress never moves
        backwards within an attempt. A job whose encoder reported 100 and then
        failed keeps 100 next to its error, so it is not retried.

        Returns:
            The new snapshot, or None if the value was ignored.
        """
        progress = to_progress(value)
        with self._lock:
            if self._progress is not None and progress < self._progress:
                logger.trace(
                    f"Ignoring decreasing progress {progress} < {self._progress} for {self._source_path.name}"
                )
                return None
            if progress == self._progress:
                return None
            self._progress = progress
        return self.snapshot()

    def mark_complete(self) -> JobSnapshot:
        """Sets the terminal success marker: progress exactly 100, no error."""
        with self._lock:
            self._progress = PROGRESS_COMPLETE
            self._error_message = None
        return self.snapshot()

    def mark_failed(self, message: str) -> JobSnapshot:
        """Records a failure. Progress keeps its last reported value."""
        with self._lock:
            self._error_message = message
        return self.snapshot()

    def mark_canceled(self) -> JobSnapshot:
        return self.mark_failed(CANCELED_MESSAGE)
