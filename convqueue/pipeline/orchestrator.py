"""
The conversion orchestrator.

Owns the drain loop, the "conversion in progress" state, the termination flag
and the per-job epilogue that keeps, deletes or marks the output of each
encode. Only one encode is ever in flight.

Termination is cooperative: `terminate()` sets a flag and forwards the request
to the active strategy. The loop notices the flag after the strategy's
`encode` returns. The engine itself never times out; a strategy whose
`terminate()` does not make `encode` return stalls the queue.
"""
import os
import threading
import traceback
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from loguru import logger

from ..config.common import CANCELED_MESSAGE
from ..domain.exceptions import ConversionInProgressError, ConvQueueException
from ..domain.job import Job, JobSnapshot
from ..domain.job_queue import JobQueue
from ..services.encoder_base import EncoderStrategy
from ..services.encoder_factory import EncoderStrategyFactory
from ..services.events import (
    ConversionEvent,
    ConversionStateChanged,
    EventStream,
    JobUpdated,
    LogCleared,
    LogLineAppended,
    QueueChanged,
    Subscriber,
)
from ..services.file_attributes import AttributePropagator
from ..services.logging_service import SessionLog
from ..utils.format_utils import format_progress, format_timedelta, formatted_size


class ConversionOrchestrator:
    """
    Queues files and converts them sequentially in a worker thread.

    Observers either poll `job_snapshots()` / `log_lines()` or subscribe to
    the event stream. Adding files and clearing are only allowed while idle;
    `can_start`, `can_clear`, `can_terminate` and `accepts_files` tell a front
    end which controls to enable.

    Args:
        factory: Chooses the strategy for each file.
        job_queue: The queue to drain; a new empty one by default.
        propagator: Copies attributes onto outputs and deletes canceled ones.
        report_path: When set, a YAML session report is written there after
                     every drain.
    """

    def __init__(
        self,
        factory: Optional[EncoderStrategyFactory] = None,
        job_queue: Optional[JobQueue] = None,
        propagator: Optional[AttributePropagator] = None,
        report_path: Optional[Path] = None,
    ):
        self.factory = factory if factory is not None else EncoderStrategyFactory()
        self.queue = job_queue if job_queue is not None else JobQueue()
        self.propagator = propagator if propagator is not None else AttributePropagator()
        self.report_path = report_path
        self.events = EventStream()

        self._converting = threading.Event()
        self._state_lock = threading.Lock()
        self._terminate_requested = False
        self._active_strategy: Optional[EncoderStrategy] = None
        self._worker: Optional[threading.Thread] = None

        self._log_lines: List[str] = []
        self._log_lock = threading.Lock()

        self._session: Dict[str, Any] = {}

    # --- Observable state ---

    @property
    def is_converting(self) -> bool:
        return self._converting.is_set()

    @property
    def can_start(self) -> bool:
        return not self.is_converting and len(self.queue) > 0

    @property
    def can_clear(self) -> bool:
        return not self.is_converting and len(self.queue) > 0

    @property
    def can_terminate(self) -> bool:
        return self.is_converting

    @property
    def accepts_files(self) -> bool:
        return not self.is_converting

    def job_snapshots(self) -> List[JobSnapshot]:
        return self.queue.snapshots()

    def log_lines(self) -> List[str]:
        with self._log_lock:
            return list(self._log_lines)

    def subscribe(self, callback: Subscriber):
        """Registers an observer; returns a function that unsubscribes it."""
        return self.events.subscribe(callback)

    # --- Commands ---

    def add_files(self, paths: Iterable[Union[str, os.PathLike]]) -> List[JobSnapshot]:
        """
        Queues every path not already queued, in the given order.

        Returns:
            Snapshots of the newly created jobs.

        Raises:
            ConversionInProgressError: If a conversion is running.
        """
        if self.is_converting:
            raise ConversionInProgressError("Cannot add files while a conversion is in progress.")
        added = self.queue.add_all(paths)
        if added:
            logger.info(f"Queued {len(added)} file(s); {len(self.queue)} in queue.")
            self._publish(QueueChanged(tuple(self.queue.snapshots())))
        return [job.snapshot() for job in added]

    def clear(self):
        """
        Empties the queue and the accumulated log.

        Raises:
            ConversionInProgressError: If a conversion is running.
        """
        if self.is_converting:
            raise ConversionInProgressError("Cannot clear the queue while a conversion is in progress.")
        self.queue.clear()
        self._clear_log()
        self._publish(QueueChanged(()))

    def start(self) -> bool:
        """
        Starts draining the queue in a background thread.

        The accumulated log is cleared first. Jobs that previously failed or
        were canceled are attempted again, once per drain.

        Returns:
            False if a conversion was already running, True otherwise.
        """
        with self._state_lock:
            if self._converting.is_set():
                logger.warning("Conversion already in progress, ignoring start request.")
                return False
            self._converting.set()
            self._terminate_requested = False
            self._worker = threading.Thread(target=self._drain, name="conversion-worker", daemon=True)

        self._clear_log()
        self._publish(ConversionStateChanged(True))
        self._worker.start()
        return True

    def terminate(self) -> bool:
        """
        Requests cancellation of the active job and stops the drain after it.

        Returns immediately. The active job ends up marked as canceled, its
        output is deleted and no further job is started.

        Returns:
            False if no conversion was running.
        """
        with self._state_lock:
            if not self._converting.is_set():
                logger.debug("Terminate requested while idle, nothing to do.")
                return False
            self._terminate_requested = True
            strategy = self._active_strategy
        logger.warning("Termination requested.")
        if strategy is not None:
            strategy.terminate()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for the current drain to finish and its events to be delivered.

        Returns:
            True if the engine is idle, False if `timeout` expired first.
        """
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
            if worker.is_alive():
                return False
        self.events.flush()
        return True

    def close(self, timeout: Optional[float] = None):
        """Terminates any running conversion and stops the event dispatcher."""
        self.terminate()
        self.wait(timeout)
        self.events.close()

    # --- Worker ---

    def _termination_requested(self) -> bool:
        with self._state_lock:
            return self._terminate_requested

    def _drain(self):
        self._session = {"started": datetime.now().isoformat(timespec="seconds"), "jobs": []}
        logger.info(f"Conversion started: {len(self.queue)} job(s) in queue.")
        # Each job is tried at most once per drain. A job that fails stays
        # below 100 and would otherwise be handed straight back.
        attempted: Set[Path] = set()
        try:
            while True:
                # A termination requested between two jobs stops the drain
                # before the next one is touched.
                if self._termination_requested():
                    logger.warning("Stopping the queue after termination request.")
                    break
                job = self.queue.next_pending(exclude=attempted)
                if job is None:
                    logger.info("No pending jobs left.")
                    break
                attempted.add(job.source_path)
                self._convert(job)
        finally:
            # Back to idle no matter how the loop ended, then report.
            with self._state_lock:
                self._terminate_requested = False
                self._active_strategy = None
                self._converting.clear()
            self._publish(ConversionStateChanged(False))
            self._session["ended"] = datetime.now().isoformat(timespec="seconds")
            self._write_report()
            logger.info("Conversion finished.")

    def _convert(self, job: Job):
        source = job.source_path
        # Progress back to 0 and error cleared in one step.
        self._publish(JobUpdated(job.start_attempt()))
        logger.info(f"Converting {source}")
        started_at = datetime.now()
        strategy: Optional[EncoderStrategy] = None

        try:
            strategy = self.factory.create(source)

            # Publish the handle so terminate() can reach it. A terminate that
            # arrived while the strategy was being created has no handle to
            # forward to, so it is caught here and the encode is skipped.
            with self._state_lock:
                self._active_strategy = strategy
                terminate_now = self._terminate_requested
            if terminate_now:
                self._publish(JobUpdated(job.mark_canceled()))
                logger.warning(f"Canceled before encoding: {source.name}")
                return

            destination = Path(
                strategy.encode(source, self._append_log_line, partial(self._on_progress, job))
            )

            # The strategy may return normally after being terminated; its
            # output is then partial and must not survive.
            if self._termination_requested():
                self.propagator.delete_file(destination)
                self._publish(JobUpdated(job.mark_canceled()))
                logger.warning(f"Canceled: {source.name}")
            else:
                # Attributes first, then the completion marker.
                self._copy_attributes(source, destination)
                self._publish(JobUpdated(job.mark_complete()))
                size = formatted_size(destination.stat().st_size) if destination.is_file() else "?"
                logger.success(
                    f"Completed: {source.name} -> {destination.name} ({size}) "
                    f"in {format_timedelta(datetime.now() - started_at)}"
                )
        except ConvQueueException as e:
            self._handle_failure(job, strategy, str(e) or type(e).__name__)
        except Exception as e:
            logger.error(
                f"Unexpected error converting {source.name}: {e}\n{traceback.format_exc()}"
            )
            self._handle_failure(job, strategy, str(e) or type(e).__name__)
        finally:
            with self._state_lock:
                self._active_strategy = None
            self._record(job, strategy, started_at)

    def _handle_failure(self, job: Job, strategy: Optional[EncoderStrategy], message: str):
        if self._termination_requested():
            # A strategy may also report termination by raising.
            if strategy is not None:
                self.propagator.delete_file(getattr(strategy, "destination", None))
            self._publish(JobUpdated(job.mark_canceled()))
            logger.warning(f"Canceled: {job.source_path.name} ({message})")
            return
        self._publish(JobUpdated(job.mark_failed(message)))
        logger.error(f"Failed: {job.source_path.name}: {message}")

    def _copy_attributes(self, source: Path, destination: Path):
        try:
            self.propagator.copy_attributes(source, destination)
        except Exception as e:
            logger.warning(f"Attribute propagation failed for {destination}: {e}")

    def _on_progress(self, job: Job, value):
        try:
            snapshot = job.update_progress(value)
        except ValueError as e:
            logger.warning(f"Ignoring progress report for {job.source_path.name}: {e}")
            return
        if snapshot is not None:
            self._publish(JobUpdated(snapshot))

    def _append_log_line(self, line: str):
        with self._log_lock:
            self._log_lines.append(line)
            index = len(self._log_lines) - 1
            # Published under the lock so event order matches log order.
            self._publish(LogLineAppended(index, line))
        logger.trace(line)

    def _clear_log(self):
        with self._log_lock:
            self._log_lines.clear()
            self._publish(LogCleared())

    def _publish(self, event: ConversionEvent):
        self.events.publish(event)

    # --- Session report ---

    def _record(self, job: Job, strategy: Optional[EncoderStrategy], started_at: datetime):
        snapshot = job.snapshot()
        destination = getattr(strategy, "destination", None)
        self._session.setdefault("jobs", []).append(
            {
                "index": 0,
                "source": str(snapshot.source_path),
                "strategy": type(strategy).__name__ if strategy is not None else None,
                "destination": str(destination) if destination else None,
                "status": snapshot.status,
                "progress": format_progress(snapshot.progress),
                "error": snapshot.error_message,
                "canceled": snapshot.error_message == CANCELED_MESSAGE,
                "elapsed": format_timedelta(datetime.now() - started_at),
            }
        )

    def _write_report(self):
        if self.report_path is None:
            return
        SessionLog(self.report_path).write(self._session)
