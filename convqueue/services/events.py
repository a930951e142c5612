"""
Delivery of conversion events from the worker thread to observers.

The worker publishes events into a thread-safe queue and returns immediately.
A single dispatcher thread takes them off in order and calls every subscriber,
so observers see events in exactly the order they were published and the
worker never runs observer code.
"""
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from loguru import logger

from ..domain.job import JobSnapshot


@dataclass(frozen=True)
class ConversionEvent:
    """Base class of everything published on an `EventStream`."""


@dataclass(frozen=True)
class JobUpdated(ConversionEvent):
    """A job's progress or error changed."""

    job: JobSnapshot


@dataclass(frozen=True)
class LogLineAppended(ConversionEvent):
    """A line was appended to the shared log. `index` is its position in it."""

    index: int
    line: str


@dataclass(frozen=True)
class LogCleared(ConversionEvent):
    pass


@dataclass(frozen=True)
class QueueChanged(ConversionEvent):
    """Jobs were added or the queue was cleared."""

    jobs: Tuple[JobSnapshot, ...]


@dataclass(frozen=True)
class ConversionStateChanged(ConversionEvent):
    """The engine started or stopped draining the queue."""

    converting: bool


Subscriber = Callable[[ConversionEvent], None]

_STOP = object()


class EventStream:
    """
    Fans events out to subscribers on a dedicated dispatcher thread.

    The dispatcher starts with the first published event. A subscriber that
    raises is logged and keeps receiving later events.
    """

    def __init__(self, name: str = "conversion-events"):
        self.name = name
        self._queue: "queue.Queue" = queue.Queue()
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Registers `callback` for all future events.

        Returns:
            A function that unsubscribes the callback.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: ConversionEvent):
        """Queues `event` for delivery. Never blocks on subscribers."""
        with self._lock:
            if self._closed:
                logger.trace(f"Event stream closed, dropping {event!r}")
                return
            if self._thread is None:
                self._thread = threading.Thread(target=self._dispatch, name=self.name, daemon=True)
                self._thread.start()
            self._queue.put(event)

    def flush(self):
        """
        Blocks until every event published so far has been delivered.

        Returns at once when called from a subscriber, since the dispatcher
        cannot wait for itself.
        """
        with self._lock:
            thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        self._queue.join()

    def close(self):
        """Delivers pending events, then stops the dispatcher thread."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._queue.put(_STOP)
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _dispatch(self):
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                # Snapshot so subscribe/unsubscribe from a callback is safe.
                with self._lock:
                    subscribers = list(self._subscribers)
                for callback in subscribers:
                    try:
                        callback(event)
                    except Exception:
                        logger.exception(f"Event subscriber {callback!r} failed on {type(event).__name__}")
            finally:
                self._queue.task_done()
