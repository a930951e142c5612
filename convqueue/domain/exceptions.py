"""
Defines custom exception types for the Conversion Queue Engine.

Every failure that surfaces on a job, or that is raised back to a caller of
the orchestrator, is one of these. All of them inherit from
`ConvQueueException`.
"""
from typing import List, Optional


class ConvQueueException(Exception):
    """Base class for all custom exceptions in the application."""

    pass


# --- Strategy Selection ---
class UnsupportedFormatError(ConvQueueException):
    """
    Raised by the encoder factory when no strategy variant recognizes a file.

    The orchestrator records the message as the job's error and moves on to the
    next pending job.
    """

    pass


class ProbeError(ConvQueueException):
    """
    Raised when ffprobe cannot read a media file.

    The factory turns this into `UnsupportedFormatError`; an encoder turns it
    into `EncodeError`.
    """

    pass


# --- Encoding ---
class EncodeError(ConvQueueException):
    """
    Raised when a strategy cannot convert its source file.

    Wraps the underlying cause: a non-zero exit of the encoder process, a
    missing executable or unreadable input. The destination file must not be
    trusted after this is raised.

    Attributes:
        return_code: Exit code of the encoder process, if one ran.
        command: The command line that was executed, if any.
    """

    def __init__(
        self,
        message: str,
        return_code: Optional[int] = None,
        command: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.return_code = return_code
        self.command = command


# --- Orchestration ---
class ConversionInProgressError(ConvQueueException):
    """
    Raised when the queue is mutated while a conversion is running.

    Adding files and clearing the queue are only allowed while the engine is
    idle.
    """

    pass
