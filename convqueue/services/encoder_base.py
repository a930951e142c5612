"""
The encoder strategy interface and the shared ffmpeg implementation.

`EncoderStrategy` is the contract the orchestrator relies on. `FFmpegEncoder`
implements it once for every ffmpeg based variant: subclasses only decide the
output name and the codec arguments.
"""
import subprocess
import threading
from abc import ABC, abstractmethod
from collections import deque
from decimal import Decimal
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from loguru import logger

from ..config import common
from ..config.media import ENCODED_SUFFIX
from ..domain.exceptions import EncodeError, ProbeError
from ..domain.media import MediaProbe
from ..utils.ffmpeg_utils import ProgressParser, display_command, tool_path
from .logging_service import ErrorLog

LogLineCallback = Callable[[str], None]
ProgressCallback = Callable[[Decimal], None]

# Number of trailing output lines kept for error messages and the error log.
OUTPUT_TAIL_LINES = 20


class EncoderStrategy(ABC):
    """
    Converts one source file into one destination file.

    One instance is created per job and discarded once `encode` returns.
    Implementations may leave a partial destination behind when they fail or
    are terminated; removing it is the caller's job, which is why the planned
    output is published in `destination` as soon as it is known.

    Class attributes:
        extensions: Lowercase file extensions (with dot) this variant handles.
    """

    extensions: Tuple[str, ...] = ()

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir
        self.destination: Optional[Path] = None
        self._terminated = threading.Event()

    @classmethod
    def accepts_probe(cls, probe: MediaProbe) -> bool:
        """Whether this variant can convert a file with the probed streams."""
        return False

    @property
    def was_terminated(self) -> bool:
        return self._terminated.is_set()

    def destination_for(self, source: Path, extension: str) -> Path:
        """Output path: ``<output_dir or source dir>/<stem>_encoded<extension>``."""
        target_dir = self.output_dir if self.output_dir is not None else source.parent
        return target_dir / f"{source.stem}{ENCODED_SUFFIX}{extension}"

    @abstractmethod
    def encode(
        self,
        source: Path,
        on_log_line: LogLineCallback,
        on_progress: ProgressCallback,
    ) -> Path:
        """
        Converts `source` and returns the destination path.

        Blocks until the conversion finishes, fails or is terminated. Log lines
        are passed to `on_log_line` in the order they are produced; progress
        values passed to `on_progress` never decrease.

        Raises:
            EncodeError: If the source could not be converted.
        """

    def terminate(self):
        """
        Asks an in-flight `encode` to stop.

        Safe to call from any thread and at any time. With nothing running it
        has no effect beyond setting `was_terminated`; a later `encode` on the
        same instance then returns at once without converting. The
        orchestrator publishes a strategy shortly before calling `encode`, and
        a terminate landing in that gap must not be lost. Instances are never
        reused across jobs, so the flag cannot leak into another conversion.
        """
        self._terminated.set()


class FFmpegEncoder(EncoderStrategy):
    """
    Base for strategies that run a single ffmpeg process.

    The process runs with ``-progress pipe:1`` and stderr merged into stdout.
    Lines of the form ``key=value`` feed the progress parser; every other line
    is forwarded as a log line. `terminate` asks the process to exit and kills
    it if it is still alive after `TERMINATE_GRACE_SECONDS`, so `encode`
    always returns in bounded time. A terminated encode returns normally with
    `was_terminated` set.
    """

    container_extension = ".mkv"

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        error_dir: Optional[Path] = None,
        terminate_grace_seconds: Optional[float] = None,
    ):
        super().__init__(output_dir)
        self.error_dir = error_dir if error_dir is not None else common.BASE_ERROR_DIR
        self.terminate_grace_seconds = (
            terminate_grace_seconds
            if terminate_grace_seconds is not None
            else common.TERMINATE_GRACE_SECONDS
        )
        self.encode_cmd_list: List[str] = []
        self._process: Optional[subprocess.Popen] = None
        self._process_lock = threading.Lock()
        self._kill_timer: Optional[threading.Timer] = None

    @abstractmethod
    def codec_arguments(self, probe: MediaProbe) -> List[str]:
        """ffmpeg arguments placed between the input and the output file."""

    def validate(self, probe: MediaProbe):
        """Raises `EncodeError` if the probed file cannot be handled."""

    def build_command(self, source: Path, destination: Path, probe: MediaProbe) -> List[str]:
        cmd_list = [tool_path("ffmpeg"), "-hide_banner", "-nostdin", "-y"]
        cmd_list.extend(["-i", str(source)])
        cmd_list.extend(self.codec_arguments(probe))
        cmd_list.extend(["-progress", "pipe:1", "-nostats"])
        cmd_list.append(str(destination))
        return cmd_list

    def encode(
        self,
        source: Path,
        on_log_line: LogLineCallback,
        on_progress: ProgressCallback,
    ) -> Path:
        try:
            probe = MediaProbe(source)
        except ProbeError as e:
            raise EncodeError(str(e)) from e
        self.validate(probe)

        # --- Prepare output and command ---
        # The destination is published before ffmpeg starts so a caller can
        # delete a partial file even if this method raises.
        self.destination = self.destination_for(source, self.container_extension)
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        self.encode_cmd_list = self.build_command(source, self.destination, probe)
        cmd_str = display_command(self.encode_cmd_list)
        logger.debug(f"{self.__class__.__name__} command: {cmd_str}")

        parser = ProgressParser(probe.duration)
        output_tail: deque = deque(maxlen=OUTPUT_TAIL_LINES)

        # --- Run ffmpeg ---
        # The terminated check and Popen share the lock with terminate(), so a
        # request either stops the launch or finds the process to signal.
        with self._process_lock:
            if self.was_terminated:
                logger.info(f"Terminated before ffmpeg started for {source.name}")
                return self.destination
            try:
                self._process = subprocess.Popen(
                    self.encode_cmd_list,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                )
            except FileNotFoundError as e:
                raise EncodeError(
                    f"ffmpeg executable not found: {self.encode_cmd_list[0]}",
                    command=self.encode_cmd_list,
                ) from e
            except OSError as e:
                raise EncodeError(f"Could not start ffmpeg: {e}", command=self.encode_cmd_list) from e
            process = self._process

        logger.debug(f"ffmpeg process {process.pid} started for {source.name}")
        return_code: Optional[int] = None
        try:
            assert process.stdout is not None
            # Progress fields and log lines arrive interleaved on one pipe.
            for raw_line in iter(process.stdout.readline, ""):
                line = raw_line.rstrip("\r\n")
                if not line.strip():
                    continue
                if _is_progress_field(line):
                    percent = parser.feed(line)
                    if percent is not None:
                        on_progress(percent)
                    continue
                output_tail.append(line)
                on_log_line(line)
            return_code = process.wait()
        finally:
            if return_code is None:
                # A callback raised: do not leave ffmpeg writing the output.
                if process.poll() is None:
                    logger.warning(f"Killing ffmpeg process {process.pid} after an error in {source.name}")
                    process.kill()
                process.wait()
            with self._process_lock:
                self._process = None
                if self._kill_timer is not None:
                    self._kill_timer.cancel()
                    self._kill_timer = None
            if process.stdout is not None:
                process.stdout.close()

        # --- Outcome ---
        if self.was_terminated:
            logger.info(f"ffmpeg for {source.name} stopped after termination request (rc={return_code})")
            return self.destination

        if return_code != 0:
            self.failed_action(source, return_code, list(output_tail))
            last_line = output_tail[-1] if output_tail else "no output"
            raise EncodeError(
                f"ffmpeg failed (rc={return_code}): {last_line}",
                return_code=return_code,
                command=self.encode_cmd_list,
            )

        if not self.destination.exists():
            message = f"ffmpeg reported success but output file {self.destination.name} is missing"
            self.failed_action(source, return_code, list(output_tail) + [message])
            raise EncodeError(message, return_code=return_code, command=self.encode_cmd_list)

        return self.destination

    def terminate(self):
        super().terminate()
        with self._process_lock:
            process = self._process
            if process is None or process.poll() is not None:
                return
            logger.info(f"Terminating ffmpeg process {process.pid}")
            process.terminate()
            self._kill_timer = threading.Timer(
                self.terminate_grace_seconds, _kill_if_alive, args=(process,)
            )
            self._kill_timer.daemon = True
            self._kill_timer.start()

    def failed_action(self, source: Path, return_code: int, output_lines: List[str]):
        """Logs a failed command and appends its details to the error log."""
        cmd_str = display_command(self.encode_cmd_list) if self.encode_cmd_list else "N/A"
        logger.error(f"ffmpeg failed for {source} (rc={return_code})")
        ErrorLog(self.error_dir).write(
            f"Failed command: {cmd_str}",
            f"Source file: {source}",
            f"Return code: {return_code}",
            "Output (tail):",
            *output_lines,
        )


def _is_progress_field(line: str) -> bool:
    key, sep, value = line.partition("=")
    return bool(sep) and key.isidentifier() and " " not in value.strip()


def _kill_if_alive(process: subprocess.Popen):
    if process.poll() is None:
        logger.warning(f"ffmpeg process {process.pid} ignored terminate, killing it")
        process.kill()
