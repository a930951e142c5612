"""
Shared fixtures: scripted encoder strategies that let the orchestrator be
driven deterministically without ffmpeg.
"""
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from convqueue.domain.exceptions import EncodeError, UnsupportedFormatError
from convqueue.pipeline.orchestrator import ConversionOrchestrator
from convqueue.services.encoder_base import EncoderStrategy
from convqueue.services.events import ConversionEvent

WAIT_TIMEOUT = 5.0


class Script:
    """
    What a `ScriptedStrategy` does for one file.

    Args:
        progress: Values reported before finishing.
        log_lines: Lines emitted before the progress values.
        fail_with: If set, an `EncodeError` with this message is raised after
                   the progress values.
        block: If True, the strategy writes a partial output, sets `started`
               and then waits until it is terminated.
        raise_on_terminate: With `block`, raise instead of returning when
                            terminated.
        error: Any exception to raise instead of `EncodeError`.
    """

    def __init__(
        self,
        progress=(),
        log_lines=(),
        fail_with: Optional[str] = None,
        block: bool = False,
        raise_on_terminate: bool = False,
        error: Optional[BaseException] = None,
    ):
        self.progress = list(progress)
        self.log_lines = list(log_lines)
        self.fail_with = fail_with
        self.block = block
        self.raise_on_terminate = raise_on_terminate
        self.error = error
        self.started = threading.Event()


class ScriptedStrategy(EncoderStrategy):
    def __init__(self, script: Script, output_dir: Optional[Path] = None):
        super().__init__(output_dir)
        self.script = script

    def encode(self, source, on_log_line, on_progress):
        self.destination = self.output_dir / f"{source.stem}.out"
        for line in self.script.log_lines:
            on_log_line(line)
        for value in self.script.progress:
            on_progress(value)

        if self.script.block:
            self.destination.write_text("partial")
            self.script.started.set()
            assert self._terminated.wait(WAIT_TIMEOUT), "strategy was never terminated"
            if self.script.raise_on_terminate:
                raise EncodeError("process killed")
            return self.destination

        self.script.started.set()
        if self.script.error is not None:
            raise self.script.error
        if self.script.fail_with is not None:
            raise EncodeError(self.script.fail_with)
        self.destination.write_text("encoded")
        return self.destination


class ScriptedFactory:
    """Hands out a `ScriptedStrategy` per file name and records the order."""

    def __init__(self, output_dir: Path, scripts: Optional[Dict[str, Script]] = None):
        self.output_dir = output_dir
        self.scripts: Dict[str, Script] = scripts or {}
        self.created: List[str] = []

    def create(self, source: Path) -> EncoderStrategy:
        self.created.append(source.name)
        script = self.scripts.get(source.name)
        if script is None:
            raise UnsupportedFormatError(f"Unsupported file type: {source.name}")
        return ScriptedStrategy(script, output_dir=self.output_dir)


class GatedFactory(ScriptedFactory):
    """
    A `ScriptedFactory` whose `create` waits for `release` once `entered` is
    set, so a test can act while the worker sits between picking a job and
    getting its strategy.
    """

    def __init__(self, output_dir: Path, scripts: Optional[Dict[str, Script]] = None):
        super().__init__(output_dir, scripts)
        self.entered = threading.Event()
        self.release = threading.Event()
        self.strategies: List[ScriptedStrategy] = []

    def create(self, source: Path) -> EncoderStrategy:
        self.entered.set()
        assert self.release.wait(WAIT_TIMEOUT), "factory was never released"
        strategy = super().create(source)
        self.strategies.append(strategy)
        return strategy


class EventRecorder:
    def __init__(self):
        self.events: List[ConversionEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: ConversionEvent):
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type) -> list:
        with self._lock:
            return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def source_dir(tmp_path) -> Path:
    path = tmp_path / "sources"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def make_sources(source_dir):
    """Creates the named source files and returns their paths."""

    def _make(*names: str) -> List[Path]:
        paths = []
        for name in names:
            path = source_dir / name
            path.write_bytes(b"source data")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def factory(output_dir) -> ScriptedFactory:
    return ScriptedFactory(output_dir)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def orchestrator(factory, recorder):
    engine = ConversionOrchestrator(factory=factory)
    engine.subscribe(recorder)
    yield engine
    engine.close(timeout=WAIT_TIMEOUT)
