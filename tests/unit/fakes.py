"""Recording fakes for the pipeline collaborators."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

from batchscribe.exceptions import ConversionError, DownloadError, EngineError, WriteError
from batchscribe.model_config import ModelDescriptor
from batchscribe.services.interfaces import AudioInfo
from batchscribe.types import TranscriptionOptions

SAMPLE_ENGINE_OUTPUT = (
    "engine: faster-whisper language=en probability=0.99 duration=4.0s\n"
    "[00:00:00.000 --> 00:00:02.000]  Hello there, this is a test.\n"
    "[00:00:02.000 --> 00:00:04.000]  It has two sentences.\n"
)


class FakeModelStore:
    """ModelStore that creates an empty model directory instead of downloading.

    ``gate`` (if set) blocks every fetch until the test releases it.
    ``failures`` makes the next N fetches raise DownloadError.
    """

    def __init__(self, gate: threading.Event | None = None, failures: int = 0):
        self.gate = gate
        self.failures = failures
        self.fetch_calls: list[str] = []
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def is_cached(self, descriptor: ModelDescriptor) -> bool:
        return (descriptor.local_path / "model.bin").is_file()

    def fetch(self, descriptor: ModelDescriptor) -> Path:
        with self._lock:
            self.fetch_calls.append(descriptor.name)
            fail = self.failures > 0
            if fail:
                self.failures -= 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if fail:
            raise DownloadError(f"network down while fetching {descriptor.name}")
        descriptor.local_path.mkdir(parents=True, exist_ok=True)
        (descriptor.local_path / "model.bin").write_bytes(b"weights")
        return descriptor.local_path


class FakeConverter:
    """AudioConverter that writes placeholder WAV files into ``temp_dir``."""

    def __init__(
        self,
        temp_dir: Path,
        info: AudioInfo | None = None,
        fail_probe: bool = False,
        fail_convert_for: set[str] | None = None,
    ):
        self.temp_dir = temp_dir
        self.info = info or AudioInfo(duration=12.5, channels=2, sample_rate=44100, codec="mp3")
        self.fail_probe = fail_probe
        self.fail_convert_for = fail_convert_for or set()
        self.probed: list[Path] = []
        self.converted: list[Path] = []
        self._lock = threading.Lock()

    def probe(self, path: Path) -> AudioInfo:
        with self._lock:
            self.probed.append(path)
        if self.fail_probe:
            raise ConversionError(f"ffprobe failed on {path.name}")
        return self.info

    def convert_to_canonical_format(self, path: Path) -> Path:
        if path.name in self.fail_convert_for:
            raise ConversionError(f"ffmpeg conversion failed: {path.name} is corrupt")
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            output = self.temp_dir / f"{path.stem}_{len(self.converted)}_converted.wav"
            self.converted.append(output)
        output.write_bytes(b"RIFF")
        return output


class FakeEngine:
    """TranscriptionEngine returning canned output and tracking concurrency."""

    def __init__(
        self,
        output: str = SAMPLE_ENGINE_OUTPUT,
        fail_for: set[str] | None = None,
        delay: Callable[[], None] | None = None,
    ):
        self.output = output
        self.fail_for = fail_for or set()
        self.delay = delay
        self.calls: list[tuple[Path, Path, TranscriptionOptions]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def run(self, audio_path: Path, model_path: Path, options: TranscriptionOptions) -> str:
        with self._lock:
            self.calls.append((audio_path, model_path, options))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay is not None:
                self.delay()
            if any(audio_path.name.startswith(Path(name).stem) for name in self.fail_for):
                raise EngineError(f"engine crashed on {audio_path.name}")
            return self.output
        finally:
            with self._lock:
                self.active -= 1


class FailingWriter:
    def write(self, output_path: Path, content: str) -> Path:
        raise WriteError(f"Cannot write {output_path}: disk full")

