"""Audio converter using ffprobe for inspection and ffmpeg for conversion."""

from __future__ import annotations

import json
import logging
import os
import subprocess  # nosec B404 - using fixed ffprobe/ffmpeg commands
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

import ffmpeg  # type: ignore[import-untyped, unused-ignore]

from batchscribe.exceptions import ConversionError
from batchscribe.services.interfaces import (
    CANONICAL_CHANNELS,
    CANONICAL_CODEC,
    CANONICAL_SAMPLE_RATE,
    AudioInfo,
)

LOGGER = logging.getLogger(__name__)


class FfmpegAudioConverter:
    """Probe and convert audio with the ffmpeg tool suite.

    Converted files get unique names under ``temp_dir`` so parallel workers
    converting files with the same basename never collide. ``timeout`` bounds
    every subprocess; None waits forever.
    """

    def __init__(
        self,
        temp_dir: Path,
        *,
        timeout: float | None = None,
        ffmpeg_cmd: str = "ffmpeg",
        ffprobe_cmd: str = "ffprobe",
        run_command: Callable[..., str] | None = None,
    ):
        self._temp_dir = Path(temp_dir)
        self._timeout = timeout
        self._ffmpeg_cmd = ffmpeg_cmd
        self._ffprobe_cmd = ffprobe_cmd
        self._run_command = run_command

    def probe(self, path: Path) -> AudioInfo:
        """Inspect the first audio stream of ``path`` using ffprobe."""
        try:
            if path.stat().st_size == 0:
                raise ConversionError(f"audio file is empty: {path}")
        except FileNotFoundError as exc:
            raise ConversionError(f"audio file not found: {path}") from exc

        runner = self._run_command or subprocess.check_output
        command = [
            self._ffprobe_cmd,
            "-v",
            "error",
            "-select_streams",
            "a:0",
            "-show_entries",
            "stream=codec_name,sample_rate,channels,duration:format=duration",
            "-of",
            "json",
            str(path),
        ]
        try:
            output = runner(command, stderr=subprocess.STDOUT, text=True, timeout=self._timeout)
        except FileNotFoundError as exc:
            raise ConversionError("ffprobe is required but not installed or not on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise ConversionError(f"ffprobe timed out after {self._timeout}s on {path.name}") from exc
        except subprocess.CalledProcessError as exc:
            message = _format_ffmpeg_error(exc.output)
            raise ConversionError(f"ffprobe failed: {message}") from exc

        try:
            payload: Dict[str, Any] = json.loads(output)
        except json.JSONDecodeError as exc:
            raise ConversionError("ffprobe returned invalid metadata") from exc

        streams: list[Dict[str, Any]] = payload.get("streams") or []
        if not streams:
            raise ConversionError(f"no audio stream found in {path.name}")
        stream = streams[0]
        container: Dict[str, Any] = payload.get("format") or {}

        duration = _safe_float(stream.get("duration"))
        if duration is None:
            duration = _safe_float(container.get("duration"))

        return AudioInfo(
            duration=duration,
            channels=_safe_int(stream.get("channels")),
            sample_rate=_safe_int(stream.get("sample_rate")),
            codec=stream.get("codec_name"),
        )

    def convert_to_canonical_format(self, path: Path) -> Path:
        """Convert ``path`` to a 16 kHz mono 16-bit PCM WAV temp file and return it."""
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f"{path.stem}_", suffix="_converted.wav", dir=self._temp_dir)
        os.close(fd)
        output_path = Path(temp_name)

        stream = ffmpeg.input(str(path)).output(  # type: ignore[no-untyped-call]
            str(output_path),
            ar=CANONICAL_SAMPLE_RATE,
            ac=CANONICAL_CHANNELS,
            acodec=CANONICAL_CODEC,
            f="wav",
        )
        try:
            self._run_ffmpeg(stream, path)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise

        LOGGER.debug("Converted %s to %s", path.name, output_path)
        return output_path

    def _run_ffmpeg(self, stream: Any, source: Path) -> None:
        try:
            process = ffmpeg.run_async(  # type: ignore[no-untyped-call]
                stream,
                cmd=self._ffmpeg_cmd,
                pipe_stdout=True,
                pipe_stderr=True,
                overwrite_output=True,
            )
        except FileNotFoundError as exc:
            raise ConversionError("ffmpeg is required but not installed or not on PATH") from exc

        try:
            _, stderr = process.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise ConversionError(f"ffmpeg timed out after {self._timeout}s on {source.name}") from exc

        if process.returncode != 0:
            raise ConversionError(f"ffmpeg conversion failed: {_format_ffmpeg_error(stderr)}")


def _safe_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _safe_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _format_ffmpeg_error(raw_output: str | bytes | None) -> str:
    """Flatten ffmpeg/ffprobe stderr into a concise single-line message."""
    if raw_output is None:
        return "no diagnostic output"

    if isinstance(raw_output, bytes):
        raw_output = raw_output.decode(errors="replace")

    # Drop brace-only artifacts from ffprobe's JSON output
    lines = [line.strip() for line in raw_output.splitlines() if any(ch.isalnum() for ch in line)]
    if not lines:
        return "no diagnostic output"

    # Preserve order while dropping duplicates
    seen: dict[str, None] = {}
    for line in lines:
        seen.setdefault(line, None)

    return "; ".join(seen.keys())
