"""Unit tests for discovery, resume filtering, the per-job unit and statistics."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest
from fakes import FailingWriter, FakeConverter, FakeEngine, FakeModelStore

from batchscribe.components import (
    AudioDiscovery,
    ResumeFilter,
    StatsAggregator,
    TranscriptionUnit,
)
from batchscribe.exceptions import DiscoveryError, InvalidTransitionError
from batchscribe.run_config import RunConfig
from batchscribe.services.interfaces import AudioInfo
from batchscribe.types import AudioFile, JobResult, JobStage, JobStatus, TranscriptionJob, TranscriptionOptions


class TestAudioDiscovery:
    def test_directory_listing_is_sorted_and_filtered(self, audio_dir: Path, make_audio: Callable[..., Path]) -> None:
        make_audio("b.wav")
        make_audio("a.MP3")
        make_audio("notes.txt")
        make_audio("nested.flac", audio_dir / "sub")

        files = AudioDiscovery().discover([audio_dir])

        assert [audio.name for audio in files] == ["a.MP3", "b.wav"]
        assert files[0].extension == ".mp3"
        assert files[0].path.is_absolute()

    def test_recursive(self, audio_dir: Path, make_audio: Callable[..., Path]) -> None:
        make_audio("top.m4a")
        make_audio("nested.flac", audio_dir / "sub")

        files = AudioDiscovery().discover([audio_dir], recursive=True)

        assert sorted(audio.name for audio in files) == ["nested.flac", "top.m4a"]

    def test_explicit_files_keep_given_order_and_are_deduplicated(
        self, audio_dir: Path, make_audio: Callable[..., Path]
    ) -> None:
        second = make_audio("z.ogg")
        first = make_audio("a.aac")

        files = AudioDiscovery().discover([second, first, audio_dir, second])

        assert [audio.name for audio in files] == ["z.ogg", "a.aac"]

    def test_unsupported_explicit_file_is_ignored(self, make_audio: Callable[..., Path]) -> None:
        assert AudioDiscovery().discover([make_audio("readme.md")]) == []

    def test_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(DiscoveryError, match="Path not found"):
            AudioDiscovery().discover([tmp_path / "missing.mp3"])

    def test_discovery_error_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            AudioDiscovery().discover([tmp_path / "nope"])

    @pytest.fixture
    def deny_access(self, monkeypatch: pytest.MonkeyPatch) -> Callable[[Path], None]:
        """Make os.access report ``target`` as unreadable, even when running as root."""
        real_access = os.access

        def _deny(target: Path) -> None:
            def fake_access(path: object, mode: int, *args: object, **kwargs: object) -> bool:
                if Path(str(path)) == target:
                    return False
                return real_access(path, mode, *args, **kwargs)  # type: ignore[arg-type]

            monkeypatch.setattr(os, "access", fake_access)

        return _deny

    def test_unreadable_file_raises(self, make_audio: Callable[..., Path], deny_access: Callable[[Path], None]) -> None:
        path = make_audio("locked.mp3")
        deny_access(path)

        with pytest.raises(DiscoveryError, match="Cannot read file"):
            AudioDiscovery().discover([path])

    @pytest.mark.parametrize("recursive", [False, True], ids=["flat", "recursive"])
    def test_unreadable_directory_raises(
        self,
        tmp_path: Path,
        make_audio: Callable[..., Path],
        deny_access: Callable[[Path], None],
        recursive: bool,
    ) -> None:
        readable = make_audio("ok.mp3")
        locked = tmp_path / "locked"
        make_audio("hidden.mp3", locked)
        deny_access(locked)

        with pytest.raises(DiscoveryError, match="Cannot read directory"):
            AudioDiscovery().discover([readable, locked], recursive=recursive)


class TestResumeFilter:
    def test_partition_is_total(self, run_config: RunConfig, make_audio: Callable[..., Path]) -> None:
        done = make_audio("done.mp3")
        make_audio("todo.wav")
        done.with_suffix(".txt").write_text("already here", encoding="utf-8")
        files = AudioDiscovery().discover(run_config.inputs)

        plan = ResumeFilter(run_config).partition(files)

        assert [job.audio.name for job in plan.to_process] == ["todo.wav"]
        assert [result.job.audio.name for result in plan.skipped] == ["done.mp3"]
        assert plan.summary.discovered == 2
        assert plan.summary.already_done == 1
        assert plan.summary.to_process == 1
        assert plan.summary.already_done + plan.summary.to_process == plan.summary.discovered
        assert all(job.status is JobStatus.PENDING for job in plan.to_process)
        assert plan.skipped[0].status is JobStatus.SKIPPED
        assert plan.skipped[0].job.status is JobStatus.SKIPPED

    def test_force_processes_everything(self, run_config: RunConfig, make_audio: Callable[..., Path]) -> None:
        done = make_audio("done.mp3")
        done.with_suffix(".txt").write_text("already here", encoding="utf-8")
        config = replace(run_config, force=True)

        plan = ResumeFilter(config).partition(AudioDiscovery().discover(config.inputs))

        assert [job.audio.name for job in plan.to_process] == ["done.mp3"]
        assert plan.skipped == []

    def test_output_dir_is_used_for_resume_check(
        self, run_config: RunConfig, make_audio: Callable[..., Path], tmp_path: Path
    ) -> None:
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        make_audio("talk.mp3")
        (out_dir / "talk.txt").write_text("done", encoding="utf-8")
        config = replace(run_config, output_dir=out_dir)

        plan = ResumeFilter(config).partition(AudioDiscovery().discover(config.inputs))

        assert plan.to_process == []
        assert plan.skipped[0].job.output_path == out_dir / "talk.txt"

    def test_jobs_carry_model_and_options(self, run_config: RunConfig, make_audio: Callable[..., Path]) -> None:
        make_audio("a.mp3")
        config = replace(run_config, language="et", prompt="Names: Kaja")

        plan = ResumeFilter(config).partition(AudioDiscovery().discover(config.inputs))

        job = plan.to_process[0]
        assert job.model == "tiny"
        assert job.options == TranscriptionOptions(language="et", prompt="Names: Kaja", output_format="txt")


def _job(path: Path, output: Path | None = None) -> TranscriptionJob:
    return TranscriptionJob(
        audio=AudioFile.from_path(path),
        model="tiny",
        options=TranscriptionOptions(),
        output_path=output or path.with_suffix(".txt"),
    )


class TestTranscriptionUnit:
    def test_success_writes_transcript_and_cleans_temp_file(
        self,
        make_unit: Callable[..., TranscriptionUnit],
        make_audio: Callable[..., Path],
        converter: FakeConverter,
        engine: FakeEngine,
        model_store: FakeModelStore,
    ) -> None:
        job = _job(make_audio("talk.mp3"))

        result = make_unit().process(job)

        assert result.status is JobStatus.SUCCEEDED
        assert result.error is None
        assert result.word_count == 10
        assert result.audio_duration == 12.5
        assert result.processing_time >= 0
        assert job.status is JobStatus.SUCCEEDED
        assert job.stage is JobStage.WRITTEN

        text = job.output_path.read_text(encoding="utf-8")
        assert text.startswith("# Transcription of: talk.mp3\n# Model: tiny\n")
        assert "Hello there, this is a test. It has two sentences.\n" in text

        assert model_store.fetch_calls == ["tiny"]
        assert len(converter.converted) == 1
        assert not converter.converted[0].exists()
        assert engine.calls[0][0] == converter.converted[0]

    def test_canonical_wav_is_used_directly(
        self,
        make_unit: Callable[..., TranscriptionUnit],
        make_audio: Callable[..., Path],
        tmp_path: Path,
        engine: FakeEngine,
    ) -> None:
        canonical = AudioInfo(duration=3.0, channels=1, sample_rate=16000, codec="pcm_s16le")
        converter = FakeConverter(tmp_path / "tmp", info=canonical)
        source = make_audio("clean.wav")

        result = make_unit(converter=converter).process(_job(source))

        assert result.succeeded
        assert converter.converted == []
        assert engine.calls[0][0] == source.resolve()
        assert source.exists()

    def test_probe_failure_is_not_fatal(
        self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path], tmp_path: Path
    ) -> None:
        converter = FakeConverter(tmp_path / "tmp", fail_probe=True)

        result = make_unit(converter=converter).process(_job(make_audio("odd.ogg")))

        assert result.succeeded
        assert result.audio_duration == 0.0
        assert len(converter.converted) == 1

    def test_conversion_failure(
        self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path], tmp_path: Path
    ) -> None:
        converter = FakeConverter(tmp_path / "tmp", fail_convert_for={"broken.mp3"})
        job = _job(make_audio("broken.mp3"))

        result = make_unit(converter=converter).process(job)

        assert result.status is JobStatus.FAILED
        assert result.error is not None
        assert result.error.stage == "audio_ready"
        assert result.error.kind == "ConversionError"
        assert "corrupt" in result.error.message
        assert job.stage is JobStage.MODEL_READY
        assert not job.output_path.exists()

    def test_engine_failure_removes_temp_file_and_writes_nothing(
        self,
        make_unit: Callable[..., TranscriptionUnit],
        make_audio: Callable[..., Path],
        converter: FakeConverter,
    ) -> None:
        job = _job(make_audio("crash.mp3"))

        result = make_unit(engine=FakeEngine(fail_for={"crash.mp3"})).process(job)

        assert result.status is JobStatus.FAILED
        assert result.error is not None
        assert result.error.stage == "transcribed"
        assert result.error.kind == "EngineError"
        assert len(converter.converted) == 1
        assert not converter.converted[0].exists()
        assert not job.output_path.exists()

    def test_download_failure(
        self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path], run_config: RunConfig
    ) -> None:
        from batchscribe.model_cache import ModelCache

        cache = ModelCache(FakeModelStore(failures=1), run_config.cache_dir)

        result = make_unit(model_cache=cache).process(_job(make_audio("a.mp3")))

        assert result.error is not None
        assert result.error.stage == "model_ready"
        assert result.error.kind == "DownloadError"

    def test_unknown_model(self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path]) -> None:
        job = replace(_job(make_audio("a.mp3")), model="enormous")

        result = make_unit().process(job)

        assert result.error is not None
        assert result.error.kind == "UnknownModelError"
        assert str(result.error).startswith("[model_ready] UnknownModelError: Unknown model 'enormous'")

    def test_write_failure(
        self,
        make_unit: Callable[..., TranscriptionUnit],
        make_audio: Callable[..., Path],
        converter: FakeConverter,
    ) -> None:
        job = _job(make_audio("a.mp3"))

        result = make_unit(writer=FailingWriter()).process(job)

        assert result.error is not None
        assert result.error.stage == "written"
        assert result.error.kind == "WriteError"
        assert job.stage is JobStage.TRANSCRIBED
        assert not converter.converted[0].exists()

    def test_unexpected_error_is_wrapped(
        self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path]
    ) -> None:
        class ExplodingEngine(FakeEngine):
            def run(self, audio_path, model_path, options):  # noqa: ANN001, ANN201
                raise ZeroDivisionError("division by zero")

        result = make_unit(engine=ExplodingEngine()).process(_job(make_audio("a.mp3")))

        assert result.status is JobStatus.FAILED
        assert result.error is not None
        assert result.error.kind == "UnexpectedError"
        assert result.error.stage == "transcribed"
        assert "ZeroDivisionError" in result.error.message

    def test_job_cannot_be_processed_twice(
        self, make_unit: Callable[..., TranscriptionUnit], make_audio: Callable[..., Path]
    ) -> None:
        job = _job(make_audio("a.mp3"))
        unit = make_unit()
        unit.process(job)

        with pytest.raises(InvalidTransitionError):
            unit.process(job)


class TestStatsAggregator:
    def test_aggregates_by_status(self, tmp_path: Path) -> None:
        ticks = iter([10.0, 14.0])
        stats = StatsAggregator(clock=lambda: next(ticks))
        job = _job(tmp_path / "a.mp3")

        stats.start()
        stats.record(JobResult(job=job, status=JobStatus.SUCCEEDED, word_count=100, audio_duration=30.0))
        stats.record(JobResult(job=job, status=JobStatus.SUCCEEDED, word_count=50, audio_duration=10.0))
        stats.record(JobResult(job=job, status=JobStatus.FAILED, word_count=7, audio_duration=99.0))
        stats.record(JobResult(job=job, status=JobStatus.SKIPPED))
        result = stats.finish()

        assert result.succeeded == 2
        assert result.failed == 1
        assert result.skipped == 1
        assert result.processed == 3
        assert result.total_words == 150
        assert result.total_audio_duration == 40.0
        assert result.elapsed == 4.0
        assert result.realtime_speed == 10.0

    def test_realtime_speed_absent_without_audio(self) -> None:
        ticks = iter([0.0, 2.0])
        stats = StatsAggregator(clock=lambda: next(ticks))
        stats.start()

        assert stats.finish().realtime_speed is None

    def test_rejects_non_terminal_result(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="non-terminal"):
            StatsAggregator().record(JobResult(job=_job(tmp_path / "a.mp3"), status=JobStatus.RUNNING))
