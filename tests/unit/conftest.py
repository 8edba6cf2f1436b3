from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from fakes import FakeConverter, FakeEngine, FakeModelStore

from batchscribe.components import TranscriptionUnit
from batchscribe.model_cache import ModelCache
from batchscribe.run_config import RunConfig
from batchscribe.services.text_output_writer import TextOutputWriter


@pytest.fixture(scope="session", autouse=True)
def _disable_network_for_unit_tests() -> None:
    """Block real sockets for unit tests; allow Unix sockets for pytest internals."""
    from pytest_socket import disable_socket

    disable_socket(allow_unix_socket=True)


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "audio"
    folder.mkdir()
    return folder


@pytest.fixture
def make_audio(audio_dir: Path) -> Callable[..., Path]:
    """Create placeholder audio files; the fakes never decode them."""

    def _make(name: str, folder: Path | None = None) -> Path:
        target = (folder or audio_dir) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"\x00\x01fake-audio")
        return target

    return _make


@pytest.fixture
def run_config(tmp_path: Path, audio_dir: Path) -> RunConfig:
    return RunConfig.from_env(
        [audio_dir],
        env={},
        model="tiny",
        workers=2,
        cache_dir=tmp_path / "cache",
        temp_dir=tmp_path / "tmp",
    )


@pytest.fixture
def model_store() -> FakeModelStore:
    return FakeModelStore()


@pytest.fixture
def converter(tmp_path: Path) -> FakeConverter:
    return FakeConverter(tmp_path / "tmp")


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def make_unit(
    run_config: RunConfig,
    model_store: FakeModelStore,
    converter: FakeConverter,
    engine: FakeEngine,
) -> Callable[..., TranscriptionUnit]:
    def _make(**overrides: object) -> TranscriptionUnit:
        parts: dict[str, object] = {
            "model_cache": ModelCache(model_store, run_config.cache_dir),
            "converter": converter,
            "engine": engine,
            "writer": TextOutputWriter(),
        }
        parts.update(overrides)
        return TranscriptionUnit(**parts)  # type: ignore[arg-type]

    return _make
