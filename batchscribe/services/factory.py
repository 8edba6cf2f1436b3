"""Factory for creating service instances from a run configuration."""

from __future__ import annotations

from batchscribe.components import TranscriptionUnit
from batchscribe.model_cache import ModelCache
from batchscribe.processor import TranscriptionProcessor
from batchscribe.run_config import RunConfig
from batchscribe.services.ffmpeg_audio_converter import FfmpegAudioConverter
from batchscribe.services.hf_model_store import HuggingFaceModelStore
from batchscribe.services.interfaces import AudioConverter, ModelStore, OutputWriter, TranscriptionEngine
from batchscribe.services.text_output_writer import TextOutputWriter
from batchscribe.services.whisper_engine import FasterWhisperEngine


class ServiceFactory:
    """Factory for creating service instances."""

    @staticmethod
    def create_model_store() -> ModelStore:
        return HuggingFaceModelStore()

    @staticmethod
    def create_model_cache(config: RunConfig, store: ModelStore | None = None) -> ModelCache:
        return ModelCache(store or ServiceFactory.create_model_store(), config.cache_dir)

    @staticmethod
    def create_audio_converter(config: RunConfig) -> AudioConverter:
        return FfmpegAudioConverter(config.temp_dir, timeout=config.timeout)

    @staticmethod
    def create_engine(config: RunConfig) -> TranscriptionEngine:
        """One engine shared by all workers; it lets each loaded model serve ``workers`` calls at once."""
        return FasterWhisperEngine(device=config.device, num_workers=config.workers)

    @staticmethod
    def create_output_writer() -> OutputWriter:
        return TextOutputWriter()

    @classmethod
    def create_processor(cls, config: RunConfig) -> TranscriptionProcessor:
        """Wire the full pipeline for ``config`` with the default implementations."""
        unit = TranscriptionUnit(
            model_cache=cls.create_model_cache(config),
            converter=cls.create_audio_converter(config),
            engine=cls.create_engine(config),
            writer=cls.create_output_writer(),
        )
        return TranscriptionProcessor(unit, config)
