from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

# Keep imports lazy so `batchscribe --help` does not pull in faster-whisper.
__all__ = ["reflow_text", "TranscriptionProcessor", "RunConfig", "__version__"]

if TYPE_CHECKING:
    from batchscribe.processor import TranscriptionProcessor
    from batchscribe.reflow import reflow_text
    from batchscribe.run_config import RunConfig

_LAZY_IMPORTS = {
    "reflow_text": "batchscribe.reflow",
    "TranscriptionProcessor": "batchscribe.processor",
    "RunConfig": "batchscribe.run_config",
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_IMPORTS:
        import importlib

        module = importlib.import_module(_LAZY_IMPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module 'batchscribe' has no attribute '{name}'")
