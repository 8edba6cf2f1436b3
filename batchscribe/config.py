import logging
import os
import sys
import tempfile
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv
from rich.logging import RichHandler

# Load environment variables from the project root .env (if present)
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Root of the model cache; models live under <cache>/models/<name>
DEFAULT_CACHE_DIR = Path("~/.cache/batchscribe").expanduser()
# Converted (16 kHz mono) audio is written here and removed when its job ends
DEFAULT_TEMP_DIR = Path(tempfile.gettempdir()) / "batchscribe"


# --- Logging Configuration ---
# runtime modules should use logging.getLogger(...) and env LOG_LEVEL
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_logging_configured = False


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    if not value:
        return default
    name = value.strip().upper()
    level = getattr(logging, name, default)
    return level if isinstance(level, int) else default


def _build_console_handler(level: int, isatty: Callable[[], bool] | None = None) -> logging.Handler:
    """Return a console handler. Use Rich in TTY, plain stream otherwise."""
    if (isatty or sys.stderr.isatty)():
        handler: logging.Handler = RichHandler(
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
            show_level=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def _build_file_handler(app_log_dir: str, level: int) -> logging.Handler | None:
    log_dir = Path(app_log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.warning("Failed to configure file logging to '%s'. Error: %s", app_log_dir, e)
        return None

    backup_count_env = os.getenv("APP_LOG_BACKUP_COUNT", "5")
    try:
        backup_count = max(0, int(str(backup_count_env).strip()))
    except (TypeError, ValueError):
        backup_count = 5
        logging.warning(
            "Invalid APP_LOG_BACKUP_COUNT=%r. Defaulting to 5.",
            backup_count_env,
        )

    file_handler = TimedRotatingFileHandler(
        filename=log_dir / "batchscribe.log",
        when="midnight",
        backupCount=backup_count,
        encoding="utf-8",
        utc=True,
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(level)
    return file_handler


def setup_logging(level: int | None = None, *, force: bool = False) -> None:
    """Configure the root logger once with console and optional file handler.

    ``level`` overrides LOG_LEVEL. ``force`` replaces handlers installed by an
    earlier call, which the CLI uses when --verbose/--quiet change the level.
    """
    global _logging_configured
    if _logging_configured and not force:
        return

    resolved_level = level if level is not None else _parse_level(os.getenv("LOG_LEVEL", "INFO"))

    root = logging.getLogger()
    if force:
        for existing in list(root.handlers):
            root.removeHandler(existing)
            existing.close()
    root.setLevel(resolved_level)
    root.addHandler(_build_console_handler(resolved_level))

    # Optional file logging only when APP_LOG_DIR is set
    app_log_dir = os.getenv("APP_LOG_DIR")
    if app_log_dir:
        file_handler = _build_file_handler(app_log_dir, resolved_level)
        if file_handler is not None:
            root.addHandler(file_handler)

    # Reduce noise from common libraries
    for noisy in (
        "httpx",
        "urllib3",
        "huggingface_hub",
        "faster_whisper",
    ):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    # Forward warnings module messages to logging
    logging.captureWarnings(True)

    _logging_configured = True


# --- End Logging Configuration ---
