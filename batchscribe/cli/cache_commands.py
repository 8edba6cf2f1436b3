"""Cache inspection and cleanup commands."""

from __future__ import annotations

import re
import shutil
import time
from pathlib import Path
from typing import Annotated

import typer

from batchscribe.cli.ui import console
from batchscribe.model_config import MODELS_SUBDIR
from batchscribe.run_config import RunConfig

app = typer.Typer(name="cache", help="Inspect, clean and clear the model cache")

CacheDirOption = Annotated[Path | None, typer.Option("--cache-dir", help="Model cache directory")]

_AGE_PART_RE = re.compile(r"(\d+)([dhms])")
_AGE_UNITS = {"d": 86400, "h": 3600, "m": 60, "s": 1}


def format_bytes(size: int) -> str:
    """Human readable size using binary units, e.g. ``1.5 GB``."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    value = float(size)
    for suffix in "KMGTPE":
        value /= unit
        if value < unit:
            break
    return f"{value:.1f} {suffix}B"


def directory_usage(root: Path) -> tuple[int, int]:
    """Return ``(total_bytes, file_count)`` for regular files under ``root``."""
    if not root.is_dir():
        return 0, 0
    total = 0
    count = 0
    for path in root.rglob("*"):
        if path.is_file() and not path.is_symlink():
            total += path.stat().st_size
            count += 1
    return total, count


def _resolve_cache_dir(cache_dir: Path | None) -> Path:
    return RunConfig.from_env(cache_dir=cache_dir).cache_dir


@app.command()
def path(cache_dir: CacheDirOption = None) -> None:
    """Print the cache directory."""
    typer.echo(str(_resolve_cache_dir(cache_dir)))


@app.command()
def info(cache_dir: CacheDirOption = None) -> None:
    """Show cache location, size and file count."""
    root = _resolve_cache_dir(cache_dir)
    total, count = directory_usage(root)
    console.print("[bold]Cache Information[/bold]")
    console.print(f"Location: {root}")
    console.print(f"Total size: {format_bytes(total)}")
    console.print(f"File count: {count}")
    console.print(f"Status: {'active' if root.is_dir() else 'not created yet'}")


@app.command()
def clear(
    cache_dir: CacheDirOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Remove everything in the cache, including downloaded models."""
    root = _resolve_cache_dir(cache_dir)
    if not yes and not typer.confirm(f"⚠️  Remove all cached files in {root}, including models?", default=False):
        console.print("Cancelled")
        raise typer.Exit(0)

    if root.exists():
        shutil.rmtree(root)
    root.mkdir(parents=True, exist_ok=True)
    console.print("[green]✓[/green] Cache cleared")


def parse_age(text: str) -> float:
    """Parse ages like ``30d``, ``24h`` or ``1h30m`` into seconds.

    Raises:
        ValueError: If the text is not a positive age
    """
    compact = text.strip().lower()
    parts = _AGE_PART_RE.findall(compact)
    if not parts or "".join(number + unit for number, unit in parts) != compact:
        raise ValueError(f"invalid duration: {text!r} (use e.g. 30d, 7d, 24h)")
    seconds = sum(int(number) * _AGE_UNITS[unit] for number, unit in parts)
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return float(seconds)


def remove_older_than(root: Path, cutoff: float, *, keep: Path | None = None) -> tuple[int, int]:
    """Delete regular files under ``root`` last modified before ``cutoff``.

    Files under ``keep`` are left alone. Returns ``(removed_bytes, removed_count)``.
    """
    if not root.is_dir():
        return 0, 0
    removed = 0
    count = 0
    for path in root.rglob("*"):
        if not path.is_file() or path.is_symlink():
            continue
        if keep is not None and path.is_relative_to(keep):
            continue
        stat = path.stat()
        if stat.st_mtime >= cutoff:
            continue
        path.unlink()
        removed += stat.st_size
        count += 1
    return removed, count


@app.command()
def clean(
    cache_dir: CacheDirOption = None,
    temp_dir: Annotated[Path | None, typer.Option("--temp-dir", help="Directory for converted audio")] = None,
    older_than: Annotated[
        str, typer.Option("--older-than", help="Remove files older than this (e.g. 30d, 7d, 24h)")
    ] = "30d",
) -> None:
    """Remove old cached and temporary files; downloaded models are kept."""
    try:
        max_age = parse_age(older_than)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--older-than") from exc

    config = RunConfig.from_env(cache_dir=cache_dir, temp_dir=temp_dir)
    cutoff = time.time() - max_age
    models_dir = config.cache_dir / MODELS_SUBDIR
    console.print(f"🧹 Cleaning cache files older than {older_than}...")

    removed = 0
    count = 0
    roots = [config.cache_dir]
    if config.temp_dir.resolve() != config.cache_dir.resolve():
        roots.append(config.temp_dir)
    for root in roots:
        try:
            root_bytes, root_count = remove_older_than(root, cutoff, keep=models_dir)
        except OSError as exc:
            console.print(f"[red]Error:[/red] failed to clean {root}: {exc}")
            raise typer.Exit(1) from exc
        removed += root_bytes
        count += root_count

    console.print(f"[green]✓[/green] Removed {count} files ({format_bytes(removed)} freed)")
