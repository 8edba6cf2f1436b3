"""CLI command for batch transcription."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer

from batchscribe.cli.ui import (
    console,
    create_progress,
    display_config_table,
    display_discovery,
    display_processing_summary,
    display_run_statistics,
    format_failure,
)
from batchscribe.config import setup_logging
from batchscribe.exceptions import ConfigurationError, DiscoveryError
from batchscribe.run_config import RunConfig
from batchscribe.services.factory import ServiceFactory
from batchscribe.types import JobResult, JobStatus

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Apply --verbose/--quiet on top of LOG_LEVEL."""
    if verbose:
        setup_logging(logging.DEBUG, force=True)
    elif quiet:
        setup_logging(logging.WARNING, force=True)
    else:
        setup_logging()


def transcribe(
    paths: Annotated[list[Path], typer.Argument(help="Audio files or directories to transcribe", show_default=False)],
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model name (see `models list`)")] = None,
    workers: Annotated[int | None, typer.Option("--workers", "-w", help="Number of parallel workers")] = None,
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="Descend into subdirectories")] = False,
    force: Annotated[bool, typer.Option("--force", "-F", help="Re-transcribe files that already have output")] = False,
    output_dir: Annotated[
        Path | None, typer.Option("--output-dir", "-o", help="Write transcripts here instead of next to the input")
    ] = None,
    output_format: Annotated[str | None, typer.Option("--format", "-f", help="Output format: txt")] = None,
    language: Annotated[str | None, typer.Option("--language", "-l", help="Language code or 'auto'")] = None,
    prompt: Annotated[str | None, typer.Option("--prompt", "-p", help="Initial prompt passed to the engine")] = None,
    cache_dir: Annotated[Path | None, typer.Option("--cache-dir", help="Model cache directory")] = None,
    temp_dir: Annotated[Path | None, typer.Option("--temp-dir", help="Directory for converted audio")] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", help="Seconds allowed per ffmpeg/ffprobe call")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Exit with status 1 if any file fails")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logs")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only show warnings and errors")] = False,
) -> None:
    """Transcribe audio files into readable text, skipping ones already done."""
    _configure_logging(verbose, quiet)

    config = RunConfig.from_env(
        paths,
        model=model,
        workers=workers,
        recursive=recursive,
        force=force,
        output_dir=output_dir,
        output_format=output_format,
        language=language,
        prompt=prompt,
        cache_dir=cache_dir,
        temp_dir=temp_dir,
        timeout=timeout,
        strict=strict,
    )
    try:
        config.validate()
    except ConfigurationError as error:
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1) from error

    display_config_table(config)
    processor = ServiceFactory.create_processor(config)

    try:
        plan = processor.plan()
    except DiscoveryError as error:
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1) from error

    display_discovery(plan.summary)
    if plan.summary.discovered == 0:
        console.print("[yellow]No audio files found[/yellow]")
        raise typer.Exit(1)
    if not plan.to_process:
        console.print("[green]All files are already transcribed.[/green] Use --force to redo them.")

    with create_progress() as progress:
        task = progress.add_task("Transcribing", total=len(plan.to_process))

        def on_result(result: JobResult) -> None:
            progress.advance(task)
            if result.status is JobStatus.FAILED:
                progress.console.print(format_failure(result))

        report = processor.execute(plan, on_result=on_result)

    display_processing_summary(report)
    display_run_statistics(report.stats)

    exit_code = report.exit_code(config.strict)
    if exit_code:
        raise typer.Exit(exit_code)
