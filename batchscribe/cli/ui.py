"""UI utilities for CLI commands using Rich."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from batchscribe.processor import BatchReport
from batchscribe.run_config import RunConfig
from batchscribe.types import BatchStats, DiscoverySummary, JobResult

console = Console()


def display_config_table(config: RunConfig) -> None:
    """Display transcription configuration using Rich."""
    config_table = Table.grid(padding=(0, 2))
    config_table.add_row("[bold]Inputs:[/bold]", ", ".join(str(path) for path in config.inputs))
    config_table.add_row("[bold]Model:[/bold]", config.model)
    config_table.add_row("[bold]Workers:[/bold]", str(config.workers))
    if config.language:
        config_table.add_row("[bold]Language:[/bold]", config.language)
    config_table.add_row("[bold]Output format:[/bold]", config.output_format)
    config_table.add_row("[bold]Output directory:[/bold]", str(config.output_dir) if config.output_dir else "next to input")
    if config.force:
        config_table.add_row("[bold]Force:[/bold]", "re-transcribing existing outputs")

    console.print("\n[bold]Transcription Configuration[/bold]")
    console.print(Panel(config_table, border_style="blue", padding=(0, 1)))
    console.print()


def display_discovery(summary: DiscoverySummary) -> None:
    console.print(
        f"📁 Found [bold]{summary.discovered}[/bold] audio files: "
        f"{summary.already_done} already transcribed, [bold]{summary.to_process}[/bold] to process"
    )


def create_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def format_failure(result: JobResult) -> str:
    return f"[red]✗[/red] {result.job.audio.name}: {result.error}"


def display_processing_summary(report: BatchReport) -> None:
    """Display processing summary using Rich.

    Args:
        report: Report returned by the processor
    """
    console.print()
    summary_table = Table.grid(padding=(0, 2))
    summary_table.add_row("[bold]Files found:[/bold]", str(report.summary.discovered))
    summary_table.add_row("[bold]Already transcribed:[/bold]", str(report.stats.skipped))
    summary_table.add_row("[bold]Successfully processed:[/bold]", f"[green]{report.stats.succeeded}[/green]")
    summary_table.add_row("[bold]Failed:[/bold]", f"[red]{report.stats.failed}[/red]")

    console.print("[bold]Processing Summary[/bold]")
    console.print(Panel(summary_table, border_style="green", padding=(0, 1)))

    if report.failures:
        console.print("[bold red]Failed files[/bold red]")
        for result in report.failures:
            console.print(f"  {format_failure(result)}")


def display_run_statistics(stats: BatchStats) -> None:
    """Display run statistics using Rich."""
    stats_table = Table.grid(padding=(0, 2))
    stats_table.add_row("[bold]Total time:[/bold]", f"{stats.elapsed:.2f} s")
    stats_table.add_row("[bold]Audio transcribed:[/bold]", f"{stats.total_audio_duration / 60:.1f} min")
    stats_table.add_row("[bold]Words:[/bold]", f"{stats.total_words:,}")
    speed = stats.realtime_speed
    stats_table.add_row("[bold]Average speed:[/bold]", f"{speed:.2f}x realtime" if speed is not None else "n/a")

    console.print()
    console.print("[bold]Run Statistics[/bold]")
    console.print(Panel(stats_table, border_style="cyan", padding=(0, 1)))
