"""
esexport CLI - Main entry point.

Exports every document matching a query, one scroll cursor per slice,
into a JSON-lines file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from esexport import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Parallel sliced-scroll exporter for Elasticsearch",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

EXAMPLES = """
Examples:
    esexport export --slices 2 --query '{"_source": false, "size": 1000, "query": {"bool": {"filter": {"term": {"field": "value"}}}}}'
"""


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """esexport - Parallel sliced-scroll exporter for Elasticsearch."""
    pass


# =============================================================================
# Export Command
# =============================================================================


@app.command("export", epilog=EXAMPLES)
def export(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (default: ./esexport.yaml if present)",
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Elasticsearch host"),
    index: Optional[str] = typer.Option(None, "--index", help="Index to search"),
    doc_type: Optional[str] = typer.Option(None, "--type", help="Document type"),
    routing: Optional[str] = typer.Option(None, "--routing", help="Routing passed to the query"),
    search_context_ttl: Optional[str] = typer.Option(
        None,
        "--search-context-ttl",
        help="Search context TTL used to search and scroll",
    ),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query to slice (JSON)"),
    slices: Optional[int] = typer.Option(None, "--slices", "-s", help="Number of slices"),
    slice_field: Optional[str] = typer.Option(
        None,
        "--slice-field",
        help="The field used to slice the query",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    progress_interval: Optional[float] = typer.Option(
        None,
        "--progress-interval",
        help="Seconds between progress updates",
    ),
    trace: bool = typer.Option(
        False,
        "--trace",
        help="Log queries, slice totals and timings (also: ESEXPORTDEBUG=1)",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Log file (JSON lines)"),
) -> None:
    """Export every document matching a query to a JSON-lines file."""
    from esexport.core.backends import ElasticsearchBackend
    from esexport.core.config import ConfigError, load_export_config, parse_query, trace_from_env
    from esexport.core.cursor import InvalidPartition, MalformedQuery
    from esexport.core.logging import setup_logging
    from esexport.core.orchestrator import ExportRunner
    from esexport.core.sinks import JsonLinesSink, NullSink

    try:
        config = load_export_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        if e.details:
            err_console.print(f"[dim]{escape(e.details)}[/dim]")
        raise typer.Exit(1)

    try:
        config = _apply_overrides(
            config,
            host=host,
            index=index,
            doc_type=doc_type,
            routing=routing,
            search_context_ttl=search_context_ttl,
            slices=slices,
            slice_field=slice_field,
            output=output,
            progress_interval=progress_interval,
            trace=trace or trace_from_env(),
            log_level=log_level,
            log_file=log_file,
        )
        if query is not None:
            config.partition.query = parse_query(query)
    except MalformedQuery as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        err_console.print(f"[red]Invalid option:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        setup_logging(
            level="DEBUG" if config.trace else config.logging.level,
            log_file=config.logging.file,
            json_format=config.logging.json_format,
            rich_console=config.logging.rich_console,
            console=err_console,
        )
    except OSError as e:
        err_console.print(f"[red]Error creating log file:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    backend = ElasticsearchBackend(
        host=config.client.host,
        index=config.client.index,
        doc_type=config.client.doc_type,
        routing=config.client.routing,
        search_context_ttl=config.client.search_context_ttl,
        timeout=config.client.timeout_seconds,
        max_connections=max(config.partition.count, 1),
    )

    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )
    task = progress.add_task("[cyan]Exporting...[/cyan]", total=None)

    def on_progress(tick):
        progress.update(task, completed=tick.current, total=tick.total)

    try:
        # Cursors are validated before the output file is truncated
        try:
            runner = ExportRunner(
                backend,
                partition_count=config.partition.count,
                partition_field=config.partition.field,
                query=config.partition.query,
                progress_interval=config.progress_interval,
                on_progress=on_progress,
                trace=config.trace,
            )
        except (InvalidPartition, MalformedQuery) as e:
            err_console.print(f"[red]Error creating cursor:[/red] {escape(str(e))}")
            raise typer.Exit(1)

        try:
            sink = JsonLinesSink(config.output) if config.output else NullSink()
        except OSError as e:
            err_console.print(f"[red]Error creating output file:[/red] {escape(str(e))}")
            raise typer.Exit(1)

        if config.partition.sliced:
            message = f"Exporting with [cyan]{config.partition.count}[/cyan] slices"
            if config.partition.field:
                message += f" on [cyan]{escape(config.partition.field)}[/cyan]"
            console.print(message)
        else:
            console.print("Exporting without slicing")

        try:
            with progress:
                result = runner.run(sink)

                if result.ok:
                    progress.update(task, description="[green]Export complete[/green]")
                else:
                    progress.update(task, description="[yellow]Export finished with errors[/yellow]")
        finally:
            sink.close()
    finally:
        backend.close()

    console.print()
    _show_summary(result, sink.count, config.output)

    if not result.ok:
        raise typer.Exit(1)


def _apply_overrides(config, **flags):
    """Overlay command-line flags on a loaded config and re-validate it."""
    from esexport.core.config import ExportConfig

    data = config.model_dump()

    client_keys = {
        "host": "host",
        "index": "index",
        "doc_type": "doc_type",
        "routing": "routing",
        "search_context_ttl": "search_context_ttl",
    }
    for flag, key in client_keys.items():
        if flags.get(flag) is not None:
            data["client"][key] = flags[flag]

    if flags.get("slices") is not None:
        data["partition"]["count"] = flags["slices"]
    if flags.get("slice_field") is not None:
        data["partition"]["field"] = flags["slice_field"] or None
    if flags.get("output") is not None:
        data["output"] = flags["output"]
    if flags.get("progress_interval") is not None:
        data["progress_interval"] = flags["progress_interval"]
    if flags.get("trace"):
        data["trace"] = True
    if flags.get("log_level") is not None:
        data["logging"]["level"] = flags["log_level"]
    if flags.get("log_file") is not None:
        data["logging"]["file"] = flags["log_file"]

    return ExportConfig.model_validate(data)


def _show_summary(result, written: int, output: Path | None) -> None:
    """Show summary table of slice results and what reached the sink."""
    table = Table(title="Export Summary")

    table.add_column("Slice", justify="right", style="cyan")
    table.add_column("Status")
    table.add_column("Documents", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Duration", justify="right")

    for partition in result.partitions:
        status_style = "green" if partition.ok else "red"
        table.add_row(
            str(partition.index),
            f"[{status_style}]{partition.status.value}[/{status_style}]",
            str(partition.documents),
            str(partition.total) if partition.total is not None else "-",
            f"{partition.duration_seconds:.1f}s",
        )

    if len(result.partitions) > 1:
        table.add_section()
        duration = f"{result.duration_seconds:.1f}s" if result.duration_seconds else "-"
        table.add_row("[bold]Total[/bold]", "", str(result.documents), "", duration)

    console.print(table)

    if output is not None:
        console.print(f"Wrote [green]{written}[/green] documents to {escape(str(output))}")
    else:
        console.print(f"Counted [green]{written}[/green] documents (no output file)")

    for partition in result.failed:
        err_console.print(f"[red]Error processing slice {partition.index}:[/red] {escape(str(partition.error))}")


if __name__ == "__main__":
    app()
