"""
CLI interface for Usage Insights.

Loads usage CSV exports and prints summaries and statistics.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from usage_insights.config.loader import AppConfig, load_config
from usage_insights.core.dates import filter_by_date_range
from usage_insights.core.errors import UsageInsightsError
from usage_insights.core.ingest import IngestMode, IngestService
from usage_insights.core.processor import DataProcessor, UsageSummary
from usage_insights.core.stats import ComprehensiveStats, StatsCalculator
from usage_insights.storage.repository import UsageStore

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Usage Insights CLI."""
    try:
        app_config = load_config(str(config)) if config else AppConfig()
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _configure_logging("DEBUG" if verbose else app_config.logging.level)
    ctx.obj = app_config

    if ctx.invoked_subcommand is None:
        console.print("Usage Insights - Use --help to see available commands")


def _load_files(ctx: typer.Context, files: List[Path]) -> UsageStore:
    """Ingest files into a fresh store: the first replaces, the rest merge."""
    config: AppConfig = ctx.obj or AppConfig()
    store = UsageStore()
    service = IngestService(store, config=config.ingest)

    for position, path in enumerate(files):
        mode = IngestMode.REPLACE if position == 0 else IngestMode.APPEND
        result = service.ingest(path.name, path.read_bytes(), mode=mode)
        logger.info(
            "%s: %d records parsed, %d stored", path.name, result.parsed_count, result.stored_count
        )
    return store


@app.command()
def validate(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV export to check")
):
    """Check that a CSV export parses and passes validation."""
    config: AppConfig = ctx.obj or AppConfig()
    service = IngestService(UsageStore(), config=config.ingest)
    try:
        records = service.load(file.name, file.read_bytes())
    except UsageInsightsError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] {file.name} is valid ({len(records):,} records)")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def summary(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="CSV exports to load"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables")
):
    """
    Summarise usage across one or more CSV exports.

    Later files are merged into earlier ones, dropping duplicate records.
    """
    try:
        store = _load_files(ctx, files)
    except UsageInsightsError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    records = store.snapshot()
    result = DataProcessor().calculate_summary(records)

    if as_json:
        typer.echo(json.dumps({"record_count": len(records), "summary": result.to_dict()}, indent=2))
    else:
        _display_summary(result, len(records))
    sys.exit(EXIT_CODE_PASS)


@app.command()
def stats(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="CSV exports to load"),
    start_date: Optional[str] = typer.Option(None, "--start", help="First day to include (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--end", help="Last day to include (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables")
):
    """Show summary, model breakdown and comprehensive statistics."""
    try:
        store = _load_files(ctx, files)
    except UsageInsightsError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    data = store.snapshot()
    filtered = filter_by_date_range(data, start_date, end_date)
    if not filtered:
        console.print("[yellow]No data found for the specified date range.[/]")
        sys.exit(EXIT_CODE_PASS)

    result = DataProcessor().calculate_summary(filtered)
    comprehensive = StatsCalculator().calculate_comprehensive_stats(filtered)

    if as_json:
        payload = {
            "record_count": len(filtered),
            "total_records": len(data),
            "date_range": {"start_date": start_date, "end_date": end_date},
            "summary": result.to_dict(),
            "comprehensive_stats": comprehensive.to_dict(),
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        _display_summary(result, len(filtered))
        _display_comprehensive_stats(comprehensive)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float, places: int = 2) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${amount:,.{places}f}"


def _display_summary(result: UsageSummary, record_count: int):
    """Display summary totals and the per-model breakdown."""
    console.print("\n[bold]Usage Summary[/bold]")
    console.print("-" * 40)
    console.print(f"Records: {record_count:,}")
    console.print(f"Total cost: {_format_currency(result.total_cost)}")
    console.print(f"Total tokens: {result.total_tokens:,}")
    console.print(f"Average cost/day: {_format_currency(result.average_cost_per_day)}")
    console.print(f"Most used model: {result.most_used_model}")
    console.print(f"Date range: {result.date_range.start} .. {result.date_range.end}")

    table = Table(title="Model Breakdown")
    table.add_column("Model")
    table.add_column("Requests", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Avg tokens", justify="right")
    table.add_column("Cache %", justify="right")
    for model in result.model_breakdown:
        table.add_row(
            model.model,
            f"{model.total_requests:,}",
            f"{model.total_tokens:,}",
            _format_currency(model.total_cost),
            f"{model.average_tokens_per_request:,.1f}",
            f"{model.cache_efficiency:.1f}",
        )
    console.print(table)


def _display_comprehensive_stats(result: ComprehensiveStats):
    peak = result.peak_usage
    efficiency = result.cost_efficiency
    trends = result.usage_trends

    console.print("\n[bold]Peak Usage[/bold]")
    console.print(f"Peak hour: {peak.peak_hour:02d}:00 ({peak.peak_tokens_per_hour:,} tokens)")
    console.print(f"Peak day: {peak.peak_day or 'N/A'} ({_format_currency(peak.peak_cost_per_day)})")

    console.print("\n[bold]Cost Efficiency[/bold]")
    console.print(f"Cost/token: {_format_currency(efficiency.cost_per_token, 6)}")
    console.print(f"Cost/request: {_format_currency(efficiency.cost_per_request, 4)}")
    console.print(f"Cache savings: {efficiency.cache_savings:.1f}%")

    console.print("\n[bold]Usage Trends[/bold]")
    console.print(f"Daily growth: {trends.daily_growth_rate:+.1f}% ({trends.usage_pattern})")
    percentiles = trends.usage_percentiles
    console.print(
        f"Tokens/request median: {percentiles.median:,}  "
        f"p95: {percentiles.p95:,}  p99: {percentiles.p99:,}"
    )


if __name__ == "__main__":
    app()
