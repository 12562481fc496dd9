import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .calculator import build_calculator
from .config import get_settings
from .errors import DataAccessError
from .logging_config import configure_logging
from .rules import QualityRules
from .scoring import OutputGenerator, summarize_scores
from .storage import JsonDirectoryDataSource

app = typer.Typer(help="Pipeline Health - account health scoring for sales pipelines")
console = Console()

LABEL_STYLES = {"Healthy": "green", "Watchlist": "yellow", "At Risk": "red"}


def _resolve_accounts(source: JsonDirectoryDataSource, accounts: Optional[List[str]]) -> List[str]:
    if accounts:
        return accounts
    try:
        account_ids = source.list_account_ids()
    except DataAccessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    if not account_ids:
        console.print(f"[red]Error: No account JSON files found in {source.data_dir}[/red]")
        raise typer.Exit(1)
    return account_ids


def _account_names(source: JsonDirectoryDataSource, account_ids: List[str]) -> Dict[str, str]:
    """Display names from the data files; unreadable files just keep their id"""
    names = {}
    for account_id in account_ids:
        path = source.data_dir / f"{account_id}.json"
        try:
            with open(path, encoding="utf-8") as f:
                name = json.load(f).get("name")
        except (OSError, ValueError, AttributeError):
            continue
        if name:
            names[account_id] = name
    return names


@app.command()
def score(
    data_dir: Optional[Path] = typer.Option(None, "--data", help="Directory of <account_id>.json files"),
    accounts: Optional[List[str]] = typer.Option(None, "--account", "-a", help="Account id to score (repeatable; default all)"),
    output_dir: Path = typer.Option(Path("out"), "--out", help="Output directory for health results"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Use rule-based quality scoring only"),
    llm_model: Optional[str] = typer.Option(None, "--model", help="LLM model for the quality signal"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Accounts scored in parallel"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output")
):
    """Compute pipeline health for accounts and write JSON, CSV and leaderboard outputs."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    source = JsonDirectoryDataSource(data_dir or settings.data_dir)
    account_ids = _resolve_accounts(source, accounts)

    output_dir.mkdir(parents=True, exist_ok=True)

    calculator = build_calculator(source, use_llm=False if no_llm else None, model=llm_model, settings=settings)
    quality_mode = "rules" if calculator.quality_estimator.oracle is None else calculator.quality_estimator.oracle.model

    console.print(f"Scoring {len(account_ids)} accounts (quality: {quality_mode})...")
    results = asyncio.run(calculator.compute_bulk_health(account_ids, concurrency=concurrency))

    generator = OutputGenerator(account_names=_account_names(source, account_ids))

    json_output = output_dir / "health.json"
    csv_output = output_dir / "health.csv"
    markdown_output = output_dir / "leaderboard.md"

    console.print("Generating output files...")
    generator.generate_json_output(results, json_output)
    generator.generate_csv_output(results, csv_output)
    generator.generate_leaderboard(results, markdown_output)

    table = Table(title="Pipeline Health")
    table.add_column("Account", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Label")
    table.add_column("Coverage", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Recency", justify="right")
    table.add_column("Tasks", justify="right")

    for result in results:
        style = LABEL_STYLES.get(result.label, "white")
        b = result.breakdown
        table.add_row(
            generator.account_name(result.account_id),
            str(result.score),
            f"[{style}]{result.label}[/{style}]",
            f"{b.coverage:.2f}",
            f"{b.quality:.2f}",
            f"{b.recency:.2f}",
            f"{b.task_progress:.2f}",
        )

    console.print(table)

    rollup = summarize_scores(results)
    console.print(f"\n[bold green]Scoring completed![/bold green] Average health: {rollup.average_score}%")
    console.print(f"JSON output: {json_output}")
    console.print(f"CSV output: {csv_output}")
    console.print(f"Leaderboard: {markdown_output}")


@app.command()
def summary(
    data_dir: Optional[Path] = typer.Option(None, "--data", help="Directory of <account_id>.json files"),
    accounts: Optional[List[str]] = typer.Option(None, "--account", "-a", help="Account id to include (repeatable; default all)"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Use rule-based quality scoring only"),
):
    """Print the dashboard rollup: average health and label counts."""
    settings = get_settings()
    configure_logging(settings.log_level)

    source = JsonDirectoryDataSource(data_dir or settings.data_dir)
    account_ids = _resolve_accounts(source, accounts)

    calculator = build_calculator(source, use_llm=False if no_llm else None, settings=settings)
    results = asyncio.run(calculator.compute_bulk_health(account_ids))
    rollup = summarize_scores(results)

    table = Table(title="Pipeline Health Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("Total Accounts", str(rollup.total_accounts))
    table.add_row("Average Health", f"{rollup.average_score}%")
    for label, count in rollup.label_counts.items():
        table.add_row(label, str(count))

    console.print(table)


@app.command("check-quality")
def check_quality(
    transcript_file: Path = typer.Argument(..., help="Plain text transcript"),
):
    """Show which rule-based quality signals fire for a transcript."""
    if not transcript_file.exists():
        console.print(f"[red]Error: File {transcript_file} does not exist[/red]")
        raise typer.Exit(1)

    text = transcript_file.read_text(encoding="utf-8")
    rules = QualityRules()

    table = Table(title=f"Rule-based quality: {transcript_file.name}")
    table.add_column("Signal", style="cyan")
    table.add_column("Found")

    for signal, matched in rules.evaluate(text).items():
        table.add_row(signal, "[green]yes[/green]" if matched else "[red]no[/red]")

    console.print(table)
    console.print(f"Quality score: [bold]{rules.score(text):.2f}[/bold]")


if __name__ == "__main__":
    app()
