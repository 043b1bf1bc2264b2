"""
Command-line interface for the bank transaction reconciliation engine.
"""

from pathlib import Path
from typing import Optional
import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .categorization.classifier import RuleBasedClassifier
from .config import ReconConfig, generate_default_config, load_config
from .matching.engine import ReconciliationEngine
from .models.transaction import ReconciliationSummary
from .parsers.transaction_parser import TransactionFileParser
from .storage.store import InMemoryStore, JsonFileStore, KeyValueStore
from .utils.exceptions import ReconciliationError
from .utils.logging_config import configure_logging

console = Console()

config_option = click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
store_option = click.option(
    "-s",
    "--store",
    type=click.Path(path_type=Path),
    help="Path to the JSON state file (overrides storage.path)",
)


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Bank transaction reconciliation tool."""
    pass


@main.command()
@click.argument("bank_file", type=click.Path(exists=True, path_type=Path))
@click.argument("app_file", type=click.Path(exists=True, path_type=Path))
@config_option
@store_option
@click.option("--no-categorize", is_flag=True, help="Skip auto-categorization of unmatched bank txns")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Reconcile without writing the state file")
def reconcile(
    bank_file: Path,
    app_file: Path,
    config: Optional[Path],
    store: Optional[Path],
    no_categorize: bool,
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile bank transactions against application transactions.

    BANK_FILE: CSV or JSON export of bank transactions
    APP_FILE: CSV or JSON export of application transactions
    """
    try:
        recon_config = _load(config, verbose)
        if no_categorize:
            recon_config.categorization.enabled = False

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            parser = TransactionFileParser(recon_config)

            task = progress.add_task("Parsing bank transactions...", total=None)
            bank_transactions = parser.parse_bank_file(bank_file)
            progress.update(task, completed=True)

            task = progress.add_task("Parsing app transactions...", total=None)
            app_transactions = parser.parse_app_file(app_file)
            progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = ReconciliationEngine(
                recon_config,
                store=InMemoryStore() if dry_run else _open_store(recon_config, store),
                classifier=RuleBasedClassifier(),
            )
            summary = asyncio.run(engine.reconcile(bank_transactions, app_transactions))
            progress.update(task, completed=True)

        _display_summary(summary)
        _display_conflicts(engine)

        if dry_run:
            console.print("\n[yellow]Dry run - state not saved[/yellow]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@config_option
@store_option
def matches(config: Optional[Path], store: Optional[Path]):
    """List persisted matches."""
    engine = _engine_or_exit(config, store)

    table = Table(title="Reconciliation Matches")
    table.add_column("ID")
    table.add_column("Bank")
    table.add_column("App")
    table.add_column("Type")
    table.add_column("Confidence", justify="right")
    table.add_column("Status")
    table.add_column("Reviewed")

    for match in engine.get_matches():
        table.add_row(
            match.id,
            match.bank_transaction.id,
            match.app_transaction.id if match.app_transaction else "-",
            match.match_type.value,
            f"{match.confidence:.0%}",
            match.status.value,
            match.reviewed_by or ("yes" if match.is_reviewed else "-"),
        )

    console.print(table)


@main.command()
@config_option
@store_option
@click.option("--all", "show_all", is_flag=True, help="Include resolved conflicts")
def conflicts(config: Optional[Path], store: Optional[Path], show_all: bool):
    """List persisted conflicts."""
    engine = _engine_or_exit(config, store)
    _display_conflicts(engine, include_resolved=show_all)


@main.command()
@config_option
@store_option
def duplicates(config: Optional[Path], store: Optional[Path]):
    """List persisted duplicate groups."""
    engine = _engine_or_exit(config, store)

    table = Table(title="Duplicate Groups")
    table.add_column("ID")
    table.add_column("Transactions")
    table.add_column("Type")
    table.add_column("Confidence", justify="right")
    table.add_column("Suggested")
    table.add_column("Resolution")

    for group in engine.get_duplicate_groups():
        table.add_row(
            group.id,
            ", ".join(f"{t.source}:{t.id}" for t in group.transactions),
            group.duplicate_type.value,
            f"{group.confidence:.0%}",
            group.suggested_action.value,
            group.resolution or "-",
        )

    console.print(table)


@main.command("resolve-conflict")
@click.argument("conflict_id")
@click.argument(
    "resolution", type=click.Choice(["use_bank", "use_app", "merge", "ignore"])
)
@config_option
@store_option
def resolve_conflict(conflict_id: str, resolution: str, config: Optional[Path], store: Optional[Path]):
    """Resolve a conflict."""
    _review_action(
        config, store, lambda engine: engine.resolve_conflict(conflict_id, resolution)
    )
    console.print(f"[green]Conflict {conflict_id} resolved: {resolution}[/green]")


@main.command("resolve-duplicate")
@click.argument("duplicate_id")
@click.argument("resolution")
@config_option
@store_option
def resolve_duplicate(duplicate_id: str, resolution: str, config: Optional[Path], store: Optional[Path]):
    """Resolve a duplicate group."""
    _review_action(
        config, store, lambda engine: engine.resolve_duplicate(duplicate_id, resolution)
    )
    console.print(f"[green]Duplicate group {duplicate_id} resolved: {resolution}[/green]")


@main.command("review-match")
@click.argument("match_id")
@click.option("--reviewer", required=True, help="Name of the reviewer")
@click.option(
    "--status",
    type=click.Choice(["matched", "unmatched", "conflict", "duplicate"]),
    default=None,
    help="Re-label the match while reviewing it",
)
@config_option
@store_option
def review_match(
    match_id: str,
    reviewer: str,
    status: Optional[str],
    config: Optional[Path],
    store: Optional[Path],
):
    """Mark a match as reviewed so later runs keep it."""
    _review_action(
        config, store, lambda engine: engine.review_match(match_id, reviewer, status)
    )
    console.print(f"[green]Match {match_id} reviewed by {reviewer}[/green]")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _load(config: Optional[Path], verbose: bool = False) -> ReconConfig:
    recon_config = load_config(config)
    configure_logging(recon_config.logging, verbose)
    return recon_config


def _open_store(config: ReconConfig, store: Optional[Path]) -> KeyValueStore:
    return JsonFileStore(store or Path(config.storage.path))


def _engine(config: Optional[Path], store: Optional[Path]) -> ReconciliationEngine:
    recon_config = _load(config)
    return ReconciliationEngine(recon_config, store=_open_store(recon_config, store))


def _engine_or_exit(config: Optional[Path], store: Optional[Path]) -> ReconciliationEngine:
    try:
        return _engine(config, store)
    except ReconciliationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


def _review_action(config: Optional[Path], store: Optional[Path], action) -> None:
    engine = _engine_or_exit(config, store)
    try:
        action(engine)
    except (ReconciliationError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Bank Transactions", str(summary.total_bank_transactions))
    table.add_row("Total App Transactions", str(summary.total_app_transactions))
    table.add_row("Matched", str(summary.matched))
    table.add_row("Unmatched", str(summary.unmatched))
    table.add_row("Conflicts", str(summary.conflicts))
    table.add_row("Duplicate Groups", str(summary.duplicates))
    table.add_row("Accuracy", f"{summary.accuracy_percent:.1f}%")

    console.print(table)


def _display_conflicts(engine: ReconciliationEngine, include_resolved: bool = False) -> None:
    rows = [c for c in engine.get_conflicts() if include_resolved or not c.is_resolved]
    if not rows:
        return

    table = Table(title="Conflicts")
    table.add_column("ID")
    table.add_column("Field")
    table.add_column("Bank Value")
    table.add_column("App Value")
    table.add_column("Suggested")
    table.add_column("Resolution")

    for conflict in rows:
        table.add_row(
            conflict.id,
            conflict.conflict_type.value,
            str(conflict.bank_value),
            str(conflict.app_value),
            conflict.suggested_resolution.value,
            conflict.resolution.value if conflict.resolution else "-",
        )

    console.print(table)


if __name__ == "__main__":
    main()
