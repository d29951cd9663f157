"""
CLI for the Dhamma seeder using command classes.

Each command builds its settings from the environment (.env supported),
lets CLI options override them, and exits non-zero on failure or when the
Firestore daily quota stops a run.
"""

import json
from typing import Any, Dict, Optional

import typer
from dotenv import load_dotenv
from rich.markup import escape
from rich.table import Table

# Load environment variables from .env file
load_dotenv()

from .cli_commands import ExportCommand, SchemaCommand, SeedCommand, StatusCommand
from .config import console, setup_logging

# Create the main CLI app
app = typer.Typer(
    name="dhamma-seed",
    help="Migrate the Dhamma SQLite dataset into Supabase or Firestore"
)

# Create subgroups
seed_app = typer.Typer(help="Seed a remote database from the SQLite export")
schema_app = typer.Typer(help="Postgres schema maintenance (needs DATABASE_URL)")

app.add_typer(seed_app, name="seed")
app.add_typer(schema_app, name="schema")


@app.callback()
def main(
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="Also write a run log file into this directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Dhamma content migration tool."""
    setup_logging(log_dir=log_dir, verbose=verbose)


def _print_stats(stats: Dict[str, Any], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Counter", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    for key in ("total", "processed", "inserted", "skipped", "errors", "tag_link_errors"):
        if key in stats:
            table.add_row(key.replace("_", " ").capitalize(), str(stats[key]))
    for ref_table, count in (stats.get("references") or {}).items():
        table.add_row(f"Reference: {ref_table}", str(count))

    console.print(table)


def _fail(result: Dict[str, Any], what: str) -> None:
    console.print(f"\n[red]❌ {what} failed: {escape(str(result.get('error')))}[/red]")
    raise typer.Exit(1)

# ============================================================================
# SEED COMMANDS
# ============================================================================

@seed_app.command("supabase")
def seed_supabase(
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", help="Rows per upsert (default: BATCH_SIZE or 100)"),
    retry_attempts: Optional[int] = typer.Option(None, "--retry-attempts", "-r", help="Attempts per batch (default: RETRY_ATTEMPTS or 3)"),
    batch_delay: Optional[float] = typer.Option(None, "--batch-delay", help="Seconds to wait between batches"),
    ensure_schema: bool = typer.Option(False, "--ensure-schema/--no-ensure-schema", help="Create tables via DATABASE_URL first"),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="Override SQLITE_DB_PATH"),
):
    """Upsert speakers, categories, tags and content into Supabase."""
    console.print("\n[bold blue]🌱 Seeding Supabase...[/bold blue]")

    result = SeedCommand().execute(
        "supabase",
        ensure_schema=ensure_schema,
        batch_size=batch_size,
        retry_attempts=retry_attempts,
        batch_delay_seconds=batch_delay,
        sqlite_db_path=sqlite_path,
    )
    if not result.get("success"):
        _fail(result, "Supabase seeding")

    stats = result["data"]["stats"]
    _print_stats(stats, "Supabase Seeding Summary")
    if stats.get("errors"):
        console.print(f"[yellow]⚠️  {stats['errors']} rows failed after retries; re-run to retry them (upserts are idempotent)[/yellow]")
    console.print("[green]✅ Seeding completed.[/green]")


@seed_app.command("firestore")
def seed_firestore(
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", help="Documents per batch commit (max 500)"),
    daily_limit: Optional[int] = typer.Option(None, "--daily-limit", help="Daily document write budget"),
    state_file: Optional[str] = typer.Option(None, "--state-file", help="Resume state file path"),
    reset_state: bool = typer.Option(False, "--reset-state", help="Ignore saved progress and start from the first row"),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="Override SQLITE_DB_PATH"),
):
    """Seed Firestore, resuming from saved progress within the daily write quota."""
    console.print("\n[bold blue]🔥 Seeding Firestore...[/bold blue]")

    result = SeedCommand().execute(
        "firestore",
        reset_state=reset_state,
        firestore_batch_size=batch_size,
        daily_write_limit=daily_limit,
        state_file=state_file,
        sqlite_db_path=sqlite_path,
    )
    if not result.get("success"):
        if result.get("quota_exhausted"):
            data = result.get("data") or {}
            if data.get("stats"):
                _print_stats(data["stats"], "Firestore Seeding Summary (stopped)")
            console.print(f"\n[yellow]⏸️  {escape(str(result.get('error')))}[/yellow]")
            raise typer.Exit(1)
        _fail(result, "Firestore seeding")

    data = result["data"]
    _print_stats(data["stats"], "Firestore Seeding Summary")
    state = data.get("state", {})
    console.print(f"Resume index: {state.get('lastProcessedIndex')}  "
                  f"Daily writes: {state.get('dailyProcessedCount')}")
    console.print("[green]✅ Seeding completed.[/green]")

# ============================================================================
# SCHEMA COMMANDS
# ============================================================================

def _run_schema(action: str, label: str) -> None:
    result = SchemaCommand().execute(action)
    if not result.get("success"):
        _fail(result, label)
    console.print(f"[green]✅ {label} done.[/green]")


@schema_app.command("create-tables")
def create_tables():
    """Create speakers, categories, tags, content, tag-link and featured tables."""
    _run_schema("create_tables", "Table creation")


@schema_app.command("create-indexes")
def create_indexes():
    """Create the content query indexes."""
    _run_schema("create_indexes", "Index creation")


@schema_app.command("enable-rls")
def enable_rls():
    """Enable row-level security with a public read policy."""
    _run_schema("enable_rls", "RLS setup")


@schema_app.command("resync-sequences")
def resync_sequences():
    """Move id sequences past the ids written by the seeder."""
    _run_schema("resync_sequences", "Sequence resync")

# ============================================================================
# EXPORT / STATUS
# ============================================================================

@app.command("export-normalized")
def export_normalized(
    dest: str = typer.Argument(..., help="Output SQLite path for the normalized dataset"),
    map_dir: Optional[str] = typer.Option(None, "--map-dir", help="Directory for speaker/category/tag map JSON files"),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="Override SQLITE_DB_PATH"),
):
    """Write the normalized schema and data to a local SQLite file."""
    result = ExportCommand().execute(dest, map_dir=map_dir, sqlite_db_path=sqlite_path)
    if not result.get("success"):
        _fail(result, "Export")

    table = Table(title=f"Normalized export: {dest}", show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in result["data"]["counts"].items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def status(
    remote: bool = typer.Option(False, "--remote", help="Also query Supabase table counts"),
    format_type: str = typer.Option("table", "--format", "-f", help="Output format (table or json)"),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="Override SQLITE_DB_PATH"),
    state_file: Optional[str] = typer.Option(None, "--state-file", help="Resume state file path"),
):
    """Show source statistics, Firestore resume state and (optionally) Supabase counts."""
    result = StatusCommand().execute(remote=remote, sqlite_db_path=sqlite_path, state_file=state_file)
    if not result.get("success"):
        _fail(result, "Status")

    data = result["data"]
    if format_type == "json":
        print(json.dumps(data, indent=2))
        return

    source = data["source"]
    console.print(f"\n[bold blue]📚 Source[/bold blue] {source['path']} ({source['table']})")
    console.print(f"Rows: {source['rows']}  Speakers: {source['speakers']}  Categories: {source['categories']}")
    for content_type, count in source["content_types"].items():
        console.print(f"  {content_type}: {count}")

    state = data["state"]
    if state.get("exists"):
        console.print(f"\n[bold blue]⏯️  Resume state[/bold blue] {state['path']}")
        console.print(f"Last run: {state['lastRunDate']}  Index: {state['lastProcessedIndex']}  "
                      f"Daily writes: {state['dailyProcessedCount']}/{state['daily_write_limit']} "
                      f"(remaining today: {state['remaining_today']})")
        if state.get("failedRanges"):
            console.print(f"[yellow]Failed ranges: {state['failedRanges']}[/yellow]")
    else:
        console.print("\n[dim]No resume state file.[/dim]")

    if "remote" in data:
        table = Table(title="Supabase tables", show_header=True, header_style="bold magenta")
        table.add_column("Table", style="cyan")
        table.add_column("Rows", justify="right")
        for name, info in data["remote"].items():
            table.add_row(name, str(info.get("count")) if info.get("exists") else f"[red]{escape(str(info.get('error')))}[/red]")
        console.print(table)


if __name__ == "__main__":
    app()
