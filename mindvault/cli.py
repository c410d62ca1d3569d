"""
CLI interface for the memory toolset.

Usage:
    mindvault sync
    mindvault search "project proposal"
    mindvault grep "api" --type WORK --since 2026-01-20
    mindvault synthesize --date 2026-02-01
"""

import json
import os
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import ROOT_ENV, VaultConfig, get_default_root, load_or_create_config
from .linear_search import LinearSearch, SearchHit
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .memory_store import MemoryStore
from .session_context import format_session_context, load_delta_context, load_session_context
from .sync import sync_all
from .synthesis import run_weekly_synthesis
from .types import MemoryRecord, parse_category
from .work_state import WorkStateManager

# Characters of content shown per search result
PREVIEW_CHARS = 200


if os.environ.get("MINDVAULT_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"mindvault {version('mindvault')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_root_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _root_callback(value: Optional[Path]):
    global _root_override
    _root_override = value


def _get_root_override() -> Optional[Path]:
    return _root_override


app = typer.Typer(
    name="mindvault",
    help="Index, search and synthesize working notes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
work_app = typer.Typer(help="Track active projects, open items and the last session.",
                       no_args_is_help=True, rich_markup_mode=None)
context_app = typer.Typer(help="Session-start context.", rich_markup_mode=None)
app.add_typer(work_app, name="work")
app.add_typer(context_app, name="context")


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    root: Annotated[Optional[Path], typer.Option(
        "--root", "-r",
        envvar=ROOT_ENV,
        help="Memory root directory",
        callback=_root_callback,
        is_eager=True,
    )] = None,
):
    """Index, search and synthesize working notes."""


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _get_config() -> VaultConfig:
    """Load (or create) the config for the selected memory root."""
    root = _get_root_override() or get_default_root()
    try:
        config = load_or_create_config(root.expanduser())
    except (OSError, ValueError) as e:
        _fail(str(e))
    configure_ops_log(config.root)
    return config


def _parse_date(value: Optional[str], option: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        _fail(f"Invalid {option} date {value!r}. Use YYYY-MM-DD format.")


def _format_record(record: MemoryRecord) -> str:
    lines = [f"{record.topic} ({record.category})"]
    lines.append(f"  {record.timestamp} | {record.file_path}")
    if record.rating is not None:
        lines.append(f"  Rating: {record.rating}/10")
    preview = record.content[:PREVIEW_CHARS].replace("\n", " ")
    lines.append(f"  {preview}...")
    return "\n".join(lines)


def _format_hit(hit: SearchHit) -> str:
    lines = [f"[{hit.category}] {hit.relative_path} (Score: {hit.score})"]
    if hit.date:
        lines.append(f"   Date: {hit.date.isoformat()}")
    for match in hit.matches:
        lines.append(f"   Line {match.line_number}:")
        lines.extend(f"   {line}" for line in match.before)
        lines.append(f"   > {match.line}")
        lines.extend(f"   {line}" for line in match.after)
        lines.append("")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Index commands
# -----------------------------------------------------------------------------

@app.command()
def init():
    """Create the config and the index database."""
    config = _get_config()
    with MemoryStore(config.database_path):
        pass
    typer.echo(f"Database initialized at {config.database_path}")


@app.command()
def sync(
    prune: Annotated[bool, typer.Option(
        "--prune/--no-prune",
        help="Delete records whose files no longer exist",
    )] = True,
):
    """Sync all memory files into the index."""
    config = _get_config()
    with MemoryStore(config.database_path) as store:
        report = sync_all(store, config, prune=prune)

    if _get_json_output():
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    typer.echo(f"Synced {report.synced} memories to database")
    for path in report.skipped:
        typer.echo(f"  skipped {path}", err=True)
    if report.pruned:
        typer.echo(f"Pruned {len(report.pruned)} records with missing files")


@app.command()
def search(
    query: Annotated[Optional[list[str]], typer.Argument(help="Search terms")] = None,
    limit: Annotated[Optional[int], typer.Option(
        "--limit", "-n", help="Maximum results",
    )] = None,
    raw: Annotated[bool, typer.Option(
        "--raw", help="Pass the query to FTS5 unmodified",
    )] = False,
):
    """Full-text search of the index."""
    text = " ".join(query or []).strip()
    if not text:
        _fail("No search query provided")

    config = _get_config()
    with MemoryStore(config.database_path) as store:
        try:
            results = store.search(text, limit=limit or config.search_limit, raw=raw)
        except ValueError as e:
            _fail(str(e))

    if _get_json_output():
        typer.echo(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
        return
    typer.echo(f"Found {len(results)} results for \"{text}\"")
    for record in results:
        typer.echo("")
        typer.echo(_format_record(record))


@app.command()
def grep(
    query: Annotated[Optional[str], typer.Argument(
        help="Regular expression (case-insensitive)",
    )] = None,
    types: Annotated[Optional[list[str]], typer.Option(
        "--type", "-t",
        help="Only search this category: ALGORITHM, SYSTEM, WORK, JOURNAL (repeatable)",
    )] = None,
    since: Annotated[Optional[str], typer.Option(
        "--since", help="Only files dated on or after YYYY-MM-DD",
    )] = None,
    literal: Annotated[bool, typer.Option(
        "--literal", "-F", help="Match the query text literally",
    )] = False,
):
    """Search memory files directly, with surrounding lines."""
    if not query:
        _fail("No search query provided")
    try:
        categories = [parse_category(t) for t in types] if types else None
    except ValueError as e:
        _fail(str(e))
    since_date = _parse_date(since, "--since")

    config = _get_config()
    try:
        hits = LinearSearch(config).search(query, categories, since_date, literal=literal)
    except ValueError as e:
        _fail(str(e))

    if _get_json_output():
        typer.echo(json.dumps([h.to_dict() for h in hits], indent=2, ensure_ascii=False))
        return
    if not hits:
        typer.echo(f"No results found for \"{query}\"")
        return
    total = sum(h.score for h in hits)
    typer.echo(f"Found {len(hits)} files with {total} matches")
    typer.echo("=" * 60)
    for hit in hits:
        typer.echo("")
        typer.echo(_format_hit(hit))


@app.command()
def stats():
    """Show index statistics."""
    config = _get_config()
    with MemoryStore(config.database_path) as store:
        data = store.stats()

    if _get_json_output():
        typer.echo(json.dumps(data, indent=2))
        return
    typer.echo(f"Total memories: {data['total']}")
    typer.echo("")
    typer.echo("By category:")
    for category, count in data["by_category"].items():
        typer.echo(f"  {category}: {count}")
    ratings = data["ratings"]
    if ratings["count"]:
        typer.echo("")
        typer.echo("Ratings:")
        typer.echo(f"  Average: {ratings['avg']:.1f}/10")
        typer.echo(f"  Range: {ratings['min']}-{ratings['max']}")
        typer.echo(f"  Rated count: {ratings['count']}")


# -----------------------------------------------------------------------------
# Synthesis
# -----------------------------------------------------------------------------

@app.command()
def synthesize(
    date_: Annotated[Optional[str], typer.Option(
        "--date", help="Last day of the week to analyze (YYYY-MM-DD)",
    )] = None,
    dry_run: Annotated[bool, typer.Option(
        "--dry-run", help="Print the report without writing anything",
    )] = False,
):
    """Weekly pattern synthesis over recent learnings."""
    end = _parse_date(date_, "--date")
    config = _get_config()
    run = run_weekly_synthesis(config, end=end, dry_run=dry_run)
    result = run.result

    if _get_json_output():
        data = result.to_dict()
        data["report"] = str(run.report) if run.report else None
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return
    typer.echo(f"Analyzing week: {result.week_start} to {result.week_end}")
    if result.total == 0:
        typer.echo("No learnings found for this week")
        return
    typer.echo(f"Loaded {result.total} learnings, found {len(result.groups)} patterns")
    if dry_run:
        typer.echo("")
        typer.echo(run.markdown)
        return
    typer.echo(f"Created synthesis: {run.report}")


# -----------------------------------------------------------------------------
# Work state
# -----------------------------------------------------------------------------

def _work_state() -> WorkStateManager:
    return WorkStateManager(_get_config().work_state_path)


@work_app.command("show")
def work_show():
    """Show the current work state."""
    state = _work_state().get_state()
    typer.echo(json.dumps(state.to_dict(), indent=2, ensure_ascii=False))


@work_app.command("add-item")
def work_add_item(
    description: Annotated[str, typer.Argument(help="What is still open")],
    priority: Annotated[Optional[str], typer.Argument(help="high, medium or low")] = None,
    context: Annotated[Optional[str], typer.Option("--context", help="Extra context")] = None,
):
    """Add an open item."""
    try:
        item = _work_state().add_open_item(description, priority, context)
    except ValueError as e:
        _fail(str(e))
    typer.echo(f"Added [{item.priority}] {item.description}")


@work_app.command("clear-item")
def work_clear_item(
    description: Annotated[str, typer.Argument(help="Exact description to clear")],
):
    """Remove an open item."""
    removed = _work_state().clear_open_item(description)
    typer.echo(f"Cleared {removed} item(s)")


@work_app.command("add-project")
def work_add_project(
    name: Annotated[str, typer.Argument(help="Project name")],
):
    """Add an active project."""
    if _work_state().add_active_project(name):
        typer.echo(f"Added project {name}")
    else:
        typer.echo(f"Project {name} is already active")


@work_app.command("remove-project")
def work_remove_project(
    name: Annotated[str, typer.Argument(help="Project name")],
):
    """Remove an active project."""
    _work_state().remove_active_project(name)
    typer.echo(f"Removed project {name}")


@work_app.command("update-session")
def work_update_session(
    summary: Annotated[str, typer.Argument(help="What was done")],
    next_steps: Annotated[list[str], typer.Argument(help="Next steps")],
    files: Annotated[Optional[list[str]], typer.Option(
        "--file", "-f", help="File modified (repeatable)",
    )] = None,
):
    """Record the last session's summary and next steps."""
    _work_state().update_last_session(summary, next_steps, files or None)
    typer.echo("Last session updated")


# -----------------------------------------------------------------------------
# Session context
# -----------------------------------------------------------------------------

@context_app.command("load")
def context_load():
    """Full session-start context."""
    config = _get_config()
    ctx = load_session_context(config)
    if _get_json_output():
        typer.echo(json.dumps(ctx.to_dict(), indent=2, ensure_ascii=False))
        return
    typer.echo(format_session_context(ctx))


@context_app.command("delta")
def context_delta(
    since: Annotated[str, typer.Argument(help="ISO timestamp of the previous load")],
):
    """What changed since an earlier context load."""
    try:
        since_dt = datetime.fromisoformat(since)
    except ValueError:
        _fail(f"Invalid timestamp {since!r}. Use ISO format, e.g. 2026-02-02T08:00:00.")
    if since_dt.tzinfo is not None:
        since_dt = since_dt.astimezone().replace(tzinfo=None)
    typer.echo(load_delta_context(_get_config(), since_dt))


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="mindvault CLI", root=_get_root_override())
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
