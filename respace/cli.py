"""
CLI interface for scheduled document review.

Usage:
    respace track notes/ideas
    respace due -f tag=work -f or:tag=personal
    respace review -f status=active
    respace rate notes/ideas/graphs.md good
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import Reviewer, resolve_vault
from .config import get_store_dir
from .errors import PersistenceError, log_exception
from .filters import Filter, parse_filter_chain
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import UNLIMITED, Rating, ReviewItem


# Configure quiet mode by default (suppress verbose library output)
# Set RESPACE_VERBOSE=1 to enable debug mode via environment
if os.environ.get("RESPACE_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"respace {version('respace')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_vault_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _vault_callback(value: Optional[Path]):
    global _vault_override
    if value is not None:
        _vault_override = value


def _get_vault_override() -> Optional[Path]:
    return _vault_override


app = typer.Typer(
    name="respace",
    help="Spaced-repetition review of the documents in a vault.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


FilterOption = Annotated[Optional[list[str]], typer.Option(
    "--filter", "-f",
    help="Property filter: [and:|or:]property=value (repeatable, applied in order)"
)]

FoldOption = Annotated[bool, typer.Option(
    "--fold",
    help="Evaluate every filter (a later OR can re-admit after a failed AND)"
)]


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
    vault: Annotated[Optional[Path], typer.Option(
        "--vault",
        envvar="RESPACE_VAULT",
        help="Vault directory (default: current directory)",
        callback=_vault_callback,
        is_eager=True,
    )] = None,
):
    """Spaced-repetition review of the documents in a vault."""


def _get_store_dir() -> Path:
    """Store directory of the selected vault (for the error log)."""
    return get_store_dir(resolve_vault(_get_vault_override()))


def _get_reviewer() -> Reviewer:
    """Open the vault's review store, handling errors gracefully."""
    import atexit

    try:
        rv = Reviewer(_get_vault_override(), ops_log=True)
    except Exception as e:
        _fail(e, "open")
    # Ensure pending state is saved before interpreter shutdown
    atexit.register(rv.close)
    return rv


def _fail(e: Exception, context: str) -> None:
    log_path = log_exception(e, context, _get_store_dir())
    typer.echo(f"Error: {e}", err=True)
    typer.echo(f"Details: {log_path}", err=True)
    raise typer.Exit(1)


def _parse_filters(exprs: Optional[list[str]]) -> list[Filter]:
    try:
        return parse_filter_chain(exprs)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _format_date(ms: Optional[int]) -> str:
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _format_item(item: ReviewItem, id_width: int = 0) -> str:
    state = "new" if item.is_new else f"{item.interval:g}d"
    return (
        f"{item.path:<{id_width}}  {state:>8}  ease {item.ease_factor:<4g}  "
        f"reps {item.repetitions:<3}  next {_format_date(item.next_review_date)}"
    )


def _format_items(items: list[ReviewItem], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([item.to_dict() for item in items], indent=2)
    if not items:
        return "No items."
    width = min(60, max(len(item.path) for item in items))
    return "\n".join(_format_item(item, width) for item in items)


def _format_filters(filters: list[Filter]) -> str:
    if not filters:
        return ""
    parts = [f"{filters[0].property} = {filters[0].value}"]
    parts.extend(str(f) for f in filters[1:])
    return " ".join(parts)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def track(
    paths: Annotated[list[str], typer.Argument(help="Markdown files or directories")],
):
    """Track documents for review (directories: every .md file inside)."""
    rv = _get_reviewer()
    result = rv.track_paths(paths)
    for path, error in result.errors:
        typer.echo(f"Failed to track {path}: {error}", err=True)
    if _get_json_output():
        typer.echo(json.dumps({
            "added": result.changed,
            "skipped": result.skipped,
            "errors": [{"path": p, "error": e} for p, e in result.errors],
        }, indent=2))
    elif result.changed:
        count = len(result.changed)
        error_msg = f" ({len(result.errors)} errors)" if result.errors else ""
        typer.echo(f"Added {count} new item{'s' if count > 1 else ''} for review{error_msg}")
    else:
        typer.echo("No new markdown files found to track")
    if result.errors and not result.changed:
        raise typer.Exit(1)


@app.command()
def untrack(
    paths: Annotated[list[str], typer.Argument(help="Files or directories to stop tracking")],
):
    """Stop tracking documents."""
    rv = _get_reviewer()
    result = rv.untrack_paths(paths)
    for path, error in result.errors:
        typer.echo(f"Failed to untrack {path}: {error}", err=True)
    if _get_json_output():
        typer.echo(json.dumps({"removed": result.changed}, indent=2))
    elif result.changed:
        count = len(result.changed)
        typer.echo(f"Untracked {count} item{'s' if count > 1 else ''}")
    else:
        typer.echo("No tracked items found to remove")


@app.command("list")
def list_items(
    sort: Annotated[str, typer.Option(
        "--sort", help="Sort by: path, next, interval"
    )] = "path",
):
    """List every tracked document."""
    keys = {
        "path": lambda i: i.path,
        "next": lambda i: i.next_review_date,
        "interval": lambda i: (i.interval, i.next_review_date),
    }
    if sort not in keys:
        typer.echo(f"Error: unknown sort {sort!r} (path, next, interval)", err=True)
        raise typer.Exit(1)
    rv = _get_reviewer()
    items = sorted(rv.get_all(), key=keys[sort])
    typer.echo(_format_items(items, _get_json_output()))


@app.command()
def due(
    filter: FilterOption = None,
    fold: FoldOption = False,
):
    """Show the documents due for review now, most urgent first."""
    filters = _parse_filters(filter)
    rv = _get_reviewer()
    items = rv.get_due(filters, short_circuit=not fold)
    if _get_json_output():
        typer.echo(_format_items(items, as_json=True))
        return

    summary = rv.due_summary(filters, short_circuit=not fold)
    typer.echo(_format_items(items))
    typer.echo("")
    if filters:
        typer.echo(f"Filters: {_format_filters(filters)}")
    typer.echo(f"Total items: {summary.total}  Due: {summary.due}  Filtered: {summary.filtered}")
    limit = summary.limit
    if limit.limit == UNLIMITED:
        typer.echo("Daily limit: Unlimited new items")
    else:
        typer.echo(f"Daily limit: {limit.used}/{limit.limit} new items reviewed today")
    if summary.over_budget:
        typer.echo(
            f"Only {limit.remaining} of the {summary.new_in_filtered} new items "
            "will be available today"
        )


@app.command()
def rate(
    id: Annotated[str, typer.Argument(help="Tracked document id (vault-relative path)")],
    rating: Annotated[str, typer.Argument(help="again, hard, good, easy (or 1-4)")],
):
    """Record a review rating for one document."""
    try:
        parsed = Rating.parse(rating)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    rv = _get_reviewer()
    try:
        item = rv.update_review(id, parsed)
    except PersistenceError as e:
        _fail(e, "rate")
    if item is None:
        typer.echo(f"Not tracked: {id}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps(item.to_dict(), indent=2))
    else:
        typer.echo(f"{item.path}: next review {_format_date(item.next_review_date)}")


@app.command()
def review(
    filter: FilterOption = None,
    fold: FoldOption = False,
):
    """Interactive review session over the due queue."""
    filters = _parse_filters(filter)
    rv = _get_reviewer()
    session = rv.session(filters, short_circuit=not fold)
    if not len(session):
        if filters:
            typer.echo("No notes match the applied filters. Clear filters or adjust criteria")
        else:
            typer.echo("No notes due for review")
        return

    typer.echo(f"Starting review session with {len(session)} notes")
    while not session.finished:
        item = session.current
        typer.echo("")
        typer.echo(f"[{session.index + 1}/{len(session)}] {item.path}")
        answer = typer.prompt("Rating (1 again, 2 hard, 3 good, 4 easy, q quit)", default="3")
        if answer.strip().lower() in ("q", "quit"):
            break
        try:
            session.rate(answer)
        except ValueError as e:
            typer.echo(str(e), err=True)
            continue
        except PersistenceError as e:
            _fail(e, "review")

    typer.echo("")
    typer.echo(f"Reviewed {session.reviewed} notes")
    if session.finished:
        if session.more_due():
            typer.echo("More notes available. Adjust filters to continue.")
        else:
            typer.echo("No more notes to review")


@app.command()
def stats():
    """Show counts of tracked, due, new, learning and review documents."""
    rv = _get_reviewer()
    s = rv.get_statistics()
    if _get_json_output():
        typer.echo(json.dumps(s._asdict(), indent=2))
        return
    typer.echo(f"Total tracked notes: {s.total}")
    typer.echo(f"Due for review:      {s.due}")
    typer.echo(f"New notes:           {s.new}")
    typer.echo(f"Learning notes:      {s.learning}")
    typer.echo(f"Review notes:        {s.review}")


@app.command()
def limit(
    set_limit: Annotated[Optional[int], typer.Option(
        "--set", help="New items per day (-1 for unlimited, or 1-1000)"
    )] = None,
):
    """Show (or change) today's new-item budget."""
    rv = _get_reviewer()
    if set_limit is not None:
        try:
            rv.set_new_items_per_day(set_limit)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    info = rv.get_daily_limit_info()
    if _get_json_output():
        typer.echo(json.dumps(info._asdict(), indent=2))
    elif info.limit == UNLIMITED:
        typer.echo(f"Unlimited new items ({info.used} reviewed today)")
    else:
        typer.echo(f"{info.used}/{info.limit} new items reviewed today, {info.remaining} remaining")


@app.command()
def cleanup():
    """Untrack documents that no longer exist."""
    rv = _get_reviewer()
    try:
        cleaned = rv.cleanup()
    except PersistenceError as e:
        _fail(e, "cleanup")
    if _get_json_output():
        typer.echo(json.dumps({"removed": cleaned}))
    elif cleaned > 0:
        typer.echo(f"Cleaned up {cleaned} deleted note{'s' if cleaned > 1 else ''}")
    else:
        typer.echo("No deleted notes found")


@app.command()
def properties():
    """List property names used by tracked documents."""
    rv = _get_reviewer()
    names = rv.property_names()
    if _get_json_output():
        typer.echo(json.dumps(names))
    else:
        for name in names:
            typer.echo(name)


@app.command()
def values(
    name: Annotated[str, typer.Argument(help="Property name")],
):
    """List the values of one property across tracked documents."""
    rv = _get_reviewer()
    found = rv.property_values(name)
    if _get_json_output():
        typer.echo(json.dumps(found))
    else:
        for value in found:
            typer.echo(value)


@app.command("config")
def show_config():
    """Show the store configuration."""
    rv = _get_reviewer()
    config = rv.config
    data = {
        "vault": str(rv.vault),
        "store": str(rv.store_path),
        "config": str(config.config_path),
        "data_location": config.data_location,
        "new_items_per_day": config.new_items_per_day,
        "autosave_seconds": config.autosave_seconds,
    }
    if _get_json_output():
        typer.echo(json.dumps(data, indent=2))
    else:
        for key, value in data.items():
            typer.echo(f"{key}: {value}")


def main():
    app()


if __name__ == "__main__":
    main()
