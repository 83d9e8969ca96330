"""CLI interface for duscan."""

from __future__ import annotations

import json
import logging
import sys

import click

from duscan.core.errors import DirectoryReadError
from duscan.core.report import ItemFilter, Report, build_report
from duscan.core.scanner import DEEP_STRATEGIES, Scanner
from duscan.models.entry import Entry
from duscan.settings import LAST_PATH_KEY, Settings
from duscan.utils import bytes_to_human


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_scanner(strategy: str | None = None) -> Scanner:
    return Scanner(deep_strategy=strategy or Settings.instance().deep_strategy())


def _echo_entry(entry: Entry) -> None:
    size = click.style(f"{bytes_to_human(entry.size):>10s}", fg="green", bold=True)
    if entry.is_directory:
        name = click.style(entry.name + "/", fg="blue", bold=True)
    else:
        name = entry.name
    click.echo(f"  {size}  {name}")


def _shallow_scan(scanner: Scanner, path: str) -> bool:
    """Run a shallow scan to completion. Returns False if the root could not be read."""
    scanner.scan_directory(path)
    scanner.wait()
    return bool(scanner.state.current_root_path)


def _deep_scan(scanner: Scanner, path: str) -> list[Entry] | None:
    """Run a deep scan to completion. Returns None if the root could not be read."""
    results: list[Entry] = []
    errors: list[DirectoryReadError] = []
    scanner.scan_directory_recursively(path, results.extend, errors.append)
    scanner.wait()
    if errors:
        return None
    return results


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """duscan: see what is using your disk space."""
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(path: str | None, as_json: bool) -> None:
    """List the items of PATH sorted by size (defaults to the last scanned directory)."""
    settings = Settings.instance()
    if path is None:
        path = settings.get(LAST_PATH_KEY)
        if not path:
            raise click.UsageError("No PATH given and no previous scan to resume.")

    scanner = _build_scanner()
    if not as_json:
        click.echo(f"\n{click.style('🔍', bold=True)} Scanning {path}...\n")

    if not _shallow_scan(scanner, path):
        click.echo(f"Could not read directory: {path}", err=True)
        sys.exit(1)

    state = scanner.state
    settings.set(LAST_PATH_KEY, state.current_root_path)

    if as_json:
        click.echo(json.dumps(state.as_dict(), indent=2))
        return

    if not state.entries:
        click.echo("  (empty)")
    for entry in state.entries:
        _echo_entry(entry)

    click.echo(
        f"\nTotal: {click.style(bytes_to_human(state.total_size), fg='green', bold=True)} "
        f"({state.file_count:,} files, {state.folder_count:,} folders)\n"
    )


# ── deep ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--strategy", type=click.Choice(DEEP_STRATEGIES), default=None, help="Directory sizing strategy")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def deep(path: str, strategy: str | None, as_json: bool) -> None:
    """List every file and folder under PATH sorted by size."""
    entries = _deep_scan(_build_scanner(strategy), path)
    if entries is None:
        click.echo(f"Could not read directory: {path}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([e.as_dict() for e in entries], indent=2))
        return

    if not entries:
        click.echo("Nothing found.")
        return
    for entry in entries:
        size = click.style(f"{bytes_to_human(entry.size):>10s}", fg="green", bold=True)
        suffix = "/" if entry.is_directory else ""
        click.echo(f"  {size}  {entry.path}{suffix}")


# ── report ───────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", type=click.Path(file_okay=False))
@click.option(
    "--filter", "item_filter",
    type=click.Choice([f.value for f in ItemFilter]),
    default=ItemFilter.ALL.value,
    help="Restrict the report to files or folders",
)
@click.option("--recursive", "-r", is_flag=True, help="Include all subfolders")
@click.option("--limit", "-n", default=10, show_default=True, help="Length of the top lists")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def report(path: str, item_filter: str, recursive: bool, limit: int, as_json: bool) -> None:
    """Show a storage report for PATH."""
    scanner = _build_scanner()
    if recursive:
        entries = _deep_scan(scanner, path)
    else:
        entries = scanner.state.entries if _shallow_scan(scanner, path) else None
    if entries is None:
        click.echo(f"Could not read directory: {path}", err=True)
        sys.exit(1)

    result = build_report(entries, ItemFilter(item_filter), limit=limit)

    if as_json:
        data = {
            "path": path,
            "filter": result.item_filter.value,
            "recursive": recursive,
            "file_count": result.file_count,
            "folder_count": result.folder_count,
            "total_size": result.total_size,
            "average_file_size": result.average_file_size,
            "top_type_percentage": result.top_type_percentage,
            "largest": [e.as_dict() for e in result.largest],
            "type_breakdown": [{"type": t, "size": s} for t, s in result.type_breakdown],
        }
        click.echo(json.dumps(data, indent=2))
        return

    _echo_report(path, result)


def _echo_report(path: str, result: Report) -> None:
    click.echo(f"\n{click.style('📊', bold=True)} Storage Report — {path}\n")
    click.echo(f"  Total size:  {click.style(bytes_to_human(result.total_size), fg='green', bold=True)}")
    click.echo(f"  Files:       {result.file_count:,}")
    click.echo(f"  Folders:     {result.folder_count:,}")

    if result.largest:
        click.echo("\n  Largest items:")
        for entry in result.largest:
            click.echo(f"    {bytes_to_human(entry.size):>10s}  {entry.name}")

    if result.type_breakdown:
        click.echo("\n  By type:")
        for label, size in result.type_breakdown:
            click.echo(f"    {label:20s} {bytes_to_human(size):>10s}")

    click.echo("\n  Insights:")
    if result.largest:
        top = result.largest[0]
        click.echo(f"    Largest item:       \"{top.name}\" uses {bytes_to_human(top.size)}")
    if result.average_file_size is not None:
        click.echo(f"    Average file size:  {bytes_to_human(result.average_file_size)}")
    if result.top_type_percentage is not None:
        label = result.type_breakdown[0][0]
        click.echo(f"    Most common type:   {label} files use {result.top_type_percentage}% of space")
    click.echo()


# ── delete ───────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", type=click.Path(exists=False))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def delete(path: str, yes: bool) -> None:
    """Permanently delete a file or folder."""
    if not yes and not click.confirm(f"Delete {path} permanently?", default=False):
        click.echo("Aborted.")
        return

    error = _build_scanner().delete_item(path)
    if error:
        click.echo(f"  {click.style('✗', fg='red')} {error}", err=True)
        sys.exit(1)
    click.echo(f"  {click.style('✓', fg='green')} Deleted {path}")


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from duscan.dbus_service import start_service

    click.echo("Starting duscan D-Bus service...")
    start_service()
