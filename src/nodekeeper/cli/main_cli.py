"""
Top-level CLI: picks one maintenance command, runs it against a freshly
opened node store and disposes the store again.
"""

import logging
import time
from pathlib import Path
from typing import Any, Iterable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from nodekeeper.commands import (
    Command, ConsistencyCheck, NativeConsistencyCheck, Noop, Optimize, PrintList, Remove
)
from nodekeeper.commands.schemas import CheckReport
from nodekeeper.core.config import Settings, settings
from nodekeeper.core.context import ExecutionContext
from nodekeeper.core.utils import configure_logging

logger = logging.getLogger(__name__)

main_app = typer.Typer(help="nodekeeper CLI: offline checks and repairs for node stores")
console = Console()


@main_app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None, "--database-url", help="SQLAlchemy URL of the node store database"
    ),
    repository: Optional[Path] = typer.Option(
        None, "--repository", help="Path to the repository home directory"
    ),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", help="Name of the workspace inside the repository"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log", "--log-level", help="Log level: debug, info, warning or error"
    ),
    log_file: Optional[str] = typer.Option(
        None, "--log-file", help="File that receives a copy of the log ('' to disable)"
    ),
    cache_size: Optional[int] = typer.Option(
        None, "--cache-size", min=1, help="Number of nodes kept by the load cache"
    ),
):
    """
    Offline maintenance for hierarchical node stores.
    """
    overrides = {
        "database_url": database_url,
        "repository": repository,
        "workspace": workspace,
        "log_level": log_level,
        "log_file": log_file,
        "cache_size": cache_size,
    }
    run_settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    try:
        configure_logging(run_settings.log_level, run_settings.log_file)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    ctx.obj = run_settings


def split_paths(values: Optional[Iterable[str]]) -> List[str]:
    """Accept both repeated arguments and comma separated lists."""
    paths = []
    for value in values or []:
        paths.extend(part.strip() for part in value.split(",") if part.strip())
    return paths


def run_command(command: Command, run_settings: Settings) -> Any:
    """
    Execute a command against a new execution context, disposing it afterwards.

    Any failure is logged with its traceback and ends the process with exit code 1.
    """
    logger.info("-" * 80)
    start_time = time.monotonic()
    try:
        context = ExecutionContext.create(run_settings)
    except Exception:
        logger.exception("Could not open the node store")
        raise typer.Exit(code=1)

    try:
        logger.info(f"Running command {command.name} now.")
        return command.execute(context)
    except Exception:
        logger.exception(f"Command {command.name} failed")
        raise typer.Exit(code=1)
    finally:
        context.dispose()
        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info(f"Finished running command {command.name} in {elapsed_ms:.0f}ms.")


def print_check_report(report: CheckReport) -> None:
    table = Table(title="Consistency check")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Nodes processed", str(report.nodes_processed))
    table.add_row("Repaired entries", str(len(report.repairs)))
    table.add_row("Orphaned children", str(len(report.orphans)))
    if report.id_scan_supported:
        table.add_row("Unreached nodes", str(len(report.unreached_ids)))
    else:
        table.add_row("Unreached nodes", "unknown (store cannot list ids)")
    table.add_row("Committed", "dry run" if report.dry_run else str(report.committed))
    console.print(table)

    if report.repairs:
        repairs = Table(title="Repairs")
        repairs.add_column("Parent", style="green")
        repairs.add_column("Removed child", style="yellow")
        for repair in report.repairs:
            repairs.add_row(f"{repair.parent_path or '/'} ({repair.parent_id})",
                            f"{repair.child_path} ({repair.child_id})")
        console.print(repairs)


@main_app.command("check")
def check_cmd(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Report repairs without storing them"),
    strict: bool = typer.Option(False, "--strict", help="Fail when nodes are unreachable from the root"),
):
    """
    Run the custom consistency check and repair stray child entries.
    """
    report = run_command(ConsistencyCheck(dry_run=dry_run, strict=strict), ctx.obj)
    print_check_report(report)


@main_app.command("jr-check")
def native_check_cmd(
    ctx: typer.Context,
    fix: bool = typer.Option(True, "--fix/--no-fix", help="Let the store fix what it finds"),
):
    """
    Run the store's own consistency check.
    """
    problems = run_command(NativeConsistencyCheck(fix=fix), ctx.obj)
    typer.echo(f"Store consistency check found {problems} problem(s)")


@main_app.command("optimize")
def optimize_cmd(ctx: typer.Context):
    """
    Compact the store with its own optimizer (only available on some stores).
    """
    run_command(Optimize(), ctx.obj)
    typer.echo("Optimization finished")


@main_app.command("noop")
def noop_cmd(ctx: typer.Context):
    """
    Open and close the store. May be used to trigger store initialization.
    """
    run_command(Noop(), ctx.obj)


@main_app.command("list")
def list_cmd(
    ctx: typer.Context,
    paths: Optional[List[str]] = typer.Argument(
        None, help="Parent paths to list (comma separated or repeated), defaults to /"
    ),
    output_file: Optional[Path] = typer.Option(
        None, "--output-file", help="File to write the paths to instead of the log"
    ),
):
    """
    List all paths under the given parent paths.
    """
    listed = run_command(PrintList(output_file, split_paths(paths)), ctx.obj)
    if output_file is not None:
        typer.echo(f"Wrote {listed} paths to {output_file}")


@main_app.command("remove")
def remove_cmd(
    ctx: typer.Context,
    paths: List[str] = typer.Argument(..., help="Paths to recursively remove (comma separated or repeated)"),
    threshold: Optional[int] = typer.Option(
        None, "--threshold", min=1, help="Pending deletions that trigger an intermediate commit"
    ),
):
    """
    Recursively remove content. The last path segment may contain one '*'.
    """
    command = Remove(split_paths(paths), threshold=threshold)
    deleted = run_command(command, ctx.obj)

    table = Table(title="Remove")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Path specs", ", ".join(command.paths))
    table.add_row("Commits", str(command.commit_count.value))
    console.print(table)
    typer.echo(f"Deleted {deleted} nodes")


def main():
    main_app()


if __name__ == "__main__":
    main()
