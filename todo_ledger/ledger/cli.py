"""CLI commands for inspecting and editing a project's todo list."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.ledger.contracts import CommandResponse, ListResult
from todo_ledger.errors import TodoLedgerError
from todo_ledger.ledger.logging_utils import configure_logging
from todo_ledger.ledger.session import TodoSession

console = Console()

_STATUS_STYLES = {
    TodoStatus.PENDING: "yellow",
    TodoStatus.IN_PROGRESS: "cyan",
    TodoStatus.COMPLETED: "green",
}

STATUS_CHOICES = [status.value for status in TodoStatus]


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the todo CLI.

    Args:
        verbose: Enable debug level logging
    """
    configure_logging(verbose)


def print_list(result: ListResult) -> None:
    """Print a list result as a table."""
    if not result.items:
        console.print(f"[dim]No todos found (version {result.version}).[/dim]")
        return

    table = Table(title=f"Todos (version {result.version})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Status")
    table.add_column("Priority", justify="right")
    table.add_column("Content")
    table.add_column("Updated", style="dim")
    for item in result.items:
        style = _STATUS_STYLES[item.status]
        table.add_row(
            item.id,
            f"[{style}]{item.status.value}[/{style}]",
            "" if item.priority is None else str(item.priority),
            escape(item.content),
            item.updated_at.isoformat(timespec="seconds"),
        )
    console.print(table)


def print_response(response: CommandResponse) -> None:
    """Print a successful non-list response."""
    result = response.result
    if isinstance(result, ListResult):
        print_list(result)
    elif hasattr(result, "removed_count"):
        console.print(f"[green]Cleared {result.removed_count} todo(s)[/green] (version {result.version})")
    else:
        item = result.item
        console.print(
            f"[green]{response.action}[/green] {item.id} "
            f"[{_STATUS_STYLES[item.status]}]{item.status.value}[/] {escape(item.content)} "
            f"(version {result.version})"
        )


def run_command(ctx: click.Context, payload: Dict[str, Any]) -> None:
    """Run ``payload`` against the project's session and print the outcome."""
    options = ctx.obj
    try:
        session = TodoSession.open(options["root"])
    except TodoLedgerError as e:
        console.print(f"[red]{e.kind}[/red]: {escape(e.message)}")
        ctx.exit(1)

    with session:
        response = session.dispatch(payload)

    if options["json"]:
        click.echo(response.model_dump_json(indent=2))
    elif response.ok:
        print_response(response)
    else:
        console.print(f"[red]{response.error.kind}[/red]: {escape(response.error.message)}")

    if not response.ok:
        ctx.exit(1)


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root holding the .todo-ledger directory (default: current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw command response as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, root: Optional[Path], as_json: bool, verbose: bool) -> None:
    """Track a project's todo list from the command line."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.update({"root": root if root is not None else Path.cwd(), "json": as_json})


@cli.command()
@click.argument("content")
@click.option("--priority", type=int, default=None, help="Priority, lower is more urgent")
@click.pass_context
def add(ctx: click.Context, content: str, priority: Optional[int]) -> None:
    """Add a pending todo."""
    run_command(ctx, {"action": "add", "content": content, "priority": priority})


@cli.command()
@click.argument("todo_id")
@click.option("--content", default=None, help="New content")
@click.option("--priority", type=int, default=None, help="New priority")
@click.option("--clear-priority", is_flag=True, help="Remove the priority")
@click.option("--expected-version", type=int, default=None, help="Fail unless the list is at this version")
@click.pass_context
def update(
    ctx: click.Context,
    todo_id: str,
    content: Optional[str],
    priority: Optional[int],
    clear_priority: bool,
    expected_version: Optional[int],
) -> None:
    """Change a todo's content or priority."""
    if clear_priority and priority is not None:
        raise click.UsageError("--priority and --clear-priority are mutually exclusive")
    payload: Dict[str, Any] = {"action": "update", "id": todo_id, "expected_version": expected_version}
    if content is not None:
        payload["content"] = content
    if priority is not None or clear_priority:
        payload["priority"] = priority
    run_command(ctx, payload)


@cli.command()
@click.argument("todo_id")
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@click.option("--expected-version", type=int, default=None, help="Fail unless the list is at this version")
@click.pass_context
def status(ctx: click.Context, todo_id: str, status: str, expected_version: Optional[int]) -> None:
    """Move a todo to STATUS."""
    run_command(
        ctx,
        {"action": "set_status", "id": todo_id, "status": status, "expected_version": expected_version},
    )


@cli.command()
@click.argument("todo_id")
@click.option("--expected-version", type=int, default=None, help="Fail unless the list is at this version")
@click.pass_context
def remove(ctx: click.Context, todo_id: str, expected_version: Optional[int]) -> None:
    """Remove a todo."""
    run_command(ctx, {"action": "remove", "id": todo_id, "expected_version": expected_version})


@cli.command()
@click.option("--expected-version", type=int, default=None, help="Fail unless the list is at this version")
@click.pass_context
def clear(ctx: click.Context, expected_version: Optional[int]) -> None:
    """Remove every todo."""
    run_command(ctx, {"action": "clear", "expected_version": expected_version})


@cli.command(name="list")
@click.option("--status", "status_filter", type=click.Choice(STATUS_CHOICES), default=None)
@click.pass_context
def list_todos(ctx: click.Context, status_filter: Optional[str]) -> None:
    """Show the todo list."""
    run_command(ctx, {"action": "list", "status_filter": status_filter})


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
