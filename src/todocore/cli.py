"""CLI interface for todocore."""

from __future__ import annotations

import time
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from todocore import __version__
from todocore.config import CONFIG_FILE, TodoConfig
from todocore.dates import delta_label, format_date
from todocore.filters import has_active_filters
from todocore.session import TodoSession
from todocore.sorting import parse_rule
from todocore.task import SpanKind, Task
from todocore.tokens import RecurrenceKind

console = Console()

_SPAN_STYLES = {
    SpanKind.CONTEXT: "bold green",
    SpanKind.PROJECT: "bold blue",
    SpanKind.LINK: "underline cyan",
}


def _notify(message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


def _printable(text: str) -> str:
    """Escape markup and show bytes the todo file couldn't decode as U+FFFD."""
    return escape(text.encode("utf-8", "surrogateescape").decode("utf-8", "replace"))


def _session(ctx: click.Context, load: bool = True) -> TodoSession:
    session: TodoSession = ctx.obj["session"]
    if load and not session.load():
        ctx.exit(1)
    return session


def _resolve_index(ctx: click.Context, session: TodoSession, number: int) -> int:
    """Map a 1-based viewport position onto a store index."""
    indices = session.store.viewport_indices
    if not 1 <= number <= len(indices):
        console.print(f"[red]No task number {number}[/red] (viewport has {len(indices)} tasks)")
        ctx.exit(1)
    return indices[number - 1]


def _describe(task: Task) -> str:
    parts = []
    for span in task.description_spans:
        style = _SPAN_STYLES.get(span.kind)
        text = _printable(span.text)
        parts.append(f"[{style}]{text}[/{style}]" if style else text)
    return " ".join(parts)


def _dates_column(task: Task, today: date) -> str:
    parts = []
    recurrence = task.recurrence
    if recurrence is not None:
        if recurrence.kind == RecurrenceKind.SINCE_COMPLETION and not task.completed:
            parts.append(f"[magenta]recurs {recurrence.interval} days after completion[/magenta]")
        elif recurrence.next_occurrence is not None:
            when = recurrence.next_occurrence
            parts.append(f"[magenta]recurs {format_date(when)} ({delta_label(when, today)})[/magenta]")
    if task.due_date is not None:
        parts.append(f"[red]due {format_date(task.due_date)} ({delta_label(task.due_date, today)})[/red]")
    if task.is_deferred and task.defer_date is not None:
        when = task.defer_date
        parts.append(f"[dim]deferred {format_date(when)} ({delta_label(when, today)})[/dim]")
    return "\n".join(parts)


def _print_tasks(session: TodoSession, tasks: list[Task], title: str) -> None:
    today = session.today()
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("", width=1)
    table.add_column("Pri", style="bold")
    table.add_column("Task")
    table.add_column("Dates")

    for number, task in enumerate(tasks, 1):
        mark = "x" if task.completed else ("h" if task.hidden else " ")
        if task.pinned:
            mark = "*"
        table.add_row(
            str(number),
            mark,
            task.priority or "",
            _describe(task),
            _dates_column(task, today),
        )

    console.print(table)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="todo")
@click.option("--file", "-f", "todo_file", type=click.Path(), help="Use this todo.txt file")
@click.option("--done", "done_file", type=click.Path(), help="Done file used for archiving")
@click.pass_context
def main(ctx: click.Context, todo_file: str | None, done_file: str | None) -> None:
    """todo - a todo.txt task manager.

    \b
    Examples:
      todo list                  # Filtered, sorted task list
      todo list -s milk          # Fuzzy search all tasks
      todo add "(A) Call mom @phone due:2024-06-01"
      todo do 3                  # Toggle completion of task 3
    """
    ctx.ensure_object(dict)
    config = TodoConfig.load()

    # -f only applies to this run; the saved config never sees it.
    session_config = config
    if todo_file:
        session_config = config.model_copy(deep=True)
        session_config.add_file("cli", todo_file, done_file)
        session_config.current = "cli"

    ctx.obj["config"] = config
    ctx.obj["session"] = TodoSession(session_config, notifier=_notify)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command("list")
@click.option("--all", "-a", "show_all", is_flag=True, help="Ignore active filters")
@click.option("--search", "-s", "query", help="Fuzzy search every task")
@click.pass_context
def list_command(ctx: click.Context, show_all: bool, query: str | None) -> None:
    """Show the task viewport."""
    session = _session(ctx)

    if query is not None:
        tasks = session.search(query)
        _print_tasks(session, tasks, f"Search: {query}")
        return

    if show_all:
        tasks = session.store.update_viewport(session.filters, ignore_filters=True)
    else:
        tasks = session.viewport

    stats = session.store.stats()
    title = f"{session.store.incomplete_count(stats)} open tasks"
    if has_active_filters(session.filters) and not show_all:
        title += " (filtered, inverted)" if session.filters.invert else " (filtered)"
    _print_tasks(session, tasks, title)


@main.command()
@click.argument("words", nargs=-1, required=True)
@click.pass_context
def add(ctx: click.Context, words: tuple[str, ...]) -> None:
    """Add a task line."""
    session = _session(ctx)
    task = session.add_task(" ".join(words))
    console.print(f"[green]Added:[/green] {_printable(task.raw_text)}")


@main.command()
@click.argument("number", type=int)
@click.argument("words", nargs=-1, required=True)
@click.pass_context
def edit(ctx: click.Context, number: int, words: tuple[str, ...]) -> None:
    """Replace task NUMBER with a new line."""
    session = _session(ctx)
    task = session.edit_task(_resolve_index(ctx, session, number), " ".join(words))
    console.print(f"[green]Updated:[/green] {_printable(task.raw_text)}")


@main.command("do")
@click.argument("number", type=int)
@click.pass_context
def do_command(ctx: click.Context, number: int) -> None:
    """Toggle completion of task NUMBER."""
    session = _session(ctx)
    task = session.toggle_task(_resolve_index(ctx, session, number))
    state = "Completed" if task.completed else "Reopened"
    console.print(f"[green]{state}:[/green] {_printable(task.raw_text)}")


@main.command()
@click.argument("number", type=int)
@click.pass_context
def pin(ctx: click.Context, number: int) -> None:
    """Toggle the pin of task NUMBER."""
    session = _session(ctx)
    task = session.toggle_pin(_resolve_index(ctx, session, number))
    state = "Pinned" if task.pinned else "Unpinned"
    console.print(f"[green]{state}:[/green] {_printable(task.raw_text)}")


@main.command()
@click.argument("number", type=int)
@click.option("--archive", is_flag=True, help="Append the task to the done file first")
@click.pass_context
def rm(ctx: click.Context, number: int, archive: bool) -> None:
    """Delete task NUMBER."""
    session = _session(ctx)
    task = session.delete_task(_resolve_index(ctx, session, number), archive=archive)
    console.print(f"[green]Deleted:[/green] {_printable(task.raw_text)}")


@main.command()
@click.option("--archive", is_flag=True, help="Append removed tasks to the done file")
@click.pass_context
def clear(ctx: click.Context, archive: bool) -> None:
    """Remove completed, non-recurring tasks."""
    session = _session(ctx)
    removed = session.clear_completed(archive=archive)
    verb = "Archived" if archive else "Removed"
    console.print(f"[green]{verb} {len(removed)} completed tasks[/green]")


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Apply recurrence and deferral for today."""
    session = _session(ctx)
    stats = session.store.stats()
    console.print(
        Panel.fit(
            f"[cyan]Open:[/cyan] {session.store.incomplete_count(stats)}\n"
            f"[cyan]Deferred:[/cyan] {stats.deferred_tasks}\n"
            f"[cyan]Recurring:[/cyan] {stats.recurring_incomplete + stats.recurring_completed}\n"
            f"[cyan]Completed:[/cyan] {stats.completed}",
            title=format_date(session.today()),
        )
    )


@main.command()
@click.option("--interval", default=1.0, show_default=True, help="Seconds between checks")
@click.pass_context
def watch(ctx: click.Context, interval: float) -> None:
    """Reload on file changes and roll over at midnight until interrupted."""
    session = _session(ctx)
    session.start_watching()
    console.print(f"[dim]Watching {session.entry.todo_file} (Ctrl+C to stop)[/dim]")
    try:
        while True:
            if session.poll_file_changes():
                console.print(f"[cyan]Reloaded[/cyan] {len(session.store)} tasks")
            session.tick()
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        session.stop_watching()


@main.group("filter")
def filter_group() -> None:
    """Manage viewport filters."""
    pass


@filter_group.command("show")
@click.pass_context
def filter_show(ctx: click.Context) -> None:
    """Show active filters."""
    filters = _session(ctx, load=False).filters

    if not has_active_filters(filters):
        console.print("[dim]No active filters[/dim]")
        return

    flags = [
        name
        for name, on in (
            ("deferred", filters.include_deferred),
            ("recurring", filters.include_recurring),
            ("hidden", filters.include_hidden),
            ("completed", filters.include_completed),
            ("no priority", filters.include_no_priority),
        )
        if on
    ]
    console.print(f"[cyan]Inverted:[/cyan] {'yes' if filters.invert else 'no'}")
    if flags:
        console.print(f"[cyan]Show:[/cyan] {', '.join(flags)}")
    for label, values in (
        ("Priorities", filters.priorities),
        ("Contexts", filters.contexts),
        ("Projects", filters.projects),
        ("Custom", filters.custom_terms),
    ):
        if values:
            console.print(f"[cyan]{label}:[/cyan] {' '.join(values)}")


@filter_group.command("toggle")
@click.argument("keyword")
@click.pass_context
def filter_toggle(ctx: click.Context, keyword: str) -> None:
    """Toggle a (A) priority, @context or +project filter."""
    session = _session(ctx)
    try:
        active = session.toggle_filter(keyword)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        ctx.exit(1)
    console.print(f"{'Filtering on' if active else 'Removed filter'} [bold]{keyword}[/bold]")


@filter_group.command("custom")
@click.argument("term")
@click.pass_context
def filter_custom(ctx: click.Context, term: str) -> None:
    """Toggle a custom fuzzy filter term."""
    session = _session(ctx)
    active = session.toggle_custom_term(term)
    console.print(f"{'Filtering on' if active else 'Removed filter'} [bold]{term}[/bold]")


@filter_group.command("set")
@click.argument("flag", type=click.Choice(["deferred", "recurring", "hidden", "completed", "no-priority"]))
@click.pass_context
def filter_set(ctx: click.Context, flag: str) -> None:
    """Toggle one of the task-state filters."""
    session = _session(ctx)
    field_name = "include_" + flag.replace("-", "_")
    value = not getattr(session.filters, field_name)
    setattr(session.filters, field_name, value)
    session.save_cache()
    console.print(f"{flag}: {'on' if value else 'off'}")


@filter_group.command("invert")
@click.pass_context
def filter_invert(ctx: click.Context) -> None:
    """Invert the active filters."""
    session = _session(ctx)
    inverted = session.toggle_invert()
    console.print(f"Filters {'inverted' if inverted else 'not inverted'}")


@filter_group.command("reset")
@click.pass_context
def filter_reset(ctx: click.Context) -> None:
    """Clear all filters."""
    _session(ctx, load=False).reset_filters()
    console.print("[green]Filters cleared[/green]")


@main.group("sort")
def sort_group() -> None:
    """Manage the sort order."""
    pass


@sort_group.command("show")
@click.pass_context
def sort_show(ctx: click.Context) -> None:
    """Show the sort keys in order."""
    for i, (key, direction) in enumerate(_session(ctx, load=False).cache.sort, 1):
        console.print(f"  {i}. {key.value} [dim]{direction.value}[/dim]")


@sort_group.command("set")
@click.argument("rules", nargs=-1, required=True)
@click.pass_context
def sort_set(ctx: click.Context, rules: tuple[str, ...]) -> None:
    """Set sort keys, e.g. `todo sort set pin:desc priority due_date`."""
    try:
        parsed = [parse_rule(rule) for rule in rules]
    except ValueError as e:
        console.print(f"[red]Invalid sort rule:[/red] {e}")
        ctx.exit(1)
    session = _session(ctx)
    session.set_sort(parsed)
    console.print("[green]Sort order updated[/green]")


@sort_group.command("reset")
@click.pass_context
def sort_reset(ctx: click.Context) -> None:
    """Restore the default sort order."""
    _session(ctx).reset_sort()
    console.print("[green]Sort order reset[/green]")


@main.group("files")
def files_group() -> None:
    """Manage registered todo files."""
    pass


@files_group.command("list")
@click.pass_context
def files_list(ctx: click.Context) -> None:
    """List registered todo files."""
    config: TodoConfig = ctx.obj["config"]
    if not config.files:
        console.print("[dim]No todo files registered[/dim]")
        return

    current = config.current_file
    for entry in config.files:
        marker = " [dim](current file)[/dim]" if current and entry.name == current.name else ""
        console.print(f"  • [bold]{entry.name}[/bold] {entry.todo_file}{marker}")


@files_group.command("add")
@click.argument("name")
@click.argument("todo_file", type=click.Path())
@click.option("--done", "done_file", type=click.Path(), help="Done file for archiving")
@click.pass_context
def files_add(ctx: click.Context, name: str, todo_file: str, done_file: str | None) -> None:
    """Register a todo file under NAME."""
    config: TodoConfig = ctx.obj["config"]
    config.add_file(name, str(Path(todo_file)), done_file)
    config.save(CONFIG_FILE)
    console.print(f"[green]Registered[/green] {name}")


@files_group.command("switch")
@click.argument("query")
@click.pass_context
def files_switch(ctx: click.Context, query: str) -> None:
    """Switch to the file best matching QUERY."""
    config: TodoConfig = ctx.obj["config"]
    matches = config.find_files(query)
    if not matches:
        console.print(f"[red]No todo file matches[/red] {query}")
        ctx.exit(1)

    # Switch on the saved config, not on the -f view of it
    session = TodoSession(config, notifier=_notify)
    if not session.switch_file(matches[0].name):
        ctx.exit(1)
    console.print(f"[green]Switched to[/green] {matches[0].name} ({len(session.store)} tasks)")


if __name__ == "__main__":
    main()
