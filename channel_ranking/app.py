"""Typer CLI entrypoint for the channel ranking dashboard."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, NoReturn, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import ConfigRepository, DashboardConfig
from .engine import FilterSpec, RankingEntry, SortDirection, SortField, SortSpec
from .engine.models import RankChangeKind
from .errors import EmptySelectionError, FetchError
from .infra import SelectionStore
from .logging_conf import available_logs, configure_logging, log_path, tail_log
from .session import DashboardSession

app = typer.Typer(
    help="Channel ranking dashboard",
    no_args_is_help=True,
    rich_markup_mode=None,
)
select_app = typer.Typer(
    name="select",
    help="Manage the selected channels",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="View or change configuration",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

SORT_SHORTCUTS = {
    "rank": SortField.RANK,
    "subs": SortField.SUBSCRIBER_COUNT,
    "subscribers": SortField.SUBSCRIBER_COUNT,
    "subscriber_count": SortField.SUBSCRIBER_COUNT,
    "views": SortField.MONTHLY_VIEWS,
    "monthly_views": SortField.MONTHLY_VIEWS,
}

BROWSE_HELP = (
    "n next · p previous · g N go to page · s FIELD sort (rank/subs/views) · "
    "t ROW|ID toggle · a select visible · c clear selection · x new-only filter · "
    "e export · r retry · q quit"
)


@dataclass
class AppState:
    repository: ConfigRepository
    config: DashboardConfig
    store: SelectionStore
    session_factory: Callable[[], DashboardSession]


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    config = repository.resolved_config()
    store = SelectionStore(config.selection_store)
    return AppState(
        repository=repository,
        config=config,
        store=store,
        session_factory=lambda: DashboardSession(config),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail_fetch(exc: FetchError) -> NoReturn:
    where = f"page {exc.page}" if exc.page else "the ranking"
    console.print(f"Could not load {where}: {exc}", style="red")
    console.print("Check the endpoint or your connection, then run the command again to retry.", style="dim")
    raise typer.Exit(code=2)


def _filter_spec(
    sub_min: Optional[float],
    sub_max: Optional[float],
    views_min: Optional[float],
    views_max: Optional[float],
    new_only: bool,
) -> FilterSpec:
    try:
        return FilterSpec(
            subscriber_min=sub_min,
            subscriber_max=sub_max,
            views_min=views_min,
            views_max=views_max,
            new_only=new_only,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _sort_spec(field: Optional[SortField], direction: Optional[SortDirection]) -> SortSpec:
    if field is None:
        field = SortField.RANK
    # Same defaults as clicking a column header for the first time.
    if direction is None:
        direction = SortDirection.ASCENDING if field is SortField.RANK else SortDirection.DESCENDING
    return SortSpec(field, direction)


def _change_text(entry: RankingEntry) -> Text:
    styles = {
        RankChangeKind.NEW: "cyan",
        RankChangeKind.UP: "green",
        RankChangeKind.DOWN: "red",
        RankChangeKind.UNCHANGED: "dim",
    }
    return Text(str(entry.rank_change), style=styles[entry.rank_change.kind])


def _render_entries_table(
    entries: Iterable[RankingEntry], selected: Callable[[str], bool], title: str
) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Sel", justify="center", style="green")
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Channel", style="bold")
    table.add_column("Subscribers", justify="right")
    table.add_column("Monthly views", justify="right")
    table.add_column("Change")
    table.add_column("URL", style="dim", overflow="fold")
    for row, entry in enumerate(entries, start=1):
        table.add_row(
            str(row),
            "✓" if selected(entry.id) else "",
            str(entry.rank),
            Text(entry.display_name),
            f"{entry.subscriber_count:,}",
            f"{entry.monthly_views:,}",
            _change_text(entry),
            Text(entry.id),
        )
    return table


def _page_footer(session: DashboardSession) -> str:
    controller = session.controller
    page = controller.displayed
    total_items = page.total_items if page else 0
    sort = session.sort.spec
    parts = [
        f"Page {controller.current_page}/{controller.total_pages or 1}",
        f"{total_items:,} channels",
        f"sorted by {sort.field.value} {sort.direction.value}",
        f"{session.selection.size()} selected",
    ]
    if not session.filters.is_empty:
        parts.append("filters active")
    return " · ".join(parts)


def _restore_selection(state: AppState, session: DashboardSession) -> None:
    session.selection.select_all(state.store.load(session.snapshot_key))


def _persist_selection(state: AppState, session: DashboardSession) -> None:
    state.store.save(session.snapshot_key, session.selection.ids())


app.add_typer(select_app, name="select")
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging on the console."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("show", help="Render one page (or the whole ranking) as a table.")
def show(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p", help="Page number; clamped into range."),
    sort: Optional[SortField] = typer.Option(None, "--sort", help="Sort field."),
    direction: Optional[SortDirection] = typer.Option(
        None, "--direction", help="Sort direction (rank defaults to ascending, others descending)."
    ),
    sub_min: Optional[float] = typer.Option(None, "--sub-min", help="Minimum subscribers."),
    sub_max: Optional[float] = typer.Option(None, "--sub-max", help="Maximum subscribers."),
    views_min: Optional[float] = typer.Option(None, "--views-min", help="Minimum monthly views."),
    views_max: Optional[float] = typer.Option(None, "--views-max", help="Maximum monthly views."),
    new_only: bool = typer.Option(False, "--new-only", help="Only newly ranked channels."),
    all_pages: bool = typer.Option(False, "--all-pages", help="Load and show the whole ranking."),
) -> None:
    state = _get_state(ctx)
    filters = _filter_spec(sub_min, sub_max, views_min, views_max, new_only)
    sort_spec = _sort_spec(sort, direction)

    async def _show() -> tuple[Table, str]:
        async with state.session_factory() as session:
            session.set_filters(filters)
            session.sort.spec = sort_spec
            if all_pages:
                entries = session.view(await session.load_all())
                title = "Channel ranking · all pages"
            else:
                await session.controller.go_to(page)
                entries = session.visible_entries()
                title = f"Channel ranking · page {session.controller.current_page}"
            _restore_selection(state, session)
            table = _render_entries_table(entries, session.selection.is_selected, title)
            return table, _page_footer(session)

    try:
        table, footer = asyncio.run(_show())
    except FetchError as exc:
        _fail_fetch(exc)
    console.print(table)
    console.print(footer, style="dim")


@select_app.command("add", help="Select channels by id (URL).")
def select_add(ctx: typer.Context, ids: list[str] = typer.Argument(..., help="Channel ids.")) -> None:
    _edit_selection(ctx, lambda current: current | set(ids))


@select_app.command("remove", help="Deselect channels by id (URL).")
def select_remove(ctx: typer.Context, ids: list[str] = typer.Argument(..., help="Channel ids.")) -> None:
    _edit_selection(ctx, lambda current: current - set(ids))


@select_app.command("visible", help="Replace the selection with the rows visible on a page.")
def select_visible(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p"),
    sub_min: Optional[float] = typer.Option(None, "--sub-min"),
    sub_max: Optional[float] = typer.Option(None, "--sub-max"),
    views_min: Optional[float] = typer.Option(None, "--views-min"),
    views_max: Optional[float] = typer.Option(None, "--views-max"),
    new_only: bool = typer.Option(False, "--new-only"),
) -> None:
    state = _get_state(ctx)
    filters = _filter_spec(sub_min, sub_max, views_min, views_max, new_only)

    async def _select() -> int:
        async with state.session_factory() as session:
            await session.controller.go_to(page)
            session.set_filters(filters)
            session.select_visible()
            _persist_selection(state, session)
            return session.selection.size()

    try:
        count = asyncio.run(_select())
    except FetchError as exc:
        _fail_fetch(exc)
    console.print(f"{count} channel(s) selected.", style="green")


@select_app.command("clear", help="Deselect everything.")
def select_clear(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    state.store.clear()
    console.print("Selection cleared.", style="green")


@select_app.command("list", help="Show the selected channels.")
def select_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)

    async def _list() -> list[RankingEntry]:
        async with state.session_factory() as session:
            await session.load_all()
            _restore_selection(state, session)
            return session.resolve_selection()

    try:
        entries = asyncio.run(_list())
    except FetchError as exc:
        _fail_fetch(exc)
    if not entries:
        console.print("Nothing selected.", style="yellow")
        return
    console.print(_render_entries_table(entries, lambda _id: True, f"Selected · {len(entries)}"))


def _edit_selection(ctx: typer.Context, edit: Callable[[frozenset[str]], Iterable[str]]) -> None:
    state = _get_state(ctx)

    async def _edit() -> int:
        async with state.session_factory() as session:
            await session.controller.load()
            _restore_selection(state, session)
            session.selection.select_all(edit(session.selection.ids()))
            _persist_selection(state, session)
            return session.selection.size()

    try:
        count = asyncio.run(_edit())
    except FetchError as exc:
        _fail_fetch(exc)
    console.print(f"{count} channel(s) selected.", style="green")


@app.command("export", help="Write the selected channels to ranking_<date>.csv.")
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory."),
) -> None:
    state = _get_state(ctx)

    async def _export() -> Path:
        async with state.session_factory() as session:
            await session.load_all()
            _restore_selection(state, session)
            return session.save_export(output)

    try:
        path = asyncio.run(_export())
    except FetchError as exc:
        _fail_fetch(exc)
    except EmptySelectionError:
        console.print("Nothing selected; use `channel-ranking select` first.", style="yellow")
        raise typer.Exit(code=1)
    console.print(f"Exported to {path}", style="green")


@app.command("browse", help="Interactive pager with selection and export.")
def browse(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    asyncio.run(_browse(state))


async def _browse(state: AppState) -> None:
    async with state.session_factory() as session:
        try:
            await session.controller.load()
        except FetchError as exc:
            console.print(f"Could not load the ranking: {exc} (press r to retry)", style="red")
        # The snapshot key is only known once a page has been displayed.
        restored = False
        console.print(BROWSE_HELP, style="dim")
        while True:
            if not restored and session.controller.displayed is not None:
                stored = state.store.load(session.snapshot_key)
                session.selection.select_all(stored | session.selection.ids())
                restored = True
            visible = session.visible_entries()
            console.print(
                _render_entries_table(visible, session.selection.is_selected, "Channel ranking")
            )
            console.print(_page_footer(session), style="dim")
            # Prompt off the event loop so prefetches keep running meanwhile.
            raw = await asyncio.to_thread(typer.prompt, ">", default="q", show_default=False)
            command, _, argument = raw.strip().partition(" ")
            command = command.lower()
            argument = argument.strip()
            if command == "q":
                break
            try:
                if command == "n":
                    await session.controller.next()
                elif command == "p":
                    await session.controller.previous()
                elif command == "g" and argument.lstrip("-").isdigit():
                    await session.controller.go_to(int(argument))
                elif command == "r":
                    await session.controller.retry()
                elif command == "s" and argument.lower() in SORT_SHORTCUTS:
                    session.toggle_sort(SORT_SHORTCUTS[argument.lower()])
                elif command == "t" and argument:
                    if argument.isdigit() and 1 <= int(argument) <= len(visible):
                        argument = visible[int(argument) - 1].id
                    session.selection.toggle(argument)
                elif command == "a":
                    session.toggle_all_visible()
                elif command == "c":
                    session.selection.clear()
                elif command == "x":
                    current = session.filters
                    session.set_filters(
                        FilterSpec(
                            subscriber_min=current.subscriber_min,
                            subscriber_max=current.subscriber_max,
                            views_min=current.views_min,
                            views_max=current.views_max,
                            new_only=not current.new_only,
                        )
                    )
                elif command == "e":
                    await session.load_all()
                    path = session.save_export()
                    console.print(f"Exported to {path}", style="green")
                else:
                    console.print(BROWSE_HELP, style="dim")
            except FetchError as exc:
                console.print(f"Could not load page {exc.page}: {exc} (press r to retry)", style="red")
            except EmptySelectionError:
                console.print("Nothing selected; export is unavailable.", style="yellow")
        if restored:
            _persist_selection(state, session)


@config_app.command("show", help="Print the active configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.repository.load_config().model_dump(mode="json")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), markup=False, highlight=False)
    console.print(f"File: {state.repository.locator.config_path()}", style="dim")


@config_app.command("set-endpoint", help="Point the dashboard at another ranking source.")
def config_set_endpoint(
    ctx: typer.Context,
    endpoint: str = typer.Argument(..., help="http(s) URL of the ranking source."),
    adapter: Optional[str] = typer.Option(None, "--adapter", help="Source shape: api or snapshot."),
) -> None:
    state = _get_state(ctx)
    current = state.repository.load_config()
    source = current.source.model_dump()
    source["endpoint"] = endpoint
    if adapter:
        source["adapter"] = adapter
    try:
        updated = DashboardConfig.model_validate({**current.model_dump(), "source": source})
    except ValueError as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=1)
    path = state.repository.save_config(updated)
    console.print(f"Endpoint updated in {path}.", style="green")


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_logs())
    if not logs:
        console.print("No log files yet.", style="yellow")
        return
    for path in logs:
        console.print(str(path))


@log_app.command("show", help="Show the last lines of a log.")
def log_show(
    name: str = typer.Argument("dashboard", help="Log name: dashboard or error."),
    tail: int = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    lines = tail_log(log_path(name), tail)
    if not lines:
        console.print(f"Log `{name}` is empty or missing.", style="yellow")
        return
    for line in lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
