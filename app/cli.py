from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from app.config import AppSettings, load_settings
from app.wiring import build_event_store
from domain.models import ResizeEdge, Resource
from domain.services.date_range import format_day, parse_day
from domain.services.event_store import EventStore, MutationResult
from domain.services.interaction import IDLE, InteractionController
from domain.services.month_calendar import (
    day_label,
    days_of_month,
    month_label,
    parse_month,
    weekday_label,
)
from domain.services.project_grid import ResourceRow, project_grid

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, help="YAML settings file."),
    log_level: str = typer.Option("WARNING", help="Logging level for diagnostics."),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(levelname)s] %(name)s - %(message)s",
    )
    ctx.obj = load_settings(config)


def _settings(ctx: typer.Context) -> AppSettings:
    settings = ctx.obj
    if not isinstance(settings, AppSettings):
        settings = load_settings()
        ctx.obj = settings
    return settings


def _open_store(ctx: typer.Context) -> EventStore:
    return build_event_store(_settings(ctx))


def _controller(
    ctx: typer.Context, store: EventStore, assume_yes: bool = False
) -> InteractionController:
    settings = _settings(ctx)

    def confirm(message: str) -> bool:
        return True if assume_yes else typer.confirm(message)

    return InteractionController(store, confirm, settings.calendar.confirm_message)


def _parse_day(value: str) -> date:
    try:
        return parse_day(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _resolve_resource(store: EventStore, reference: str) -> Resource:
    resource = store.get_resource(reference)
    if resource is not None:
        return resource
    for candidate in store.resources:
        if candidate.name == reference:
            return candidate
    console.print(f"[red]Unknown resource:[/] {reference}")
    raise typer.Exit(code=1)


def _report(result: MutationResult | None, verb: str) -> None:
    if result is None:
        console.print(f"[yellow]Nothing to {verb}.[/]")
        raise typer.Exit(code=1)
    if result.status == "not_found":
        console.print(f"[yellow]Cannot {verb}: event or resource not found.[/]")
        raise typer.Exit(code=1)
    if result.status == "invalid_range":
        console.print(f"[yellow]Cannot {verb}: start date would fall after end date.[/]")
        raise typer.Exit(code=1)
    event = result.event
    if event is not None:
        console.print(
            f"[green]{verb.capitalize()}d[/] {event.title} ({event.id}) "
            f"{format_day(event.start_date)}..{format_day(event.end_date)}"
        )


@app.command("resources")
def list_resources(ctx: typer.Context) -> None:
    store = _open_store(ctx)
    table = Table("ID", "Name")
    for resource in store.resources:
        table.add_row(resource.id, resource.name)
    console.print(table)


@app.command("add-resource")
def add_resource(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Display name, defaults to 'Resource N'."),
) -> None:
    store = _open_store(ctx)
    resource = store.add_resource(name)
    console.print(f"[green]Added[/] {resource.name} ({resource.id})")


@app.command("events")
def list_events(ctx: typer.Context) -> None:
    store = _open_store(ctx)
    names = {resource.id: resource.name for resource in store.resources}
    table = Table("ID", "Title", "Resource", "Start", "End", "Color")
    for event in sorted(store.events, key=lambda item: (item.start_date, item.id)):
        table.add_row(
            event.id,
            event.title,
            names.get(event.resource_id, f"? {event.resource_id}"),
            format_day(event.start_date),
            format_day(event.end_date),
            event.color,
        )
    console.print(table)


@app.command("show")
def show_month(
    ctx: typer.Context,
    month: str | None = typer.Option(None, help="Month to display as YYYY-MM (default: current)."),
) -> None:
    try:
        anchor = parse_month(month) if month else date.today().replace(day=1)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    store = _open_store(ctx)
    days = days_of_month(anchor)
    grid = project_grid(
        store.resources, store.events, days, lane_height=_settings(ctx).calendar.lane_height
    )

    table = Table(title=month_label(anchor), show_lines=True)
    table.add_column("Resources", no_wrap=True)
    for day in days:
        table.add_column(f"{day_label(day)}\n{weekday_label(day)}", justify="center")
    for row in grid.rows:
        table.add_row(row.resource.name, *_render_row(row))
    console.print(table)
    if grid.orphaned_event_ids:
        console.print(
            f"[yellow]{len(grid.orphaned_event_ids)} event(s) reference unknown resources.[/]"
        )


def _render_row(row: ResourceRow) -> list[str]:
    rendered: list[str] = []
    for cell in row.cells:
        by_lane = {item.lane: item for item in cell.events}
        lines: list[str] = []
        for lane in range(row.lane_rows):
            item = by_lane.get(lane)
            if item is None:
                lines.append("")
            elif item.shows_title:
                lines.append(item.event.title)
            else:
                lines.append("···")
        rendered.append("\n".join(lines))
    return rendered


@app.command("create")
def create_event(
    ctx: typer.Context,
    day: str = typer.Argument(..., help="Day as YYYY-MM-DD."),
    resource: str = typer.Argument(..., help="Resource id or name."),
) -> None:
    store = _open_store(ctx)
    target = _resolve_resource(store, resource)
    outcome = _controller(ctx, store).click_cell(IDLE, _parse_day(day), target.id)
    _report(outcome.result, "create")


@app.command("move")
def move_event(
    ctx: typer.Context,
    event_id: str = typer.Argument(..., help="Event id."),
    day: str = typer.Argument(..., help="New start day as YYYY-MM-DD."),
    resource: str = typer.Argument(..., help="Target resource id or name."),
) -> None:
    store = _open_store(ctx)
    target = _resolve_resource(store, resource)
    controller = _controller(ctx, store)
    dragging = controller.pointer_down_on_event(IDLE, event_id).state
    outcome = controller.drop_on_cell(dragging, _parse_day(day), target.id)
    _report(outcome.result, "move")


@app.command("resize")
def resize_event(
    ctx: typer.Context,
    event_id: str = typer.Argument(..., help="Event id."),
    edge: str = typer.Argument(..., help="Edge to drag: start or end."),
    day: str = typer.Argument(..., help="Proposed day as YYYY-MM-DD."),
) -> None:
    normalized = edge.strip().lower()
    if normalized not in {"start", "end"}:
        raise typer.BadParameter("edge must be 'start' or 'end'")
    resize_edge: ResizeEdge = "start" if normalized == "start" else "end"
    store = _open_store(ctx)
    current = store.get_event(event_id)
    controller = _controller(ctx, store)
    dragging = controller.pointer_down_on_resize_handle(IDLE, event_id, resize_edge).state
    # The drop row does not matter for a resize; use the event's own row when known.
    drop_row = current.resource_id if current is not None else ""
    outcome = controller.drop_on_cell(dragging, _parse_day(day), drop_row)
    _report(outcome.result, "resize")


@app.command("delete")
def delete_event(
    ctx: typer.Context,
    event_id: str = typer.Argument(..., help="Event id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    store = _open_store(ctx)
    outcome = _controller(ctx, store, assume_yes=yes).click_delete_control(IDLE, event_id)
    if outcome.result is None:
        console.print("[yellow]Delete cancelled.[/]")
        return
    if outcome.result.status == "not_found":
        console.print(f"[yellow]No event {event_id}; nothing to delete.[/]")
        return
    console.print(f"[green]Deleted[/] {event_id}")


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
) -> None:
    import uvicorn

    from app.web_main import create_app

    uvicorn.run(create_app(_settings(ctx)), host=host, port=port)


if __name__ == "__main__":
    app()
