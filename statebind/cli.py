"""
statebind CLI
=============

Inspect and change the persisted state of rows in a configured database.

Commands:
    statebind show <table> <id>            - Current state of a row
    statebind set <table> <id> <state>     - Persist a new state
    statebind list <table> [--state S]     - Rows and their states
    statebind history [options]            - Transition log
"""

import click
from dateutil.parser import isoparse
from rich.console import Console
from rich.table import Table
from sqlalchemy import create_engine, inspect
from sqlalchemy.ext.automap import automap_base
from sqlalchemy.orm import Session

from . import __version__
from .config import load_config, setup_logging, table_config
from .exceptions import StateBindError
from .persistence import set_persistence
from .state.events import create_transition_log


console = Console()


def _open_table(ctx: click.Context, table: str):
    """Reflect ``table`` and install state persistence on its mapped class"""
    config = ctx.obj["config"]
    url = config.get("database", {}).get("url")
    if not url:
        raise click.UsageError("database.url is not configured")

    settings = table_config(config, table)

    engine = create_engine(url)
    Base = automap_base()
    Base.prepare(autoload_with=engine)
    if table not in Base.classes:
        raise click.UsageError(f"table {table!r} not found (or has no primary key)")
    model = Base.classes[table]

    session = Session(engine)
    ctx.call_on_close(engine.dispose)
    ctx.call_on_close(session.close)

    persistence = set_persistence(
        model,
        session=session,
        property=settings.get("property"),
        initial_state=settings["initial_state"],
        event_log=create_transition_log(config),
    )
    return model, session, persistence


def _get_record(session: Session, model, record_id: str):
    """Load a row by primary key, converting the id to the key column's type"""
    key_column = inspect(model).primary_key[0]
    try:
        record_id = key_column.type.python_type(record_id)
    except (NotImplementedError, TypeError, ValueError):
        pass
    return session.get(model, record_id)


def _state_text(state) -> str:
    return "[dim]none[/dim]" if state is None else f"[bold]{state}[/bold]"


@click.group()
@click.version_option(version=__version__, prog_name="statebind")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to config.yaml")
@click.option("--log-level", default=None, help="Override logging.level")
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """statebind - Durable FSM state for database records"""
    try:
        config = load_config(config_path)
    except StateBindError as e:
        raise click.ClickException(str(e))
    setup_logging(log_level or config["logging"]["level"])
    ctx.obj = {"config": config}


@main.command()
@click.argument("table")
@click.argument("record_id")
@click.pass_context
def show(ctx: click.Context, table: str, record_id: str):
    """Show the current state of a row."""
    try:
        model, session, persistence = _open_table(ctx, table)
    except StateBindError as e:
        raise click.ClickException(str(e))

    record = _get_record(session, model, record_id)
    if record is None:
        console.print(f"[red]Record not found: {table} {record_id}[/red]")
        ctx.exit(1)

    info = Table(show_header=False, box=None)
    info.add_column("Field", style="dim")
    info.add_column("Value")
    info.add_row("Table", table)
    info.add_row("Record", record_id)
    info.add_row("Property", persistence.state_property)
    info.add_row("State", _state_text(persistence.current_state(record)))
    console.print(info)


@main.command("set")
@click.argument("table")
@click.argument("record_id")
@click.argument("state")
@click.pass_context
def set_state(ctx: click.Context, table: str, record_id: str, state: str):
    """Persist a new state for a row."""
    try:
        model, session, persistence = _open_table(ctx, table)
    except StateBindError as e:
        raise click.ClickException(str(e))

    record = _get_record(session, model, record_id)
    if record is None:
        console.print(f"[red]Record not found: {table} {record_id}[/red]")
        ctx.exit(1)

    before = persistence.current_state(record)
    state_id = persistence.codec.coerce(state)
    if not persistence.write_state(record, state_id):
        console.print(f"[red]✗ Save rejected; state is still {before}[/red]")
        ctx.exit(1)

    console.print(f"[green]✓ {table} {record_id}: {before} → {state_id}[/green]")


@main.command("list")
@click.argument("table")
@click.option("--state", "-s", "state_filter", default=None, help="Only rows in this state")
@click.pass_context
def list_records(ctx: click.Context, table: str, state_filter: str):
    """List rows and their current state."""
    try:
        model, session, persistence = _open_table(ctx, table)
    except StateBindError as e:
        raise click.ClickException(str(e))

    wanted = persistence.codec.coerce(state_filter)
    rows = []
    for record in session.query(model).all():
        state = persistence.current_state(record)
        if wanted is not None and state != wanted:
            continue
        rows.append((persistence.store.identity(record), state))

    if not rows:
        console.print("[dim]No records found[/dim]")
        return

    out = Table(title=table)
    out.add_column("ID")
    out.add_column("State")
    for identity, state in rows:
        out.add_row(identity, _state_text(state))
    console.print(out)


@main.command()
@click.option("--since", default=None, help="Only events at or after this ISO-8601 time")
@click.option("--record-id", "-r", default=None, help="Only events for this record")
@click.option("--table", "-t", default=None, help="Only events for this table")
@click.option("--last", "-n", type=int, default=None, help="Show only the last N events")
@click.pass_context
def history(ctx: click.Context, since: str, record_id: str, table: str, last: int):
    """Show the transition log."""
    log = create_transition_log(ctx.obj["config"])

    try:
        since_dt = isoparse(since) if since else None
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 time: {since}", param_hint="--since")

    criteria = {"record_type": table, "record_id": record_id, "since": since_dt}
    if last is not None:
        events = log.read_last_n(last, **criteria)
    else:
        events = log.find_events(**criteria)

    if not events:
        console.print("[dim]No events found[/dim]")
        return

    out = Table(title="Transitions")
    out.add_column("Time")
    out.add_column("Event")
    out.add_column("Record")
    out.add_column("From")
    out.add_column("To")
    for event in events:
        out.add_row(
            event.timestamp[:19],
            _format_event(event.event_type),
            f"{event.record_type} {event.record_id or '-'}",
            event.from_state or "-",
            event.to_state or "-",
        )
    console.print(out)


def _format_event(event_type: str) -> str:
    """Format event type with color"""
    colors = {
        "state_written": "green",
        "state_staged": "cyan",
        "state_write_failed": "red",
        "initial_state_materialized": "yellow",
    }
    color = colors.get(event_type, "white")
    return f"[{color}]{event_type}[/{color}]"


if __name__ == "__main__":
    main()
