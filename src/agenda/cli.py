"""Agenda CLI - appointments and blocked time for the CRM calendar."""

import json
import logging
import sys
import time
from datetime import date, datetime
from zoneinfo import ZoneInfo

import click

from .config import Config, load_config
from .core.calendar import AppointmentEvent, CalendarEvent, EventType
from .core.errors import SchedulingError
from .core.models import (
    AppointmentStatus,
    AppointmentUpdate,
    CreateAppointmentData,
    CreateBlockedSlotData,
    RecurrenceType,
    RecurringPattern,
    SeriesRule,
    SeriesType,
    ServiceData,
)
from .core.windowing import fetch_window
from .refresh import CalendarRefresher
from .scheduler import SchedulingService, get_scheduler

STATUS_CHOICES = [s.value for s in AppointmentStatus]
TYPE_CHOICES = [t.value for t in EventType]


def _load() -> tuple[Config, SchedulingService]:
    config = load_config()
    try:
        return config, get_scheduler(config)
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _parse_dt(value: str | None, config: Config) -> datetime | None:
    """Parse ISO input; naive values are read in the configured timezone."""
    if value is None:
        return None
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO datetime: {value}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(config.timezone))
    return dt


def _event_to_dict(event: CalendarEvent) -> dict:
    data = {
        "type": event.type.value,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "color": event.color,
    }
    if isinstance(event, AppointmentEvent):
        data.update(
            id=event.id,
            status=event.status.value,
            overdue=event.overdue,
            pending_payment=event.pending_payment,
            contact_id=event.data.contact_id,
        )
    else:
        # Occurrences carry their template id, which is what unblock takes
        data.update(
            id=event.template_id,
            template_id=event.template_id,
            occurrence_date=event.occurrence_date.isoformat() if event.occurrence_date else None,
        )
    return data


def _show_events(events: list[CalendarEvent], as_json: bool, tz: ZoneInfo) -> None:
    """Shared event display logic."""
    if as_json:
        click.echo(json.dumps([_event_to_dict(e) for e in events], indent=2))
        return

    if not events:
        click.echo("No events.")
        return

    current_date = None
    for event in events:
        start = event.start.astimezone(tz)
        end = event.end.astimezone(tz)
        if start.date() != current_date:
            if current_date is not None:
                click.echo()
            click.echo(f"### {start.strftime('%A, %B %d')}")
            current_date = start.date()

        span = f"{start.strftime('%H:%M')}-{end.strftime('%H:%M')}"
        if isinstance(event, AppointmentEvent):
            flags = ""
            if event.overdue:
                flags += " [overdue]"
            if event.pending_payment:
                flags += " [payment pending]"
            click.echo(f"  {span}  {event.title} ({event.status.value}){flags}  {event.id}")
        else:
            click.echo(f"  {span}  [blocked] {event.title}  {event.template_id}")


@click.group()
@click.version_option(package_name="crm-agenda")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Agenda - CRM appointments and blocked time."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@click.option("--date", "-d", "focus", default=None, help="Focus date (YYYY-MM-DD), defaults to today")
@click.option("--contact", default=None, help="Only this contact's appointments")
@click.option("--status", "statuses", multiple=True, type=click.Choice(STATUS_CHOICES), help="Filter appointments by status")
@click.option("--service", "service_id", default=None, help="Filter appointments by service id")
@click.option("--type", "types", multiple=True, type=click.Choice(TYPE_CHOICES), help="Event types to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def calendar(focus, contact, statuses, service_id, types, as_json):
    """Show the calendar around a focus date."""
    config, sched = _load()
    tz = ZoneInfo(config.timezone)
    focus_date = date.fromisoformat(focus) if focus else datetime.now(tz).date()

    window = fetch_window(focus_date, config.window_buffer_days)
    start, end = window.as_datetimes(tz)
    events = sched.get_calendar_events(
        start,
        end,
        contact_id=contact,
        types=types or None,
        statuses=statuses or None,
        service_id=service_id,
    )
    _show_events(events, as_json, tz)


@main.command()
@click.argument("contact_id")
@click.argument("title")
@click.option("--start", required=True, help="Start (ISO datetime)")
@click.option("--end", default=None, help="End (ISO datetime); defaults from the service duration")
@click.option("--service", "service_id", default=None, help="Service id")
@click.option("--price", type=int, default=None, help="Price in cents")
@click.option("--notes", default="", help="Notes")
@click.option("--repeat", type=click.Choice([t.value for t in SeriesType]), default=None, help="Book a series")
@click.option("--every", type=int, default=1, help="Series interval (weeks or months)")
@click.option("--until", default=None, help="Series end date (YYYY-MM-DD)")
def book(contact_id, title, start, end, service_id, price, notes, repeat, every, until):
    """Book an appointment."""
    config, sched = _load()
    series = None
    if repeat:
        series = SeriesRule(
            type=SeriesType(repeat),
            interval=every,
            end_date=date.fromisoformat(until) if until else None,
        )
    try:
        appointment = sched.create_appointment(
            CreateAppointmentData(
                contact_id=contact_id,
                title=title,
                start_time=_parse_dt(start, config),
                end_time=_parse_dt(end, config),
                service_id=service_id,
                price_cents=price,
                notes=notes,
                series=series,
            )
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Booked {appointment.id}")


@main.command()
@click.argument("appointment_id")
@click.option("--title", default=None)
@click.option("--start", default=None, help="New start (ISO datetime)")
@click.option("--end", default=None, help="New end (ISO datetime)")
@click.option("--service", "service_id", default=None)
@click.option("--price", type=int, default=None, help="Price in cents")
@click.option("--notes", default=None)
def edit(appointment_id, title, start, end, service_id, price, notes):
    """Edit a scheduled or confirmed appointment."""
    config, sched = _load()
    try:
        sched.update_appointment(
            appointment_id,
            AppointmentUpdate(
                title=title,
                start_time=_parse_dt(start, config),
                end_time=_parse_dt(end, config),
                service_id=service_id,
                price_cents=price,
                notes=notes,
            ),
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Updated {appointment_id}")


@main.command()
@click.argument("appointment_id")
@click.argument("target", type=click.Choice(STATUS_CHOICES))
@click.option("--reason", default=None, help="Cancellation reason")
def status(appointment_id, target, reason):
    """Change an appointment's status."""
    _, sched = _load()
    try:
        appointment = sched.update_appointment_status(appointment_id, AppointmentStatus(target), reason)
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ {appointment_id} is now {appointment.status.value}")


@main.command()
@click.argument("appointment_id")
def delete(appointment_id):
    """Delete an appointment (completed ones are kept)."""
    _, sched = _load()
    try:
        sched.delete_appointment(appointment_id)
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Deleted {appointment_id}")


@main.command()
@click.option("--start", required=True, help="Start (ISO datetime)")
@click.option("--end", required=True, help="End (ISO datetime)")
def check(start, end):
    """Check whether a time slot is free."""
    config, sched = _load()
    try:
        blockers = sched.check_availability(_parse_dt(start, config), _parse_dt(end, config))
    except SchedulingError as e:
        _fail(e)
    if not blockers:
        click.echo("Available.")
        return
    click.echo("Unavailable, blocked by:")
    for blocker in blockers:
        click.echo(f"  - {blocker.describe()}")


@main.command()
@click.option("--start", required=True, help="Start (ISO datetime)")
@click.option("--end", required=True, help="End (ISO datetime)")
@click.option("--reason", default=None)
@click.option("--daily", is_flag=True, help="Repeat every day")
@click.option("--weekly", "weekdays", default=None, help="Repeat on weekdays, e.g. '1,3,5' (0=Sunday)")
def block(start, end, reason, daily, weekdays):
    """Block time, once or recurring."""
    config, sched = _load()
    pattern = None
    if daily:
        pattern = RecurringPattern(type=RecurrenceType.DAILY)
    elif weekdays:
        try:
            days = frozenset(int(d) for d in weekdays.split(",") if d.strip())
        except ValueError:
            raise click.BadParameter(f"weekdays must be integers: {weekdays}")
        pattern = RecurringPattern(type=RecurrenceType.WEEKLY, days=days)

    try:
        slot = sched.create_blocked_slot(
            CreateBlockedSlotData(
                start_time=_parse_dt(start, config),
                end_time=_parse_dt(end, config),
                reason=reason,
                is_recurring=pattern is not None,
                recurring_pattern=pattern,
            )
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Blocked {slot.id}")


@main.command()
@click.argument("slot_id")
def unblock(slot_id):
    """Remove a blocked slot by its id; a recurring template loses every occurrence."""
    _, sched = _load()
    try:
        sched.delete_blocked_slot(slot_id)
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Unblocked {slot_id}")


@main.group(invoke_without_command=True)
@click.option("--all", "show_all", is_flag=True, help="Include inactive services")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def services(ctx, show_all, as_json):
    """List bookable services."""
    if ctx.invoked_subcommand is not None:
        return
    _, sched = _load()
    items = sched.get_services(active_only=not show_all)

    if as_json:
        click.echo(json.dumps([s.to_dict() for s in items], indent=2))
        return
    if not items:
        click.echo("No services.")
        return
    for s in items:
        inactive = "" if s.is_active else " (inactive)"
        click.echo(f"  {s.name}{inactive}: {s.default_duration_minutes} min, {s.default_price_cents} cents  {s.id}")


@services.command("add")
@click.argument("name")
@click.option("--duration", type=int, default=60, help="Default duration in minutes")
@click.option("--price", type=int, default=0, help="Default price in cents")
@click.option("--color", default="#3b82f6", help="Hex color")
def services_add(name, duration, price, color):
    """Add a service."""
    _, sched = _load()
    try:
        created = sched.create_service(
            ServiceData(name=name, default_duration_minutes=duration, default_price_cents=price, color=color)
        )
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Added {created.id}")


@services.command("remove")
@click.argument("service_id")
def services_remove(service_id):
    """Remove a service (appointments keep their history)."""
    _, sched = _load()
    try:
        sched.delete_service(service_id)
    except SchedulingError as e:
        _fail(e)
    click.echo(f"✓ Removed {service_id}")


@main.command()
@click.option("--date", "-d", "focus", default=None, help="Focus date (YYYY-MM-DD), defaults to today")
@click.option("--interval", type=int, default=None, help="Seconds between refreshes")
def watch(focus, interval):
    """Keep the calendar for a focus date refreshed until Ctrl+C."""
    config, sched = _load()
    tz = ZoneInfo(config.timezone)
    focus_date = date.fromisoformat(focus) if focus else datetime.now(tz).date()
    start, end = fetch_window(focus_date, config.window_buffer_days).as_datetimes(tz)

    def on_update(events):
        stamp = datetime.now(tz).strftime("%H:%M:%S")
        click.echo(f"[{stamp}] {len(events)} events")

    refresher = CalendarRefresher(
        sched,
        start,
        end,
        interval=interval or config.refresh_interval,
        on_update=on_update,
    )
    click.echo("Press Ctrl+C to stop")
    try:
        with refresher:
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopped.")


if __name__ == "__main__":
    main()
