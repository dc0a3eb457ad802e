"""
Main CLI application using Typer.
"""

import asyncio
import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_store import JsonFileRepository
from ..config import AppConfig, get_default_config_path
from ..domain.clock import SalonClock, as_date
from ..domain.exceptions import ConflictError, NotFoundError, SchedulingError
from ..domain.models import Appointment, Service, ShiftWindow
from ..domain.slot_generator import SlotGenerator
from ..services.admin import AdminService
from ..services.booking import BookingService

app = typer.Typer(
    name="salonslots",
    help="Find and book appointment slots for the salon",
    add_completion=False
)

console = Console()

_CLOCK_ARG = re.compile(r"^\d{1,2}:\d{2}$")
_MONTH_ARG = re.compile(r"^(\d{4})-(\d{1,2})$")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


class _Context:
    """Everything a command needs, built from the config file."""

    def __init__(self, config_file: Optional[Path]):
        config_path = config_file or get_default_config_path()
        self.config = AppConfig.load_from_yaml(config_path)
        _configure_logging(self.config.log_level)

        self.clock: SalonClock = self.config.build_clock()
        self.repository = JsonFileRepository(self.config.resolve_data_file(config_path))
        self.booking = BookingService(
            repository=self.repository,
            clock=self.clock,
            slot_generator=SlotGenerator(
                clock=self.clock,
                interval_minutes=self.config.slot_interval_minutes,
            ),
        )
        self.admin = AdminService(repository=self.repository, booking_service=self.booking)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Turn application errors into a red message and exit code 1."""
    try:
        yield
    except ConflictError as e:
        label = "Blocked" if e.is_blocked else "Conflict"
        console.print(f"[bold red]{label}:[/bold red] {e}")
        raise typer.Exit(1)
    except NotFoundError as e:
        console.print(f"[bold red]Not found:[/bold red] {e}")
        raise typer.Exit(1)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


async def _resolve_service(ctx: _Context, identifier: str) -> Service:
    """Resolve a service id or (case-insensitive) name."""
    service = await ctx.repository.find_service(identifier)
    if service is not None:
        return service

    for candidate in await ctx.repository.list_services():
        if candidate.name.lower() == identifier.lower():
            return candidate

    raise NotFoundError("service", identifier)


def _parse_start(clock: SalonClock, day: str, value: str):
    """Accept "HH:mm" on ``day`` or a full ISO-8601 instant."""
    if _CLOCK_ARG.match(value.strip()):
        return clock.at(as_date(day), value.strip())
    return clock.parse_instant(value)


def _parse_window(value: Optional[str]) -> Optional[ShiftWindow]:
    if value is None:
        return None
    opens, sep, closes = value.partition("-")
    if not sep:
        raise ValueError(f"Window must look like HH:mm-HH:mm, got '{value}'")
    return ShiftWindow(opens=opens.strip(), closes=closes.strip())


def _appointments_table(title: str, appointments: List[Appointment], services: dict) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Time", style="bold yellow")
    table.add_column("Customer")
    table.add_column("Phone", style="dim")
    table.add_column("Service")
    table.add_column("Status")

    for appt in appointments:
        service = services.get(appt.service_id)
        table.add_row(
            appt.id,
            f"{appt.start_time.format('HH:mm')} - {appt.end_time.format('HH:mm')}",
            appt.customer_name,
            appt.phone_number,
            service.name if service else appt.service_id,
            appt.status.value,
        )
    return table


@app.command()
def init(config_file: ConfigOption = None):
    """
    Seed operating hours and services from the config file.

    Existing operating hours and services are left untouched.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        seed = ctx.config.seed

        async def _seed():
            created_config = False
            if await ctx.repository.find_operating_config() is None:
                hours = seed.operating_hours.to_operating_config()
                await ctx.admin.create_operating_config(
                    hours.morning_window, hours.evening_window, hours.days_off
                )
                created_config = True

            created_services = []
            if not await ctx.repository.list_services():
                for item in seed.services:
                    created_services.append(
                        await ctx.admin.create_service(item.name, item.duration_minutes, item.price)
                    )
            return created_config, created_services

        created_config, created_services = asyncio.run(_seed())

        if created_config:
            console.print("[green]✓ Operating hours created[/green]")
        else:
            console.print("[yellow]Operating hours already exist, skipped[/yellow]")
        if created_services:
            console.print(f"[green]✓ Created {len(created_services)} service(s)[/green]")
        else:
            console.print("[yellow]Services already exist, skipped[/yellow]")


@app.command()
def hours(
    config_file: ConfigOption = None,
    morning: Annotated[Optional[str], typer.Option("--morning", help="Morning window, e.g. 09:00-14:00")] = None,
    evening: Annotated[Optional[str], typer.Option("--evening", help="Evening window, e.g. 16:00-22:00")] = None,
    days_off: Annotated[Optional[List[str]], typer.Option("--day-off", help="Weekly day off (repeatable)")] = None,
):
    """
    Show or update the operating hours.
    """
    with _cli_errors():
        ctx = _Context(config_file)

        if morning or evening or days_off is not None:
            config = asyncio.run(
                ctx.admin.update_operating_config(
                    morning_window=_parse_window(morning),
                    evening_window=_parse_window(evening),
                    days_off=days_off,
                )
            )
            console.print("[green]✓ Operating hours updated[/green]")
        else:
            config = asyncio.run(ctx.admin.get_operating_config())

        console.print(f"\n  Morning:  {config.morning_window}")
        console.print(f"  Evening:  {config.evening_window}")
        console.print(f"  Days off: {', '.join(config.days_off) or 'None'}\n")


@app.command()
def services(
    config_file: ConfigOption = None,
    active_only: Annotated[bool, typer.Option("--active", help="Only list active services")] = False,
):
    """
    List all services.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        items = asyncio.run(ctx.admin.list_services(active_only=active_only))

        if not items:
            console.print("[yellow]No services configured. Run 'salonslots init' first.[/yellow]")
            return

        table = Table(title="Services", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold yellow")
        table.add_column("Duration")
        table.add_column("Price")
        table.add_column("Active")

        for service in items:
            table.add_row(
                service.id,
                service.name,
                f"{service.duration_minutes} min",
                f"{service.price:g}",
                "yes" if service.is_active else "no",
            )

        console.print()
        console.print(table)
        console.print()


@app.command("add-service")
def add_service(
    name: Annotated[str, typer.Argument(help="Service name")],
    duration: Annotated[int, typer.Argument(help="Duration in minutes")],
    price: Annotated[float, typer.Argument(help="Price")],
    config_file: ConfigOption = None,
):
    """
    Add a service to the catalogue.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        service = asyncio.run(ctx.admin.create_service(name, duration, price))
        console.print(f"[green]✓ Created service {service.name} ({service.id})[/green]")


@app.command("update-service")
def update_service(
    service: Annotated[str, typer.Argument(help="Service id or name")],
    name: Annotated[Optional[str], typer.Option("--name", help="New name")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="New duration in minutes")] = None,
    price: Annotated[Optional[float], typer.Option("--price", help="New price")] = None,
    active: Annotated[
        Optional[bool],
        typer.Option("--active/--inactive", help="Offer or retire the service for new bookings"),
    ] = None,
    config_file: ConfigOption = None,
):
    """
    Change a service. Retired (--inactive) services cannot be booked.

    Examples:

        salonslots update-service Haircut --price 250

        salonslots update-service Haircut --inactive
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _update():
            resolved = await _resolve_service(ctx, service)
            return await ctx.admin.update_service(
                resolved.id,
                name=name,
                duration_minutes=duration,
                price=price,
                is_active=active,
            )

        updated = asyncio.run(_update())
        state = "active" if updated.is_active else "inactive"
        console.print(f"[green]✓ Updated service {updated.name} ({state})[/green]")


@app.command("remove-service")
def remove_service(
    service: Annotated[str, typer.Argument(help="Service id or name")],
    config_file: ConfigOption = None,
):
    """
    Delete a service that no scheduled or blocked appointment uses.
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _remove():
            resolved = await _resolve_service(ctx, service)
            await ctx.admin.delete_service(resolved.id)
            return resolved

        removed = asyncio.run(_remove())
        console.print(f"[green]✓ Removed service {removed.name}[/green]")


@app.command()
def slots(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[str, typer.Argument(help="Service id or name")],
    config_file: ConfigOption = None,
    show_all: Annotated[bool, typer.Option("--all", help="Also show unavailable slots")] = False,
):
    """
    Show bookable slots for a service on a day.

    Examples:

        salonslots slots 2025-03-14 Haircut

        salonslots slots 2025-03-14 Haircut --all
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _slots():
            resolved = await _resolve_service(ctx, service)
            return resolved, await ctx.booking.get_available_slots(day, resolved.id)

        resolved, result = asyncio.run(_slots())

        if result.is_closed:
            console.print(f"[yellow]⚠ Closed on {day}: {result.closure_reason}[/yellow]")
            return

        if not result.available_slots and not show_all:
            console.print("[yellow]⚠ No available slots for this day.[/yellow]")
            return

        console.print(
            f"\n[bold cyan]{resolved.name}[/bold cyan] ({resolved.duration_minutes} min) on {day}: "
            f"{len(result.available_slots)} of {len(result.all_slots)} slot(s) available\n"
        )
        for slot in result.all_slots:
            if slot.available:
                console.print(f"  [green]{slot.format_display()}[/green]")
            elif show_all:
                console.print(f"  [dim strike]{slot.format_display()}[/dim strike]")
        console.print()


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[str, typer.Argument(help="Service id or name")],
    start: Annotated[str, typer.Argument(help="Start time (HH:mm or ISO-8601)")],
    name: Annotated[str, typer.Option("--name", "-n", help="Customer name")],
    phone: Annotated[str, typer.Option("--phone", "-p", help="Phone number")],
    config_file: ConfigOption = None,
):
    """
    Book an appointment.
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _book():
            resolved = await _resolve_service(ctx, service)
            return await ctx.booking.create_booking(
                customer_name=name,
                phone_number=phone,
                day=day,
                service_id=resolved.id,
                start_time=_parse_start(ctx.clock, day, start),
            )

        appointment = asyncio.run(_book())
        console.print(
            f"[bold green]✓ Booked {appointment.start_time.format('DD.MM.YYYY HH:mm')}"
            f" - {appointment.end_time.format('HH:mm')}[/bold green] (id {appointment.id})"
        )


@app.command()
def block(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:mm or ISO-8601)")],
    service: Annotated[Optional[str], typer.Option("--service", "-s", help="Service whose duration is blocked")] = None,
    config_file: ConfigOption = None,
):
    """
    Block a slot so customers cannot book it.
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _block():
            service_id = (await _resolve_service(ctx, service)).id if service else None
            return await ctx.admin.block_slot(day, _parse_start(ctx.clock, day, start), service_id)

        appointment = asyncio.run(_block())
        console.print(
            f"[green]✓ Blocked {appointment.start_time.format('HH:mm')}"
            f" - {appointment.end_time.format('HH:mm')} (id {appointment.id})[/green]"
        )


@app.command()
def unblock(
    appointment_id: Annotated[str, typer.Argument(help="Blocked slot id")],
    config_file: ConfigOption = None,
):
    """
    Remove a blocked slot.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        asyncio.run(ctx.admin.unblock_slot(appointment_id))
        console.print("[green]✓ Slot unblocked[/green]")


@app.command()
def appointments(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    List appointments for a day.
    """
    with _cli_errors():
        ctx = _Context(config_file)

        async def _list():
            items = await ctx.booking.list_appointments(day)
            catalogue = {s.id: s for s in await ctx.repository.list_services()}
            return items, catalogue

        items, catalogue = asyncio.run(_list())

        if not items:
            console.print(f"[yellow]No appointments on {day}.[/yellow]")
            return

        console.print()
        console.print(_appointments_table(f"Appointments {day}", items, catalogue))
        console.print()


@app.command()
def status(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    new_status: Annotated[str, typer.Argument(help="scheduled, completed, canceled or blocked")],
    config_file: ConfigOption = None,
):
    """
    Change an appointment's status.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        appointment = asyncio.run(ctx.booking.set_appointment_status(appointment_id, new_status))
        console.print(f"[green]✓ Appointment {appointment.id} is now {appointment.status.value}[/green]")


@app.command()
def delete(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    config_file: ConfigOption = None,
):
    """
    Delete an appointment.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        asyncio.run(ctx.booking.delete_appointment(appointment_id))
        console.print("[green]✓ Appointment deleted[/green]")


@app.command()
def closures(config_file: ConfigOption = None):
    """
    List all closures.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        items = asyncio.run(ctx.admin.list_closures())

        if not items:
            console.print("[yellow]No closures.[/yellow]")
            return

        table = Table(title="Closures", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("When", style="bold yellow")
        table.add_column("Reason")

        for closure in items:
            table.add_row(closure.id, closure.describe(), closure.reason)

        console.print()
        console.print(table)
        console.print()


@app.command()
def close(
    start_date: Annotated[str, typer.Argument(help="First closed date (YYYY-MM-DD)")],
    end_date: Annotated[Optional[str], typer.Option("--until", help="Last closed date (YYYY-MM-DD)")] = None,
    from_time: Annotated[Optional[str], typer.Option("--from", help="Partial closure start (HH:mm)")] = None,
    to_time: Annotated[Optional[str], typer.Option("--to", help="Partial closure end (HH:mm)")] = None,
    reason: Annotated[Optional[str], typer.Option("--reason", "-r", help="Reason shown to customers")] = None,
    config_file: ConfigOption = None,
):
    """
    Close the salon for a day, a date range or part of a day.

    Examples:

        salonslots close 2025-03-14

        salonslots close 2025-03-14 --until 2025-03-20 --reason "Holidays"

        salonslots close 2025-03-14 --from 10:00 --to 12:30
    """
    with _cli_errors():
        ctx = _Context(config_file)
        closure = asyncio.run(
            ctx.admin.create_closure(
                start_date,
                end_date,
                is_full_day=not (from_time or to_time),
                start_time=from_time,
                end_time=to_time,
                reason=reason,
            )
        )
        console.print(f"[green]✓ Closed {closure.describe()} (id {closure.id})[/green]")


@app.command()
def reopen(
    closure_id: Annotated[str, typer.Argument(help="Closure id")],
    config_file: ConfigOption = None,
):
    """
    Remove a closure.
    """
    with _cli_errors():
        ctx = _Context(config_file)
        asyncio.run(ctx.admin.delete_closure(closure_id))
        console.print("[green]✓ Closure removed[/green]")


@app.command()
def count(
    day: Annotated[Optional[str], typer.Option("--date", help="Day (YYYY-MM-DD), defaults to today")] = None,
    month: Annotated[Optional[str], typer.Option("--month", help="Month (YYYY-MM)")] = None,
    config_file: ConfigOption = None,
):
    """
    Count appointments for a day or a month (canceled ones excluded).
    """
    with _cli_errors():
        ctx = _Context(config_file)

        if month:
            match = _MONTH_ARG.match(month)
            if not match:
                raise ValueError("Invalid date (use YYYY-MM)")
            result = asyncio.run(ctx.admin.monthly_count(int(match.group(1)), int(match.group(2))))
        else:
            result = asyncio.run(ctx.admin.daily_count(day or ctx.clock.today()))

        console.print(
            f"\n[bold cyan]{result.label}[/bold cyan]: {result.total} total, "
            f"{result.scheduled} scheduled, {result.completed} completed\n"
        )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
