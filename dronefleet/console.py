"""Rich rendering of fleet events and snapshots.

The core only produces events and snapshot dataclasses; this module turns them
into terminal output.
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .events import EventLevel, FleetEvent
from .mission import DeliveryInfo, DeliveryStatus
from .simulator import SimulationStatistics
from .vehicles import DroneState, DroneStatus

LEVEL_STYLES = {
    EventLevel.INFO: "cyan",
    EventLevel.SUCCESS: "green",
    EventLevel.WARNING: "yellow",
    EventLevel.ERROR: "bold red",
}

STATE_STYLES = {
    DroneState.IDLE: "green",
    DroneState.LOADING: "cyan",
    DroneState.FLYING: "blue",
    DroneState.COLLECTING: "magenta",
    DroneState.RETURNING: "yellow",
    DroneState.DELIVERING: "bright_green",
    DroneState.RECHARGING: "red",
}


def format_sim_time(ms: float) -> str:
    """``mm:ss`` rendering of a simulated duration."""
    seconds = int(ms // 1000)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class RichEventSink:
    """Prints every event on a rich console, styled by level."""

    def __init__(self, console: Console | None = None, show_time: bool = True):
        self.console = console or Console()
        self.show_time = show_time

    def emit(self, event: FleetEvent) -> None:
        style = LEVEL_STYLES[event.level]
        prefix = f"[dim]{format_sim_time(event.time_ms)}[/dim] " if self.show_time else ""
        suffix = f" [yellow]{'★' * event.rating}[/yellow]" if event.rating else ""
        self.console.print(f"{prefix}[{style}]{event.message}[/{style}]{suffix}")


def fleet_table(statuses: Iterable[DroneStatus]) -> Table:
    table = Table(title="Fleet")
    table.add_column("Drone", justify="right")
    table.add_column("State")
    table.add_column("Battery", justify="right")
    table.add_column("Position")
    table.add_column("Load", justify="right")
    table.add_column("Delivered", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Distance", justify="right")
    table.add_column("Trips", justify="right")

    for status in statuses:
        style = STATE_STYLES[status.state]
        table.add_row(
            str(status.id),
            f"[{style}]{status.state.name}[/{style}]",
            f"{status.battery:.0f}%",
            f"({status.position.x:.1f}, {status.position.y:.1f})",
            f"{status.current_weight:.1f}/{status.capacity:.0f} kg",
            str(status.deliveries_completed),
            f"{status.efficiency:.0f}%",
            f"{status.distance_traveled:.1f} km",
            str(status.trips),
        )
    return table


def delivery_table(infos: Iterable[DeliveryInfo], include_delivered: bool = False) -> Table:
    """Table of deliveries, highest priority first; delivered ones are hidden by default."""
    rows = [info for info in infos if include_delivered or info.status is not DeliveryStatus.DELIVERED]
    rows.sort(key=lambda info: (-info.priority.weight, info.id))

    table = Table(title="Deliveries")
    table.add_column("#", justify="right")
    table.add_column("Priority")
    table.add_column("Location")
    table.add_column("Weight", justify="right")
    table.add_column("Status")
    table.add_column("Drone", justify="right")
    table.add_column("Time", justify="right")

    for info in rows:
        drone = info.delivered_by if info.delivered_by is not None else info.assigned_drone_id
        elapsed = info.delivery_time_ms if info.delivery_time_ms is not None else info.wait_time_ms
        table.add_row(
            str(info.id),
            info.priority.name.lower(),
            f"({info.location.x:.0f}, {info.location.y:.0f})",
            f"{info.weight:.1f} kg",
            info.status.name.lower(),
            "-" if drone is None else str(drone),
            "-" if elapsed is None else format_sim_time(elapsed),
        )
    return table


def statistics_panel(stats: SimulationStatistics) -> Panel:
    t = Table.grid(padding=(0, 2))
    t.add_row("[b]Completed[/b]: ", str(stats.deliveries_completed))
    t.add_row("[b]Open[/b]: ", str(stats.deliveries_open))
    t.add_row("[b]Average Delivery Time[/b]: ", format_sim_time(stats.avg_delivery_time_ms))
    t.add_section()
    t.add_row("[b]Total Distance[/b]: ", f"{stats.total_distance:.1f} km")
    t.add_row("[b]Total Trips[/b]: ", str(stats.total_trips))
    t.add_row("[b]Fleet Efficiency[/b]: ", f"{stats.fleet_efficiency:.0f}%")
    t.add_row("[b]Best Drone[/b]: ", "-" if stats.best_drone_id is None else f"Drone {stats.best_drone_id}")
    return Panel(t, title="Statistics", padding=(1, 2))
