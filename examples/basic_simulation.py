"""
Example running a small delivery fleet on the simulated clock.
"""

import logging

from rich.console import Console

from dronefleet import FleetConfig, Simulation, SimulationConfig, configure_logging
from dronefleet.console import RichEventSink, delivery_table, fleet_table, statistics_panel


def main():
    console = Console()
    configure_logging(logging.INFO, console)

    config = SimulationConfig(fleet=FleetConfig(count=4), seed=42)
    sim = Simulation(config, events=RichEventSink(console))

    console.rule("Drone Delivery Fleet - Basic Simulation")
    sim.submit(28, 28, 5, "high")
    sim.submit(20, 22, 3.5, "low")
    sim.generate_random_deliveries(6)

    sim.start()
    sim.run_for(60_000)
    sim.pause()

    console.print(fleet_table(sim.drone_snapshots()))
    console.print(delivery_table(sim.delivery_snapshots(), include_delivered=True))
    console.print(statistics_panel(sim.statistics()))

    frame = sim.deliveries_frame()
    output_file = "deliveries.csv"
    frame.to_csv(output_file, index=False)
    console.print(f"\nDelivery table exported to {output_file}")


if __name__ == "__main__":
    main()
