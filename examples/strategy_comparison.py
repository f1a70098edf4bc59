"""
Example comparing allocation strategies on the same pending deliveries.
"""

from dronefleet import FleetConfig, OptimizedAllocation, SimpleAllocation, Simulation, SimulationConfig
from dronefleet.analyzer import AllocationAnalyzer


def main():
    print("=" * 80)
    print("Drone Delivery Fleet - Strategy Comparison")
    print("=" * 80)

    sim = Simulation(SimulationConfig(fleet=FleetConfig(count=5), seed=42))
    sim.generate_random_deliveries(15)
    print(f"Created {len(sim.drones)} drones and {len(sim.deliveries)} deliveries")

    analyzer = AllocationAnalyzer()
    strategies = [
        SimpleAllocation(),
        OptimizedAllocation(),
        OptimizedAllocation(route_planner="genetic"),
    ]

    print("\nPlanning with different strategies...")
    analyzer.evaluate(strategies, sim.drones, sim.pending_deliveries())

    print()
    analyzer.print_comparison()

    stats = analyzer.get_statistics()
    print(f"\nDistance: min {stats['distance']['min']:.2f}, max {stats['distance']['max']:.2f}")
    print(f"Allocated: min {stats['allocated']['min']:.0f}, max {stats['allocated']['max']:.0f}")

    output_file = "comparison_results.json"
    analyzer.export_to_json(output_file)
    print(f"\nResults exported to {output_file}")

    analyzer.visualize(save_path="comparison_plot.png")


if __name__ == "__main__":
    main()
