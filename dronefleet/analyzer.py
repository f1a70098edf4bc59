"""
Analyzer for comparing and visualizing allocation results.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import json
from typing import Any

import matplotlib.pyplot as plt
import numpy as np
from rich.console import Console
from rich.table import Table

from .mission import Delivery
from .optimizer import AllocationResult, AllocationStrategy
from .vehicles import Drone


class AllocationAnalyzer:
    """Analyzes and compares allocation results from different strategies."""

    def __init__(self, console: Console | None = None):
        self.results: list[AllocationResult] = []
        self.console = console or Console()

    def add_result(self, result: AllocationResult):
        self.results.append(result)

    def clear_results(self):
        self.results = []

    def evaluate(
        self,
        strategies: Iterable[AllocationStrategy],
        drones: Sequence[Drone],
        pending: Sequence[Delivery],
    ) -> list[AllocationResult]:
        """Plan the same snapshot with every strategy and store the results.

        Plans are not applied, so drones and deliveries are left untouched.
        """
        results = [strategy.solve(drones, pending) for strategy in strategies]
        self.results.extend(results)
        return results

    def compare_strategies(self) -> dict[str, Any]:
        """
        Compare all stored results.

        Returns:
            Dictionary with comparison metrics
        """
        if not self.results:
            return {}

        comparison = {
            "strategies": [result.get_summary() for result in self.results],
            "most_allocated": None,
            "shortest_distance": None,
            "fastest": None,
        }

        most_allocated = max(self.results, key=lambda r: r.allocated_count)
        comparison["most_allocated"] = most_allocated.strategy_name

        # Shortest average trip among strategies that allocated anything
        with_trips = [r for r in self.results if r.allocations]
        if with_trips:
            shortest = min(with_trips, key=lambda r: r.total_distance / len(r.allocations))
            comparison["shortest_distance"] = shortest.strategy_name

        comparison["fastest"] = min(self.results, key=lambda r: r.computation_time).strategy_name
        return comparison

    def get_statistics(self) -> dict[str, Any]:
        """
        Get statistical summary of all results.

        Returns:
            Dictionary with statistical metrics
        """
        if not self.results:
            return {}

        def describe(values: list[float]) -> dict[str, float]:
            array = np.asarray(values, dtype=float)
            return {
                "min": float(array.min()),
                "max": float(array.max()),
                "avg": float(array.mean()),
                "std": float(array.std()),
            }

        return {
            "num_strategies": len(self.results),
            "distance": describe([r.total_distance for r in self.results]),
            "computation_time": describe([r.computation_time for r in self.results]),
            "allocated": describe([r.allocated_count for r in self.results]),
            "unallocated": describe([len(r.unallocated) for r in self.results]),
        }

    def comparison_table(self) -> Table:
        table = Table(title="Allocation Strategy Comparison")
        table.add_column("Strategy", style="cyan")
        table.add_column("Trips", justify="right")
        table.add_column("Allocated", justify="right")
        table.add_column("Unallocated", justify="right")
        table.add_column("Total Distance", justify="right")
        table.add_column("Avg Distance", justify="right")
        table.add_column("Time (s)", justify="right")

        for result in self.results:
            summary = result.get_summary()
            table.add_row(
                result.strategy_name,
                str(summary["num_allocations"]),
                str(summary["num_allocated"]),
                str(summary["num_unallocated"]),
                f"{summary['total_distance']:.2f}",
                f"{summary['average_distance']:.2f}",
                f"{summary['computation_time']:.6f}",
            )
        return table

    def print_comparison(self):
        """Print a formatted comparison of all results."""
        if not self.results:
            self.console.print("[yellow]No results to compare.[/yellow]")
            return

        self.console.print(self.comparison_table())
        comparison = self.compare_strategies()
        self.console.print(f"  Most Allocated:    {comparison['most_allocated']}")
        self.console.print(f"  Shortest Trips:    {comparison['shortest_distance']}")
        self.console.print(f"  Fastest:           {comparison['fastest']}")

    def export_to_json(self, filepath: str):
        """
        Export results to JSON file.

        Args:
            filepath: Path to output JSON file
        """
        data = {
            "comparison": self.compare_strategies(),
            "statistics": self.get_statistics(),
            "results": [
                {
                    **result.get_summary(),
                    "allocations": [
                        {
                            "drone": allocation.drone.id,
                            "deliveries": list(allocation.delivery_ids),
                            "total_distance": allocation.total_distance,
                            "estimated_time": allocation.estimated_time,
                            "efficiency": allocation.efficiency,
                        }
                        for allocation in result.allocations
                    ],
                    "unallocated": [delivery.id for delivery in result.unallocated],
                }
                for result in self.results
            ],
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2)

    def visualize(self, save_path: str | None = None):
        """
        Plot the routes planned by every stored result, one panel per strategy.

        Args:
            save_path: Path to save the figure (if None, displays interactively)
        """
        if not self.results:
            self.console.print("[yellow]No results to visualize.[/yellow]")
            return None

        num_results = len(self.results)
        fig, axes = plt.subplots(1, num_results, figsize=(6 * num_results, 6), squeeze=False)

        for ax, result in zip(axes[0], self.results):
            for allocation in result.allocations:
                base = allocation.drone.base
                xs = [base.x] + [d.location.x for d in allocation.deliveries] + [base.x]
                ys = [base.y] + [d.location.y for d in allocation.deliveries] + [base.y]
                ax.plot(xs, ys, "--", alpha=0.5, label=f"Drone {allocation.drone.id}")
                ax.scatter(xs[1:-1], ys[1:-1], marker="o", s=60)

            if result.unallocated:
                ax.scatter(
                    [d.location.x for d in result.unallocated],
                    [d.location.y for d in result.unallocated],
                    c="gray",
                    marker="x",
                    s=80,
                    label="Unallocated",
                )

            bases = {allocation.drone.base for allocation in result.allocations}
            for base in bases:
                ax.scatter([base.x], [base.y], c="black", marker="s", s=120)

            ax.set_title(f"{result.strategy_name}\nDistance: {result.total_distance:.2f}")
            ax.set_xlabel("X coordinate")
            ax.set_ylabel("Y coordinate")
            if result.allocations or result.unallocated:
                ax.legend()
            ax.grid(True, alpha=0.3)

        fig.tight_layout()

        if save_path:
            fig.savefig(save_path, dpi=150, bbox_inches="tight")
            plt.close(fig)
            self.console.print(f"Visualization saved to {save_path}")
        else:
            plt.show()
        return fig
