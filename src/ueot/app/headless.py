from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "food",
    "corpses",
    "births",
    "deaths",
    "eta",
    "rho",
    "state",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "food",
    "corpses",
    "births",
    "deaths",
    "eta",
    "rho",
    "mean_integrity",
    "total_energy",
    "state",
    "tick_ms",
    "avg_energy",
    "max_generation",
    "spin_plus_ratio",
    "shock_intensity",
    "births_per_agent",
    "deaths_per_agent",
    "tick_ms_per_agent",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.food,
        metrics.corpses,
        metrics.births,
        metrics.deaths,
        f"{metrics.eta:.4f}",
        f"{metrics.rho:.4f}",
        metrics.state.value,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    agents = world.agents
    if agents:
        avg_energy = sum(agent.energy for agent in agents) / len(agents)
        max_generation = max(agent.generation for agent in agents)
        spin_plus_ratio = sum(1 for agent in agents if agent.spin > 0) / len(agents)
    else:
        avg_energy = 0.0
        max_generation = 0
        spin_plus_ratio = 0.0
    population = metrics.population
    if population <= 0:
        births_per_agent = 0.0
        deaths_per_agent = 0.0
        tick_ms_per_agent = 0.0
    else:
        births_per_agent = metrics.births / population
        deaths_per_agent = metrics.deaths / population
        tick_ms_per_agent = tick_ms / population

    return [
        metrics.tick,
        metrics.population,
        metrics.food,
        metrics.corpses,
        metrics.births,
        metrics.deaths,
        f"{metrics.eta:.4f}",
        f"{metrics.rho:.4f}",
        f"{metrics.mean_integrity:.4f}",
        f"{metrics.total_energy:.4f}",
        metrics.state.value,
        f"{tick_ms:.3f}",
        f"{avg_energy:.4f}",
        max_generation,
        f"{spin_plus_ratio:.4f}",
        f"{world.shock_intensity:.4f}",
        f"{births_per_agent:.4f}",
        f"{deaths_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def _load_config(config_path: Optional[Path], seed: Optional[int]) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
    shock_ticks: Iterable[int] = (),
) -> list[TickMetrics]:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")
    if steps < 0:
        raise ValueError(f"steps must be non-negative, got {steps}")

    config = _load_config(config_path, seed)
    world = World(config)
    shocks = set(shock_ticks)
    logger.info("Running %d ticks (seed=%s, log=%s)", steps, config.seed, log_path)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    history: list[TickMetrics] = []
    try:
        for tick in range(steps):
            if tick in shocks:
                world.trigger_shock()
            metrics = world.step()
            history.append(metrics)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        _write_summary(summary_path, history, steps, config, log_mode, deterministic_log, summary_window)
    if history:
        final = history[-1]
        logger.info(
            "Finished at tick %d: population=%d state=%s eta=%.3f rho=%.3f",
            final.tick,
            final.population,
            final.state.value,
            final.eta,
            final.rho,
        )
    return history


def _write_summary(
    summary_path: Path,
    history: list[TickMetrics],
    steps: int,
    config: SimulationConfig,
    log_mode: str,
    deterministic_log: bool,
    summary_window: int,
) -> None:
    tick_ms_series = [0.0 if deterministic_log else m.tick_duration_ms for m in history]
    population_series = [float(m.population) for m in history]
    eta_series = [m.eta for m in history]
    rho_series = [m.rho for m in history]
    energy_series = [m.total_energy for m in history]
    window = max(1, int(summary_window))
    tail = slice(max(0, len(history) - window), len(history))
    peak_population = max(history, key=lambda m: m.population, default=None)
    summary = {
        "steps": steps,
        "seed": config.seed,
        "log_format": log_mode,
        "deterministic_log": deterministic_log,
        "tick_ms": _summary_stats(tick_ms_series),
        "population": _summary_stats(population_series),
        "eta": _summary_stats(eta_series),
        "rho": _summary_stats(rho_series),
        "total_energy": _summary_stats(energy_series),
        "states": dict(Counter(m.state.value for m in history)),
        "totals": {
            "births": sum(m.births for m in history),
            "deaths": sum(m.deaths for m in history),
        },
        "peaks": {
            "population": {
                "value": peak_population.population if peak_population else 0,
                "tick": peak_population.tick if peak_population else -1,
            },
        },
        "final": {
            "population": history[-1].population if history else 0,
            "state": history[-1].state.value if history else None,
        },
        "tail_window": {
            "window": window,
            "population": _summary_stats(population_series[tail]),
            "eta": _summary_stats(eta_series[tail]),
            "rho": _summary_stats(rho_series[tail]),
        },
    }
    Path(summary_path).write_text(json.dumps(summary, indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless chirality ecosystem simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument(
        "--shock-at",
        type=int,
        action="append",
        default=[],
        metavar="TICK",
        help="Trigger a shock impulse before the given tick (repeatable).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
        shock_ticks=args.shock_at,
    )


if __name__ == "__main__":
    main()
