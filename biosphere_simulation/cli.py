from __future__ import annotations

import argparse
import logging
import uuid

from .config import load_config
from .persistence import load_state, save_state
from .reporting import generate_report
from .simulation import SPEED_LEVELS, Simulation
from .telemetry import TelemetryRecorder

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the closed-atmosphere ecosystem simulation")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--steps", type=int, default=6000, help="Number of ticks to run")
    parser.add_argument("--dt", type=float, help="Seconds per tick (overrides config)")
    parser.add_argument("--seed", type=int, help="Base random seed")
    parser.add_argument("--speed", type=int, choices=SPEED_LEVELS, help="Time speed multiplier")
    parser.add_argument("--telemetry", metavar="DIR", help="Record SQLite telemetry under DIR")
    parser.add_argument("--report", action="store_true", help="Render charts and summary.html after the run")
    parser.add_argument("--trajectory", metavar="PATH", help="Append a JSON line per tick to PATH")
    parser.add_argument("--load", metavar="PATH", help="Resume from a saved state file")
    parser.add_argument("--save", metavar="PATH", help="Save state to PATH when the run ends")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.dt is not None:
        config.dt = args.dt
    if args.speed is not None:
        config.speed = args.speed

    if args.load:
        sim = load_state(args.load, config)
    else:
        sim = Simulation(config, seed=args.seed, trajectory_log_path=args.trajectory)
    sim.trajectory_log_path = args.trajectory

    if args.telemetry:
        sim.telemetry = TelemetryRecorder(
            uuid.uuid4().hex[:8],
            base_seed=sim.base_seed,
            world_size=sim.habitat.size,
            snapshot_interval=config.snapshot_interval,
            base_path=args.telemetry,
        )

    ran = sim.run(args.steps)
    latest = sim.stats.latest
    if latest is not None:
        logger.info(
            "Finished %d ticks (day %d): O2 %.2f%%, CO2 %.3f%%, status %s, populations %s",
            ran,
            latest.day,
            latest.o2_percent,
            latest.co2_percent,
            latest.status,
            sim.ecosystem.counts(),
        )
    if sim.collapsed:
        logger.warning("Run ended with the ecosystem collapsed at tick %s", sim.collapse_tick)

    if args.save:
        save_state(sim, args.save)

    if sim.telemetry is not None:
        db_path = sim.telemetry.db_path
        run_dir = sim.telemetry.run_dir
        sim.close()
        if args.report:
            generate_report(db_path, run_dir)
    elif args.report:
        logger.warning("--report needs --telemetry; no report written")

    return 0
