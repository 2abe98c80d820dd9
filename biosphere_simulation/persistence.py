"""
Save and restore a running simulation as JSON.

Only the authoritative state is written: the five gas pools, the clock's
day/time01 and each agent's kind, biomass, hunger, alive flag and position.
Percentages and environmental status are always recomputed on load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .agents.base import AgentKind, MetabolicAgent
from .agents.carnivore import Sex
from .atmosphere import GasPool
from .config import SimulationConfig
from .simulation import Simulation

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _agent_record(agent: MetabolicAgent) -> dict:
    record = {
        "kind": agent.kind.value,
        "name": agent.name,
        "alive": agent.alive,
        "biomass": agent.biomass,
        "x": agent.x,
        "y": agent.y,
        "age": agent.age,
        "seed": agent.seed,
    }
    if hasattr(agent, "hunger"):
        record["hunger"] = agent.hunger
    if hasattr(agent, "sex"):
        record["sex"] = agent.sex.value
    return record


def snapshot_state(simulation: Simulation) -> dict:
    return {
        "version": FORMAT_VERSION,
        "tick": simulation.tick,
        "elapsed": simulation.elapsed,
        "speed": simulation.speed,
        "base_seed": simulation.base_seed,
        "atmosphere": simulation.ledger.pool.as_dict(),
        "clock": {"day": simulation.clock.day, "time01": simulation.clock.time01},
        "pending_respawns": simulation.grass_respawner.pending,
        "agents": [_agent_record(a) for a in simulation.ecosystem.agents],
    }


def restore_state(simulation: Simulation, data: dict) -> Simulation:
    """Replace the simulation's world with ``data``; dead agents are dropped."""
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        logger.warning("State format version %r differs from %d; loading anyway", version, FORMAT_VERSION)

    simulation.ecosystem.clear()
    simulation.scheduler.clear()
    simulation.breeding.clear()

    simulation.ledger.set_pool(GasPool(**data["atmosphere"]))
    clock = data.get("clock", {})
    simulation.clock.restore(clock.get("day", 0), clock.get("time01", 0.0))

    skipped = 0
    for record in data.get("agents", []):
        if not record.get("alive", True):
            skipped += 1
            continue
        agent = simulation.make_agent(
            AgentKind(record["kind"]),
            record["x"],
            record["y"],
            seed=record.get("seed"),
            sex=Sex(record.get("sex", Sex.MALE.value)),
        )
        agent.name = record.get("name", agent.name)
        agent.age = record.get("age", 0.0)
        agent.biomass = record["biomass"]
        if "hunger" in record and hasattr(agent, "hunger"):
            agent.hunger = record["hunger"]
        simulation.add_agent(agent)

    simulation.tick = int(data.get("tick", 0))
    simulation.elapsed = float(data.get("elapsed", 0.0))
    simulation.grass_respawner.pending = int(data.get("pending_respawns", 0))
    simulation.set_speed(int(data.get("speed", 1)))
    simulation.collapsed = False

    logger.info(
        "Restored state at tick %d: %s (%d dead agents skipped)",
        simulation.tick,
        simulation.ecosystem.counts(),
        skipped,
    )
    return simulation


def save_state(simulation: Simulation, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_state(simulation), f, indent=2)
    logger.info("Saved simulation state to %s", path)
    return path


def load_state(path: str | Path, config: SimulationConfig | None = None) -> Simulation:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    simulation = Simulation(config, seed=data.get("base_seed"), populate=False)
    return restore_state(simulation, data)


__all__ = ["load_state", "restore_state", "save_state", "snapshot_state"]
