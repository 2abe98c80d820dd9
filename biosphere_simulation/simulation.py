from __future__ import annotations

import dataclasses
import json
import logging
import random

import numpy as np

from .agents.base import AgentKind, MetabolicAgent
from .agents.carnivore import CarnivoreAgent, Sex
from .agents.herbivore import HerbivoreAgent
from .agents.plant import PlantAgent
from .atmosphere import EnvironmentalStatus, Gas, GasLedger
from .clock import EnvironmentClock
from .config import PlantSpecies, SimulationConfig
from .ecosystem import Ecosystem
from .habitat import Habitat
from .population import BreedingController, ReproductionController, ResourceRespawner
from .scheduler import Scheduler
from .stats import EcosystemStats
from .telemetry import DeathEvent, TelemetryRecorder

logger = logging.getLogger(__name__)

SPEED_LEVELS = (1, 2, 4, 8, 12)


class Simulation:
    """
    Host loop for the closed ecosystem.

    Builds the clock, habitat, ledger, scheduler and ecosystem, wires the
    population controllers into them and seeds the initial population. Each
    ``step(dt)`` runs, in order: clock, agents, ledger, grass respawn,
    carnivore breeding, scheduled callbacks, pruning, statistics/telemetry
    and finally the collapse check.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        *,
        seed: int | None = None,
        trajectory_log_path: str | None = None,
        telemetry: TelemetryRecorder | None = None,
        populate: bool = True,
    ):
        self.config = config or SimulationConfig()
        cfg = self.config

        # Randomness & reproducibility
        self.base_seed = seed if seed is not None else random.randrange(2**32)
        random.seed(self.base_seed)
        np.random.seed(self.base_seed % 2**32)
        self.seed_rng = random.Random(self.base_seed)
        self.agent_seeds: dict[int, int] = {}
        self.trajectory_log_path = trajectory_log_path
        self.telemetry = telemetry

        # Services
        self.clock = EnvironmentClock(cfg.clock)
        self.habitat = Habitat(cfg.habitat)
        self.ledger = GasLedger(cfg.atmosphere)
        self.scheduler = Scheduler()
        self.ecosystem = Ecosystem(
            self.habitat,
            self.clock,
            self.ledger,
            self.scheduler,
            cell_size=cfg.spatial_cell_size,
        )

        # Population control
        pop = cfg.population
        self.grass_respawner = ResourceRespawner(
            self.ecosystem,
            cfg.grass,
            respawn_interval=pop.respawn_interval,
            rng=self._child_rng(),
        )
        self.herbivore_reproduction = ReproductionController(
            self.ecosystem,
            AgentKind.HERBIVORE,
            self._make_herbivore,
            max_population=pop.max_herbivores,
            parents_required=pop.parents_required,
            spawn_offset=pop.spawn_offset,
            newborn_hunger_fraction=pop.newborn_hunger_fraction,
            newborn_biomass_fraction=pop.newborn_biomass_fraction,
            rng=self._child_rng(),
        )
        self.breeding = BreedingController(self.ecosystem, self._make_carnivore, pop, rng=self._child_rng())

        self.ecosystem.death_listeners.append(self.grass_respawner.on_agent_death)
        self.ecosystem.reproduction_handlers[AgentKind.HERBIVORE] = self.herbivore_reproduction.trigger
        self.ledger.on_status_change(self._on_status_change)

        # Simulation time / stats
        self.tick = 0
        self.elapsed = 0.0
        self.speed = 1
        self.stats = EcosystemStats()
        self.status_events: list[tuple[int, str, str]] = []
        self.collapsed = False
        self.collapse_tick: int | None = None
        self._carnivores_seen = False
        self._births_since_snapshot = 0
        self._deaths_since_snapshot = 0

        if populate:
            self._populate()
        self.set_speed(cfg.speed)

    def _child_rng(self) -> random.Random:
        return random.Random(self.seed_rng.randrange(2**32))

    # ------------------------------------------------------------------ #
    # Factories
    # ------------------------------------------------------------------ #
    def _make_plant(self, species: PlantSpecies, x: float, y: float, seed: int) -> PlantAgent:
        return PlantAgent(species, x, y, seed=seed)

    def _make_herbivore(self, x: float, y: float, seed: int) -> HerbivoreAgent:
        return HerbivoreAgent(x, y, species=self.config.herbivore, seed=seed)

    def _make_carnivore(self, sex: Sex, x: float, y: float, seed: int) -> CarnivoreAgent:
        return CarnivoreAgent(x, y, sex=sex, species=self.config.carnivore, seed=seed)

    def make_agent(self, kind: AgentKind, x: float, y: float, *, seed: int | None = None, sex: Sex = Sex.MALE) -> MetabolicAgent:
        seed = seed if seed is not None else self.seed_rng.randrange(2**32)
        if kind is AgentKind.TREE:
            return self._make_plant(self.config.tree, x, y, seed)
        if kind is AgentKind.GRASS:
            return self._make_plant(self.config.grass, x, y, seed)
        if kind is AgentKind.HERBIVORE:
            return self._make_herbivore(x, y, seed)
        return self._make_carnivore(sex, x, y, seed)

    def add_agent(self, agent: MetabolicAgent) -> MetabolicAgent:
        self.ecosystem.add(agent)
        self.agent_seeds[agent.id] = agent.seed
        if agent.kind is AgentKind.CARNIVORE:
            self._carnivores_seen = True
        return agent

    def _populate(self) -> None:
        initial = self.config.initial
        plan = (
            [(AgentKind.TREE, Sex.MALE)] * initial.trees
            + [(AgentKind.GRASS, Sex.MALE)] * initial.grass
            + [(AgentKind.HERBIVORE, Sex.MALE)] * initial.herbivores
            + [(AgentKind.CARNIVORE, Sex.MALE)] * initial.male_carnivores
            + [(AgentKind.CARNIVORE, Sex.FEMALE)] * initial.female_carnivores
        )
        for kind, sex in plan:
            x, y = self.habitat.random_habitable_point(self.seed_rng)
            self.add_agent(self.make_agent(kind, x, y, sex=sex))
        logger.info("Initial population: %s", self.ecosystem.counts())

    # ------------------------------------------------------------------ #
    # Manual controls
    # ------------------------------------------------------------------ #
    def spawn_plant(self, kind: AgentKind = AgentKind.GRASS, x: float | None = None, y: float | None = None) -> PlantAgent:
        if x is None or y is None:
            x, y = self.habitat.random_habitable_point(self.seed_rng)
        x, y = self.habitat.clamp_to_habitable(x, y)
        return self.add_agent(self.make_agent(kind, x, y))

    def spawn_herbivore(self, x: float | None = None, y: float | None = None) -> HerbivoreAgent:
        child = self.herbivore_reproduction.spawn_immediate(x, y)
        self.agent_seeds[child.id] = child.seed
        return child

    def spawn_carnivore(self, sex: Sex = Sex.MALE, x: float | None = None, y: float | None = None) -> CarnivoreAgent:
        if x is None or y is None:
            x, y = self.habitat.random_habitable_point(self.seed_rng)
        x, y = self.habitat.clamp_to_habitable(x, y)
        return self.add_agent(self.make_agent(AgentKind.CARNIVORE, x, y, sex=sex))

    def add_co2_spike(self, moles: float) -> bool:
        return self.ledger.add_spike(moles, Gas.CARBON_DIOXIDE)

    def set_speed(self, speed: int) -> bool:
        if speed not in SPEED_LEVELS:
            logger.warning("Unsupported speed %r; expected one of %s", speed, SPEED_LEVELS)
            return False
        self.speed = speed
        self.clock.set_speed(speed)
        self.ledger.speed_multiplier = float(speed)
        logger.info("Simulation speed set to %dx", speed)
        return True

    # ------------------------------------------------------------------ #
    # Logging / replay
    # ------------------------------------------------------------------ #
    def _append_trajectory_log(self) -> None:
        """Persist a machine-readable record of this tick's state."""

        snapshot = self.stats.latest_as_dict()
        if snapshot is None:
            return

        record = {
            "tick": self.tick,
            "base_seed": self.base_seed,
            "snapshot": snapshot,
        }

        with open(self.trajectory_log_path, "a", encoding="utf-8") as f:
            json.dump(record, f)
            f.write("\n")

    def seed_manifest(self) -> dict:
        """Expose the seeds used for the run for offline replay."""

        return {
            "base_seed": self.base_seed,
            "agent_seeds": dict(self.agent_seeds),
        }

    def _on_status_change(self, previous: EnvironmentalStatus, current: EnvironmentalStatus, percentages: dict) -> None:
        self.status_events.append((self.tick, previous.label, current.label))
        if self.telemetry is not None:
            self.telemetry.log_status_change(
                self.tick,
                previous.label,
                current.label,
                percentages[Gas.OXYGEN],
                percentages[Gas.CARBON_DIOXIDE],
            )

    # ------------------------------------------------------------------ #
    # Simulation step
    # ------------------------------------------------------------------ #
    def step(self, dt: float | None = None) -> None:
        dt = self.config.dt if dt is None else dt
        if dt <= 0:
            return

        self.tick += 1
        self.elapsed += dt

        self.clock.advance(dt)

        for agent in list(self.ecosystem.agents):
            agent.update(dt)

        self.ledger.tick(dt)

        self.grass_respawner.update(dt)
        self.breeding.update(dt)
        self.scheduler.advance(dt)

        births, deaths = self.ecosystem.drain_events()
        for agent in births:
            self.agent_seeds[agent.id] = agent.seed
        self.ecosystem.prune()

        snapshot = self.stats.update(
            self.tick,
            self.elapsed,
            self.ecosystem.agents,
            self.ledger,
            self.clock,
            births=len(births),
            deaths=len(deaths),
            pending_respawns=self.grass_respawner.pending,
        )
        self._births_since_snapshot += len(births)
        self._deaths_since_snapshot += len(deaths)

        if self.telemetry is not None:
            self.telemetry.log_deaths(DeathEvent.from_agent(self.tick, a) for a in deaths)
            if self.telemetry.should_snapshot(self.tick):
                self.telemetry.record_snapshot(
                    dataclasses.replace(
                        snapshot,
                        births=self._births_since_snapshot,
                        deaths=self._deaths_since_snapshot,
                    ),
                    self.ecosystem.agents,
                )
                self._births_since_snapshot = 0
                self._deaths_since_snapshot = 0

        if self.trajectory_log_path is not None:
            self._append_trajectory_log()

        self._check_collapse()

    def _check_collapse(self) -> None:
        if self.collapsed:
            return
        if self.ecosystem.count(AgentKind.CARNIVORE) > 0:
            self._carnivores_seen = True
            return
        if self._carnivores_seen:
            self.collapsed = True
            self.collapse_tick = self.tick
            logger.warning(
                "All carnivores have died (day %d, %02d:%02d); ecosystem collapsed",
                self.clock.day,
                self.clock.hours,
                self.clock.minutes,
            )

    def run(self, steps: int, dt: float | None = None) -> int:
        """Advance up to ``steps`` ticks; returns how many actually ran."""
        ran = 0
        for _ in range(steps):
            if self.collapsed and self.config.stop_on_collapse:
                break
            self.step(dt)
            ran += 1
        return ran

    def close(self) -> None:
        if self.telemetry is not None:
            self.telemetry.close()


__all__ = ["SPEED_LEVELS", "Simulation"]
