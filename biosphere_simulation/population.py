"""
Population feedback loops.

* ``ResourceRespawner``: grass that dies is queued and replanted one at a
  time, at most once per ``respawn_interval``.
* ``ReproductionController``: population-balance births for one agent kind,
  placed between two random living parents.
* ``BreedingController``: sexed pairing for carnivores, once per in-sim day.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from .agents.base import AgentKind, MetabolicAgent
from .agents.carnivore import CarnivoreAgent, Sex
from .agents.plant import PlantAgent
from .config import PlantSpecies, PopulationConfig
from .ecosystem import Ecosystem

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Plant respawn
# ------------------------------------------------------------------ #
class ResourceRespawner:
    def __init__(
        self,
        ecosystem: Ecosystem,
        species: PlantSpecies,
        *,
        respawn_interval: float = 5.0,
        rng: random.Random | None = None,
    ) -> None:
        self.ecosystem = ecosystem
        self.species = species
        self.kind = AgentKind.GRASS if species.name == AgentKind.GRASS.value else AgentKind.TREE
        self.respawn_interval = max(0.0, respawn_interval)
        self.rng = rng or random.Random()
        self.pending = 0
        self.spawned = 0
        self._timer = 0.0

    def on_agent_death(self, agent: MetabolicAgent) -> None:
        if agent.kind is self.kind:
            self.pending += 1
            logger.debug("%s gone; %d %s respawn(s) pending", agent.name, self.pending, self.kind.value)

    def update(self, dt: float) -> PlantAgent | None:
        if self.pending <= 0:
            self._timer = 0.0
            return None

        self._timer += dt
        if self._timer < self.respawn_interval:
            return None
        self._timer = 0.0

        habitat = self.ecosystem.habitat
        x, y = habitat.random_habitable_point(self.rng)
        if not habitat.is_habitable(x, y):
            logger.debug("No habitable spot found for %s; will retry", self.kind.value)
            return None

        self.spawned += 1
        plant = PlantAgent(
            self.species,
            x,
            y,
            name=f"{self.kind.value.title()}(respawn {self.spawned})",
            seed=self.rng.randrange(2**32),
        )
        self.ecosystem.add(plant, birth=True)
        self.pending -= 1
        logger.info("Respawned %s at (%.1f, %.1f); %d pending", plant.name, x, y, self.pending)
        return plant


# ------------------------------------------------------------------ #
# Population-balance reproduction
# ------------------------------------------------------------------ #
AgentFactory = Callable[[float, float, int], MetabolicAgent]


class ReproductionController:
    def __init__(
        self,
        ecosystem: Ecosystem,
        kind: AgentKind,
        factory: AgentFactory,
        *,
        max_population: int = 10,
        parents_required: int = 2,
        spawn_offset: float = 1.0,
        newborn_hunger_fraction: float = 0.8,
        newborn_biomass_fraction: float = 0.5,
        rng: random.Random | None = None,
    ) -> None:
        self.ecosystem = ecosystem
        self.kind = kind
        self.factory = factory
        self.max_population = max_population
        self.parents_required = max(2, parents_required)
        self.spawn_offset = spawn_offset
        self.newborn_hunger_fraction = newborn_hunger_fraction
        self.newborn_biomass_fraction = newborn_biomass_fraction
        self.rng = rng or random.Random()
        self.births = 0

    def trigger(self) -> MetabolicAgent | None:
        """Automatic reproduction; respects the population cap."""
        population = self.ecosystem.count(self.kind)
        if population >= self.max_population:
            logger.debug("%s reproduction suppressed at cap (%d)", self.kind.value, population)
            return None

        living = self.ecosystem.living(self.kind)
        if len(living) < self.parents_required:
            logger.debug("Not enough %s parents (%d)", self.kind.value, len(living))
            return None

        a, b = self.rng.sample(living, 2)
        x = (a.x + b.x) / 2.0 + self.rng.uniform(-self.spawn_offset, self.spawn_offset)
        y = (a.y + b.y) / 2.0 + self.rng.uniform(-self.spawn_offset, self.spawn_offset)
        child = self._spawn(x, y)
        logger.info("%s born to %s and %s", child.name, a.name, b.name)
        return child

    def spawn_immediate(self, x: float | None = None, y: float | None = None) -> MetabolicAgent:
        """Manual spawn: ignores the cap and the parent requirement."""
        if x is None or y is None:
            x, y = self.ecosystem.habitat.random_habitable_point(self.rng)
        child = self._spawn(x, y)
        logger.info("Spawned %s on request", child.name)
        return child

    def _spawn(self, x: float, y: float) -> MetabolicAgent:
        x, y = self.ecosystem.habitat.clamp_to_habitable(x, y)
        child = self.factory(x, y, self.rng.randrange(2**32))
        child.biomass = child.max_biomass * self.newborn_biomass_fraction
        if hasattr(child, "hunger"):
            child.hunger = child.max_hunger * self.newborn_hunger_fraction
        self.ecosystem.add(child, birth=True)
        self.births += 1
        return child


# ------------------------------------------------------------------ #
# Sexed breeding
# ------------------------------------------------------------------ #
CarnivoreFactory = Callable[[Sex, float, float, int], CarnivoreAgent]


class BreedingController:
    def __init__(
        self,
        ecosystem: Ecosystem,
        factory: CarnivoreFactory,
        config: PopulationConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        cfg = config or PopulationConfig()
        self.ecosystem = ecosystem
        self.factory = factory
        self.max_population = cfg.max_carnivores
        self.max_per_sex = cfg.max_per_sex
        self.breeding_distance = cfg.breeding_distance
        self.seeking_duration = cfg.seeking_duration
        self.birth_jitter = cfg.birth_jitter
        self.rng = rng or random.Random()

        self.seeker: CarnivoreAgent | None = None
        self.target: CarnivoreAgent | None = None
        self.elapsed = 0.0
        self.births = 0
        self._last_day: int | None = None

    @property
    def active(self) -> bool:
        return self.seeker is not None

    def _living_by_sex(self) -> dict[Sex, list[CarnivoreAgent]]:
        groups: dict[Sex, list[CarnivoreAgent]] = {Sex.MALE: [], Sex.FEMALE: []}
        for agent in self.ecosystem.living(AgentKind.CARNIVORE):
            groups[agent.sex].append(agent)
        return groups

    def update(self, dt: float) -> CarnivoreAgent | None:
        clock = self.ecosystem.clock
        if clock is not None and clock.day != self._last_day:
            self._last_day = clock.day
            if not self.active:
                self.start_pairing()

        if not self.active:
            return None
        return self._check_pair(dt)

    def start_pairing(self) -> bool:
        groups = self._living_by_sex()
        total = len(groups[Sex.MALE]) + len(groups[Sex.FEMALE])
        if total >= self.max_population:
            logger.debug("Carnivore population at cap (%d); no pairing today", total)
            return False
        if not groups[Sex.MALE] or not groups[Sex.FEMALE]:
            logger.debug("No breeding pair available")
            return False

        self.seeker = self.rng.choice(groups[Sex.MALE])
        self.target = self.rng.choice(groups[Sex.FEMALE])
        self.seeker.mate = self.target
        self.elapsed = 0.0
        logger.info("%s is seeking %s", self.seeker.name, self.target.name)
        return True

    def _check_pair(self, dt: float) -> CarnivoreAgent | None:
        seeker, target = self.seeker, self.target
        self.elapsed += dt

        if not seeker.is_alive() or not target.is_alive():
            logger.info("Breeding pair broken by death")
            self.clear()
            return None
        if seeker.mate is not target:
            logger.debug("%s abandoned mate seeking", seeker.name)
            self.clear()
            return None

        if seeker.distance_to(target) <= self.breeding_distance:
            child = self._breed(seeker, target)
            self.clear()
            return child

        if self.elapsed >= self.seeking_duration:
            logger.info("%s gave up seeking %s", seeker.name, target.name)
            self.clear()
        return None

    def _offspring_sex(self) -> Sex | None:
        groups = self._living_by_sex()
        males, females = len(groups[Sex.MALE]), len(groups[Sex.FEMALE])
        if males + females >= self.max_population:
            return None
        preferred = Sex.MALE if males <= females else Sex.FEMALE
        other = Sex.FEMALE if preferred is Sex.MALE else Sex.MALE
        counts = {Sex.MALE: males, Sex.FEMALE: females}
        if counts[preferred] < self.max_per_sex:
            return preferred
        if counts[other] < self.max_per_sex:
            return other
        return None

    def _breed(self, a: CarnivoreAgent, b: CarnivoreAgent) -> CarnivoreAgent | None:
        sex = self._offspring_sex()
        if sex is None:
            logger.info("Carnivore caps reached; %s and %s did not breed", a.name, b.name)
            return None
        x = (a.x + b.x) / 2.0 + self.rng.uniform(-self.birth_jitter, self.birth_jitter)
        y = (a.y + b.y) / 2.0 + self.rng.uniform(-self.birth_jitter, self.birth_jitter)
        x, y = self.ecosystem.habitat.clamp_to_habitable(x, y)
        child = self.factory(sex, x, y, self.rng.randrange(2**32))
        self.ecosystem.add(child, birth=True)
        self.births += 1
        logger.info("%s (%s) born to %s and %s", child.name, sex.value, a.name, b.name)
        return child

    def clear(self) -> None:
        if self.seeker is not None and self.seeker.mate is self.target:
            self.seeker.mate = None
        self.seeker = None
        self.target = None
        self.elapsed = 0.0


__all__ = ["BreedingController", "ReproductionController", "ResourceRespawner"]
