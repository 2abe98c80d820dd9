from __future__ import annotations

import logging
from enum import Enum

from ..config import CarnivoreSpecies
from .base import Activity, AgentKind
from .consumer import ConsumerAgent

logger = logging.getLogger(__name__)


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class CarnivoreAgent(ConsumerAgent):
    """
    Top predator (human-equivalent).

    Priority order each tick: sleep at night (unless hunger forces it awake),
    hunt when hungry, walk toward an assigned mate, otherwise potter about
    alternating walking with a dwell spent working or resting. Hunting always
    cancels mate seeking.
    """

    kind = AgentKind.CARNIVORE

    def __init__(
        self,
        x: float,
        y: float,
        *,
        sex: Sex = Sex.MALE,
        species: CarnivoreSpecies | None = None,
        biomass: float | None = None,
        hunger: float | None = None,
        name: str | None = None,
        seed: int | None = None,
    ) -> None:
        self.sex = Sex(sex)
        super().__init__(
            species or CarnivoreSpecies(),
            x,
            y,
            biomass=biomass,
            hunger=hunger,
            name=name,
            seed=seed,
        )
        self.prey = None
        self.mate: CarnivoreAgent | None = None
        self.dwell_timer = 0.0
        self.kills = 0

    def is_hunting(self, agent) -> bool:
        return self.alive and self.activity is Activity.HUNTING and self.prey is agent

    # ------------------------------------------------------------------ #
    # Behaviour
    # ------------------------------------------------------------------ #
    def behave(self, dt: float) -> None:
        if self.should_sleep():
            self.activity = Activity.SLEEPING
            self.prey = None
            return

        if self.hunger_fraction < self.species.hunt_threshold:
            if self.mate is not None:
                logger.debug("%s stops seeking %s to hunt", self.name, self.mate.name)
                self.mate = None
            self._hunt(dt)
            return

        self.prey = None
        if self.mate is not None:
            if self.mate.is_alive():
                self.activity = Activity.WALKING
                self._move_towards(self.mate.x, self.mate.y, self.species.move_speed, dt)
                return
            self.mate = None

        self._idle(dt)

    def _idle(self, dt: float) -> None:
        if self.dwell_timer > 0.0:
            self.dwell_timer = max(0.0, self.dwell_timer - dt)
            return

        self.activity = Activity.WALKING
        if self._wander(dt):
            self.dwell_timer = self.species.dwell_time
            if self.rng.random() < self.species.work_probability:
                self.activity = Activity.WORKING
            else:
                self.activity = Activity.RESTING

    # ------------------------------------------------------------------ #
    # Hunting
    # ------------------------------------------------------------------ #
    def find_prey(self):
        return self.world.nearest_living(
            self.x,
            self.y,
            (AgentKind.HERBIVORE,),
            radius=self.species.search_radius,
        )

    def _hunt(self, dt: float) -> None:
        self.activity = Activity.HUNTING
        self.dwell_timer = 0.0
        speed = self.species.move_speed * self.species.hunt_speed_multiplier

        prey = self.prey
        if prey is not None and not prey.is_alive():
            # Taken by someone else or starved; search again.
            prey = self.prey = None

        if prey is None:
            if self._search_due(dt):
                prey = self.prey = self.find_prey()
                if prey is not None:
                    logger.debug("%s hunting %s", self.name, prey.name)
            if prey is None:
                self._wander(dt, speed)
                return

        if self.distance_to(prey) <= self.species.eating_range:
            self.eat(prey)
        else:
            self._move_towards(prey.x, prey.y, speed, dt)

    def eat(self, prey) -> float:
        """Kill and eat ``prey``; returns biomass gained."""
        if prey is None or not prey.is_alive():
            self.prey = None
            return 0.0

        taken = prey.biomass
        prey.kill("predation")
        gained = taken * self.species.trophic_efficiency
        self.biomass = self.biomass + gained
        self.hunger = self.hunger + self.species.hunger_per_prey
        self.prey = None
        self.kills += 1
        logger.info("%s ate %s, gained %.1f kg (hunger %.0f)", self.name, prey.name, gained, self.hunger)

        world = self.world
        if world is not None:
            world.scheduler.schedule(
                self.species.reproduction_delay,
                lambda: world.request_reproduction(AgentKind.HERBIVORE),
                label="herbivore reproduction after kill",
            )
        return gained


__all__ = ["CarnivoreAgent", "Sex"]
