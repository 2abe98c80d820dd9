from __future__ import annotations

import logging
import math

from ..config import HerbivoreSpecies
from .base import Activity, AgentKind
from .consumer import ConsumerAgent
from .plant import PlantAgent

logger = logging.getLogger(__name__)


class HerbivoreAgent(ConsumerAgent):
    """
    Grazer. Sleeps through the night unless hungry, runs from carnivores that
    are hunting it, forages for grass when hunger drops below half and wanders
    otherwise.
    """

    kind = AgentKind.HERBIVORE

    def __init__(
        self,
        x: float,
        y: float,
        *,
        species: HerbivoreSpecies | None = None,
        biomass: float | None = None,
        hunger: float | None = None,
        name: str | None = None,
        seed: int | None = None,
    ) -> None:
        super().__init__(
            species or HerbivoreSpecies(),
            x,
            y,
            biomass=biomass,
            hunger=hunger,
            name=name,
            seed=seed,
        )
        self.food_kinds = tuple(AgentKind(k) for k in self.species.food_kinds)
        self.target_plant: PlantAgent | None = None
        self.night_timer = 0.0
        self.rest_timer = 0.0
        self.meals = 0

    # ------------------------------------------------------------------ #
    # Behaviour
    # ------------------------------------------------------------------ #
    def behave(self, dt: float) -> None:
        if self.should_sleep():
            self.activity = Activity.SLEEPING
            self.target_plant = None
            self.night_timer = 0.0
            return

        threat = self._nearest_threat()
        if threat is not None:
            self._flee(threat, dt)
            return

        if self.clock.is_night:
            self._night_breeding(dt)

        if self.hunger_fraction < self.species.forage_threshold:
            self._forage(dt)
        else:
            self.target_plant = None
            if self.wander_target is None and self.activity is Activity.RESTING:
                self.rest_timer += dt
                if self.rest_timer < self.species.wander_interval:
                    return
                self.rest_timer = 0.0
            self.activity = Activity.WALKING
            if self._wander(dt):
                self.activity = Activity.RESTING

    def _night_breeding(self, dt: float) -> None:
        # Hungry animals awake at night nudge the population upward.
        self.night_timer += dt
        if self.night_timer < self.species.night_breeding_interval:
            return
        self.night_timer = 0.0
        if self.rng.random() < self.species.night_breeding_chance:
            logger.info("%s awake and hungry at night; requesting reproduction", self.name)
            self.world.request_reproduction(AgentKind.HERBIVORE)

    # ------------------------------------------------------------------ #
    # Predators
    # ------------------------------------------------------------------ #
    def _nearest_threat(self):
        radius = self.species.flee_radius
        if radius <= 0:
            return None
        return self.world.nearest_living(
            self.x,
            self.y,
            (AgentKind.CARNIVORE,),
            radius=radius,
            predicate=lambda c: c.is_hunting(self),
        )

    def _flee(self, predator, dt: float) -> None:
        self.activity = Activity.FLEEING
        self.target_plant = None
        self.wander_target = None
        dx = self.x - predator.x
        dy = self.y - predator.y
        dist = math.hypot(dx, dy)
        if dist == 0.0:
            angle = self.rng.uniform(0.0, 2.0 * math.pi)
            dx, dy, dist = math.cos(angle), math.sin(angle), 1.0
        speed = self.species.move_speed * self.species.flee_speed_multiplier
        tx = self.x + dx / dist * speed * dt
        ty = self.y + dy / dist * speed * dt
        self._move_towards(tx, ty, speed, dt)

    # ------------------------------------------------------------------ #
    # Foraging
    # ------------------------------------------------------------------ #
    def _edible(self, plant: PlantAgent) -> bool:
        return plant.is_alive() and plant.biomass > self.species.min_plant_biomass

    def find_plant(self) -> PlantAgent | None:
        return self.world.nearest_living(
            self.x,
            self.y,
            self.food_kinds,
            radius=self.species.search_radius,
            predicate=self._edible,
        )

    def _forage(self, dt: float) -> None:
        plant = self.target_plant
        if plant is not None and not self._edible(plant):
            # Eaten out or died under us; look again.
            plant = self.target_plant = None

        if plant is None:
            if self._search_due(dt):
                plant = self.target_plant = self.find_plant()
                if plant is not None:
                    logger.debug("%s targets %s", self.name, plant.name)
            if plant is None:
                self.activity = Activity.WALKING
                self._wander(dt)
                return

        if self.distance_to(plant) <= self.species.eating_range:
            self.activity = Activity.GRAZING
            self.graze(plant)
        else:
            self.activity = Activity.WALKING
            self._move_towards(plant.x, plant.y, self.species.move_speed, dt)

    def graze(self, plant: PlantAgent) -> float:
        """Take one bite from ``plant``; returns the biomass removed from it."""
        if not self._edible(plant):
            self.target_plant = None
            return 0.0
        taken = plant.take_bite(self.species.eating_amount)
        self.biomass = self.biomass + taken * self.species.trophic_efficiency
        self.hunger = self.hunger + self.species.hunger_per_bite
        self.target_plant = None
        self.meals += 1
        logger.debug(
            "%s grazed %.2f kg from %s (hunger %.0f/%.0f)",
            self.name,
            taken,
            plant.name,
            self.hunger,
            self.max_hunger,
        )
        return taken


__all__ = ["HerbivoreAgent"]
