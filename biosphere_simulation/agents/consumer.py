from __future__ import annotations

import logging
import math

from .base import Activity, MetabolicAgent

logger = logging.getLogger(__name__)


class ConsumerAgent(MetabolicAgent):
    """
    Shared machinery for animals: a hunger pool on top of biomass, activity
    states and the basal-metabolism formula

        M_total = bmr * biomass
                  * q10 ** ((T - 20) / 10)
                  * (1 + thermoreg_coefficient * |T - comfort|)
                  * activity_multiplier

    which is both the O2 consumed and the CO2 produced (mol/s).

    Hunger always burns (the engine is always running). Once it hits zero and
    the grace period has passed, biomass burns instead; biomass <= 0 is death.
    """

    HUNGER_MULTIPLIERS = {
        Activity.SLEEPING: 0.1,
        Activity.RESTING: 0.5,
    }
    STARVATION_SLEEP_MULTIPLIER = 0.1

    def __init__(
        self,
        species,
        x: float,
        y: float,
        *,
        biomass: float | None = None,
        hunger: float | None = None,
        name: str | None = None,
        seed: int | None = None,
    ) -> None:
        self.species = species
        super().__init__(
            x,
            y,
            biomass=species.initial_biomass if biomass is None else biomass,
            min_biomass=0.0,
            max_biomass=species.max_biomass,
            name=name,
            seed=seed,
            metabolism_scale=species.metabolism_scale,
        )
        self.max_hunger = float(species.max_hunger)
        self._hunger = 0.0
        self.hunger = species.initial_hunger if hunger is None else hunger

        self.activity = Activity.RESTING
        self.starvation_timer = 0.0
        self.search_timer = self.rng.uniform(0.0, max(species.search_interval, 0.0))
        self.wander_target: tuple[float, float] | None = None

    # ------------------------------------------------------------------ #
    # Hunger
    # ------------------------------------------------------------------ #
    @property
    def hunger(self) -> float:
        return self._hunger

    @hunger.setter
    def hunger(self, value: float) -> None:
        self._hunger = max(0.0, min(self.max_hunger, float(value)))

    @property
    def hunger_fraction(self) -> float:
        if self.max_hunger <= 0:
            return 0.0
        return self.hunger / self.max_hunger

    def burn_hunger(self, dt: float) -> None:
        multiplier = self.HUNGER_MULTIPLIERS.get(self.activity, 1.0)
        burn = self.species.hunger_depletion_rate * multiplier * dt

        if self.hunger > 0.0:
            self.starvation_timer = 0.0
            self.hunger = self.hunger - burn
            return

        self.starvation_timer += dt
        if self.starvation_timer < self.species.starvation_grace_period:
            return

        if self.activity is Activity.SLEEPING:
            burn *= self.STARVATION_SLEEP_MULTIPLIER
        self.biomass = self.biomass - burn * 0.5
        if self.biomass <= 0.0:
            logger.info("%s starved (age %.1f s)", self.name, self.age)
            self._mark_dead("starvation")

    # ------------------------------------------------------------------ #
    # Metabolism
    # ------------------------------------------------------------------ #
    def activity_multiplier(self) -> float:
        return self.species.activity_multipliers.get(self.activity.value, 1.0)

    def respiration_at(self, temperature: float) -> float:
        s = self.species
        m_base = s.bmr * self.biomass
        c_temp = s.q10 ** ((temperature - 20.0) / 10.0)
        c_thermoreg = 1.0 + s.thermoreg_coefficient * abs(temperature - s.comfort_temperature)
        return m_base * c_temp * c_thermoreg * self.activity_multiplier()

    def respiration_rate(self) -> float:
        clock = self.clock
        if not self.alive or clock is None:
            return 0.0
        return self.respiration_at(clock.temperature) * self.metabolism_scale

    def current_o2_rate(self) -> float:
        return -self.respiration_rate()

    def current_co2_rate(self) -> float:
        return self.respiration_rate()

    # ------------------------------------------------------------------ #
    # Shared behaviour
    # ------------------------------------------------------------------ #
    def should_sleep(self) -> bool:
        """Asleep at night unless hunger has fallen below the wake fraction."""
        clock = self.clock
        if clock is None or not clock.is_night:
            return False
        return self.hunger_fraction >= self.species.wake_fraction

    def _wander(self, dt: float, speed: float | None = None) -> bool:
        world = self.world
        if self.wander_target is None:
            radius = self.species.wander_radius
            angle = self.rng.uniform(0.0, 2.0 * math.pi)
            dist = self.rng.uniform(0.0, radius)
            tx = self.x + math.cos(angle) * dist
            ty = self.y + math.sin(angle) * dist
            if world is not None:
                tx, ty = world.habitat.clamp_to_habitable(tx, ty)
            self.wander_target = (tx, ty)

        arrived = self._move_towards(*self.wander_target, speed or self.species.move_speed, dt)
        if arrived:
            self.wander_target = None
        return arrived

    def _search_due(self, dt: float) -> bool:
        self.search_timer += dt
        if self.search_timer >= self.species.search_interval:
            self.search_timer = 0.0
            return True
        return False

    def update(self, dt: float) -> None:
        if not self.alive or self.clock is None:
            return
        self.age += dt
        self.burn_hunger(dt)
        if not self.alive:
            return
        self.behave(dt)

    def behave(self, dt: float) -> None:
        raise NotImplementedError


__all__ = ["ConsumerAgent"]
