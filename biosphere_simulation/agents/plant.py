from __future__ import annotations

import logging

from ..config import PlantSpecies, grass_species, tree_species
from .base import AgentKind, MetabolicAgent

logger = logging.getLogger(__name__)


class PlantAgent(MetabolicAgent):
    """
    Producer (tree or grass).

    Per tick, with local temperature T and photosynthetic efficiency E:

        R_total = r_base * q10 ** ((T - 20) / 10) * biomass
        P_gross = p_max * E * biomass
        P_net   = P_gross - R_total

    Biomass grows by ``P_net * dt`` and the plant releases ``P_net`` mol/s of
    O2 while taking up the same amount of CO2. Canopy plants sit warmer than
    the ground: the local temperature is the air temperature plus
    ``2 * vertical_layer`` degrees.
    """

    LAYER_TEMPERATURE_OFFSET = 2.0  # degrees C at the top of the canopy

    def __init__(
        self,
        species: PlantSpecies,
        x: float,
        y: float,
        *,
        biomass: float | None = None,
        name: str | None = None,
        seed: int | None = None,
    ) -> None:
        self.species = species
        self.kind = AgentKind.GRASS if species.name == AgentKind.GRASS.value else AgentKind.TREE
        super().__init__(
            x,
            y,
            biomass=species.initial_biomass if biomass is None else biomass,
            min_biomass=species.min_biomass,
            max_biomass=species.max_biomass,
            name=name,
            seed=seed,
            metabolism_scale=species.metabolism_scale,
        )
        self.r_base = species.r_base
        self.q10 = species.q10
        self.p_max = species.p_max
        self.vertical_layer = max(0.0, min(1.0, species.vertical_layer))
        self.enable_death = species.enable_death

    @classmethod
    def tree(cls, x: float, y: float, **kwargs) -> "PlantAgent":
        return cls(tree_species(), x, y, **kwargs)

    @classmethod
    def grass(cls, x: float, y: float, **kwargs) -> "PlantAgent":
        return cls(grass_species(), x, y, **kwargs)

    # ------------------------------------------------------------------ #
    # Metabolism
    # ------------------------------------------------------------------ #
    def local_temperature(self, air_temperature: float) -> float:
        return air_temperature + self.vertical_layer * self.LAYER_TEMPERATURE_OFFSET

    def respiration_at(self, temperature: float) -> float:
        return self.r_base * self.q10 ** ((temperature - 20.0) / 10.0) * self.biomass

    def photosynthesis_at(self, efficiency: float) -> float:
        return self.p_max * efficiency * self.biomass

    def net_production(self, temperature: float, efficiency: float) -> float:
        return self.photosynthesis_at(efficiency) - self.respiration_at(temperature)

    def _environment(self) -> tuple[float, float] | None:
        clock = self.clock
        if clock is None:
            return None
        return self.local_temperature(clock.temperature), clock.photosynthetic_efficiency

    def gas_components(self) -> tuple[float, float]:
        """(photosynthesis, respiration) in mol/s, both as positive numbers."""
        env = self._environment()
        if not self.alive or env is None:
            return 0.0, 0.0
        temperature, efficiency = env
        scale = self.metabolism_scale
        return self.photosynthesis_at(efficiency) * scale, self.respiration_at(temperature) * scale

    def current_o2_rate(self) -> float:
        photosynthesis, respiration = self.gas_components()
        return photosynthesis - respiration

    def current_co2_rate(self) -> float:
        return -self.current_o2_rate()

    def step(self, dt: float, temperature: float, efficiency: float) -> None:
        """Advance biomass under explicit conditions (no clock needed)."""
        if not self.alive:
            return
        self.age += dt
        self.biomass = self.biomass + self.net_production(temperature, efficiency) * dt
        if self.enable_death and self.biomass <= self.min_biomass:
            logger.debug("%s respired down to %.2f kg and died", self.name, self.biomass)
            self._mark_dead("respiration")

    def update(self, dt: float) -> None:
        env = self._environment()
        if env is None:
            return
        self.step(dt, *env)

    # ------------------------------------------------------------------ #
    # Being eaten
    # ------------------------------------------------------------------ #
    def take_bite(self, amount: float) -> float:
        """Remove up to ``amount`` kg and return what was actually taken."""
        if not self.alive or amount <= 0:
            return 0.0
        before = self.biomass
        self.biomass = before - amount
        taken = before - self.biomass
        if self.enable_death and self.biomass <= self.min_biomass:
            logger.debug("%s grazed out", self.name)
            self._mark_dead("grazed")
        return taken


__all__ = ["PlantAgent"]
