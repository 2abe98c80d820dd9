from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..ecosystem import Ecosystem

logger = logging.getLogger(__name__)


class AgentKind(str, Enum):
    TREE = "tree"
    GRASS = "grass"
    HERBIVORE = "herbivore"
    CARNIVORE = "carnivore"


PLANT_KINDS = frozenset({AgentKind.TREE, AgentKind.GRASS})


class Activity(str, Enum):
    SLEEPING = "sleeping"
    RESTING = "resting"
    GRAZING = "grazing"
    WALKING = "walking"
    FLEEING = "fleeing"
    WORKING = "working"
    HUNTING = "hunting"


class MetabolicAgent:
    """
    Anything that exchanges gas with the shared atmosphere.

    The ledger only relies on three calls: ``is_alive()``,
    ``current_o2_rate()`` and ``current_co2_rate()`` (mol/s, positive means
    the gas is added to the air). Rates are recomputed from the agent's
    current fields every time they are asked for.

    Agents reach the clock, ledger, habitat and scheduler through ``world``,
    which the ecosystem sets when the agent is added. An agent without a world
    (or whose world has no clock) contributes nothing and skips its update.
    """

    # Class-level ID counter
    _next_id = 0

    kind: AgentKind

    def __init__(
        self,
        x: float,
        y: float,
        *,
        biomass: float,
        min_biomass: float,
        max_biomass: float,
        name: str | None = None,
        seed: int | None = None,
        metabolism_scale: float = 1.0,
    ) -> None:
        self.id = MetabolicAgent._next_id
        MetabolicAgent._next_id += 1
        self.name = name or f"{self.kind.value.title()}({self.id})"

        self.seed = seed if seed is not None else random.randrange(2**32)
        self.rng = random.Random(self.seed)

        self.x = float(x)
        self.y = float(y)
        self.age = 0.0
        self.alive = True
        self.death_info: dict | None = None

        self.min_biomass = float(min_biomass)
        self.max_biomass = max(float(max_biomass), self.min_biomass)
        self._biomass = 0.0
        self.biomass = biomass

        self.metabolism_scale = metabolism_scale
        self.world: Ecosystem | None = None

    # ------------------------------------------------------------------ #
    # Clamped state
    # ------------------------------------------------------------------ #
    @property
    def biomass(self) -> float:
        return self._biomass

    @biomass.setter
    def biomass(self, value: float) -> None:
        self._biomass = max(self.min_biomass, min(self.max_biomass, float(value)))

    # ------------------------------------------------------------------ #
    # Ledger capability
    # ------------------------------------------------------------------ #
    def is_alive(self) -> bool:
        return self.alive

    def current_o2_rate(self) -> float:
        raise NotImplementedError

    def current_co2_rate(self) -> float:
        raise NotImplementedError

    def update(self, dt: float) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------ #
    # Collaborators
    # ------------------------------------------------------------------ #
    @property
    def clock(self):
        return self.world.clock if self.world is not None else None

    def distance_to(self, other: "MetabolicAgent") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def _move_towards(self, tx: float, ty: float, speed: float, dt: float) -> bool:
        """Kinematic step toward (tx, ty); returns True once there."""
        dx = tx - self.x
        dy = ty - self.y
        dist = math.hypot(dx, dy)
        step = speed * dt
        if dist <= step or dist == 0.0:
            self.x, self.y = tx, ty
        else:
            self.x += dx / dist * step
            self.y += dy / dist * step
        if self.world is not None:
            self.x, self.y = self.world.habitat.clamp_to_habitable(self.x, self.y)
        return dist <= step

    # ------------------------------------------------------------------ #
    # Death
    # ------------------------------------------------------------------ #
    def kill(self, cause: str) -> None:
        self._mark_dead(cause)

    def _mark_dead(self, cause: str) -> None:
        if not self.alive:
            return

        self.death_info = {
            "cause": cause,
            "age": self.age,
            "biomass": self.biomass,
            "x": self.x,
            "y": self.y,
        }
        self.alive = False

        if self.world is not None:
            self.world.notify_death(self)
        logger.debug("%s died (%s) at age %.1fs", self.name, cause, self.age)

    def __repr__(self) -> str:
        state = "alive" if self.alive else "dead"
        return f"{type(self).__name__}({self.name}, biomass={self.biomass:.2f}, {state})"


__all__ = ["Activity", "AgentKind", "MetabolicAgent", "PLANT_KINDS"]
