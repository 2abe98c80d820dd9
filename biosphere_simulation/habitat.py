from __future__ import annotations

import logging
import random

from .config import HabitatConfig

logger = logging.getLogger(__name__)


class Habitat:
    """
    Rectangular island world: an ocean band along the bottom edge and land
    everywhere above it (plus a small shore buffer). Agents only ever live on
    land; this is the only place terrain geometry is computed.
    """

    def __init__(self, config: HabitatConfig | None = None) -> None:
        self.config = config or HabitatConfig()
        self.width = float(self.config.width)
        self.height = float(self.config.height)

        fraction = self.config.ocean_fraction
        if not 0.0 <= fraction < 1.0:
            logger.warning("Ocean fraction %r out of range; using 0.2", fraction)
            fraction = 0.2
        self.ocean_top = self.height * fraction
        self.land_min_y = min(self.ocean_top + max(0.0, self.config.shore_buffer), self.height)
        self.spawn_attempts = max(1, int(self.config.spawn_attempts))

    @property
    def size(self) -> tuple[float, float]:
        return self.width, self.height

    def is_habitable(self, x: float, y: float) -> bool:
        return 0.0 <= x <= self.width and self.land_min_y <= y <= self.height

    def clamp_to_habitable(self, x: float, y: float) -> tuple[float, float]:
        return (
            max(0.0, min(self.width, x)),
            max(self.land_min_y, min(self.height, y)),
        )

    def random_habitable_point(self, rng: random.Random | None = None) -> tuple[float, float]:
        """Sample the whole world until a land point comes up.

        After ``spawn_attempts`` misses the last sample is clamped onto land,
        so a point is always returned.
        """
        rng = rng or random
        x = y = 0.0
        for _ in range(self.spawn_attempts):
            x = rng.uniform(0.0, self.width)
            y = rng.uniform(0.0, self.height)
            if self.is_habitable(x, y):
                return x, y
        return self.clamp_to_habitable(x, y)


__all__ = ["Habitat"]
