# biosphere_simulation/stats.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable

import numpy as np

from .agents.base import PLANT_KINDS, AgentKind, MetabolicAgent
from .agents.carnivore import Sex
from .atmosphere import Gas, GasLedger
from .clock import EnvironmentClock


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


# ----------------------------------------------------------------------
# Per-tick ecosystem snapshot
# ----------------------------------------------------------------------
@dataclass
class StatsSnapshot:
    tick: int
    elapsed: float

    # Clock
    day: int
    hour: float
    phase: str
    temperature: float
    light_intensity: float

    # Atmosphere
    o2_percent: float
    co2_percent: float
    n2_percent: float
    ar_percent: float
    h2o_percent: float
    total_moles: float
    status: str

    # Populations
    trees: int
    grass: int
    herbivores: int
    carnivores: int
    males: int
    females: int

    # Physiology
    plant_biomass: float
    avg_herbivore_biomass: float
    avg_herbivore_hunger: float
    avg_carnivore_biomass: float
    avg_carnivore_hunger: float

    # Flow since the previous snapshot
    births: int
    deaths: int
    pending_respawns: int


# ----------------------------------------------------------------------
# History
# ----------------------------------------------------------------------
@dataclass
class EcosystemStats:
    """
    Rolling record of the ecosystem: atmosphere composition, head counts per
    kind and average consumer condition. Read-only view for UIs, telemetry
    and the trajectory log.
    """
    history: list[StatsSnapshot] = field(default_factory=list)
    max_history_len: int = 500

    latest: StatsSnapshot | None = None

    def latest_as_dict(self) -> dict | None:
        if self.latest is None:
            return None
        return asdict(self.latest)

    def update(
        self,
        tick: int,
        elapsed: float,
        agents: Iterable[MetabolicAgent],
        ledger: GasLedger,
        clock: EnvironmentClock,
        *,
        births: int = 0,
        deaths: int = 0,
        pending_respawns: int = 0,
    ) -> StatsSnapshot:
        alive = [a for a in agents if a.is_alive()]
        herbivores = [a for a in alive if a.kind is AgentKind.HERBIVORE]
        carnivores = [a for a in alive if a.kind is AgentKind.CARNIVORE]
        plants = [a for a in alive if a.kind in PLANT_KINDS]

        pct = ledger.percentages
        snapshot = StatsSnapshot(
            tick=tick,
            elapsed=elapsed,
            day=clock.day,
            hour=clock.clock_hour,
            phase=clock.phase.value,
            temperature=clock.temperature,
            light_intensity=clock.light_intensity,
            o2_percent=pct[Gas.OXYGEN],
            co2_percent=pct[Gas.CARBON_DIOXIDE],
            n2_percent=pct[Gas.NITROGEN],
            ar_percent=pct[Gas.ARGON],
            h2o_percent=pct[Gas.WATER_VAPOUR],
            total_moles=ledger.total_moles,
            status=ledger.status.label,
            trees=sum(1 for p in plants if p.kind is AgentKind.TREE),
            grass=sum(1 for p in plants if p.kind is AgentKind.GRASS),
            herbivores=len(herbivores),
            carnivores=len(carnivores),
            males=sum(1 for c in carnivores if c.sex is Sex.MALE),
            females=sum(1 for c in carnivores if c.sex is Sex.FEMALE),
            plant_biomass=float(np.sum([p.biomass for p in plants])) if plants else 0.0,
            avg_herbivore_biomass=_mean([h.biomass for h in herbivores]),
            avg_herbivore_hunger=_mean([h.hunger for h in herbivores]),
            avg_carnivore_biomass=_mean([c.biomass for c in carnivores]),
            avg_carnivore_hunger=_mean([c.hunger for c in carnivores]),
            births=births,
            deaths=deaths,
            pending_respawns=pending_respawns,
        )

        self.latest = snapshot
        self.history.append(snapshot)
        if len(self.history) > self.max_history_len:
            self.history.pop(0)
        return snapshot


__all__ = ["EcosystemStats", "StatsSnapshot"]
