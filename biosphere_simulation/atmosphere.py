"""
Shared atmosphere.

``GasLedger`` owns the five molar pools and is the only thing that writes to
them. Every tick it pulls the instantaneous O2/CO2 rate from each registered
agent, adds the ocean CO2 sink, integrates over ``dt`` and re-derives the
percentages and environmental status. Nitrogen and argon never change.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Callable

from .agents.base import PLANT_KINDS, AgentKind
from .config import AtmosphereConfig

logger = logging.getLogger(__name__)


class Gas(str, Enum):
    WATER_VAPOUR = "water_vapour"
    NITROGEN = "nitrogen"
    OXYGEN = "oxygen"
    ARGON = "argon"
    CARBON_DIOXIDE = "carbon_dioxide"


INERT_GASES = frozenset({Gas.NITROGEN, Gas.ARGON})


@dataclass
class GasPool:
    water_vapour: float = 4000.0
    nitrogen: float = 780800.0
    oxygen: float = 209500.0
    argon: float = 9300.0
    carbon_dioxide: float = 415.0

    @classmethod
    def from_config(cls, config: AtmosphereConfig) -> "GasPool":
        return cls(
            water_vapour=max(0.0, config.water_vapour),
            nitrogen=max(0.0, config.nitrogen),
            oxygen=max(0.0, config.oxygen),
            argon=max(0.0, config.argon),
            carbon_dioxide=max(0.0, config.carbon_dioxide),
        )

    @property
    def total(self) -> float:
        return self.water_vapour + self.nitrogen + self.oxygen + self.argon + self.carbon_dioxide

    def get(self, gas: Gas) -> float:
        return getattr(self, gas.value)

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


class EnvironmentalStatus(IntEnum):
    HEALTHY = 0
    WARNING = 1
    DANGER = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.title()


@dataclass(frozen=True)
class StatusThresholds:
    o2_warning: float = 19.0
    o2_danger: float = 15.0
    o2_critical: float = 10.0
    co2_warning: float = 0.1
    co2_danger: float = 0.5
    co2_critical: float = 5.0

    @classmethod
    def from_config(cls, config: AtmosphereConfig) -> "StatusThresholds":
        return cls(
            o2_warning=config.o2_warning,
            o2_danger=config.o2_danger,
            o2_critical=config.o2_critical,
            co2_warning=config.co2_warning,
            co2_danger=config.co2_danger,
            co2_critical=config.co2_critical,
        )


def percentages_of(pool: GasPool) -> dict[Gas, float]:
    total = pool.total
    if total <= 0:
        return {gas: 0.0 for gas in Gas}
    return {gas: pool.get(gas) / total * 100.0 for gas in Gas}


def status_of(percentages: dict[Gas, float], thresholds: StatusThresholds) -> EnvironmentalStatus:
    """Worse of the oxygen (low is bad) and CO2 (high is bad) readings."""
    o2 = percentages[Gas.OXYGEN]
    co2 = percentages[Gas.CARBON_DIOXIDE]

    if o2 < thresholds.o2_critical:
        o2_status = EnvironmentalStatus.CRITICAL
    elif o2 < thresholds.o2_danger:
        o2_status = EnvironmentalStatus.DANGER
    elif o2 < thresholds.o2_warning:
        o2_status = EnvironmentalStatus.WARNING
    else:
        o2_status = EnvironmentalStatus.HEALTHY

    if co2 > thresholds.co2_critical:
        co2_status = EnvironmentalStatus.CRITICAL
    elif co2 > thresholds.co2_danger:
        co2_status = EnvironmentalStatus.DANGER
    elif co2 > thresholds.co2_warning:
        co2_status = EnvironmentalStatus.WARNING
    else:
        co2_status = EnvironmentalStatus.HEALTHY

    return max(o2_status, co2_status)


@dataclass
class RateBreakdown:
    """Instantaneous flux by source, mol/s (positive adds to the air)."""

    counts: dict[str, int] = field(default_factory=dict)
    plant_photosynthesis_o2: float = 0.0
    plant_respiration_o2: float = 0.0
    herbivore_o2: float = 0.0
    herbivore_co2: float = 0.0
    carnivore_o2: float = 0.0
    carnivore_co2: float = 0.0
    ocean_co2: float = 0.0

    @property
    def net_o2(self) -> float:
        return self.plant_photosynthesis_o2 + self.plant_respiration_o2 + self.herbivore_o2 + self.carnivore_o2

    @property
    def net_co2(self) -> float:
        plants_co2 = -(self.plant_photosynthesis_o2 + self.plant_respiration_o2)
        return plants_co2 + self.herbivore_co2 + self.carnivore_co2 + self.ocean_co2


@dataclass
class DailySummary:
    day: int
    o2_change: float
    co2_change: float
    o2_percent: float
    co2_percent: float
    status: EnvironmentalStatus


StatusListener = Callable[[EnvironmentalStatus, EnvironmentalStatus, dict], None]


class GasLedger:
    def __init__(self, config: AtmosphereConfig | None = None) -> None:
        self.config = config or AtmosphereConfig()
        self.pool = GasPool.from_config(self.config)
        self.thresholds = StatusThresholds.from_config(self.config)

        self.seconds_per_day = self.config.seconds_per_day
        if self.seconds_per_day <= 0:
            logger.warning("seconds_per_day %r is not positive; ocean sink disabled", self.seconds_per_day)
        self.ocean_absorption_per_day = max(0.0, self.config.ocean_absorption_per_day)
        self.speed_multiplier = 1.0

        self._agents: dict[int, weakref.ref] = {}
        self._listeners: list[StatusListener] = []

        self.percentages = percentages_of(self.pool)
        self.status = status_of(self.percentages, self.thresholds)

        # Daily accounting
        self.day = 0
        self._day_timer = 0.0
        self._day_start_o2 = self.pool.oxygen
        self._day_start_co2 = self.pool.carbon_dioxide
        self.daily_history: list[DailySummary] = []

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #
    def register(self, agent) -> bool:
        """Track ``agent``'s gas exchange. The ledger holds only a weak reference; callers own the agent."""
        if agent.id in self._agents:
            return False
        self._agents[agent.id] = weakref.ref(agent)
        return True

    def unregister(self, agent) -> bool:
        return self._agents.pop(agent.id, None) is not None

    def is_registered(self, agent) -> bool:
        return agent.id in self._agents

    @property
    def registered_count(self) -> int:
        return len(self._agents)

    def _live_agents(self) -> list:
        live = []
        stale = []
        for agent_id, ref in list(self._agents.items()):
            agent = ref()
            if agent is None or not agent.is_alive():
                stale.append(agent_id)
                continue
            live.append(agent)
        for agent_id in stale:
            self._agents.pop(agent_id, None)
        return live

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #
    @property
    def total_moles(self) -> float:
        return self.pool.total

    @property
    def ocean_sink_rate(self) -> float:
        """Ocean CO2 uptake in mol/s."""
        if self.seconds_per_day <= 0:
            return 0.0
        return self.ocean_absorption_per_day / self.seconds_per_day

    def percentage(self, gas: Gas) -> float:
        return self.percentages[gas]

    def on_status_change(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------ #
    # Integration
    # ------------------------------------------------------------------ #
    def tick(self, dt: float) -> None:
        if dt <= 0:
            return

        o2_rate = 0.0
        co2_rate = 0.0
        for agent in self._live_agents():
            o2_rate += agent.current_o2_rate()
            co2_rate += agent.current_co2_rate()
        co2_rate -= self.ocean_sink_rate

        scaled = dt * self.speed_multiplier
        self.pool.oxygen = max(0.0, self.pool.oxygen + o2_rate * scaled)
        self.pool.carbon_dioxide = max(0.0, self.pool.carbon_dioxide + co2_rate * scaled)

        self._refresh()
        self._advance_day(scaled)

    def add_spike(self, moles: float, gas: Gas = Gas.CARBON_DIOXIDE) -> bool:
        """One-off injection (or removal, if negative) of a reactive gas."""
        gas = Gas(gas)
        if gas in INERT_GASES:
            logger.warning("Refusing to spike inert gas %s", gas.value)
            return False
        current = self.pool.get(gas)
        setattr(self.pool, gas.value, max(0.0, current + moles))
        logger.info("Added %.1f mol of %s", moles, gas.value)
        self._refresh()
        return True

    def set_pool(self, pool: GasPool) -> None:
        self.pool = GasPool(
            water_vapour=max(0.0, pool.water_vapour),
            nitrogen=max(0.0, pool.nitrogen),
            oxygen=max(0.0, pool.oxygen),
            argon=max(0.0, pool.argon),
            carbon_dioxide=max(0.0, pool.carbon_dioxide),
        )
        self._day_start_o2 = self.pool.oxygen
        self._day_start_co2 = self.pool.carbon_dioxide
        self._refresh()

    def reset_to_default(self) -> None:
        self.set_pool(GasPool.from_config(self.config))
        logger.info("Atmosphere reset to default composition")

    def _refresh(self) -> None:
        self.percentages = percentages_of(self.pool)
        previous = self.status
        self.status = status_of(self.percentages, self.thresholds)
        if self.status == previous:
            return

        o2 = self.percentages[Gas.OXYGEN]
        co2 = self.percentages[Gas.CARBON_DIOXIDE]
        if self.status > previous:
            logger.warning(
                "Atmosphere %s -> %s (O2 %.2f%%, CO2 %.3f%%)", previous.label, self.status.label, o2, co2
            )
        elif self.status == EnvironmentalStatus.HEALTHY:
            logger.info("Atmosphere returned to healthy (O2 %.2f%%, CO2 %.3f%%)", o2, co2)
        else:
            logger.info("Atmosphere %s -> %s (O2 %.2f%%, CO2 %.3f%%)", previous.label, self.status.label, o2, co2)

        for listener in list(self._listeners):
            listener(previous, self.status, dict(self.percentages))

    # ------------------------------------------------------------------ #
    # Breakdown & daily accounting
    # ------------------------------------------------------------------ #
    def rate_breakdown(self) -> RateBreakdown:
        breakdown = RateBreakdown(ocean_co2=-self.ocean_sink_rate)
        for agent in self._live_agents():
            kind = agent.kind
            breakdown.counts[kind.value] = breakdown.counts.get(kind.value, 0) + 1
            if kind in PLANT_KINDS:
                photosynthesis, respiration = agent.gas_components()
                breakdown.plant_photosynthesis_o2 += photosynthesis
                breakdown.plant_respiration_o2 -= respiration
            elif kind is AgentKind.HERBIVORE:
                breakdown.herbivore_o2 += agent.current_o2_rate()
                breakdown.herbivore_co2 += agent.current_co2_rate()
            elif kind is AgentKind.CARNIVORE:
                breakdown.carnivore_o2 += agent.current_o2_rate()
                breakdown.carnivore_co2 += agent.current_co2_rate()
        return breakdown

    def _advance_day(self, scaled_dt: float) -> None:
        if self.seconds_per_day <= 0:
            return
        self._day_timer += scaled_dt
        while self._day_timer >= self.seconds_per_day:
            self._day_timer -= self.seconds_per_day
            self._close_day()

    def _close_day(self) -> None:
        summary = DailySummary(
            day=self.day,
            o2_change=self.pool.oxygen - self._day_start_o2,
            co2_change=self.pool.carbon_dioxide - self._day_start_co2,
            o2_percent=self.percentages[Gas.OXYGEN],
            co2_percent=self.percentages[Gas.CARBON_DIOXIDE],
            status=self.status,
        )
        self.daily_history.append(summary)
        self.day += 1
        self._day_start_o2 = self.pool.oxygen
        self._day_start_co2 = self.pool.carbon_dioxide

        if self.config.log_daily_stats:
            b = self.rate_breakdown()
            logger.info(
                "Day %d atmosphere: O2 %+.1f mol (%.2f%%), CO2 %+.1f mol (%.3f%%), status %s | "
                "photosynthesis %+.3f, plant respiration %+.3f, herbivores %+.3f, carnivores %+.3f, "
                "ocean %+.3f mol/s | counts %s",
                summary.day,
                summary.o2_change,
                summary.o2_percent,
                summary.co2_change,
                summary.co2_percent,
                summary.status.label,
                b.plant_photosynthesis_o2,
                b.plant_respiration_o2,
                b.herbivore_o2,
                b.carnivore_o2,
                b.ocean_co2,
                b.counts,
            )


__all__ = [
    "DailySummary",
    "EnvironmentalStatus",
    "Gas",
    "GasLedger",
    "GasPool",
    "INERT_GASES",
    "RateBreakdown",
    "StatusThresholds",
    "percentages_of",
    "status_of",
]
