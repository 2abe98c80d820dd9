import gc
import math

import pytest

from biosphere_simulation.agents.base import AgentKind, MetabolicAgent
from biosphere_simulation.agents.plant import PlantAgent
from biosphere_simulation.atmosphere import (
    EnvironmentalStatus,
    Gas,
    GasLedger,
    GasPool,
    StatusThresholds,
    percentages_of,
    status_of,
)
from biosphere_simulation.config import AtmosphereConfig


class FixedRateAgent(MetabolicAgent):
    """Constant gas exchange, independent of any clock."""

    kind = AgentKind.HERBIVORE

    def __init__(self, o2_rate: float, co2_rate: float):
        super().__init__(0.0, 0.0, biomass=1.0, min_biomass=0.0, max_biomass=1.0, seed=0)
        self.o2_rate = o2_rate
        self.co2_rate = co2_rate

    def current_o2_rate(self) -> float:
        return self.o2_rate if self.alive else 0.0

    def current_co2_rate(self) -> float:
        return self.co2_rate if self.alive else 0.0

    def update(self, dt: float) -> None:
        pass


def _ledger(**overrides) -> GasLedger:
    overrides.setdefault("ocean_absorption_per_day", 0.0)
    overrides.setdefault("log_daily_stats", False)
    return GasLedger(AtmosphereConfig(**overrides))


def test_default_pool_percentages_sum_to_hundred():
    ledger = _ledger()
    assert ledger.total_moles == pytest.approx(4000 + 780800 + 209500 + 9300 + 415)
    assert sum(ledger.percentages.values()) == pytest.approx(100.0)
    assert ledger.status is EnvironmentalStatus.HEALTHY


def test_empty_ledger_without_sink_keeps_percentages_exactly():
    ledger = _ledger()
    initial = dict(ledger.percentages)
    for _ in range(500):
        ledger.tick(0.1)
    assert ledger.percentages == initial


def test_inert_gases_never_change():
    ledger = _ledger(ocean_absorption_per_day=20.0)
    agent = FixedRateAgent(o2_rate=-5.0, co2_rate=5.0)
    ledger.register(agent)
    for _ in range(100):
        ledger.tick(1.0)
    assert ledger.pool.nitrogen == 780800.0
    assert ledger.pool.argon == 9300.0
    assert ledger.add_spike(1000.0, Gas.NITROGEN) is False
    assert ledger.pool.nitrogen == 780800.0


def test_total_is_recomputed_from_the_pools():
    ledger = _ledger()
    agent = FixedRateAgent(o2_rate=2.0, co2_rate=-2.0)
    ledger.register(agent)
    ledger.tick(10.0)
    pool = ledger.pool
    expected = pool.water_vapour + pool.nitrogen + pool.oxygen + pool.argon + pool.carbon_dioxide
    assert ledger.total_moles == expected
    assert sum(ledger.percentages.values()) == pytest.approx(100.0)


def test_agent_flux_is_integrated_over_dt():
    ledger = _ledger()
    agent = FixedRateAgent(o2_rate=-3.0, co2_rate=3.0)
    ledger.register(agent)
    ledger.tick(2.0)
    assert ledger.pool.oxygen == pytest.approx(209500.0 - 6.0)
    assert ledger.pool.carbon_dioxide == pytest.approx(415.0 + 6.0)


def test_speed_multiplier_scales_flux():
    ledger = _ledger()
    agent = FixedRateAgent(o2_rate=-1.0, co2_rate=1.0)
    ledger.register(agent)
    ledger.speed_multiplier = 4.0
    ledger.tick(1.0)
    assert ledger.pool.carbon_dioxide == pytest.approx(419.0)


def test_ocean_sink_is_converted_to_per_second():
    ledger = _ledger(ocean_absorption_per_day=20.0, seconds_per_day=120.0)
    ledger.tick(6.0)
    assert ledger.pool.carbon_dioxide == pytest.approx(415.0 - 1.0)


def test_pools_are_clamped_at_zero():
    ledger = _ledger(carbon_dioxide=1.0)
    agent = FixedRateAgent(o2_rate=0.0, co2_rate=-100.0)
    ledger.register(agent)
    ledger.tick(1.0)
    assert ledger.pool.carbon_dioxide == 0.0
    assert ledger.add_spike(-50.0) is True
    assert ledger.pool.carbon_dioxide == 0.0


def test_unregister_is_idempotent():
    ledger = _ledger()
    agent = FixedRateAgent(o2_rate=-1.0, co2_rate=1.0)
    assert ledger.register(agent) is True
    assert ledger.register(agent) is False
    assert ledger.registered_count == 1

    assert ledger.unregister(agent) is True
    once = (ledger.registered_count, ledger.pool.as_dict())
    assert ledger.unregister(agent) is False
    assert (ledger.registered_count, ledger.pool.as_dict()) == once


def test_dead_and_collected_agents_contribute_nothing_and_are_purged():
    ledger = _ledger()
    dead = FixedRateAgent(o2_rate=-10.0, co2_rate=10.0)
    ledger.register(dead)
    dead.alive = False

    ghost = FixedRateAgent(o2_rate=-10.0, co2_rate=10.0)
    ledger.register(ghost)
    del ghost
    gc.collect()

    ledger.tick(1.0)
    assert ledger.pool.oxygen == 209500.0
    assert ledger.registered_count == 0


def test_status_is_worse_of_oxygen_and_co2():
    thresholds = StatusThresholds()
    healthy = {gas: 0.0 for gas in Gas}
    healthy[Gas.OXYGEN] = 20.9
    healthy[Gas.CARBON_DIOXIDE] = 0.04
    assert status_of(healthy, thresholds) is EnvironmentalStatus.HEALTHY

    low_o2 = {**healthy, Gas.OXYGEN: 14.0}
    assert status_of(low_o2, thresholds) is EnvironmentalStatus.DANGER

    high_co2 = {**low_o2, Gas.CARBON_DIOXIDE: 6.0}
    assert status_of(high_co2, thresholds) is EnvironmentalStatus.CRITICAL

    warm = {**healthy, Gas.CARBON_DIOXIDE: 0.2}
    assert status_of(warm, thresholds) is EnvironmentalStatus.WARNING


def test_status_follows_current_percentages_without_hysteresis():
    ledger = _ledger()
    events = []
    ledger.on_status_change(lambda prev, cur, pct: events.append((prev, cur)))

    # Push oxygen below the critical threshold
    ledger.add_spike(-190000.0, Gas.OXYGEN)
    assert ledger.percentages[Gas.OXYGEN] < 10.0
    assert ledger.status is EnvironmentalStatus.CRITICAL

    # Partly back: still below warning
    ledger.add_spike(150000.0, Gas.OXYGEN)
    assert 15.0 <= ledger.percentages[Gas.OXYGEN] < 19.0
    assert ledger.status is EnvironmentalStatus.WARNING

    # Above warning again
    ledger.add_spike(40000.0, Gas.OXYGEN)
    assert ledger.percentages[Gas.OXYGEN] >= 19.0
    assert ledger.status is EnvironmentalStatus.HEALTHY

    assert events == [
        (EnvironmentalStatus.HEALTHY, EnvironmentalStatus.CRITICAL),
        (EnvironmentalStatus.CRITICAL, EnvironmentalStatus.WARNING),
        (EnvironmentalStatus.WARNING, EnvironmentalStatus.HEALTHY),
    ]


def test_listener_fires_once_per_transition():
    ledger = _ledger()
    events = []
    ledger.on_status_change(lambda prev, cur, pct: events.append(cur))
    ledger.add_spike(2000.0)
    ledger.tick(1.0)
    ledger.tick(1.0)
    assert events == [EnvironmentalStatus.WARNING]


def test_percentages_of_empty_pool_are_zero():
    empty = GasPool(0.0, 0.0, 0.0, 0.0, 0.0)
    assert all(value == 0.0 for value in percentages_of(empty).values())


def test_reset_to_default_restores_composition():
    ledger = _ledger()
    ledger.add_spike(5000.0)
    ledger.reset_to_default()
    assert ledger.pool == GasPool()
    assert ledger.status is EnvironmentalStatus.HEALTHY


def test_rate_breakdown_separates_plant_photosynthesis_and_respiration(world):
    tree = world.add(PlantAgent.tree(10.0, 20.0))
    breakdown = world.ledger.rate_breakdown()

    assert breakdown.counts == {"tree": 1}
    assert breakdown.plant_photosynthesis_o2 > 0
    assert breakdown.plant_respiration_o2 < 0
    assert breakdown.net_o2 == pytest.approx(tree.current_o2_rate())
    assert breakdown.ocean_co2 == 0.0


def test_daily_summary_records_actual_change():
    ledger = _ledger(seconds_per_day=10.0)
    agent = FixedRateAgent(o2_rate=1.0, co2_rate=-1.0)
    ledger.register(agent)
    for _ in range(10):
        ledger.tick(1.0)
    assert len(ledger.daily_history) == 1
    summary = ledger.daily_history[0]
    assert summary.day == 0
    assert math.isclose(summary.o2_change, 10.0)
    assert math.isclose(summary.co2_change, -10.0)
