import sqlite3

import pytest

pytest.importorskip("numpy")

from biosphere_simulation.agents.carnivore import CarnivoreAgent
from biosphere_simulation.agents.herbivore import HerbivoreAgent
from biosphere_simulation.agents.plant import PlantAgent
from biosphere_simulation.config import InitialPopulation, SimulationConfig
from biosphere_simulation.simulation import Simulation
from biosphere_simulation.stats import EcosystemStats
from biosphere_simulation.telemetry import DeathEvent, TelemetryRecorder


def _make_recorder(tmp_path, snapshot_interval=1):
    return TelemetryRecorder(
        "test_run",
        base_seed=123,
        world_size=(40, 30),
        snapshot_interval=snapshot_interval,
        base_path=tmp_path,
    )


def test_death_logging_records_cause(world, tmp_path):
    herbivore = world.add(HerbivoreAgent(10.0, 10.0, hunger=0.0, biomass=0.4, seed=1))
    for _ in range(20):
        herbivore.update(0.5)
    assert not herbivore.alive

    recorder = _make_recorder(tmp_path)
    recorder.log_deaths([DeathEvent.from_agent(7, herbivore)])

    conn = sqlite3.connect(recorder.db_path)
    row = conn.execute("SELECT tick, kind, cause, hunger FROM deaths LIMIT 1").fetchone()
    conn.close()
    recorder.close()
    assert row == (7, "herbivore", "starvation", 0.0)


def test_plant_death_event_has_no_hunger():
    grass = PlantAgent.grass(3.0, 10.0)
    grass.take_bite(100.0)
    event = DeathEvent.from_agent(1, grass)
    assert event.cause == "grazed"
    assert event.hunger is None
    assert event.activity is None
    assert len(event.as_row()) == 11


def test_snapshot_records_population_and_atmosphere(world, tmp_path):
    agents = [
        world.add(PlantAgent.tree(5.0, 10.0)),
        world.add(PlantAgent.grass(6.0, 10.0)),
        world.add(HerbivoreAgent(7.0, 10.0, biomass=20.0, seed=1)),
        world.add(HerbivoreAgent(8.0, 10.0, biomass=40.0, seed=2)),
        world.add(CarnivoreAgent(9.0, 10.0, seed=3)),
    ]
    stats = EcosystemStats()
    snapshot = stats.update(10, 1.0, agents, world.ledger, world.clock, births=2, deaths=1)

    recorder = _make_recorder(tmp_path)
    recorder.record_snapshot(snapshot, agents)

    conn = sqlite3.connect(recorder.db_path)
    row = conn.execute(
        "SELECT trees, grass, herbivores, carnivores, births, deaths, status, median_herbivore_biomass "
        "FROM snapshots WHERE tick=10"
    ).fetchone()
    conn.close()
    recorder.close()

    assert row[:7] == (1, 1, 2, 1, 2, 1, "Healthy")
    assert row[7] == pytest.approx(30.0)


def test_status_changes_are_logged(tmp_path):
    recorder = _make_recorder(tmp_path)
    recorder.log_status_change(12, "Healthy", "Warning", 20.1, 0.2)

    conn = sqlite3.connect(recorder.db_path)
    row = conn.execute("SELECT tick, previous, current FROM status_events").fetchone()
    conn.close()
    recorder.close()
    assert row == (12, "Healthy", "Warning")


def test_simulation_writes_snapshots_on_interval(tmp_path):
    config = SimulationConfig()
    config.initial = InitialPopulation(trees=2, grass=4, herbivores=2, male_carnivores=1, female_carnivores=1)
    recorder = _make_recorder(tmp_path, snapshot_interval=5)
    sim = Simulation(config, seed=11, telemetry=recorder)
    sim.run(20)
    sim.close()

    conn = sqlite3.connect(recorder.db_path)
    ticks = [r[0] for r in conn.execute("SELECT tick FROM snapshots ORDER BY tick")]
    seed = conn.execute("SELECT seed FROM run_meta").fetchone()[0]
    conn.close()

    assert ticks == [5, 10, 15, 20]
    assert seed == 123
