import random

from biosphere_simulation.agents.base import AgentKind
from biosphere_simulation.agents.carnivore import CarnivoreAgent, Sex
from biosphere_simulation.agents.herbivore import HerbivoreAgent
from biosphere_simulation.agents.plant import PlantAgent
from biosphere_simulation.config import PopulationConfig, grass_species
from biosphere_simulation.population import (
    BreedingController,
    ReproductionController,
    ResourceRespawner,
)


def _herbivore_factory(x, y, seed):
    return HerbivoreAgent(x, y, seed=seed)


def _carnivore_factory(sex, x, y, seed):
    return CarnivoreAgent(x, y, sex=sex, seed=seed)


# ------------------------------------------------------------------ #
# Grass respawn
# ------------------------------------------------------------------ #
def test_respawner_counts_only_its_own_kind(world):
    respawner = ResourceRespawner(world, grass_species(), rng=random.Random(1))
    world.death_listeners.append(respawner.on_agent_death)

    world.add(PlantAgent.grass(5.0, 10.0)).kill("grazed")
    world.add(PlantAgent.tree(8.0, 10.0)).kill("respiration")
    assert respawner.pending == 1


def test_respawner_spawns_one_per_interval(world):
    respawner = ResourceRespawner(world, grass_species(), respawn_interval=5.0, rng=random.Random(1))
    world.death_listeners.append(respawner.on_agent_death)
    for i in range(3):
        world.add(PlantAgent.grass(5.0 + i, 10.0)).kill("grazed")
    world.drain_events()
    assert respawner.pending == 3

    for _ in range(4):
        assert respawner.update(1.0) is None
    plant = respawner.update(1.0)

    assert plant is not None
    assert plant.kind is AgentKind.GRASS
    assert plant.name == "Grass(respawn 1)"
    assert world.habitat.is_habitable(plant.x, plant.y)
    assert respawner.pending == 2
    births, _ = world.drain_events()
    assert births == [plant]

    # The timer restarts after each spawn
    assert respawner.update(1.0) is None


def test_respawner_idle_without_backlog(world):
    respawner = ResourceRespawner(world, grass_species(), respawn_interval=1.0)
    for _ in range(10):
        assert respawner.update(1.0) is None
    assert respawner.spawned == 0


# ------------------------------------------------------------------ #
# Herbivore reproduction
# ------------------------------------------------------------------ #
def test_reproduction_places_newborn_between_parents(world):
    world.add(HerbivoreAgent(10.0, 15.0, seed=1))
    world.add(HerbivoreAgent(12.0, 15.0, seed=2))
    controller = ReproductionController(
        world, AgentKind.HERBIVORE, _herbivore_factory, max_population=3, rng=random.Random(4)
    )

    child = controller.trigger()

    assert child is not None
    assert 10.0 <= child.x <= 13.0 + 1e-9
    assert 14.0 <= child.y <= 16.0
    assert child.biomass == 60.0 * 0.5
    assert child.hunger == 100.0 * 0.8
    assert world.count(AgentKind.HERBIVORE) == 3
    assert world.recent_births == [child]


def test_reproduction_respects_cap_and_parent_count(world):
    controller = ReproductionController(
        world, AgentKind.HERBIVORE, _herbivore_factory, max_population=2, rng=random.Random(4)
    )
    world.add(HerbivoreAgent(10.0, 15.0, seed=1))
    assert controller.trigger() is None  # a single parent

    world.add(HerbivoreAgent(12.0, 15.0, seed=2))
    assert controller.trigger() is None  # at cap
    assert world.count(AgentKind.HERBIVORE) == 2


def test_manual_spawn_bypasses_cap(world):
    controller = ReproductionController(
        world, AgentKind.HERBIVORE, _herbivore_factory, max_population=1, rng=random.Random(4)
    )
    world.add(HerbivoreAgent(10.0, 15.0, seed=1))

    child = controller.spawn_immediate(-5.0, 0.0)

    assert world.count(AgentKind.HERBIVORE) == 2
    assert world.habitat.is_habitable(child.x, child.y)
    assert controller.births == 1


# ------------------------------------------------------------------ #
# Carnivore breeding
# ------------------------------------------------------------------ #
def test_pair_within_range_breeds_on_first_update(world):
    male = world.add(CarnivoreAgent(10.0, 10.0, sex=Sex.MALE, seed=1))
    female = world.add(CarnivoreAgent(10.5, 10.0, sex=Sex.FEMALE, seed=2))
    breeding = BreedingController(world, _carnivore_factory, rng=random.Random(3))

    child = breeding.update(0.1)

    assert child is not None
    assert child.sex is Sex.MALE  # tie goes to male
    assert breeding.births == 1
    assert world.count(AgentKind.CARNIVORE) == 3
    assert male.mate is None
    assert not breeding.active
    assert female.alive


def test_offspring_takes_the_scarcer_sex(world):
    world.add(CarnivoreAgent(10.0, 10.0, sex=Sex.MALE, seed=1))
    world.add(CarnivoreAgent(10.2, 10.0, sex=Sex.MALE, seed=2))
    world.add(CarnivoreAgent(10.4, 10.0, sex=Sex.FEMALE, seed=3))
    breeding = BreedingController(world, _carnivore_factory, rng=random.Random(3))

    child = breeding.update(0.1)
    assert child.sex is Sex.FEMALE


def test_no_offspring_when_both_sexes_are_full(world):
    world.add(CarnivoreAgent(10.0, 10.0, sex=Sex.MALE, seed=1))
    world.add(CarnivoreAgent(10.5, 10.0, sex=Sex.FEMALE, seed=2))
    breeding = BreedingController(world, _carnivore_factory, PopulationConfig(max_per_sex=1), rng=random.Random(3))

    assert breeding.update(0.1) is None
    assert world.count(AgentKind.CARNIVORE) == 2


def test_no_pairing_at_total_cap(world):
    world.add(CarnivoreAgent(10.0, 10.0, sex=Sex.MALE, seed=1))
    world.add(CarnivoreAgent(10.5, 10.0, sex=Sex.FEMALE, seed=2))
    breeding = BreedingController(world, _carnivore_factory, PopulationConfig(max_carnivores=2), rng=random.Random(3))

    assert breeding.start_pairing() is False
    assert breeding.update(0.1) is None


def test_seeking_times_out_and_waits_for_next_day(world):
    male = world.add(CarnivoreAgent(5.0, 10.0, sex=Sex.MALE, seed=1))
    world.add(CarnivoreAgent(35.0, 25.0, sex=Sex.FEMALE, seed=2))
    breeding = BreedingController(world, _carnivore_factory, rng=random.Random(3))

    assert breeding.update(5.0) is None
    assert breeding.active
    assert male.mate is not None

    breeding.update(5.0)
    assert not breeding.active
    assert male.mate is None

    breeding.update(1.0)
    assert not breeding.active

    world.clock.advance(world.clock.cycle_seconds)
    breeding.update(0.1)
    assert breeding.active


def test_death_breaks_the_pair(world):
    world.add(CarnivoreAgent(5.0, 10.0, sex=Sex.MALE, seed=1))
    female = world.add(CarnivoreAgent(35.0, 25.0, sex=Sex.FEMALE, seed=2))
    breeding = BreedingController(world, _carnivore_factory, rng=random.Random(3))
    breeding.update(0.1)
    assert breeding.active

    female.kill("starvation")
    assert breeding.update(0.1) is None
    assert not breeding.active
