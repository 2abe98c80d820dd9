"""
Simulation configuration.

Every tunable constant lives in a dataclass here. Defaults reproduce the
reference calibration: a 120 second day, an Earth-like atmosphere and the
species constants for trees, grass, herbivores and carnivores. Overrides can be
read from a YAML document whose top-level keys mirror ``SimulationConfig``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


# ------------------------------------------------------------------ #
# Environment
# ------------------------------------------------------------------ #
@dataclass
class ClockConfig:
    cycle_seconds: float = 120.0

    # Day/night boundaries (clock hours)
    dawn_hour: float = 5.5
    sunrise_hour: float = 6.0
    sunset_hour: float = 18.0
    dusk_hour: float = 19.0

    # Diurnal temperature curve
    min_temperature: float = 21.0
    max_temperature: float = 34.0
    temperature_min_hour: float = 5.5
    temperature_peak_hour: float = 15.0
    evening_hour: float = 19.0

    # Light curve
    sun_max_intensity: float = 1.0
    moon_intensity: float = 0.6


@dataclass
class AtmosphereConfig:
    # Initial composition (moles)
    water_vapour: float = 4000.0
    nitrogen: float = 780800.0
    oxygen: float = 209500.0
    argon: float = 9300.0
    carbon_dioxide: float = 415.0

    seconds_per_day: float = 120.0
    ocean_absorption_per_day: float = 20.0  # mol CO2 / in-sim day

    # Status thresholds (percent of total moles)
    o2_warning: float = 19.0
    o2_danger: float = 15.0
    o2_critical: float = 10.0
    co2_warning: float = 0.1
    co2_danger: float = 0.5
    co2_critical: float = 5.0

    log_daily_stats: bool = True


@dataclass
class HabitatConfig:
    width: float = 40.0
    height: float = 30.0
    ocean_fraction: float = 0.2  # bottom band of the world is ocean
    shore_buffer: float = 0.2
    spawn_attempts: int = 50


# ------------------------------------------------------------------ #
# Species
# ------------------------------------------------------------------ #
@dataclass
class PlantSpecies:
    name: str = "tree"
    r_base: float = 0.00072  # mol/s/kg at 20 C
    q10: float = 2.5
    p_max: float = 0.0108  # mol/s/kg at full efficiency
    initial_biomass: float = 10.0
    min_biomass: float = 1.0
    max_biomass: float = 40.0
    vertical_layer: float = 0.5  # 0 = ground, 1 = canopy
    enable_death: bool = True
    metabolism_scale: float = 1.0


def tree_species() -> PlantSpecies:
    return PlantSpecies()


def grass_species() -> PlantSpecies:
    return PlantSpecies(
        name="grass",
        r_base=0.00036,
        q10=2.0,
        p_max=0.00576,
        initial_biomass=5.0,
        min_biomass=1.0,
        max_biomass=15.0,
        vertical_layer=0.0,
    )


def _herbivore_activity() -> dict[str, float]:
    return {
        "sleeping": 0.75,
        "resting": 1.0,
        "grazing": 1.2,
        "walking": 1.5,
        "fleeing": 3.0,
    }


def _carnivore_activity() -> dict[str, float]:
    return {
        "sleeping": 0.75,
        "resting": 1.0,
        "walking": 1.5,
        "working": 2.0,
        "hunting": 3.5,
    }


@dataclass
class HerbivoreSpecies:
    name: str = "herbivore"
    initial_biomass: float = 30.0
    max_biomass: float = 60.0

    # Hunger pool
    initial_hunger: float = 50.0
    max_hunger: float = 100.0
    hunger_depletion_rate: float = 8.0  # per second while active
    starvation_grace_period: float = 1.0

    # Basal metabolism
    bmr: float = 0.0144
    q10: float = 2.0
    comfort_temperature: float = 22.0
    thermoreg_coefficient: float = 0.03
    activity_multipliers: dict[str, float] = field(default_factory=_herbivore_activity)
    metabolism_scale: float = 1.0

    # Foraging
    food_kinds: tuple[str, ...] = ("grass",)
    forage_threshold: float = 0.5  # hunger fraction
    wake_fraction: float = 0.3
    search_radius: float = 10.0
    search_interval: float = 3.0
    min_plant_biomass: float = 1.0
    eating_range: float = 0.3
    eating_amount: float = 10.0
    hunger_per_bite: float = 50.0
    trophic_efficiency: float = 0.1

    # Movement
    move_speed: float = 1.5
    wander_radius: float = 5.0
    wander_interval: float = 5.0
    flee_radius: float = 3.0
    flee_speed_multiplier: float = 1.5

    # Night-time population balance
    night_breeding_interval: float = 10.0
    night_breeding_chance: float = 0.5


@dataclass
class CarnivoreSpecies:
    name: str = "carnivore"
    initial_biomass: float = 70.0
    max_biomass: float = 100.0

    initial_hunger: float = 80.0
    max_hunger: float = 100.0
    hunger_depletion_rate: float = 2.0
    starvation_grace_period: float = 0.0

    bmr: float = 0.0025
    q10: float = 1.5
    comfort_temperature: float = 24.0
    thermoreg_coefficient: float = 0.02
    activity_multipliers: dict[str, float] = field(default_factory=_carnivore_activity)
    metabolism_scale: float = 1.0

    # Hunting
    hunt_threshold: float = 0.4  # hunger fraction
    wake_fraction: float = 0.3
    search_radius: float = 5.0
    search_interval: float = 5.0
    eating_range: float = 0.6
    hunger_per_prey: float = 60.0
    trophic_efficiency: float = 0.15
    reproduction_delay: float = 10.0

    # Movement / idle cycle
    move_speed: float = 2.0
    hunt_speed_multiplier: float = 1.5
    wander_radius: float = 6.0
    dwell_time: float = 3.0
    work_probability: float = 0.5


# ------------------------------------------------------------------ #
# Population control
# ------------------------------------------------------------------ #
@dataclass
class PopulationConfig:
    # Grass respawn
    respawn_interval: float = 5.0

    # Herbivore reproduction
    max_herbivores: int = 10
    parents_required: int = 2
    spawn_offset: float = 1.0
    newborn_hunger_fraction: float = 0.8
    newborn_biomass_fraction: float = 0.5

    # Carnivore breeding
    max_carnivores: int = 6
    max_per_sex: int = 3
    breeding_distance: float = 1.5
    seeking_duration: float = 10.0
    birth_jitter: float = 0.5


@dataclass
class InitialPopulation:
    trees: int = 10
    grass: int = 55
    herbivores: int = 10
    male_carnivores: int = 1
    female_carnivores: int = 1


# ------------------------------------------------------------------ #
# Top level
# ------------------------------------------------------------------ #
@dataclass
class SimulationConfig:
    clock: ClockConfig = field(default_factory=ClockConfig)
    atmosphere: AtmosphereConfig = field(default_factory=AtmosphereConfig)
    habitat: HabitatConfig = field(default_factory=HabitatConfig)
    tree: PlantSpecies = field(default_factory=tree_species)
    grass: PlantSpecies = field(default_factory=grass_species)
    herbivore: HerbivoreSpecies = field(default_factory=HerbivoreSpecies)
    carnivore: CarnivoreSpecies = field(default_factory=CarnivoreSpecies)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    initial: InitialPopulation = field(default_factory=InitialPopulation)

    dt: float = 0.1
    speed: int = 1
    stop_on_collapse: bool = True
    snapshot_interval: int = 50
    spatial_cell_size: float = 5.0


def _apply(target: Any, data: dict[str, Any], path: str) -> None:
    known = {f.name: f for f in fields(target)}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %s.%s", path, key)
            continue
        current = getattr(target, key)
        if is_dataclass(current):
            if not isinstance(value, dict):
                logger.warning("Expected a mapping for %s.%s, got %r", path, key, value)
                continue
            _apply(current, value, f"{path}.{key}")
        elif isinstance(current, tuple) and isinstance(value, list):
            setattr(target, key, tuple(value))
        elif isinstance(current, dict) and isinstance(value, dict):
            merged = dict(current)
            merged.update(value)
            setattr(target, key, merged)
        else:
            setattr(target, key, value)


def config_from_dict(data: dict[str, Any] | None) -> SimulationConfig:
    """Build a ``SimulationConfig`` from nested plain data, starting from defaults."""
    config = SimulationConfig()
    if data:
        _apply(config, data, "config")
    return config


def load_config(config_path: str | Path | None = None) -> SimulationConfig:
    """Load configuration overrides from a YAML file.

    ``None`` returns the defaults. A missing or malformed file is a startup
    error and raises ``ConfigError``.
    """
    if config_path is None:
        return SimulationConfig()

    path = Path(config_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    logger.info("Loaded configuration from %s", path)
    return config_from_dict(data)


__all__ = [
    "AtmosphereConfig",
    "CarnivoreSpecies",
    "ClockConfig",
    "ConfigError",
    "HabitatConfig",
    "HerbivoreSpecies",
    "InitialPopulation",
    "PlantSpecies",
    "PopulationConfig",
    "SimulationConfig",
    "config_from_dict",
    "grass_species",
    "load_config",
    "tree_species",
]
