from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np

from .agents.base import AgentKind, MetabolicAgent
from .stats import StatsSnapshot

logger = logging.getLogger(__name__)


@dataclass
class DeathEvent:
    tick: int
    agent_id: int
    kind: str
    name: str
    age: float
    x: float
    y: float
    biomass: float
    hunger: float | None
    cause: str
    activity: str | None = None

    @classmethod
    def from_agent(cls, tick: int, agent: MetabolicAgent) -> "DeathEvent":
        info = agent.death_info or {}
        activity = getattr(agent, "activity", None)
        return cls(
            tick=tick,
            agent_id=agent.id,
            kind=agent.kind.value,
            name=agent.name,
            age=agent.age,
            x=agent.x,
            y=agent.y,
            biomass=info.get("biomass", agent.biomass),
            hunger=getattr(agent, "hunger", None),
            cause=info.get("cause", "other"),
            activity=activity.value if activity is not None else None,
        )

    def as_row(self) -> tuple:
        return (
            self.tick,
            self.agent_id,
            self.kind,
            self.name,
            self.age,
            self.x,
            self.y,
            self.biomass,
            self.hunger,
            self.cause,
            self.activity,
        )


def _percentiles(data: list[float]) -> tuple[float, float, float]:
    if not data:
        return 0.0, 0.0, 0.0
    arr = np.array(sorted(data))
    return float(np.percentile(arr, 10)), float(np.percentile(arr, 50)), float(np.percentile(arr, 90))


class TelemetryRecorder:
    """SQLite-backed run recorder: periodic snapshots, deaths and status changes."""

    def __init__(
        self,
        run_id: str,
        *,
        base_seed: int,
        world_size: tuple[float, float],
        snapshot_interval: int = 50,
        base_path: str | Path = "reports",
    ) -> None:
        self.run_id = run_id
        self.snapshot_interval = max(1, snapshot_interval)
        self.base_seed = base_seed
        self.world_size = world_size

        self.base_path = Path(base_path)
        self.run_dir = self.base_path / f"run_{self.run_id}"
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.run_dir / f"run_{self.run_id}.sqlite"

        self._conn = sqlite3.connect(self.db_path)
        self._init_db()
        logger.info("Telemetry for run %s at %s", run_id, self.db_path)

    # ------------------------------------------------------------------ #
    # Database schema
    # ------------------------------------------------------------------ #
    def _init_db(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS run_meta (
                run_id TEXT PRIMARY KEY,
                seed INTEGER,
                world_width REAL,
                world_height REAL,
                start_time TEXT
            )
            """
        )
        cur.execute(
            """
            INSERT OR REPLACE INTO run_meta(run_id, seed, world_width, world_height, start_time)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                self.run_id,
                self.base_seed,
                self.world_size[0],
                self.world_size[1],
                _dt.datetime.now(_dt.timezone.utc).isoformat(),
            ),
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS snapshots (
                tick INTEGER PRIMARY KEY,
                elapsed REAL,
                day INTEGER,
                hour REAL,
                temperature REAL,
                o2_percent REAL,
                co2_percent REAL,
                total_moles REAL,
                status TEXT,
                trees INTEGER,
                grass INTEGER,
                herbivores INTEGER,
                carnivores INTEGER,
                births INTEGER,
                deaths INTEGER,
                plant_biomass REAL,
                median_herbivore_biomass REAL,
                median_carnivore_biomass REAL,
                p10_herbivore_hunger REAL,
                p90_herbivore_hunger REAL
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS deaths (
                tick INTEGER,
                agent_id INTEGER,
                kind TEXT,
                name TEXT,
                age REAL,
                x REAL,
                y REAL,
                biomass REAL,
                hunger REAL,
                cause TEXT,
                activity TEXT
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS status_events (
                tick INTEGER,
                previous TEXT,
                current TEXT,
                o2_percent REAL,
                co2_percent REAL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------ #
    # Recording
    # ------------------------------------------------------------------ #
    def should_snapshot(self, tick: int) -> bool:
        return tick % self.snapshot_interval == 0

    def log_deaths(self, events: Iterable[DeathEvent]) -> None:
        events = list(events)
        if not events:
            return
        cur = self._conn.cursor()
        cur.executemany(
            """
            INSERT INTO deaths(
                tick, agent_id, kind, name, age, x, y, biomass, hunger, cause, activity
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [e.as_row() for e in events],
        )
        self._conn.commit()

    def log_status_change(self, tick: int, previous: str, current: str, o2_percent: float, co2_percent: float) -> None:
        self._conn.execute(
            "INSERT INTO status_events(tick, previous, current, o2_percent, co2_percent) VALUES (?, ?, ?, ?, ?)",
            (tick, previous, current, o2_percent, co2_percent),
        )
        self._conn.commit()

    def record_snapshot(self, snapshot: StatsSnapshot, agents: Iterable[MetabolicAgent]) -> None:
        alive = [a for a in agents if a.is_alive()]
        herbivores = [a for a in alive if a.kind is AgentKind.HERBIVORE]
        carnivores = [a for a in alive if a.kind is AgentKind.CARNIVORE]

        _, med_herb, _ = _percentiles([h.biomass for h in herbivores])
        _, med_carn, _ = _percentiles([c.biomass for c in carnivores])
        p10_hunger, _, p90_hunger = _percentiles([h.hunger for h in herbivores])

        cur = self._conn.cursor()
        cur.execute(
            """
            INSERT OR REPLACE INTO snapshots(
                tick, elapsed, day, hour, temperature, o2_percent, co2_percent, total_moles, status,
                trees, grass, herbivores, carnivores, births, deaths, plant_biomass,
                median_herbivore_biomass, median_carnivore_biomass, p10_herbivore_hunger, p90_herbivore_hunger
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                snapshot.tick,
                snapshot.elapsed,
                snapshot.day,
                snapshot.hour,
                snapshot.temperature,
                snapshot.o2_percent,
                snapshot.co2_percent,
                snapshot.total_moles,
                snapshot.status,
                snapshot.trees,
                snapshot.grass,
                snapshot.herbivores,
                snapshot.carnivores,
                snapshot.births,
                snapshot.deaths,
                snapshot.plant_biomass,
                med_herb,
                med_carn,
                p10_hunger,
                p90_hunger,
            ),
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


__all__ = ["TelemetryRecorder", "DeathEvent"]
