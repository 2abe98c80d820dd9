from __future__ import annotations

import logging
from typing import Callable, Iterable

from .agents.base import AgentKind, MetabolicAgent
from .atmosphere import GasLedger
from .clock import EnvironmentClock
from .habitat import Habitat
from .scheduler import Scheduler
from .spatial_hash import SpatialHash

logger = logging.getLogger(__name__)

DeathListener = Callable[[MetabolicAgent], None]


class Ecosystem:
    """
    Registry of every agent plus the services they share.

    Agents are added through ``add`` (which also registers them with the
    ledger) and dropped from the list by ``prune`` once dead. The spatial
    index is rebuilt in ``prune``; queries always re-check aliveness and exact
    distance, so a stale index never returns a dead or out-of-range agent.
    """

    def __init__(
        self,
        habitat: Habitat,
        clock: EnvironmentClock | None,
        ledger: GasLedger | None,
        scheduler: Scheduler | None = None,
        *,
        cell_size: float = 5.0,
    ) -> None:
        self.habitat = habitat
        self.clock = clock
        self.ledger = ledger
        self.scheduler = scheduler or Scheduler()

        self.agents: list[MetabolicAgent] = []
        self.index = SpatialHash(habitat.width, habitat.height, cell_size=cell_size)

        self.death_listeners: list[DeathListener] = []
        self.reproduction_handlers: dict[AgentKind, Callable[[], object]] = {}

        # Drained by the host each tick
        self.recent_deaths: list[MetabolicAgent] = []
        self.recent_births: list[MetabolicAgent] = []

    # ------------------------------------------------------------------ #
    # Membership
    # ------------------------------------------------------------------ #
    def add(self, agent: MetabolicAgent, *, birth: bool = False) -> MetabolicAgent:
        agent.world = self
        self.agents.append(agent)
        if self.ledger is not None:
            self.ledger.register(agent)
        self.index.insert(agent, agent.x, agent.y)
        if birth:
            self.recent_births.append(agent)
        return agent

    def notify_death(self, agent: MetabolicAgent) -> None:
        if self.ledger is not None:
            self.ledger.unregister(agent)
        self.recent_deaths.append(agent)
        for listener in list(self.death_listeners):
            listener(agent)

    def prune(self) -> int:
        before = len(self.agents)
        self.agents = [a for a in self.agents if a.alive]
        self.index.rebuild(self.agents)
        return before - len(self.agents)

    def clear(self) -> None:
        for agent in self.agents:
            if self.ledger is not None:
                self.ledger.unregister(agent)
            agent.world = None
        self.agents = []
        self.index.clear()
        self.recent_deaths.clear()
        self.recent_births.clear()

    def drain_events(self) -> tuple[list[MetabolicAgent], list[MetabolicAgent]]:
        births, deaths = self.recent_births, self.recent_deaths
        self.recent_births, self.recent_deaths = [], []
        return births, deaths

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def living(self, *kinds: AgentKind) -> list[MetabolicAgent]:
        wanted = set(kinds)
        return [a for a in self.agents if a.is_alive() and (not wanted or a.kind in wanted)]

    def count(self, kind: AgentKind) -> int:
        return sum(1 for a in self.agents if a.is_alive() and a.kind is kind)

    def counts(self) -> dict[str, int]:
        result = {kind.value: 0 for kind in AgentKind}
        for agent in self.agents:
            if agent.is_alive():
                result[agent.kind.value] += 1
        return result

    def nearest_living(
        self,
        x: float,
        y: float,
        kinds: Iterable[AgentKind],
        *,
        radius: float | None = None,
        predicate: Callable[[MetabolicAgent], bool] | None = None,
    ) -> MetabolicAgent | None:
        """Closest living agent of one of ``kinds``, optionally within ``radius``."""
        wanted = set(kinds)
        if radius is None:
            candidates = self.agents
        else:
            candidates = self.index.query_radius(x, y, radius)

        best = None
        best_d2 = float("inf") if radius is None else radius * radius
        for agent in candidates:
            if agent.kind not in wanted or not agent.is_alive():
                continue
            d2 = (agent.x - x) ** 2 + (agent.y - y) ** 2
            if d2 > best_d2:
                continue
            if predicate is not None and not predicate(agent):
                continue
            if best is None or d2 < best_d2:
                best = agent
                best_d2 = d2
        return best

    # ------------------------------------------------------------------ #
    # Population hooks
    # ------------------------------------------------------------------ #
    def request_reproduction(self, kind: AgentKind):
        handler = self.reproduction_handlers.get(kind)
        if handler is None:
            logger.debug("No reproduction handler for %s", kind.value)
            return None
        return handler()


__all__ = ["Ecosystem"]
