import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable when tests are invoked from arbitrary
# working directories (e.g., running a single file from within ``tests/``).
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from biosphere_simulation.atmosphere import GasLedger
from biosphere_simulation.clock import EnvironmentClock
from biosphere_simulation.config import AtmosphereConfig
from biosphere_simulation.ecosystem import Ecosystem
from biosphere_simulation.habitat import Habitat
from biosphere_simulation.scheduler import Scheduler


@pytest.fixture()
def world():
    """A small ecosystem with no ocean sink, clock parked at noon."""
    clock = EnvironmentClock()
    clock.set_hour(12.0)
    ledger = GasLedger(AtmosphereConfig(ocean_absorption_per_day=0.0, log_daily_stats=False))
    return Ecosystem(Habitat(), clock, ledger, Scheduler())
