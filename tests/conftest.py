from __future__ import annotations

import pytest

from practice_sim.defaults import default_params, default_plan
from practice_sim.types import BusinessPlanData, SimulatorParams


@pytest.fixture
def base_params() -> SimulatorParams:
    return default_params()


@pytest.fixture
def base_plan() -> BusinessPlanData:
    return default_plan()
