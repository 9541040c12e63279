"""Default simulator assumptions and the plan derived from them."""

from __future__ import annotations

from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.simulation import build_plan
from practice_sim.types import PARAM_RECORD_KEYS, BusinessPlanData, SimulatorParams


SIMULATOR_DEFAULTS = {
    "consult": 16,
    "fee": 225,
    "days": 220,
    "assoc": 2,
    "indep": 2,
    "interne": 1,
    "start": 4,
    "occup": 60,
    "cashPct": 10,
    "delay": 3,
    "factoring": False,
    "extra": 50000,
    "rc": 20000,
    "retro": 40,
}


def default_params() -> SimulatorParams:
    return SimulatorParams(**{PARAM_RECORD_KEYS[k]: v for k, v in SIMULATOR_DEFAULTS.items()})


def default_plan(capex: float = 0.0, constants: EngineConstants = DEFAULT_CONSTANTS) -> BusinessPlanData:
    return build_plan(default_params(), capex=capex, constants=constants)
