"""Stress variants and one-way sensitivity helpers."""

from __future__ import annotations

from dataclasses import replace

import pandas as pd

from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.schema import PARAM_BOUNDS
from practice_sim.series import round_half_up
from practice_sim.simulation import run_simulation
from practice_sim.types import SimulationResult, SimulatorParams


STRESS_DELTA_PCT = 0.25

DEFAULT_SENSITIVITY_DRIVERS = [
    "consultations_per_day",
    "fee_per_consultation",
    "occupancy_y1_pct",
    "start_month",
]

_BOUNDS_KEY = {
    "consultations_per_day": "consult",
    "fee_per_consultation": "fee",
    "occupancy_y1_pct": "occup",
    "start_month": "start",
}

TARGET_OPTIONS = [
    "Year 3 Revenue",
    "Year 3 Result",
    "Adjusted Year 3 Result",
    "Minimum Cash Buffer",
    "Final Cash",
]

# Default risk register: (label, probability 1-5, impact 1-5).
DEFAULT_RISKS = [
    {"id": "r1", "label": "Low year-1 occupancy", "prob": 3, "impact": 5},
    {"id": "r2", "label": "Insurer payment delays", "prob": 3, "impact": 4},
    {"id": "r3", "label": "Practitioner turnover", "prob": 3, "impact": 4},
    {"id": "r4", "label": "Increased competition", "prob": 3, "impact": 3},
    {"id": "r5", "label": "CAPEX overrun", "prob": 3, "impact": 2},
    {"id": "r6", "label": "Pandemic / closure", "prob": 1, "impact": 5},
    {"id": "r7", "label": "Rising fixed costs", "prob": 3, "impact": 3},
]


def _clamp(field: str, value: float) -> int:
    lo, hi = PARAM_BOUNDS[_BOUNDS_KEY[field]]
    return int(min(hi, max(lo, round_half_up(value))))


def shocked_value(params: SimulatorParams, field: str, pessimistic: bool, delta_pct: float = STRESS_DELTA_PCT) -> int:
    """Value of one driver under a pessimistic or optimistic shock, clamped to its bounds."""
    current = getattr(params, field)
    if field == "start_month":
        return _clamp(field, current + 2 if pessimistic else current - 1)
    mult = 1 - delta_pct if pessimistic else 1 + delta_pct
    return _clamp(field, current * mult)


def stress_variant(params: SimulatorParams, pessimistic: bool, delta_pct: float = STRESS_DELTA_PCT) -> SimulatorParams:
    changes = {field: shocked_value(params, field, pessimistic, delta_pct) for field in DEFAULT_SENSITIVITY_DRIVERS}
    return replace(params, **changes)


def evaluate_outputs(result: SimulationResult) -> dict:
    values = [result.revenue_y3, result.result_y3, result.result_adjusted, result.buffer_min, result.cash_final]
    return dict(zip(TARGET_OPTIONS, values))


def run_stress_scenarios(params: SimulatorParams, constants: EngineConstants = DEFAULT_CONSTANTS) -> pd.DataFrame:
    rows = []
    for case, variant in [
        ("Pessimistic", stress_variant(params, pessimistic=True)),
        ("Base", params),
        ("Optimistic", stress_variant(params, pessimistic=False)),
    ]:
        rows.append({"Case": case, **evaluate_outputs(run_simulation(variant, constants))})
    return pd.DataFrame(rows)


def run_one_way_sensitivity(
    params: SimulatorParams,
    drivers: list[str] | None = None,
    delta_pct: float = STRESS_DELTA_PCT,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> pd.DataFrame:
    """Impact of a pessimistic shock on each driver, one at a time."""
    base = evaluate_outputs(run_simulation(params, constants))
    if not drivers:
        drivers = list(DEFAULT_SENSITIVITY_DRIVERS)

    rows = []
    for driver in drivers:
        if driver not in _BOUNDS_KEY:
            continue
        scenario = replace(params, **{driver: shocked_value(params, driver, True, delta_pct)})
        out = evaluate_outputs(run_simulation(scenario, constants))
        rows.append(
            {
                "Driver": driver,
                "Value": getattr(scenario, driver),
                **{k: out[k] for k in base.keys()},
                **{f"Delta {k}": out[k] - base[k] for k in base.keys()},
                "Impact Year 3 Result": abs(base["Year 3 Result"] - out["Year 3 Result"]),
            }
        )
    return pd.DataFrame(rows)


def stress_score(base: SimulationResult, pessimistic: SimulationResult) -> int:
    """0-50 score from the relative drop of year-3 revenue and result under stress."""
    revenue_base = base.revenue_y3 if base.revenue_y3 > 0 else 1.0
    d_revenue = abs(base.revenue_y3 - pessimistic.revenue_y3) / revenue_base
    if base.result_y3 != 0:
        d_result = abs(base.result_y3 - pessimistic.result_y3) / abs(base.result_y3)
    else:
        d_result = 1.0
    return min(50, round_half_up((d_revenue + d_result) / 2 * 50))


def matrix_score(risks: list[dict] | None = None) -> int:
    """0-50 score from total probability x impact exposure of the risk register."""
    risks = DEFAULT_RISKS if risks is None else risks
    exposure = sum(int(r["prob"]) * int(r["impact"]) for r in risks)
    return min(50, round_half_up(exposure / (len(DEFAULT_RISKS) * 25) * 50))


def risk_assessment(
    params: SimulatorParams,
    risks: list[dict] | None = None,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> dict:
    base = run_simulation(params, constants)
    pessimistic = run_simulation(stress_variant(params, pessimistic=True), constants)
    stress = stress_score(base, pessimistic)
    matrix = matrix_score(risks)
    score = stress + matrix
    if score >= 60:
        verdict = "red"
    elif score >= 35:
        verdict = "orange"
    else:
        verdict = "green"
    return {"stress_score": stress, "matrix_score": matrix, "score": score, "verdict": verdict}
