"""Payment-policy comparison for a stored plan."""

from __future__ import annotations

from practice_sim.cashflow import compute_cashflow
from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.metrics import check_plan_shape
from practice_sim.series import series_min, sum_range
from practice_sim.types import BusinessPlanData


POLICY_SCENARIOS = [
    {"key": "worst", "label": "Worst case: no cash patients, 3-month delay", "cash": False, "delay": 3, "factoring": False},
    {"key": "cash_3m", "label": "Cash patients + 3-month delay", "cash": True, "delay": 3, "factoring": False},
    {"key": "cash_1m", "label": "Cash patients + 1-month delay", "cash": True, "delay": 1, "factoring": False},
    {"key": "factoring", "label": "Cash patients + factoring", "cash": True, "delay": 0, "factoring": True},
]


def _matching_scenario(cash_pct: float, delay: int, factoring: bool) -> int:
    if factoring:
        return 3
    if delay == 3:
        return 1 if cash_pct > 0 else 0
    if delay == 1:
        return 2
    return -1


def _verdict(cash_pct: float, delay: int, factoring: bool) -> str:
    if factoring:
        return "green"
    if cash_pct >= 10:
        return "orange"
    return "red" if delay >= 3 else "orange"


def compare_payment_policies(
    plan: BusinessPlanData,
    cash_pct: float,
    delay: int,
    factoring: bool,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> dict:
    """Compare the four reference payment policies with the current configuration.

    ``cash_pct`` is a percentage (0-100) of revenue paid in cash by patients.
    """
    s = check_plan_shape(plan, constants)
    share = float(cash_pct) / 100

    def _run(cash_share: float, months_delay: int, use_factoring: bool):
        return compute_cashflow(
            s["revenue"], s["admin_costs"], s["operating_costs"], s["lab_costs"],
            cash_share, months_delay, use_factoring, constants,
        )

    scenarios = []
    for policy in POLICY_SCENARIOS:
        cash = _run(share if policy["cash"] else 0.0, policy["delay"], policy["factoring"])
        scenarios.append({"key": policy["key"], "label": policy["label"], "cashflow": cash, "buffer": series_min(cash)})

    current = scenarios[3]["cashflow"] if factoring else _run(share, delay, False)
    buffer_worst = scenarios[0]["buffer"]
    buffer_current = series_min(current)
    revenue_y3 = sum_range(s["revenue"], 24, 36)

    return {
        "scenarios": scenarios,
        "current_cashflow": current,
        "buffer_worst": buffer_worst,
        "buffer_current": buffer_current,
        "buffer_factoring": scenarios[3]["buffer"],
        "buffer_saved": abs(buffer_worst) - abs(buffer_current),
        "factoring_cost_annual": revenue_y3 * (1 - share) * constants.factoring_cost_rate if factoring else 0.0,
        "matching_scenario": _matching_scenario(cash_pct, delay, factoring),
        "verdict": _verdict(cash_pct, delay, factoring),
    }
