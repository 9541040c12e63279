"""Derived metrics for stored plans: scenarios, annual aggregates and KPIs."""

from __future__ import annotations

import numpy as np
import pandas as pd

from practice_sim.cashflow import compute_scenarios
from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.errors import DivisionByZeroError
from practice_sim.series import annual_sums, as_series, first_month_where, moving_average, round_half_up, series_min
from practice_sim.types import PLAN_SERIES_FIELDS, BusinessPlanData, DerivedMetrics


def _safe_div(a: float, b: float) -> float:
    return float(a / b) if b else 0.0


def check_plan_shape(plan: BusinessPlanData, constants: EngineConstants = DEFAULT_CONSTANTS) -> dict[str, np.ndarray]:
    """Return every plan series as a validated float array keyed by field name."""
    return {name: as_series(getattr(plan, name), constants.months, name) for name in PLAN_SERIES_FIELDS}


def compute_derived(plan: BusinessPlanData, constants: EngineConstants = DEFAULT_CONSTANTS) -> DerivedMetrics:
    s = check_plan_shape(plan, constants)
    revenue_years = annual_sums(s["revenue"], constants.years)
    result_years = annual_sums(s["result"], constants.years)

    scenarios = compute_scenarios(
        s["revenue"],
        s["admin_costs"],
        s["operating_costs"],
        s["lab_costs"],
        constants.baseline_cash_share,
        constants,
    )

    return DerivedMetrics(
        revenue_y1=revenue_years[0],
        revenue_y2=revenue_years[1],
        revenue_y3=revenue_years[2],
        result_y1=result_years[0],
        result_y2=result_years[1],
        result_y3=result_years[2],
        cash_factoring=scenarios.factoring,
        cash_delay_3m=scenarios.delay_3m,
        cash_delay_1m=scenarios.delay_1m,
        # The plan's own 3-month-delay series is the canonical worst case.
        buffer_worst=series_min(s["cash_delay_3m"]),
        buffer_factoring=series_min(scenarios.factoring),
        buffer_delay_3m=series_min(scenarios.delay_3m),
        buffer_delay_1m=series_min(scenarios.delay_1m),
    )


def derived_frame(plan: BusinessPlanData, derived: DerivedMetrics) -> pd.DataFrame:
    t = np.arange(len(derived.cash_factoring))
    return pd.DataFrame(
        {
            "Year": ((t // 12) + 1).astype(int),
            "Month_Number": (t + 1).astype(int),
            "Total Revenue": np.asarray(plan.revenue, dtype=float),
            "Net Result": np.asarray(plan.result, dtype=float),
            "Plan Cash (3m delay)": np.asarray(plan.cash_delay_3m, dtype=float),
            "Cash Factoring": derived.cash_factoring,
            "Cash 3m Delay": derived.cash_delay_3m,
            "Cash 1m Delay": derived.cash_delay_1m,
        }
    )


def payback_month(result: np.ndarray) -> int | None:
    """First 1-based month where the cumulative result is positive and the month itself is profitable."""
    result = np.asarray(result, dtype=float)
    idx = first_month_where((np.cumsum(result) > 0) & (result > 0))
    return None if idx is None else idx + 1


def _score(value: float | None, thresholds: tuple[float, float, float]) -> int:
    if value is None:
        return 0
    high, mid, low = thresholds
    if value >= high:
        return 3
    if value >= mid:
        return 2
    if value >= low:
        return 1
    return 0


def verdict_level(score: int) -> str:
    if score >= 10:
        return "green"
    if score >= 6:
        return "orange"
    return "red"


def compute_plan_kpis(
    plan: BusinessPlanData,
    derived: DerivedMetrics,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> dict:
    s = check_plan_shape(plan, constants)
    margin_y3 = _safe_div(derived.result_y3, derived.revenue_y3) * 100 if derived.revenue_y3 > 0 else 0.0
    growth = _safe_div(derived.revenue_y3 - derived.revenue_y1, derived.revenue_y1) * 100 if derived.revenue_y1 > 0 else 0.0
    cumulative_result = derived.result_y1 + derived.result_y2 + derived.result_y3
    roi = cumulative_result / plan.capex if plan.capex > 0 else None
    payback = payback_month(s["result"])

    fte_start = float(s["fte_total"][0])
    fte_end = float(s["fte_total"][-1])
    if fte_start > 0:
        fte_growth = (fte_end - fte_start) / fte_start * 100
    else:
        # A team built up from zero reports 100 % growth.
        fte_growth = 100.0 if fte_end > 0 else 0.0

    score = (
        # Margin is scored in whole percent.
        _score(round_half_up(margin_y3), (20, 10, 5))
        # Earlier payback is better, so score the negated month.
        + (_score(-payback, (-12, -18, -24)) if payback is not None else 0)
        + (3 if derived.buffer_worst >= -50_000 else 2 if derived.buffer_worst >= -150_000 else 1)
        + _score(roi, (3, 1.5, 1))
    )

    return {
        "margin_y3_pct": margin_y3,
        "revenue_growth_pct": growth,
        "cumulative_result": cumulative_result,
        "roi_on_capex": roi,
        "payback_month": payback,
        "buffer_worst": derived.buffer_worst,
        "fte_growth_pct": fte_growth,
        "revenue_run_rate": float(moving_average(s["revenue"], 3)[-1]),
        "score": int(score),
        "verdict": verdict_level(score),
    }


def partner_returns(
    plan: BusinessPlanData,
    derived: DerivedMetrics,
    partners: float,
    annual_charges: float,
    retrocession_pct: float | None = None,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> dict:
    """Per-partner view of the plan, including retrocession income on own billings."""
    if not partners:
        raise DivisionByZeroError("Partner returns require at least one partner.")
    retro_pct = constants.default_retrocession_pct if retrocession_pct is None else retrocession_pct

    invest_per_partner = plan.capex / partners
    charges_per_partner = annual_charges / partners
    per_year = [derived.result_y1 / partners, derived.result_y2 / partners, derived.result_y3 / partners]
    # A first-year loss is absorbed by the practice, not charged to partners.
    adjusted = [
        max(0.0, per_year[0] - charges_per_partner),
        per_year[1] - charges_per_partner,
        per_year[2] - charges_per_partner,
    ]
    cumulative = sum(adjusted)
    retro_annual = plan.revenue_per_specialist * retro_pct / 100

    monthly_charges = annual_charges / (12 * partners)
    result = as_series(plan.result, constants.months, "result")
    payback_idx = first_month_where(np.cumsum(result / partners - monthly_charges) > 0)

    return {
        "invest_per_partner": invest_per_partner,
        "charges_per_partner": charges_per_partner,
        "monthly_charges_per_partner": monthly_charges,
        "result_per_partner_by_year": per_year,
        "adjusted_by_year": adjusted,
        "cumulative_adjusted": cumulative,
        "roi": cumulative / invest_per_partner if invest_per_partner > 0 else None,
        "payback_month": None if payback_idx is None else payback_idx + 1,
        "retrocession_annual": retro_annual,
        "doctor_income_by_year": [a + retro_annual for a in adjusted],
        "doctor_income_total": cumulative + retro_annual * 3,
    }
