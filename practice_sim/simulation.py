"""What-if simulator: a full 36-month practice trajectory from a few assumptions."""

from __future__ import annotations

import numpy as np
import pandas as pd

from practice_sim.cashflow import compute_cashflow
from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.errors import DivisionByZeroError
from practice_sim.series import annual_sums, series_min
from practice_sim.types import BusinessPlanData, MonthlyProjection, SimulationResult, SimulatorParams


def resolve_retrocession_rate(params: SimulatorParams, constants: EngineConstants = DEFAULT_CONSTANTS) -> float:
    pct = constants.default_retrocession_pct if params.retrocession_pct is None else params.retrocession_pct
    return float(pct) / 100


def retained_revenue(gross: np.ndarray | float, retrocession_rate: float) -> np.ndarray | float:
    """Share of a partner or independent doctor's billings kept by the practice."""
    return gross * retrocession_rate


def monthly_revenue_per_specialist(params: SimulatorParams) -> float:
    return params.consultations_per_day * params.fee_per_consultation * params.working_days_per_year / 12


def occupancy_ramp(params: SimulatorParams, constants: EngineConstants = DEFAULT_CONSTANTS) -> np.ndarray:
    """Occupancy fraction per month.

    Zero before the start month, a linear fill-up to the year-1 target over
    ``ramp_months``, a fixed partial recovery toward full occupancy in year 2,
    and full occupancy from year 3 on.
    """
    m = np.arange(constants.months, dtype=float)
    target = float(params.occupancy_y1_pct) / 100
    offset = float(params.start_month) - 1
    year = m // 12

    since_start = m - offset
    year1 = np.minimum(target, target * np.minimum(1.0, (since_start + 1) / constants.ramp_months))
    year2 = np.full(len(m), min(1.0, target + (1 - target) * constants.year2_recovery_share))
    occ = np.where(year == 0, year1, np.where(year == 1, year2, 1.0))
    return np.where(m >= offset, occ, 0.0)


def _scaled_base(base: float, headcount: float, factor: float, constants: EngineConstants) -> float:
    return abs(base * (1 + (headcount - constants.reference_team_size) * factor))


def project_months(params: SimulatorParams, constants: EngineConstants = DEFAULT_CONSTANTS) -> MonthlyProjection:
    months = constants.months
    per_spec = monthly_revenue_per_specialist(params)
    occ = occupancy_ramp(params, constants)
    active = occ > 0
    retro = resolve_retrocession_rate(params, constants)

    rev_partner = retained_revenue(per_spec * params.partner_doctors * occ, retro)
    rev_independent = retained_revenue(per_spec * params.independent_doctors * occ, retro)
    # Salaried doctors are employees: their billings belong to the practice in full.
    rev_salaried = per_spec * params.salaried_doctors * occ
    rev_midwife = np.where(active, constants.midwife_monthly_revenue, 0.0)
    revenue = rev_partner + rev_independent + rev_salaried + rev_midwife

    headcount = params.headcount
    admin = -_scaled_base(constants.admin_base_monthly, headcount, constants.admin_scale_factor, constants) * occ
    opex = -_scaled_base(constants.opex_base_monthly, headcount, constants.opex_scale_factor, constants) * occ
    fixed = np.full(months, -params.annual_charges / 12)
    total_costs = admin + opex + fixed
    compensation = np.where(active, per_spec * params.salaried_doctors * occ * constants.salaried_compensation_rate, 0.0)

    result = revenue + total_costs - compensation
    cashflow = compute_cashflow(
        revenue,
        admin + fixed,
        opex - compensation,
        np.zeros(months),
        float(params.cash_patient_pct) / 100,
        params.payment_delay_months,
        bool(params.factoring),
        constants,
    )

    return MonthlyProjection(
        occupancy=occ,
        revenue_partner=rev_partner,
        revenue_independent=rev_independent,
        revenue_salaried=rev_salaried,
        revenue_midwife=rev_midwife,
        revenue=revenue,
        admin_costs=admin,
        operating_costs=opex,
        fixed_charges=fixed,
        total_costs=total_costs,
        salaried_compensation=compensation,
        result=result,
        cashflow=cashflow,
    )


def summarize_projection(
    projection: MonthlyProjection,
    params: SimulatorParams,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> SimulationResult:
    if not params.partner_doctors:
        raise DivisionByZeroError("Per-partner share requires at least one partner doctor.")
    revenue_years = annual_sums(projection.revenue, constants.years)
    result_years = annual_sums(projection.result, constants.years)
    adjusted = result_years[2] - params.extra_charges_annual - params.liability_insurance_annual

    return SimulationResult(
        revenue=projection.revenue,
        result=projection.result,
        cashflow=projection.cashflow,
        revenue_y1=revenue_years[0],
        revenue_y2=revenue_years[1],
        revenue_y3=revenue_years[2],
        result_y1=result_years[0],
        result_y2=result_years[1],
        result_y3=result_years[2],
        result_adjusted=adjusted,
        per_partner=adjusted / params.partner_doctors,
        buffer_min=series_min(projection.cashflow),
        cash_final=float(projection.cashflow[-1]),
    )


def run_simulation(params: SimulatorParams, constants: EngineConstants = DEFAULT_CONSTANTS) -> SimulationResult:
    """Simulate the practice and aggregate yearly figures, buffer and final cash.

    Raises DivisionByZeroError when ``params.partner_doctors`` is zero.
    """
    return summarize_projection(project_months(params, constants), params, constants)


def build_plan(
    params: SimulatorParams,
    capex: float = 0.0,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> BusinessPlanData:
    """Materialise a simulated trajectory as a stored-plan record."""
    proj = project_months(params, constants)
    months = constants.months
    active = proj.occupancy > 0
    admin = proj.admin_costs + proj.fixed_charges
    opex = proj.operating_costs - proj.salaried_compensation
    lab = np.zeros(months)
    cash_share = float(params.cash_patient_pct) / 100

    def _cash(delay: int) -> np.ndarray:
        return compute_cashflow(proj.revenue, admin, opex, lab, cash_share, delay, False, constants)

    def _fte(count: float) -> np.ndarray:
        return np.where(active, float(count), 0.0)

    fte_partner = _fte(params.partner_doctors)
    fte_independent = _fte(params.independent_doctors)
    fte_salaried = _fte(params.salaried_doctors)
    fte_admin = np.zeros(months)

    return BusinessPlanData(
        revenue=proj.revenue,
        revenue_partner=proj.revenue_partner,
        revenue_independent=proj.revenue_independent,
        revenue_salaried=proj.revenue_salaried,
        revenue_midwife=proj.revenue_midwife,
        result=proj.result,
        cash_no_delay=_cash(0),
        cash_delay_1m=_cash(1),
        cash_delay_3m=_cash(3),
        admin_costs=admin,
        operating_costs=opex,
        lab_costs=lab,
        fte_partner=fte_partner,
        fte_independent=fte_independent,
        fte_salaried=fte_salaried,
        fte_admin=fte_admin,
        fte_total=fte_partner + fte_independent + fte_salaried + fte_admin,
        consultations_per_day=float(params.consultations_per_day),
        fee_per_consultation=float(params.fee_per_consultation),
        working_days_per_year=float(params.working_days_per_year),
        revenue_per_specialist=monthly_revenue_per_specialist(params) * 12,
        capex=float(capex),
    )


def simulation_frame(projection: MonthlyProjection, params: SimulatorParams | None = None) -> pd.DataFrame:
    t = np.arange(len(projection.revenue))
    df = pd.DataFrame(
        {
            "Year": ((t // 12) + 1).astype(int),
            "Month_Number": (t + 1).astype(int),
            "Occupancy": projection.occupancy,
            "Revenue Partner": projection.revenue_partner,
            "Revenue Independent": projection.revenue_independent,
            "Revenue Salaried": projection.revenue_salaried,
            "Revenue Midwife": projection.revenue_midwife,
            "Total Revenue": projection.revenue,
            "Admin Costs": projection.admin_costs,
            "Operating Costs": projection.operating_costs,
            "Fixed Charges": projection.fixed_charges,
            "Total Costs": projection.total_costs,
            "Salaried Compensation": projection.salaried_compensation,
            "Net Result": projection.result,
            "Cumulative Cash": projection.cashflow,
        }
    )
    if params is not None:
        df.attrs["cash_share"] = float(params.cash_patient_pct) / 100
        df.attrs["payment_delay_months"] = int(params.payment_delay_months)
        df.attrs["factoring"] = bool(params.factoring)
    return df
