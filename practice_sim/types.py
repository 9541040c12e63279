"""Input and output records of the practice simulation engines."""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np


PLAN_SERIES_FIELDS = (
    "revenue",
    "revenue_partner",
    "revenue_independent",
    "revenue_salaried",
    "revenue_midwife",
    "result",
    "cash_no_delay",
    "cash_delay_1m",
    "cash_delay_3m",
    "admin_costs",
    "operating_costs",
    "lab_costs",
    "fte_partner",
    "fte_independent",
    "fte_salaried",
    "fte_admin",
    "fte_total",
)


@dataclass
class BusinessPlanData:
    """Stored or imported 36-month plan.

    Cost series carry their own sign (outflows are negative) and are added to
    revenue as-is. ``fte_total`` is expected, not enforced, to equal the sum of
    the four FTE categories.
    """

    revenue: np.ndarray
    revenue_partner: np.ndarray
    revenue_independent: np.ndarray
    revenue_salaried: np.ndarray
    revenue_midwife: np.ndarray
    result: np.ndarray
    cash_no_delay: np.ndarray
    cash_delay_1m: np.ndarray
    cash_delay_3m: np.ndarray
    admin_costs: np.ndarray
    operating_costs: np.ndarray
    lab_costs: np.ndarray
    fte_partner: np.ndarray
    fte_independent: np.ndarray
    fte_salaried: np.ndarray
    fte_admin: np.ndarray
    fte_total: np.ndarray
    consultations_per_day: float
    fee_per_consultation: float
    working_days_per_year: float
    revenue_per_specialist: float
    capex: float


@dataclass(frozen=True)
class SimulatorParams:
    consultations_per_day: float
    fee_per_consultation: float
    working_days_per_year: float
    partner_doctors: float
    independent_doctors: float
    salaried_doctors: float
    start_month: int
    occupancy_y1_pct: float
    cash_patient_pct: float
    payment_delay_months: int
    factoring: bool
    extra_charges_annual: float
    liability_insurance_annual: float
    # None means "use the configured default"; 0 is a genuine 0 % rate.
    retrocession_pct: float | None = None

    @property
    def headcount(self) -> float:
        return self.partner_doctors + self.independent_doctors + self.salaried_doctors

    @property
    def annual_charges(self) -> float:
        return self.extra_charges_annual + self.liability_insurance_annual


@dataclass(frozen=True)
class MonthlyProjection:
    """Per-month breakdown produced by the simulator before aggregation."""

    occupancy: np.ndarray
    revenue_partner: np.ndarray
    revenue_independent: np.ndarray
    revenue_salaried: np.ndarray
    revenue_midwife: np.ndarray
    revenue: np.ndarray
    admin_costs: np.ndarray
    operating_costs: np.ndarray
    fixed_charges: np.ndarray
    total_costs: np.ndarray
    salaried_compensation: np.ndarray
    result: np.ndarray
    cashflow: np.ndarray


@dataclass(frozen=True)
class SimulationResult:
    revenue: np.ndarray
    result: np.ndarray
    cashflow: np.ndarray
    revenue_y1: float
    revenue_y2: float
    revenue_y3: float
    result_y1: float
    result_y2: float
    result_y3: float
    result_adjusted: float
    per_partner: float
    buffer_min: float
    cash_final: float

    def scalars(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if not isinstance(getattr(self, f.name), np.ndarray)}


@dataclass(frozen=True)
class CashflowScenarios:
    factoring: np.ndarray
    delay_3m: np.ndarray
    delay_1m: np.ndarray


@dataclass(frozen=True)
class DerivedMetrics:
    revenue_y1: float
    revenue_y2: float
    revenue_y3: float
    result_y1: float
    result_y2: float
    result_y3: float
    cash_factoring: np.ndarray
    cash_delay_3m: np.ndarray
    cash_delay_1m: np.ndarray
    buffer_worst: float
    buffer_factoring: float
    buffer_delay_3m: float
    buffer_delay_1m: float


# JSON record keys used by storage and import collaborators.
PARAM_RECORD_KEYS = {
    "consult": "consultations_per_day",
    "fee": "fee_per_consultation",
    "days": "working_days_per_year",
    "assoc": "partner_doctors",
    "indep": "independent_doctors",
    "interne": "salaried_doctors",
    "start": "start_month",
    "occup": "occupancy_y1_pct",
    "cashPct": "cash_patient_pct",
    "delay": "payment_delay_months",
    "factoring": "factoring",
    "extra": "extra_charges_annual",
    "rc": "liability_insurance_annual",
    "retro": "retrocession_pct",
}

PLAN_RECORD_KEYS = {
    "ca": "revenue",
    "caAssoc": "revenue_partner",
    "caIndep": "revenue_independent",
    "caInterne": "revenue_salaried",
    "caSage": "revenue_midwife",
    "result": "result",
    "cashflow": "cash_no_delay",
    "treso1m": "cash_delay_1m",
    "treso3m": "cash_delay_3m",
    "admin": "admin_costs",
    "opex": "operating_costs",
    "lab": "lab_costs",
    "fteAssoc": "fte_partner",
    "fteIndep": "fte_independent",
    "fteInterne": "fte_salaried",
    "fteAdmin": "fte_admin",
    "fteTotal": "fte_total",
    "consultDay": "consultations_per_day",
    "fee": "fee_per_consultation",
    "daysYear": "working_days_per_year",
    "revSpec": "revenue_per_specialist",
    "capex": "capex",
}
