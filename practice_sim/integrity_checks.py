"""Identity and roll-forward checks for simulated frames and stored plans."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from practice_sim.cashflow import compute_cashflow
from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.series import annual_sums
from practice_sim.types import BusinessPlanData, SimulationResult


def _finding(check: str, max_abs_delta: float, month: str, lhs_name: str, rhs_name: str) -> dict[str, Any]:
    return {
        "Check": check,
        "Max Abs Delta": float(max_abs_delta),
        "Month of Max Delta": month,
        "LHS": lhs_name,
        "RHS": rhs_name,
    }


def _check_series_identity(
    findings: list[dict[str, Any]],
    check_name: str,
    lhs_name: str,
    rhs_name: str,
    lhs: np.ndarray,
    rhs: np.ndarray,
    tol: float,
) -> None:
    delta = np.nan_to_num(np.asarray(lhs, dtype=float) - np.asarray(rhs, dtype=float), nan=0.0)
    if len(delta) == 0:
        return
    max_abs = float(np.max(np.abs(delta)))
    if max_abs > float(tol):
        month = str(int(np.argmax(np.abs(delta))) + 1)
        findings.append(_finding(check_name, max_abs, month, lhs_name, rhs_name))


def run_integrity_checks(
    df: pd.DataFrame,
    result: SimulationResult | None = None,
    tol: float = 1e-6,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> list[dict[str, Any]]:
    """Check a simulation frame (and optionally its aggregates). Empty list means all checks passed."""
    if not isinstance(df, pd.DataFrame) or df.empty:
        return [{"Check": "Dataframe not available", "Max Abs Delta": np.nan, "Month of Max Delta": "", "LHS": "", "RHS": ""}]

    findings: list[dict[str, Any]] = []

    _check_series_identity(
        findings,
        "Revenue identity",
        "Total Revenue",
        "Partner+Independent+Salaried+Midwife",
        df["Total Revenue"].to_numpy(),
        (df["Revenue Partner"] + df["Revenue Independent"] + df["Revenue Salaried"] + df["Revenue Midwife"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        "Cost identity",
        "Total Costs",
        "Admin + Operating + Fixed Charges",
        df["Total Costs"].to_numpy(),
        (df["Admin Costs"] + df["Operating Costs"] + df["Fixed Charges"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        "Net result identity",
        "Net Result",
        "Total Revenue + Total Costs - Salaried Compensation",
        df["Net Result"].to_numpy(),
        (df["Total Revenue"] + df["Total Costs"] - df["Salaried Compensation"]).to_numpy(),
        tol,
    )
    _check_series_identity(
        findings,
        "Pre-start activity",
        "Total Revenue where Occupancy == 0",
        "0",
        np.where(df["Occupancy"].to_numpy() > 0, 0.0, df["Total Revenue"].to_numpy()),
        np.zeros(len(df)),
        tol,
    )

    if {"cash_share", "payment_delay_months", "factoring"} <= set(df.attrs):
        months = len(df)
        rederived = compute_cashflow(
            df["Total Revenue"].to_numpy(),
            (df["Admin Costs"] + df["Fixed Charges"]).to_numpy(),
            (df["Operating Costs"] - df["Salaried Compensation"]).to_numpy(),
            np.zeros(months),
            df.attrs["cash_share"],
            df.attrs["payment_delay_months"],
            df.attrs["factoring"],
            constants,
        )
        _check_series_identity(
            findings,
            "Cash roll-forward",
            "Cumulative Cash",
            "Payment-policy transform of revenue and costs",
            df["Cumulative Cash"].to_numpy(),
            rederived,
            tol,
        )

    if result is not None:
        years = constants.years
        _check_series_identity(
            findings,
            "Annual revenue sums",
            "revenue_y1..y3",
            "Total Revenue by year",
            np.array([result.revenue_y1, result.revenue_y2, result.revenue_y3]),
            np.array(annual_sums(df["Total Revenue"].to_numpy(), years)),
            tol,
        )
        _check_series_identity(
            findings,
            "Annual result sums",
            "result_y1..y3",
            "Net Result by year",
            np.array([result.result_y1, result.result_y2, result.result_y3]),
            np.array(annual_sums(df["Net Result"].to_numpy(), years)),
            tol,
        )
        cash = df["Cumulative Cash"].to_numpy()
        _check_series_identity(
            findings,
            "Cash summary",
            "buffer_min, cash_final",
            "min(Cumulative Cash), last Cumulative Cash",
            np.array([result.buffer_min, result.cash_final]),
            np.array([cash.min(), cash[-1]]),
            tol,
        )

    return findings


def run_plan_checks(plan: BusinessPlanData, tol: float = 1e-3) -> list[dict[str, Any]]:
    """Soft invariants of a stored plan; consumers assume these hold."""
    findings: list[dict[str, Any]] = []
    _check_series_identity(
        findings,
        "Revenue identity",
        "ca",
        "caAssoc+caIndep+caInterne+caSage",
        plan.revenue,
        np.asarray(plan.revenue_partner) + plan.revenue_independent + plan.revenue_salaried + plan.revenue_midwife,
        tol,
    )
    _check_series_identity(
        findings,
        "FTE identity",
        "fteTotal",
        "fteAssoc+fteIndep+fteInterne+fteAdmin",
        plan.fte_total,
        np.asarray(plan.fte_partner) + plan.fte_independent + plan.fte_salaried + plan.fte_admin,
        tol,
    )
    return findings
