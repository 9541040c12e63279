"""Cumulative cash position under a receivables payment policy.

This is the only implementation of the payment-policy transform. The
simulator and the scenario engine both call it, so a given revenue and cost
trajectory always yields the same cash series regardless of the caller.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.series import as_series
from practice_sim.types import CashflowScenarios


def receivables_inflow(
    receivable: np.ndarray,
    delay_months: int,
    factoring: bool,
    factoring_cost_rate: float,
) -> np.ndarray:
    """Month-by-month cash received for the non-cash share of revenue."""
    if factoring:
        return receivable * (1 - factoring_cost_rate)
    delay = int(delay_months)
    if delay < 0:
        raise ValueError("delay_months must be non-negative.")
    inflow = np.zeros(len(receivable), dtype=float)
    # Receivables billed before the first month are not modelled.
    if delay < len(receivable):
        inflow[delay:] = receivable[: len(receivable) - delay]
    return inflow


def compute_cashflow(
    revenue: Sequence[float],
    admin: Sequence[float],
    opex: Sequence[float],
    lab: Sequence[float],
    cash_share: float,
    delay_months: int,
    factoring: bool,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> np.ndarray:
    """Return the cumulative cash position for each month.

    ``cash_share`` of each month's revenue is collected immediately. The rest
    is either factored in the same month at ``constants.factoring_cost_rate``
    or collected ``delay_months`` later. Cost series are added as given.
    """
    months = constants.months
    ca = as_series(revenue, months, "revenue")
    costs = (
        as_series(admin, months, "admin")
        + as_series(opex, months, "opex")
        + as_series(lab, months, "lab")
    )
    share = float(cash_share)

    immediate = ca * share
    inflow = immediate + receivables_inflow(ca * (1 - share), delay_months, factoring, constants.factoring_cost_rate)
    return np.cumsum(inflow + costs)


def compute_scenarios(
    revenue: Sequence[float],
    admin: Sequence[float],
    opex: Sequence[float],
    lab: Sequence[float],
    cash_share: float,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> CashflowScenarios:
    """Factoring, 3-month and 1-month delay trajectories for one plan."""
    return CashflowScenarios(
        factoring=compute_cashflow(revenue, admin, opex, lab, cash_share, 0, True, constants),
        delay_3m=compute_cashflow(revenue, admin, opex, lab, cash_share, 3, False, constants),
        delay_1m=compute_cashflow(revenue, admin, opex, lab, cash_share, 1, False, constants),
    )
