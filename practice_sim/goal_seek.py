"""Bounded goal seek on a single simulator parameter."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Callable

from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.simulation import run_simulation
from practice_sim.types import SimulatorParams


SEEKABLE_FIELDS = {
    f.name
    for f in fields(SimulatorParams)
    if f.name not in {"factoring", "payment_delay_months", "retrocession_pct"}
}
SEEKABLE_METRICS = {
    "revenue_y1",
    "revenue_y2",
    "revenue_y3",
    "result_y1",
    "result_y2",
    "result_y3",
    "result_adjusted",
    "per_partner",
    "buffer_min",
    "cash_final",
}


@dataclass
class GoalSeekResult:
    status: str
    value: float | None
    achieved: float | None
    iterations: int
    message: str


def solve_bounded_scalar(
    evaluator: Callable[[float], float],
    target: float,
    lower_bound: float,
    upper_bound: float,
    tol: float = 1e-3,
    max_iter: int = 60,
) -> GoalSeekResult:
    """Solve evaluator(x) = target on [lower_bound, upper_bound] by bisection."""
    lo, hi = float(lower_bound), float(upper_bound)
    if hi <= lo:
        return GoalSeekResult("failed", None, None, 0, "Upper bound must be greater than lower bound.")

    y_lo = float(evaluator(lo))
    y_hi = float(evaluator(hi))
    f_lo = y_lo - target
    f_hi = y_hi - target
    if f_lo == 0:
        return GoalSeekResult("solved", lo, y_lo, 0, "Solved at lower bound.")
    if f_hi == 0:
        return GoalSeekResult("solved", hi, y_hi, 0, "Solved at upper bound.")
    if f_lo * f_hi > 0:
        return GoalSeekResult("failed", None, None, 0, "Target is not bracketed by the bounds.")

    mid, y_mid = lo, y_lo
    for i in range(1, max_iter + 1):
        mid = 0.5 * (lo + hi)
        y_mid = float(evaluator(mid))
        f_mid = y_mid - target
        if abs(f_mid) <= tol:
            return GoalSeekResult("solved", mid, y_mid, i, "Converged.")
        if f_lo * f_mid < 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid

    return GoalSeekResult("failed", mid, y_mid, max_iter, "Reached max iterations before tolerance was met.")


def solve_for_param(
    params: SimulatorParams,
    field: str,
    metric: str,
    target: float,
    lower_bound: float,
    upper_bound: float,
    tol: float = 1.0,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> GoalSeekResult:
    """Find the value of ``field`` for which ``metric`` of the simulation reaches ``target``.

    The field is treated as continuous; round the answer for integer inputs.
    """
    if field not in SEEKABLE_FIELDS:
        raise ValueError(f"Cannot goal-seek on '{field}'.")
    if metric not in SEEKABLE_METRICS:
        raise ValueError(f"Unknown metric '{metric}'.")

    def _evaluate(x: float) -> float:
        return getattr(run_simulation(replace(params, **{field: x}), constants), metric)

    return solve_bounded_scalar(_evaluate, target, lower_bound, upper_bound, tol=tol)
