"""Engine constants shared by the simulator and the scenario engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConstants:
    """Tunable constants threaded into every engine entry point."""

    months: int = 36
    factoring_cost_rate: float = 0.015
    # Cash-patient share assumed when re-deriving scenarios of a stored plan.
    baseline_cash_share: float = 0.10
    default_retrocession_pct: float = 40.0
    reference_team_size: int = 7
    admin_base_monthly: float = 52650.0
    opex_base_monthly: float = 45584.0
    admin_scale_factor: float = 0.08
    opex_scale_factor: float = 0.05
    salaried_compensation_rate: float = 0.55
    midwife_monthly_revenue: float = 13333.0
    ramp_months: int = 8
    year2_recovery_share: float = 0.6

    @property
    def years(self) -> int:
        return self.months // 12


DEFAULT_CONSTANTS = EngineConstants()
