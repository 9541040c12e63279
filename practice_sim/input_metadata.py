"""Input guidance metadata and advisory range checks."""

from __future__ import annotations

from typing import Any


INPUT_GUIDANCE: dict[str, dict[str, Any]] = {
    "consultations_per_day": {"min": 10, "max": 22, "note": "Specialist consultations per working day."},
    "fee_per_consultation": {"min": 150.0, "max": 300.0, "note": "Average billed fee per consultation."},
    "working_days_per_year": {"min": 200, "max": 235, "note": "Clinical working days after holidays and training."},
    "partner_doctors": {"min": 1, "max": 4, "note": "Partners share the result and carry the investment."},
    "independent_doctors": {"min": 0, "max": 5, "note": "Independent doctors pay a retrocession on their billings."},
    "salaried_doctors": {"min": 0, "max": 3, "note": "Salaried doctors cost a fixed share of the revenue they bill."},
    "start_month": {"min": 1, "max": 9, "note": "Opening month; later starts shorten the first year."},
    "occupancy_y1_pct": {"min": 40.0, "max": 85.0, "note": "Year-1 occupancy target reached after the ramp-up."},
    "cash_patient_pct": {"min": 0.0, "max": 25.0, "note": "Share of revenue paid directly by patients."},
    "payment_delay_months": {"min": 0, "max": 3, "note": "Insurer payment delay on the non-cash share."},
    "extra_charges_annual": {"min": 0.0, "max": 250000.0, "note": "Rent, equipment leases and other annual charges."},
    "liability_insurance_annual": {"min": 5000.0, "max": 80000.0, "note": "Annual professional liability premium."},
    "retrocession_pct": {"min": 30.0, "max": 50.0, "note": "Share of billings retained by the practice."},
}


def _fmt(v: float) -> str:
    if abs(v - round(v)) < 1e-9:
        return f"{int(round(v))}"
    return f"{v:.3f}".rstrip("0").rstrip(".")


def help_with_guidance(key: str, base_help: str) -> str:
    g = INPUT_GUIDANCE.get(key)
    if not g:
        return base_help
    return f"{base_help} Reasonable range: {_fmt(g['min'])} to {_fmt(g['max'])}. {g['note']}"


def advisory_warnings(inputs: dict) -> list[str]:
    """Warnings for values outside the usual range. Never blocks a run."""
    warnings: list[str] = []
    for key, g in INPUT_GUIDANCE.items():
        if inputs.get(key) is None:
            continue
        try:
            v = float(inputs[key])
        except (TypeError, ValueError):
            continue
        if v < g["min"] or v > g["max"]:
            warnings.append(f"{key}={_fmt(v)} is outside the recommended range [{_fmt(g['min'])}, {_fmt(g['max'])}].")
    return warnings
