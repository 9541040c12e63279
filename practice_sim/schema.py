"""Record schema helpers: parameter bounds, migration and JSON conversion."""

from __future__ import annotations

import math
from copy import deepcopy
from typing import Any

import numpy as np

from practice_sim.config import DEFAULT_CONSTANTS, EngineConstants
from practice_sim.defaults import SIMULATOR_DEFAULTS
from practice_sim.series import as_series, round_half_up
from practice_sim.types import (
    PARAM_RECORD_KEYS,
    PLAN_RECORD_KEYS,
    PLAN_SERIES_FIELDS,
    BusinessPlanData,
    DerivedMetrics,
    SimulationResult,
    SimulatorParams,
)


PARAM_BOUNDS: dict[str, tuple[float, float]] = {
    "consult": (8, 24),
    "fee": (120, 350),
    "days": (180, 250),
    "assoc": (1, 4),
    "indep": (0, 6),
    "interne": (0, 4),
    "start": (1, 12),
    "occup": (30, 100),
    "cashPct": (0, 30),
    "extra": (0, 400000),
    "rc": (0, 120000),
    "retro": (20, 60),
}
DELAY_OPTIONS = (0, 1, 3)

_FIELD_TO_RECORD_KEY = {field: key for key, field in PARAM_RECORD_KEYS.items()}
_PLAN_FIELD_TO_RECORD_KEY = {field: key for key, field in PLAN_RECORD_KEYS.items()}


def _coerce_bool(val: Any) -> bool | None:
    if isinstance(val, bool):
        return val
    if isinstance(val, (int, float)):
        return bool(val) if math.isfinite(val) else None
    if isinstance(val, str):
        txt = val.strip().lower()
        if txt in {"1", "true", "yes", "y", "on"}:
            return True
        if txt in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _finite_or_none(val: Any) -> float | None:
    try:
        out = float(val)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def migrate_params(raw_record: dict | None) -> tuple[SimulatorParams, list[str], list[str]]:
    """Normalise an incoming parameter record into SimulatorParams.

    Missing keys take the simulator defaults, values are clamped to the
    documented bounds and the delay is snapped to the nearest supported
    option. A missing or zero retrocession rate falls back to the default.
    Returns (params, warnings, unknown_keys).
    """
    warnings: list[str] = []
    unknown_keys: list[str] = []
    record = deepcopy(SIMULATOR_DEFAULTS)
    payload = raw_record if isinstance(raw_record, dict) else {}

    for k, v in payload.items():
        key = _FIELD_TO_RECORD_KEY.get(k, k)
        if key in record:
            record[key] = v
        else:
            unknown_keys.append(k)

    retro = record.get("retro")
    if retro is None or retro == 0:
        if "retro" in payload or "retrocession_pct" in payload:
            warnings.append("retro missing or 0; using the default retrocession rate.")
        record["retro"] = SIMULATOR_DEFAULTS["retro"]

    for key, (lo, hi) in PARAM_BOUNDS.items():
        val = _finite_or_none(record[key])
        if val is None:
            warnings.append(f"{key} invalid and reset to default.")
            val = float(SIMULATOR_DEFAULTS[key])
        if val < lo or val > hi:
            warnings.append(f"{key}={val:g} clamped to [{lo}, {hi}].")
            val = min(hi, max(lo, val))
        record[key] = round_half_up(val)

    delay = _finite_or_none(record["delay"])
    if delay is None:
        warnings.append("delay invalid and reset to default.")
        delay = float(SIMULATOR_DEFAULTS["delay"])
    snapped = min(DELAY_OPTIONS, key=lambda d: abs(d - delay))
    if snapped != delay:
        warnings.append(f"delay={delay:g} snapped to {snapped}.")
    record["delay"] = snapped

    factoring = _coerce_bool(record["factoring"])
    if factoring is None:
        warnings.append("factoring invalid and reset to default.")
        factoring = bool(SIMULATOR_DEFAULTS["factoring"])
    record["factoring"] = factoring

    return params_from_record(record), warnings, sorted(unknown_keys)


def params_from_record(record: dict) -> SimulatorParams:
    """Build SimulatorParams from a record without validation or clamping."""
    values = {PARAM_RECORD_KEYS[k]: v for k, v in record.items() if k in PARAM_RECORD_KEYS}
    missing = [f for f in PARAM_RECORD_KEYS.values() if f not in values and f != "retrocession_pct"]
    if missing:
        raise ValueError(f"Missing simulator parameters: {', '.join(missing)}.")
    return SimulatorParams(**values)


def params_to_record(params: SimulatorParams) -> dict:
    return {key: getattr(params, field) for key, field in PARAM_RECORD_KEYS.items()}


def _plan_scalar(flat: dict, key: str) -> float:
    val = _finite_or_none(flat[key])
    if val is None:
        raise ValueError(f"Plan field '{key}' must be a finite number, got {flat[key]!r}.")
    return val


def plan_from_record(record: dict, constants: EngineConstants = DEFAULT_CONSTANTS) -> BusinessPlanData:
    """Parse a stored plan record.

    Monthly series may sit at the top level or under ``data`` (the stored-plan
    layout). Raises ValueError for a missing or non-numeric field and
    ShapeError for a series of the wrong length.
    """
    if not isinstance(record, dict):
        raise ValueError("Plan record must be a JSON object.")
    flat = dict(record)
    if isinstance(record.get("data"), dict):
        flat.update(record["data"])

    values: dict[str, Any] = {}
    for field in PLAN_SERIES_FIELDS:
        key = _PLAN_FIELD_TO_RECORD_KEY[field]
        if key not in flat:
            raise ValueError(f"Plan record is missing series '{key}'.")
        try:
            values[field] = as_series(flat[key], constants.months, key)
        except TypeError as exc:
            raise ValueError(f"Plan series '{key}' is not numeric.") from exc

    for key in ("consultDay", "fee", "daysYear"):
        if key not in flat:
            raise ValueError(f"Plan record is missing '{key}'.")
        values[PLAN_RECORD_KEYS[key]] = _plan_scalar(flat, key)

    if flat.get("revSpec") is not None:
        values["revenue_per_specialist"] = _plan_scalar(flat, "revSpec")
    else:
        values["revenue_per_specialist"] = (
            values["consultations_per_day"] * values["fee_per_consultation"] * values["working_days_per_year"]
        )
    values["capex"] = _plan_scalar(flat, "capex") if flat.get("capex") else 0.0
    return BusinessPlanData(**values)


def _listify(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return [float(v) for v in value]
    return value


def plan_to_record(plan: BusinessPlanData) -> dict:
    return {key: _listify(getattr(plan, field)) for key, field in PLAN_RECORD_KEYS.items()}


def result_to_record(result: SimulationResult) -> dict:
    return {
        "ca": _listify(result.revenue),
        "result": _listify(result.result),
        "cashflow": _listify(result.cashflow),
        "caY1": result.revenue_y1,
        "caY2": result.revenue_y2,
        "caY3": result.revenue_y3,
        "resY1": result.result_y1,
        "resY2": result.result_y2,
        "resY3": result.result_y3,
        "resAdj": result.result_adjusted,
        "perAssoc": result.per_partner,
        "bfrMin": result.buffer_min,
        "tresoFinal": result.cash_final,
    }


def derived_to_record(derived: DerivedMetrics) -> dict:
    return {
        "caY1": derived.revenue_y1,
        "caY2": derived.revenue_y2,
        "caY3": derived.revenue_y3,
        "resY1": derived.result_y1,
        "resY2": derived.result_y2,
        "resY3": derived.result_y3,
        "tresoFact": _listify(derived.cash_factoring),
        "tresoCash3m": _listify(derived.cash_delay_3m),
        "tresoCash1m": _listify(derived.cash_delay_1m),
        "bfrWorst": derived.buffer_worst,
        "bfrFact": derived.buffer_factoring,
        "bfrCash3m": derived.buffer_delay_3m,
        "bfrCash1m": derived.buffer_delay_1m,
    }
