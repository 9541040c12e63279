"""Command line entry point: simulate, derive and stress sub-commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from practice_sim.input_metadata import advisory_warnings, help_with_guidance
from practice_sim.integrity_checks import run_plan_checks
from practice_sim.metrics import compute_derived, compute_plan_kpis
from practice_sim.runtime_logging import (
    append_runtime_event,
    install_global_exception_logging,
    log_simulation_event,
    runtime_log_path,
)
from practice_sim.schema import (
    derived_to_record,
    migrate_params,
    params_to_record,
    plan_from_record,
    result_to_record,
)
from practice_sim.sensitivity import run_one_way_sensitivity, run_stress_scenarios
from practice_sim.simulation import project_months, simulation_frame, summarize_projection


def _load_json(path: str | None) -> Any:
    if path is None:
        return {}
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _json_default(value: Any):
    if hasattr(value, "tolist"):
        return value.tolist()
    return str(value)


def _emit(payload: dict, out: str | None) -> None:
    text = json.dumps(payload, indent=2, default=_json_default, ensure_ascii=False)
    if out:
        Path(out).write_text(text + "\n", encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")


PARAM_HELP = {
    "consultations_per_day": "Consultations per doctor per working day.",
    "fee_per_consultation": "Average fee per consultation.",
    "working_days_per_year": "Working days per year.",
    "partner_doctors": "Number of partner doctors.",
    "independent_doctors": "Number of independent doctors.",
    "salaried_doctors": "Number of salaried doctors.",
    "start_month": "Opening month (1-12).",
    "occupancy_y1_pct": "Year-1 occupancy target in percent.",
    "cash_patient_pct": "Cash-paying patients in percent of revenue.",
    "payment_delay_months": "Insurer payment delay in months (snapped to 0, 1 or 3).",
    "extra_charges_annual": "Extra annual charges.",
    "liability_insurance_annual": "Annual liability insurance premium.",
    "retrocession_pct": "Retrocession rate paid by independents, in percent.",
}


def _add_param_overrides(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("parameter overrides", "Applied on top of --params before validation.")
    for field, text in PARAM_HELP.items():
        group.add_argument(
            f"--{field.replace('_', '-')}",
            dest=field,
            type=float,
            default=None,
            help=help_with_guidance(field, text),
        )


def _load_params(args: argparse.Namespace):
    record = _load_json(args.params)
    record = dict(record) if isinstance(record, dict) else {}
    for field in PARAM_HELP:
        value = getattr(args, field, None)
        if value is not None:
            record[field] = value
    params, warnings, unknown = migrate_params(record)
    for w in warnings:
        append_runtime_event("WARNING", "params_migration", w, {"source": args.params})
    if unknown:
        append_runtime_event("WARNING", "params_unknown_keys", "Ignored unknown parameter keys.", {"keys": unknown})
    return params, warnings, unknown


def cmd_simulate(args: argparse.Namespace) -> int:
    params, warnings, unknown = _load_params(args)
    projection = project_months(params)
    result = summarize_projection(projection, params)
    if args.monthly_csv:
        simulation_frame(projection, params).to_csv(args.monthly_csv, index=False)
    _emit(
        {
            "params": params_to_record(params),
            "warnings": warnings,
            "advisories": advisory_warnings(vars(params)),
            "unknown_keys": unknown,
            "result": result_to_record(result),
        },
        args.out,
    )
    log_simulation_event("simulate", params_to_record(params), result.scalars(), warnings)
    return 0


def cmd_derive(args: argparse.Namespace) -> int:
    plan = plan_from_record(_load_json(args.plan))
    derived = compute_derived(plan)
    findings = run_plan_checks(plan)
    if findings:
        append_runtime_event("WARNING", "plan_checks", "Plan failed consistency checks.", {"findings": findings})
    _emit(
        {
            "derived": derived_to_record(derived),
            "kpis": compute_plan_kpis(plan, derived),
            "checks": findings,
        },
        args.out,
    )
    append_runtime_event("INFO", "derive", "Derived metrics computed.", {"buffer_worst": derived.buffer_worst})
    return 0


def cmd_stress(args: argparse.Namespace) -> int:
    params, warnings, _ = _load_params(args)
    df = run_one_way_sensitivity(params) if args.one_way else run_stress_scenarios(params)
    if args.out:
        df.to_csv(args.out, index=False)
    else:
        sys.stdout.write(df.to_csv(index=False))
    log_simulation_event("stress", params_to_record(params), {"one_way": args.one_way, "rows": len(df)}, warnings)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="practice-sim", description="36-month medical practice financial simulation.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sim = sub.add_parser("simulate", help="Run the what-if simulator on a parameter record.")
    p_sim.add_argument("--params", help="Parameter JSON file ('-' for stdin). Defaults are used when omitted.")
    p_sim.add_argument("--monthly-csv", help="Write the monthly breakdown to this CSV file.")
    p_sim.add_argument("--out", help="Write the summary JSON here instead of stdout.")
    _add_param_overrides(p_sim)
    p_sim.set_defaults(func=cmd_simulate)

    p_der = sub.add_parser("derive", help="Derive scenarios and KPIs for a stored plan.")
    p_der.add_argument("plan", help="Plan JSON file ('-' for stdin).")
    p_der.add_argument("--out", help="Write the derived JSON here instead of stdout.")
    p_der.set_defaults(func=cmd_derive)

    p_str = sub.add_parser("stress", help="Pessimistic / base / optimistic table.")
    p_str.add_argument("--params", help="Parameter JSON file ('-' for stdin).")
    p_str.add_argument("--one-way", action="store_true", help="One-way sensitivity per driver instead.")
    p_str.add_argument("--out", help="Write the table as CSV here instead of stdout.")
    _add_param_overrides(p_str)
    p_str.set_defaults(func=cmd_stress)
    return parser


def main(argv: list[str] | None = None) -> int:
    install_global_exception_logging(capture_outside_streamlit=True)
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ValueError, ZeroDivisionError, OSError) as exc:
        append_runtime_event("ERROR", f"{args.command}_failed", str(exc), exc=exc)
        sys.stderr.write(f"error: {exc} (details in {runtime_log_path()})\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
