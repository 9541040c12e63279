"""Runtime diagnostics for simulation runs, kept as an append-only JSONL file."""

from __future__ import annotations

import hashlib
import json
import os
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from streamlit.runtime.scriptrunner import get_script_run_ctx


LOG_DIR = Path(".local_store")
RUNTIME_EVENTS_LOG_FILE = LOG_DIR / "runtime_events.jsonl"

_DEFAULT_LOG_DIR = Path(".local_store")
_STORAGE_ENV_VAR = "PRACTICE_SIM_STORAGE_ROOT"
_EVENTS_FILE_NAME = "runtime_events.jsonl"

_EXCEPTION_HOOK_INSTALLED = False


def _json_default(value: Any):
    # numpy scalars and arrays from engine results
    if hasattr(value, "tolist"):
        return value.tolist()
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


def configure_log_root(path_value: str | Path | None) -> Path:
    """Point the event log at ``path_value``; blank or None means ``.local_store``."""
    global LOG_DIR, RUNTIME_EVENTS_LOG_FILE
    text = "" if path_value is None else str(path_value).strip()
    LOG_DIR = Path(os.path.expandvars(os.path.expanduser(text))) if text else _DEFAULT_LOG_DIR
    RUNTIME_EVENTS_LOG_FILE = LOG_DIR / _EVENTS_FILE_NAME
    return LOG_DIR


def runtime_log_path() -> str:
    return str(RUNTIME_EVENTS_LOG_FILE.resolve())


def params_digest(params_record: dict[str, Any]) -> str:
    """Short stable fingerprint of a parameter record, to group runs of one scenario."""
    canonical = json.dumps(params_record, sort_keys=True, default=_json_default)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def _event_record(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None,
    exc: BaseException | None,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "level": str(level).upper(),
        "event": str(event),
        "message": str(message),
        "context": context or {},
    }
    if exc is not None:
        record["exception_type"] = type(exc).__name__
        record["exception_message"] = str(exc)
        if exc.__traceback__ is not None:
            record["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return record


def append_runtime_event(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    """Append one structured event. Write failures are dropped so a run never fails on logging."""
    line = json.dumps(_event_record(level, event, message, context, exc), default=_json_default, ensure_ascii=False)
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with RUNTIME_EVENTS_LOG_FILE.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        pass


def log_simulation_event(
    command: str,
    params_record: dict[str, Any],
    summary: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> None:
    """Record a completed engine run with its parameters, digest and headline figures."""
    append_runtime_event(
        level="WARNING" if warnings else "INFO",
        event=command,
        message=f"{command} completed" + (f" with {len(warnings)} input warning(s)." if warnings else "."),
        context={
            "command": command,
            "params_digest": params_digest(params_record),
            "params": params_record,
            "summary": summary or {},
            "warnings": warnings or [],
        },
    )


def read_runtime_events(limit: int = 200) -> list[dict[str, Any]]:
    if limit <= 0 or not RUNTIME_EVENTS_LOG_FILE.exists():
        return []
    try:
        lines = RUNTIME_EVENTS_LOG_FILE.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []
    events: list[dict[str, Any]] = []
    for line in lines[-int(limit) :]:
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError:
            events.append(_event_record("ERROR", "log_parse_error", "Malformed log line encountered.", {"line": line}, None))
    return events


def install_global_exception_logging(capture_outside_streamlit: bool = False) -> None:
    """Capture uncaught exceptions into the runtime log.

    Inside a Streamlit script run they are always captured. Other processes
    only capture when ``capture_outside_streamlit`` is set, as the command
    line entry point does.
    """
    global _EXCEPTION_HOOK_INSTALLED
    if _EXCEPTION_HOOK_INSTALLED:
        return
    previous_hook = sys.excepthook

    def _hook(exc_type, exc, exc_tb):
        if capture_outside_streamlit or get_script_run_ctx() is not None:
            append_runtime_event("ERROR", "uncaught_exception", str(exc), exc=exc)
        previous_hook(exc_type, exc, exc_tb)

    sys.excepthook = _hook
    _EXCEPTION_HOOK_INSTALLED = True


configure_log_root(os.getenv(_STORAGE_ENV_VAR, ""))
