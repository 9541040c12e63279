from __future__ import annotations

from pathlib import Path

import practice_sim.runtime_logging as runtime_logging


def _redirect(monkeypatch, tmp_path) -> Path:
    log_file = Path(tmp_path) / "runtime_events.jsonl"
    monkeypatch.setattr(runtime_logging, "LOG_DIR", Path(tmp_path))
    monkeypatch.setattr(runtime_logging, "RUNTIME_EVENTS_LOG_FILE", log_file)
    return log_file


def test_runtime_logging_append_and_read(tmp_path, monkeypatch):
    _redirect(monkeypatch, tmp_path)

    runtime_logging.append_runtime_event(
        level="warning",
        event="test_event",
        message="Test warning.",
        context={"case": "append_and_read", "keys": ("a", "b")},
    )
    events = runtime_logging.read_runtime_events(limit=10)
    assert len(events) == 1
    assert events[0]["event"] == "test_event"
    assert events[0]["level"] == "WARNING"
    assert events[0]["context"]["case"] == "append_and_read"
    assert events[0]["context"]["keys"] == ["a", "b"]


def test_runtime_logging_handles_malformed_lines(tmp_path, monkeypatch):
    log_file = _redirect(monkeypatch, tmp_path)
    log_file.write_text('{"event":"ok","level":"INFO","timestamp_utc":"2026-01-01T00:00:00+00:00","message":"ok","context":{}}\nnot-json\n', encoding="utf-8")

    events = runtime_logging.read_runtime_events(limit=10)
    assert len(events) == 2
    assert events[0]["event"] == "ok"
    assert events[1]["event"] == "log_parse_error"


def test_runtime_logging_records_exception_details(tmp_path, monkeypatch):
    _redirect(monkeypatch, tmp_path)
    try:
        raise ValueError("bad plan")
    except ValueError as exc:
        runtime_logging.append_runtime_event("error", "derive_failed", str(exc), exc=exc)

    event = runtime_logging.read_runtime_events()[0]
    assert event["exception_type"] == "ValueError"
    assert "bad plan" in event["traceback"]


def test_configure_log_root_expands_env(tmp_path, monkeypatch):
    monkeypatch.setattr(runtime_logging, "LOG_DIR", runtime_logging.LOG_DIR)
    monkeypatch.setattr(runtime_logging, "RUNTIME_EVENTS_LOG_FILE", runtime_logging.RUNTIME_EVENTS_LOG_FILE)
    monkeypatch.setenv("PRACTICE_SIM_TEST_ROOT", str(tmp_path))

    root = runtime_logging.configure_log_root("$PRACTICE_SIM_TEST_ROOT/logs")
    assert root == Path(tmp_path) / "logs"
    assert runtime_logging.RUNTIME_EVENTS_LOG_FILE == Path(tmp_path) / "logs" / "runtime_events.jsonl"
    assert runtime_logging.configure_log_root("  ") == Path(".local_store")


def test_exception_hook_outside_streamlit(tmp_path, monkeypatch):
    _redirect(monkeypatch, tmp_path)
    seen = []
    monkeypatch.setattr(runtime_logging.sys, "excepthook", lambda *args: seen.append(args[0]))
    monkeypatch.setattr(runtime_logging, "_EXCEPTION_HOOK_INSTALLED", False)
    monkeypatch.setattr(runtime_logging, "get_script_run_ctx", lambda: None)

    runtime_logging.install_global_exception_logging()
    runtime_logging.sys.excepthook(RuntimeError, RuntimeError("boom"), None)
    assert seen == [RuntimeError]
    assert runtime_logging.read_runtime_events() == []


def test_exception_hook_opt_in_captures(tmp_path, monkeypatch):
    _redirect(monkeypatch, tmp_path)
    monkeypatch.setattr(runtime_logging.sys, "excepthook", lambda *args: None)
    monkeypatch.setattr(runtime_logging, "_EXCEPTION_HOOK_INSTALLED", False)
    monkeypatch.setattr(runtime_logging, "get_script_run_ctx", lambda: None)

    runtime_logging.install_global_exception_logging(capture_outside_streamlit=True)
    runtime_logging.sys.excepthook(RuntimeError, RuntimeError("boom"), None)
    events = runtime_logging.read_runtime_events()
    assert events[0]["event"] == "uncaught_exception"
    assert events[0]["exception_type"] == "RuntimeError"


def test_params_digest_ignores_key_order():
    a = runtime_logging.params_digest({"fee": 225, "consult": 16, "factoring": False})
    b = runtime_logging.params_digest({"factoring": False, "consult": 16, "fee": 225})
    assert a == b
    assert len(a) == 12
    assert runtime_logging.params_digest({"fee": 230, "consult": 16, "factoring": False}) != a


def test_simulation_event_carries_run_context(tmp_path, monkeypatch):
    _redirect(monkeypatch, tmp_path)
    record = {"fee": 225, "consult": 16}

    runtime_logging.log_simulation_event("simulate", record, {"caY1": 1.0})
    runtime_logging.log_simulation_event("stress", record, warnings=["fee=400 clamped to [120, 350]."])
    first, second = runtime_logging.read_runtime_events()

    assert first["event"] == "simulate"
    assert first["level"] == "INFO"
    assert first["context"]["params_digest"] == runtime_logging.params_digest(record)
    assert first["context"]["summary"] == {"caY1": 1.0}
    assert second["level"] == "WARNING"
    assert second["context"]["command"] == "stress"
    assert second["context"]["warnings"] == ["fee=400 clamped to [120, 350]."]
