# tests/test_logging_utils.py
import os
from decimal import Decimal

from modules.job_harvest.lib import logging_bridge
from modules.job_harvest.lib.models import SeniorityLevel
from service import logging_utils as L


def test_activity_records_land_in_log_dir(tmp_path):
    L.write_activity_log({"event": "unit", "n": 1})
    path = L.get_activity_log_path()
    assert path.startswith(str(tmp_path / "logs"))
    assert os.path.basename(path).startswith("activity-test-")

    (rec,) = L.read_records(path)
    assert rec["event"] == "unit"
    assert rec["_meta"]["host"]
    assert rec["_meta"]["ts"].endswith("Z")


def test_listing_values_serialize():
    L.write_error_log({"salary": Decimal("1.50"), "level": SeniorityLevel.SENIOR, "skills": frozenset({"b", "a"})})
    (rec,) = L.read_records(L.get_error_log_path())
    assert rec["salary"] == "1.50"
    assert rec["level"] == "Senior"
    assert rec["skills"] == ["a", "b"]


def test_deep_redaction_never_mutates_input():
    record = {"headers": {"Authorization": "Bearer abc", "Accept": "json"}, "note": "bearer xyz", "api_key": "k"}
    out = L.redact(record)
    assert out["headers"]["Authorization"] == "***REDACTED***"
    assert out["headers"]["Accept"] == "json"
    assert out["note"] == "bearer ***REDACTED***"
    assert out["api_key"] == "***REDACTED***"
    assert record["api_key"] == "k"


def test_missing_file_reads_empty(tmp_path):
    assert L.read_records(str(tmp_path / "nope.jsonl")) == []


def test_size_rotation(monkeypatch):
    monkeypatch.setenv("ACTIVITY_LOG_MAX_BYTES", "10")
    L.write_activity_log({"event": "first", "padding": "x" * 20})
    L.write_activity_log({"event": "second"})
    path = L.get_activity_log_path()
    assert [r["event"] for r in L.read_records(path)] == ["second"]
    rotated = [p for p in os.listdir(os.path.dirname(path)) if p.startswith(os.path.basename(path) + ".")]
    assert len(rotated) == 1


def test_bridge_redacts_and_writes():
    logging_bridge.activity({"op": "probe", "token": "secret-value"})
    logging_bridge.error({"op": "probe-error"})
    (act,) = L.read_records(L.get_activity_log_path())
    assert act["token"] == "***REDACTED***"
    assert L.read_records(L.get_error_log_path())[0]["op"] == "probe-error"
