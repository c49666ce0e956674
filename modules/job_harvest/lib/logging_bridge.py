from __future__ import annotations

import logging
from typing import Any

# Structured records go to service.logging_utils when the host service is on
# the path; otherwise they fall back to stdlib logging. Silent on import.
_logging_backend = None
try:
    from service import logging_utils as _svc_logging  # type: ignore

    _logging_backend = _svc_logging
except ImportError:
    _logging_backend = None

# Top-level keys that never reach a log line verbatim
_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
    "cookie",
    "proxy",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    The JSONL backend applies its own deep redaction on top.
    """
    redacted = dict(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.endswith("_secret") or lk.endswith("_token"):
            redacted[k] = "***REDACTED***"
    return redacted


def _emit(writer_name: str, fallback_logger: str, level: int, record: dict[str, Any]) -> None:
    payload = _redact_record(record)
    writer = getattr(_logging_backend, writer_name, None) if _logging_backend else None
    if writer is not None:
        try:
            writer(payload)
            return
        except (OSError, TypeError, ValueError):
            logging.getLogger(__name__).debug("%s failed; falling back to stdlib", writer_name, exc_info=True)
    logging.getLogger(fallback_logger).log(level, payload)


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record (start/summary/per-source outcome).
    Falls back to stdlib logging as structured info.
    """
    _emit("write_activity_log", "job_harvest.activity", logging.INFO, record)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record (a source failed, a harvester raised).
    Falls back to stdlib logging as structured error.
    """
    _emit("write_error_log", "job_harvest.error", logging.ERROR, record)
