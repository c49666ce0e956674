# service/logging_utils.py
from __future__ import annotations

import contextlib
import datetime as _dt
import json
import os
import socket
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import Any

# ---- Configuration (env-driven, read per call so tests can redirect) --------
#   LOG_DIR                   base directory for JSONL files (default /app/local/logs)
#   ACTIVITY_LOG_PREFIX       activity file prefix (default "activity")
#   ERROR_LOG_PREFIX          error file prefix (default "error")
#   ACTIVITY_LOG_MAX_BYTES    size-based rotation threshold; <=0 disables it
# Date-based rotation is always on via YYYY-MM-DD filenames.

_DEFAULT_LOG_DIR = "/app/local/logs"

# Key substrings whose values never reach disk (case-insensitive)
_DEFAULT_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "cookie",
    "set-cookie",
    "proxy",
    "session",
}

_REDACTED = "***REDACTED***"

# Host + process metadata (fixed per-process)
_HOSTNAME = socket.gethostname()
_PID = os.getpid()


# ---- Public API --------------------------------------------------------------


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Persist one structured activity record (engine start/summary, per-source outcome).
    Never mutates the passed-in dict. May raise OSError / TypeError / ValueError;
    logging_bridge falls back to stdlib logging when it does.
    """
    _write_jsonl(_log_path_for_today(_activity_prefix()), record)


def write_error_log(record: dict[str, Any]) -> None:
    """Persist one structured error record, parallel to the activity log."""
    _write_jsonl(_log_path_for_today(_error_prefix()), record)


def get_activity_log_path() -> str:
    return _log_path_for_today(_activity_prefix())


def get_error_log_path() -> str:
    return _log_path_for_today(_error_prefix())


def read_records(path: str) -> list[dict[str, Any]]:
    """Load a JSONL log file; a missing file reads as empty."""
    try:
        with open(path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
    except FileNotFoundError:
        return []


def redact(record: dict[str, Any], keys: set[str] | None = None) -> dict[str, Any]:
    """
    Redacted deep copy of `record`: values under keys containing any of the
    substrings in `keys` are replaced. Does not mutate input.
    """
    return _redact_deep(record, keys or _DEFAULT_REDACT_KEYS)


# ---- Internal helpers --------------------------------------------------------


def _log_dir() -> str:
    return os.getenv("LOG_DIR", _DEFAULT_LOG_DIR)


def _activity_prefix() -> str:
    return os.getenv("ACTIVITY_LOG_PREFIX", "activity")


def _error_prefix() -> str:
    return os.getenv("ERROR_LOG_PREFIX", "error")


def _max_bytes() -> int:
    try:
        return int(os.getenv("ACTIVITY_LOG_MAX_BYTES", "0"))
    except ValueError:
        return 0


def _log_path_for_today(prefix: str) -> str:
    today = _dt.date.today().isoformat()  # YYYY-MM-DD
    return os.path.join(_log_dir(), f"{prefix}-{today}.jsonl")


def _ensure_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def _rotate_file_if_needed(path: str) -> None:
    """Size-based rotation on top of the per-day filenames; never loses data."""
    limit = _max_bytes()
    if limit <= 0:
        return
    try:
        if os.path.getsize(path) < limit:
            return
    except FileNotFoundError:
        return
    ts = _dt.datetime.now().strftime("%Y%m%d-%H%M%S")
    with contextlib.suppress(FileNotFoundError):
        os.replace(path, f"{path}.{ts}")


def _json_default(value: Any) -> Any:
    # listing fields: Decimal salaries, datetimes, str-enums, frozenset skills
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (_dt.datetime, _dt.date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=_json_default)


def _safe_bearer_scrub(value: str) -> str:
    """'Bearer abc.def' -> 'Bearer ***REDACTED***'; keeps the scheme."""
    if "bearer " in value.lower():
        scheme, _, _ = value.partition(" ")
        return f"{scheme} {_REDACTED}"
    return value


def _key_matches(name: str, patterns: Iterable[str]) -> bool:
    n = name.lower()
    return any(pat in n for pat in patterns)


def _redact_deep(value: Any, patterns: Iterable[str]) -> Any:
    if isinstance(value, dict):
        return {
            k: _REDACTED if isinstance(k, str) and _key_matches(k, patterns) else _redact_deep(v, patterns)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact_deep(v, patterns) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact_deep(v, patterns) for v in value)
    if isinstance(value, str):
        return _safe_bearer_scrub(value)
    return value


def _with_metadata(record: dict[str, Any]) -> dict[str, Any]:
    meta = record.get("_meta", {})
    if not isinstance(meta, dict):
        meta = {}
    out = dict(record)
    out["_meta"] = {
        **meta,
        "ts": _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "host": _HOSTNAME,
        "pid": _PID,
    }
    return out


def _write_jsonl(path: str, record: dict[str, Any]) -> None:
    """
    Core writer: redact, stamp metadata, serialize, then append one line with
    O_APPEND (atomic per write on POSIX). Retries once on OSError.
    """
    _ensure_dir(path)
    _rotate_file_if_needed(path)

    # Serialize before touching the file so a bad record writes nothing
    data = (_json_dumps(_with_metadata(_redact_deep(record, _DEFAULT_REDACT_KEYS))) + "\n").encode("utf-8")
    flags = os.O_CREAT | os.O_APPEND | os.O_WRONLY

    def _append_once() -> None:
        fd = os.open(path, flags, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    try:
        _append_once()
    except OSError:
        _ensure_dir(path)
        _append_once()
