from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Query parameters that only carry click/campaign tracking
_TRACKING_PARAMS = {
    "gclid",
    "fbclid",
    "msclkid",
    "mc_cid",
    "mc_eid",
    "trk",
    "trkinfo",
    "trackingid",
    "refid",
    "_hsenc",
    "_hsmi",
}

_WS_RE = re.compile(r"\s+")


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def getenv_str(name: str, default: str | None = None) -> str | None:
    """
    Typed wrapper for environment access.
    """
    val = os.getenv(name)
    return val if val is not None else default


def clean_text(s: Any) -> str:
    """Collapse whitespace runs (including NBSP) into single spaces."""
    if s is None:
        return ""
    return _WS_RE.sub(" ", str(s)).strip()


def canonical_url(url: str) -> str:
    """
    Drop the fragment and tracking query parameters (utm_*, gclid, trk, ...).
    Remaining parameters keep their original order.
    """
    url = (url or "").strip()
    if not url:
        return ""
    parts = urlsplit(url)
    kept = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept, doseq=True), ""))


def strip_query(url: str) -> str:
    """Remove query string and fragment entirely (LinkedIn-style canonical links)."""
    parts = urlsplit((url or "").strip())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def split_location(location: str) -> tuple[str, str]:
    """
    'Berlin, Germany' -> ('Berlin', 'Germany'); 'Kyiv' -> ('Kyiv', '').
    City is the first comma part, country the last when there is more than one.
    """
    parts = [p.strip() for p in clean_text(location).split(",") if p.strip()]
    if not parts:
        return ("", "")
    city = parts[0]
    country = parts[-1] if len(parts) > 1 else ""
    return (city, country)


def parse_datetime(value: Any) -> datetime | None:
    """
    Best-effort parse of ISO-8601 strings, epoch seconds, or epoch milliseconds.
    Returns an aware UTC datetime or None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts > 1e11:  # milliseconds
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    s = str(value).strip()
    if s.isdigit():
        return parse_datetime(int(s))
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def mentions(keywords: str, *texts: Any) -> bool:
    """Case-insensitive phrase match for client-side filtering; blank keywords match everything."""
    needle = clean_text(keywords).lower()
    if not needle:
        return True
    return any(needle in clean_text(t).lower() for t in texts if t)
