"""
Salary text -> (min, max, currency, is_hourly).

Recognized, first hit wins:
  1. ranged hourly      "$80-$120/hr", "40 - 60 EUR per hour"
  2. single hourly      "$45/hr"
  3. fixed budget       "Budget: $1,500"
  4. range w/ currency  "€60,000 - €80,000", "30 000 – 40 000 грн", "$60k-$80k"
  5. single w/ currency "до $5000", "4500 USD"
Anything else -> SalaryInfo(None, None, default_currency, False).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache

DEFAULT_CURRENCY = "USD"

# marker (lower-case) -> ISO code; pass `markers=` to extend per source
CURRENCY_MARKERS: dict[str, str] = {
    "$": "USD",
    "us$": "USD",
    "usd": "USD",
    "€": "EUR",
    "eur": "EUR",
    "£": "GBP",
    "gbp": "GBP",
    "₴": "UAH",
    "грн": "UAH",
    "uah": "UAH",
    "zł": "PLN",
    "pln": "PLN",
    "chf": "CHF",
}

# grouping separators only count when a full group of three digits follows
_NUM = r"(?:\d{1,3}(?:[ \u00a0.,]\d{3}(?!\d))+(?:[.,]\d+)?|\d+(?:[.,]\d+)?)(?:\s?[kK](?![a-zA-Z]))?"
_DASH = r"(?:-|–|—|to|до)"
_HOURLY = r"\s*(?:/\s*|per\s+|an?\s+)(?:hr|hour|h)\b"

_GROUPED_COMMA = re.compile(r"\d{1,3}(?:,\d{3})+")
_GROUPED_DOT = re.compile(r"\d{1,3}(?:\.\d{3})+")


@dataclass(frozen=True)
class SalaryInfo:
    min: Decimal | None
    max: Decimal | None
    currency: str | None = DEFAULT_CURRENCY
    is_hourly: bool = False

    @property
    def is_present(self) -> bool:
        return self.min is not None


@dataclass(frozen=True)
class _Patterns:
    hourly_range: re.Pattern[str]
    hourly_single: re.Pattern[str]
    budget: re.Pattern[str]
    range: re.Pattern[str]
    single: re.Pattern[str]
    any_marker: re.Pattern[str]


def _marker_regex(markers: tuple[str, ...]) -> str:
    alts = []
    for m in sorted(markers, key=len, reverse=True):
        esc = re.escape(m)
        # word-like codes need boundaries ("usd" must not hit "usdt")
        alts.append(rf"(?<![^\W\d_]){esc}(?![^\W\d_])" if m[0].isalpha() else esc)
    return "(?:" + "|".join(alts) + ")"


@lru_cache(maxsize=16)
def _compile(markers: tuple[str, ...]) -> _Patterns:
    cur = _marker_regex(markers)
    rng = (
        rf"(?P<c1>{cur})?\s*(?P<lo>{_NUM})\s*(?P<c2>{cur})?\s*{_DASH}\s*"
        rf"(?P<c3>{cur})?\s*(?P<hi>{_NUM})(?:\s*(?P<c4>{cur}))?"
    )
    # a trailing marker that is really the prefix of the next amount is not ours
    one = rf"(?P<c1>{cur})?\s*(?P<lo>{_NUM})(?:\s*(?P<c2>{cur})(?!\s*\d))?"
    flags = re.IGNORECASE
    return _Patterns(
        hourly_range=re.compile(rng + _HOURLY, flags),
        hourly_single=re.compile(one + _HOURLY, flags),
        budget=re.compile(r"budget\b[^\d$€£₴]{0,40}?" + one, flags),
        range=re.compile(rng, flags),
        single=re.compile(one, flags),
        any_marker=re.compile(cur, flags),
    )


def _to_decimal(raw: str) -> Decimal | None:
    """
    Normalize '60,000' / '60 000' / '60.000' / '4.5k' / '80.00' to a Decimal.
    A trailing K multiplies by 1000. Returns None for junk.
    """
    s = (raw or "").strip().lower()
    mult = 1
    if s.endswith("k"):
        mult = 1000
        s = s[:-1]
    s = re.sub(r"\s+", "", s)
    if "," in s and "." in s:
        # whichever separator comes last is the decimal point
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", "") if _GROUPED_COMMA.fullmatch(s) else s.replace(",", ".")
    elif "." in s and _GROUPED_DOT.fullmatch(s):
        s = s.replace(".", "")
    try:
        value = Decimal(s) * mult
    except InvalidOperation:
        return None
    return value


def _currency_of(m: re.Match[str], text: str, pats: _Patterns, markers: Mapping[str, str], default: str) -> str:
    for name in ("c1", "c2", "c3", "c4"):
        tok = m.groupdict().get(name)
        if tok:
            return markers.get(tok.lower(), default)
    found = pats.any_marker.search(text)
    if found:
        return markers.get(found.group(0).lower(), default)
    return default


def _has_currency(m: re.Match[str]) -> bool:
    return any(m.groupdict().get(n) for n in ("c1", "c2", "c3", "c4"))


def _build(m: re.Match[str], text: str, pats: _Patterns, markers, default: str, hourly: bool) -> SalaryInfo | None:
    lo = _to_decimal(m.group("lo"))
    hi = _to_decimal(m.groupdict().get("hi") or m.group("lo"))
    if lo is None or hi is None:
        return None
    if lo > hi:
        lo, hi = hi, lo
    return SalaryInfo(lo, hi, _currency_of(m, text, pats, markers, default), hourly)


def parse_salary(
    text: str | None,
    *,
    default_currency: str = DEFAULT_CURRENCY,
    markers: Mapping[str, str] | None = None,
) -> SalaryInfo:
    """Parse free salary text. Never raises; unknown text gives the empty SalaryInfo."""
    fallback = SalaryInfo(None, None, default_currency, False)
    if not isinstance(text, str) or not text.strip():
        return fallback

    table = dict(CURRENCY_MARKERS)
    if markers:
        table.update({k.lower(): v for k, v in markers.items()})
    pats = _compile(tuple(sorted(table)))
    s = " ".join(text.split())

    m = pats.hourly_range.search(s)
    if m:
        return _build(m, s, pats, table, default_currency, True) or fallback

    m = pats.hourly_single.search(s)
    if m:
        return _build(m, s, pats, table, default_currency, True) or fallback

    m = pats.budget.search(s)
    if m and _has_currency(m):
        info = _build(m, s, pats, table, default_currency, False)
        if info:
            return info

    for pat in (pats.range, pats.single):
        for m in pat.finditer(s):
            if not _has_currency(m):
                continue
            info = _build(m, s, pats, table, default_currency, False)
            if info:
                return info

    return fallback
