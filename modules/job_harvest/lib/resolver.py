"""
Ordered selector cascades over BeautifulSoup trees.

A pattern is either a CSS selector string or a callable `(root) -> list[Tag]`
(used for raw href heuristics). `resolve` returns the result of the FIRST
pattern that finds anything; results of different patterns are never merged.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Union

import soupsieve
from bs4 import Tag
from soupsieve import SelectorSyntaxError

log = logging.getLogger(__name__)

Pattern = Union[str, Callable[[Tag], Sequence[Tag]]]
Cascade = Sequence[Pattern]


def _evaluate(root: Tag, pattern: Pattern) -> list[Tag]:
    if callable(pattern):
        return [n for n in pattern(root) if isinstance(n, Tag)]
    try:
        return list(root.select(pattern))
    except SelectorSyntaxError:
        log.debug("invalid selector skipped: %r", pattern)
        return []


def resolve(root: Tag | None, patterns: Cascade) -> list[Tag]:
    """First non-empty node list produced by `patterns`, in order; [] if none match."""
    if root is None:
        return []
    for pattern in patterns:
        found = _evaluate(root, pattern)
        if found:
            return found
    return []


def resolve_one(root: Tag | None, patterns: Cascade) -> Tag | None:
    found = resolve(root, patterns)
    return found[0] if found else None


def resolve_tiers(root: Tag | None, tiers: Sequence[Cascade]) -> list[Tag]:
    """Escalate through broader cascades until one of them finds nodes."""
    for tier in tiers:
        found = resolve(root, tier)
        if found:
            return found
    return []


def text_of(root: Tag | None, patterns: Cascade, default: str = "") -> str:
    node = resolve_one(root, patterns)
    if node is None:
        return default
    return node.get_text(" ", strip=True) or default


def attr_of(root: Tag | None, patterns: Cascade, attr: str, default: str = "") -> str:
    """Attribute of the first node that actually carries it (within the winning pattern)."""
    for node in resolve(root, patterns):
        val = node.get(attr)
        if isinstance(val, list):
            val = " ".join(val)
        if val:
            return str(val).strip()
    return default


# ---- heuristic pattern factories ----
def anchors_matching(href_regex: str) -> Callable[[Tag], list[Tag]]:
    """Pattern: <a href> elements whose href matches `href_regex`, deduped by href."""
    rx = re.compile(href_regex)

    def _find(root: Tag) -> list[Tag]:
        seen: set[str] = set()
        out: list[Tag] = []
        for a in root.find_all("a", href=True):
            href = a["href"]
            if rx.search(href) and href not in seen:
                seen.add(href)
                out.append(a)
        return out

    _find.__name__ = f"anchors_matching({href_regex!r})"
    return _find


def self_if(css: str) -> Callable[[Tag], list[Tag]]:
    """Pattern: the root itself when it matches `css` (cards that ARE the link)."""

    def _match(root: Tag) -> list[Tag]:
        try:
            return [root] if soupsieve.match(css, root) else []
        except SelectorSyntaxError:
            return []

    return _match


def labelled(item_css: str, label_css: str, value_css: str, label_contains: str) -> Callable[[Tag], list[Tag]]:
    """
    Pattern: value node of the first item whose label text contains `label_contains`
    (e.g. LinkedIn criteria lists: <li><h3>Seniority level</h3><span>Mid-Senior level</span></li>).
    """
    needle = label_contains.lower()

    def _find(root: Tag) -> list[Tag]:
        for item in root.select(item_css):
            label = item.select_one(label_css)
            if label is not None and needle in label.get_text(" ", strip=True).lower():
                value = item.select_one(value_css)
                return [value] if value is not None else []
        return []

    return _find


def anchors_with_text(*needles: str) -> Callable[[Tag], list[Tag]]:
    """Pattern: <a href> elements whose visible text contains any of `needles` (case-insensitive)."""
    lowered = tuple(n.lower() for n in needles)

    def _find(root: Tag) -> list[Tag]:
        return [
            a for a in root.find_all("a", href=True)
            if any(n in a.get_text(" ", strip=True).lower() for n in lowered)
        ]

    return _find
