"""
Compliance-aware page fetch with soft-failure classification.

Expected problems (network errors, bad status, empty body, auth walls, policy
refusals, undecodable JSON) come back as a SoftFailure value, never as an
exception. Only HarvestCancelled propagates.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import requests
from bs4 import BeautifulSoup

from .compliance import ComplianceGate, origin_of
from .errors import HarvestCancelled
from .http_client import HttpClient

log = logging.getLogger(__name__)

# A login form or an "authwall" marker means we are looking at a gate, not content
AUTH_WALL_SELECTORS = ("form[action*=login]", "[class*=authwall]")

# Lenient tree builder for whole pages; boards ship plenty of unbalanced markup
PAGE_PARSER = "html5lib"


class FailureKind(str, Enum):
    FETCH_ERROR = "fetch error"
    EMPTY_BODY = "empty body"
    AUTH_WALL = "auth wall"
    BLOCKED = "blocked by policy"
    PARSE_ERROR = "parse error"


@dataclass(frozen=True)
class SoftFailure:
    kind: FailureKind
    url: str
    detail: str = ""
    status: int | None = None

    @property
    def terminal(self) -> bool:
        """Auth walls end the source run outright; retrying would just hit the wall again."""
        return self.kind is FailureKind.AUTH_WALL

    def __str__(self) -> str:
        status = f" [{self.status}]" if self.status is not None else ""
        detail = f": {self.detail}" if self.detail else ""
        return f"{self.kind.value}{status} {self.url}{detail}"


FetchOutcome = Union[BeautifulSoup, SoftFailure]


def is_auth_wall(doc: BeautifulSoup) -> bool:
    return any(doc.select_one(sel) is not None for sel in AUTH_WALL_SELECTORS)


class PageFetcher:
    """
    One fetcher per engine run; share it across harvesters so they share the gate.
    """

    def __init__(
        self,
        client: HttpClient | None = None,
        gate: ComplianceGate | None = None,
        *,
        parser: str = PAGE_PARSER,
    ):
        self.client = client or HttpClient()
        self.gate = gate or ComplianceGate()
        self.parser = parser

    # ---- core ----
    def _get(
        self,
        url: str,
        cancel: threading.Event | None,
        delay: float | None,
        headers: Mapping[str, str] | None,
    ) -> requests.Response | SoftFailure:
        if cancel is not None and cancel.is_set():
            raise HarvestCancelled(f"cancelled before fetching {url}")
        if not self.gate.allows(url):
            return SoftFailure(FailureKind.BLOCKED, url)

        self.gate.await_turn(origin_of(url), cancel, interval=delay, url=url)
        try:
            resp = self.client.get(url, headers=headers)
        except requests.RequestException as e:
            log.debug("fetch failed %s: %r", url, e)
            return SoftFailure(FailureKind.FETCH_ERROR, url, detail=repr(e))

        if not 200 <= resp.status_code < 300:
            return SoftFailure(FailureKind.FETCH_ERROR, url, detail=resp.reason or "", status=resp.status_code)
        if not (resp.text or "").strip():
            return SoftFailure(FailureKind.EMPTY_BODY, url, status=resp.status_code)
        return resp

    def fetch(
        self,
        url: str,
        cancel: threading.Event | None = None,
        *,
        delay: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> FetchOutcome:
        """HTML page -> parsed document, or a SoftFailure describing why not."""
        resp = self._get(url, cancel, delay, headers)
        if isinstance(resp, SoftFailure):
            return resp
        return self.parse(url, resp.text, status=resp.status_code)

    def parse(self, url: str, html: str, *, status: int | None = None) -> FetchOutcome:
        """Classify an already-fetched body the same way fetch() does."""
        if not (html or "").strip():
            return SoftFailure(FailureKind.EMPTY_BODY, url, status=status)
        doc = BeautifulSoup(html, self.parser)
        if is_auth_wall(doc):
            log.warning("auth wall at %s", url)
            return SoftFailure(FailureKind.AUTH_WALL, url, status=status)
        return doc

    def fetch_json(
        self,
        url: str,
        cancel: threading.Event | None = None,
        *,
        delay: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Decoded JSON payload, or a SoftFailure."""
        resp = self._get(url, cancel, delay, {"Accept": "application/json", **dict(headers or {})})
        if isinstance(resp, SoftFailure):
            return resp
        try:
            return resp.json()
        except ValueError as e:
            preview = resp.text[:200].replace("\n", " ")
            return SoftFailure(FailureKind.PARSE_ERROR, url, detail=f"{e}; body starts: {preview!r}")

    def fetch_text(
        self,
        url: str,
        cancel: threading.Event | None = None,
        *,
        delay: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str | SoftFailure:
        """Raw body text (RSS/XML feeds), or a SoftFailure."""
        resp = self._get(url, cancel, delay, headers)
        if isinstance(resp, SoftFailure):
            return resp
        return resp.text

    def close(self) -> None:
        self.client.close()
