# job_harvest/harvesters/remoteok.py
"""
RemoteOK public API harvester.

The API returns every live posting in one JSON array whose first element is
legal/metadata. Keyword filtering is client-side; max_pages caps the result
at ~20 listings per "page" so runs stay comparable with the HTML boards.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Any

from bs4 import BeautifulSoup

from ..fetcher import SoftFailure
from ..models import HarvestResult, RemotePolicy, SeniorityLevel
from ..normalize import PlatformDefaults, RawListing
from ..salary import SalaryInfo
from ..utils import mentions, parse_datetime
from .base import BaseHarvester, ListingCollector
from .registry import register

log = logging.getLogger(__name__)

API_URL = "https://remoteok.com/api"
LISTINGS_PER_PAGE = 20


def _amount(value: Any) -> Decimal | None:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount > 0 else None


@register
class RemoteOkHarvester(BaseHarvester):
    kind = "remoteok"
    platform = "remoteok"
    platform_name = "RemoteOK"
    request_delay = 3.0
    # untitled seniority on RemoteOK is overwhelmingly mid-level
    defaults = PlatformDefaults(remote_policy=RemotePolicy.FULLY_REMOTE, seniority=SeniorityLevel.MIDDLE)

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        self._check_cancel(cancel)
        payload = self.fetcher.fetch_json(self.params.get("api_url") or API_URL, cancel, delay=self.request_delay)
        result.pages_fetched += 1
        if isinstance(payload, SoftFailure):
            self._soft_stop(result, payload)
            return
        if not isinstance(payload, list):
            result.errors.append(f"unexpected payload type {type(payload).__name__}")
            result.stop_reason = "parse_error"
            return

        cap = max_pages * LISTINGS_PER_PAGE
        for item in payload:
            # the legal notice / metadata element carries no id
            if not isinstance(item, dict) or not item.get("id") or "legal" in item:
                continue
            if not mentions(keywords, item.get("position"), item.get("description"), *(item.get("tags") or [])):
                continue
            self._emit(collector, lambda item=item: self._listing(self.to_raw(item)), API_URL)
            if len(collector) >= cap:
                result.stop_reason = "max_pages"
                return
        result.stop_reason = "last_page"

    @staticmethod
    def to_raw(item: dict[str, Any]) -> RawListing:
        lo, hi = _amount(item.get("salary_min")), _amount(item.get("salary_max"))
        salary = SalaryInfo(lo, hi or lo, "USD", False) if lo is not None else None
        slug = item.get("slug") or item.get("id")
        description_html = str(item.get("description") or "")
        return RawListing(
            native_id=str(item.get("id")),
            title=str(item.get("position") or ""),
            url=str(item.get("url") or f"https://remoteok.com/remote-jobs/{slug}"),
            company=str(item.get("company") or ""),
            location=str(item.get("location") or ""),
            description=BeautifulSoup(description_html, "html.parser").get_text(" ", strip=True),
            posted=parse_datetime(item.get("epoch") or item.get("date")),
            tags=[str(t) for t in item.get("tags") or []],
            salary=salary,
        )
