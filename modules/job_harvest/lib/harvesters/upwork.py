# job_harvest/harvesters/upwork.py
"""
Upwork public RSS feed harvester.

Client names are not in the feed, so company is a fixed label. The marketplace
is remote-only contract work; posts without a seniority signal are treated as
Senior (Upwork's expert tier dominates .NET postings).
"""

from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET
from email.utils import parsedate_to_datetime
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from ..errors import ListingError
from ..fetcher import SoftFailure
from ..ids import native_id_from_url
from ..models import EngagementType, HarvestResult, RemotePolicy, SeniorityLevel
from ..normalize import PlatformDefaults, RawListing
from .base import BaseHarvester, ListingCollector
from .registry import register

log = logging.getLogger(__name__)

FEED_URL = "https://www.upwork.com/ab/feed/jobs/rss?q={keywords}&sort=recency&paging={offset}%3B{size}"
PAGE_SIZE = 50

_COUNTRY_RE = re.compile(r"country\s*</b>\s*:\s*([^<\n]+)", re.IGNORECASE)
_BUDGET_RE = re.compile(r"budget\s*</b>\s*:\s*([^<\n]+)", re.IGNORECASE)
_HOURLY_RE = re.compile(r"hourly range\s*</b>\s*:\s*([^<\n]+)", re.IGNORECASE)


def _pub_date(value: str | None):
    if not value:
        return None
    try:
        return parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None


@register
class UpworkHarvester(BaseHarvester):
    kind = "upwork"
    platform = "upwork"
    platform_name = "Upwork"
    request_delay = 2.0
    defaults = PlatformDefaults(
        remote_policy=RemotePolicy.FULLY_REMOTE,
        engagement=EngagementType.CONTRACT_B2B,
        seniority=SeniorityLevel.SENIOR,
    )
    company_label = "Upwork Client"

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        for index in range(max_pages):
            self._check_cancel(cancel)
            url = FEED_URL.format(keywords=quote_plus(keywords), offset=index * PAGE_SIZE, size=PAGE_SIZE)
            body = self.fetcher.fetch_text(url, cancel, delay=self.request_delay)
            result.pages_fetched += 1
            if isinstance(body, SoftFailure):
                self._soft_stop(result, body)
                return
            try:
                items = ET.fromstring(body).findall(".//item")
            except ET.ParseError as e:
                result.errors.append(f"parse error {url}: {e}")
                result.stop_reason = "parse_error"
                return
            if not items:
                result.stop_reason = "no_cards"
                return
            for item in items:
                self._emit(collector, lambda item=item: self._listing(self.to_raw(item)), url)
            if len(items) < PAGE_SIZE:
                result.stop_reason = "last_page"
                return
        result.stop_reason = "max_pages"

    def _salary_text(self, summary_html: str, description: str) -> str:
        hourly = _HOURLY_RE.search(summary_html)
        if hourly:
            return f"{hourly.group(1).strip()}/hr"
        budget = _BUDGET_RE.search(summary_html)
        if budget:
            return f"Budget {budget.group(1).strip()}"
        return description

    def to_raw(self, item: ET.Element) -> RawListing:
        link = (item.findtext("link") or item.findtext("guid") or "").strip()
        if not link:
            raise ListingError("rss item has no link")
        summary_html = item.findtext("description") or ""
        description = BeautifulSoup(summary_html, "html.parser").get_text(" ", strip=True)
        country = _COUNTRY_RE.search(summary_html)
        return RawListing(
            native_id=native_id_from_url(link, r"~([a-f0-9]+)"),
            title=(item.findtext("title") or "").replace(" - Upwork", "").strip(),
            url=link,
            company=self.company_label,
            country=country.group(1).strip() if country else "",
            salary_text=self._salary_text(summary_html, description),
            description=description,
            posted=_pub_date(item.findtext("pubDate")),
        )
