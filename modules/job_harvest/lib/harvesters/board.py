"""
Generic HTML job-board harvester driven by a BoardProfile.

A profile is pure data: URL template, selector cascades per field, pagination
style, politeness delay and platform defaults. Adding a board means writing a
profile, not a subclass.

Pagination (per page index n, 0-based):
  fetch -> SoftFailure?            stop (auth wall is terminal)
        -> no cards in any tier?   stop
        -> parse each card (bad cards skipped)
        -> next-page check         stop when no indicator / short offset page
  ... until max_pages fetches were made.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any
from urllib.parse import quote_plus, urljoin

from bs4 import Tag

from ..errors import ListingError
from ..fetcher import PageFetcher, SoftFailure
from ..ids import native_id_from_url
from ..models import CanonicalListing, HarvestResult
from ..normalize import PlatformDefaults, RawListing
from ..resolver import Cascade, attr_of, resolve, resolve_one, resolve_tiers, text_of
from ..utils import parse_datetime, strip_query
from .base import BaseHarvester, ListingCollector
from .registry import register_factory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetailProfile:
    """Selector cascades for a single-listing page."""

    title: Cascade
    description: Cascade = ()
    company: Cascade = ()
    location: Cascade = ()
    salary: Cascade = ()
    posted: Cascade = ()
    seniority_label: Cascade = ()


@dataclass(frozen=True)
class BoardProfile:
    """
    search_url placeholders: {keywords} (url-encoded), {page} (first_page + n),
    {offset} (n * page_size).
    page_size > 0 switches on offset semantics: a page with fewer cards ends the run.
    """

    kind: str
    platform: str
    platform_name: str
    search_url: str
    card_tiers: tuple[Cascade, ...]
    title: Cascade
    link: Cascade
    company: Cascade = ()
    location: Cascade = ()
    salary: Cascade = ()
    description: Cascade = ()
    posted: Cascade = ()
    seniority_label: Cascade = ()
    next_page: Cascade = ()
    page_size: int = 0
    first_page: int = 1
    id_pattern: str | None = None
    strip_query: bool = False
    request_delay: float | None = None
    keep: str = "first"
    defaults: PlatformDefaults = field(default_factory=PlatformDefaults)
    detail: DetailProfile | None = None

    def page_url(self, keywords: str, index: int) -> str:
        return self.search_url.format(
            keywords=quote_plus(keywords or ""),
            page=self.first_page + index,
            offset=index * self.page_size,
        )


def _posted(root: Tag | None, patterns: Cascade):
    node = resolve_one(root, patterns)
    if node is None:
        return None
    return parse_datetime(node.get("datetime") or node.get("content") or node.get_text(" ", strip=True))


class BoardHarvester(BaseHarvester):
    """One instance per configured source; profile supplies everything source-specific."""

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        profile: BoardProfile,
        source: str = "",
        params: dict[str, Any] | None = None,
        propagate_cancel: bool = False,
    ):
        self.profile = profile
        self.kind = profile.kind
        self.platform = profile.platform
        self.platform_name = profile.platform_name
        self.request_delay = profile.request_delay
        self.keep = profile.keep
        self.defaults = profile.defaults
        super().__init__(fetcher, source=source, params=params, propagate_cancel=propagate_cancel)

    # ---- pagination state machine ----
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
            url = self.profile.page_url(keywords, index)
            page = self.fetcher.fetch(url, cancel, delay=self.request_delay)
            result.pages_fetched += 1
            if isinstance(page, SoftFailure):
                self._soft_stop(result, page)
                return

            cards = resolve_tiers(page, self.profile.card_tiers)
            if not cards:
                log.info("%s: no cards on %s", self.source, url)
                result.stop_reason = "no_cards"
                return

            added = sum(self._emit(collector, partial(self.parse_card, card, url), url) for card in cards)
            log.debug("%s: page %d -> %d cards, %d parsed", self.source, index + 1, len(cards), added)

            if not self._has_next_page(page, len(cards)):
                result.stop_reason = "last_page"
                return
        result.stop_reason = "max_pages"

    def _has_next_page(self, page: Tag, card_count: int) -> bool:
        p = self.profile
        if p.page_size and card_count < p.page_size:
            return False
        if p.next_page:
            return bool(resolve(page, p.next_page))
        return True

    # ---- extraction ----
    def _absolute(self, href: str, base_url: str) -> str:
        url = urljoin(base_url, href)
        return strip_query(url) if self.profile.strip_query else url

    def parse_card(self, card: Tag, page_url: str) -> CanonicalListing:
        p = self.profile
        href = attr_of(card, p.link, "href")
        if not href:
            raise ListingError("card has no link")
        url = self._absolute(href, page_url)
        raw = RawListing(
            native_id=native_id_from_url(url, p.id_pattern),
            title=text_of(card, p.title) or text_of(card, p.link),
            url=url,
            company=text_of(card, p.company),
            location=text_of(card, p.location),
            salary_text=text_of(card, p.salary),
            description=text_of(card, p.description),
            posted=_posted(card, p.posted),
            seniority_label=text_of(card, p.seniority_label),
        )
        return self._listing(raw)

    def harvest_detail(self, url: str, cancel: threading.Event | None = None) -> CanonicalListing | None:
        d = self.profile.detail
        if d is None:
            return None
        page = self.fetcher.fetch(url, cancel, delay=self.request_delay)
        if isinstance(page, SoftFailure):
            log.info("%s: detail unavailable: %s", self.source, page)
            return None
        url = self._absolute(url, url)
        try:
            raw = RawListing(
                native_id=native_id_from_url(url, self.profile.id_pattern),
                title=text_of(page, d.title),
                url=url,
                company=text_of(page, d.company),
                location=text_of(page, d.location),
                salary_text=text_of(page, d.salary),
                description=text_of(page, d.description),
                posted=_posted(page, d.posted),
                seniority_label=text_of(page, d.seniority_label),
            )
            return self._listing(raw)
        except Exception as e:
            log.debug("%s: detail parse failed for %s: %r", self.source, url, e)
            return None


def register_profile(profile: BoardProfile) -> BoardProfile:
    """Expose a profile through the harvester registry under profile.kind."""
    register_factory(profile.kind, partial(BoardHarvester, profile=profile))
    return profile
