# job_harvest/harvesters/ats.py
"""
Company careers pages and the applicant tracking systems behind them.

resolve_company(name, careers_url) fetches the careers page once, works out
which ATS hosts the openings and pulls them through that ATS's public API:

  careers page --detect--> Greenhouse  -> boards-api.greenhouse.io
                           Lever       -> api.lever.co
                           Workable    -> recognized, no harvester yet (empty)
                           Ashby       -> recognized, no harvester yet (empty)
                           Generic     -> anchor heuristics over the page itself
                           Unknown     -> page unreachable (empty)

Example sources entries:
{"kind": "greenhouse", "source": "gh:acme", "params": {"board": "acme", "company": "Acme"}}
{"kind": "ats_auto", "source": "companies",
 "params": {"companies": [{"name": "Acme", "careers_url": "https://acme.com/careers"}]}}
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from functools import partial
from html import unescape
from typing import Any
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from ..classifiers import ATS
from ..errors import HarvestCancelled, ListingError
from ..fetcher import PageFetcher, SoftFailure
from ..ids import native_id_from_url
from ..models import ATSInfo, ATSType, CanonicalListing, CompanyJobsResult, HarvestResult
from ..normalize import RawListing
from ..resolver import anchors_matching, resolve
from ..utils import clean_text, mentions, parse_datetime
from .base import BaseHarvester, ListingCollector
from .registry import register

log = logging.getLogger(__name__)

GREENHOUSE_API = "https://boards-api.greenhouse.io/v1/boards/{board}/jobs?content=true"
LEVER_API = "https://api.lever.co/v0/postings/{company}?mode=json"


# =============================================================================
# DETECTION
# =============================================================================
@dataclass(frozen=True)
class IdRule:
    """How to pull the board identifier once an ATS signature was seen."""

    type: ATSType
    url_hint: str  # substring of the careers URL that counts as a signature
    url_patterns: tuple[str, ...]
    html_patterns: tuple[str, ...] = ()

    def identifier(self, url: str, html: str) -> str | None:
        for pattern in self.url_patterns:
            m = re.search(pattern, url, re.IGNORECASE)
            if m:
                return m.group(1)
        for pattern in self.html_patterns:
            m = re.search(pattern, html, re.IGNORECASE)
            if m:
                return m.group(1)
        return None


# Fixed detection order; first rule with a signature AND an identifier wins
ID_RULES: tuple[IdRule, ...] = (
    IdRule(
        ATSType.GREENHOUSE,
        "greenhouse",
        (r"greenhouse\.io/embed/job_board(?:/js)?\?for=([\w-]+)", r"greenhouse\.io/([^/?#]+)"),
        (r"greenhouse\.io/embed/job_board(?:/js)?\?for=([\w-]+)", r"boards\.greenhouse\.io/([^/\"'?#]+)"),
    ),
    IdRule(ATSType.LEVER, "lever", (r"lever\.co/([^/?#]+)",), (r"lever\.co/([^/\"'?#]+)",)),
    IdRule(ATSType.WORKABLE, "workable", (r"workable\.com/j/([^/?#]+)",), (r"apply\.workable\.com/([^/\"'?#]+)",)),
    IdRule(ATSType.ASHBY, "ashbyhq", (r"ashbyhq\.com/([^/?#]+)",), (r"jobs\.ashbyhq\.com/([^/\"'?#]+)",)),
)


def detect_ats(careers_url: str, html: str) -> ATSInfo:
    """Pure detection over an already-fetched page."""
    signatures = set(ATS.matches(html))
    lowered_url = (careers_url or "").lower()
    for rule in ID_RULES:
        if rule.type not in signatures and rule.url_hint not in lowered_url:
            continue
        identifier = rule.identifier(careers_url or "", html or "")
        if identifier:
            return ATSInfo(rule.type, identifier)
        log.debug("%s signature on %s but no identifier", rule.type.value, careers_url)
    return ATSInfo(ATSType.GENERIC, careers_url)


# =============================================================================
# ATS API HARVESTERS
# =============================================================================
class AtsBoardHarvester(BaseHarvester):
    """
    One public job-board API call returns every opening of one company.
    Keywords filter client-side; an empty keyword string keeps everything.
    """

    api_url_template = ""
    board_param = "board"
    request_delay = 1.0

    def __init__(self, fetcher: PageFetcher, *, board: str | None = None, company: str | None = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.board = (board or self.params.get(self.board_param) or "").strip()
        self.company = company or self.params.get("company") or self.board

    def api_url(self) -> str:
        return self.api_url_template.format(**{self.board_param: self.board})

    def items(self, payload: Any) -> list[dict[str, Any]] | None:
        raise NotImplementedError

    def to_raw(self, item: dict[str, Any]) -> RawListing:
        raise NotImplementedError

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        if not self.board:
            result.errors.append(f"{self.kind}: no {self.board_param!r} configured")
            result.stop_reason = "config_error"
            return
        self._check_cancel(cancel)
        url = self.api_url()
        payload = self.fetcher.fetch_json(url, cancel, delay=self.request_delay)
        result.pages_fetched += 1
        if isinstance(payload, SoftFailure):
            self._soft_stop(result, payload)
            return
        items = self.items(payload)
        if items is None:
            result.errors.append(f"unexpected payload from {url}")
            result.stop_reason = "parse_error"
            return
        for item in items:
            self._emit(collector, partial(self._filtered, item, keywords), url)
        result.stop_reason = "last_page"

    def _filtered(self, item: dict[str, Any], keywords: str) -> CanonicalListing:
        raw = self.to_raw(item)
        if not mentions(keywords, raw.title, raw.description):
            raise ListingError("keywords not mentioned")
        return self._listing(raw)


@register
class GreenhouseHarvester(AtsBoardHarvester):
    kind = "greenhouse"
    platform = "greenhouse"
    platform_name = "Greenhouse"
    api_url_template = GREENHOUSE_API

    def items(self, payload: Any) -> list[dict[str, Any]] | None:
        jobs = payload.get("jobs") if isinstance(payload, dict) else None
        return [j for j in jobs if isinstance(j, dict)] if isinstance(jobs, list) else None

    def to_raw(self, item: dict[str, Any]) -> RawListing:
        if item.get("id") is None:
            raise ListingError("greenhouse job has no id")
        location = item.get("location") or {}
        # content arrives entity-escaped HTML
        content = unescape(str(item.get("content") or ""))
        return RawListing(
            native_id=f"{self.board}-{item['id']}",
            title=str(item.get("title") or ""),
            url=str(item.get("absolute_url") or f"https://boards.greenhouse.io/{self.board}/jobs/{item['id']}"),
            company=self.company,
            location=str(location.get("name") or "") if isinstance(location, dict) else "",
            description=BeautifulSoup(content, "html.parser").get_text(" ", strip=True),
            posted=parse_datetime(item.get("updated_at")),
        )


@register
class LeverHarvester(AtsBoardHarvester):
    kind = "lever"
    platform = "lever"
    platform_name = "Lever"
    api_url_template = LEVER_API
    board_param = "company"

    def __init__(self, fetcher: PageFetcher, *, board: str | None = None, company: str | None = None, **kwargs):
        super().__init__(fetcher, board=board, company=company, **kwargs)
        # for Lever the board slug lives under params["company"]; prefer a display name when given
        self.company = company or self.params.get("company_name") or self.board

    def items(self, payload: Any) -> list[dict[str, Any]] | None:
        return [p for p in payload if isinstance(p, dict)] if isinstance(payload, list) else None

    def to_raw(self, item: dict[str, Any]) -> RawListing:
        if not item.get("id"):
            raise ListingError("lever posting has no id")
        categories = item.get("categories") or {}
        if not isinstance(categories, dict):
            categories = {}
        description = item.get("descriptionPlain") or BeautifulSoup(
            str(item.get("description") or ""), "html.parser"
        ).get_text(" ", strip=True)
        return RawListing(
            native_id=f"{self.board}-{item['id']}",
            title=str(item.get("text") or ""),
            url=str(item.get("hostedUrl") or f"https://jobs.lever.co/{self.board}/{item['id']}"),
            company=self.company,
            location=str(categories.get("location") or ""),
            description=str(description),
            posted=parse_datetime(item.get("createdAt")),
            tags=[str(categories["team"])] if categories.get("team") else (),
            remote_hint=" ".join(str(v) for v in (item.get("workplaceType"), categories.get("commitment")) if v),
            engagement_hint=str(categories.get("commitment") or ""),
        )


# =============================================================================
# GENERIC CAREERS PAGE
# =============================================================================
_JOB_HREF = r"/(?:jobs?|careers?|positions?|openings?|vacanc(?:y|ies)|opportunities)/[^/?#]+"

GENERIC_LINKS = (
    "[class*=job] a[href]",
    "[class*=position] a[href]",
    "[class*=opening] a[href]",
    "[class*=vacanc] a[href]",
    anchors_matching(_JOB_HREF),
)


@register
class GenericCareersHarvester(BaseHarvester):
    """
    Best effort over a company's own careers page: links that look like
    individual openings become listings titled by their anchor text.
    """

    kind = "careers"
    platform = "careers"
    platform_name = "Company Careers"
    min_title_length = 5
    max_title_length = 120

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        careers_url: str | None = None,
        company: str | None = None,
        document: str | None = None,
        **kwargs,
    ):
        super().__init__(fetcher, **kwargs)
        self.careers_url = careers_url or self.params.get("careers_url") or ""
        # body already fetched during ATS detection; parsed instead of fetched again
        self.document = document
        self.company = company or self.params.get("company") or urlsplit(self.careers_url).hostname or ""

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        if not self.careers_url:
            result.errors.append("careers: no careers_url configured")
            result.stop_reason = "config_error"
            return
        self._check_cancel(cancel)
        if self.document is not None:
            page = self.fetcher.parse(self.careers_url, self.document)
        else:
            page = self.fetcher.fetch(self.careers_url, cancel, delay=self.request_delay)
        result.pages_fetched += 1
        if isinstance(page, SoftFailure):
            self._soft_stop(result, page)
            return
        anchors = resolve(page, GENERIC_LINKS)
        if not anchors:
            result.stop_reason = "no_cards"
            return
        for a in anchors:
            self._emit(collector, partial(self.anchor_listing, a, keywords), self.careers_url)
        result.stop_reason = "last_page"

    def anchor_listing(self, anchor: Tag, keywords: str = "") -> CanonicalListing:
        title = clean_text(anchor.get_text(" ", strip=True))
        if not self.min_title_length <= len(title) <= self.max_title_length:
            raise ListingError(f"implausible title {title!r}")
        url = urljoin(self.careers_url, str(anchor["href"]))
        if url.rstrip("/") == self.careers_url.rstrip("/"):
            raise ListingError("link back to the careers page")
        if not mentions(keywords, title):
            raise ListingError("keywords not mentioned")
        raw = RawListing(native_id=native_id_from_url(url), title=title, url=url, company=self.company)
        return self._listing(raw)


# =============================================================================
# COMPANY RESOLUTION
# =============================================================================
class AtsDetector:
    """Detects a careers page's ATS and harvests the company's openings through it."""

    def __init__(self, fetcher: PageFetcher | None = None):
        self.fetcher = fetcher or PageFetcher()

    def detect(self, careers_url: str, cancel: threading.Event | None = None) -> ATSInfo:
        """Fetch failure -> ATSInfo(UNKNOWN, None). Cancellation propagates."""
        return self._fetch_and_detect(careers_url, cancel)[0]

    def _fetch_and_detect(self, careers_url: str, cancel: threading.Event | None) -> tuple[ATSInfo, str | None]:
        body = self.fetcher.fetch_text(careers_url, cancel)
        if isinstance(body, SoftFailure):
            log.warning("ATS detection failed for %s: %s", careers_url, body)
            return ATSInfo(ATSType.UNKNOWN, None), None
        return detect_ats(careers_url, body), body

    def harvester_for(
        self,
        info: ATSInfo,
        company_name: str,
        careers_url: str,
        document: str | None = None,
    ) -> BaseHarvester | None:
        common = {"source": f"company:{company_name}", "propagate_cancel": True}
        if info.type is ATSType.GREENHOUSE:
            return GreenhouseHarvester(self.fetcher, board=info.identifier, company=company_name, **common)
        if info.type is ATSType.LEVER:
            return LeverHarvester(self.fetcher, board=info.identifier, company=company_name, **common)
        if info.type is ATSType.GENERIC:
            return GenericCareersHarvester(
                self.fetcher, careers_url=careers_url, company=company_name, document=document, **common
            )
        if info.type in (ATSType.WORKABLE, ATSType.ASHBY):
            log.warning("%s harvester not implemented; %s yields no listings", info.type.value, company_name)
        return None

    def resolve_company(
        self,
        company_name: str,
        careers_url: str,
        cancel: threading.Event | None = None,
        *,
        keywords: str = "",
    ) -> CompanyJobsResult:
        """
        Never raises except HarvestCancelled; anything unexpected lands in `error`.
        """
        result = CompanyJobsResult(company_name=company_name, careers_url=careers_url)
        try:
            log.info("resolving %s at %s", company_name, careers_url)
            info, body = self._fetch_and_detect(careers_url, cancel)
            result.ats_type = info.type
            result.ats_identifier = info.identifier
            harvester = self.harvester_for(info, company_name, careers_url, body)
            if harvester is not None:
                harvest = harvester.collect(keywords, 1, cancel)
                result.listings = harvest.items
                if not harvest.items and harvest.errors:
                    result.error = "; ".join(harvest.errors)
            log.info("%s: %s, %d listings", company_name, info.type.value, len(result.listings))
        except HarvestCancelled:
            raise
        except Exception as e:
            log.exception("error resolving %s", company_name)
            result.error = str(e) or type(e).__name__
        return result


def resolve_company(
    company_name: str,
    careers_url: str,
    cancel: threading.Event | None = None,
    *,
    fetcher: PageFetcher | None = None,
) -> CompanyJobsResult:
    return AtsDetector(fetcher).resolve_company(company_name, careers_url, cancel)


@register
class AtsAutoHarvester(BaseHarvester):
    """
    Runs resolve_company for each configured company and pools the listings.
    params["companies"]: [{"name": "...", "careers_url": "..."}, ...]
    """

    kind = "ats_auto"
    platform = "ats"
    platform_name = "ATS"

    def __init__(self, fetcher: PageFetcher, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.detector = AtsDetector(fetcher)

    def companies(self) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = []
        for entry in self.params.get("companies") or []:
            if not isinstance(entry, dict):
                continue
            url = str(entry.get("careers_url") or entry.get("url") or "").strip()
            if url:
                out.append((str(entry.get("name") or urlsplit(url).hostname or url), url))
        return out

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        companies = self.companies()
        if not companies:
            result.errors.append("ats_auto: no companies configured")
            result.stop_reason = "config_error"
            return
        for name, url in companies:
            self._check_cancel(cancel)
            company = self.detector.resolve_company(name, url, cancel, keywords=keywords)
            # careers pages only; ATS API calls are not counted
            result.pages_fetched += 1
            if company.error:
                result.errors.append(f"{name}: {company.error}")
            for listing in company.listings:
                collector.add(listing)
        result.stop_reason = "last_page"
