from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..errors import HarvestCancelled
from ..fetcher import PageFetcher, SoftFailure
from ..ids import IdGenerator
from ..models import CanonicalListing, HarvestResult
from ..normalize import PlatformDefaults, RawListing, build_listing

log = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 5


class ListingCollector:
    """
    Per-run dedup map keyed by listing id.
    keep="first" ignores later duplicates; keep="last" lets them replace earlier ones.
    """

    def __init__(self, keep: str = "first"):
        if keep not in ("first", "last"):
            raise ValueError(f"keep must be 'first' or 'last', not {keep!r}")
        self.keep = keep
        self._by_id: dict[str, CanonicalListing] = {}

    def add(self, listing: CanonicalListing) -> bool:
        """True when the listing is new to this run."""
        is_new = listing.id not in self._by_id
        if is_new or self.keep == "last":
            self._by_id[listing.id] = listing
        return is_new

    def __len__(self) -> int:
        return len(self._by_id)

    def items(self) -> list[CanonicalListing]:
        return list(self._by_id.values())


class BaseHarvester(ABC):
    """
    The one capability every source exposes.

    Contract:
      - harvest(keywords, max_pages, cancel) -> list[CanonicalListing]
        never raises for fetch/parse trouble; returns partial or empty results.
        Cancellation returns the partial results, or re-raises HarvestCancelled
        when the harvester was built with propagate_cancel=True.
      - harvest_detail(url, cancel) -> CanonicalListing | None
        None when the page can't be fetched/parsed or the source needs no detail pass.
      - Sequential: one request at a time, paced by the shared ComplianceGate.
      - Do NOT print, persist, or mutate global state.
    """

    # Concrete subclasses MUST set these (profile-driven harvesters set them per instance)
    kind: str = ""
    platform: str = ""  # id prefix, e.g. "djinni"
    platform_name: str = ""  # CanonicalListing.source_platform, e.g. "Djinni"
    request_delay: float | None = None
    keep: str = "first"
    defaults: PlatformDefaults = PlatformDefaults()

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        source: str = "",
        params: dict[str, Any] | None = None,
        propagate_cancel: bool = False,
    ):
        self.fetcher = fetcher
        self.params: dict[str, Any] = dict(params or {})
        self.source = source or self.kind
        self.propagate_cancel = propagate_cancel
        if self.params.get("delay_seconds") is not None:
            self.request_delay = float(self.params["delay_seconds"])
        self.ids = IdGenerator(self.platform)

    # ---- public contract ----
    def harvest(
        self,
        keywords: str,
        max_pages: int = DEFAULT_MAX_PAGES,
        cancel: threading.Event | None = None,
    ) -> list[CanonicalListing]:
        return self.collect(keywords, max_pages, cancel).items

    def harvest_detail(self, url: str, cancel: threading.Event | None = None) -> CanonicalListing | None:
        """Summary records are complete for this source; no detail pass."""
        return None

    def collect(
        self,
        keywords: str,
        max_pages: int = DEFAULT_MAX_PAGES,
        cancel: threading.Event | None = None,
    ) -> HarvestResult:
        """Like harvest(), but returns the full HarvestResult (errors, pages, stop reason)."""
        result = HarvestResult(source=self.source)
        max_pages = int(max_pages)
        if max_pages < 1:
            result.stop_reason = "max_pages"
            return result
        collector = ListingCollector(self.keep)
        try:
            self.crawl(keywords or "", max_pages, cancel, collector, result)
        except HarvestCancelled:
            result.cancelled = True
            result.stop_reason = "cancelled"
            log.info("%s: cancelled after %d pages (%d listings kept)", self.source, result.pages_fetched, len(collector))
            if self.propagate_cancel:
                raise
        finally:
            result.items = collector.items()
        return result

    @abstractmethod
    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        """
        Drive pagination for one harvest: fetch pages, add listings to `collector`,
        and record pages_fetched / stop_reason / soft errors on `result`.
        Must check `cancel` before every fetch (the fetcher does this too).
        """
        raise NotImplementedError

    # ---- shared helpers ----
    def _check_cancel(self, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise HarvestCancelled(f"{self.source}: cancelled")

    def _listing(self, raw: RawListing) -> CanonicalListing:
        return build_listing(raw, ids=self.ids, platform_name=self.platform_name, defaults=self.defaults)

    def _emit(self, collector: ListingCollector, make: Callable[[], CanonicalListing], where: str) -> bool:
        """Build one listing; a failure skips just this card."""
        try:
            listing = make()
        except Exception as e:
            log.debug("%s: skipped card on %s: %r", self.source, where, e)
            return False
        collector.add(listing)
        return True

    def _soft_stop(self, result: HarvestResult, failure: SoftFailure) -> None:
        result.errors.append(str(failure))
        result.stop_reason = failure.kind.name.lower()
        if failure.terminal:
            log.warning("%s: %s; stopping source", self.source, failure)
        else:
            log.info("%s: %s; stopping pagination", self.source, failure)
