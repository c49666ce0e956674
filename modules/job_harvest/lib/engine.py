"""
Engine for running job_harvest sources and collecting canonical listings.

Features:
  - Parallel execution, one thread per configured source
  - One shared PageFetcher, so every harvester goes through the same ComplianceGate
  - Per-source isolation: an exception in one harvester never stops the others
  - Cooperative cancellation through a threading.Event
  - Dependency injection for testability (`get_harvester`, `fetcher`)
  - Structured activity/error records via `logging_bridge`
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed

from . import logging_bridge
from .compliance import ComplianceGate
from .config import HarvestSourceConfig, Settings
from .errors import HarvestCancelled
from .fetcher import PageFetcher
from .harvesters.registry import HarvesterFactory
from .http_client import HttpClient
from .models import HarvestReport, HarvestResult


# =============================================================================
# DEFAULT HARVESTER LOOKUP (PRODUCTION)
# =============================================================================
def _default_get_harvester(kind: str) -> HarvesterFactory:
    """
    Resolve a harvester factory from the registry.

    Importing the package registers every built-in harvester.
    """
    from . import harvesters  # noqa: F401
    from .harvesters.registry import get as get_harvester_factory

    return get_harvester_factory(kind)


def build_fetcher(settings: Settings) -> PageFetcher:
    client = HttpClient(timeout=settings.timeout, user_agent=settings.user_agent)
    gate = ComplianceGate(default_interval=settings.default_delay_seconds)
    return PageFetcher(client=client, gate=gate)


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    get_harvester: Callable[[str], HarvesterFactory] | None = None,
    cancel: threading.Event | None = None,
    *,
    fetcher: PageFetcher | None = None,
) -> HarvestReport:
    """
    Run every selected source once and gather the results.

    Args:
        settings: keywords, limits, flags and the source list.
        get_harvester: Optional override to inject harvester factories (for testing).
        cancel: Set it from another thread to stop all sources at their next fetch.
        fetcher: Optional shared fetcher; built from settings when omitted.

    Returns:
        HarvestReport with one HarvestResult per source that ran, in config order.

    Raises:
        HarvestCancelled only when settings.propagate_cancel is set.
    """
    start_ns = time.perf_counter_ns()
    get_harvester_func = get_harvester or _default_get_harvester
    selected = settings.selected_sources()
    own_fetcher = fetcher is None
    shared = fetcher or build_fetcher(settings)

    durations_us: dict[str, int] = {}
    results_by_source: dict[str, HarvestResult] = {}

    logging_bridge.activity({
        "component": "job_harvest.engine",
        "op": "start",
        "keywords": settings.keywords,
        "sources": [sc.source for sc in selected],
        "max_pages": settings.max_pages,
        "skip_network": settings.skip_network,
    })

    # -------------------------------------------------------------------------
    # INNER: Run one source in a thread
    # -------------------------------------------------------------------------
    def _run_source(sc: HarvestSourceConfig) -> tuple[HarvestResult | None, int]:
        t0 = time.perf_counter_ns()

        # Skip network I/O if requested
        if settings.skip_network:
            logging_bridge.activity({
                "component": "job_harvest.engine",
                "op": "skipped_source",
                "kind": sc.kind,
                "source": sc.source,
                "reason": "skip_network",
            })
            return (None, 0)

        factory = get_harvester_func(sc.kind)
        harvester = factory(
            shared,
            source=sc.source,
            params=sc.params,
            propagate_cancel=settings.propagate_cancel,
        )
        keywords = str(sc.params.get("keywords") or settings.keywords)
        max_pages = int(sc.params.get("max_pages") or settings.max_pages)
        result = harvester.collect(keywords, max_pages, cancel)

        dt_us = int((time.perf_counter_ns() - t0) // 1000)
        logging_bridge.activity({
            "component": "job_harvest.engine",
            "op": "source_done",
            "kind": sc.kind,
            "source": sc.source,
            "found": len(result.items),
            "pages": result.pages_fetched,
            "stop_reason": result.stop_reason,
            "errors": result.errors[:5],
            "cancelled": result.cancelled,
            "duration_us": dt_us,
        })
        return (result, dt_us)

    # -------------------------------------------------------------------------
    # EXECUTE SOURCES IN PARALLEL
    # -------------------------------------------------------------------------
    try:
        with ThreadPoolExecutor(max_workers=min(len(selected) or 1, settings.max_threads)) as pool:
            futures = {pool.submit(_run_source, sc): sc for sc in selected}
            for fut in as_completed(futures):
                sc = futures[fut]
                try:
                    result, dt_us = fut.result()
                    durations_us[sc.source] = dt_us
                    if result is not None:
                        results_by_source[sc.source] = result
                except HarvestCancelled:
                    # only reachable with propagate_cancel; stop the siblings too
                    if cancel is not None:
                        cancel.set()
                    raise
                except Exception as e:
                    durations_us[sc.source] = durations_us.get(sc.source, 0)
                    logging_bridge.error({
                        "component": "job_harvest.engine",
                        "op": "harvester_run",
                        "kind": sc.kind,
                        "source": sc.source,
                        "error": repr(e),
                    })
    finally:
        if own_fetcher:
            shared.close()

    report = HarvestReport(
        results=[results_by_source[sc.source] for sc in selected if sc.source in results_by_source],
        durations_us=durations_us,
        total_us=int((time.perf_counter_ns() - start_ns) // 1000),
    )

    # -------------------------------------------------------------------------
    # SUMMARY LOG (always emitted unless cancellation propagated)
    # -------------------------------------------------------------------------
    logging_bridge.activity({
        "component": "job_harvest.engine",
        "op": "summary",
        "skip_network": settings.skip_network,
        "found_by_source": report.counts_by_source(),
        "found_total": len(report.listings),
        "cancelled_sources": sorted(r.source for r in report.results if r.cancelled),
        "durations_us": durations_us,
        "total_us": report.total_us,
    })
    return report
