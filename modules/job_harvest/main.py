from __future__ import annotations

import threading
from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity
from .lib.models import HarvestReport


def run(cancel: threading.Event | None = None, **kwargs: Any) -> HarvestReport:
    """
    Entry point for the 'job_harvest' module.

    Accepts kwargs (from the CLI or a host scheduler), including:
      keywords: str = $JOB_HARVEST_KEYWORDS
      sources: list[{"kind", "source", "params"}]   # inline selection
      sources_path: str = $JOB_HARVEST_SOURCES      # file selection
      max_pages: int = 5
      max_threads: int = 4
      skip_network: bool = False
      propagate_cancel: bool = False
      default_delay_seconds: float = 2.0
      timeout: float = 15.0
      user_agent: str

    Returns:
      HarvestReport with the canonical listings of every source that ran.
    """
    # Build validated settings from env + kwargs
    settings = Settings.from_env_and_kwargs(kwargs)

    # Log a small start record (structured; no prints)
    log_activity({
        "component": "job_harvest.main",
        "op": "start",
        "keywords": settings.keywords,
        "kinds": sorted(settings.group_by_kind().keys()),
        "flags": {
            "skip_network": settings.skip_network,
            "propagate_cancel": settings.propagate_cancel,
        },
    })

    return _run_engine(settings, cancel=cancel)
