# modules/job_harvest/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, HarvestSourceConfig, Settings
from .engine import run_once
from .errors import HarvestCancelled, HarvestError, ListingError
from .harvesters.ats import resolve_company
from .models import (
    ATSInfo,
    ATSType,
    CanonicalListing,
    CompanyJobsResult,
    HarvestReport,
    HarvestResult,
)

__all__ = [
    "ATSInfo",
    "ATSType",
    "CanonicalListing",
    "CompanyJobsResult",
    "ConfigError",
    "HarvestCancelled",
    "HarvestError",
    "HarvestReport",
    "HarvestResult",
    "HarvestSourceConfig",
    "ListingError",
    "Settings",
    "resolve_company",
    "run_once",
]
