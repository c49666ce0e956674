from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import ListingError
from .utils import canonical_url, clean_text, now_utc


# -----------------------------
# Enumerations (every one has an explicit UNKNOWN)
# -----------------------------
class SeniorityLevel(str, Enum):
    UNKNOWN = "Unknown"
    INTERN = "Intern"
    JUNIOR = "Junior"
    MIDDLE = "Middle"
    SENIOR = "Senior"
    LEAD = "Lead"
    ARCHITECT = "Architect"
    PRINCIPAL = "Principal"


class RemotePolicy(str, Enum):
    UNKNOWN = "Unknown"
    ON_SITE = "OnSite"
    HYBRID = "Hybrid"
    FULLY_REMOTE = "FullyRemote"
    REMOTE_FRIENDLY = "RemoteFriendly"


class EngagementType(str, Enum):
    UNKNOWN = "Unknown"
    EMPLOYMENT = "Employment"
    CONTRACT_B2B = "ContractB2B"
    FREELANCE = "Freelance"
    INSIDE_IR35 = "InsideIR35"


class GeoRestriction(str, Enum):
    UNKNOWN = "Unknown"
    UK_ONLY = "UK-only"
    EU_ONLY = "EU-only"
    US_ONLY = "US-only"
    AU_ONLY = "AU-only"
    WORK_AUTH_REQUIRED = "Work-Auth-Required"
    NO_VISA_SPONSORSHIP = "No-Visa-Sponsorship"
    SECURITY_CLEARANCE_REQUIRED = "Security-Clearance-Required"


class ATSType(str, Enum):
    UNKNOWN = "Unknown"
    GREENHOUSE = "Greenhouse"
    LEVER = "Lever"
    WORKABLE = "Workable"
    ASHBY = "Ashby"
    GENERIC = "Generic"


class ListingKind(str, Enum):
    JOB = "job"
    INTERVIEW_QUESTION = "interview_question"


# -----------------------------
# Canonical record
# -----------------------------
def normalize_skills(skills: Iterable[str] | None) -> frozenset[str]:
    """Case-insensitive dedupe; the first spelling seen wins."""
    seen: dict[str, str] = {}
    for s in skills or ():
        token = clean_text(s)
        if token and token.lower() not in seen:
            seen[token.lower()] = token
    return frozenset(seen.values())


@dataclass(frozen=True)
class CanonicalListing:
    """
    One normalized job vacancy or interview question.

    Built exactly once per card/detail page and never mutated. Construction
    rejects an empty title (ListingError) and normalizes the rest:
      - company/description/city/country are always strings
      - salary bounds are ordered; currency is None when no amount was parsed
      - geo_restrictions is never empty ((GeoRestriction.UNKNOWN,) when nothing matched)
      - required_skills is deduped case-insensitively
      - url is canonicalized (tracking params and fragment dropped)
      - scraped_date is the UTC wall clock at construction
    """

    id: str
    title: str
    source_platform: str
    url: str
    company: str = ""
    description: str = ""
    city: str = ""
    country: str = ""
    salary_min: Decimal | None = None
    salary_max: Decimal | None = None
    salary_currency: str | None = None
    is_hourly_rate: bool = False
    remote_policy: RemotePolicy = RemotePolicy.UNKNOWN
    seniority_level: SeniorityLevel = SeniorityLevel.UNKNOWN
    engagement_type: EngagementType = EngagementType.UNKNOWN
    geo_restrictions: tuple[GeoRestriction, ...] = (GeoRestriction.UNKNOWN,)
    required_skills: frozenset[str] = field(default_factory=frozenset)
    posted_date: datetime | None = None
    scraped_date: datetime = field(default_factory=now_utc)
    kind: ListingKind = ListingKind.JOB

    def __post_init__(self) -> None:
        title = clean_text(self.title)
        if not title:
            raise ListingError(f"listing {self.id!r} has no title")
        if not (self.id or "").strip():
            raise ListingError("listing has no id")

        setter = object.__setattr__
        setter(self, "title", title)
        setter(self, "company", clean_text(self.company))
        setter(self, "description", (self.description or "").strip())
        setter(self, "city", clean_text(self.city))
        setter(self, "country", clean_text(self.country))
        setter(self, "url", canonical_url(self.url))
        setter(self, "required_skills", normalize_skills(self.required_skills))

        lo, hi = self.salary_min, self.salary_max
        if lo is None and hi is not None:
            lo = hi
        elif hi is None and lo is not None:
            hi = lo
        if lo is not None and hi is not None and lo > hi:
            lo, hi = hi, lo
        setter(self, "salary_min", lo)
        setter(self, "salary_max", hi)
        if lo is None:
            setter(self, "salary_currency", None)
            setter(self, "is_hourly_rate", False)

        geo = tuple(g for g in (self.geo_restrictions or ()) if g is not GeoRestriction.UNKNOWN)
        setter(self, "geo_restrictions", tuple(dict.fromkeys(geo)) or (GeoRestriction.UNKNOWN,))

    @property
    def has_salary(self) -> bool:
        return self.salary_min is not None

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict (enum values, ISO datetimes, salary amounts as strings)."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "company": self.company,
            "source_platform": self.source_platform,
            "url": self.url,
            "city": self.city,
            "country": self.country,
            "salary_min": None if self.salary_min is None else str(self.salary_min),
            "salary_max": None if self.salary_max is None else str(self.salary_max),
            "salary_currency": self.salary_currency,
            "is_hourly_rate": self.is_hourly_rate,
            "remote_policy": self.remote_policy.value,
            "seniority_level": self.seniority_level.value,
            "engagement_type": self.engagement_type.value,
            "geo_restrictions": [g.value for g in self.geo_restrictions],
            "required_skills": sorted(self.required_skills, key=str.lower),
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
            "scraped_date": self.scraped_date.isoformat(),
            "description": self.description,
        }


# -----------------------------
# Transient results
# -----------------------------
@dataclass(frozen=True)
class ATSInfo:
    type: ATSType
    identifier: str | None = None


@dataclass
class CompanyJobsResult:
    company_name: str
    careers_url: str
    ats_type: ATSType = ATSType.UNKNOWN
    ats_identifier: str | None = None
    listings: list[CanonicalListing] = field(default_factory=list)
    error: str | None = None
    scraped_at: datetime = field(default_factory=now_utc)

    @property
    def success(self) -> bool:
        return bool(self.listings)


@dataclass
class HarvestResult:
    """
    Result bundle produced by one harvester for one configured source.
    - items: deduplicated listings (partial when the run stopped early)
    - errors: soft failures the harvester surfaced (fetch errors, auth walls)
    - stop_reason: why pagination ended ("last_page", "max_pages", "no_cards", "auth_wall", "cancelled", ...)
    """

    source: str
    items: list[CanonicalListing] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: str = ""
    cancelled: bool = False


@dataclass
class HarvestReport:
    """What one engine cycle produced across every configured source."""

    results: list[HarvestResult] = field(default_factory=list)
    durations_us: dict[str, int] = field(default_factory=dict)
    total_us: int = 0

    @property
    def listings(self) -> list[CanonicalListing]:
        return [item for r in self.results for item in r.items]

    def counts_by_source(self) -> dict[str, int]:
        return {r.source: len(r.items) for r in self.results}
