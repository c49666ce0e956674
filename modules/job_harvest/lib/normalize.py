"""
Raw extracted strings -> CanonicalListing.

Every harvester funnels through `build_listing`, so classification, salary
parsing, location splitting and id generation behave identically per source;
only the PlatformDefaults differ.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from .classifiers import (
    classify_engagement,
    classify_remote_policy,
    classify_seniority,
    detect_geo_restrictions,
    extract_skills,
)
from .ids import IdGenerator
from .models import (
    CanonicalListing,
    EngagementType,
    ListingKind,
    RemotePolicy,
    SeniorityLevel,
    normalize_skills,
)
from .salary import DEFAULT_CURRENCY, SalaryInfo, parse_salary
from .utils import clean_text, split_location


@dataclass(frozen=True)
class PlatformDefaults:
    """
    Per-source fallbacks applied only when classification comes back UNKNOWN
    (e.g. a freelance marketplace treating unlabelled posts as Senior).
    """

    country: str = ""
    # national boards: location lists cities only, country is always `country`
    single_country: bool = False
    currency: str = DEFAULT_CURRENCY
    seniority: SeniorityLevel = SeniorityLevel.UNKNOWN
    remote_policy: RemotePolicy = RemotePolicy.UNKNOWN
    engagement: EngagementType = EngagementType.UNKNOWN
    # source-specific seniority labels ("mid-senior level" -> Senior)
    seniority_labels: Mapping[str, SeniorityLevel] = field(default_factory=dict)
    currency_markers: Mapping[str, str] = field(default_factory=dict)


@dataclass
class RawListing:
    """Strings as pulled off a card/detail page/API item, before normalization."""

    native_id: str
    title: str
    url: str
    company: str = ""
    location: str = ""
    country: str = ""  # explicit country beats whatever the location string implies
    salary_text: str = ""
    description: str = ""
    posted: datetime | None = None
    tags: Sequence[str] = ()
    seniority_label: str = ""
    remote_hint: str = ""
    engagement_hint: str = ""
    salary: SalaryInfo | None = None
    kind: ListingKind = ListingKind.JOB


def _seniority(raw: RawListing, defaults: PlatformDefaults) -> SeniorityLevel:
    label = clean_text(raw.seniority_label).lower()
    if label:
        mapped = defaults.seniority_labels.get(label)
        if mapped is not None:
            return mapped
        level = classify_seniority(label)
        if level is not SeniorityLevel.UNKNOWN:
            return level
    for text in (raw.title, raw.description):
        level = classify_seniority(text)
        if level is not SeniorityLevel.UNKNOWN:
            return level
    return defaults.seniority


def build_listing(
    raw: RawListing,
    *,
    ids: IdGenerator,
    platform_name: str,
    defaults: PlatformDefaults | None = None,
) -> CanonicalListing:
    """Raises ListingError when the raw listing cannot form a valid record."""
    defaults = defaults or PlatformDefaults()

    city, country = split_location(raw.location)
    if raw.country:
        country = raw.country
    elif defaults.single_country or not country:
        country = defaults.country

    salary = raw.salary
    if salary is None and raw.salary_text:
        salary = parse_salary(raw.salary_text, default_currency=defaults.currency, markers=defaults.currency_markers)
    if salary is None or not salary.is_present:
        salary = SalaryInfo(None, None, None, False)

    remote = classify_remote_policy(raw.remote_hint, raw.location, raw.title, raw.description)
    if remote is RemotePolicy.UNKNOWN:
        remote = defaults.remote_policy

    engagement = classify_engagement(raw.engagement_hint, raw.title, raw.salary_text, raw.description)
    if engagement is EngagementType.UNKNOWN:
        engagement = defaults.engagement

    # vocabulary spellings first so they win the case-insensitive dedupe
    skills = sorted(extract_skills(raw.title, raw.description))
    skills.extend(t for t in raw.tags if isinstance(t, str))

    return CanonicalListing(
        id=ids.generate(raw.native_id),
        title=raw.title,
        company=raw.company,
        description=raw.description,
        city=city,
        country=country,
        salary_min=salary.min,
        salary_max=salary.max,
        salary_currency=salary.currency,
        is_hourly_rate=salary.is_hourly,
        remote_policy=remote,
        seniority_level=_seniority(raw, defaults),
        engagement_type=engagement,
        geo_restrictions=detect_geo_restrictions(raw.location, raw.description),
        required_skills=normalize_skills(skills),
        source_platform=platform_name,
        url=raw.url,
        posted_date=raw.posted,
        kind=raw.kind,
    )
