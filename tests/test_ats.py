# tests/test_ats.py
import threading
from datetime import datetime, timezone

import pytest

from modules.job_harvest.lib.errors import HarvestCancelled
from modules.job_harvest.lib.harvesters import ats
from modules.job_harvest.lib.harvesters.ats import (
    GREENHOUSE_API,
    LEVER_API,
    AtsAutoHarvester,
    AtsDetector,
    GreenhouseHarvester,
    detect_ats,
    resolve_company,
)
from modules.job_harvest.lib.models import ATSInfo, ATSType, EngagementType, GeoRestriction, RemotePolicy, SeniorityLevel

ACME = "https://acme.test/careers"
GLOBEX = "https://jobs.lever.co/globex"
GH_EMBED = '<html><body><div id="grnhse_app"></div><script src="https://boards.greenhouse.io/embed/job_board/js?for=acme"></script></body></html>'


# ----------------------------------------------------------------------
# Detection (pure)
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "url, html, expected",
    [
        (ACME, GH_EMBED, ATSInfo(ATSType.GREENHOUSE, "acme")),
        ("https://boards.greenhouse.io/acme", "", ATSInfo(ATSType.GREENHOUSE, "acme")),
        ("https://jobs.lever.co/globex", "", ATSInfo(ATSType.LEVER, "globex")),
        (ACME, '<a href="https://jobs.lever.co/globex/abc-123">Apply</a>', ATSInfo(ATSType.LEVER, "globex")),
        (ACME, '<a href="https://apply.workable.com/initech/">Jobs</a>', ATSInfo(ATSType.WORKABLE, "initech")),
        ("https://jobs.ashbyhq.com/hooli", "", ATSInfo(ATSType.ASHBY, "hooli")),
        (ACME, "<html><a href='/careers/dev'>Developer</a></html>", ATSInfo(ATSType.GENERIC, ACME)),
    ],
)
def test_detect_ats(url, html, expected):
    assert detect_ats(url, html) == expected


def test_signature_without_identifier_falls_through_to_generic():
    html = "<footer>Hiring powered by greenhouse.io</footer>"
    assert detect_ats(ACME, html) == ATSInfo(ATSType.GENERIC, ACME)


# ----------------------------------------------------------------------
# resolve_company
# ----------------------------------------------------------------------
def test_resolve_greenhouse_company(make_fetcher, load_fixture):
    fetcher, client = make_fetcher({
        ACME: GH_EMBED,
        GREENHOUSE_API.format(board="acme"): load_fixture("greenhouse_jobs.json"),
    })

    result = resolve_company("Acme", ACME, fetcher=fetcher)

    assert (result.ats_type, result.ats_identifier) == (ATSType.GREENHOUSE, "acme")
    assert result.error is None and result.success
    assert client.urls == [ACME, "https://boards-api.greenhouse.io/v1/boards/acme/jobs?content=true"]

    backend, designer = result.listings  # the posting without an id is skipped
    assert backend.id == "greenhouse:acme-4001"
    assert backend.company == "Acme"
    assert backend.source_platform == "Greenhouse"
    assert backend.description.startswith("We build billing services in C# on Azure.")
    assert {"C#", "Azure"} <= backend.required_skills
    assert backend.remote_policy is RemotePolicy.REMOTE_FRIENDLY
    assert backend.seniority_level is SeniorityLevel.SENIOR
    assert designer.country == "United States"
    assert designer.geo_restrictions == (GeoRestriction.WORK_AUTH_REQUIRED,)


def test_resolve_lever_company(make_fetcher, load_fixture):
    fetcher, _ = make_fetcher({
        GLOBEX: "<html><body>Globex openings</body></html>",
        LEVER_API.format(company="globex"): load_fixture("lever_postings.json"),
    })

    result = resolve_company("Globex", GLOBEX, fetcher=fetcher)

    assert (result.ats_type, result.ats_identifier) == (ATSType.LEVER, "globex")
    staff, junior = result.listings
    assert staff.id == "lever:globex-abc-123"
    assert staff.company == "Globex"
    assert staff.seniority_level is SeniorityLevel.PRINCIPAL
    assert staff.engagement_type is EngagementType.CONTRACT_B2B
    assert staff.remote_policy is RemotePolicy.REMOTE_FRIENDLY
    assert (staff.city, staff.country) == ("London", "United Kingdom")
    assert "Platform" in staff.required_skills
    assert staff.posted_date == datetime(2024, 12, 31, tzinfo=timezone.utc)

    assert junior.seniority_level is SeniorityLevel.JUNIOR
    assert junior.remote_policy is RemotePolicy.HYBRID
    assert junior.description == "SQL and Python daily."
    assert {"SQL", "Python"} <= junior.required_skills


def test_resolve_generic_careers_page(make_fetcher):
    page = """
    <html><body>
      <ul class="jobs-list">
        <li><a href="/careers/senior-dotnet-engineer">Senior .NET Engineer</a></li>
        <li><a href="/careers/qa-lead?utm_source=site">QA Lead</a></li>
        <li><a href="/careers/">All</a></li>
        <li><a href="/careers">Back to all openings</a></li>
      </ul>
    </body></html>"""
    fetcher, client = make_fetcher({ACME: page})

    result = resolve_company("Acme", ACME, fetcher=fetcher)

    # the page fetched for detection is the page harvested
    assert client.urls == [ACME]
    assert result.ats_type is ATSType.GENERIC
    assert result.ats_identifier == ACME
    assert [x.title for x in result.listings] == ["Senior .NET Engineer", "QA Lead"]
    engineer, lead = result.listings
    assert engineer.url == "https://acme.test/careers/senior-dotnet-engineer"
    assert engineer.id.startswith("careers:")
    assert lead.url == "https://acme.test/careers/qa-lead"
    assert lead.company == "Acme"


def test_generic_page_with_keywords(make_fetcher):
    page = '<div class="openings"><a href="/jobs/1">Senior .NET Engineer</a><a href="/jobs/2">Office Manager</a></div>'
    fetcher, _ = make_fetcher({ACME: page})
    result = AtsDetector(fetcher).resolve_company("Acme", ACME, keywords=".net")
    assert [x.title for x in result.listings] == ["Senior .NET Engineer"]


@pytest.mark.parametrize(
    "html, ats_type",
    [
        ('<a href="https://apply.workable.com/acme/">Jobs</a>', ATSType.WORKABLE),
        ('<iframe src="https://jobs.ashbyhq.com/acme/embed"></iframe>', ATSType.ASHBY),
    ],
)
def test_recognized_but_unsupported_ats_yields_no_listings(make_fetcher, html, ats_type):
    fetcher, client = make_fetcher({ACME: html})
    result = resolve_company("Acme", ACME, fetcher=fetcher)
    assert result.ats_type is ats_type
    assert result.ats_identifier == "acme"
    assert result.listings == []
    assert result.error is None
    assert not result.success
    assert client.urls == [ACME]


def test_unreachable_careers_page_is_unknown(make_fetcher):
    fetcher, _ = make_fetcher({ACME: (404, "")})
    result = resolve_company("Acme", ACME, fetcher=fetcher)
    assert result.ats_type is ATSType.UNKNOWN
    assert result.ats_identifier is None
    assert result.listings == [] and result.error is None


def test_ats_api_failure_is_reported(make_fetcher):
    fetcher, _ = make_fetcher({ACME: GH_EMBED, GREENHOUSE_API.format(board="acme"): (500, "")})
    result = resolve_company("Acme", ACME, fetcher=fetcher)
    assert result.ats_type is ATSType.GREENHOUSE
    assert result.listings == []
    assert "[500]" in result.error


def test_unexpected_exception_lands_in_error(make_fetcher, monkeypatch):
    def _boom(self, info, name, url, document=None):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(ats.AtsDetector, "harvester_for", _boom)
    fetcher, _ = make_fetcher({ACME: GH_EMBED})

    result = resolve_company("Acme", ACME, fetcher=fetcher)

    assert result.error == "kaboom"
    assert result.ats_type is ATSType.GREENHOUSE
    assert result.listings == []


def test_cancellation_propagates(make_fetcher):
    cancel = threading.Event()
    cancel.set()
    fetcher, client = make_fetcher({ACME: GH_EMBED})
    with pytest.raises(HarvestCancelled):
        resolve_company("Acme", ACME, cancel, fetcher=fetcher)
    assert client.calls == []


# ----------------------------------------------------------------------
# Registered ATS harvesters
# ----------------------------------------------------------------------
def test_greenhouse_harvester_from_params(make_fetcher, load_fixture):
    fetcher, _ = make_fetcher({GREENHOUSE_API.format(board="acme"): load_fixture("greenhouse_jobs.json")})
    harvester = GreenhouseHarvester(fetcher, source="gh:acme", params={"board": "acme", "company": "Acme Corp"})

    result = harvester.collect("backend")

    assert [x.id for x in result.items] == ["greenhouse:acme-4001"]
    assert result.items[0].company == "Acme Corp"
    assert result.stop_reason == "last_page"


def test_greenhouse_harvester_without_board(make_fetcher):
    fetcher, client = make_fetcher({})
    result = GreenhouseHarvester(fetcher).collect("")
    assert result.stop_reason == "config_error"
    assert client.calls == []


def test_ats_auto_pools_companies(make_fetcher, load_fixture):
    fetcher, _ = make_fetcher({
        ACME: GH_EMBED,
        GREENHOUSE_API.format(board="acme"): load_fixture("greenhouse_jobs.json"),
        "https://initech.test/careers": (503, ""),
    })
    params = {
        "companies": [
            {"name": "Acme", "careers_url": ACME},
            {"name": "Initech", "url": "https://initech.test/careers"},
            {"name": "No url"},
            "junk",
        ],
        "delay_seconds": 0,
    }
    harvester = AtsAutoHarvester(fetcher, source="companies", params=params)
    assert harvester.companies() == [("Acme", ACME), ("Initech", "https://initech.test/careers")]

    result = harvester.collect("")

    assert [x.id for x in result.items] == ["greenhouse:acme-4001", "greenhouse:acme-4002"]
    assert result.pages_fetched == 2
    assert result.errors == []
    assert result.stop_reason == "last_page"


def test_ats_auto_without_companies(make_fetcher):
    fetcher, _ = make_fetcher({})
    result = AtsAutoHarvester(fetcher, params={}).collect("")
    assert result.stop_reason == "config_error"
    assert result.errors
