# job_harvest/harvesters/sources.py
"""
Board profiles for the HTML job boards.

Cascades are ordered from the most specific class hints to raw href
heuristics; markup on these sites drifts without notice, so every field has
at least one structural fallback.

Example sources entry:
{
  "kind": "djinni",
  "source": "djinni:dotnet",
  "params": {"keywords": ".NET", "max_pages": 3}
}
"""

from __future__ import annotations

from ..models import RemotePolicy, SeniorityLevel
from ..normalize import PlatformDefaults
from ..resolver import anchors_matching, anchors_with_text, labelled, self_if
from .board import BoardProfile, DetailProfile, register_profile

# =============================================================================
# Djinni (djinni.co) - page-numbered, 1-based
# =============================================================================
DJINNI = register_profile(BoardProfile(
    kind="djinni",
    platform="djinni",
    platform_name="Djinni",
    search_url="https://djinni.co/jobs/?primary_keyword={keywords}&page={page}",
    card_tiers=(
        ("li.list-jobs__item", "li.job-item", "div.job-list-item", "article.job"),
        ("li.list-item", "ul.jobs > li", "div.vacancy", "div.job-card"),
        (anchors_matching(r"/jobs/\d+"),),
    ),
    title=(
        "a.job-item__title-link",
        "a[class*=profile]",
        "a.job-list-item__link",
        "h2 a",
        "h3 a",
        "a[class*=job-title]",
        "a[href*='/jobs/']",
        self_if("a[href]"),
    ),
    link=(
        "a.job-item__title-link",
        "a[class*=profile]",
        "a.job-list-item__link",
        "a[href*='/jobs/']",
        "h2 a",
        "h3 a",
        self_if("a[href]"),
        "a[href]",
    ),
    company=("a[class*=company]", "[class*=company-name]", "[class*=company]"),
    salary=("[class*=public-salary]", "[class*=salary]"),
    location=("[class*=location]",),
    description=("[class*=job-list-item__job-info]", "[class*=description]", ".text-card"),
    posted=("time[datetime]",),
    next_page=(
        "a[rel=next]",
        "li.page-item.active + li.page-item a[href*='page=']",
        anchors_with_text("наступна", "next"),
    ),
    first_page=1,
    id_pattern=r"/jobs/(\d+)",
    request_delay=3.0,
    detail=DetailProfile(
        title=("h1",),
        description=("div[class*=vacancy-description]", "div.job-post__description", "div[class*=description]"),
        company=("a[class*=company]", "[class*=job-details--title]"),
        salary=("[class*=public-salary]", "[class*=salary]"),
        location=("[class*=location]",),
    ),
))

# =============================================================================
# DOU (jobs.dou.ua) - page-numbered, 0-based; Ukrainian market
# =============================================================================
DOU = register_profile(BoardProfile(
    kind="dou",
    platform="dou",
    platform_name="DOU",
    search_url="https://jobs.dou.ua/vacancies/?search={keywords}&descr=1&page={page}",
    card_tiers=(
        ("li.l-vacancy",),
        ("div.vacancy", "#vacancyListId li"),
        (anchors_matching(r"/vacancies/\d+"),),
    ),
    title=("a.vt", "div.title a", self_if("a[href]")),
    link=("a.vt", "div.title a", "a[href*='/vacancies/']", self_if("a[href]")),
    company=("a.company",),
    salary=("span.salary",),
    location=("span.cities",),
    description=("div.sh-info",),
    first_page=0,
    id_pattern=r"/vacancies/(\d+)",
    request_delay=3.0,
    defaults=PlatformDefaults(country="Ukraine", single_country=True),
    detail=DetailProfile(
        title=("h1.g-h2", "h1"),
        description=("div.b-typo.vacancy-section", "div.vacancy-section", "div.b-typo"),
        company=("div.b-compinfo a.company", "a.company", "div.l-n a"),
        salary=("span.salary",),
        location=("span.place",),
    ),
))

# =============================================================================
# LinkedIn (guest job search) - offset pagination, 25 per page; auth-wall aware
# =============================================================================
LINKEDIN_SENIORITY = {
    "director": SeniorityLevel.PRINCIPAL,
    "executive": SeniorityLevel.PRINCIPAL,
    "mid-senior level": SeniorityLevel.SENIOR,
    "associate": SeniorityLevel.MIDDLE,
    "entry level": SeniorityLevel.JUNIOR,
    "internship": SeniorityLevel.INTERN,
}

LINKEDIN = register_profile(BoardProfile(
    kind="linkedin",
    platform="linkedin",
    platform_name="LinkedIn",
    # f_WT=2: remote only; f_TPR=r604800: posted within a week
    search_url="https://www.linkedin.com/jobs/search/?keywords={keywords}&f_WT=2&f_TPR=r604800&start={offset}",
    card_tiers=(
        ("div.base-card",),
        ("div.job-search-card", "ul.jobs-search__results-list > li"),
        (anchors_matching(r"/jobs/view/"),),
    ),
    title=("h3.base-search-card__title", "span.sr-only"),
    link=("a.base-card__full-link", "a[href*='/jobs/view/']", self_if("a[href]")),
    company=("h4.base-search-card__subtitle", "a.hidden-nested-link"),
    location=("span.job-search-card__location",),
    posted=("time[datetime]", "time"),
    page_size=25,
    id_pattern=r"(\d{8,})",
    strip_query=True,
    request_delay=5.0,
    defaults=PlatformDefaults(remote_policy=RemotePolicy.FULLY_REMOTE, seniority_labels=LINKEDIN_SENIORITY),
    detail=DetailProfile(
        title=("h1.top-card-layout__title", "h1"),
        company=("a.topcard__org-name-link", "span.topcard__flavor"),
        description=("div.show-more-less-html__markup", "div.description__text"),
        location=("span.topcard__flavor--bullet",),
        seniority_label=(labelled("li.description__job-criteria-item", "h3", "span", "seniority"),),
    ),
))

# =============================================================================
# Work.ua - page-numbered, 1-based; salaries in UAH
# =============================================================================
WORK_UA = register_profile(BoardProfile(
    kind="workua",
    platform="workua",
    platform_name="Work.ua",
    search_url="https://www.work.ua/en/jobs-{keywords}/?page={page}",
    card_tiers=(
        ("div.job-link", "div.card.job", "#pjax-job-list div.card"),
        ("div.vacancy", "article"),
        (anchors_matching(r"/jobs/\d+/"),),
    ),
    title=("h2", "h3", "[class*=title]", self_if("a[href]")),
    link=("h2 a[href*='/jobs/']", "a[href*='/jobs/']", "a[href]", self_if("a[href]")),
    company=("[class*=company]", "b.name", "span[class*=employer]"),
    location=("[class*=location]", "[class*=city]"),
    salary=("[class*=salary]", "[class*=wage]"),
    description=("[class*=description]", "[class*=short-text]", "p.overflow"),
    next_page=("a[rel=next]", anchors_with_text("далі", "next")),
    first_page=1,
    id_pattern=r"/jobs/(\d+)",
    request_delay=3.0,
    defaults=PlatformDefaults(country="Ukraine", single_country=True, currency="UAH"),
    detail=DetailProfile(
        title=("h1", "h2#job-title"),
        company=("[itemprop=hiringOrganization]", "[class*=company-name]", "a[href*='/company/']"),
        description=("#job-description", "div[itemprop=description]", "[class*=description]"),
        location=("[itemprop=jobLocation]", "[class*=location]"),
        salary=("[itemprop=baseSalary]", "[class*=salary]"),
        posted=("[itemprop=datePosted]",),
    ),
))
