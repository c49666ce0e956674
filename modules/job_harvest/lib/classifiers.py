"""
Ordered keyword classifiers: free text -> enum member.

Each table is a list of (keywords, value) rules evaluated top to bottom on
lower-cased text; the first rule with any keyword hit wins, otherwise the
enum's UNKNOWN. Latin and Cyrillic keywords share the same tiers, so a
higher tier always beats a lower one whatever the language.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from .models import ATSType, EngagementType, GeoRestriction, RemotePolicy, SeniorityLevel

E = TypeVar("E")


class KeywordClassifier(Generic[E]):
    """
    Total classifier over an ordered rule table.

    whole_word=True requires keywords to stand alone ("intern" does not hit
    "international", "lead" does not hit "misleading").
    """

    def __init__(
        self,
        rules: Sequence[tuple[Iterable[str], E]],
        unknown: E,
        *,
        whole_word: bool = False,
    ):
        self.unknown = unknown
        self.whole_word = whole_word
        self._rules: list[tuple[tuple[str, ...], E]] = [
            (tuple(k.lower() for k in keywords), value) for keywords, value in rules
        ]
        self._compiled: list[tuple[re.Pattern[str] | None, tuple[str, ...], E]] = [
            (self._compile(kws), kws, value) for kws, value in self._rules
        ]

    def _compile(self, keywords: tuple[str, ...]) -> re.Pattern[str] | None:
        if not self.whole_word or not keywords:
            return None
        alts = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
        return re.compile(rf"(?<!\w)(?:{alts})(?!\w)")

    @staticmethod
    def _normalize(texts: tuple[Any, ...]) -> str:
        parts = [t for t in texts if isinstance(t, str) and t]
        return " ".join(parts).lower()

    def _hit(self, text: str, pattern: re.Pattern[str] | None, keywords: tuple[str, ...]) -> bool:
        if pattern is not None:
            return pattern.search(text) is not None
        return any(k in text for k in keywords)

    def classify(self, *texts: Any) -> E:
        """First matching rule's value, or `unknown`. Never raises."""
        text = self._normalize(texts)
        if not text:
            return self.unknown
        for pattern, keywords, value in self._compiled:
            if self._hit(text, pattern, keywords):
                return value
        return self.unknown

    def matches(self, *texts: Any) -> list[E]:
        """Every matching rule's value, in table order (used for multi-valued fields)."""
        text = self._normalize(texts)
        if not text:
            return []
        return [value for pattern, keywords, value in self._compiled if self._hit(text, pattern, keywords)]

    def extended(self, rules: Sequence[tuple[Iterable[str], E]], *, first: bool = False) -> KeywordClassifier[E]:
        """New classifier with extra rules prepended (first=True) or appended."""
        extra = [(kws, value) for kws, value in rules]
        combined = extra + self._rules if first else self._rules + extra
        return KeywordClassifier(combined, self.unknown, whole_word=self.whole_word)


# =============================================================================
# RULE TABLES
# =============================================================================
SENIORITY_RULES: list[tuple[tuple[str, ...], SeniorityLevel]] = [
    (("principal", "staff"), SeniorityLevel.PRINCIPAL),
    (("architect", "архітектор", "архитектор"), SeniorityLevel.ARCHITECT),
    (("lead", "tech lead", "teamlead", "тімлід", "тім лід", "лід", "керівник", "ведущий"), SeniorityLevel.LEAD),
    (("senior", "sr.", "sr", "сеніор", "синьйор", "сеньор", "старший"), SeniorityLevel.SENIOR),
    (("middle", "mid-level", "mid", "мідл", "мидл", "середній"), SeniorityLevel.MIDDLE),
    (("junior", "jr.", "jr", "entry", "entry-level", "джуніор", "джуниор", "молодший", "младший"), SeniorityLevel.JUNIOR),
    (("intern", "internship", "trainee", "стажер", "стажист", "стажёр"), SeniorityLevel.INTERN),
]

REMOTE_RULES: list[tuple[tuple[str, ...], RemotePolicy]] = [
    (("fully remote", "full remote", "100% remote", "remote only", "remote-only", "віддалено", "удаленно"),
     RemotePolicy.FULLY_REMOTE),
    (("hybrid", "гібрид", "гибрид"), RemotePolicy.HYBRID),
    (("remote", "remotely", "ремоут"), RemotePolicy.REMOTE_FRIENDLY),
    (("office", "offices", "on-site", "onsite", "on site", "in-office", "офіс", "офісі", "офісу", "офис", "офисе"),
     RemotePolicy.ON_SITE),
]

ENGAGEMENT_RULES: list[tuple[tuple[str, ...], EngagementType]] = [
    (("inside ir35", "ir35 inside", "paye only", "deemed employment"), EngagementType.INSIDE_IR35),
    (("payroll only", "payroll-only", "full-time employee", "fte only", "permanent employment", "staff position"),
     EngagementType.EMPLOYMENT),
    (("b2b", "contractor", "outside ir35", "c2c", "1099", "фоп", "contract-based", "corp-to-corp",
      "independent contractor"), EngagementType.CONTRACT_B2B),
    (("freelance", "project-based contract"), EngagementType.FREELANCE),
]

GEO_RULES: list[tuple[tuple[str, ...], GeoRestriction]] = [
    (("uk only", "uk-only", "uk-based only", "must be based in the uk", "must reside in the uk", "uk residents only"),
     GeoRestriction.UK_ONLY),
    (("eu only", "eu-only", "eu-based only", "must be based in the eu", "must reside in the eu", "eu residents only",
      "european union only"), GeoRestriction.EU_ONLY),
    (("us only", "us-only", "us-based only", "must be based in the us", "must reside in the us", "us residents only",
      "united states only"), GeoRestriction.US_ONLY),
    (("au only", "australia only", "australian residents only"), GeoRestriction.AU_ONLY),
    (("must be authorized to work in", "work authorization required", "right to work in the us",
      "right to work in the uk", "must have the right to work", "eligible to work in the u"),
     GeoRestriction.WORK_AUTH_REQUIRED),
    (("visa sponsorship not available", "no visa sponsorship", "unable to sponsor", "cannot sponsor",
      "will not sponsor"), GeoRestriction.NO_VISA_SPONSORSHIP),
    (("security clearance", "itar restricted", "us persons only"), GeoRestriction.SECURITY_CLEARANCE_REQUIRED),
]

# Signature substrings in fixed detection order
ATS_RULES: list[tuple[tuple[str, ...], ATSType]] = [
    (("greenhouse.io", "boards.greenhouse"), ATSType.GREENHOUSE),
    (("lever.co", "jobs.lever"), ATSType.LEVER),
    (("workable.com", "apply.workable"), ATSType.WORKABLE),
    (("ashbyhq.com", "jobs.ashbyhq"), ATSType.ASHBY),
]

SENIORITY = KeywordClassifier(SENIORITY_RULES, SeniorityLevel.UNKNOWN, whole_word=True)
REMOTE_POLICY = KeywordClassifier(REMOTE_RULES, RemotePolicy.UNKNOWN, whole_word=True)
ENGAGEMENT = KeywordClassifier(ENGAGEMENT_RULES, EngagementType.UNKNOWN)
GEO = KeywordClassifier(GEO_RULES, GeoRestriction.UNKNOWN)
ATS = KeywordClassifier(ATS_RULES, ATSType.UNKNOWN)


def classify_seniority(*texts: Any) -> SeniorityLevel:
    return SENIORITY.classify(*texts)


def classify_remote_policy(*texts: Any) -> RemotePolicy:
    return REMOTE_POLICY.classify(*texts)


def classify_engagement(*texts: Any) -> EngagementType:
    return ENGAGEMENT.classify(*texts)


def classify_geo_restriction(*texts: Any) -> GeoRestriction:
    return GEO.classify(*texts)


def detect_geo_restrictions(*texts: Any) -> tuple[GeoRestriction, ...]:
    """All restrictions mentioned, in table order; (UNKNOWN,) when none are."""
    found = GEO.matches(*texts)
    return tuple(found) or (GeoRestriction.UNKNOWN,)


def classify_ats(*texts: Any) -> ATSType:
    return ATS.classify(*texts)


# =============================================================================
# SKILLS
# =============================================================================
DEFAULT_SKILLS: tuple[str, ...] = (
    "C#", ".NET", "ASP.NET", "ASP.NET Core", "Entity Framework", "Blazor", "F#",
    "Java", "Kotlin", "Scala", "Python", "Django", "Flask", "FastAPI",
    "JavaScript", "TypeScript", "Node.js", "React", "Angular", "Vue",
    "Golang", "Rust", "C++", "Ruby", "Rails", "PHP", "Swift",
    "SQL", "PostgreSQL", "MySQL", "SQL Server", "MongoDB", "Redis", "Elasticsearch",
    "Kafka", "RabbitMQ", "gRPC", "GraphQL",
    "Docker", "Kubernetes", "Terraform", "AWS", "Azure", "GCP", "CI/CD", "Linux",
    "Microservices",
)


def _skill_pattern(skill: str) -> re.Pattern[str]:
    # symbols like '#', '+', '.' count as part of the token ("c#" vs "c", ".net" vs "asp.net")
    return re.compile(rf"(?<![\w.#+]){re.escape(skill.lower())}(?![\w#+])")


_DEFAULT_SKILL_PATTERNS = [(s, _skill_pattern(s)) for s in DEFAULT_SKILLS]


def extract_skills(*texts: Any, vocabulary: Iterable[str] | None = None) -> frozenset[str]:
    """Vocabulary terms mentioned in the text, in their canonical spelling."""
    text = " ".join(t for t in texts if isinstance(t, str) and t).lower()
    if not text:
        return frozenset()
    patterns = _DEFAULT_SKILL_PATTERNS if vocabulary is None else [(s, _skill_pattern(s)) for s in vocabulary]
    return frozenset(skill for skill, pat in patterns if pat.search(text))
