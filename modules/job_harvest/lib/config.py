from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .compliance import DEFAULT_INTERVAL_SECONDS
from .http_client import DEFAULT_USER_AGENT
from .utils import getenv_str, truthy

DEFAULT_SOURCES_PATH = "/app/local/config/job_harvest_sources.json"


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class HarvestSourceConfig:
    """
    One logical harvester invocation.
    - kind: harvester family (e.g., "djinni", "linkedin", "remoteok", "ats_auto")
    - source: human-stable label used in results & logs (e.g., "djinni:dotnet")
    - params: per-source overrides passed to the harvester (keywords, max_pages,
              delay_seconds, companies, subreddits, ...)
    """

    kind: str
    source: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Settings:
    """
    Canonical configuration for a 'job_harvest' run.

    Sources come from either an inline `sources` list (tests, ad-hoc runs) or
    a JSON file: `sources_path`, else $JOB_HARVEST_SOURCES, else
    /app/local/config/job_harvest_sources.json.
    """

    keywords: str = ""
    sources_path: str | None = None
    _selected: list[HarvestSourceConfig] = field(default_factory=list, repr=False)

    # Runtime behavior
    max_pages: int = 5
    max_threads: int = 4
    skip_network: bool = False
    propagate_cancel: bool = False

    # HTTP / politeness
    default_delay_seconds: float = DEFAULT_INTERVAL_SECONDS
    timeout: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT

    # ------------- convenience -------------
    def selected_sources(self) -> list[HarvestSourceConfig]:
        """
        Return the active list of HarvestSourceConfig for this run (inline or file).
        """
        if self._selected:
            return self._selected

        path = self.sources_path or DEFAULT_SOURCES_PATH
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"job_harvest sources file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"job_harvest sources file is invalid JSON: {path}") from e

        self._selected = _parse_sources_list(data)
        if not self._selected:
            raise ConfigError(f"No sources found in {path}")
        return self._selected

    def group_by_kind(self) -> dict[str, list[HarvestSourceConfig]]:
        by_kind: dict[str, list[HarvestSourceConfig]] = {}
        for sc in self.selected_sources():
            by_kind.setdefault(sc.kind, []).append(sc)
        return by_kind

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs (falling back to env) with validation.

        Expected kwargs (all optional):

            keywords: str = $JOB_HARVEST_KEYWORDS or ""
            sources: list[{"kind","source","params"}]   # inline selection
            sources_path: str = $JOB_HARVEST_SOURCES    # file selection
            max_pages: int = 5
            max_threads: int = 4
            skip_network: bool = false
            propagate_cancel: bool = false
            default_delay_seconds: float = 2.0
            timeout: float = 15.0
            user_agent: str
        """
        kw = dict(kwargs or {})

        keywords = str(kw.get("keywords") or getenv_str("JOB_HARVEST_KEYWORDS", "") or "").strip()

        sources_path = kw.get("sources_path") or getenv_str("JOB_HARVEST_SOURCES")
        if sources_path is not None:
            sources_path = str(sources_path).strip() or None

        inline = _parse_sources_list(kw.get("sources")) if kw.get("sources") is not None else []

        try:
            max_pages = int(kw.get("max_pages") or 5)
            max_threads = int(kw.get("max_threads") or 4)
            default_delay = float(kw.get("default_delay_seconds") if kw.get("default_delay_seconds") is not None
                                  else DEFAULT_INTERVAL_SECONDS)
            timeout = float(kw.get("timeout") or 15.0)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        settings = cls(
            keywords=keywords,
            sources_path=sources_path,
            _selected=inline,
            max_pages=max_pages,
            max_threads=max_threads,
            skip_network=truthy(kw.get("skip_network")),
            propagate_cancel=truthy(kw.get("propagate_cancel")),
            default_delay_seconds=default_delay,
            timeout=timeout,
            user_agent=str(kw.get("user_agent") or DEFAULT_USER_AGENT),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _parse_sources_list(value: Any) -> list[HarvestSourceConfig]:
    """
    Parse a flat list into HarvestSourceConfig objects.
    Accepts: [{"kind": "...", "source": "...", "params": {...}}, ...]
    """
    if not value:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of source objects.")
    out: list[HarvestSourceConfig] = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigError(f"Item[{i}] must be an object.")
        kind = item.get("kind")
        source = item.get("source") or kind
        params = item.get("params") or {}
        if not kind:
            raise ConfigError(f"Item[{i}] requires 'kind'.")
        if not isinstance(params, dict):
            raise ConfigError(f"Item[{i}].params must be an object.")
        out.append(HarvestSourceConfig(kind=str(kind).strip().lower(), source=str(source), params=dict(params)))
    return out


def _validate_settings(s: Settings) -> None:
    if s.max_pages <= 0:
        raise ConfigError("'max_pages' must be >= 1.")
    if s.max_threads <= 0:
        raise ConfigError("'max_threads' must be >= 1.")
    if s.default_delay_seconds < 0:
        raise ConfigError("'default_delay_seconds' cannot be negative.")
    if s.timeout <= 0:
        raise ConfigError("'timeout' must be > 0.")

    selected = s.selected_sources()
    if not selected:
        raise ConfigError("No selected sources to run.")

    labels = [sc.source for sc in selected]
    dupes = sorted({x for x in labels if labels.count(x) > 1})
    if dupes:
        raise ConfigError(f"Duplicate source labels: {dupes}")
