from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from .errors import ListingError
from .utils import canonical_url


def native_id_from_url(url: str, pattern: str | re.Pattern[str] | None = None) -> str:
    """
    Pull the source-native id out of a listing URL with `pattern` (first group).
    Falls back to a short SHA-1 of the canonical URL so the id survives restarts.
    """
    if pattern is not None:
        m = re.search(pattern, url or "")
        if m:
            return m.group(1) if m.groups() else m.group(0)
    digest = hashlib.sha1(canonical_url(url).encode("utf-8")).hexdigest()
    return digest[:16]


@dataclass(frozen=True)
class IdGenerator:
    """
    Stable listing ids: "<platform>:<native id>".

    Pure; no clock, no randomness. Platform names are lower-cased and may not
    contain ':' or whitespace, so ids of two platforms can never collide.
    """

    platform: str

    def __post_init__(self) -> None:
        slug = (self.platform or "").strip().lower()
        if not slug or ":" in slug or any(ch.isspace() for ch in slug):
            raise ValueError(f"Invalid platform name for ids: {self.platform!r}")
        object.__setattr__(self, "platform", slug)

    def generate(self, native_id: object) -> str:
        native = str(native_id if native_id is not None else "").strip()
        if not native:
            raise ListingError(f"{self.platform}: empty native id")
        return f"{self.platform}:{native}"

    def from_url(self, url: str, pattern: str | re.Pattern[str] | None = None) -> str:
        return self.generate(native_id_from_url(url, pattern))
