from __future__ import annotations


class HarvestError(Exception):
    """Base exception for harvesting failures."""


class HarvestCancelled(HarvestError):
    """
    Raised at a suspension point (gate wait or page fetch) once the caller's
    cancel event is set. The only condition allowed to cross a harvester boundary.
    """


class ListingError(ValueError):
    """A listing could not be constructed (e.g., missing title or native id)."""
