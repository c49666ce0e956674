from __future__ import annotations

from collections.abc import Callable

from .base import BaseHarvester

# kind -> factory(fetcher, *, source, params, propagate_cancel) -> harvester
HarvesterFactory = Callable[..., BaseHarvester]

# Global in-process registry
_REGISTRY: dict[str, HarvesterFactory] = {}


def register_factory(kind: str, factory: HarvesterFactory) -> HarvesterFactory:
    """
    Register a factory under `kind` (case-insensitive).
    Re-registering the same factory is a no-op; a different one is rejected.
    """
    if not isinstance(kind, str) or not kind.strip():
        raise ValueError(f"Cannot register harvester {factory!r}: missing/empty 'kind'.")
    key = kind.strip().lower()
    if key in _REGISTRY and _REGISTRY[key] is not factory:
        raise ValueError(f"Harvester kind {key!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = factory
    return factory


def register(cls: type[BaseHarvester]) -> type[BaseHarvester]:
    """
    Class decorator: register a harvester class under its `kind`.
    """
    register_factory(getattr(cls, "kind", "") or "", cls)
    return cls


def get(kind: str) -> HarvesterFactory:
    """
    Look up a harvester factory by kind (case-insensitive).
    Raises KeyError if not found.
    """
    key = (kind or "").strip().lower()
    if key not in _REGISTRY:
        raise KeyError(f"No harvester registered for kind {kind!r}.")
    return _REGISTRY[key]


def all_kinds() -> dict[str, HarvesterFactory]:
    """
    Return a shallow copy of the registry (useful for debugging/tests).
    """
    return dict(_REGISTRY)
