# job_harvest/harvesters/__init__.py
from __future__ import annotations

# Importing each module registers its harvesters under their `kind`
from . import ats, reddit, remoteok, sources, upwork
from .ats import AtsAutoHarvester, AtsDetector, GenericCareersHarvester, GreenhouseHarvester, LeverHarvester
from .base import BaseHarvester, ListingCollector
from .board import BoardHarvester, BoardProfile
from .reddit import RedditQuestionHarvester
from .registry import all_kinds, get, register
from .remoteok import RemoteOkHarvester
from .upwork import UpworkHarvester

__all__ = [
    "AtsAutoHarvester",
    "AtsDetector",
    "BaseHarvester",
    "BoardHarvester",
    "BoardProfile",
    "GenericCareersHarvester",
    "GreenhouseHarvester",
    "LeverHarvester",
    "ListingCollector",
    "RedditQuestionHarvester",
    "RemoteOkHarvester",
    "UpworkHarvester",
    "all_kinds",
    "ats",
    "get",
    "reddit",
    "register",
    "remoteok",
    "sources",
    "upwork",
]
