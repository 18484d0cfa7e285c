"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration, store metadata and
statistics.
"""

from .config import MetadataConfig, Priority
from .metadata import AppDetails, FetchResult, GameInfo, SearchResults
from .stats import FetchStats

__all__ = [
    "AppDetails",
    "FetchResult",
    "FetchStats",
    "GameInfo",
    "MetadataConfig",
    "Priority",
    "SearchResults",
]
