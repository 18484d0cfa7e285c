"""
Core application engine for fetching and caching store metadata.

This package contains the primary logic. The `MetadataService` acts as the
high-level coordinator, delegating remote work to the `BatchOrchestrator`,
while `AppCatalog` serves search over the full application list.
"""

from .batch import BatchOrchestrator
from .catalog import AppCatalog
from .service import MetadataService

__all__ = ["AppCatalog", "BatchOrchestrator", "MetadataService"]
