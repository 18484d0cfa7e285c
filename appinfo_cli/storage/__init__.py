"""
Storage Layer.

This package handles all data persistence, including configuration files
and the per-key metadata cache.
"""

from .cache import DiskCacheStore
from .config_manager import ConfigManager

__all__ = ["ConfigManager", "DiskCacheStore"]
