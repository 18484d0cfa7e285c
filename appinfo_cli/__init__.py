"""
appinfo-cli: fetches, caches and searches store metadata for applications.
"""

__version__ = "0.3.0"
