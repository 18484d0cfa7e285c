"""
Store API Layer.

This package handles all communication with the store's JSON API.
"""

from .client import StoreAPIClient
from .gate import ConcurrencyGate
from .rate_limiter import AdaptivePacer, ResponseTimeTracker
from .transport import AiohttpTransport, HttpTransport, TransportResponse

__all__ = [
    "AdaptivePacer",
    "AiohttpTransport",
    "ConcurrencyGate",
    "HttpTransport",
    "ResponseTimeTracker",
    "StoreAPIClient",
    "TransportResponse",
]
