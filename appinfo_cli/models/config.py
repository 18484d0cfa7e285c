"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from enum import Enum

import platformdirs
from pydantic import BaseModel, Field, field_validator, model_validator


class Priority(str, Enum):
    """Caller-declared urgency tier. Controls pacing and batch sizing only."""

    HIGH = "high"  # User-initiated lookups
    NORMAL = "normal"  # Regular batch operations
    BACKGROUND = "background"  # Cache refresh work


DEFAULT_BASE_DELAY_MS = {
    Priority.HIGH: 50,
    Priority.NORMAL: 150,
    Priority.BACKGROUND: 200,
}
DEFAULT_BATCH_SIZE = {
    Priority.HIGH: 5,
    Priority.NORMAL: 10,
    Priority.BACKGROUND: 20,
}
DEFAULT_CHUNK_SIZE = {
    Priority.HIGH: 50,
    Priority.NORMAL: 100,
    Priority.BACKGROUND: 500,
}
DEFAULT_BATCH_PAUSE_MS = {
    Priority.HIGH: 0,
    Priority.NORMAL: 100,
    Priority.BACKGROUND: 300,
}

PER_PRIORITY_FIELDS = ("base_delay_ms", "batch_size", "chunk_size", "batch_pause_ms")

DETAILS_URL_TEMPLATE = "https://store.steampowered.com/api/appdetails?appids={key}"
APPLIST_URL = "https://api.steampowered.com/ISteamApps/GetAppList/v2/"


def default_cache_dir() -> str:
    return platformdirs.user_cache_dir("appinfo-cli")


class MetadataConfig(BaseModel):
    """A validated configuration model for the metadata client."""

    # Concurrency & pacing
    max_concurrent_requests: int = 5
    base_delay_ms: dict[Priority, int] = Field(
        default_factory=lambda: dict(DEFAULT_BASE_DELAY_MS)
    )
    default_response_time_ms: int = 200
    response_window: int = 100
    moderate_latency_ms: int = 500
    slow_latency_ms: int = 1000
    moderate_factor: float = 1.5
    slow_factor: float = 2.0

    # Batching
    batch_size: dict[Priority, int] = Field(
        default_factory=lambda: dict(DEFAULT_BATCH_SIZE)
    )
    chunk_size: dict[Priority, int] = Field(
        default_factory=lambda: dict(DEFAULT_CHUNK_SIZE)
    )
    batch_pause_ms: dict[Priority, int] = Field(
        default_factory=lambda: dict(DEFAULT_BATCH_PAUSE_MS)
    )
    chunk_pause_ms: int = 50

    # Timeouts
    request_timeout_s: float = 10.0
    call_timeout_s: float = 12.0

    # Caching
    cache_ttl_hours: int = 20
    cache_ttl_spread_hours: int = 8
    catalog_ttl_hours: int = 24
    cache_dir: str = Field(default_factory=default_cache_dir)

    # Endpoints
    details_url_template: str = DETAILS_URL_TEMPLATE
    applist_url: str = APPLIST_URL

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("max_concurrent_requests")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable global concurrency limit."""
        if v < 1 or v > 64:
            raise ValueError("max_concurrent_requests must be between 1 and 64.")
        return v

    @field_validator("base_delay_ms", "batch_pause_ms")
    @classmethod
    def validate_delays(cls, v: dict[Priority, int]) -> dict[Priority, int]:
        """Delays must cover every priority and may not be negative."""
        missing = set(Priority) - set(v)
        if missing:
            raise ValueError(
                f"Missing values for priorities: {sorted(p.value for p in missing)}"
            )
        if any(delay < 0 for delay in v.values()):
            raise ValueError("Delays cannot be negative.")
        return v

    @field_validator("batch_size", "chunk_size")
    @classmethod
    def validate_sizes(cls, v: dict[Priority, int]) -> dict[Priority, int]:
        """Sizes must cover every priority and be at least 1."""
        missing = set(Priority) - set(v)
        if missing:
            raise ValueError(
                f"Missing values for priorities: {sorted(p.value for p in missing)}"
            )
        if any(size < 1 for size in v.values()):
            raise ValueError("Batch and chunk sizes must be at least 1.")
        return v

    @field_validator(
        "chunk_pause_ms",
        "default_response_time_ms",
        "cache_ttl_hours",
        "cache_ttl_spread_hours",
        "catalog_ttl_hours",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value cannot be negative.")
        return v

    @field_validator("response_window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 2:
            raise ValueError("response_window must hold at least 2 samples.")
        return v

    @field_validator("details_url_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """The details endpoint must be parameterized by the key."""
        if "{key}" not in v:
            raise ValueError("details_url_template must contain '{key}'.")
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "MetadataConfig":
        """The outer call timeout has to cover the transport timeout."""
        if self.request_timeout_s <= 0 or self.call_timeout_s <= 0:
            raise ValueError("Timeouts must be positive.")
        if self.call_timeout_s < self.request_timeout_s:
            raise ValueError(
                "call_timeout_s must be greater than or equal to request_timeout_s."
            )
        return self

    @model_validator(mode="after")
    def validate_latency_tiers(self) -> "MetadataConfig":
        if self.moderate_latency_ms > self.slow_latency_ms:
            raise ValueError("moderate_latency_ms cannot exceed slow_latency_ms.")
        if self.moderate_factor < 1.0 or self.slow_factor < self.moderate_factor:
            raise ValueError(
                "Latency factors must satisfy 1.0 <= moderate_factor <= slow_factor."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns the flat set of keys expected in the INI file."""
        keys = set()
        for name in cls.model_fields:
            if name in PER_PRIORITY_FIELDS:
                keys.update(f"{name}_{p.value}" for p in Priority)
            else:
                keys.add(name)
        return keys
