"""
Pydantic models for the store metadata and catalog payloads.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator

from appinfo_cli.exceptions import FetchError

CDN_HEADER_URL = "https://cdn.akamai.steamstatic.com/steam/apps/{app_id}/header.jpg"


class PcRequirements(BaseModel):
    """HTML snippets describing minimum and recommended PC hardware."""

    minimum: str | None = None
    recommended: str | None = None

    class Config:
        frozen = True
        extra = "allow"


class ReleaseDate(BaseModel):
    coming_soon: bool = False
    date: str = ""

    class Config:
        frozen = True
        extra = "allow"


class Genre(BaseModel):
    id: str = ""
    description: str = ""

    class Config:
        frozen = True
        extra = "allow"


class AppDetails(BaseModel):
    """
    The details payload for a single application. Immutable once fetched;
    fields the store adds later are kept as extras so nothing is lost on a
    cache round trip.
    """

    name: str
    steam_appid: int | None = None
    type: str | None = None
    is_free: bool = False
    short_description: str = ""
    header_image: str = ""
    capsule_image: str | None = None
    developers: list[str] = Field(default_factory=list)
    publishers: list[str] = Field(default_factory=list)
    pc_requirements: PcRequirements | None = None
    release_date: ReleaseDate | None = None
    genres: list[Genre] = Field(default_factory=list)

    class Config:
        frozen = True
        extra = "allow"

    @field_validator("pc_requirements", mode="before")
    @classmethod
    def normalize_requirements(cls, v: Any) -> Any:
        """The store sends an empty list instead of an object when there is none."""
        if isinstance(v, list):
            return None
        return v

    @property
    def has_requirements(self) -> bool:
        return self.pc_requirements is not None

    def header_image_url(self) -> str | None:
        """Returns the header image, falling back to the CDN location."""
        if self.header_image:
            return self.header_image
        if self.steam_appid is not None:
            return CDN_HEADER_URL.format(app_id=self.steam_appid)
        return None


@dataclass(frozen=True)
class FetchResult:
    """The outcome for one requested key: either a record or an error."""

    key: str
    record: AppDetails | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None

    @classmethod
    def success(cls, key: str, record: AppDetails) -> "FetchResult":
        return cls(key=key, record=record)

    @classmethod
    def failure(cls, key: str, error: FetchError) -> "FetchResult":
        return cls(key=key, error=error)


class CatalogEntry(BaseModel):
    """One row of the public application list."""

    appid: int
    name: str


class GameInfo(BaseModel):
    app_id: str
    game_name: str
    icon_url: str | None = None

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "GameInfo":
        return cls(
            app_id=str(entry.appid),
            game_name=entry.name,
            icon_url=CDN_HEADER_URL.format(app_id=entry.appid),
        )


class SearchResults(BaseModel):
    games: list[GameInfo] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 1
    query: str = ""
