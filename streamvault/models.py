"""Pydantic models describing catalog entities and write payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import normalize_genre_names

ContentType = Literal["movie", "series"]


class CatalogModel(BaseModel):
    """Base model using camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)


class CastMember(CatalogModel):
    id: str
    name: str
    photo_url: str | None = Field(default=None, alias="photoUrl")
    role: str | None = None


class Episode(CatalogModel):
    id: str
    episode_number: int = Field(alias="episodeNumber")
    title: str
    description: str | None = None
    duration: str | None = None
    thumbnail: str | None = None
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")


class Season(CatalogModel):
    id: str
    series_id: str = Field(alias="seriesId")
    season_number: int = Field(alias="seasonNumber")
    title: str
    description: str | None = None
    episodes: list[Episode] = Field(default_factory=list)


class Content(CatalogModel):
    """A resolved catalog entry with its nested relations."""

    id: str
    title: str
    description: str = ""
    type: ContentType
    genre: list[str] = Field(default_factory=list)
    release_year: int | None = Field(default=None, alias="releaseYear")
    maturity_rating: str | None = Field(default=None, alias="maturityRating")
    duration: str | None = None
    poster_image: str | None = Field(default=None, alias="posterImage")
    backdrop_image: str | None = Field(default=None, alias="backdropImage")
    trailer_url: str | None = Field(default=None, alias="trailerUrl")
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")
    featured: bool = False
    featured_order: int | None = Field(default=None, alias="featuredOrder")
    seasons: list[Season] = Field(default_factory=list)
    cast: list[CastMember] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")


class WatchRecord(CatalogModel):
    """Viewing progress of a profile on a content."""

    id: str
    profile_id: str = Field(alias="profileId")
    content_id: str = Field(alias="contentId")
    watch_time: int = Field(alias="watchTime")
    completed: bool = False
    last_watched: datetime = Field(alias="lastWatched")


# Columns of the core content row that the admin layer may write.
CONTENT_CORE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "type",
    "release_year",
    "maturity_rating",
    "duration",
    "poster_image",
    "backdrop_image",
    "trailer_url",
    "video_url_480p",
    "video_url_720p",
    "video_url_1080p",
    "video_url_4k",
    "featured",
    "featured_order",
)


class ContentCreate(CatalogModel):
    """Payload accepted by the content creation composite write."""

    title: str = Field(min_length=1)
    description: str = ""
    type: ContentType
    genre: list[str] = Field(default_factory=list)
    release_year: int | None = Field(default=None, alias="releaseYear")
    maturity_rating: str | None = Field(default=None, alias="maturityRating")
    duration: str | None = None
    poster_image: str | None = Field(default=None, alias="posterImage")
    backdrop_image: str | None = Field(default=None, alias="backdropImage")
    trailer_url: str | None = Field(default=None, alias="trailerUrl")
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")
    featured: bool = False
    featured_order: int | None = Field(default=None, alias="featuredOrder")

    @field_validator("genre", mode="before")
    @classmethod
    def _clean_genre(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, (list, tuple, set)):
            return normalize_genre_names(value)
        return value


class ContentUpdate(CatalogModel):
    """Partial update; only explicitly supplied fields are written."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    type: ContentType | None = None
    genre: list[str] | None = None
    release_year: int | None = Field(default=None, alias="releaseYear")
    maturity_rating: str | None = Field(default=None, alias="maturityRating")
    duration: str | None = None
    poster_image: str | None = Field(default=None, alias="posterImage")
    backdrop_image: str | None = Field(default=None, alias="backdropImage")
    trailer_url: str | None = Field(default=None, alias="trailerUrl")
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")
    featured: bool | None = None
    featured_order: int | None = Field(default=None, alias="featuredOrder")

    @field_validator("genre", mode="before")
    @classmethod
    def _clean_genre(cls, value: object) -> object:
        if isinstance(value, (list, tuple, set)):
            return normalize_genre_names(value)
        return value

    def core_values(self) -> dict[str, Any]:
        """Return the supplied core-row columns, keyed by column name."""

        return _writable_values(
            self,
            include=CONTENT_CORE_FIELDS,
            required=("title", "type", "featured"),
        )

    @property
    def genre_supplied(self) -> bool:
        return "genre" in self.model_fields_set and self.genre is not None


class SeasonCreate(CatalogModel):
    season_number: int = Field(alias="seasonNumber", ge=0)
    title: str = Field(min_length=1)
    description: str = ""


class SeasonUpdate(CatalogModel):
    season_number: int | None = Field(default=None, alias="seasonNumber", ge=0)
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None

    def values(self) -> dict[str, Any]:
        return _writable_values(self, required=("season_number", "title"))


class EpisodeCreate(CatalogModel):
    episode_number: int = Field(alias="episodeNumber", ge=0)
    title: str = Field(min_length=1)
    description: str = ""
    duration: str = ""
    thumbnail: str = ""
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")


class EpisodeUpdate(CatalogModel):
    episode_number: int | None = Field(default=None, alias="episodeNumber", ge=0)
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    duration: str | None = None
    thumbnail: str | None = None
    video_url_480p: str | None = Field(default=None, alias="videoUrl480p")
    video_url_720p: str | None = Field(default=None, alias="videoUrl720p")
    video_url_1080p: str | None = Field(default=None, alias="videoUrl1080p")
    video_url_4k: str | None = Field(default=None, alias="videoUrl4k")

    def values(self) -> dict[str, Any]:
        return _writable_values(
            self,
            required=("episode_number", "title"),
            blank_text=("description", "duration", "thumbnail"),
        )

class GenreCreate(CatalogModel):
    """Names to add to the genre vocabulary."""

    names: list[str] = Field(min_length=1)

    @field_validator("names", mode="before")
    @classmethod
    def _clean_names(cls, value: object) -> object:
        if isinstance(value, (list, tuple, set)):
            return normalize_genre_names(value)
        return value


class CastMemberCreate(CatalogModel):
    name: str = Field(min_length=1)
    role: str | None = None
    order: int = 0
    photo_url: str | None = Field(default=None, alias="photoUrl")



def _writable_values(
    payload: BaseModel,
    include: tuple[str, ...] | None = None,
    *,
    required: tuple[str, ...],
    blank_text: tuple[str, ...] = ("description",),
) -> dict[str, Any]:
    """Return explicitly supplied columns of a partial update payload.

    ``None`` for a required column is dropped; ``None`` for a text column that
    the store keeps non-null is written as an empty string.
    """

    supplied = payload.model_dump(
        include=set(include) if include is not None else None, exclude_unset=True
    )
    for key in required:
        if key in supplied and supplied[key] is None:
            supplied.pop(key)
    for key in blank_text:
        if key in supplied and supplied[key] is None:
            supplied[key] = ""
    return supplied


class MyListSnapshot(CatalogModel):
    """The only piece of catalog state persisted between sessions."""

    my_list: list[str] = Field(default_factory=list, alias="myList")
