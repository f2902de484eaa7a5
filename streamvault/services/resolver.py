"""Turn raw relational rows into nested catalog entities.

Everything here is a pure function of its input: no I/O, no mutation of the
rows it is given, and identical rows always resolve to equal entities.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..models import CastMember, Content, Episode, Season, WatchRecord

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def resolve_contents(
    rows: Iterable[Row], *, include_seasons: bool = True
) -> list[Content]:
    """Resolve a list of content rows, keeping the supplied order."""

    return [resolve_content(row, include_seasons=include_seasons) for row in rows]


def resolve_content(row: Row, *, include_seasons: bool = True) -> Content:
    """Resolve a single joined content row."""

    seasons: list[Season] = []
    if include_seasons and row.get("type") == "series":
        seasons = resolve_seasons(row)

    return Content(
        id=str(row["id"]),
        title=row.get("title") or "",
        description=row.get("description") or "",
        type=row["type"],
        genre=resolve_genres(row.get("content_genres")),
        release_year=row.get("release_year"),
        maturity_rating=row.get("maturity_rating"),
        duration=row.get("duration"),
        poster_image=row.get("poster_image"),
        backdrop_image=row.get("backdrop_image"),
        trailer_url=row.get("trailer_url"),
        video_url_480p=row.get("video_url_480p"),
        video_url_720p=row.get("video_url_720p"),
        video_url_1080p=row.get("video_url_1080p"),
        video_url_4k=row.get("video_url_4k"),
        featured=bool(row.get("featured")),
        featured_order=row.get("featured_order"),
        seasons=seasons,
        cast=resolve_cast(row.get("content_cast")),
        created_at=row.get("created_at"),
    )


def resolve_genres(links: Iterable[Row] | None) -> list[str]:
    """Flatten the genre join into tag names."""

    names: list[str] = []
    for link in links or ():
        genre = link.get("genres") or {}
        name = genre.get("name")
        if name:
            names.append(name)
    return names


def resolve_cast(links: Iterable[Row] | None) -> list[CastMember]:
    """Return cast members in ascending explicit order.

    ``sorted`` is stable, so members sharing an order value keep the order in
    which the store supplied them.
    """

    ordered = sorted(links or (), key=lambda link: link.get("order") or 0)
    return [
        CastMember(
            id=str(link["cast_members"]["id"]),
            name=link["cast_members"].get("name") or "",
            photo_url=link["cast_members"].get("photo_url"),
            role=link.get("role"),
        )
        for link in ordered
        if link.get("cast_members")
    ]


def select_series_record(row: Row) -> Row | None:
    """Return the single series-metadata record for a content row.

    A content owns at most one series record. When the store hands back more
    than one, the most recently created wins and the first supplied breaks
    ties.
    """

    records = [record for record in row.get("series") or () if record]
    if not records:
        return None
    if len(records) > 1:
        logger.warning(
            "Content %s has %d series records; keeping the most recent",
            row.get("id"),
            len(records),
        )
    best = records[0]
    for record in records[1:]:
        if _created_key(record) > _created_key(best):
            best = record
    return best


def resolve_seasons(row: Row) -> list[Season]:
    record = select_series_record(row)
    if record is None:
        return []
    content_id = str(row["id"])
    return [
        Season(
            id=str(season["id"]),
            series_id=str(season.get("content_id") or content_id),
            season_number=season["season_number"],
            title=season.get("title") or "",
            description=season.get("description"),
            episodes=[_resolve_episode(episode) for episode in season.get("episodes") or ()],
        )
        for season in record.get("seasons") or ()
    ]


def _resolve_episode(row: Row) -> Episode:
    return Episode(
        id=str(row["id"]),
        episode_number=row["episode_number"],
        title=row.get("title") or "",
        description=row.get("description"),
        duration=row.get("duration"),
        thumbnail=row.get("thumbnail"),
        video_url_480p=row.get("video_url_480p"),
        video_url_720p=row.get("video_url_720p"),
        video_url_1080p=row.get("video_url_1080p"),
        video_url_4k=row.get("video_url_4k"),
    )


def resolve_watch_record(row: Row) -> WatchRecord:
    return WatchRecord(
        id=str(row["id"]),
        profile_id=row["profile_id"],
        content_id=row["content_id"],
        watch_time=row.get("watch_time") or 0,
        completed=bool(row.get("completed")),
        last_watched=row["last_watched"],
    )


def _created_key(record: Row) -> datetime:
    value = record.get("created_at")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.min
    if not isinstance(value, datetime):
        return datetime.min
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
