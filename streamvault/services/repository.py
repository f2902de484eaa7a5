"""Read and write access to the relational catalog store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Iterable, Mapping

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload, selectinload

from ..db_models import (
    CastMember,
    Content,
    ContentCast,
    ContentGenre,
    Episode,
    Genre,
    Season,
    Series,
    WatchHistory,
)
from ..utils import escape_like, normalize_genre_names

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Clock = Callable[[], datetime]

_CONTENT_SCALAR_COLUMNS: tuple[str, ...] = (
    "id",
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
    "created_at",
)
_EPISODE_COLUMNS: tuple[str, ...] = (
    "id",
    "season_id",
    "episode_number",
    "title",
    "description",
    "duration",
    "thumbnail",
    "video_url_480p",
    "video_url_720p",
    "video_url_1080p",
    "video_url_4k",
    "created_at",
)


class RepositoryError(RuntimeError):
    """Raised when the backing store rejects or fails a request."""


class RecordNotFoundError(RepositoryError):
    """Raised when a write targets a row that does not exist."""


class _SeriesRecordConflict(RepositoryError):
    """Another transaction created the series record first."""


class CatalogRepository:
    """Issues queries and composite writes against the catalog tables.

    Reads return raw relational rows: plain dictionaries keyed by column name
    with joined relations embedded under their table names, e.g.
    ``content_genres -> genres -> name``. Turning those rows into domain
    objects is the resolver's job.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Clock = datetime.utcnow,
        search_limit: int = 50,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._search_limit = search_limit

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except RepositoryError:
            raise
        except SQLAlchemyError as exc:
            detail = getattr(exc, "orig", None) or exc
            raise RepositoryError(f"Failed to {action}: {detail}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_all(self) -> list[Row]:
        """Return every content row with genres, cast and nested seasons."""

        statement = (
            select(Content)
            .options(*self._relation_options(include_series=True))
            .order_by(Content.created_at.desc())
        )
        async with self._session("fetch catalog") as session:
            result = await session.execute(statement)
            contents = result.scalars().unique().all()
            return [_content_to_row(content, include_series=True) for content in contents]

    async def fetch_featured(self) -> list[Row]:
        """Return featured rows ordered by their explicit featured order."""

        statement = (
            select(Content)
            .options(*self._relation_options(include_series=False))
            .where(Content.featured.is_(True))
            .order_by(
                Content.featured_order.is_(None),
                Content.featured_order.asc(),
                Content.created_at.desc(),
            )
        )
        async with self._session("fetch featured content") as session:
            result = await session.execute(statement)
            contents = result.scalars().unique().all()
            return [_content_to_row(content, include_series=False) for content in contents]

    async def search(self, query: str, *, content_type: str | None = None) -> list[Row]:
        """Match titles and descriptions using the store's own query engine."""

        pattern = f"%{escape_like(query.strip().lower())}%"
        statement = (
            select(Content)
            .options(*self._relation_options(include_series=True))
            .where(
                or_(
                    func.lower(Content.title).like(pattern, escape="\\"),
                    func.lower(Content.description).like(pattern, escape="\\"),
                )
            )
            .order_by(Content.created_at.desc())
            .limit(self._search_limit)
        )
        if content_type:
            statement = statement.where(Content.type == content_type)
        async with self._session("search catalog") as session:
            result = await session.execute(statement)
            contents = result.scalars().unique().all()
            return [_content_to_row(content, include_series=True) for content in contents]

    async def fetch_genres(self) -> list[Row]:
        async with self._session("fetch genres") as session:
            result = await session.execute(select(Genre).order_by(Genre.name))
            return [{"id": genre.id, "name": genre.name} for genre in result.scalars()]

    async def lookup_genre_ids(self, names: Iterable[str]) -> dict[str, str]:
        """Map genre names to ids; unknown names are absent from the result."""

        wanted = normalize_genre_names(names)
        if not wanted:
            return {}
        async with self._session("look up genres") as session:
            result = await session.execute(
                select(Genre.id, Genre.name).where(Genre.name.in_(wanted))
            )
            return {name: genre_id for genre_id, name in result.all()}

    async def fetch_watch_history(
        self,
        profile_id: str,
        *,
        completed: bool | None = False,
        limit: int = 20,
    ) -> list[Row]:
        """Return a profile's watch records, most recently watched first."""

        statement = (
            select(WatchHistory)
            .where(WatchHistory.profile_id == profile_id)
            .order_by(WatchHistory.last_watched.desc())
            .limit(limit)
        )
        if completed is not None:
            statement = statement.where(WatchHistory.completed.is_(completed))
        async with self._session("fetch watch history") as session:
            result = await session.execute(statement)
            return [_watch_to_row(record) for record in result.scalars()]

    @staticmethod
    def _relation_options(*, include_series: bool) -> list[Any]:
        options: list[Any] = [
            selectinload(Content.genre_links).joinedload(ContentGenre.genre),
            selectinload(Content.cast_links).joinedload(ContentCast.cast_member),
        ]
        if include_series:
            options.append(
                selectinload(Content.series)
                .selectinload(Series.seasons)
                .selectinload(Season.episodes)
            )
        return options

    # ------------------------------------------------------------------
    # Composite writes
    # ------------------------------------------------------------------

    async def create_content_with_genres(
        self, values: Mapping[str, Any], genre_names: Iterable[str]
    ) -> str:
        """Create the core row and its genre links in one transaction."""

        names = normalize_genre_names(genre_names)
        async with self._session("create content") as session:
            async with session.begin():
                content = Content(
                    **{
                        key: value
                        for key, value in values.items()
                        if key in _CONTENT_SCALAR_COLUMNS
                        and key not in {"id", "created_at"}
                    },
                    created_at=self._clock(),
                )
                session.add(content)
                await session.flush()
                if names:
                    result = await session.execute(
                        select(Genre.id, Genre.name).where(Genre.name.in_(names))
                    )
                    known = {name: genre_id for genre_id, name in result.all()}
                    _warn_unknown_genres(content.id, names, known)
                    for name in names:
                        if name in known:
                            session.add(
                                ContentGenre(content_id=content.id, genre_id=known[name])
                            )
                return content.id

    async def create_season(
        self,
        content_id: str,
        *,
        season_number: int,
        title: str,
        description: str = "",
    ) -> str:
        """Create a season, adding the series record on the first season.

        ``series.content_id`` is unique. When a concurrent first season wins
        the race to create the record, the insert is retried once against it.
        """

        try:
            return await self._insert_season(
                content_id, season_number, title, description
            )
        except _SeriesRecordConflict:
            logger.info("Series record for %s created concurrently; reusing it", content_id)
        return await self._insert_season(content_id, season_number, title, description)

    async def _insert_season(
        self, content_id: str, season_number: int, title: str, description: str
    ) -> str:
        async with self._session("create season") as session:
            async with session.begin():
                content = await session.get(Content, content_id)
                if content is None:
                    raise RecordNotFoundError(f"Content {content_id} not found")
                if content.type != "series":
                    raise RepositoryError(f"Content {content_id} is not a series")
                result = await session.execute(
                    select(Series).where(Series.content_id == content_id)
                )
                series = result.scalars().first()
                now = self._clock()
                if series is None:
                    series = Series(content_id=content_id, created_at=now)
                    session.add(series)
                    try:
                        await session.flush()
                    except IntegrityError as exc:
                        raise _SeriesRecordConflict(
                            f"Series record for {content_id} already exists"
                        ) from exc
                season = Season(
                    series_id=series.id,
                    season_number=season_number,
                    title=title,
                    description=description or "",
                    created_at=now,
                )
                session.add(season)
                await session.flush()
                return season.id

    async def create_episode(self, season_id: str, values: Mapping[str, Any]) -> str:
        async with self._session("create episode") as session:
            async with session.begin():
                if await session.get(Season, season_id) is None:
                    raise RecordNotFoundError(f"Season {season_id} not found")
                episode = Episode(
                    **{
                        key: value
                        for key, value in values.items()
                        if key in _EPISODE_COLUMNS
                        and key not in {"id", "season_id", "created_at"}
                    },
                    season_id=season_id,
                    created_at=self._clock(),
                )
                session.add(episode)
                await session.flush()
                return episode.id

    async def update_watch_history(
        self,
        profile_id: str,
        content_id: str,
        *,
        watch_time: int,
        completed: bool,
    ) -> None:
        """Create or overwrite the record keyed by (profile, content)."""

        async with self._session("update watch history") as session:
            async with session.begin():
                result = await session.execute(
                    select(WatchHistory).where(
                        WatchHistory.profile_id == profile_id,
                        WatchHistory.content_id == content_id,
                    )
                )
                record = result.scalars().first()
                now = self._clock()
                if record is None:
                    session.add(
                        WatchHistory(
                            profile_id=profile_id,
                            content_id=content_id,
                            watch_time=watch_time,
                            completed=completed,
                            last_watched=now,
                        )
                    )
                else:
                    record.watch_time = watch_time
                    record.completed = completed
                    record.last_watched = now

    async def create_genres(self, names: Iterable[str]) -> list[str]:
        """Add missing genre names to the vocabulary and return their ids."""

        wanted = normalize_genre_names(names)
        async with self._session("create genres") as session:
            async with session.begin():
                result = await session.execute(
                    select(Genre).where(Genre.name.in_(wanted))
                )
                existing = {genre.name: genre for genre in result.scalars()}
                for name in wanted:
                    if name not in existing:
                        existing[name] = Genre(name=name)
                        session.add(existing[name])
                await session.flush()
                return [existing[name].id for name in wanted]

    async def add_cast_member(
        self,
        content_id: str,
        *,
        name: str,
        role: str | None = None,
        order: int = 0,
        photo_url: str | None = None,
    ) -> str:
        """Create a cast member and link them to a content."""

        async with self._session("add cast member") as session:
            async with session.begin():
                if await session.get(Content, content_id) is None:
                    raise RecordNotFoundError(f"Content {content_id} not found")
                member = CastMember(name=name, photo_url=photo_url)
                session.add(member)
                await session.flush()
                session.add(
                    ContentCast(
                        content_id=content_id,
                        cast_member_id=member.id,
                        role=role,
                        order=order,
                    )
                )
                return member.id

    # ------------------------------------------------------------------
    # Single-row writes
    # ------------------------------------------------------------------

    async def update_content_row(self, content_id: str, values: Mapping[str, Any]) -> None:
        await self._update_row(Content, content_id, values, "update content")

    async def delete_content_genres(self, content_id: str) -> None:
        async with self._session("delete genre links") as session:
            async with session.begin():
                await session.execute(
                    delete(ContentGenre).where(ContentGenre.content_id == content_id)
                )

    async def insert_content_genres(
        self, content_id: str, genre_ids: Iterable[str]
    ) -> None:
        links = [
            ContentGenre(content_id=content_id, genre_id=genre_id)
            for genre_id in dict.fromkeys(genre_ids)
        ]
        if not links:
            return
        async with self._session("insert genre links") as session:
            async with session.begin():
                session.add_all(links)

    async def delete_content(self, content_id: str) -> None:
        await self._delete_row(Content, content_id, "delete content")

    async def update_season(self, season_id: str, values: Mapping[str, Any]) -> None:
        await self._update_row(Season, season_id, values, "update season")

    async def delete_season(self, season_id: str) -> None:
        await self._delete_row(Season, season_id, "delete season")

    async def update_episode(self, episode_id: str, values: Mapping[str, Any]) -> None:
        await self._update_row(Episode, episode_id, values, "update episode")

    async def delete_episode(self, episode_id: str) -> None:
        await self._delete_row(Episode, episode_id, "delete episode")

    async def _update_row(
        self, model: type[Any], row_id: str, values: Mapping[str, Any], action: str
    ) -> None:
        columns = {column.key for column in model.__table__.columns}
        payload = {
            key: value for key, value in values.items() if key in columns and key != "id"
        }
        async with self._session(action) as session:
            async with session.begin():
                if not payload:
                    if await session.get(model, row_id) is None:
                        raise RecordNotFoundError(
                            f"{model.__name__} {row_id} not found"
                        )
                    return
                result = await session.execute(
                    update(model).where(model.id == row_id).values(**payload)
                )
                if result.rowcount == 0:
                    raise RecordNotFoundError(f"{model.__name__} {row_id} not found")

    async def _delete_row(self, model: type[Any], row_id: str, action: str) -> None:
        async with self._session(action) as session:
            async with session.begin():
                result = await session.execute(delete(model).where(model.id == row_id))
                if result.rowcount == 0:
                    raise RecordNotFoundError(f"{model.__name__} {row_id} not found")


def _warn_unknown_genres(
    content_id: str, names: list[str], known: Mapping[str, str]
) -> None:
    missing = [name for name in names if name not in known]
    if missing:
        logger.warning(
            "Skipping unknown genres for content %s: %s", content_id, ", ".join(missing)
        )


def _content_to_row(content: Content, *, include_series: bool) -> Row:
    row: Row = {column: getattr(content, column) for column in _CONTENT_SCALAR_COLUMNS}
    row["content_genres"] = [
        {"genres": {"name": link.genre.name}} for link in content.genre_links
    ]
    row["content_cast"] = [
        {
            "cast_member_id": link.cast_member_id,
            "role": link.role,
            "order": link.order,
            "cast_members": {
                "id": link.cast_member.id,
                "name": link.cast_member.name,
                "photo_url": link.cast_member.photo_url,
            },
        }
        for link in content.cast_links
    ]
    if include_series:
        row["series"] = [
            {
                "id": series.id,
                "created_at": series.created_at,
                "seasons": [
                    _season_to_row(season, content.id) for season in series.seasons
                ],
            }
            for series in content.series
        ]
    return row


def _season_to_row(season: Season, content_id: str) -> Row:
    return {
        "id": season.id,
        "series_id": season.series_id,
        "content_id": content_id,
        "season_number": season.season_number,
        "title": season.title,
        "description": season.description,
        "created_at": season.created_at,
        "episodes": [
            {column: getattr(episode, column) for column in _EPISODE_COLUMNS}
            for episode in season.episodes
        ],
    }


def _watch_to_row(record: WatchHistory) -> Row:
    return {
        "id": record.id,
        "profile_id": record.profile_id,
        "content_id": record.content_id,
        "watch_time": record.watch_time,
        "completed": record.completed,
        "last_watched": record.last_watched,
    }
