"""Tests for the relational catalog repository."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from streamvault.database import Database
from streamvault.db_models import Series
from streamvault.services.repository import (
    CatalogRepository,
    RecordNotFoundError,
    RepositoryError,
)


async def _movie(repository: CatalogRepository, title: str, **values) -> str:
    payload = {"title": title, "type": "movie", "description": f"{title} plot"}
    payload.update(values)
    genres = payload.pop("genre", [])
    return await repository.create_content_with_genres(payload, genres)


def test_fetch_all_orders_by_creation_time_descending(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)

        first = await _movie(repository, "Arrival")
        second = await _movie(repository, "Blade Runner")
        third = await _movie(repository, "Contact")

        rows = await repository.fetch_all()
        assert [row["id"] for row in rows] == [third, second, first]
        assert rows == await repository.fetch_all()

        await database.dispose()

    asyncio.run(runner())


def test_create_content_links_known_genres_only(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        await repository.create_genres(["Comedy", "Drama"])

        content_id = await _movie(
            repository, "Heist", genre=["Drama", "Nonexistent", "Comedy"]
        )

        rows = await repository.fetch_all()
        assert rows[0]["id"] == content_id
        names = sorted(link["genres"]["name"] for link in rows[0]["content_genres"])
        assert names == ["Comedy", "Drama"]

        await database.dispose()

    asyncio.run(runner())


def test_series_rows_embed_ordered_seasons_and_episodes(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)

        show_id = await repository.create_content_with_genres(
            {"title": "Night Shift", "type": "series"}, []
        )
        season_two = await repository.create_season(
            show_id, season_number=2, title="Season 2"
        )
        season_one = await repository.create_season(
            show_id, season_number=1, title="Season 1"
        )
        await repository.create_episode(
            season_one, {"episode_number": 2, "title": "Second"}
        )
        await repository.create_episode(
            season_one,
            {
                "episode_number": 1,
                "title": "First",
                "video_url_1080p": "https://cdn.example.com/1080.m3u8",
            },
        )

        rows = await repository.fetch_all()
        assert len(rows[0]["series"]) == 1
        seasons = rows[0]["series"][0]["seasons"]
        assert [season["id"] for season in seasons] == [season_one, season_two]
        assert [season["content_id"] for season in seasons] == [show_id, show_id]
        episodes = seasons[0]["episodes"]
        assert [episode["episode_number"] for episode in episodes] == [1, 2]
        assert episodes[0]["video_url_1080p"] == "https://cdn.example.com/1080.m3u8"
        assert episodes[0]["video_url_4k"] is None

        await database.dispose()

    asyncio.run(runner())


def test_create_season_rejects_movies_and_unknown_content(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        movie_id = await _movie(repository, "Arrival")

        with pytest.raises(RepositoryError, match="not a series"):
            await repository.create_season(movie_id, season_number=1, title="S1")
        with pytest.raises(RecordNotFoundError):
            await repository.create_season("missing", season_number=1, title="S1")
        with pytest.raises(RecordNotFoundError):
            await repository.create_episode("missing", {"episode_number": 1, "title": "E1"})

        await database.dispose()

    asyncio.run(runner())


def test_duplicate_season_number_is_rejected(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        show_id = await repository.create_content_with_genres(
            {"title": "Night Shift", "type": "series"}, []
        )
        await repository.create_season(show_id, season_number=1, title="Season 1")

        with pytest.raises(RepositoryError, match="Failed to create season"):
            await repository.create_season(show_id, season_number=1, title="Again")

        await database.dispose()

    asyncio.run(runner())


def test_featured_rows_follow_featured_order(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)

        late = await _movie(repository, "Late", featured=True, featured_order=3)
        early = await _movie(repository, "Early", featured=True, featured_order=1)
        unordered = await _movie(repository, "Unordered", featured=True)
        await _movie(repository, "Hidden")

        rows = await repository.fetch_featured()
        assert [row["id"] for row in rows] == [early, late, unordered]
        assert all("series" not in row for row in rows)

        await database.dispose()

    asyncio.run(runner())


def test_cast_links_carry_order(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        movie_id = await _movie(repository, "Arrival")
        await repository.add_cast_member(movie_id, name="Jeremy", role="Ian", order=2)
        await repository.add_cast_member(movie_id, name="Amy", role="Louise", order=1)

        rows = await repository.fetch_all()
        links = rows[0]["content_cast"]
        assert sorted((link["order"], link["cast_members"]["name"]) for link in links) == [
            (1, "Amy"),
            (2, "Jeremy"),
        ]

        await database.dispose()

    asyncio.run(runner())


def test_delete_content_cascades_to_relations(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        await repository.create_genres(["Drama"])
        show_id = await repository.create_content_with_genres(
            {"title": "Night Shift", "type": "series"}, ["Drama"]
        )
        season_id = await repository.create_season(show_id, season_number=1, title="S1")
        await repository.create_episode(season_id, {"episode_number": 1, "title": "E1"})

        await repository.delete_content(show_id)

        assert await repository.fetch_all() == []
        with pytest.raises(RecordNotFoundError):
            await repository.update_season(season_id, {"title": "Gone"})
        with pytest.raises(RecordNotFoundError):
            await repository.delete_content(show_id)

        await database.dispose()

    asyncio.run(runner())


def test_search_matches_title_and_description(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        arrival = await _movie(repository, "Arrival", description="Linguists meet aliens")
        await _movie(repository, "Heat", description="A heist in LA")
        show_id = await repository.create_content_with_genres(
            {"title": "Alien Nation", "type": "series"}, []
        )

        hits = await repository.search("ALIEN")
        assert [row["id"] for row in hits] == [show_id, arrival]

        movies_only = await repository.search("alien", content_type="movie")
        assert [row["id"] for row in movies_only] == [arrival]

        assert await repository.search("100%") == []

        await database.dispose()

    asyncio.run(runner())


def test_watch_history_upsert_keeps_one_record(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        movie_id = await _movie(repository, "Arrival")

        await repository.update_watch_history(
            "profile-1", movie_id, watch_time=30, completed=False
        )
        await repository.update_watch_history(
            "profile-1", movie_id, watch_time=60, completed=False
        )

        rows = await repository.fetch_watch_history("profile-1", completed=None)
        assert len(rows) == 1
        assert rows[0]["watch_time"] == 60
        assert await repository.fetch_watch_history("profile-2") == []

        await database.dispose()

    asyncio.run(runner())


def test_concurrent_first_seasons_share_one_series_record(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        show_id = await repository.create_content_with_genres(
            {"title": "Night Shift", "type": "series"}, []
        )

        first, second = await asyncio.gather(
            repository.create_season(show_id, season_number=1, title="S1"),
            repository.create_season(show_id, season_number=2, title="S2"),
        )

        rows = await repository.fetch_all()
        assert len(rows[0]["series"]) == 1
        seasons = rows[0]["series"][0]["seasons"]
        assert [season["id"] for season in seasons] == [first, second]

        await database.dispose()

    asyncio.run(runner())


def test_store_rejects_a_second_series_record(database_url, clock) -> None:
    async def runner() -> None:
        database = Database(database_url)
        await database.create_all()
        repository = CatalogRepository(database.session_factory, clock=clock)
        show_id = await repository.create_content_with_genres(
            {"title": "Night Shift", "type": "series"}, []
        )
        await repository.create_season(show_id, season_number=1, title="S1")

        async with database.session() as session:
            session.add(Series(content_id=show_id))
            with pytest.raises(IntegrityError):
                await session.commit()

        await database.dispose()

    asyncio.run(runner())
