from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, delete, inspect, select

from streamvault.database import Database
from streamvault.db_models import Content, ContentGenre, Genre


def test_create_all_builds_catalog_tables(tmp_path) -> None:
    database_path = tmp_path / "fresh.db"

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        tables = set(inspector.get_table_names())
        series_uniques = inspector.get_unique_constraints("series")
    finally:
        inspector_engine.dispose()

    assert {
        "contents",
        "genres",
        "content_genres",
        "cast_members",
        "content_cast",
        "series",
        "seasons",
        "episodes",
        "watch_history",
    } <= tables
    assert [constraint["column_names"] for constraint in series_uniques] == [["content_id"]]


def test_sqlite_connections_enforce_cascading_deletes(tmp_path) -> None:
    """Deleting a content row removes its genre links through the store."""

    async def runner() -> None:
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'cascade.db'}")
        await database.create_all()

        async with database.session() as session:
            genre = Genre(name="Drama")
            content = Content(title="Arrival", type="movie")
            session.add_all([genre, content])
            await session.flush()
            session.add(ContentGenre(content_id=content.id, genre_id=genre.id))
            await session.commit()
            content_id = content.id

        async with database.session() as session:
            await session.execute(delete(Content).where(Content.id == content_id))
            await session.commit()

        async with database.session() as session:
            links = (await session.execute(select(ContentGenre))).scalars().all()
            genres = (await session.execute(select(Genre))).scalars().all()

        assert links == []
        assert [genre.name for genre in genres] == ["Drama"]

        await database.dispose()

    asyncio.run(runner())
