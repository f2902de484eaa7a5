"""Entry point for the FastAPI-powered catalog service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import Field

from .config import settings
from .database import Database
from .models import (
    CastMemberCreate,
    CatalogModel,
    Content,
    ContentCreate,
    ContentUpdate,
    EpisodeCreate,
    EpisodeUpdate,
    GenreCreate,
    SeasonCreate,
    SeasonUpdate,
    WatchRecord,
)
from .services.catalog import CatalogStore
from .services.mutations import MutationCoordinator
from .services.my_list import MyListManager, SnapshotStorage
from .services.repository import CatalogRepository, RecordNotFoundError, RepositoryError
from .services.watch_history import InvalidProfileError, WatchHistoryTracker

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


@dataclass
class Services:
    """Service objects shared by the request handlers."""

    catalog: CatalogStore
    mutations: MutationCoordinator
    my_list: MyListManager
    watch_history: WatchHistoryTracker


class WatchProgress(CatalogModel):
    content_id: str = Field(alias="contentId", min_length=1)
    watch_time: int = Field(alias="watchTime", ge=0)
    completed: bool = False


def build_services(database: Database) -> Services:
    repository = CatalogRepository(
        database.session_factory, search_limit=settings.search_result_limit
    )
    catalog = CatalogStore(repository)
    storage = SnapshotStorage(
        settings.my_list_storage_path, settings.my_list_storage_key
    )
    return Services(
        catalog=catalog,
        mutations=MutationCoordinator(repository, catalog),
        my_list=MyListManager(storage, catalog),
        watch_history=WatchHistoryTracker(
            repository, limit=settings.watch_history_limit
        ),
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    database = Database(settings.database_url)
    await database.create_all()

    services = build_services(database)
    app.state.services = services
    app.state.database = database
    await services.catalog.fetch_contents()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Catalog synchronization layer for movies and series",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_services(app: FastAPI) -> Services:
    services = getattr(app.state, "services", None)
    if not isinstance(services, Services):
        raise RuntimeError("Services not initialised")
    return services


def _dump(items: list[Content] | list[WatchRecord]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def _write_error(exc: RepositoryError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/catalog")
    async def list_catalog() -> dict[str, Any]:
        catalog = get_services(fastapi_app).catalog
        if catalog.status == "idle":
            await catalog.fetch_contents()
        return {
            "status": catalog.status,
            "error": catalog.error,
            "contents": _dump(catalog.contents),
        }

    @fastapi_app.get("/catalog/featured")
    async def list_featured() -> list[dict[str, Any]]:
        return _dump(get_services(fastapi_app).catalog.featured_contents)

    @fastapi_app.get("/catalog/genres")
    async def list_genres() -> list[str]:
        try:
            return await get_services(fastapi_app).catalog.fetch_genres()
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.get("/catalog/genre/{genre}")
    async def list_by_genre(genre: str) -> list[dict[str, Any]]:
        return _dump(get_services(fastapi_app).catalog.get_contents_by_genre(genre))

    @fastapi_app.get("/catalog/search")
    async def search_catalog(
        q: str = "",
        content_type: Literal["movie", "series"] | None = Query(
            default=None, alias="type"
        ),
    ) -> list[dict[str, Any]]:
        catalog = get_services(fastapi_app).catalog
        try:
            results = await catalog.search_contents(q, content_type=content_type)
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return _dump(results)

    @fastapi_app.get("/catalog/{content_id}")
    async def get_content(content_id: str) -> dict[str, Any]:
        content = get_services(fastapi_app).catalog.get_content_by_id(content_id)
        if content is None:
            raise HTTPException(status_code=404, detail="Content not found")
        return content.model_dump(mode="json", by_alias=True)

    @fastapi_app.post("/admin/contents", status_code=201)
    async def add_content(payload: ContentCreate) -> dict[str, str]:
        try:
            content_id = await get_services(fastapi_app).mutations.add_content(payload)
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"id": content_id}

    @fastapi_app.patch("/admin/contents/{content_id}", status_code=204)
    async def update_content(content_id: str, payload: ContentUpdate) -> None:
        try:
            await get_services(fastapi_app).mutations.update_content(content_id, payload)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.delete("/admin/contents/{content_id}", status_code=204)
    async def delete_content(content_id: str) -> None:
        try:
            await get_services(fastapi_app).mutations.delete_content(content_id)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.post("/admin/genres", status_code=201)
    async def add_genres(payload: GenreCreate) -> dict[str, list[str]]:
        try:
            genre_ids = await get_services(fastapi_app).mutations.add_genres(payload)
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"ids": genre_ids}

    @fastapi_app.post("/admin/contents/{content_id}/cast", status_code=201)
    async def add_cast_member(content_id: str, payload: CastMemberCreate) -> dict[str, str]:
        try:
            member_id = await get_services(fastapi_app).mutations.add_cast_member(
                content_id, payload
            )
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"id": member_id}

    @fastapi_app.post("/admin/contents/{content_id}/seasons", status_code=201)
    async def add_season(content_id: str, payload: SeasonCreate) -> dict[str, str]:
        try:
            season_id = await get_services(fastapi_app).mutations.add_season(
                content_id, payload
            )
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"id": season_id}

    @fastapi_app.patch("/admin/seasons/{season_id}", status_code=204)
    async def update_season(season_id: str, payload: SeasonUpdate) -> None:
        try:
            await get_services(fastapi_app).mutations.update_season(season_id, payload)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.delete("/admin/seasons/{season_id}", status_code=204)
    async def delete_season(season_id: str) -> None:
        try:
            await get_services(fastapi_app).mutations.delete_season(season_id)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.post("/admin/seasons/{season_id}/episodes", status_code=201)
    async def add_episode(season_id: str, payload: EpisodeCreate) -> dict[str, str]:
        try:
            episode_id = await get_services(fastapi_app).mutations.add_episode(
                season_id, payload
            )
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"id": episode_id}

    @fastapi_app.patch("/admin/episodes/{episode_id}", status_code=204)
    async def update_episode(episode_id: str, payload: EpisodeUpdate) -> None:
        try:
            await get_services(fastapi_app).mutations.update_episode(episode_id, payload)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.delete("/admin/episodes/{episode_id}", status_code=204)
    async def delete_episode(episode_id: str) -> None:
        try:
            await get_services(fastapi_app).mutations.delete_episode(episode_id)
        except RepositoryError as exc:
            raise _write_error(exc) from exc

    @fastapi_app.get("/my-list")
    async def get_my_list() -> dict[str, Any]:
        my_list = get_services(fastapi_app).my_list
        return {"ids": my_list.ids(), "contents": _dump(my_list.list_contents())}

    @fastapi_app.put("/my-list/{content_id}")
    async def add_to_my_list(content_id: str) -> dict[str, bool]:
        my_list = get_services(fastapi_app).my_list
        my_list.add(content_id)
        return {"inMyList": my_list.contains(content_id)}

    @fastapi_app.delete("/my-list/{content_id}")
    async def remove_from_my_list(content_id: str) -> dict[str, bool]:
        my_list = get_services(fastapi_app).my_list
        my_list.remove(content_id)
        return {"inMyList": my_list.contains(content_id)}

    @fastapi_app.get("/profiles/{profile_id}/history")
    async def continue_watching(profile_id: str) -> dict[str, Any]:
        tracker = get_services(fastapi_app).watch_history
        try:
            await tracker.fetch_history(profile_id)
        except InvalidProfileError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "error": tracker.error,
            "history": _dump(tracker.get_continue_watching()),
        }

    @fastapi_app.post("/profiles/{profile_id}/history")
    async def record_progress(profile_id: str, payload: WatchProgress) -> dict[str, Any]:
        tracker = get_services(fastapi_app).watch_history
        try:
            await tracker.update_watch_time(
                profile_id,
                payload.content_id,
                payload.watch_time,
                payload.completed,
            )
        except InvalidProfileError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RepositoryError as exc:
            raise _write_error(exc) from exc
        return {"history": _dump(tracker.get_continue_watching())}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "streamvault.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
