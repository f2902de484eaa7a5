"""Multi-table catalog writes followed by a full cache reload."""

from __future__ import annotations

import logging

from ..models import (
    CastMemberCreate,
    ContentCreate,
    ContentUpdate,
    EpisodeCreate,
    EpisodeUpdate,
    GenreCreate,
    SeasonCreate,
    SeasonUpdate,
)
from .catalog import CatalogStore
from .repository import CatalogRepository, RepositoryError

logger = logging.getLogger(__name__)


class PartialUpdateError(RepositoryError):
    """Raised when a content update fails after its core row was written.

    The core row keeps the new values; the genre links may be missing or
    stale. Nothing is rolled back.
    """

    def __init__(self, content_id: str, phase: str, cause: Exception) -> None:
        super().__init__(
            f"Content {content_id} updated but genre relink failed during {phase}: {cause}"
        )
        self.content_id = content_id
        self.phase = phase


class MutationCoordinator:
    """Runs admin writes against the repository and reloads the catalog.

    Every successful write ends with ``CatalogStore.fetch_contents`` so the
    cache is rebuilt from the store instead of being patched locally. Failed
    writes are logged and re-raised for the caller to react to.
    """

    def __init__(self, repository: CatalogRepository, catalog: CatalogStore) -> None:
        self._repository = repository
        self._catalog = catalog

    async def add_content(self, data: ContentCreate) -> str:
        values = data.model_dump(exclude={"genre"})
        try:
            content_id = await self._repository.create_content_with_genres(
                values, data.genre
            )
        except RepositoryError:
            logger.exception("Error adding content")
            raise
        logger.info("Created content %s (%s)", content_id, data.title)
        await self._catalog.fetch_contents()
        return content_id

    async def update_content(self, content_id: str, data: ContentUpdate) -> None:
        """Update the core row, then relink genres if any were supplied.

        The two phases are separate store requests. If the relink fails the
        core row keeps its new values and a ``PartialUpdateError`` is raised.
        """

        try:
            await self._repository.update_content_row(content_id, data.core_values())
        except RepositoryError:
            logger.exception("Error updating content %s", content_id)
            raise

        if data.genre_supplied:
            await self._relink_genres(content_id, data.genre or [])

        await self._catalog.fetch_contents()

    async def _relink_genres(self, content_id: str, names: list[str]) -> None:
        phase = "unlink"
        try:
            await self._repository.delete_content_genres(content_id)
            phase = "lookup"
            known = await self._repository.lookup_genre_ids(names)
            missing = [name for name in names if name not in known]
            if missing:
                logger.warning(
                    "Skipping unknown genres for content %s: %s",
                    content_id,
                    ", ".join(missing),
                )
            phase = "insert"
            await self._repository.insert_content_genres(
                content_id, [known[name] for name in names if name in known]
            )
        except RepositoryError as exc:
            logger.exception("Error relinking genres for content %s", content_id)
            raise PartialUpdateError(content_id, phase, exc) from exc

    async def delete_content(self, content_id: str) -> None:
        try:
            await self._repository.delete_content(content_id)
        except RepositoryError:
            logger.exception("Error deleting content %s", content_id)
            raise
        logger.info("Deleted content %s", content_id)
        await self._catalog.fetch_contents()

    async def add_genres(self, data: GenreCreate) -> list[str]:
        """Add genre names to the vocabulary.

        Cached contents only carry genre names, so no reload is needed.
        """

        try:
            genre_ids = await self._repository.create_genres(data.names)
        except RepositoryError:
            logger.exception("Error adding genres")
            raise
        logger.info("Genre vocabulary now includes %s", ", ".join(data.names))
        return genre_ids

    async def add_cast_member(self, content_id: str, data: CastMemberCreate) -> str:
        try:
            member_id = await self._repository.add_cast_member(
                content_id,
                name=data.name,
                role=data.role,
                order=data.order,
                photo_url=data.photo_url,
            )
        except RepositoryError:
            logger.exception("Error adding cast member to content %s", content_id)
            raise
        await self._catalog.fetch_contents()
        return member_id

    async def add_season(self, content_id: str, data: SeasonCreate) -> str:
        try:
            season_id = await self._repository.create_season(
                content_id,
                season_number=data.season_number,
                title=data.title,
                description=data.description or "",
            )
        except RepositoryError:
            logger.exception("Error adding season to content %s", content_id)
            raise
        await self._catalog.fetch_contents()
        return season_id

    async def update_season(self, season_id: str, data: SeasonUpdate) -> None:
        try:
            await self._repository.update_season(season_id, data.values())
        except RepositoryError:
            logger.exception("Error updating season %s", season_id)
            raise
        await self._catalog.fetch_contents()

    async def delete_season(self, season_id: str) -> None:
        try:
            await self._repository.delete_season(season_id)
        except RepositoryError:
            logger.exception("Error deleting season %s", season_id)
            raise
        await self._catalog.fetch_contents()

    async def add_episode(self, season_id: str, data: EpisodeCreate) -> str:
        try:
            episode_id = await self._repository.create_episode(
                season_id, data.model_dump()
            )
        except RepositoryError:
            logger.exception("Error adding episode to season %s", season_id)
            raise
        await self._catalog.fetch_contents()
        return episode_id

    async def update_episode(self, episode_id: str, data: EpisodeUpdate) -> None:
        try:
            await self._repository.update_episode(episode_id, data.values())
        except RepositoryError:
            logger.exception("Error updating episode %s", episode_id)
            raise
        await self._catalog.fetch_contents()

    async def delete_episode(self, episode_id: str) -> None:
        try:
            await self._repository.delete_episode(episode_id)
        except RepositoryError:
            logger.exception("Error deleting episode %s", episode_id)
            raise
        await self._catalog.fetch_contents()
