"""In-memory catalog cache fed by the repository read path."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import ValidationError

from ..models import Content
from ..utils import is_blank
from .repository import CatalogRepository, RepositoryError
from .resolver import resolve_contents

logger = logging.getLogger(__name__)

CatalogStatus = Literal["idle", "loading", "ready", "error"]


class RequestSequencer:
    """Hand out increasing tickets per resource so stale responses can be dropped.

    Requests are never cancelled; a response is applied only when its ticket is
    still the latest one issued for that resource.
    """

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def issue(self, resource: str) -> int:
        ticket = self._latest.get(resource, 0) + 1
        self._latest[resource] = ticket
        return ticket

    def is_current(self, resource: str, ticket: int) -> bool:
        return self._latest.get(resource) == ticket


class CatalogStore:
    """Single source of truth for the resolved catalog.

    ``contents`` and ``featured_contents`` are only ever replaced wholesale by
    a completed read. Readers never see a partially patched catalog.
    """

    def __init__(self, repository: CatalogRepository) -> None:
        self._repository = repository
        self._sequencer = RequestSequencer()
        self.contents: list[Content] = []
        self.featured_contents: list[Content] = []
        self.is_loading = False
        self.error: str | None = None
        self.has_loaded = False

    @property
    def status(self) -> CatalogStatus:
        if self.is_loading:
            return "loading"
        if self.error:
            return "error"
        if self.has_loaded:
            return "ready"
        return "idle"

    async def fetch_contents(self) -> None:
        """Reload the whole catalog, then the featured subset.

        Failures are recorded on ``error`` and never raised; the previous
        catalog stays in place.
        """

        ticket = self._sequencer.issue("contents")
        self.is_loading = True
        self.error = None
        try:
            rows = await self._repository.fetch_all()
            contents = resolve_contents(rows)
        except (RepositoryError, ValidationError) as exc:
            if not self._sequencer.is_current("contents", ticket):
                logger.debug("Ignoring failure of superseded catalog fetch: %s", exc)
                return
            logger.exception("Error fetching content")
            self.error = str(exc) or "Failed to fetch content"
            self.is_loading = False
            return

        if not self._sequencer.is_current("contents", ticket):
            logger.debug("Discarding superseded catalog fetch #%d", ticket)
            return

        self.contents = contents
        self.has_loaded = True
        self.is_loading = False
        await self.fetch_featured_contents()

    async def fetch_featured_contents(self) -> None:
        ticket = self._sequencer.issue("featured")
        try:
            rows = await self._repository.fetch_featured()
            featured = resolve_contents(rows, include_seasons=False)
        except (RepositoryError, ValidationError) as exc:
            if self._sequencer.is_current("featured", ticket):
                logger.exception("Error fetching featured content")
                self.error = str(exc) or "Failed to fetch featured content"
            return

        if not self._sequencer.is_current("featured", ticket):
            logger.debug("Discarding superseded featured fetch #%d", ticket)
            return
        self.featured_contents = featured

    def get_content_by_id(self, content_id: str) -> Content | None:
        for content in self.contents:
            if content.id == content_id:
                return content
        return None

    def get_contents_by_genre(self, genre: str) -> list[Content]:
        return [content for content in self.contents if genre in content.genre]

    async def search_contents(
        self, query: str, *, content_type: str | None = None
    ) -> list[Content]:
        """Delegate matching to the backing store and resolve the hits."""

        if is_blank(query):
            return []
        rows = await self._repository.search(query, content_type=content_type)
        return resolve_contents(rows)

    async def fetch_genres(self) -> list[str]:
        rows = await self._repository.fetch_genres()
        return [row["name"] for row in rows]

    def clear_error(self) -> None:
        self.error = None
