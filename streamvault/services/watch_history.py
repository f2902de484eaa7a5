"""Per-profile watch progress backed by the store."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ..models import WatchRecord
from ..utils import is_blank
from .catalog import RequestSequencer
from .repository import CatalogRepository, RepositoryError
from .resolver import resolve_watch_record

logger = logging.getLogger(__name__)


class InvalidProfileError(ValueError):
    """Raised before any store call when the profile id is missing."""

    def __init__(self, profile_id: object = None) -> None:
        super().__init__("Invalid profile ID")
        self.profile_id = profile_id


class WatchHistoryTracker:
    """Keeps the in-progress viewing history of the active profile."""

    def __init__(self, repository: CatalogRepository, *, limit: int = 20) -> None:
        self._repository = repository
        self._limit = limit
        self._sequencer = RequestSequencer()
        self.history: list[WatchRecord] = []
        self.is_loading = False
        self.error: str | None = None

    def _require_profile(self, profile_id: str) -> None:
        if is_blank(profile_id):
            self.error = "Invalid profile ID"
            raise InvalidProfileError(profile_id)

    async def fetch_history(self, profile_id: str) -> None:
        """Load the unfinished records of a profile, newest first.

        Store failures are recorded on ``error`` and not raised.
        """

        self._require_profile(profile_id)
        ticket = self._sequencer.issue("history")
        self.is_loading = True
        self.error = None
        try:
            rows = await self._repository.fetch_watch_history(
                profile_id, completed=False, limit=self._limit
            )
            history = [resolve_watch_record(row) for row in rows]
        except (RepositoryError, ValidationError) as exc:
            if self._sequencer.is_current("history", ticket):
                logger.exception("Error fetching watch history for %s", profile_id)
                self.error = str(exc) or "Failed to fetch watch history"
                self.is_loading = False
            return

        if not self._sequencer.is_current("history", ticket):
            logger.debug("Discarding superseded history fetch #%d", ticket)
            return
        self.history = history
        self.is_loading = False

    async def update_watch_time(
        self,
        profile_id: str,
        content_id: str,
        watch_time: int,
        completed: bool = False,
    ) -> None:
        """Upsert progress for (profile, content) and reload the history."""

        self._require_profile(profile_id)
        self.is_loading = True
        self.error = None
        try:
            await self._repository.update_watch_history(
                profile_id, content_id, watch_time=watch_time, completed=completed
            )
        except RepositoryError as exc:
            logger.exception(
                "Error updating watch time for %s on %s", profile_id, content_id
            )
            self.error = str(exc) or "Failed to update watch time"
            self.is_loading = False
            raise
        await self.fetch_history(profile_id)

    def get_continue_watching(self) -> list[WatchRecord]:
        return [record for record in self.history if not record.completed]

    def clear_error(self) -> None:
        self.error = None
