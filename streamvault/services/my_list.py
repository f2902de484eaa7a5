"""Client-side "my list" membership, persisted between sessions."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..models import Content, MyListSnapshot
from .catalog import CatalogStore

logger = logging.getLogger(__name__)


class SnapshotStorage:
    """JSON file holding named snapshot records.

    Only the record under ``key`` is read or written; other records in the
    same file are left untouched.
    """

    def __init__(self, path: str | os.PathLike[str], key: str) -> None:
        self._path = Path(path)
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> MyListSnapshot:
        records = self._read_records()
        raw = records.get(self._key)
        if raw is None:
            return MyListSnapshot()
        try:
            return MyListSnapshot.model_validate(raw)
        except ValidationError:
            logger.warning(
                "Ignoring malformed snapshot %s in %s", self._key, self._path
            )
            return MyListSnapshot()

    def save(self, snapshot: MyListSnapshot) -> None:
        records = self._read_records()
        records[self._key] = snapshot.model_dump(mode="json", by_alias=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self._path.with_name(f"{self._path.name}.tmp")
        temporary.write_text(json.dumps(records, indent=2), encoding="utf-8")
        temporary.replace(self._path)

    def _read_records(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Could not read snapshot file %s; starting empty", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return data


class MyListManager:
    """Ordered set of content ids the user saved for later.

    Membership is independent of the catalog: ids that the catalog does not
    (yet) contain can still be added, and are simply skipped by
    :meth:`list_contents`.
    """

    def __init__(self, storage: SnapshotStorage, catalog: CatalogStore) -> None:
        self._storage = storage
        self._catalog = catalog
        self._ids: dict[str, None] = dict.fromkeys(storage.load().my_list)

    def add(self, content_id: str) -> None:
        if content_id in self._ids:
            return
        self._ids[content_id] = None
        self._persist()

    def remove(self, content_id: str) -> None:
        if content_id not in self._ids:
            return
        del self._ids[content_id]
        self._persist()

    def contains(self, content_id: str) -> bool:
        return content_id in self._ids

    def ids(self) -> list[str]:
        return list(self._ids)

    def list_contents(self) -> list[Content]:
        """Return saved contents that exist in the catalog, in catalog order."""

        return [content for content in self._catalog.contents if content.id in self._ids]

    def _persist(self) -> None:
        self._storage.save(MyListSnapshot(my_list=list(self._ids)))
