"""Tests for the persisted "my list" membership."""

from __future__ import annotations

import json
from datetime import datetime
from typing import cast

from streamvault.models import Content
from streamvault.services.catalog import CatalogStore
from streamvault.services.my_list import MyListManager, SnapshotStorage
from streamvault.services.repository import CatalogRepository

STORAGE_KEY = "streamvault-content-storage"


def _catalog(*content_ids: str) -> CatalogStore:
    store = CatalogStore(cast(CatalogRepository, object()))
    store.contents = [
        Content(id=content_id, title=content_id, type="movie", created_at=datetime(2024, 1, 1))
        for content_id in content_ids
    ]
    return store


def test_add_then_contains_for_ids_outside_catalog(tmp_path) -> None:
    manager = MyListManager(
        SnapshotStorage(tmp_path / "state.json", STORAGE_KEY), _catalog("a")
    )

    manager.add("not-in-catalog")

    assert manager.contains("not-in-catalog") is True
    assert manager.list_contents() == []


def test_remove_restores_absence(tmp_path) -> None:
    manager = MyListManager(
        SnapshotStorage(tmp_path / "state.json", STORAGE_KEY), _catalog("a")
    )

    manager.add("a")
    manager.remove("a")

    assert manager.contains("a") is False
    manager.remove("a")
    assert manager.ids() == []


def test_membership_is_a_set(tmp_path) -> None:
    manager = MyListManager(
        SnapshotStorage(tmp_path / "state.json", STORAGE_KEY), _catalog()
    )

    manager.add("a")
    manager.add("b")
    manager.add("a")

    assert manager.ids() == ["a", "b"]


def test_list_contents_follows_catalog_order(tmp_path) -> None:
    manager = MyListManager(
        SnapshotStorage(tmp_path / "state.json", STORAGE_KEY), _catalog("x", "y", "z")
    )

    manager.add("z")
    manager.add("x")

    assert [content.id for content in manager.list_contents()] == ["x", "z"]


def test_snapshot_persists_only_membership(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"other-record": {"theme": "dark"}}), encoding="utf-8")
    manager = MyListManager(SnapshotStorage(path, STORAGE_KEY), _catalog("a"))

    manager.add("a")
    manager.add("b")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[STORAGE_KEY] == {"myList": ["a", "b"]}
    assert data["other-record"] == {"theme": "dark"}

    restored = MyListManager(SnapshotStorage(path, STORAGE_KEY), _catalog())
    assert restored.ids() == ["a", "b"]
    assert restored.contains("b") is True


def test_corrupt_snapshot_starts_empty(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    manager = MyListManager(SnapshotStorage(path, STORAGE_KEY), _catalog())

    assert manager.ids() == []
    manager.add("a")
    assert json.loads(path.read_text(encoding="utf-8"))[STORAGE_KEY] == {"myList": ["a"]}


def test_separate_keys_do_not_share_membership(tmp_path) -> None:
    path = tmp_path / "state.json"
    first = MyListManager(SnapshotStorage(path, "list:profile-1"), _catalog())
    first.add("a")

    second = MyListManager(SnapshotStorage(path, "list:profile-2"), _catalog())

    assert second.contains("a") is False
