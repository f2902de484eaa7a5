"""Utility helpers for the StreamVault service."""

from __future__ import annotations

from typing import Iterable


def normalize_genre_names(values: Iterable[object]) -> list[str]:
    """Strip blanks and drop duplicate genre names, keeping first-seen order."""

    cleaned: list[str] = []
    seen: set[str] = set()
    for value in values:
        if value is None:
            continue
        name = str(value).strip()
        if not name or name in seen:
            continue
        seen.add(name)
        cleaned.append(name)
    return cleaned


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape SQL ``LIKE`` wildcards so user input matches literally."""

    return (
        value.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


def is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()
