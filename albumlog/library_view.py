"""Search and ordering for the library page."""

from datetime import datetime
from typing import List

from albumlog.models import LibraryEntry

ORDER_OPTIONS = [
    ("created_at", "Date Added"),
    ("artist", "Artist Name"),
    ("title", "Album Name"),
    ("release_year", "Release Year"),
    ("genre", "Genre"),
]


def filter_entries(entries: List[LibraryEntry], query: str) -> List[LibraryEntry]:
    """Case-insensitive substring match on artist, title or genre."""
    if not (query or "").strip():
        return entries
    term = query.strip().upper()
    return [
        e for e in entries
        if term in (e.artist or "").upper()
        or term in (e.title or "").upper()
        or (e.genre and term in e.genre.upper())
    ]


def _created_at(entry: LibraryEntry) -> float:
    if not entry.created_at:
        return 0.0
    try:
        return datetime.fromisoformat(entry.created_at.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def sort_entries(entries: List[LibraryEntry], order_by: str = "created_at") -> List[LibraryEntry]:
    """Sort a copy of `entries`. Unknown orderings fall back to newest first."""
    if order_by in ("artist", "title", "genre"):
        return sorted(entries, key=lambda e: (getattr(e, order_by) or "").upper())
    if order_by == "release_year":
        return sorted(entries, key=lambda e: e.release_year or 0, reverse=True)
    return sorted(entries, key=_created_at, reverse=True)
