import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from albumlog.exceptions import ValidationError


class EntryStatus(str, Enum):
    QUEUED = "Queued"
    LISTENING = "Listening"
    FINISHED = "Finished"

    @classmethod
    def parse(cls, value) -> "EntryStatus":
        """Return the matching status, defaulting to Queued for unknown input."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.QUEUED


@dataclass
class Track:
    name: str
    duration_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "duration": self.duration_seconds}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        try:
            duration = int(data.get("duration") or 0)
        except (TypeError, ValueError):
            duration = 0
        return cls(name=data.get("name", ""), duration_seconds=duration)

    @property
    def display_duration(self) -> str:
        mins, secs = divmod(self.duration_seconds, 60)
        return f"{mins}:{secs:02d}"


@dataclass
class SimilarArtist:
    name: str
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimilarArtist":
        return cls(name=data.get("name", ""), url=data.get("url", ""))


def _tracks_from(raw) -> Optional[List[Track]]:
    if raw is None:
        return None
    return [Track.from_dict(t) for t in raw if isinstance(t, dict)]


def _similar_from(raw) -> Optional[List[SimilarArtist]]:
    if raw is None:
        return None
    return [SimilarArtist.from_dict(a) for a in raw if isinstance(a, dict)]


@dataclass
class LibraryEntry:
    """One user's persisted record of an album."""
    artist: str
    title: str
    user_id: str = ""
    id: Optional[str] = None
    release_year: Optional[int] = None
    genre: Optional[str] = None
    subgenre: Optional[str] = None
    country: Optional[str] = None
    status: EntryStatus = EntryStatus.QUEUED
    rating: Optional[int] = None
    influence_notes: Optional[str] = None
    cover_image_url: Optional[str] = None
    lastfm_url: Optional[str] = None
    album_wiki: Optional[str] = None
    tracks: Optional[List[Track]] = None
    similar_artists: Optional[List[SimilarArtist]] = None
    created_at: Optional[str] = None

    def validate(self) -> None:
        """Raise ValidationError if required fields are missing or rating is out of range."""
        if not (self.artist or "").strip() or not (self.title or "").strip():
            raise ValidationError("Artist and title are required")
        if self.rating is not None and not 1 <= self.rating <= 5:
            raise ValidationError(f"Rating must be between 1 and 5, got {self.rating}")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "LibraryEntry":
        """Build an entry from a datastore row."""
        return cls(
            id=record.get("id"),
            user_id=record.get("user_id", ""),
            artist=record.get("artist", ""),
            title=record.get("title", ""),
            release_year=record.get("release_year"),
            genre=record.get("genre"),
            subgenre=record.get("subgenre"),
            country=record.get("country"),
            status=EntryStatus.parse(record.get("status")),
            rating=record.get("rating"),
            influence_notes=record.get("influence_notes"),
            cover_image_url=record.get("cover_image_url"),
            lastfm_url=record.get("lastfm_url"),
            album_wiki=record.get("album_wiki"),
            tracks=_tracks_from(record.get("tracks")),
            similar_artists=_similar_from(record.get("similar_artists")),
            created_at=record.get("created_at"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Serialize for an insert; id and created_at are generated by the datastore."""
        return {
            "user_id": self.user_id,
            "artist": self.artist,
            "title": self.title,
            "release_year": self.release_year,
            "genre": self.genre,
            "subgenre": self.subgenre,
            "country": self.country,
            "status": EntryStatus.parse(self.status).value,
            "rating": self.rating,
            "influence_notes": self.influence_notes,
            "cover_image_url": self.cover_image_url,
            "lastfm_url": self.lastfm_url,
            "album_wiki": self.album_wiki,
            "tracks": [t.to_dict() for t in self.tracks] if self.tracks is not None else None,
            "similar_artists": (
                [a.to_dict() for a in self.similar_artists]
                if self.similar_artists is not None else None
            ),
        }


@dataclass
class ImportRow:
    """One row read from an uploaded spreadsheet, already mapped to entry fields."""
    artist: Optional[str] = None
    title: Optional[str] = None
    release_year: Optional[int] = None
    genre: Optional[str] = None
    subgenre: Optional[str] = None
    country: Optional[str] = None
    status: EntryStatus = EntryStatus.QUEUED
    influence_notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportRow":
        year = data.get("release_year")
        if isinstance(year, bool) or not isinstance(year, (int, float)) or not math.isfinite(year):
            year = None
        return cls(
            artist=data.get("artist"),
            title=data.get("title"),
            release_year=int(year) if year is not None else None,
            genre=data.get("genre"),
            subgenre=data.get("subgenre"),
            country=data.get("country"),
            status=EntryStatus.parse(data.get("status")),
            influence_notes=data.get("influence_notes"),
        )

    def metadata(self) -> Dict[str, Any]:
        """Mutable metadata carried by an import update (never artist/title)."""
        return {
            "release_year": self.release_year,
            "genre": self.genre,
            "subgenre": self.subgenre,
            "country": self.country,
            "status": EntryStatus.parse(self.status).value,
            "influence_notes": self.influence_notes,
        }


@dataclass
class ExistingEntry:
    id: str
    artist: str
    title: str


@dataclass
class FetchedMetadata:
    """Album metadata as returned from Last.fm, normalized to entry fields."""
    title: str = ""
    artist: str = ""
    image: str = ""
    url: str = ""
    genre: str = ""
    subgenre: str = ""
    release_year: Optional[int] = None
    tracks: List[Track] = field(default_factory=list)
    wiki: str = ""
    similar_artists: List[SimilarArtist] = field(default_factory=list)
    listeners: int = 0
    playcount: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist,
            "image": self.image,
            "url": self.url,
            "genre": self.genre,
            "subgenre": self.subgenre,
            "releaseYear": self.release_year,
            "tracks": [t.to_dict() for t in self.tracks],
            "wiki": self.wiki,
            "similarArtists": [a.to_dict() for a in self.similar_artists],
            "listeners": self.listeners,
            "playcount": self.playcount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchedMetadata":
        """Inverse of to_dict, used to carry reviewed values through a form."""
        year = data.get("releaseYear")
        if isinstance(year, bool) or not isinstance(year, int):
            year = None
        return cls(
            title=data.get("title") or "",
            artist=data.get("artist") or "",
            image=data.get("image") or "",
            url=data.get("url") or "",
            genre=data.get("genre") or "",
            subgenre=data.get("subgenre") or "",
            release_year=year,
            tracks=_tracks_from(data.get("tracks")) or [],
            wiki=data.get("wiki") or "",
            similar_artists=_similar_from(data.get("similarArtists")) or [],
            listeners=data.get("listeners") or 0,
            playcount=data.get("playcount") or 0,
        )


@dataclass
class ImportResult:
    imported: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    skipped_due_to_limit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "updated": self.updated,
            "errors": list(self.errors),
            "skippedDueToLimit": self.skipped_due_to_limit,
        }
