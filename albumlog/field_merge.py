"""
Field-Merge Selector

Compares a stored library entry with freshly fetched Last.fm metadata, one
field at a time. A field is pre-selected only when the entry has nothing for
it and Last.fm does; populated local fields stay unselected so user edits are
not overwritten unless the user ticks them. The confirmed selection becomes a
partial update touching only those fields.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from albumlog.exceptions import DatastoreError
from albumlog.models import FetchedMetadata, LibraryEntry

logger = logging.getLogger(__name__)


class FieldKey(str, Enum):
    COVER = "cover"
    GENRE = "genre"
    SUBGENRE = "subgenre"
    YEAR = "year"
    TRACKS = "tracks"
    WIKI = "wiki"
    SIMILAR = "similar"
    URL = "url"


@dataclass(frozen=True)
class MergeField:
    label: str
    entry_attr: str
    fetched_attr: str

    def current(self, entry: LibraryEntry) -> Any:
        return getattr(entry, self.entry_attr)

    def fetched(self, metadata: FetchedMetadata) -> Any:
        return getattr(metadata, self.fetched_attr)


# Display order follows the review screen
MERGE_FIELDS: Dict[FieldKey, MergeField] = {
    FieldKey.COVER: MergeField("Cover Image", "cover_image_url", "image"),
    FieldKey.GENRE: MergeField("Genre", "genre", "genre"),
    FieldKey.SUBGENRE: MergeField("Subgenre", "subgenre", "subgenre"),
    FieldKey.YEAR: MergeField("Release Year", "release_year", "release_year"),
    FieldKey.TRACKS: MergeField("Tracks", "tracks", "tracks"),
    FieldKey.WIKI: MergeField("Wiki", "album_wiki", "wiki"),
    FieldKey.SIMILAR: MergeField("Similar Artists", "similar_artists", "similar_artists"),
    FieldKey.URL: MergeField("Last.fm URL", "lastfm_url", "url"),
}


@dataclass
class FieldPreview:
    key: FieldKey
    label: str
    display_current: str
    display_new: str
    selected: bool


@dataclass
class MergeResult:
    ok: bool
    patch: Dict[str, Any]
    error: Optional[str] = None


def is_empty(value: Any) -> bool:
    """True for None, blank strings and empty sequences."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def parse_field_keys(values: Iterable[str]) -> Set[FieldKey]:
    """Convert submitted checkbox values to field keys, ignoring unknown ones."""
    keys = set()
    for value in values:
        try:
            keys.add(FieldKey(value))
        except ValueError:
            logger.debug(f"Ignoring unknown merge field: {value!r}")
    return keys


def compute_initial_selection(current: LibraryEntry, fetched: FetchedMetadata) -> Set[FieldKey]:
    """
    Select every field that is empty locally and non-empty in the fetched data.

    Args:
        current: The stored library entry
        fetched: Metadata fetched from Last.fm

    Returns:
        Set of pre-selected field keys
    """
    return {
        key for key, spec in MERGE_FIELDS.items()
        if is_empty(spec.current(current)) and not is_empty(spec.fetched(fetched))
    }


def toggle_field(selected: Set[FieldKey], key: FieldKey) -> Set[FieldKey]:
    """Return a copy of `selected` with `key` flipped."""
    result = set(selected)
    if key in result:
        result.remove(key)
    else:
        result.add(key)
    return result


def _stored_value(value: Any) -> Any:
    # Tracks and similar artists are stored as JSON arrays of plain objects
    if isinstance(value, list):
        return [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
    return value


def build_patch(fetched: FetchedMetadata, selected: Iterable[FieldKey]) -> Dict[str, Any]:
    """
    Build a partial update from the fetched values of the selected fields.

    Values are copied verbatim, so a selected field overwrites whatever the
    entry currently holds.

    Args:
        fetched: Metadata fetched from Last.fm
        selected: Fields confirmed by the user

    Returns:
        Dict keyed by entry attribute, one key per selected field
    """
    patch = {}
    for key in selected:
        spec = MERGE_FIELDS[FieldKey(key)]
        patch[spec.entry_attr] = _stored_value(spec.fetched(fetched))
    return patch


def _display(key: FieldKey, value: Any, placeholder: str, is_new: bool) -> str:
    if is_empty(value):
        return placeholder
    if key == FieldKey.COVER:
        return "New image" if is_new else "Has image"
    if key == FieldKey.URL:
        return "New link" if is_new else "Has link"
    if key == FieldKey.TRACKS:
        return f"{len(value)} tracks"
    if key == FieldKey.SIMILAR:
        return f"{len(value)} artists"
    if key == FieldKey.WIKI:
        return f"{value[:30]}..."
    return str(value)


def describe_fields(
    current: LibraryEntry,
    fetched: FetchedMetadata,
    selected: Optional[Set[FieldKey]] = None,
) -> List[FieldPreview]:
    """Rows for the review screen: current value -> fetched value, with checkbox state."""
    if selected is None:
        selected = compute_initial_selection(current, fetched)
    previews = []
    for key, spec in MERGE_FIELDS.items():
        previews.append(FieldPreview(
            key=key,
            label=spec.label,
            display_current=_display(key, spec.current(current), "(empty)", is_new=False),
            display_new=_display(key, spec.fetched(fetched), "(none)", is_new=True),
            selected=key in selected,
        ))
    return previews


def apply_merge(store, entry_id: str, fetched: FetchedMetadata, selected: Iterable[FieldKey]) -> MergeResult:
    """
    Write the confirmed fields to one entry.

    Args:
        store: Datastore exposing update_one(entry_id, patch)
        entry_id: Entry to update
        fetched: Metadata fetched from Last.fm
        selected: Fields confirmed by the user

    Returns:
        MergeResult; an empty selection performs no write
    """
    patch = build_patch(fetched, selected)
    if not patch:
        return MergeResult(ok=True, patch=patch)
    try:
        store.update_one(entry_id, patch)
    except DatastoreError as e:
        logger.error(f"Failed to apply Last.fm merge to entry {entry_id}: {e}")
        return MergeResult(ok=False, patch=patch, error=f"Failed to save changes: {e}")
    logger.info(f"Applied {len(patch)} Last.fm fields to entry {entry_id}: {sorted(patch)}")
    return MergeResult(ok=True, patch=patch)
