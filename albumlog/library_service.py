"""Add/edit paths for single entries and the per-user album limit."""

import logging
from dataclasses import dataclass
from typing import Optional

from albumlog.exceptions import CapacityError, EntryNotFoundError, ValidationError
from albumlog.models import EntryStatus, LibraryEntry

logger = logging.getLogger(__name__)


@dataclass
class AlbumLimit:
    can_add: bool
    current_count: int
    max_albums: int
    remaining: int

    def to_dict(self):
        return {
            'canAddAlbum': self.can_add,
            'currentCount': self.current_count,
            'maxAlbums': self.max_albums,
            'remaining': self.remaining,
        }


def check_album_limit(store, user_id: str, max_albums: int) -> AlbumLimit:
    count = store.count_entries(user_id)
    return AlbumLimit(
        can_add=count < max_albums,
        current_count=count,
        max_albums=max_albums,
        remaining=max_albums - count,
    )


def add_entry(store, entry: LibraryEntry, max_albums: int) -> LibraryEntry:
    """
    Validate and insert a manually added entry, enforcing the album limit.

    Raises:
        ValidationError: artist/title missing or rating out of range
        CapacityError: the user already has `max_albums` entries
        DatastoreError: the count or the insert failed
    """
    entry.validate()
    limit = check_album_limit(store, entry.user_id, max_albums)
    if not limit.can_add:
        logger.warning(f"Album limit reached for user {entry.user_id} ({limit.current_count}/{max_albums})")
        raise CapacityError(
            f"Album limit reached! You can have up to {max_albums} albums.",
            max_albums=max_albums,
        )
    return store.insert_entry(entry)


def update_details(store, entry_id: str, status, rating: Optional[int], notes: Optional[str]) -> dict:
    """
    Save the detail-page fields. A rating of 0 and blank notes clear the value.

    Returns:
        The patch that was written
    """
    if store.get_entry(entry_id) is None:
        raise EntryNotFoundError(f"Entry not found: {entry_id}")
    rating = rating or None
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError(f"Rating must be between 1 and 5, got {rating}")
    patch = {
        'status': EntryStatus.parse(status).value,
        'rating': rating,
        'influence_notes': (notes or '').strip() or None,
    }
    store.update_one(entry_id, patch)
    return patch
