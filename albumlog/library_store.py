"""
Library Datastore Client

Provides access to the hosted `music_library` table through its PostgREST
HTTP interface:
- Reading a user's entries (full rows or the id/artist/title projection)
- Counting entries for the album limit
- Single and batch inserts, partial updates and deletes by id

Row ownership is enforced by the backend's row-level security; this client
only filters by user id. Writes are never retried: a failure is raised as
DatastoreError and reported by the caller.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from albumlog.exceptions import DatastoreError
from albumlog.models import EntryStatus, ExistingEntry, LibraryEntry

logger = logging.getLogger(__name__)


class LibraryStore:
    """
    Client for the library table of a PostgREST-compatible backend.

    Args:
        base_url: Backend project URL (e.g. "https://xyz.supabase.co")
        api_key: Public API key sent as `apikey`
        access_token: User access token (falls back to api_key)
        table: Table name (default: music_library)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        table: str = "music_library",
        timeout: int = 30
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.access_token = access_token or api_key
        self.table = table
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(self._get_headers())

        logger.info(f"LibraryStore initialized for {self.base_url}")

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests."""
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, params: Optional[Dict[str, str]] = None,
                 json: Any = None, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """
        Send one request to the table endpoint.

        Raises:
            DatastoreError: on transport errors or non-2xx responses, carrying
            the backend's error message when it sends one
        """
        try:
            r = self.session.request(
                method, self.table_url, params=params, json=json,
                headers=headers, timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise DatastoreError(f"Datastore request failed: {e}") from e

        if r.status_code >= 400:
            message = r.text or f"HTTP {r.status_code}"
            try:
                body = r.json()
                if isinstance(body, dict) and body.get('message'):
                    message = body['message']
            except ValueError:
                pass
            raise DatastoreError(message, status_code=r.status_code)
        return r

    def select_existing(self, user_id: str) -> List[ExistingEntry]:
        """Return (id, artist, title) for every entry the user owns."""
        r = self._request('GET', params={
            'select': 'id,artist,title',
            'user_id': f'eq.{user_id}',
        })
        return [ExistingEntry(id=row['id'], artist=row['artist'], title=row['title']) for row in r.json()]

    def count_entries(self, user_id: str) -> int:
        """Exact number of entries the user owns, read from Content-Range."""
        r = self._request(
            'HEAD',
            params={'select': 'id', 'user_id': f'eq.{user_id}'},
            headers={'Prefer': 'count=exact'},
        )
        content_range = r.headers.get('Content-Range', '')
        total = content_range.rsplit('/', 1)[-1]
        try:
            return int(total)
        except ValueError:
            raise DatastoreError(f"Unexpected Content-Range header: {content_range!r}")

    def list_entries(self, user_id: str, status: Optional[str] = None) -> List[LibraryEntry]:
        """All of the user's entries, newest first, optionally filtered by status."""
        params = {
            'select': '*',
            'user_id': f'eq.{user_id}',
            'order': 'created_at.desc',
        }
        if status:
            params['status'] = f'eq.{EntryStatus.parse(status).value}'
        r = self._request('GET', params=params)
        return [LibraryEntry.from_record(row) for row in r.json()]

    def get_entry(self, entry_id: str) -> Optional[LibraryEntry]:
        r = self._request('GET', params={'select': '*', 'id': f'eq.{entry_id}'})
        rows = r.json()
        return LibraryEntry.from_record(rows[0]) if rows else None

    def insert_entry(self, entry: LibraryEntry) -> LibraryEntry:
        """Insert one entry and return it as stored (with id and created_at)."""
        r = self._request('POST', json=entry.to_record(), headers={'Prefer': 'return=representation'})
        rows = r.json()
        if not rows:
            raise DatastoreError("Insert returned no row")
        stored = LibraryEntry.from_record(rows[0])
        logger.info(f"Added entry: {stored.artist} - {stored.title} ({stored.id})")
        return stored

    def insert_batch(self, records: List[Dict[str, Any]]) -> None:
        """Insert all records in a single request; all succeed or the request fails."""
        if not records:
            return
        self._request('POST', json=records, headers={'Prefer': 'return=minimal'})
        logger.debug(f"Batch inserted {len(records)} rows into {self.table}")

    def update_one(self, entry_id: str, patch: Dict[str, Any]) -> None:
        """Apply a partial update to one entry by id."""
        self._request(
            'PATCH',
            params={'id': f'eq.{entry_id}'},
            json=patch,
            headers={'Prefer': 'return=minimal'},
        )
        logger.debug(f"Updated entry {entry_id}: {sorted(patch)}")

    def delete_entry(self, entry_id: str) -> None:
        self._request('DELETE', params={'id': f'eq.{entry_id}'})
        logger.info(f"Deleted entry {entry_id}")

    def __repr__(self) -> str:
        """String representation (sanitized - no keys)."""
        return f"LibraryStore(url={self.base_url}, table={self.table})"
