"""
Pytest fixtures for album-log tests

Provides an in-memory library store, sample Last.fm payloads and sample
import rows for use across all test modules.
"""
import itertools

import pytest

from albumlog.exceptions import DatastoreError
from albumlog.models import EntryStatus, ExistingEntry, ImportRow, LibraryEntry


class FakeStore:
    """In-memory stand-in for LibraryStore.

    Records every write in `calls` so tests can assert on datastore traffic.
    Set `fail_select`, `fail_insert`, `fail_count` to make those calls raise,
    or add ids to `fail_update_ids` to make individual updates fail.
    """

    def __init__(self, entries=None):
        self._ids = itertools.count(1)
        self.rows = {}
        self.calls = []
        self.fail_select = False
        self.fail_insert = False
        self.fail_count = False
        self.fail_update_ids = set()
        for entry in entries or []:
            self._put(entry)

    def _put(self, entry):
        while entry.id is None or (entry.id in self.rows and self.rows[entry.id] is not entry):
            entry.id = f"e{next(self._ids)}"
        if entry.created_at is None:
            entry.created_at = f"2024-01-{len(self.rows) + 1:02d}T00:00:00Z"
        self.rows[entry.id] = entry
        return entry

    def select_existing(self, user_id):
        self.calls.append(("select_existing", user_id))
        if self.fail_select:
            raise DatastoreError("select failed", status_code=500)
        return [
            ExistingEntry(id=e.id, artist=e.artist, title=e.title)
            for e in self.rows.values() if e.user_id == user_id
        ]

    def count_entries(self, user_id):
        self.calls.append(("count_entries", user_id))
        if self.fail_count:
            raise DatastoreError("count failed", status_code=500)
        return sum(1 for e in self.rows.values() if e.user_id == user_id)

    def list_entries(self, user_id, status=None):
        self.calls.append(("list_entries", user_id))
        entries = [e for e in self.rows.values() if e.user_id == user_id]
        if status:
            entries = [e for e in entries if e.status == EntryStatus.parse(status)]
        return entries

    def get_entry(self, entry_id):
        return self.rows.get(entry_id)

    def insert_entry(self, entry):
        self.calls.append(("insert_entry", entry.artist, entry.title))
        if self.fail_insert:
            raise DatastoreError("insert failed", status_code=500)
        return self._put(entry)

    def insert_batch(self, records):
        self.calls.append(("insert_batch", len(records)))
        if self.fail_insert:
            raise DatastoreError("duplicate key value violates unique constraint", status_code=409)
        for record in records:
            self._put(LibraryEntry.from_record(record))

    def update_one(self, entry_id, patch):
        self.calls.append(("update_one", entry_id, dict(patch)))
        if entry_id in self.fail_update_ids:
            raise DatastoreError(f"update of {entry_id} failed", status_code=500)
        entry = self.rows[entry_id]
        for key, value in patch.items():
            if key == "status":
                value = EntryStatus.parse(value)
            setattr(entry, key, value)

    def delete_entry(self, entry_id):
        self.calls.append(("delete_entry", entry_id))
        self.rows.pop(entry_id, None)

    def writes(self):
        return [c for c in self.calls if c[0] in ("insert_batch", "insert_entry", "update_one", "delete_entry")]


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def store():
    """Empty in-memory library store."""
    return FakeStore()


@pytest.fixture
def make_entry(user_id):
    """Factory for library entries owned by the test user."""
    def _make(artist, title, **kwargs):
        kwargs.setdefault("user_id", user_id)
        return LibraryEntry(artist=artist, title=title, **kwargs)
    return _make


@pytest.fixture
def sample_rows():
    """Import rows as mapped from a spreadsheet."""
    return [
        ImportRow(artist="Björk", title="Homogenic", release_year=1997, genre="Electronic"),
        ImportRow(artist="Radiohead", title="OK Computer", release_year=1997, status=EntryStatus.FINISHED),
        ImportRow(artist="Sigur Rós", title="Ágætis byrjun", country="Iceland"),
    ]


@pytest.fixture
def lastfm_album_info():
    """Mock Last.fm album.getinfo response."""
    return {
        "album": {
            "name": "Homogenic",
            "artist": "Björk",
            "url": "https://www.last.fm/music/Bj%C3%B6rk/Homogenic",
            "listeners": "812345",
            "playcount": "12345678",
            "image": [
                {"#text": "https://img/small.png", "size": "small"},
                {"#text": "https://img/large.png", "size": "large"},
                {"#text": "https://img/xl.png", "size": "extralarge"},
            ],
            "tags": {"tag": [{"name": "electronic"}, {"name": "trip-hop"}, {"name": "female vocalists"}]},
            "tracks": {"track": [
                {"name": "Hunter", "duration": 255},
                {"name": "Jóga", "duration": "305"},
            ]},
            "wiki": {
                "summary": 'Homogenic is the third album by Björk, released in 1997. '
                           '<a href="https://www.last.fm/music/Bj%C3%B6rk/Homogenic">Read more on Last.fm</a>',
            },
        }
    }


@pytest.fixture
def lastfm_artist_info():
    """Mock Last.fm artist.getinfo response with six similar artists."""
    return {
        "artist": {
            "name": "Björk",
            "similar": {"artist": [
                {"name": f"Similar {i}", "url": f"https://www.last.fm/music/Similar+{i}"}
                for i in range(6)
            ]},
        }
    }


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Print a concise, one-line summary at the end of the test run."""
    stats = getattr(terminalreporter, "stats", {})

    def _count(key):
        return len(stats.get(key, [])) if stats.get(key) is not None else 0

    passed = _count('passed')
    failed = _count('failed')
    skipped = _count('skipped')
    errors = _count('error')
    total = passed + failed + skipped + errors

    terminalreporter.write_sep("=", "pytest summary")
    terminalreporter.write_line(
        f"Total: {total}  Passed: {passed}  Failed: {failed}  Skipped: {skipped}  Errors: {errors}"
    )

