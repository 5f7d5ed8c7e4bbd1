"""
Tests for albumlog/spreadsheet.py

Workbooks are built in memory with pandas so the localized headers and cell
types match what a user's spreadsheet would contain.
"""

import io
import json

import pandas as pd
import pytest

from albumlog.models import EntryStatus, LibraryEntry, SimilarArtist, Track
from albumlog.spreadsheet import (
    COL_INFLUENCED_BY,
    COMPATIBLE_COLUMNS,
    FULL_COLUMNS,
    generate_compatible_export,
    generate_full_export,
    parse_import_file,
    read_sheet,
    row_to_import_row,
)


def _xlsx(records, columns):
    buffer = io.BytesIO()
    pd.DataFrame(records, columns=columns).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def sheet_bytes():
    columns = COMPATIBLE_COLUMNS + [COL_INFLUENCED_BY]
    records = [
        {"BANDA": " Björk ", "BESTSELLER": "Homogenic", "AÑO BS": 1997, "GÉNERO": "Electronic",
         "SUBGÉNERO": "Trip-hop", "PAÍS": "Iceland", "ESCUCHADO": True,
         "PIONERA": "Art pop", COL_INFLUENCED_BY: "Kate Bush"},
        {"BANDA": "Radiohead", "BESTSELLER": "OK Computer", "AÑO BS": "late 90s", "GÉNERO": "Rock",
         "ESCUCHADO": "A"},
        {"BANDA": None, "BESTSELLER": "Untitled"},
    ]
    return _xlsx(records, columns)


class TestImport:

    @pytest.mark.unit
    def test_read_sheet_uses_none_for_empty_cells(self, sheet_bytes):
        rows = read_sheet(sheet_bytes)
        assert len(rows) == 3
        assert rows[2]["BANDA"] is None
        assert rows[1]["SUBGÉNERO"] is None

    @pytest.mark.unit
    def test_parse_import_file(self, sheet_bytes):
        rows = parse_import_file(sheet_bytes)
        bjork, radiohead, untitled = rows

        assert bjork.artist == "Björk"
        assert bjork.title == "Homogenic"
        assert bjork.release_year == 1997
        assert bjork.subgenre == "Trip-hop"
        assert bjork.country == "Iceland"
        assert bjork.status == EntryStatus.FINISHED
        assert bjork.influence_notes == "Art pop\n\nKate Bush"

        # Non-numeric year is dropped; marker letters do not mean listened
        assert radiohead.release_year is None
        assert radiohead.status == EntryStatus.QUEUED
        assert radiohead.influence_notes is None

        # Kept so the reconciler can count it as invalid
        assert untitled.artist is None

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [
        (True, EntryStatus.FINISHED),
        ("TRUE", EntryStatus.FINISHED),
        ("true", EntryStatus.FINISHED),
        (False, EntryStatus.QUEUED),
        ("E", EntryStatus.QUEUED),
        (1, EntryStatus.QUEUED),
        (None, EntryStatus.QUEUED),
    ])
    def test_listened_column(self, value, expected):
        row = row_to_import_row({"BANDA": "A", "BESTSELLER": "B", "ESCUCHADO": value})
        assert row.status == expected

    @pytest.mark.unit
    def test_boolean_year_is_ignored(self):
        row = row_to_import_row({"BANDA": "A", "BESTSELLER": "B", "AÑO BS": True})
        assert row.release_year is None


class TestExport:

    @pytest.fixture
    def entries(self):
        return [
            LibraryEntry(
                id="e1", user_id="user-1", artist="Björk", title="Homogenic", release_year=1997,
                genre="Electronic", country="Iceland", status=EntryStatus.FINISHED, rating=5,
                influence_notes="Art pop", tracks=[Track("Hunter", 255)],
                similar_artists=[SimilarArtist("Portishead", "https://www.last.fm/music/Portishead")],
                created_at="2024-03-01T10:00:00Z",
            ),
            LibraryEntry(id="e2", user_id="user-1", artist="Radiohead", title="OK Computer"),
        ]

    @pytest.mark.unit
    def test_compatible_export_can_be_reimported(self, entries):
        data = generate_compatible_export(entries)
        df = pd.read_excel(io.BytesIO(data), engine="openpyxl")
        assert list(df.columns) == COMPATIBLE_COLUMNS

        rows = parse_import_file(data)
        assert [(r.artist, r.title) for r in rows] == [("Björk", "Homogenic"), ("Radiohead", "OK Computer")]
        assert rows[0].status == EntryStatus.FINISHED
        assert rows[0].release_year == 1997
        assert rows[0].influence_notes == "Art pop"
        assert rows[1].status == EntryStatus.QUEUED

    @pytest.mark.unit
    def test_full_export_columns_and_json(self, entries):
        df = pd.read_excel(io.BytesIO(generate_full_export(entries)), engine="openpyxl")
        assert list(df.columns) == FULL_COLUMNS
        first = df.iloc[0]
        assert first["Status"] == "Finished"
        assert json.loads(first["Tracks"]) == [{"name": "Hunter", "duration": 255}]
        assert json.loads(first["Similar Artists"])[0]["name"] == "Portishead"
        assert pd.isna(df.iloc[1]["Tracks"])

    @pytest.mark.unit
    def test_empty_library_exports_headers_only(self):
        df = pd.read_excel(io.BytesIO(generate_compatible_export([])), engine="openpyxl")
        assert list(df.columns) == COMPATIBLE_COLUMNS
        assert len(df) == 0
