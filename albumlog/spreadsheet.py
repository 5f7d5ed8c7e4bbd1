"""
Spreadsheet import/export

Reads `.xlsx` uploads into ImportRows and writes the library back out, using
pandas with the openpyxl engine for the workbook encoding.

Two column layouts are supported:
- the "compatible" layout, matching the user's original Spanish-headed sheet
  (BANDA, BESTSELLER, AÑO BS, ...), used for both import and export
- the "full" layout, English headers with every stored field, export only
"""

import io
import json
import logging
import numbers
from typing import Any, Dict, List, Optional

import pandas as pd

from albumlog.models import EntryStatus, ImportRow, LibraryEntry
from albumlog.text_utils import clean_text

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_NAME = "Library"

# Localized column headers of the compatible layout
COL_ARTIST = "BANDA"
COL_TITLE = "BESTSELLER"
COL_YEAR = "AÑO BS"
COL_GENRE = "GÉNERO"
COL_SUBGENRE = "SUBGÉNERO"
COL_COUNTRY = "PAÍS"
COL_LISTENED = "ESCUCHADO"
COL_PIONEER = "PIONERA"
COL_INFLUENCED_BY = "INFLUENCIADOS\nPOR"

COMPATIBLE_COLUMNS = [
    COL_ARTIST, COL_TITLE, COL_YEAR, COL_GENRE, COL_SUBGENRE,
    COL_COUNTRY, COL_LISTENED, COL_PIONEER,
]

FULL_COLUMNS = [
    "Title", "Artist", "Genre", "Subgenre", "Country", "Release Year",
    "Status", "Rating", "Influence Notes", "Cover URL", "Last.fm URL",
    "Wiki", "Tracks", "Similar Artists", "Created At",
]


def read_sheet(data: bytes) -> List[Dict[str, Any]]:
    """
    Read the first worksheet into a list of header-keyed dicts.

    Empty cells come back as None rather than NaN.

    Args:
        data: Raw `.xlsx` bytes

    Returns:
        One dict per data row
    """
    df = pd.read_excel(io.BytesIO(data), sheet_name=0, engine="openpyxl")
    df = df.astype(object).where(pd.notna(df), None)
    rows = df.to_dict(orient="records")
    logger.info(f"Read {len(rows)} rows with columns {list(df.columns)}")
    return rows


def _optional_text(value: Any) -> Optional[str]:
    text = clean_text(value) if value is not None else ""
    return text or None


def _is_listened(value: Any) -> bool:
    # Only a real boolean true counts; marker letters such as "A" or "E" do not
    if isinstance(value, str):
        return value.strip() in ("TRUE", "true")
    # numpy bools are not a subclass of bool
    return type(value).__name__ in ("bool", "bool_") and bool(value)


def _year(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def row_to_import_row(row: Dict[str, Any]) -> ImportRow:
    """Map one raw sheet row (compatible layout) to an ImportRow."""
    notes = [n for n in (_optional_text(row.get(COL_PIONEER)), _optional_text(row.get(COL_INFLUENCED_BY))) if n]
    return ImportRow(
        artist=_optional_text(row.get(COL_ARTIST)),
        title=_optional_text(row.get(COL_TITLE)),
        release_year=_year(row.get(COL_YEAR)),
        genre=_optional_text(row.get(COL_GENRE)),
        subgenre=_optional_text(row.get(COL_SUBGENRE)),
        country=_optional_text(row.get(COL_COUNTRY)),
        status=EntryStatus.FINISHED if _is_listened(row.get(COL_LISTENED)) else EntryStatus.QUEUED,
        influence_notes="\n\n".join(notes) or None,
    )


def rows_to_import_rows(rows: List[Dict[str, Any]]) -> List[ImportRow]:
    """Map raw rows; rows without artist/title are kept for the reconciler to count."""
    return [row_to_import_row(row) for row in rows]


def parse_import_file(data: bytes) -> List[ImportRow]:
    return rows_to_import_rows(read_sheet(data))


def _to_xlsx(records: List[Dict[str, Any]], columns: List[str]) -> bytes:
    buffer = io.BytesIO()
    df = pd.DataFrame(records, columns=columns)
    df.to_excel(buffer, index=False, sheet_name=SHEET_NAME, engine="openpyxl")
    return buffer.getvalue()


def generate_compatible_export(entries: List[LibraryEntry]) -> bytes:
    """Export in the compatible layout so the file can be re-imported."""
    records = [
        {
            COL_ARTIST: e.artist,
            COL_TITLE: e.title,
            COL_YEAR: e.release_year,
            COL_GENRE: e.genre,
            COL_SUBGENRE: e.subgenre,
            COL_COUNTRY: e.country,
            COL_LISTENED: EntryStatus.parse(e.status) == EntryStatus.FINISHED,
            COL_PIONEER: e.influence_notes,
        }
        for e in entries
    ]
    logger.info(f"Exporting {len(records)} entries (compatible layout)")
    return _to_xlsx(records, COMPATIBLE_COLUMNS)


def generate_full_export(entries: List[LibraryEntry]) -> bytes:
    """Export every stored field; tracks and similar artists as JSON text."""
    records = []
    for e in entries:
        records.append({
            "Title": e.title,
            "Artist": e.artist,
            "Genre": e.genre,
            "Subgenre": e.subgenre,
            "Country": e.country,
            "Release Year": e.release_year,
            "Status": EntryStatus.parse(e.status).value,
            "Rating": e.rating,
            "Influence Notes": e.influence_notes,
            "Cover URL": e.cover_image_url,
            "Last.fm URL": e.lastfm_url,
            "Wiki": e.album_wiki,
            "Tracks": json.dumps([t.to_dict() for t in e.tracks]) if e.tracks else None,
            "Similar Artists": (
                json.dumps([a.to_dict() for a in e.similar_artists]) if e.similar_artists else None
            ),
            "Created At": e.created_at,
        })
    logger.info(f"Exporting {len(records)} entries (full layout)")
    return _to_xlsx(records, FULL_COLUMNS)
