"""
Text Utilities for Library Entries and Last.fm Payloads

Provides normalization helpers used when matching imported rows against the
existing library and when turning raw Last.fm responses into entry fields.

These functions handle common variations like:
- Case and surrounding whitespace in artist/title pairs
- HTML markup in Last.fm wiki summaries
- Last.fm image lists in several sizes
"""

import re
from typing import Any, Dict, List, Optional, Tuple

# Largest first; Last.fm also sends "mega" and "" sizes which are ignored
IMAGE_SIZE_PREFERENCE = ("extralarge", "large", "medium", "small")


def clean_text(text: Optional[str]) -> str:
    """
    Trim a cell value and collapse internal runs of whitespace.

    Examples:
        "  Björk " -> "Björk"
        "Sigur  Rós" -> "Sigur Rós"
        None -> ""

    Args:
        text: Raw value from a spreadsheet or form

    Returns:
        Cleaned string (empty string for None)
    """
    if text is None:
        return ""
    return re.sub(r"\s+", " ", str(text)).strip()


def dedup_key(artist: Optional[str], title: Optional[str]) -> str:
    """
    Build the de-duplication key for an artist/title pair.

    Examples:
        ("Bjork", "Homogenic") -> "bjork|homogenic"
        ("bjork ", "HOMOGENIC") -> "bjork|homogenic"
        ("Sigur  Rós", "Takk") -> "sigur rós|takk"

    Args:
        artist: Artist name
        title: Album title

    Returns:
        Lowercased "artist|title" key, cleaned the same way as imported rows
    """
    return f"{clean_text(artist).lower()}|{clean_text(title).lower()}"


def strip_html(text: Optional[str]) -> str:
    """Remove HTML tags (Last.fm wiki summaries end with an <a> link)."""
    if not text:
        return ""
    return re.sub(r"<[^>]*>", "", text)


def extract_year(summary: Optional[str]) -> Optional[int]:
    """
    Find the first plausible release year (19xx or 20xx) in a wiki summary.

    Examples:
        "Homogenic is the third album, released in 1997." -> 1997
        "No dates here" -> None
    """
    if not summary:
        return None
    match = re.search(r"\b(19|20)\d{2}\b", summary)
    return int(match.group(0)) if match else None


def largest_image(images: Optional[List[Dict[str, Any]]]) -> str:
    """Pick the largest non-empty image URL from a Last.fm image list."""
    images = images or []
    for size in IMAGE_SIZE_PREFERENCE:
        for img in images:
            if img.get("size") == size and img.get("#text"):
                return img["#text"]
    return ""


def as_list(value: Any) -> List[Any]:
    """Last.fm collapses single-item lists into a bare object; undo that."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def extract_tags(tags: Optional[Dict[str, Any]]) -> Tuple[str, str]:
    """
    Map the first two Last.fm tags to (genre, subgenre).

    Examples:
        {"tag": [{"name": "electronic"}, {"name": "trip-hop"}]} -> ("electronic", "trip-hop")
        None -> ("", "")
    """
    tag_list = [t.get("name", "") for t in as_list((tags or {}).get("tag")) if isinstance(t, dict)]
    genre = tag_list[0] if len(tag_list) > 0 else ""
    subgenre = tag_list[1] if len(tag_list) > 1 else ""
    return genre, subgenre


def to_int(value: Any, default: int = 0) -> int:
    """Parse Last.fm's stringly-typed counters ("12345") without raising."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
