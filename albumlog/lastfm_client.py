"""
Last.fm API Client

Provides a clean interface to the Last.fm Web Service API 2.0 with:
- Artist and album search
- Album info (tracks, tags, wiki) and similar artists
- Rate limiting and retry for transient failures
- Normalization into FetchedMetadata for the merge and add-entry flows

Last.fm is read-only here; every call is a GET with `format=json`.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from rapidfuzz import fuzz

from albumlog.exceptions import LastFmAPIError, RateLimitError
from albumlog.models import FetchedMetadata, SimilarArtist, Track
from albumlog.text_utils import (
    as_list,
    extract_tags,
    extract_year,
    largest_image,
    strip_html,
    to_int,
)

logger = logging.getLogger(__name__)

# Minimum fuzzy score for accepting an album.search hit as the requested album
MATCH_THRESHOLD = 80


class LastFmClient:
    """
    Client for the Last.fm Web Service API 2.0.

    Search helpers raise LastFmAPIError on failure so the caller can report
    it; the info lookups used for enrichment return None/empty instead, since
    a missing album is not an error for the caller.
    """

    API_URL = "https://ws.audioscrobbler.com/2.0/"

    def __init__(
        self,
        api_key: str,
        request_delay: float = 0.2,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: int = 30
    ):
        """
        Initialize the Last.fm client.

        Args:
            api_key: Last.fm API key
            request_delay: Delay between requests in seconds (default: 0.2)
            max_retries: Maximum attempts for rate-limited/unavailable responses (default: 3)
            retry_delay: Base delay for exponential backoff (default: 2.0)
            timeout: Request timeout in seconds (default: 30)
        """
        self.api_key = api_key
        self.request_delay = request_delay
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.last_request_time = 0.0
        self.session = requests.Session()
        self.session.headers.update({'User-Agent': 'album-log/1.0'})

        logger.debug("LastFmClient initialized")

    def _wait_for_rate_limit(self):
        """Apply rate limiting between requests."""
        if self.request_delay > 0:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.request_delay:
                time.sleep(self.request_delay - time_since_last)
        self.last_request_time = time.time()

    def _retry_request(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute a request with retry logic and exponential backoff.

        Only rate-limit and service-unavailable responses are retried.
        """
        for attempt in range(self.max_retries):
            try:
                return func(*args, **kwargs)
            except RateLimitError:
                if attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Last.fm unavailable, retrying in {wait_time}s "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    time.sleep(wait_time)
                    continue
                raise
        raise LastFmAPIError(f"Max retries ({self.max_retries}) exceeded")

    def _make_request(self, method: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Call one Last.fm API method.

        Args:
            method: API method name (e.g. "album.getinfo")
            params: Method parameters

        Returns:
            Decoded JSON body

        Raises:
            RateLimitError: on HTTP 429/503
            LastFmAPIError: on any other transport, HTTP or API-level error
        """
        request_params = {
            'method': method,
            'api_key': self.api_key,
            'format': 'json',
            **params,
        }

        def _get():
            self._wait_for_rate_limit()
            try:
                r = self.session.get(self.API_URL, params=request_params, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise LastFmAPIError(f"Last.fm request failed: {e}") from e
            if r.status_code in (429, 503):
                raise RateLimitError(f"Last.fm API error: {r.status_code}")
            if not r.ok:
                raise LastFmAPIError(f"Last.fm API error: {r.status_code}")
            try:
                data = r.json()
            except ValueError as e:
                raise LastFmAPIError(f"Last.fm returned invalid JSON for {method}") from e
            if isinstance(data, dict) and 'error' in data:
                raise LastFmAPIError(f"Last.fm error {data.get('error')}: {data.get('message', '')}")
            return data

        return self._retry_request(_get)

    def search_artist(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """
        Search artists by name.

        Returns:
            List of dicts with name, listeners, url, image
        """
        data = self._make_request('artist.search', {'artist': query, 'limit': str(limit)})
        artists = as_list(data.get('results', {}).get('artistmatches', {}).get('artist'))
        return [
            {
                'name': a.get('name', ''),
                'listeners': to_int(a.get('listeners')),
                'url': a.get('url', ''),
                'image': largest_image(a.get('image')),
            }
            for a in artists
        ]

    def search_album(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """
        Search albums by free text (usually "artist title").

        Returns:
            List of dicts with name, artist, url, image
        """
        data = self._make_request('album.search', {'album': query, 'limit': str(limit)})
        albums = as_list(data.get('results', {}).get('albummatches', {}).get('album'))
        return [
            {
                'name': a.get('name', ''),
                'artist': a.get('artist', ''),
                'url': a.get('url', ''),
                'image': largest_image(a.get('image')),
            }
            for a in albums
        ]

    def get_artist_albums(self, artist: str, limit: int = 50) -> List[Dict[str, Any]]:
        """
        Top albums for an artist, skipping placeholder and artwork-less albums.

        Returns:
            List of dicts with name, artist, url, image, playcount
        """
        data = self._make_request('artist.gettopalbums', {'artist': artist, 'limit': str(limit)})
        results = []
        for a in as_list(data.get('topalbums', {}).get('album')):
            image = largest_image(a.get('image'))
            if a.get('name') == '(null)' or not image:
                continue
            results.append({
                'name': a.get('name', ''),
                'artist': (a.get('artist') or {}).get('name', ''),
                'url': a.get('url', ''),
                'image': image,
                'playcount': to_int(a.get('playcount')),
            })
        return results

    def get_album_info(self, artist: str, album: str) -> Optional[Dict[str, Any]]:
        """Raw album.getinfo payload, or None if the album is unknown or the call fails."""
        try:
            data = self._make_request('album.getinfo', {'artist': artist, 'album': album})
        except LastFmAPIError as e:
            logger.warning(f"Last.fm album lookup failed for {artist} - {album}: {e}")
            return None
        return data.get('album') or None

    def get_artist_info(self, artist: str) -> List[SimilarArtist]:
        """Top five similar artists; empty on failure."""
        try:
            data = self._make_request('artist.getinfo', {'artist': artist})
        except LastFmAPIError as e:
            logger.warning(f"Last.fm artist lookup failed for {artist}: {e}")
            return []
        similar = as_list(((data.get('artist') or {}).get('similar') or {}).get('artist'))
        return [SimilarArtist(name=a.get('name', ''), url=a.get('url', '')) for a in similar[:5]]

    def _best_search_match(self, artist: str, title: str) -> Optional[Dict[str, Any]]:
        """Pick the album.search hit closest to artist/title, if any is close enough."""
        try:
            candidates = self.search_album(f"{artist} {title}")
        except LastFmAPIError as e:
            logger.warning(f"Last.fm album search failed for {artist} - {title}: {e}")
            return None
        wanted = f"{artist} {title}".lower()
        best, best_score = None, 0.0
        for c in candidates:
            score = fuzz.token_sort_ratio(wanted, f"{c['artist']} {c['name']}".lower())
            if score > best_score:
                best, best_score = c, score
        if best is None or best_score < MATCH_THRESHOLD:
            logger.debug(f"No close album.search match for {artist} - {title} (best {best_score:.0f})")
            return None
        logger.info(f"Matched '{artist} - {title}' to '{best['artist']} - {best['name']}' ({best_score:.0f}%)")
        return best

    def fetch_album_metadata(self, artist: str, title: str) -> Optional[FetchedMetadata]:
        """
        Fetch album info plus similar artists and normalize into FetchedMetadata.

        Falls back to album.search with fuzzy matching when the exact
        artist/title lookup finds nothing.

        Args:
            artist: Artist name
            title: Album title

        Returns:
            FetchedMetadata, or None if the album could not be found
        """
        album_info = self.get_album_info(artist, title)
        if album_info is None:
            match = self._best_search_match(artist, title)
            if match is None:
                return None
            artist, title = match['artist'], match['name']
            album_info = self.get_album_info(artist, title)
            if album_info is None:
                return None

        similar = self.get_artist_info(artist)
        genre, subgenre = extract_tags(album_info.get('tags'))
        wiki = album_info.get('wiki') or {}
        tracks = [
            Track(name=t.get('name', ''), duration_seconds=to_int(t.get('duration')))
            for t in as_list((album_info.get('tracks') or {}).get('track'))
        ]

        return FetchedMetadata(
            title=album_info.get('name', title),
            artist=album_info.get('artist', artist),
            image=largest_image(album_info.get('image')),
            url=album_info.get('url', ''),
            genre=genre,
            subgenre=subgenre,
            release_year=extract_year(wiki.get('summary')),
            tracks=tracks,
            wiki=strip_html(wiki.get('summary')),
            similar_artists=similar,
            listeners=to_int(album_info.get('listeners')),
            playcount=to_int(album_info.get('playcount')),
        )

    def __repr__(self) -> str:
        return f"LastFmClient(url={self.API_URL}, delay={self.request_delay}s)"
