"""
Custom exception hierarchy for the album log.

This module defines domain-specific exceptions so that failures from the
datastore, the Last.fm API and data validation can be caught at the boundary
that turns them into user-facing messages.
"""


class AlbumLogError(Exception):
    """Base exception for all album log errors."""
    pass


class APIError(AlbumLogError):
    """Base class for all errors talking to an external HTTP service."""
    pass


class LastFmAPIError(APIError):
    """Error communicating with the Last.fm API."""
    pass


# Metadata fetch failures are treated as "no data" by callers
UpstreamError = LastFmAPIError


class DatastoreError(APIError):
    """A read or write against the hosted library table failed."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RateLimitError(APIError):
    """API rate limit exceeded."""
    pass


class DataError(AlbumLogError):
    """Base class for data-related errors."""
    pass


class ValidationError(DataError):
    """Data validation failed (e.g. missing artist or title)."""
    pass


class CapacityError(DataError):
    """The per-user album limit has been reached."""

    def __init__(self, message: str, max_albums: int = None):
        super().__init__(message)
        self.max_albums = max_albums


class EntryNotFoundError(DataError):
    """Library entry not found in the datastore."""
    pass


class ConfigurationError(AlbumLogError):
    """Configuration error (missing or invalid settings)."""
    pass
