"""
Tests for Custom Exception Classes

Tests the exception hierarchy and ensures proper inheritance and behavior.
"""

import pytest

from albumlog.exceptions import (
    AlbumLogError,
    APIError,
    CapacityError,
    ConfigurationError,
    DataError,
    DatastoreError,
    EntryNotFoundError,
    LastFmAPIError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test the exception inheritance hierarchy."""

    @pytest.mark.unit
    @pytest.mark.parametrize("exc", [APIError, DataError, ConfigurationError])
    def test_direct_children_of_base(self, exc):
        assert issubclass(exc, AlbumLogError)
        assert issubclass(exc, Exception)

    @pytest.mark.unit
    @pytest.mark.parametrize("exc", [LastFmAPIError, DatastoreError, RateLimitError])
    def test_api_errors(self, exc):
        assert issubclass(exc, APIError)

    @pytest.mark.unit
    @pytest.mark.parametrize("exc", [ValidationError, CapacityError, EntryNotFoundError])
    def test_data_errors(self, exc):
        assert issubclass(exc, DataError)

    @pytest.mark.unit
    def test_upstream_error_alias(self):
        assert UpstreamError is LastFmAPIError


class TestExceptionAttributes:

    @pytest.mark.unit
    def test_datastore_error_carries_status(self):
        err = DatastoreError("duplicate key", status_code=409)
        assert str(err) == "duplicate key"
        assert err.message == "duplicate key"
        assert err.status_code == 409

    @pytest.mark.unit
    def test_capacity_error_carries_limit(self):
        err = CapacityError("full", max_albums=500)
        assert err.max_albums == 500

    @pytest.mark.unit
    def test_catch_by_base_class(self):
        with pytest.raises(AlbumLogError):
            raise DatastoreError("down")
