"""
Unit tests for albumlog/config_manager.py

Tests configuration loading, validation, and environment variable handling.
"""

import logging
import sys
import types

import pytest

from albumlog.config_manager import (
    DEFAULT_MAX_ALBUMS_PER_USER,
    Config,
    setup_logging,
)
from albumlog.exceptions import ConfigurationError

ENV_KEYS = [
    "LASTFM_API_KEY", "DATASTORE_URL", "DATASTORE_API_KEY", "DATASTORE_ACCESS_TOKEN",
    "LIBRARY_USER_ID", "MAX_ALBUMS_PER_USER", "REQUEST_DELAY", "MAX_RETRIES",
    "RETRY_DELAY", "REQUEST_TIMEOUT", "LOG_LEVEL", "LOG_FORMAT", "WEBUI_SECRET",
]


@pytest.fixture
def env_config(monkeypatch):
    """Force the environment-variable path with a clean environment."""
    monkeypatch.setitem(sys.modules, "config", None)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def _valid(config):
    config.datastore_url = "https://project.example.co"
    config.datastore_api_key = "anon"
    config.library_user_id = "user-1"
    config.lastfm_api_key = "lfm"
    return config


class TestConfigLoadFromModule:
    """Tests for loading configuration from config.py module."""

    @pytest.mark.unit
    def test_load_all_settings(self, monkeypatch):
        module = types.ModuleType("config")
        module.LASTFM_API_KEY = "lfm-key"
        module.DATASTORE_URL = "https://project.example.co"
        module.DATASTORE_API_KEY = "anon"
        module.LIBRARY_USER_ID = "user-1"
        module.MAX_ALBUMS_PER_USER = 50
        module.REQUEST_DELAY = 0.5
        module.LOG_LEVEL = "DEBUG"
        monkeypatch.setitem(sys.modules, "config", module)

        config = Config()
        assert config.lastfm_api_key == "lfm-key"
        assert config.datastore_url == "https://project.example.co"
        assert config.max_albums_per_user == 50
        assert config.request_delay == 0.5
        assert config.log_level == "DEBUG"
        # Unset values fall back to defaults
        assert config.max_retries == 3
        assert config.datastore_access_token is None
        config._validate()


class TestConfigLoadFromEnv:

    @pytest.mark.unit
    def test_defaults(self, env_config):
        config = Config()
        assert config.max_albums_per_user == DEFAULT_MAX_ALBUMS_PER_USER
        assert config.request_delay == 0.2
        assert config.request_timeout == 30
        assert config.log_level == "INFO"

    @pytest.mark.unit
    def test_reads_environment(self, env_config):
        env_config.setenv("DATASTORE_URL", "https://project.example.co")
        env_config.setenv("MAX_ALBUMS_PER_USER", "25")
        env_config.setenv("RETRY_DELAY", "0.5")
        config = Config()
        assert config.datastore_url == "https://project.example.co"
        assert config.max_albums_per_user == 25
        assert config.retry_delay == 0.5

    @pytest.mark.unit
    def test_bad_number_raises_configuration_error(self, env_config):
        env_config.setenv("MAX_ALBUMS_PER_USER", "lots")
        with pytest.raises(ConfigurationError):
            Config()


class TestConfigValidation:

    @pytest.mark.unit
    def test_valid(self, env_config):
        _valid(Config())._validate()

    @pytest.mark.unit
    def test_missing_datastore(self, env_config):
        config = _valid(Config())
        config.datastore_api_key = None
        with pytest.raises(ConfigurationError, match="DATASTORE_URL"):
            config._validate()

    @pytest.mark.unit
    def test_missing_user(self, env_config):
        config = _valid(Config())
        config.library_user_id = ""
        with pytest.raises(ConfigurationError, match="LIBRARY_USER_ID"):
            config._validate()

    @pytest.mark.unit
    def test_placeholder_lastfm_key(self, env_config):
        config = _valid(Config())
        config.lastfm_api_key = "YOUR_API_KEY_HERE"
        with pytest.raises(ConfigurationError, match="LASTFM_API_KEY"):
            config._validate()

    @pytest.mark.unit
    def test_album_limit_must_be_positive(self, env_config):
        config = _valid(Config())
        config.max_albums_per_user = 0
        with pytest.raises(ConfigurationError, match="MAX_ALBUMS_PER_USER"):
            config._validate()


class TestConfigOutput:

    @pytest.mark.unit
    def test_no_secrets_exposed(self, env_config):
        config = _valid(Config())
        config.datastore_access_token = "secret-token"
        config.datastore_api_key = "secret-anon"
        text = repr(config) + str(config.to_dict())
        assert "secret" not in text
        assert config.to_dict()["library_user_id"] == "user-1"

    @pytest.mark.unit
    def test_setup_logging(self, env_config, monkeypatch):
        captured = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: captured.update(kw))
        config = Config()
        config.log_level = "debug"
        setup_logging(config)
        assert captured["level"] == logging.DEBUG
        assert captured["format"] == config.log_format
