"""Configuration management for the album log."""

import logging
import os
from typing import Dict, Any

from albumlog.exceptions import ConfigurationError

DEFAULT_MAX_ALBUMS_PER_USER = 500
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


class Config:
    """Configuration container with validation."""

    def __init__(self):
        """Initialize configuration from config.py file or environment."""
        # Try to import from config.py first
        try:
            import sys
            from pathlib import Path

            # Add parent directory to path to import config
            config_dir = Path(__file__).parent.parent
            if str(config_dir) not in sys.path:
                sys.path.insert(0, str(config_dir))

            try:
                import config as config_module
                self._load_from_module(config_module)
            except ImportError:
                self._load_from_env()
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        # Call _validate() before using datastore settings

    def _load_from_module(self, config_module) -> None:
        """Load configuration from config.py module."""
        # Last.fm
        self.lastfm_api_key = getattr(config_module, 'LASTFM_API_KEY', None)

        # Datastore
        self.datastore_url = getattr(config_module, 'DATASTORE_URL', None)
        self.datastore_api_key = getattr(config_module, 'DATASTORE_API_KEY', None)
        self.datastore_access_token = getattr(config_module, 'DATASTORE_ACCESS_TOKEN', None)
        self.library_user_id = getattr(config_module, 'LIBRARY_USER_ID', None)

        # Limits
        self.max_albums_per_user = getattr(config_module, 'MAX_ALBUMS_PER_USER', DEFAULT_MAX_ALBUMS_PER_USER)

        # API rate limiting
        self.request_delay = getattr(config_module, 'REQUEST_DELAY', 0.2)
        self.max_retries = getattr(config_module, 'MAX_RETRIES', 3)
        self.retry_delay = getattr(config_module, 'RETRY_DELAY', 2.0)
        self.request_timeout = getattr(config_module, 'REQUEST_TIMEOUT', 30)

        # Logging
        self.log_level = getattr(config_module, 'LOG_LEVEL', 'INFO')
        self.log_format = getattr(config_module, 'LOG_FORMAT', DEFAULT_LOG_FORMAT)

        # Web UI
        self.webui_secret = getattr(config_module, 'WEBUI_SECRET', 'dev-secret')

    def _load_from_env(self) -> None:
        """Load configuration from environment variables (fallback)."""
        # Last.fm
        self.lastfm_api_key = os.getenv('LASTFM_API_KEY')

        # Datastore
        self.datastore_url = os.getenv('DATASTORE_URL')
        self.datastore_api_key = os.getenv('DATASTORE_API_KEY')
        self.datastore_access_token = os.getenv('DATASTORE_ACCESS_TOKEN')
        self.library_user_id = os.getenv('LIBRARY_USER_ID')

        # Limits
        self.max_albums_per_user = int(os.getenv('MAX_ALBUMS_PER_USER', str(DEFAULT_MAX_ALBUMS_PER_USER)))

        # API rate limiting
        self.request_delay = float(os.getenv('REQUEST_DELAY', '0.2'))
        self.max_retries = int(os.getenv('MAX_RETRIES', '3'))
        self.retry_delay = float(os.getenv('RETRY_DELAY', '2.0'))
        self.request_timeout = int(os.getenv('REQUEST_TIMEOUT', '30'))

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.log_format = os.getenv('LOG_FORMAT', DEFAULT_LOG_FORMAT)

        # Web UI
        self.webui_secret = os.getenv('WEBUI_SECRET', 'dev-secret')

    def _validate(self) -> None:
        """Validate required configuration values."""
        if not self.datastore_url or not self.datastore_api_key:
            raise ConfigurationError(
                "DATASTORE_URL and DATASTORE_API_KEY are required. "
                "Set them in config.py or as environment variables."
            )

        if not self.library_user_id:
            raise ConfigurationError(
                "LIBRARY_USER_ID is required. Set it in config.py or LIBRARY_USER_ID environment variable."
            )

        if self.lastfm_api_key == "YOUR_API_KEY_HERE":
            raise ConfigurationError(
                "Please update LASTFM_API_KEY in config.py with your actual API key."
            )

        if self.max_albums_per_user < 1:
            raise ConfigurationError("MAX_ALBUMS_PER_USER must be at least 1.")

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary (no keys or tokens)."""
        return {
            'datastore_url': self.datastore_url,
            'library_user_id': self.library_user_id,
            'max_albums_per_user': self.max_albums_per_user,
            'request_delay': self.request_delay,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'request_timeout': self.request_timeout,
            'log_level': self.log_level,
        }

    def __repr__(self) -> str:
        """String representation (sanitized - no API keys)."""
        return (
            f"Config(datastore_url={self.datastore_url}, "
            f"max_albums={self.max_albums_per_user}, "
            f"request_delay={self.request_delay}s)"
        )


def setup_logging(config: Config) -> None:
    """Configure root logging from LOG_LEVEL / LOG_FORMAT."""
    level = getattr(logging, str(config.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)
