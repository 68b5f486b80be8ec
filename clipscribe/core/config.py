"""
Application configuration manager.
Stores settings in a JSON file under the application directory; secrets and
paths can be overridden from the environment.
"""

import json
import logging
import os
from pathlib import Path

from clipscribe.core.constants import (
    CONFIG_PATH, DB_PATH, DEFAULT_TEMP_DIR, Downloader, YTDLP_BINARY,
    DOWNLOAD_TIMEOUT_SEC, REQUEST_TIMEOUT_SEC, COBALT_API_URL,
)

# Validation bounds
_DOWNLOAD_TIMEOUT_MIN = 10
_DOWNLOAD_TIMEOUT_MAX = 600
_REQUEST_TIMEOUT_MIN = 10
_REQUEST_TIMEOUT_MAX = 1800

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'db_path': str(DB_PATH),
    'temp_dir': str(DEFAULT_TEMP_DIR),
    'downloader': Downloader.YTDLP,
    'ytdlp_path': YTDLP_BINARY,
    'download_timeout_sec': DOWNLOAD_TIMEOUT_SEC,
    'request_timeout_sec': REQUEST_TIMEOUT_SEC,
    'cobalt_api_url': COBALT_API_URL,
    'api_key': None,
    'admin_secret': None,
}

# env var → config key; applied on top of the file, never saved back
_ENV_OVERRIDES = {
    'OPENAI_API_KEY': 'api_key',
    'ADMIN_SECRET': 'admin_secret',
    'CLIPSCRIBE_DB_PATH': 'db_path',
    'CLIPSCRIBE_TEMP_DIR': 'temp_dir',
    'CLIPSCRIBE_DOWNLOADER': 'downloader',
}


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None,
                 environ: dict | None = None):
        self.path = config_path or CONFIG_PATH
        self._environ = os.environ if environ is None else environ
        self._data: dict = {}
        self._env: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults and environment."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    self._data[key] = self._validate(key, value)
            except Exception as e:
                logger.warning("Failed to load config: %s", e)

        self._env = {}
        for env_name, key in _ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                self._env[key] = self._validate(key, value)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        if key in self._env:
            return self._env[key]
        value = self._data.get(key)
        return default if value is None else value

    def set(self, key: str, value):
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'download_timeout_sec':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid download_timeout_sec %r — using default", value)
                return DOWNLOAD_TIMEOUT_SEC
            return max(_DOWNLOAD_TIMEOUT_MIN, min(_DOWNLOAD_TIMEOUT_MAX, value))

        if key == 'request_timeout_sec':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid request_timeout_sec %r — using default", value)
                return REQUEST_TIMEOUT_SEC
            return max(_REQUEST_TIMEOUT_MIN, min(_REQUEST_TIMEOUT_MAX, value))

        if key == 'downloader':
            if value not in (Downloader.YTDLP, Downloader.COBALT):
                logger.warning("Invalid downloader %r — using %s", value, Downloader.YTDLP)
                return Downloader.YTDLP

        return value

    def as_dict(self) -> dict:
        data = dict(self._data)
        data.update(self._env)
        # never expose secrets
        for key in ('api_key', 'admin_secret'):
            if data.get(key):
                data[key] = '***'
        return data

    @property
    def db_path(self) -> Path:
        return Path(self.get('db_path', str(DB_PATH)))

    @property
    def temp_dir(self) -> Path:
        return Path(self.get('temp_dir', str(DEFAULT_TEMP_DIR)))

    @property
    def downloader(self) -> str:
        return self.get('downloader', Downloader.YTDLP)

    @property
    def ytdlp_path(self) -> str:
        return self.get('ytdlp_path', YTDLP_BINARY)

    @property
    def download_timeout_sec(self) -> int:
        return self.get('download_timeout_sec', DOWNLOAD_TIMEOUT_SEC)

    @property
    def request_timeout_sec(self) -> int:
        return self.get('request_timeout_sec', REQUEST_TIMEOUT_SEC)

    @property
    def cobalt_api_url(self) -> str:
        return self.get('cobalt_api_url', COBALT_API_URL)

    @property
    def api_key(self) -> str | None:
        return self.get('api_key')

    @property
    def admin_secret(self) -> str | None:
        return self.get('admin_secret')
