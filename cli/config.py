"""Configuration management for the Ferry shell."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import (
    MAX_CHUNK_RETRIES,
    MAX_CHUNK_SIZE_BYTES,
    MIN_CHUNK_SIZE_BYTES,
    RESUME_RETENTION_SECONDS,
    RESUME_STORE_MAX_BYTES,
    RETRY_TIMEOUT_BASE_SECONDS,
)
from common.logging_config import get_logger
from uploader.config import REQUEST_TIMEOUT, RESUME_STORE_PATH, UploadSettings

logger = get_logger(__name__)


class Config:
    """Manages shell configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "default_upload_url": None,
        "request_timeout": REQUEST_TIMEOUT,
        "min_chunk_size": MIN_CHUNK_SIZE_BYTES,
        "max_chunk_size": MAX_CHUNK_SIZE_BYTES,
        "max_chunk_retries": MAX_CHUNK_RETRIES,
        "retry_timeout_base": RETRY_TIMEOUT_BASE_SECONDS,
        "resume_store_path": RESUME_STORE_PATH,
        "resume_store_max_bytes": RESUME_STORE_MAX_BYTES,
        "resume_retention_seconds": RESUME_RETENTION_SECONDS,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.ferry/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.ferry' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Config at {self.config_path} is unreadable, using defaults: {e}")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as backup_error:
                    logger.warning(f"Could not back up config to {backup_path}: {backup_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError as e:
                logger.warning(f"Could not write default config to {self.config_path}: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_default_upload_url(self) -> Optional[str]:
        """
        Get the URL used by 'upload' and 'start' when none is given.

        Returns:
            URL string or None if not set
        """
        return self.data.get('default_upload_url')

    def set_default_upload_url(self, url: str) -> None:
        """
        Set the default upload URL and save to file.

        Args:
            url: Upload endpoint URL
        """
        self.data['default_upload_url'] = url
        self.save()

    def get_upload_settings(self) -> UploadSettings:
        """
        Build upload core settings from this configuration.

        Returns:
            UploadSettings with configured values over defaults
        """
        return UploadSettings.from_mapping(self.data)
