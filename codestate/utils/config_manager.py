"""Configuration management utilities."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..core.constants import CONFIG_FILE_NAME, DATA_DIR_NAME, ENCRYPTION_KEY_ENV_VAR, default_home_dir
from ..core.file_storage import atomic_write
from ..models.config import AppConfig

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""

    pass


class ConfigManager:
    """Manages the user configuration file."""

    def __init__(self, home_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            home_dir: codestate home directory (defaults to ~/.codestate or $CODESTATE_HOME)
        """
        self.home_dir = Path(home_dir) if home_dir else default_home_dir()
        self.config_file = self.home_dir / CONFIG_FILE_NAME

    def load_config(self) -> AppConfig:
        """Load configuration, falling back to defaults when no file exists.

        Raises:
            ConfigError: If the file exists but cannot be parsed
        """
        if not self.config_file.exists():
            return AppConfig()
        try:
            data = json.loads(self.config_file.read_text())
            return AppConfig.model_validate(data)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read {self.config_file}: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self.config_file}: {e}") from e

    def effective_config(self) -> AppConfig:
        """Loaded configuration with environment overrides applied."""
        config = self.load_config()
        key = os.environ.get(ENCRYPTION_KEY_ENV_VAR)
        if key:
            config.encryption.encryption_key = key
        return config

    def save_config(self, config: AppConfig) -> None:
        self.home_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
        data = json.dumps(config.to_document(), indent=2).encode("utf-8")
        atomic_write(self.config_file, data)
        logger.debug(f"Saved configuration to {self.config_file}")

    def update_config(self, **changes: Any) -> AppConfig:
        """Merge changes into the stored configuration and save it.

        Nested encryption settings may be passed as `encryption={...}`.

        Raises:
            ConfigError: If the merged configuration is invalid
        """
        current = self.load_config().model_dump()
        encryption = changes.pop("encryption", None)
        if encryption:
            current["encryption"].update(encryption)
        current.update(changes)
        try:
            config = AppConfig.model_validate(current)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        self.save_config(config)
        return config

    def reset_config(self) -> AppConfig:
        config = AppConfig()
        self.save_config(config)
        return config

    def export_config(self, include_key: bool = False) -> str:
        """Stored configuration as JSON; the encryption key is left out unless asked for."""
        document = self.load_config().to_document()
        if not include_key:
            document["encryption"].pop("encryptionKey", None)
        return json.dumps(document, indent=2)

    def import_config(self, text: str) -> AppConfig:
        """Replace the stored configuration with an exported one.

        A document without an encryption key keeps the currently stored key.

        Raises:
            ConfigError: If the document is not valid JSON or not a valid configuration
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config import is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Config import must be a JSON object")
        try:
            config = AppConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        if config.encryption.encryption_key is None:
            try:
                config.encryption.encryption_key = self.load_config().encryption.encryption_key
            except ConfigError:
                logger.warning("Current configuration unreadable; imported config has no encryption key")
        self.save_config(config)
        logger.info(f"Imported configuration into {self.config_file}")
        return config

    def data_dir(self, config: AppConfig) -> Path:
        if config.storage_path:
            return Path(config.storage_path).expanduser()
        return self.home_dir / DATA_DIR_NAME

    def describe(self, config: AppConfig) -> Dict[str, Any]:
        """Flattened view for display, with the encryption key masked."""
        return {
            "version": config.version,
            "ide": config.ide,
            "storagePath": str(self.data_dir(config)),
            "logLevel": config.log_level,
            "logFile": config.log_file or "-",
            "encryption.enabled": config.encryption.enabled,
            "encryption.encryptionKey": "********" if config.encryption.encryption_key else "-",
        }
