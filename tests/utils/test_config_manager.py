import json
import logging
from pathlib import Path

import pytest

from codestate.models.config import AppConfig
from codestate.utils.config_manager import ConfigError, ConfigManager
from codestate.utils.logging_config import setup_logging


class TestConfigManager:
    """Smoke tests for ConfigManager functionality."""

    def test_config_manager_initialization(self, isolated_home):
        """Test ConfigManager honours CODESTATE_HOME."""
        manager = ConfigManager()
        assert manager.home_dir == isolated_home
        assert manager.config_file == isolated_home / "config.json"

    def test_defaults_when_missing(self, tmp_path):
        """Test loading config when none exists."""
        assert ConfigManager(tmp_path / "home").load_config() == AppConfig()

    def test_save_and_load(self, tmp_path):
        """Test saving and loading configuration."""
        manager = ConfigManager(tmp_path / "home")
        manager.save_config(AppConfig(ide="cursor", log_level="DEBUG"))

        loaded = manager.load_config()
        assert loaded.ide == "cursor"
        assert loaded.log_level == "DEBUG"
        assert json.loads(manager.config_file.read_text())["logLevel"] == "DEBUG"

    def test_corrupt_file_raises(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text("{nope")

        with pytest.raises(ConfigError, match="Could not read"):
            manager.load_config()

    def test_invalid_values_raise(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text(json.dumps({"logLevel": "LOUD"}))

        with pytest.raises(ConfigError, match="Invalid configuration"):
            manager.load_config()

    def test_update_merges_nested_encryption(self, tmp_path):
        """Test partial updates keep other settings."""
        manager = ConfigManager(tmp_path)
        manager.update_config(ide="vim")
        manager.update_config(encryption={"enabled": True, "encryption_key": "k"})

        config = manager.load_config()
        assert config.ide == "vim"
        assert config.encryption.enabled is True
        assert config.encryption.encryption_key == "k"

    def test_update_rejects_invalid(self, tmp_path):
        manager = ConfigManager(tmp_path)

        with pytest.raises(ConfigError):
            manager.update_config(log_level="LOUD")
        assert not manager.config_file.exists()

    def test_environment_key_overrides_stored_key(self, tmp_path, monkeypatch):
        manager = ConfigManager(tmp_path)
        manager.update_config(encryption={"enabled": True, "encryption_key": "stored"})
        monkeypatch.setenv("CODESTATE_ENCRYPTION_KEY", "from-env")

        assert manager.effective_config().encryption.encryption_key == "from-env"
        assert manager.load_config().encryption.encryption_key == "stored"

    def test_data_dir(self, tmp_path):
        manager = ConfigManager(tmp_path)
        assert manager.data_dir(AppConfig()) == tmp_path / "data"
        assert manager.data_dir(AppConfig(storage_path="/srv/codestate")) == Path("/srv/codestate")

    def test_describe_masks_key(self, tmp_path):
        manager = ConfigManager(tmp_path)
        config = AppConfig.model_validate({"encryption": {"enabled": True, "encryptionKey": "secret"}})

        described = manager.describe(config)
        assert described["encryption.encryptionKey"] == "********"
        assert "secret" not in json.dumps(described, default=str)

    def test_export_leaves_out_key_by_default(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.update_config(ide="cursor", encryption={"enabled": True, "encryption_key": "secret"})

        exported = json.loads(manager.export_config())
        assert exported["ide"] == "cursor"
        assert "encryptionKey" not in exported["encryption"]
        assert json.loads(manager.export_config(include_key=True))["encryption"]["encryptionKey"] == "secret"

    def test_import_replaces_config_and_keeps_key(self, tmp_path):
        source = ConfigManager(tmp_path / "a")
        source.update_config(ide="vim", log_level="INFO", encryption={"enabled": True})
        target = ConfigManager(tmp_path / "b")
        target.update_config(encryption={"enabled": True, "encryption_key": "mine"})

        imported = target.import_config(source.export_config())

        assert imported.ide == "vim"
        assert target.load_config().log_level == "INFO"
        assert target.load_config().encryption.encryption_key == "mine"

    @pytest.mark.parametrize("text", ["{nope", "[1, 2]", '{"logLevel": "LOUD"}'])
    def test_import_rejects_bad_documents(self, tmp_path, text):
        manager = ConfigManager(tmp_path)

        with pytest.raises(ConfigError):
            manager.import_config(text)
        assert not manager.config_file.exists()


class TestLoggingConfig:
    """Tests for setup_logging."""

    def test_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "codestate.log"
        setup_logging("INFO", str(log_file))

        logging.getLogger("codestate.test").info("hello from the test")

        assert logging.getLogger().level == logging.INFO
        assert "hello from the test" in log_file.read_text()

    def test_unknown_level_falls_back_to_warning(self):
        setup_logging("chatty")
        assert logging.getLogger().level == logging.WARNING
