"""Tests for the config command group."""

import json

from codestate.cli.main import cli
from codestate.utils.config_manager import ConfigManager


class TestConfigCommand:
    """Test the config commands."""

    def test_show_defaults(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ['config', 'show'])

        assert result.exit_code == 0
        assert 'vscode' in result.output
        assert str(isolated_home / 'data') in result.output

    def test_set_value(self, cli_runner, isolated_home):
        result = cli_runner.invoke(cli, ['config', 'set', 'ide', 'cursor'])

        assert result.exit_code == 0
        assert 'Set ide = cursor' in result.output
        saved = json.loads((isolated_home / 'config.json').read_text())
        assert saved['ide'] == 'cursor'

    def test_set_encryption(self, cli_runner):
        cli_runner.invoke(cli, ['config', 'set', 'encryption.enabled', 'true'])
        result = cli_runner.invoke(cli, ['config', 'set', 'encryption.encryptionKey', 's3cret'])

        assert result.exit_code == 0
        assert 's3cret' not in result.output
        config = ConfigManager().load_config()
        assert config.encryption.enabled is True
        assert config.encryption.encryption_key == 's3cret'

    def test_set_invalid_log_level(self, cli_runner):
        result = cli_runner.invoke(cli, ['config', 'set', 'logLevel', 'LOUD'])

        assert result.exit_code == 1
        assert 'Valid levels' in result.output

    def test_set_invalid_boolean(self, cli_runner):
        result = cli_runner.invoke(cli, ['config', 'set', 'encryption.enabled', 'maybe'])

        assert result.exit_code == 1

    def test_unknown_key(self, cli_runner):
        result = cli_runner.invoke(cli, ['config', 'set', 'colour', 'blue'])

        assert result.exit_code == 2

    def test_reset(self, cli_runner):
        cli_runner.invoke(cli, ['config', 'set', 'ide', 'vim'])

        result = cli_runner.invoke(cli, ['config', 'reset', '--yes'])

        assert result.exit_code == 0
        assert ConfigManager().load_config().ide == 'vscode'

    def test_export_to_stdout_masks_key(self, cli_runner):
        cli_runner.invoke(cli, ['config', 'set', 'encryption.encryptionKey', 's3cret'])

        result = cli_runner.invoke(cli, ['config', 'export'])

        assert result.exit_code == 0
        assert json.loads(result.output)['ide'] == 'vscode'
        assert 's3cret' not in result.output

    def test_export_then_import(self, cli_runner, tmp_path):
        cli_runner.invoke(cli, ['config', 'set', 'ide', 'cursor'])
        output = tmp_path / 'config-export.json'
        assert cli_runner.invoke(cli, ['config', 'export', '-o', str(output)]).exit_code == 0
        cli_runner.invoke(cli, ['config', 'reset', '--yes'])

        result = cli_runner.invoke(cli, ['config', 'import', str(output)])

        assert result.exit_code == 0
        assert 'Configuration imported' in result.output
        assert ConfigManager().load_config().ide == 'cursor'

    def test_import_from_stdin_rejects_invalid(self, cli_runner):
        result = cli_runner.invoke(cli, ['config', 'import', '-'], input='{"logLevel": "LOUD"}')

        assert result.exit_code == 1
        assert 'Invalid configuration' in result.output
