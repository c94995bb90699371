import pytest
from click.testing import CliRunner
from codestate.cli.main import cli


class TestMainCLI:
    """Smoke tests for main CLI functionality."""

    def test_cli_help(self, cli_runner):
        """Test that CLI shows help."""
        result = cli_runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert 'Save and restore your development context' in result.output
        assert 'Commands:' in result.output

    def test_cli_no_args(self, cli_runner):
        """Test CLI with no arguments shows help."""
        result = cli_runner.invoke(cli, [])
        assert result.exit_code in (0, 2)  # Click 8.2 exits 2 when no command is given
        assert 'Usage:' in result.output

    def test_cli_invalid_command(self, cli_runner):
        """Test CLI with invalid command."""
        result = cli_runner.invoke(cli, ['invalid-command'])
        assert result.exit_code != 0
        assert 'Error' in result.output or 'No such command' in result.output

    def test_cli_command_groups(self, cli_runner):
        """Test that main command groups are available."""
        result = cli_runner.invoke(cli, ['--help'])

        expected_commands = ['sessions', 'scripts', 'terminals', 'config']
        for cmd in expected_commands:
            assert cmd in result.output

    def test_corrupt_config_falls_back_to_defaults(self, cli_runner, isolated_home):
        """Test a broken config file only warns."""
        isolated_home.mkdir(parents=True)
        (isolated_home / 'config.json').write_text('{broken')

        result = cli_runner.invoke(cli, ['scripts', 'show'])

        assert 'using defaults' in result.output
