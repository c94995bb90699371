"""Main CLI entry point for codestate."""

import click

from ..models.config import AppConfig
from ..utils.config_manager import ConfigError, ConfigManager
from ..utils.logging_config import setup_logging
from .commands.config import config
from .commands.reset import reset
from .commands.scripts import scripts
from .commands.sessions import sessions
from .commands.terminals import terminals


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.version_option(package_name='codestate')
def cli(verbose):
    """codestate - Save and restore your development context"""
    try:
        settings = ConfigManager().load_config()
    except ConfigError as e:
        click.echo(f"Warning: {e}; using defaults", err=True)
        settings = AppConfig()
    setup_logging('DEBUG' if verbose else settings.log_level, settings.log_file)


# Register commands
cli.add_command(sessions)
cli.add_command(scripts)
cli.add_command(terminals)
cli.add_command(config)
cli.add_command(reset)


if __name__ == '__main__':
    cli()
