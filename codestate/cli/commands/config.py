"""Configuration management commands for codestate."""

from pathlib import Path

import click

from ...core.file_storage import atomic_write
from ...models.config import LOG_LEVELS
from ...utils.config_manager import ConfigError, ConfigManager
from ..helpers import print_table

# CLI key -> (config field, parser)
SETTABLE_KEYS = {
    'ide': ('ide', str),
    'storagePath': ('storage_path', lambda v: v or None),
    'logLevel': ('log_level', str),
    'logFile': ('log_file', lambda v: v or None),
    'encryption.enabled': ('enabled', click.BOOL),
    'encryption.encryptionKey': ('encryption_key', lambda v: v or None),
}


@click.group()
def config():
    """Manage codestate configuration"""
    pass


@config.command()
def show():
    """Display current configuration"""
    config_manager = ConfigManager()
    try:
        current = config_manager.load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Configuration ({config_manager.config_file}):")
    print_table(["KEY", "VALUE"], list(config_manager.describe(current).items()))


@config.command(name='set')
@click.argument('key', type=click.Choice(sorted(SETTABLE_KEYS)))
@click.argument('value')
def set_value(key, value):
    """Set a configuration value"""
    field, parse = SETTABLE_KEYS[key]
    try:
        parsed = parse(value)
    except click.BadParameter as e:
        click.echo(f"Error: invalid value for {key}: {e}", err=True)
        raise SystemExit(1)

    config_manager = ConfigManager()
    try:
        if key.startswith('encryption.'):
            config_manager.update_config(encryption={field: parsed})
        else:
            config_manager.update_config(**{field: parsed})
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        if key == 'logLevel':
            click.echo(f"Valid levels: {', '.join(LOG_LEVELS)}", err=True)
        raise SystemExit(1)

    shown = "********" if key == 'encryption.encryptionKey' and parsed else parsed
    click.echo(f"Set {key} = {shown}")


@config.command()
@click.confirmation_option(prompt='Reset configuration to defaults?')
def reset():
    """Reset configuration to defaults"""
    ConfigManager().reset_config()
    click.echo("Configuration reset to defaults")


@config.command(name='export')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write to a file instead of stdout')
@click.option('--include-key', is_flag=True, help='Include the encryption key in the export')
def export_config(output, include_key):
    """Export configuration as JSON"""
    try:
        text = ConfigManager().export_config(include_key=include_key)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not output:
        click.echo(text)
        return
    path = Path(output).expanduser()
    try:
        atomic_write(path, text.encode('utf-8'))
    except OSError as e:
        click.echo(f"Error: could not write {path}: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Exported config to {path}")


@config.command(name='import')
@click.argument('source', type=click.File('r'))
def import_config(source):
    """Import configuration from a JSON file ('-' reads stdin)"""
    try:
        imported = ConfigManager().import_config(source.read())
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"Configuration imported (ide={imported.ide}, logLevel={imported.log_level})")
