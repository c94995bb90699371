"""Reset command for codestate."""

import click

from ..helpers import console, exit_on_failure, get_app


@click.command()
@click.option('--sessions', is_flag=True, help='Delete every saved session')
@click.option('--scripts', is_flag=True, help='Delete every script')
@click.option('--terminals', is_flag=True, help='Delete every terminal collection')
@click.option('--config', 'reset_config', is_flag=True, help='Restore the default configuration')
@click.option('--all', 'reset_all', is_flag=True, help='All of the above')
@click.option('--yes', '-y', is_flag=True, help='Skip the confirmation prompt')
@click.pass_context
def reset(ctx, sessions, scripts, terminals, reset_config, reset_all, yes):
    """Permanently delete stored data and/or configuration"""
    selected = {
        'sessions': reset_all or sessions,
        'scripts': reset_all or scripts,
        'terminals': reset_all or terminals,
        'config': reset_all or reset_config,
    }
    items = [name for name, chosen in selected.items() if chosen]
    if not items:
        click.echo("Error: no reset options specified. Use --help to see available options.", err=True)
        ctx.exit(1)

    console.print(f"[yellow]⚠️  This will permanently delete: {', '.join(items)}[/yellow]")
    if not yes:
        click.confirm("This action cannot be undone. Continue?", abort=True)

    app = get_app(ctx)
    outcome = exit_on_failure(app.resets.reset(**selected), "Reset")
    console.print(f"[green]✅ Reset: {', '.join(outcome.reset_items)}[/green]")
    for item, count in outcome.removed.items():
        click.echo(f"   {item} removed: {count}")
    if reset_all:
        console.print("[green]codestate is back to a fresh state.[/green]")
