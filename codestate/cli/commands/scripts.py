"""Script management commands."""

import click
import questionary

from ...models.script import ExecutionMode, LifecycleEvent
from ..helpers import (
    LIFECYCLE_CHOICES,
    MODE_CHOICES,
    choose,
    console,
    exit_on_failure,
    get_app,
    mode_option,
    print_export,
    print_import,
    print_report,
    print_table,
    resolve_root,
    truncate,
)


def _command_entries(commands):
    """Turn repeated --command values into prioritized entries."""
    return [{'command': c, 'priority': i} for i, c in enumerate(commands, 1)]


def _describe(script) -> str:
    if script.is_legacy:
        return script.script
    return " && ".join(c.command for c in script.ordered_commands())


@click.group()
def scripts():
    """Create, run and manage scripts"""
    pass


@scripts.command()
@click.option('--root-path', '-r', help='Only scripts for this root path')
@click.option('--lifecycle', type=click.Choice(LIFECYCLE_CHOICES), help='Only scripts with this lifecycle')
@click.pass_context
def show(ctx, root_path, lifecycle):
    """Show scripts"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    items = exit_on_failure(
        app.scripts.get_scripts(root, LifecycleEvent(lifecycle) if lifecycle else None),
        "Listing scripts",
    )
    if not items:
        click.echo("No scripts found.")
        return

    rows = [
        [
            s.id[:8],
            s.name,
            truncate(s.root_path, 35),
            s.execution_mode.value,
            1 if s.is_legacy else len(s.commands),
            truncate(_describe(s), 50),
        ]
        for s in items
    ]
    print_table(["ID", "NAME", "ROOT", "MODE", "CMDS", "COMMAND"], rows)


@scripts.command()
@click.argument('name')
@click.option('--root-path', '-r', help='Root path (defaults to current directory)')
@click.option('--script', '-s', 'script_text', help='Single command (legacy form)')
@click.option('--command', '-c', 'commands', multiple=True, help='Command, in execution order (repeatable)')
@click.option('--mode', type=click.Choice(MODE_CHOICES), default=ExecutionMode.NEW_TERMINALS.value,
              show_default=True, help='Execution mode')
@click.option('--close-after', is_flag=True, help='Close the terminal when the commands finish')
@click.option('--description', '-d', help='Description')
@click.option('--tag', '-t', 'tags', multiple=True, help='Tag (repeatable)')
@click.option('--lifecycle', '-l', 'lifecycle', multiple=True, type=click.Choice(LIFECYCLE_CHOICES),
              help='Lifecycle event (repeatable)')
@click.pass_context
def create(ctx, name, root_path, script_text, commands, mode, close_after, description, tags, lifecycle):
    """Create a script"""
    app = get_app(ctx)
    if bool(script_text) == bool(commands):
        click.echo("Error: provide either --script or one or more --command options.", err=True)
        ctx.exit(1)

    fields = {
        'execution_mode': ExecutionMode(mode),
        'close_terminal_after_execution': close_after,
        'description': description,
        'tags': list(tags),
        'lifecycle': [LifecycleEvent(e) for e in lifecycle],
    }
    if script_text:
        fields['script'] = script_text
    else:
        fields['commands'] = _command_entries(commands)

    script = exit_on_failure(app.scripts.create_script(name, resolve_root(root_path), **fields), "Creating script")
    console.print(f"[green]✅ Script '{script.name}' created[/green]")
    click.echo(f"   ID: {script.id}")


@scripts.command()
@click.argument('script')
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.option('--name', help='New name')
@click.option('--script', '-s', 'script_text', help='Replace with a single command')
@click.option('--command', '-c', 'commands', multiple=True, help='Replace commands (repeatable, in order)')
@click.option('--mode', type=click.Choice(MODE_CHOICES), help='Execution mode')
@click.option('--close-after/--keep-open', default=None, help='Terminal behaviour after the commands finish')
@click.option('--description', '-d', help='Description')
@click.pass_context
def update(ctx, script, root_path, name, script_text, commands, mode, close_after, description):
    """Update a script"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    current = exit_on_failure(app.scripts.get_script(script, root), "Finding script")

    changes = {}
    if name is not None:
        changes['name'] = name
    if script_text:
        changes['script'] = script_text
    if commands:
        changes['commands'] = _command_entries(commands)
    if mode:
        changes['execution_mode'] = ExecutionMode(mode)
    if close_after is not None:
        changes['close_terminal_after_execution'] = close_after
    if description is not None:
        changes['description'] = description
    if not changes:
        click.echo("Nothing to update.")
        return

    updated = exit_on_failure(app.scripts.update_script(current.id, changes), "Updating script")
    console.print(f"[green]✅ Script '{updated.name}' updated[/green]")


@scripts.command()
@click.argument('script', required=False)
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.option('--all-in-root', is_flag=True, help='Delete every script under --root-path')
@click.confirmation_option(prompt='Are you sure you want to delete?')
@click.pass_context
def delete(ctx, script, root_path, all_in_root):
    """Delete a script, or every script under a root path"""
    app = get_app(ctx)
    if all_in_root:
        root = resolve_root(root_path)
        outcome = exit_on_failure(app.scripts.delete_scripts_by_root_path(root), "Deleting scripts")
        console.print(f"[green]✅ Deleted {len(outcome.deleted)} scripts under {root}[/green]")
        for failure in outcome.failed:
            console.print(f"[red]   ❌ {failure['name']}: {failure['error']}[/red]")
        if outcome.failed:
            ctx.exit(1)
        return
    if not script:
        click.echo("Error: a script ID or name is required.", err=True)
        ctx.exit(1)

    root = resolve_root(root_path) if root_path else None
    found = app.scripts.get_script(script, root)
    script_id = found.value.id if found.ok else script
    exit_on_failure(app.scripts.delete_script(script_id), "Deleting script")
    console.print(f"[green]✅ Script {script_id[:8]} deleted[/green]")


@scripts.command()
@click.argument('script', required=False)
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.option('--mode', type=click.Choice(MODE_CHOICES), help="Override the script's execution mode")
@click.pass_context
def resume(ctx, script, root_path, mode):
    """Run a script"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    if not script:
        items = exit_on_failure(app.scripts.get_scripts(root or resolve_root(None)), "Listing scripts")
        script = choose("Select a script:", [questionary.Choice(s.name, value=s.id) for s in items])

    report = exit_on_failure(app.engine.resume_script(script, root, mode_option(mode)), "Running script")
    console.print("[green]✅ Script executed[/green]")
    print_report(report)


@scripts.command()
@click.option('--root-path', '-r', help='Only scripts for this root path')
@click.option('--lifecycle', type=click.Choice(LIFECYCLE_CHOICES), help='Only scripts with this lifecycle')
@click.option('--id', 'ids', multiple=True, help='Export only these script IDs')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file')
@click.pass_context
def export(ctx, root_path, lifecycle, ids, output):
    """Export scripts to a JSON file"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    result = exit_on_failure(
        app.transfer.export_scripts(
            root, LifecycleEvent(lifecycle) if lifecycle else None, list(ids) or None, output
        ),
        "Exporting scripts",
    )
    print_export(result)


@scripts.command(name='import')
@click.argument('file', type=click.Path(dir_okay=False))
@click.pass_context
def import_scripts(ctx, file):
    """Import scripts from an export file"""
    app = get_app(ctx)
    bundle = exit_on_failure(app.transfer.load_bundle(file), "Reading import file")
    result = exit_on_failure(app.transfer.import_scripts(bundle), "Importing scripts")
    print_import(result, "Scripts")
