"""Terminal collection commands."""

import click
import questionary
from rich.table import Table

from ...models.script import ExecutionMode, LifecycleEvent
from ..helpers import (
    LIFECYCLE_CHOICES,
    MODE_CHOICES,
    choose,
    choose_many,
    console,
    exit_on_failure,
    get_app,
    mode_option,
    print_export,
    print_import,
    print_report,
    print_table,
    resolve_root,
)


def _pick_collection(app, root):
    items = exit_on_failure(app.collections.list_collections(root), "Listing terminal collections")
    return choose("Select a terminal collection:", [questionary.Choice(c.name, value=c.id) for c in items])


@click.group()
def terminals():
    """Manage terminal collections"""
    pass


@terminals.command(name='list')
@click.option('--root-path', '-r', help='Only collections for this root path')
@click.option('--lifecycle', type=click.Choice(LIFECYCLE_CHOICES), help='Only collections with this lifecycle')
@click.pass_context
def list_collections(ctx, root_path, lifecycle):
    """List terminal collections"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    items = exit_on_failure(
        app.collections.list_collections(root, LifecycleEvent(lifecycle) if lifecycle else None),
        "Listing terminal collections",
    )
    if not items:
        click.echo("No terminal collections found.")
        return
    rows = [
        [
            c.id[:8],
            c.name,
            c.root_path,
            ", ".join(e.value for e in c.lifecycle),
            len(c.script_references),
            c.execution_mode.value if c.execution_mode else "",
        ]
        for c in items
    ]
    print_table(["ID", "NAME", "ROOT", "LIFECYCLE", "SCRIPTS", "MODE"], rows)


@terminals.command()
@click.argument('name')
@click.option('--root-path', '-r', help='Root path (defaults to current directory)')
@click.option('--script', '-s', 'script_ids', multiple=True, help='Script ID, in launch order (repeatable)')
@click.option('--lifecycle', '-l', 'lifecycle', multiple=True, type=click.Choice(LIFECYCLE_CHOICES),
              help='Lifecycle event (repeatable)')
@click.option('--mode', type=click.Choice(MODE_CHOICES), help="Override every script's execution mode")
@click.pass_context
def create(ctx, name, root_path, script_ids, lifecycle, mode):
    """Create a terminal collection from existing scripts"""
    app = get_app(ctx)
    root = resolve_root(root_path)
    script_ids = list(script_ids)
    if not script_ids:
        available = exit_on_failure(app.scripts.get_scripts(root), "Listing scripts")
        script_ids = choose_many(
            "Scripts to include:",
            [questionary.Choice(s.name, value=s.id) for s in available],
        )
    collection = exit_on_failure(app.collections.create_collection(
        name,
        root,
        script_ids,
        lifecycle=[LifecycleEvent(e) for e in lifecycle],
        execution_mode=ExecutionMode(mode) if mode else None,
    ), "Creating terminal collection")
    console.print(f"[green]✅ Terminal collection '{collection.name}' created[/green]")
    click.echo(f"   ID: {collection.id}")


@terminals.command()
@click.argument('collection', required=False)
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.pass_context
def show(ctx, collection, root_path):
    """Show a terminal collection and its scripts"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    collection = collection or _pick_collection(app, root)
    resolved = exit_on_failure(
        app.collections.get_collection_with_scripts(collection, root), "Loading terminal collection"
    )

    table = Table(title=f"Terminal collection: {resolved.collection.name}")
    table.add_column("#", style="dim")
    table.add_column("Script", style="cyan", no_wrap=True)
    table.add_column("Mode", style="green")
    table.add_column("Commands", style="white")
    for index, script in enumerate(resolved.scripts, 1):
        commands = " && ".join(c.command for c in script.ordered_commands())
        table.add_row(str(index), script.name, script.execution_mode.value, commands)
    console.print(table)
    for reference in resolved.missing_references:
        console.print(f"[yellow]Missing script: {reference.id}[/yellow]")


@terminals.command()
@click.argument('collection', required=False)
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.option('--mode', type=click.Choice(MODE_CHOICES), help='Override execution mode')
@click.pass_context
def resume(ctx, collection, root_path, mode):
    """Launch every script of a terminal collection"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    collection = collection or _pick_collection(app, root)
    report = exit_on_failure(
        app.engine.resume_terminal_collection(collection, root, mode_option(mode)),
        "Running terminal collection",
    )
    console.print("[green]✅ Terminal collection executed[/green]")
    print_report(report)


@terminals.command()
@click.argument('collection')
@click.option('--root-path', '-r', help='Root path used to disambiguate names')
@click.confirmation_option(prompt='Are you sure you want to delete this terminal collection?')
@click.pass_context
def delete(ctx, collection, root_path):
    """Delete a terminal collection (its scripts are kept)"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    found = app.collections.get_collection(collection, root)
    collection_id = found.value.id if found.ok else collection
    exit_on_failure(app.collections.delete_collection(collection_id), "Deleting terminal collection")
    console.print(f"[green]✅ Terminal collection {collection_id[:8]} deleted[/green]")


@terminals.command()
@click.option('--root-path', '-r', help='Only collections for this root path')
@click.option('--lifecycle', type=click.Choice(LIFECYCLE_CHOICES), help='Only collections with this lifecycle')
@click.option('--id', 'ids', multiple=True, help='Export only these collection IDs')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file')
@click.pass_context
def export(ctx, root_path, lifecycle, ids, output):
    """Export terminal collections with their scripts"""
    app = get_app(ctx)
    root = resolve_root(root_path) if root_path else None
    result = exit_on_failure(
        app.transfer.export_collections(
            root, LifecycleEvent(lifecycle) if lifecycle else None, list(ids) or None, output
        ),
        "Exporting terminal collections",
    )
    print_export(result)


@terminals.command(name='import')
@click.argument('file', type=click.Path(dir_okay=False))
@click.pass_context
def import_collections(ctx, file):
    """Import terminal collections from an export file"""
    app = get_app(ctx)
    bundle = exit_on_failure(app.transfer.load_bundle(file), "Reading import file")
    result = exit_on_failure(app.transfer.import_collections(bundle), "Importing terminal collections")
    print_import(result, "Terminal collections")
