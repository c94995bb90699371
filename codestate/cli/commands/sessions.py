"""Session management commands."""

import click
import questionary

from ...core.executor import ResumeOptions
from ...models.session import TerminalCommand, TerminalCommandState
from ..helpers import (
    MODE_CHOICES,
    choose,
    console,
    exit_on_failure,
    get_app,
    mode_option,
    parse_file_spec,
    print_export,
    print_import,
    print_report,
    print_table,
    resolve_root,
    truncate,
)


def _pick_session(app, project_root):
    sessions = exit_on_failure(app.sessions.list_sessions(project_root), "Listing sessions")
    return choose(
        "Select a session:",
        [questionary.Choice(f"{s.name} ({s.project_root})", value=s.id) for s in sessions],
    )


@click.group()
def sessions():
    """Save, resume and manage sessions"""
    pass


@sessions.command()
@click.argument('name')
@click.option('--project-root', '-p', help='Project root (defaults to current directory)')
@click.option('--notes', '-n', help='Notes stored with the session')
@click.option('--tag', '-t', 'tags', multiple=True, help='Tag (repeatable)')
@click.option('--file', '-f', 'files', multiple=True, help='Open file as path[:line[:column]], in reopen order')
@click.option('--terminal-command', '-c', 'terminal_commands', multiple=True,
              help='Command to replay in a terminal (repeatable, in order)')
@click.option('--script', 'scripts', multiple=True, help='Script ID replayed on resume (repeatable)')
@click.option('--collection', 'collections', multiple=True,
              help='Terminal collection ID replayed on resume (repeatable)')
@click.option('--stash', is_flag=True, help='Stash uncommitted changes and reference the stash')
@click.option('--no-git', is_flag=True, help='Do not capture git state')
@click.pass_context
def save(ctx, name, project_root, notes, tags, files, terminal_commands, scripts, collections, stash, no_git):
    """Save the current working context as a session"""
    app = get_app(ctx)
    file_states = [parse_file_spec(spec, position) for position, spec in enumerate(files, 1)]
    if file_states:
        file_states[0].is_active = True
    terminals = []
    if terminal_commands:
        terminals.append(TerminalCommandState(
            terminal_id=1,
            commands=[TerminalCommand(command=c, priority=i) for i, c in enumerate(terminal_commands, 1)],
        ))

    session = exit_on_failure(app.sessions.save_session(
        name,
        resolve_root(project_root),
        notes=notes,
        tags=list(tags),
        files=file_states,
        terminal_commands=terminals,
        scripts=list(scripts),
        terminal_collections=list(collections),
        stash=stash,
        capture_git=not no_git,
    ), "Saving session")

    console.print(f"[green]✅ Session '{session.name}' saved[/green]")
    click.echo(f"   ID: {session.id}")
    if session.git:
        dirty = " (dirty)" if session.git.is_dirty else ""
        click.echo(f"   Git: {session.git.branch} @ {session.git.commit[:8]}{dirty}")
        if session.git.stash_id:
            click.echo(f"   Stash: {session.git.stash_id}")
    click.echo(f"   Files: {len(session.files)}")


@sessions.command()
@click.argument('session', required=False)
@click.option('--project-root', '-p', help='Project root used to disambiguate names')
@click.option('--mode', type=click.Choice(MODE_CHOICES), help='Override execution mode for replayed commands')
@click.option('--ide', help='IDE used to reopen files (defaults to configured IDE)')
@click.option('--no-git', is_flag=True, help='Skip git branch/stash restore')
@click.option('--no-files', is_flag=True, help='Skip reopening files')
@click.option('--no-commands', is_flag=True, help='Skip scripts, collections and terminal commands')
@click.pass_context
def resume(ctx, session, project_root, mode, ide, no_git, no_files, no_commands):
    """Resume a saved session"""
    app = get_app(ctx)
    root = resolve_root(project_root) if project_root else None
    session = session or _pick_session(app, root)
    options = ResumeOptions(
        restore_git=not no_git,
        open_files=not no_files,
        run_commands=not no_commands,
        mode=mode_option(mode),
        ide=ide,
    )
    report = exit_on_failure(app.engine.resume_session(session, root, options), "Resuming session")
    console.print("[green]✅ Session resumed[/green]")
    print_report(report)


@sessions.command()
@click.argument('session')
@click.option('--project-root', '-p', help='Project root used to disambiguate names')
@click.option('--name', help='New name')
@click.option('--notes', help='Replace notes')
@click.option('--tag', '-t', 'tags', multiple=True, help='Replace tags (repeatable)')
@click.option('--file', '-f', 'files', multiple=True, help='Replace files, as path[:line[:column]]')
@click.option('--refresh-git', is_flag=True, help='Re-capture git state')
@click.option('--stash', is_flag=True, help='With --refresh-git, stash uncommitted changes')
@click.pass_context
def update(ctx, session, project_root, name, notes, tags, files, refresh_git, stash):
    """Update a saved session"""
    app = get_app(ctx)
    root = resolve_root(project_root) if project_root else None
    current = exit_on_failure(app.sessions.get_session(session, root), "Finding session")

    changes = {}
    if name is not None:
        changes['name'] = name
    if notes is not None:
        changes['notes'] = notes
    if tags:
        changes['tags'] = list(tags)
    if files:
        states = [parse_file_spec(spec, position) for position, spec in enumerate(files, 1)]
        states[0].is_active = True
        changes['files'] = [s.model_dump() for s in states]
    if not changes and not refresh_git:
        click.echo("Nothing to update.")
        return

    updated = exit_on_failure(
        app.sessions.update_session(current.id, changes, capture_git=refresh_git, stash=stash),
        "Updating session",
    )
    console.print(f"[green]✅ Session '{updated.name}' updated[/green]")


@sessions.command(name='list')
@click.option('--project-root', '-p', help='Only sessions for this project root')
@click.option('--tag', '-t', 'tags', multiple=True, help='Only sessions carrying every given tag')
@click.option('--search', '-s', help='Text to match in name or notes')
@click.pass_context
def list_sessions(ctx, project_root, tags, search):
    """List saved sessions"""
    app = get_app(ctx)
    root = resolve_root(project_root) if project_root else None
    items = exit_on_failure(app.sessions.list_sessions(root, list(tags), search), "Listing sessions")
    if not items:
        click.echo("No sessions found.")
        return

    rows = []
    for s in items:
        branch = s.git.branch if s.git else ""
        rows.append([
            s.id[:8],
            s.name,
            truncate(s.project_root, 40),
            branch,
            ", ".join(s.tags),
            len(s.files),
            s.updated_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        ])
    print_table(["ID", "NAME", "PROJECT", "BRANCH", "TAGS", "FILES", "UPDATED"], rows)


@sessions.command()
@click.argument('session')
@click.option('--project-root', '-p', help='Project root used to disambiguate names')
@click.confirmation_option(prompt='Are you sure you want to delete this session?')
@click.pass_context
def delete(ctx, session, project_root):
    """Delete a saved session"""
    app = get_app(ctx)
    root = resolve_root(project_root) if project_root else None
    found = app.sessions.get_session(session, root)
    session_id = found.value.id if found.ok else session
    exit_on_failure(app.sessions.delete_session(session_id), "Deleting session")
    console.print(f"[green]✅ Session {session_id[:8]} deleted[/green]")


@sessions.command()
@click.option('--project-root', '-p', help='Only sessions for this project root')
@click.option('--tag', '-t', 'tags', multiple=True, help='Only sessions carrying every given tag')
@click.option('--id', 'ids', multiple=True, help='Export only these session IDs')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file')
@click.pass_context
def export(ctx, project_root, tags, ids, output):
    """Export sessions with their scripts and terminal collections"""
    app = get_app(ctx)
    root = resolve_root(project_root) if project_root else None
    result = exit_on_failure(
        app.transfer.export_sessions(root, list(tags) or None, list(ids) or None, output),
        "Exporting sessions",
    )
    print_export(result)


@sessions.command(name='import')
@click.argument('file', type=click.Path(dir_okay=False))
@click.pass_context
def import_sessions(ctx, file):
    """Import sessions from an export file"""
    app = get_app(ctx)
    bundle = exit_on_failure(app.transfer.load_bundle(file), "Reading import file")
    result = exit_on_failure(app.transfer.import_sessions(bundle), "Importing sessions")
    print_import(result, "Sessions")
