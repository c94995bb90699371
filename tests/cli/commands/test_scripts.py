"""Tests for the scripts command group."""

import json

import pytest

from codestate.cli.main import cli


@pytest.fixture
def root(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    return str(project.resolve())


def invoke(cli_runner, app, *args):
    return cli_runner.invoke(cli, list(args), obj=app)


class TestScriptsCommand:
    """Test the scripts commands."""

    def test_create_and_show(self, cli_runner, app, root):
        result = invoke(cli_runner, app, 'scripts', 'create', 'build', '--root-path', root,
                        '-c', 'npm install', '-c', 'npm run build', '--mode', 'same-terminal')

        assert result.exit_code == 0
        assert "Script 'build' created" in result.output
        script = app.scripts.get_script('build', root).value
        assert [(c.command, c.priority) for c in script.ordered_commands()] == [
            ('npm install', 1), ('npm run build', 2),
        ]

        result = invoke(cli_runner, app, 'scripts', 'show', '--root-path', root)
        assert result.exit_code == 0
        assert 'build' in result.output
        assert 'same-terminal' in result.output

    def test_create_requires_one_form(self, cli_runner, app, root):
        result = invoke(cli_runner, app, 'scripts', 'create', 'bad', '--root-path', root)

        assert result.exit_code == 1
        assert "provide either --script or one or more --command" in result.output

    def test_create_duplicate_name(self, cli_runner, app, root):
        invoke(cli_runner, app, 'scripts', 'create', 'dev', '-r', root, '-s', 'npm run dev')

        result = invoke(cli_runner, app, 'scripts', 'create', 'dev', '-r', root, '-s', 'npm start')

        assert result.exit_code == 1
        assert 'ALREADY_EXISTS' in result.output

    def test_show_empty(self, cli_runner, app):
        result = invoke(cli_runner, app, 'scripts', 'show')

        assert result.exit_code == 0
        assert 'No scripts found.' in result.output

    def test_resume_same_terminal(self, cli_runner, app, root, fake_terminal):
        app.engine.sleep = lambda seconds: None
        app.scripts.create_script('ci', root, commands=[
            {'command': 'make lint', 'priority': 1},
            {'command': 'make test', 'priority': 2},
        ], execution_mode='same-terminal')

        result = invoke(cli_runner, app, 'scripts', 'resume', 'ci', '-r', root)

        assert result.exit_code == 0
        assert 'Script executed' in result.output
        assert fake_terminal.executed == ['make lint', 'make test']

    def test_resume_failure_exits_non_zero(self, cli_runner, app, root, fake_terminal):
        app.engine.sleep = lambda seconds: None
        fake_terminal.exit_codes['make lint'] = 2
        app.scripts.create_script('ci', root, commands=[
            {'command': 'make lint', 'priority': 1},
            {'command': 'make test', 'priority': 2},
        ], execution_mode='same-terminal')

        result = invoke(cli_runner, app, 'scripts', 'resume', 'ci')

        assert result.exit_code == 1
        assert 'EXECUTION_FAILED' in result.output
        assert fake_terminal.executed == ['make lint']

    def test_resume_mode_override(self, cli_runner, app, root, fake_terminal):
        app.scripts.create_script('dev', root, script='npm run dev', execution_mode='same-terminal')

        result = invoke(cli_runner, app, 'scripts', 'resume', 'dev', '--mode', 'new-terminals')

        assert result.exit_code == 0
        assert fake_terminal.executed == []
        assert fake_terminal.spawned[0][0].startswith('npm run dev && ')

    def test_update(self, cli_runner, app, root):
        app.scripts.create_script('dev', root, script='npm run dev')

        result = invoke(cli_runner, app, 'scripts', 'update', 'dev', '-r', root, '--name', 'serve', '--close-after')

        assert result.exit_code == 0
        script = app.scripts.get_script('serve', root).value
        assert script.close_terminal_after_execution is True

    def test_delete(self, cli_runner, app, root):
        app.scripts.create_script('dev', root, script='npm run dev')

        result = invoke(cli_runner, app, 'scripts', 'delete', 'dev', '-r', root, '--yes')

        assert result.exit_code == 0
        assert app.scripts.get_scripts().value == []

    def test_delete_all_in_root(self, cli_runner, app, root):
        app.scripts.create_script('a', root, script='a')
        app.scripts.create_script('b', root, script='b')

        result = invoke(cli_runner, app, 'scripts', 'delete', '--all-in-root', '-r', root, '--yes')

        assert result.exit_code == 0
        assert 'Deleted 2 scripts' in result.output

    def test_delete_unknown(self, cli_runner, app):
        result = invoke(cli_runner, app, 'scripts', 'delete', 'ghost', '--yes')

        assert result.exit_code == 1
        assert 'NOT_FOUND' in result.output

    def test_export_then_import(self, cli_runner, app, root, tmp_path):
        app.scripts.create_script('dev', root, script='npm run dev')
        output = tmp_path / 'scripts.json'

        result = invoke(cli_runner, app, 'scripts', 'export', '-o', str(output))
        assert result.exit_code == 0
        assert json.loads(output.read_text())['metadata']['totalScripts'] == 1

        result = invoke(cli_runner, app, 'scripts', 'import', str(output))
        assert result.exit_code == 0
        assert 'Scripts created: 0' in result.output
        assert 'Scripts skipped: 1' in result.output
