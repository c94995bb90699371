"""Tests for the execution engine."""
import pytest

from codestate.core.constants import CLOSE_TERMINAL_SUFFIX, COMMAND_PAUSE, KEEP_TERMINAL_SUFFIX
from codestate.core.executor import ExecutionEngine, ExecutionState, ResumeOptions
from codestate.core.result import ErrorKind
from codestate.models.script import ExecutionMode, LifecycleEvent
from codestate.models.session import Cursor, FileState, GitState, Session, TerminalCommand, TerminalCommandState


def commands(*pairs):
    return [{"command": c, "priority": p} for c, p in pairs]


@pytest.fixture
def build_script(script_service):
    return script_service.create_script(
        "build",
        "/proj",
        commands=commands(("npm test", 3), ("npm install", 1), ("npm run lint", 2)),
        execution_mode=ExecutionMode.SAME_TERMINAL,
    ).value


class TestSameTerminal:
    """Test cases for same-terminal execution."""

    def test_runs_in_ascending_priority(self, engine, build_script, fake_terminal, sleeps):
        result = engine.resume_script("build", "/proj")

        assert result.ok
        assert fake_terminal.executed == ["npm install", "npm run lint", "npm test"]
        assert sleeps == [COMMAND_PAUSE, COMMAND_PAUSE]
        assert result.value.state == ExecutionState.COMPLETED
        assert result.value.states == [
            ExecutionState.RESOLVING,
            ExecutionState.PREPARING,
            ExecutionState.EXECUTING,
            ExecutionState.COMPLETED,
        ]

    def test_stops_at_first_failure(self, engine, build_script, fake_terminal):
        fake_terminal.exit_codes["npm run lint"] = 1

        result = engine.resume_script(build_script.id)

        assert result.kind == ErrorKind.EXECUTION_FAILED
        assert fake_terminal.executed == ["npm install", "npm run lint"]
        assert "npm test" not in fake_terminal.executed
        report = result.error.meta["report"]
        assert report.state == ExecutionState.FAILED
        assert [c.success for c in report.commands] == [True, False]
        assert report.commands[1].exit_code == 1

    def test_timeout_is_execution_failure(self, engine, build_script, fake_terminal):
        fake_terminal.timeouts.add("npm install")

        result = engine.resume_script("build")

        assert result.kind == ErrorKind.EXECUTION_FAILED
        assert fake_terminal.executed == ["npm install"]

    def test_tied_priorities_keep_stored_order(self, engine, store, fake_terminal):
        store.write_json("scripts/tied.json", {
            "id": "tied",
            "name": "tied",
            "rootPath": "/proj",
            "executionMode": "same-terminal",
            "commands": [
                {"command": "make b", "priority": 1},
                {"command": "make a", "priority": 1},
                {"command": "make first", "priority": 0},
            ],
        })

        result = engine.resume_script("tied")

        assert result.ok
        assert fake_terminal.executed == ["make first", "make b", "make a"]

    def test_legacy_script_runs_single_command(self, engine, script_service, fake_terminal, sleeps):
        script_service.create_script(
            "serve", "/proj", script="python -m http.server", execution_mode=ExecutionMode.SAME_TERMINAL
        )

        assert engine.resume_script("serve").ok
        assert fake_terminal.executed == ["python -m http.server"]
        assert sleeps == []

    def test_unknown_script_fails_resolution(self, engine):
        result = engine.resume_script("nope")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.error.meta["report"].states == [ExecutionState.RESOLVING, ExecutionState.FAILED]


class TestNewTerminals:
    """Test cases for new-terminals execution."""

    def test_joins_commands_with_keep_suffix(self, engine, build_script, fake_terminal):
        result = engine.resume_script("build", mode=ExecutionMode.NEW_TERMINALS)

        assert result.ok
        assert fake_terminal.executed == []
        line, cwd = fake_terminal.spawned[0]
        assert line == f"npm install && npm run lint && npm test && {KEEP_TERMINAL_SUFFIX}"
        assert cwd == "/proj"

    def test_close_after_execution_suffix(self, engine, script_service, fake_terminal):
        script_service.create_script("dev", "/proj", script="npm run dev", close_terminal_after_execution=True)

        engine.resume_script("dev")

        assert fake_terminal.spawned[0][0] == f"npm run dev && {CLOSE_TERMINAL_SUFFIX}"

    def test_spawn_failure_is_execution_failure(self, engine, script_service, fake_terminal):
        script_service.create_script("dev", "/proj", script="npm run dev")
        fake_terminal.spawn_fails = True

        result = engine.resume_script("dev")

        assert result.kind == ErrorKind.EXECUTION_FAILED

    def test_join_commands(self):
        assert ExecutionEngine.join_commands(["a", "b"], False) == f"a && b && {KEEP_TERMINAL_SUFFIX}"


class TestTerminalCollections:
    """Test cases for running terminal collections."""

    def test_scripts_run_in_reference_order(self, engine, script_service, collection_service, fake_terminal):
        api = script_service.create_script("api", "/proj", script="make api").value
        web = script_service.create_script("web", "/proj", script="make web").value
        collection_service.create_collection("stack", "/proj", [web.id, api.id], lifecycle=[LifecycleEvent.OPEN])

        result = engine.resume_terminal_collection("stack", "/proj")

        assert result.ok
        assert [line.split(" && ")[0] for line, _ in fake_terminal.spawned] == ["make web", "make api"]
        assert result.value.steps == ["collection:stack", "script:web", "script:api"]

    def test_collection_mode_overrides_scripts(self, engine, script_service, collection_service, fake_terminal):
        a = script_service.create_script("a", "/proj", script="echo a").value
        b = script_service.create_script("b", "/proj", script="echo b").value
        collection_service.create_collection(
            "seq", "/proj", [a.id, b.id], execution_mode=ExecutionMode.SAME_TERMINAL
        )

        assert engine.resume_terminal_collection("seq").ok
        assert fake_terminal.executed == ["echo a", "echo b"]
        assert fake_terminal.spawned == []

    def test_missing_script_is_skipped_with_warning(
        self, engine, script_service, collection_service, script_repo, fake_terminal
    ):
        a = script_service.create_script("a", "/proj", script="echo a").value
        b = script_service.create_script("b", "/proj", script="echo b").value
        collection_service.create_collection("pair", "/proj", [a.id, b.id])
        script_repo.delete(a.id)

        result = engine.resume_terminal_collection("pair")

        assert result.ok
        assert len(fake_terminal.spawned) == 1
        assert any(a.id in w for w in result.warnings)

    def test_collection_scripts_are_resolved_once(
        self, engine, script_service, collection_service, fake_terminal, monkeypatch
    ):
        a = script_service.create_script("a", "/proj", script="echo a").value
        collection_service.create_collection("solo", "/proj", [a.id])
        resolve = collection_service.resolve_scripts
        resolved = []

        def counting_resolve(collection):
            resolved.append(collection.name)
            return resolve(collection)

        monkeypatch.setattr(collection_service, "resolve_scripts", counting_resolve)

        assert engine.resume_terminal_collection("solo").ok
        assert resolved == ["solo"]

    def test_no_resolvable_scripts(self, engine, script_service, collection_service, script_repo):
        a = script_service.create_script("a", "/proj", script="echo a").value
        collection_service.create_collection("solo", "/proj", [a.id])
        script_repo.delete(a.id)

        assert engine.resume_terminal_collection("solo").kind == ErrorKind.NOT_FOUND


class TestResumeSession:
    """Test cases for session resume."""

    @pytest.fixture
    def session(self, session_service, script_service):
        lint = script_service.create_script("lint", "/proj", script="npm run lint").value
        session = Session(
            id="sess1",
            name="feature",
            project_root="/proj",
            git=GitState(branch="feature/x", commit="abc123", is_dirty=True, stash_id="codestate-stash-1"),
            files=[
                FileState(path="c.py"),
                FileState(path="b.py", position=1, cursor=Cursor(line=5, column=2)),
                FileState(path="a.py", position=0, is_active=True),
            ],
            scripts=[lint.id],
            terminal_commands=[
                TerminalCommandState(
                    terminal_id=1,
                    commands=[TerminalCommand(command="npm run dev", priority=2),
                              TerminalCommand(command="nvm use", priority=1)],
                )
            ],
        )
        return session_service.add_session(session).value

    def test_restores_git_then_files_then_commands(self, engine, session, calls):
        result = engine.resume_session("feature")

        assert result.ok
        kinds = [call[0] for call in calls]
        assert kinds == ["checkout", "apply_stash", "open_files", "spawn", "spawn"]
        assert calls[0] == ("checkout", "feature/x")
        assert calls[1] == ("apply_stash", "codestate-stash-1")
        assert calls[3][1].startswith("npm run lint && ")
        assert calls[4][1].startswith("nvm use && npm run dev && ")
        assert result.value.steps == ["git", "files", "script:lint", "terminal:1"]

    def test_files_reopen_by_position(self, engine, session, fake_ide):
        result = engine.resume_session("sess1")

        assert result.value.opened_files == ["a.py", "b.py", "c.py"]
        assert fake_ide.opened == [("vscode", "/proj", ["a.py", "b.py", "c.py"])]

    def test_git_failure_fails_resume(self, engine, session, fake_git, calls):
        fake_git.fail_checkout = True

        result = engine.resume_session("feature")

        assert result.kind == ErrorKind.EXTERNAL_COLLABORATOR_FAILED
        assert [call[0] for call in calls] == ["checkout"]

    def test_missing_stash_fails_resume(self, engine, session, fake_git, calls):
        fake_git.fail_stash = True

        assert not engine.resume_session("feature").ok
        assert "open_files" not in [call[0] for call in calls]

    def test_ide_failure_is_warning(self, engine, session, fake_ide, fake_terminal):
        fake_ide.fail = True

        result = engine.resume_session("feature")

        assert result.ok
        assert any("Could not reopen files" in w for w in result.value.warnings)
        assert len(fake_terminal.spawned) == 2

    def test_options_skip_parts(self, engine, session, calls):
        options = ResumeOptions(restore_git=False, open_files=False, mode=ExecutionMode.SAME_TERMINAL, ide="cursor")

        assert engine.resume_session("feature", options=options).ok
        assert calls == [
            ("execute", "npm run lint"),
            ("execute", "nvm use"),
            ("execute", "npm run dev"),
        ]

    def test_missing_script_reference_is_warning(self, engine, session_service, calls):
        session_service.add_session(Session(id="s2", name="stale", project_root="/proj", scripts=["gone"]))

        result = engine.resume_session("stale")

        assert result.ok
        assert calls == []
        assert any("gone" in w for w in result.value.warnings)
