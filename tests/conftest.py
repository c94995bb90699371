import logging

import pytest
from click.testing import CliRunner

from codestate.core.executor import ExecutionEngine
from codestate.core.file_storage import FileStore
from codestate.core.result import ErrorKind, Result
from codestate.core.script_repository import ScriptRepository
from codestate.core.session_repository import SessionRepository
from codestate.core.terminal_collection_repository import TerminalCollectionRepository
from codestate.core.transfer import TransferService
from codestate.models.git import GitStatus
from codestate.models.terminal import TerminalResult
from codestate.services.script_service import ScriptService
from codestate.services.session_service import SessionService
from codestate.services.terminal_collection_service import TerminalCollectionService


class FakeTerminal:
    """Terminal collaborator that records calls instead of running anything."""

    def __init__(self, calls):
        self.calls = calls
        self.exit_codes = {}
        self.timeouts = set()
        self.spawn_fails = False
        self.executed = []
        self.spawned = []

    def execute(self, command, cwd=None, timeout=30):
        self.calls.append(("execute", command))
        self.executed.append(command)
        if command in self.timeouts:
            return Result.failure(ErrorKind.EXECUTION_FAILED, f"Command timed out after {timeout}s: {command}")
        code = self.exit_codes.get(command, 0)
        return Result.success(TerminalResult(
            success=code == 0, exit_code=code, stdout="", stderr="boom" if code else "", duration=0.0
        ))

    def spawn_terminal(self, command, cwd=None, timeout=5, hold=False):
        self.calls.append(("spawn", command))
        if self.spawn_fails:
            return Result.failure(ErrorKind.EXECUTION_FAILED, "No supported terminal emulator found")
        self.spawned.append((command, cwd))
        return Result.success(True)

    def is_command_available(self, command):
        return Result.success(True)

    def launch(self, argv, cwd=None, timeout=10):
        self.calls.append(("launch", argv[0]))
        return Result.success(True)


class FakeGit:
    """Git collaborator with canned state."""

    def __init__(self, calls, is_repo=True, branch="main", commit="abc123def456", dirty=False):
        self.calls = calls
        self.is_repo = is_repo
        self.branch = branch
        self.commit = commit
        self.dirty = dirty
        self.fail_checkout = False
        self.fail_stash = False
        self.stashes = []

    def is_git_repository(self):
        return Result.success(self.is_repo)

    def get_current_branch(self):
        return Result.success(self.branch)

    def get_commit_hash(self, ref="HEAD"):
        return Result.success(self.commit)

    def get_is_dirty(self):
        return Result.success(self.dirty)

    def get_status(self):
        return Result.success(GitStatus(branch=self.branch, is_dirty=self.dirty))

    def create_stash(self, message=None):
        name = message or f"codestate-stash-{len(self.stashes) + 1}"
        self.stashes.append(name)
        self.calls.append(("stash", name))
        return Result.success(name)

    def apply_stash(self, stash_name):
        self.calls.append(("apply_stash", stash_name))
        if self.fail_stash:
            return Result.failure(ErrorKind.EXTERNAL_COLLABORATOR_FAILED, f"Stash '{stash_name}' not found")
        return Result.success(True)

    def checkout_branch(self, branch_name):
        self.calls.append(("checkout", branch_name))
        if self.fail_checkout:
            return Result.failure(ErrorKind.EXTERNAL_COLLABORATOR_FAILED, f"Branch '{branch_name}' not found locally")
        return Result.success(None)


class FakeIDE:
    """IDE collaborator recording the files it was asked to open."""

    def __init__(self, calls):
        self.calls = calls
        self.fail = False
        self.opened = []

    def open_files(self, ide, project_root, files):
        self.calls.append(("open_files", [f.path for f in files]))
        if self.fail:
            return Result.failure(ErrorKind.EXTERNAL_COLLABORATOR_FAILED, f"IDE '{ide}' is not installed")
        self.opened.append((ide, project_root, [f.path for f in files]))
        return Result.success(True)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the codestate home at a temporary directory for every test."""
    home = tmp_path / "home"
    monkeypatch.setenv("CODESTATE_HOME", str(home))
    monkeypatch.delenv("CODESTATE_ENCRYPTION_KEY", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI installs on the root logger."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def cli_runner():
    """Provides a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def store(tmp_path):
    return FileStore(tmp_path / "data")


@pytest.fixture
def calls():
    """Shared, ordered log of collaborator calls."""
    return []


@pytest.fixture
def fake_terminal(calls):
    return FakeTerminal(calls)


@pytest.fixture
def fake_git(calls):
    return FakeGit(calls)


@pytest.fixture
def fake_ide(calls):
    return FakeIDE(calls)


@pytest.fixture
def script_repo(store):
    return ScriptRepository(store)


@pytest.fixture
def collection_repo(store):
    return TerminalCollectionRepository(store)


@pytest.fixture
def session_repo(store):
    return SessionRepository(store)


@pytest.fixture
def script_service(script_repo, collection_repo):
    return ScriptService(script_repo, collection_repo)


@pytest.fixture
def collection_service(collection_repo, script_repo):
    return TerminalCollectionService(collection_repo, script_repo)


@pytest.fixture
def session_service(session_repo, fake_git):
    return SessionService(session_repo, git_factory=lambda root: fake_git)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def engine(script_service, collection_service, session_service, fake_terminal, fake_ide, fake_git, sleeps):
    return ExecutionEngine(
        script_service,
        collection_service,
        session_service,
        terminal=fake_terminal,
        ide=fake_ide,
        git_factory=lambda root: fake_git,
        sleep=sleeps.append,
    )


@pytest.fixture
def transfer(script_service, collection_service, session_service):
    return TransferService(script_service, collection_service, session_service)
