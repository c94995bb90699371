"""Execution engine replaying scripts, terminal collections and sessions."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..models.script import ExecutionMode, NewTerminals, Script, plan_for
from ..models.session import Session
from ..models.terminal_collection import TerminalCollection, TerminalCollectionWithScripts
from ..services.git_service import GitService
from ..services.ide_service import FileToOpen, IDEService
from ..services.script_service import ScriptService
from ..services.session_service import SessionService
from ..services.terminal_collection_service import TerminalCollectionService
from ..services.terminal_service import TerminalService
from .constants import (
    CLOSE_TERMINAL_SUFFIX,
    COMMAND_PAUSE,
    COMMAND_TIMEOUT,
    KEEP_TERMINAL_SUFFIX,
    SPAWN_TIMEOUT,
)
from .result import AppError, ErrorKind, Result

logger = logging.getLogger(__name__)


class ExecutionState(str, Enum):
    RESOLVING = "RESOLVING"
    PREPARING = "PREPARING"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class CommandOutcome:
    """What happened to one command (or one joined terminal line)."""
    command: str
    mode: ExecutionMode
    success: bool
    name: Optional[str] = None
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None


@dataclass
class ExecutionReport:
    """Observable trace of one execution request."""
    target: str
    states: List[ExecutionState] = field(default_factory=list)
    steps: List[str] = field(default_factory=list)
    commands: List[CommandOutcome] = field(default_factory=list)
    opened_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def state(self) -> Optional[ExecutionState]:
        return self.states[-1] if self.states else None

    def enter(self, state: ExecutionState) -> None:
        logger.debug(f"{self.target}: {state.value}")
        self.states.append(state)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


@dataclass
class ResumeOptions:
    """Which parts of a session resume run, and how."""
    restore_git: bool = True
    open_files: bool = True
    run_commands: bool = True
    mode: Optional[ExecutionMode] = None
    ide: Optional[str] = None


class ExecutionEngine:
    """Replays commands against the terminal collaborator.

    same-terminal runs commands one by one, pausing between them, and stops at
    the first failure. new-terminals joins each command set with && and
    spawns it in a detached window; success means the window was spawned,
    not that its commands succeeded.
    """

    def __init__(
        self,
        scripts: ScriptService,
        collections: TerminalCollectionService,
        sessions: SessionService,
        terminal: Optional[TerminalService] = None,
        ide: Optional[IDEService] = None,
        git_factory: Callable[[str], GitService] = GitService,
        default_ide: str = "vscode",
        sleep: Callable[[float], None] = time.sleep,
        command_timeout: float = COMMAND_TIMEOUT,
        spawn_timeout: float = SPAWN_TIMEOUT,
        pause: float = COMMAND_PAUSE,
    ):
        self.scripts = scripts
        self.collections = collections
        self.sessions = sessions
        self.terminal = terminal or TerminalService()
        self.ide = ide or IDEService(self.terminal)
        self.git_factory = git_factory
        self.default_ide = default_ide
        self.sleep = sleep
        self.command_timeout = command_timeout
        self.spawn_timeout = spawn_timeout
        self.pause = pause

    # -- helpers -----------------------------------------------------------

    def _finish(self, report: ExecutionReport, error: Optional[AppError] = None) -> Result[ExecutionReport]:
        if error is not None:
            report.enter(ExecutionState.FAILED)
            logger.error(f"{report.target} failed: {error.message}")
            error.meta["report"] = report
            return Result.from_error(error)
        report.enter(ExecutionState.COMPLETED)
        logger.info(f"{report.target} completed")
        return Result.success(report, warnings=report.warnings)

    def _fail_resolution(self, report: ExecutionReport, result: Result) -> Result[ExecutionReport]:
        return self._finish(report, result.error)

    @staticmethod
    def join_commands(commands: List[str], close_after_execution: bool) -> str:
        """Join commands into one shell line for a new terminal window."""
        suffix = CLOSE_TERMINAL_SUFFIX if close_after_execution else KEEP_TERMINAL_SUFFIX
        return " && ".join(commands + [suffix])

    def _run_commands(
        self,
        commands: List[Tuple[str, Optional[str]]],
        cwd: str,
        mode: ExecutionMode,
        close_after_execution: bool,
        report: ExecutionReport,
    ) -> Optional[AppError]:
        """Run (command, name) pairs already in execution order."""
        plan = plan_for(mode, close_after_execution)
        if isinstance(plan, NewTerminals):
            line = self.join_commands([c for c, _ in commands], plan.close_after_execution)
            spawned = self.terminal.spawn_terminal(
                line, cwd=cwd, timeout=self.spawn_timeout, hold=not plan.close_after_execution
            )
            outcome = CommandOutcome(command=line, mode=mode, success=spawned.ok)
            if not spawned.ok:
                outcome.error = spawned.error.message
                report.commands.append(outcome)
                return AppError(ErrorKind.EXECUTION_FAILED, f"Failed to spawn terminal: {spawned.error.message}")
            report.commands.append(outcome)
            return None

        for command, name in commands:
            if any(c.mode == ExecutionMode.SAME_TERMINAL for c in report.commands):
                self.sleep(self.pause)
            logger.info(f"Running: {command}")
            result = self.terminal.execute(command, cwd=cwd, timeout=self.command_timeout)
            outcome = CommandOutcome(command=command, name=name, mode=mode, success=False)
            report.commands.append(outcome)
            if not result.ok:
                outcome.error = result.error.message
                kind = result.kind if result.kind == ErrorKind.EXTERNAL_COLLABORATOR_FAILED else ErrorKind.EXECUTION_FAILED
                return AppError(kind, result.error.message, {"command": command})
            outcome.exit_code = result.value.exit_code
            outcome.stdout = result.value.stdout
            outcome.stderr = result.value.stderr
            if not result.value.success:
                outcome.error = f"exit code {result.value.exit_code}"
                return AppError(
                    ErrorKind.EXECUTION_FAILED,
                    f"Command '{command}' failed with exit code {result.value.exit_code}",
                    {"command": command, "exit_code": result.value.exit_code},
                )
            outcome.success = True
        return None

    def _run_script(
        self, script: Script, report: ExecutionReport, mode: Optional[ExecutionMode] = None
    ) -> Optional[AppError]:
        effective = mode or script.execution_mode or ExecutionMode.NEW_TERMINALS
        commands = [(c.command, c.name) for c in script.ordered_commands()]
        logger.debug(f"Script '{script.name}': {len(commands)} commands, mode {effective.value}")
        report.steps.append(f"script:{script.name}")
        return self._run_commands(
            commands, script.root_path, effective, script.close_terminal_after_execution, report
        )

    def _run_collection(
        self, collection: TerminalCollection, report: ExecutionReport, mode: Optional[ExecutionMode] = None
    ) -> Optional[AppError]:
        resolved = self.collections.resolve_scripts(collection)
        if not resolved.ok:
            return resolved.error
        return self._run_resolved(resolved, report, mode)

    def _run_resolved(
        self,
        resolved: Result[TerminalCollectionWithScripts],
        report: ExecutionReport,
        mode: Optional[ExecutionMode] = None,
    ) -> Optional[AppError]:
        for message in resolved.warnings:
            report.warn(message)
        collection = resolved.value.collection
        report.steps.append(f"collection:{collection.name}")
        for script in resolved.value.scripts:
            error = self._run_script(script, report, mode or collection.execution_mode)
            if error is not None:
                return error
        return None

    # -- public operations -------------------------------------------------

    def resume_script(
        self, id_or_name: str, root_path: Optional[str] = None, mode: Optional[ExecutionMode] = None
    ) -> Result[ExecutionReport]:
        """Resolve a script by id (or name within root_path) and run it."""
        report = ExecutionReport(target=f"script {id_or_name}")
        report.enter(ExecutionState.RESOLVING)
        found = self.scripts.get_script(id_or_name, root_path)
        if not found.ok:
            return self._fail_resolution(report, found)
        report.enter(ExecutionState.PREPARING)
        report.enter(ExecutionState.EXECUTING)
        return self._finish(report, self._run_script(found.value, report, mode))

    def resume_terminal_collection(
        self, id_or_name: str, root_path: Optional[str] = None, mode: Optional[ExecutionMode] = None
    ) -> Result[ExecutionReport]:
        """Run every resolvable script of a collection in order, stopping at the first failure."""
        report = ExecutionReport(target=f"terminal collection {id_or_name}")
        report.enter(ExecutionState.RESOLVING)
        found = self.collections.get_collection(id_or_name, root_path)
        if not found.ok:
            return self._fail_resolution(report, found)
        report.enter(ExecutionState.PREPARING)
        resolved = self.collections.resolve_scripts(found.value)
        if not resolved.ok:
            return self._fail_resolution(report, resolved)
        if not resolved.value.scripts:
            return self._finish(report, AppError(
                ErrorKind.NOT_FOUND,
                f"Terminal collection '{found.value.name}' has no resolvable scripts",
            ))
        report.enter(ExecutionState.EXECUTING)
        return self._finish(report, self._run_resolved(resolved, report, mode))

    def _restore_git(self, session: Session, report: ExecutionReport) -> Optional[AppError]:
        report.steps.append("git")
        git = self.git_factory(session.project_root)
        checkout = git.checkout_branch(session.git.branch)
        if not checkout.ok:
            return checkout.error
        if session.git.stash_id:
            applied = git.apply_stash(session.git.stash_id)
            if not applied.ok:
                return applied.error
        return None

    def _open_files(self, session: Session, ide: str, report: ExecutionReport) -> None:
        report.steps.append("files")
        ordered = session.files_in_restore_order()
        files = [
            FileToOpen(path=f.path, line=f.cursor.line if f.cursor else None,
                       column=f.cursor.column if f.cursor else None)
            for f in ordered
        ]
        opened = self.ide.open_files(ide, session.project_root, files)
        if opened.ok:
            report.opened_files = [f.path for f in ordered]
        else:
            report.warn(f"Could not reopen files: {opened.error.message}")

    def _replay_session_commands(
        self, session: Session, mode: Optional[ExecutionMode], report: ExecutionReport
    ) -> Optional[AppError]:
        for collection_id in session.terminal_collections:
            found = self.collections.get_collection(collection_id)
            if not found.ok:
                report.warn(f"Skipping terminal collection {collection_id}: {found.error.message}")
                continue
            error = self._run_collection(found.value, report, mode)
            if error is not None:
                return error

        for script_id in session.scripts:
            found = self.scripts.get_script(script_id)
            if not found.ok:
                report.warn(f"Skipping script {script_id}: {found.error.message}")
                continue
            error = self._run_script(found.value, report, mode)
            if error is not None:
                return error

        for terminal in session.terminal_commands:
            if not terminal.commands:
                continue
            ordered = sorted(terminal.commands, key=lambda c: c.priority)
            report.steps.append(f"terminal:{terminal.terminal_name or terminal.terminal_id}")
            error = self._run_commands(
                [(c.command, c.name) for c in ordered],
                session.project_root,
                mode or ExecutionMode.NEW_TERMINALS,
                False,
                report,
            )
            if error is not None:
                return error
        return None

    def resume_session(
        self,
        id_or_name: str,
        project_root: Optional[str] = None,
        options: Optional[ResumeOptions] = None,
    ) -> Result[ExecutionReport]:
        """Restore a session.

        Order: git (checkout branch, apply stash), then files, then terminal
        collections, scripts and captured terminal commands. A git failure
        fails the resume; a file-reopen failure only adds a warning.
        """
        options = options or ResumeOptions()
        report = ExecutionReport(target=f"session {id_or_name}")
        report.enter(ExecutionState.RESOLVING)
        found = self.sessions.get_session(id_or_name, project_root)
        if not found.ok:
            return self._fail_resolution(report, found)
        session = found.value

        report.enter(ExecutionState.PREPARING)
        restore_git = options.restore_git and session.git is not None
        open_files = options.open_files and bool(session.files)

        report.enter(ExecutionState.EXECUTING)
        if restore_git:
            error = self._restore_git(session, report)
            if error is not None:
                return self._finish(report, error)
        if open_files:
            self._open_files(session, options.ide or self.default_ide, report)
        if options.run_commands:
            error = self._replay_session_commands(session, options.mode, report)
            if error is not None:
                return self._finish(report, error)
        return self._finish(report)
