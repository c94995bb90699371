"""Terminal service for running commands and launching terminal windows."""

import logging
import os
import shutil
import subprocess
import sys
import time
from typing import List, Optional

from ..core.constants import COMMAND_TIMEOUT, LINUX_TERMINALS, SPAWN_SETTLE, SPAWN_TIMEOUT
from ..core.result import ErrorKind, Result
from ..models.terminal import TerminalResult
from .exceptions import TerminalServiceError

logger = logging.getLogger(__name__)

# emulator -> (flags placed before the shell invocation, flags added to keep the window open)
LINUX_TERMINAL_ARGS = {
    "gnome-terminal": (["--"], []),
    "xterm": (["-e"], ["-hold"]),
    "konsole": (["-e"], ["--hold"]),
    "xfce4-terminal": (["--execute"], []),
    "mate-terminal": (["--execute"], []),
    "tilix": (["--new-process", "-e"], []),
    "terminator": (["--new-tab", "-e"], []),
    "alacritty": (["-e"], []),
    "kitty": (["--"], []),
}

WORKING_DIRECTORY_FLAG_TERMINALS = ("gnome-terminal", "xfce4-terminal", "mate-terminal", "tilix")


def _applescript_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class TerminalService:
    """Runs shell commands and opens detached terminal windows."""

    def __init__(self, platform: Optional[str] = None, shell: Optional[str] = None):
        """Initialize terminal service.

        Args:
            platform: Platform identifier (defaults to sys.platform)
            shell: Shell used for commands (defaults to $SHELL, then /bin/bash)
        """
        self.platform = platform or sys.platform
        if self.platform == "win32":
            self.shell = shell or os.environ.get("COMSPEC", "cmd.exe")
        else:
            self.shell = shell or os.environ.get("SHELL") or "/bin/bash"

    def execute(
        self, command: str, cwd: Optional[str] = None, timeout: float = COMMAND_TIMEOUT
    ) -> Result[TerminalResult]:
        """Run a command to completion and capture its output.

        A non-zero exit is still a successful call whose TerminalResult has
        success=False. A timeout is an EXECUTION_FAILED failure.
        """
        logger.debug(f"Executing command: {command} (cwd={cwd}, timeout={timeout}s)")
        start = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
                executable=None if self.platform == "win32" else self.shell,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {timeout}s: {command}")
            return Result.failure(
                ErrorKind.EXECUTION_FAILED,
                f"Command timed out after {timeout}s: {command}",
                command=command,
                timeout=timeout,
            )
        except OSError as e:
            logger.error(f"Could not run command {command!r}: {e}")
            return Result.failure(
                ErrorKind.EXTERNAL_COLLABORATOR_FAILED,
                f"Could not run command: {e}",
                command=command,
            )

        duration = time.monotonic() - start
        result = TerminalResult(
            success=completed.returncode == 0,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration=duration,
        )
        logger.debug(f"Command finished with exit code {result.exit_code} in {duration:.2f}s")
        return Result.success(result)

    def is_command_available(self, command: str) -> Result[bool]:
        return Result.success(shutil.which(command) is not None)

    def detect_terminal(self) -> str:
        """Return the terminal launcher for this platform.

        Raises:
            TerminalServiceError: If no supported emulator is installed
        """
        if self.platform == "darwin":
            return "osascript"
        if self.platform == "win32":
            return "cmd.exe"
        for terminal in LINUX_TERMINALS:
            if shutil.which(terminal):
                logger.debug(f"Linux terminal detected: {terminal}")
                return terminal
        raise TerminalServiceError(
            f"No supported terminal emulator found (tried {', '.join(LINUX_TERMINALS)})"
        )

    def terminal_argv(self, command: str, cwd: Optional[str] = None, hold: bool = False) -> List[str]:
        """Build the argv that opens a new terminal window running `command`."""
        terminal = self.detect_terminal()
        if terminal == "osascript":
            line = f"cd \"{cwd}\" && {command}" if cwd else command
            script = (
                'tell application "Terminal"\n'
                "  activate\n"
                f'  do script "{_applescript_quote(line)}"\n'
                "end tell"
            )
            return ["osascript", "-e", script]
        if terminal == "cmd.exe":
            return ["cmd.exe", "/c", "start", "cmd", "/k" if hold else "/c", command]

        exec_flags, hold_flags = LINUX_TERMINAL_ARGS.get(terminal, (["--"], []))
        argv = [terminal]
        if cwd and terminal in WORKING_DIRECTORY_FLAG_TERMINALS:
            argv += ["--working-directory", cwd]
        if hold:
            argv += hold_flags
        line = f'cd "{cwd}" && {command}' if cwd and terminal not in WORKING_DIRECTORY_FLAG_TERMINALS else command
        return argv + exec_flags + [self.shell, "-c", line]

    def _launch(self, argv: List[str], cwd: Optional[str], timeout: float) -> None:
        """Start a detached process and watch it briefly for an early failure.

        Raises:
            TerminalServiceError: If the process cannot start or exits non-zero
        """
        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise TerminalServiceError(f"Failed to launch {argv[0]}: {e}") from e
        try:
            code = proc.wait(timeout=min(timeout, SPAWN_SETTLE))
        except subprocess.TimeoutExpired:
            return
        if code != 0:
            raise TerminalServiceError(f"{argv[0]} exited with code {code}")

    def launch(self, argv: List[str], cwd: Optional[str] = None, timeout: float = SPAWN_TIMEOUT) -> Result[bool]:
        """Start a detached program (used for IDE launches)."""
        logger.debug(f"Launching: {' '.join(argv)}")
        try:
            self._launch(argv, cwd, timeout)
        except TerminalServiceError as e:
            logger.error(str(e))
            return Result.failure(ErrorKind.EXTERNAL_COLLABORATOR_FAILED, str(e), argv=argv)
        return Result.success(True)

    def spawn_terminal(
        self,
        command: str,
        cwd: Optional[str] = None,
        timeout: float = SPAWN_TIMEOUT,
        hold: bool = False,
    ) -> Result[bool]:
        """Open a new terminal window running `command` without waiting for it."""
        logger.debug(f"Spawning terminal for: {command}")
        try:
            argv = self.terminal_argv(command, cwd, hold=hold)
            self._launch(argv, cwd, timeout)
        except TerminalServiceError as e:
            logger.error(f"Terminal spawn failed: {e}")
            return Result.failure(ErrorKind.EXECUTION_FAILED, str(e), command=command)
        logger.info(f"Spawned terminal via {argv[0]}")
        return Result.success(True)
