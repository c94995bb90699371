"""IDE service for reopening a session's files."""

import logging
import os
import shutil
from dataclasses import dataclass
from typing import List, Optional

from ..core.constants import IDE_DEFINITIONS, IDE_TIMEOUT
from ..core.result import ErrorKind, Result
from .exceptions import IDEServiceError
from .terminal_service import TerminalService

logger = logging.getLogger(__name__)

# editors that accept --goto path:line:column
GOTO_IDES = ("code", "cursor")


@dataclass
class FileToOpen:
    path: str
    line: Optional[int] = None
    column: Optional[int] = None


class IDEService:
    """Builds IDE command lines and launches them detached."""

    def __init__(self, terminal: Optional[TerminalService] = None):
        self.terminal = terminal or TerminalService()

    def available_ides(self) -> List[str]:
        """Configured IDE names whose executable is on PATH."""
        return [name for name, (cmd, _) in IDE_DEFINITIONS.items() if shutil.which(cmd)]

    def build_command(self, ide: str, project_root: str, files: List[FileToOpen]) -> List[str]:
        """Build the argv for opening `files` in `ide`.

        Raises:
            IDEServiceError: If the IDE is unknown
        """
        try:
            command, base_args = IDE_DEFINITIONS[ide.lower()]
        except KeyError:
            raise IDEServiceError(
                f"Unknown IDE '{ide}'. Supported: {', '.join(sorted(IDE_DEFINITIONS))}"
            ) from None

        argv = [command] + list(base_args) + [project_root]
        for item in files:
            path = item.path if os.path.isabs(item.path) else os.path.join(project_root, item.path)
            if command in GOTO_IDES and item.line is not None:
                location = f"{path}:{item.line}"
                if item.column is not None:
                    location += f":{item.column}"
                argv += ["--goto", location]
            else:
                argv.append(path)
        return argv

    def open_files(self, ide: str, project_root: str, files: List[FileToOpen]) -> Result[bool]:
        """Open the project and its files, in the given order."""
        logger.debug(f"Opening {len(files)} files in {ide}")
        try:
            argv = self.build_command(ide, project_root, files)
        except IDEServiceError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), ide=ide)

        if not shutil.which(argv[0]):
            logger.warning(f"IDE executable not found on PATH: {argv[0]}")
            return Result.failure(
                ErrorKind.EXTERNAL_COLLABORATOR_FAILED,
                f"IDE '{ide}' is not installed ({argv[0]} not on PATH)",
                ide=ide,
            )
        result = self.terminal.launch(argv, cwd=project_root, timeout=IDE_TIMEOUT)
        if result.ok:
            logger.info(f"Opened {len(files)} files in {ide}")
        return result
