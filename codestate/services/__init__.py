"""Service layer: external collaborators and domain services."""

from .exceptions import (
    ServiceError,
    GitServiceError,
    BranchNotFoundError,
    StashNotFoundError,
    TerminalServiceError,
    IDEServiceError,
)
from .git_service import GitService
from .ide_service import IDEService
from .reset_service import ResetService
from .script_service import ScriptService
from .session_service import SessionService
from .terminal_collection_service import TerminalCollectionService
from .terminal_service import TerminalService

__all__ = [
    "GitService",
    "IDEService",
    "ResetService",
    "ScriptService",
    "SessionService",
    "TerminalCollectionService",
    "TerminalService",
    "ServiceError",
    "GitServiceError",
    "BranchNotFoundError",
    "StashNotFoundError",
    "TerminalServiceError",
    "IDEServiceError",
]
