"""Core storage and persistence for codestate."""

from .file_storage import FileStore
from .result import AppError, ErrorKind, Result
from .script_repository import ScriptRepository
from .session_repository import SessionRepository
from .terminal_collection_repository import TerminalCollectionRepository

__all__ = [
    'AppError',
    'ErrorKind',
    'FileStore',
    'Result',
    'ScriptRepository',
    'SessionRepository',
    'TerminalCollectionRepository',
]
