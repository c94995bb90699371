"""Models for codestate."""

from .config import AppConfig, EncryptionConfig
from .script import (
    ExecutionMode,
    LifecycleEvent,
    NewTerminals,
    SameTerminal,
    Script,
    ScriptCommand,
)
from .session import (
    Cursor,
    FileState,
    GitState,
    Scroll,
    Session,
    TerminalCommand,
    TerminalCommandState,
)
from .git import GitStatus
from .terminal import TerminalResult
from .terminal_collection import (
    ScriptReference,
    TerminalCollection,
    TerminalCollectionWithScripts,
)

__all__ = [
    'AppConfig',
    'EncryptionConfig',
    'ExecutionMode',
    'LifecycleEvent',
    'NewTerminals',
    'SameTerminal',
    'Script',
    'ScriptCommand',
    'Cursor',
    'FileState',
    'GitState',
    'Scroll',
    'Session',
    'TerminalCommand',
    'TerminalCommandState',
    'GitStatus',
    'TerminalResult',
    'ScriptReference',
    'TerminalCollection',
    'TerminalCollectionWithScripts',
]
