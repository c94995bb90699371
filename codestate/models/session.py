"""Session models: a saved snapshot of a project's working context."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from .base import DocumentModel, utc_now


class Cursor(DocumentModel):
    """Cursor location inside a file."""
    line: int = Field(default=1, ge=0)
    column: int = Field(default=1, ge=0)


class Scroll(DocumentModel):
    """Scroll offsets of an editor pane."""
    top: int = 0
    left: int = 0


class FileState(DocumentModel):
    """An open file and where the user was inside it."""
    path: str = Field(..., min_length=1)
    cursor: Optional[Cursor] = None
    scroll: Optional[Scroll] = None
    is_active: bool = False
    position: Optional[int] = None  # reopen order; unpositioned files go last


class GitState(DocumentModel):
    """Git snapshot; stash_id references a stash by name, never owns it."""
    branch: str
    commit: str
    is_dirty: bool = False
    stash_id: Optional[str] = None


class TerminalCommand(DocumentModel):
    """One command captured from a terminal."""
    command: str = Field(..., min_length=1)
    name: Optional[str] = None
    priority: int = Field(default=0, ge=0)


class TerminalCommandState(DocumentModel):
    """Commands captured from a single terminal, replayed together."""
    terminal_id: int = 0
    terminal_name: Optional[str] = None
    commands: List[TerminalCommand] = Field(default_factory=list)


class Session(DocumentModel):
    """A named snapshot of open files, git state and terminal commands."""
    id: str
    name: str = Field(..., min_length=1)
    project_root: str = Field(..., min_length=1)
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    files: List[FileState] = Field(default_factory=list)
    git: Optional[GitState] = None
    terminal_commands: List[TerminalCommandState] = Field(default_factory=list)
    terminal_collections: List[str] = Field(default_factory=list)
    scripts: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        # tags behave as a set but keep first-seen order
        return list(dict.fromkeys(tag.strip() for tag in tags if tag.strip()))

    @model_validator(mode="after")
    def _single_active_file(self) -> "Session":
        active = [f.path for f in self.files if f.is_active]
        if len(active) > 1:
            raise ValueError(f"At most one file may be active, got {len(active)}: {active}")
        return self

    def files_in_restore_order(self) -> List[FileState]:
        """Positioned files ascending by position, then the rest in stored order."""
        positioned = [f for f in self.files if f.position is not None]
        unpositioned = [f for f in self.files if f.position is None]
        # sorted() is stable, so equal positions keep their stored order
        return sorted(positioned, key=lambda f: f.position) + unpositioned
