"""Script models: named, reusable single- or multi-command definitions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import Field, model_validator

from .base import DocumentModel, utc_now


class ExecutionMode(str, Enum):
    """Where replayed commands run."""
    SAME_TERMINAL = "same-terminal"
    NEW_TERMINALS = "new-terminals"


class LifecycleEvent(str, Enum):
    """When a script or terminal collection is meant to be launched."""
    OPEN = "open"
    RESUME = "resume"
    NONE = "none"


@dataclass(frozen=True)
class SameTerminal:
    """Run commands one after another in the current process context."""


@dataclass(frozen=True)
class NewTerminals:
    """Join commands with && and launch them in a detached terminal window."""
    close_after_execution: bool = False


ExecutionPlan = Union[SameTerminal, NewTerminals]


def plan_for(mode: ExecutionMode, close_after_execution: bool = False) -> ExecutionPlan:
    """Build the tagged execution plan for a mode."""
    if mode == ExecutionMode.SAME_TERMINAL:
        return SameTerminal()
    return NewTerminals(close_after_execution=close_after_execution)


class ScriptCommand(DocumentModel):
    """One command of a multi-command script."""
    command: str = Field(..., min_length=1)
    name: Optional[str] = None
    priority: int = Field(default=0, ge=0)


class Script(DocumentModel):
    """A named command (legacy `script`) or ordered command set (`commands`)."""
    id: str
    name: str = Field(..., min_length=1)
    root_path: str = Field(..., min_length=1)
    script: Optional[str] = None
    commands: Optional[List[ScriptCommand]] = None
    execution_mode: ExecutionMode = ExecutionMode.NEW_TERMINALS
    close_terminal_after_execution: bool = False
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    lifecycle: List[LifecycleEvent] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _exactly_one_form(self) -> "Script":
        has_script = bool(self.script and self.script.strip())
        has_commands = bool(self.commands)
        if has_script == has_commands:
            raise ValueError("Exactly one of 'script' or a non-empty 'commands' list must be provided")
        return self

    @property
    def is_legacy(self) -> bool:
        return bool(self.script)

    @property
    def plan(self) -> ExecutionPlan:
        return plan_for(self.execution_mode, self.close_terminal_after_execution)

    def duplicate_priorities(self) -> List[int]:
        """Priorities used by more than one command."""
        seen, duplicates = set(), []
        for cmd in self.commands or []:
            if cmd.priority in seen and cmd.priority not in duplicates:
                duplicates.append(cmd.priority)
            seen.add(cmd.priority)
        return duplicates

    def ordered_commands(self) -> List[ScriptCommand]:
        """Commands in execution order.

        A legacy script is a single command with priority 0. Multi-command
        scripts are sorted ascending by priority; ties keep stored order.
        """
        if self.script:
            return [ScriptCommand(command=self.script, name=self.name, priority=0)]
        return sorted(self.commands or [], key=lambda c: c.priority)
