"""Terminal collection models."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import DocumentModel, utc_now
from .script import ExecutionMode, LifecycleEvent, Script


class ScriptReference(DocumentModel):
    """Reference to a Script owned elsewhere."""
    id: str
    root_path: str


class TerminalCollection(DocumentModel):
    """A named, ordered group of script references launched together."""
    id: str
    name: str = Field(..., min_length=1)
    root_path: str = Field(..., min_length=1)
    lifecycle: List[LifecycleEvent] = Field(default_factory=list)
    script_references: List[ScriptReference] = Field(default_factory=list)
    execution_mode: Optional[ExecutionMode] = None  # overrides each script's own mode
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TerminalCollectionWithScripts(DocumentModel):
    """A collection with its references resolved, for display and execution."""
    collection: TerminalCollection
    scripts: List[Script] = Field(default_factory=list)
    missing_references: List[ScriptReference] = Field(default_factory=list)
