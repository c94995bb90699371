"""Git status models."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class GitStatus:
    """Working tree status of a repository."""
    branch: str
    is_dirty: bool
    dirty_files: List[str] = field(default_factory=list)
