"""Process execution result models."""

from dataclasses import dataclass


@dataclass
class TerminalResult:
    """Outcome of a command run to completion."""
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    duration: float  # seconds
