"""Custom exceptions for service layer."""


class ServiceError(Exception):
    """Base exception for all service-related errors."""

    pass


class GitServiceError(ServiceError):
    """Exception raised for Git service operations."""

    pass


class BranchNotFoundError(GitServiceError):
    """Exception raised when a Git branch is not found."""

    pass


class StashNotFoundError(GitServiceError):
    """Exception raised when a named stash is not in the stash list."""

    pass


class TerminalServiceError(ServiceError):
    """Exception raised when a command or terminal cannot be launched."""

    pass


class IDEServiceError(ServiceError):
    """Exception raised when an IDE cannot be launched."""

    pass
