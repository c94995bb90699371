"""Git service for capturing and restoring repository state."""

import functools
import logging
import re
import subprocess
import time
from pathlib import Path
from typing import Optional, Union

from ..core.constants import GIT_TIMEOUT, STASH_PREFIX
from ..core.result import ErrorKind, Result
from ..models.git import GitStatus
from .exceptions import BranchNotFoundError, GitServiceError, StashNotFoundError

logger = logging.getLogger(__name__)

_STASH_REF = re.compile(r"^(stash@\{\d+\}):")


def _returns_result(func):
    """Wrap a raising git operation so callers get a Result."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return Result.success(func(*args, **kwargs))
        except GitServiceError as e:
            logger.error(f"{func.__name__} failed: {e}")
            return Result.failure(ErrorKind.EXTERNAL_COLLABORATOR_FAILED, str(e), operation=func.__name__)

    return wrapper


class GitService:
    """Service for Git operations with clean abstractions."""

    def __init__(self, repo_path: Optional[Union[str, Path]] = None, timeout: float = GIT_TIMEOUT):
        """Initialize Git service.

        Args:
            repo_path: Path to the git repository (defaults to current directory)
            timeout: Seconds allowed for each git invocation
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.timeout = timeout

    def _run_git_command(self, args: list, check: bool = True) -> subprocess.CompletedProcess:
        """Run a git command with proper error handling.

        Args:
            args: Git command arguments
            check: Check return code

        Returns:
            Completed process result

        Raises:
            GitServiceError: If command fails
        """
        cmd = ["git"] + args
        try:
            return subprocess.run(
                cmd,
                cwd=self.repo_path,
                check=check,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            error_msg = e.stderr.strip() if e.stderr else str(e)
            raise GitServiceError(f"Git command failed: {error_msg}") from e
        except subprocess.TimeoutExpired as e:
            raise GitServiceError(f"Git command timed out: {' '.join(cmd)}") from e
        except OSError as e:
            raise GitServiceError(f"Unable to run git: {e}") from e

    def is_git_repository(self) -> Result[bool]:
        try:
            result = self._run_git_command(["rev-parse", "--git-dir"], check=False)
        except GitServiceError:
            return Result.success(False)
        return Result.success(result.returncode == 0)

    def _current_branch(self) -> str:
        result = self._run_git_command(["branch", "--show-current"])
        branch = result.stdout.strip()
        if not branch:
            # detached HEAD
            branch = self._run_git_command(["rev-parse", "--short", "HEAD"]).stdout.strip()
        if not branch:
            raise GitServiceError("Unable to determine current branch")
        return branch

    def _dirty_files(self) -> list:
        result = self._run_git_command(["status", "--porcelain"])
        # Status format: "XY filename"
        return [line[3:] for line in result.stdout.splitlines() if line.strip()]

    def _branch_exists_local(self, branch_name: str) -> bool:
        result = self._run_git_command(["branch", "--list", branch_name], check=False)
        return bool(result.stdout.strip())

    @_returns_result
    def get_current_branch(self) -> str:
        return self._current_branch()

    @_returns_result
    def get_is_dirty(self) -> bool:
        return bool(self._dirty_files())

    @_returns_result
    def get_status(self) -> GitStatus:
        files = self._dirty_files()
        return GitStatus(branch=self._current_branch(), is_dirty=bool(files), dirty_files=files)

    @_returns_result
    def get_commit_hash(self, ref: str = "HEAD") -> str:
        return self._run_git_command(["rev-parse", ref]).stdout.strip()

    @_returns_result
    def create_stash(self, message: Optional[str] = None) -> Optional[str]:
        """Stash uncommitted changes (untracked included) under a unique name.

        Returns:
            The stash name, or None when there was nothing to stash
        """
        if not self._dirty_files():
            logger.info("No changes to stash")
            return None
        name = message or f"{STASH_PREFIX}-{int(time.time() * 1000)}"
        self._run_git_command(["stash", "push", "--include-untracked", "-m", name])
        logger.info(f"Stashed changes as {name}")
        return name

    @_returns_result
    def apply_stash(self, stash_name: str) -> bool:
        """Apply the stash whose message matches `stash_name`, keeping it in the list.

        Raises:
            StashNotFoundError: If no stash carries that name
        """
        listing = self._run_git_command(["stash", "list"]).stdout
        for line in listing.splitlines():
            match = _STASH_REF.match(line)
            if match and line.rstrip().endswith(stash_name):
                self._run_git_command(["stash", "apply", match.group(1)])
                logger.info(f"Applied stash {stash_name}")
                return True
        raise StashNotFoundError(f"Stash '{stash_name}' not found")

    @_returns_result
    def checkout_branch(self, branch_name: str) -> None:
        """Checkout a local branch; a no-op when it is already checked out.

        Raises:
            BranchNotFoundError: If branch doesn't exist locally
        """
        if self._current_branch() == branch_name:
            return
        if not self._branch_exists_local(branch_name):
            raise BranchNotFoundError(f"Branch '{branch_name}' not found locally")
        self._run_git_command(["checkout", branch_name])
        logger.info(f"Checked out branch: {branch_name}")
