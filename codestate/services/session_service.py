"""Session service: capturing and maintaining saved working contexts."""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..core.repository import validation_message
from ..core.result import ErrorKind, Result
from ..core.session_repository import SessionRepository
from ..models.session import GitState, Session
from .git_service import GitService
from .script_service import normalize_root

logger = logging.getLogger(__name__)

GitFactory = Callable[[str], GitService]


class SessionService:
    """Saves sessions by capturing git state through the git collaborator."""

    def __init__(self, repository: SessionRepository, git_factory: GitFactory = GitService):
        """Initialize session service.

        Args:
            repository: Session storage
            git_factory: Builds a git collaborator for a project root
        """
        self.repository = repository
        self.git_factory = git_factory

    def capture_git_state(self, project_root: str, stash: bool = False) -> Result[Optional[GitState]]:
        """Snapshot branch, commit and dirty flag; None outside a git repository.

        With `stash`, uncommitted changes are stashed under a generated name
        which the returned state references.
        """
        git = self.git_factory(project_root)
        is_repo = git.is_git_repository()
        if not is_repo.ok:
            return is_repo
        if not is_repo.value:
            logger.info(f"{project_root} is not a git repository; saving without git state")
            return Result.success(None)

        branch = git.get_current_branch()
        if not branch.ok:
            return branch
        commit = git.get_commit_hash()
        if not commit.ok:
            return commit
        dirty = git.get_is_dirty()
        if not dirty.ok:
            return dirty

        stash_id = None
        if stash and dirty.value:
            stashed = git.create_stash()
            if not stashed.ok:
                return stashed
            stash_id = stashed.value
        return Result.success(GitState(branch=branch.value, commit=commit.value, is_dirty=dirty.value, stash_id=stash_id))

    def save_session(
        self,
        name: str,
        project_root: str,
        notes: Optional[str] = None,
        tags: Optional[List[str]] = None,
        files: Optional[List[Any]] = None,
        terminal_commands: Optional[List[Any]] = None,
        terminal_collections: Optional[List[str]] = None,
        scripts: Optional[List[str]] = None,
        stash: bool = False,
        capture_git: bool = True,
    ) -> Result[Session]:
        """Capture the current context of `project_root` as a new session."""
        logger.debug(f"Saving session '{name}' for {project_root}")
        project_root = normalize_root(project_root)
        git_state = None
        if capture_git:
            captured = self.capture_git_state(project_root, stash=stash)
            if not captured.ok:
                logger.error(f"Failed to capture git state: {captured.error}")
                return captured
            git_state = captured.value

        try:
            session = Session(
                id=str(uuid.uuid4()),
                name=name,
                project_root=project_root,
                notes=notes,
                tags=tags or [],
                files=files or [],
                git=git_state,
                terminal_commands=terminal_commands or [],
                terminal_collections=terminal_collections or [],
                scripts=scripts or [],
            )
        except ValidationError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, validation_message(e), name=name)

        result = self.repository.create(session)
        if not result.ok:
            logger.error(f"Failed to save session '{name}': {result.error}")
        return result

    def add_session(self, session: Session) -> Result[Session]:
        """Persist an already-built session as-is."""
        return self.repository.create(session)

    def get_session(self, id_or_name: str, project_root: Optional[str] = None) -> Result[Session]:
        scope = normalize_root(project_root) if project_root else None
        return self.repository.resolve(id_or_name, scope)

    def list_sessions(
        self,
        project_root: Optional[str] = None,
        tags: Optional[List[str]] = None,
        search: Optional[str] = None,
    ) -> Result[List[Session]]:
        result = self.repository.search(tags=tags, text=search)
        if not result.ok or not project_root:
            return result
        scope = normalize_root(project_root)
        return Result.success([s for s in result.value if s.project_root == scope], warnings=result.warnings)

    def update_session(
        self, session_id: str, changes: Dict[str, Any], capture_git: bool = False, stash: bool = False
    ) -> Result[Session]:
        """Partially update a session, optionally re-capturing its git state."""
        logger.debug(f"Updating session {session_id}")
        changes = dict(changes)
        if changes.get("project_root"):
            changes["project_root"] = normalize_root(changes["project_root"])
        if capture_git:
            current = self.repository.get(session_id)
            if not current.ok:
                return current
            root = changes.get("project_root") or current.value.project_root
            captured = self.capture_git_state(root, stash=stash)
            if not captured.ok:
                return captured
            changes["git"] = captured.value.model_dump() if captured.value else None
        result = self.repository.update(session_id, changes)
        if not result.ok:
            logger.error(f"Failed to update session {session_id}: {result.error}")
        return result

    def delete_session(self, session_id: str) -> Result[None]:
        logger.debug(f"Deleting session {session_id}")
        result = self.repository.delete(session_id)
        if not result.ok:
            logger.error(f"Failed to delete session {session_id}: {result.error}")
        return result
