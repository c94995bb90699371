"""Script service: business rules on top of the script repository."""

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core.repository import validation_message
from ..core.result import ErrorKind, Result
from ..core.script_repository import BulkDeleteResult, ScriptRepository
from ..core.terminal_collection_repository import TerminalCollectionRepository
from ..models.script import LifecycleEvent, Script, ScriptCommand

logger = logging.getLogger(__name__)


def normalize_root(path: str) -> str:
    """Absolute, user-expanded form of a project root."""
    return os.path.abspath(os.path.expanduser(path))


@dataclass
class BulkCreateResult:
    """Per-item outcome of a bulk create."""
    created: List[Script] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.failed)


class ScriptService:
    """Creates, resolves and maintains scripts."""

    def __init__(
        self,
        repository: ScriptRepository,
        collections: Optional[TerminalCollectionRepository] = None,
    ):
        self.repository = repository
        self.collections = collections

    def _check_priorities(self, script: Script) -> Result[Script]:
        duplicates = script.duplicate_priorities()
        if duplicates:
            return Result.failure(
                ErrorKind.INVALID_INPUT,
                f"Command priorities must be unique; duplicated: {', '.join(map(str, duplicates))}",
                name=script.name,
            )
        return Result.success(script)

    def add_script(self, script: Script) -> Result[Script]:
        """Validate and persist an already-built script."""
        checked = self._check_priorities(script)
        if not checked.ok:
            return checked
        result = self.repository.create(script)
        if not result.ok:
            logger.error(f"Failed to create script '{script.name}': {result.error}")
        return result

    def create_script(self, name: str, root_path: str, **fields) -> Result[Script]:
        """Create a script from either `script=` or `commands=` plus metadata."""
        logger.debug(f"Creating script '{name}' in {root_path}")
        try:
            script = Script(id=fields.pop("id", None) or str(uuid.uuid4()),
                            name=name, root_path=normalize_root(root_path), **fields)
        except ValidationError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, validation_message(e), name=name)
        return self.add_script(script)

    def create_scripts(self, items: List[Dict[str, Any]]) -> Result[BulkCreateResult]:
        """Create many scripts; one failing item never stops the others."""
        outcome = BulkCreateResult()
        for item in items:
            data = dict(item)
            name = data.pop("name", "")
            root_path = data.pop("root_path", "") or os.getcwd()
            result = self.create_script(name, root_path, **data)
            if result.ok:
                outcome.created.append(result.value)
            else:
                outcome.failed.append({"name": name, "error": result.error})
        logger.info(f"Bulk create: {len(outcome.created)} created, {len(outcome.failed)} failed")
        return Result.success(outcome)

    def get_script(self, id_or_name: str, root_path: Optional[str] = None) -> Result[Script]:
        scope = normalize_root(root_path) if root_path else None
        return self.repository.resolve(id_or_name, scope)

    def get_scripts(
        self, root_path: Optional[str] = None, lifecycle: Optional[LifecycleEvent] = None
    ) -> Result[List[Script]]:
        scope = normalize_root(root_path) if root_path else None
        return self.repository.list_by_root_path(scope, lifecycle)

    def update_script(self, script_id: str, changes: Dict[str, Any]) -> Result[Script]:
        """Partially update a script.

        Supplying one command form clears the other so the script keeps
        exactly one.
        """
        logger.debug(f"Updating script {script_id}")
        changes = dict(changes)
        if changes.get("commands") and "script" not in changes:
            changes["script"] = None
        elif changes.get("script") and "commands" not in changes:
            changes["commands"] = None
        if changes.get("root_path"):
            changes["root_path"] = normalize_root(changes["root_path"])
        if changes.get("commands"):
            try:
                commands = [
                    c if isinstance(c, ScriptCommand) else ScriptCommand.model_validate(c)
                    for c in changes["commands"]
                ]
            except ValidationError as e:
                return Result.failure(ErrorKind.INVALID_INPUT, validation_message(e), id=script_id)
            priorities = [c.priority for c in commands]
            if len(priorities) != len(set(priorities)):
                return Result.failure(ErrorKind.INVALID_INPUT, "Command priorities must be unique", id=script_id)
            changes["commands"] = [c.model_dump() for c in commands]
        result = self.repository.update(script_id, changes)
        if not result.ok:
            logger.error(f"Failed to update script {script_id}: {result.error}")
        return result

    def delete_script(self, script_id: str) -> Result[None]:
        """Delete a script; collections still referencing it are reported as warnings."""
        logger.debug(f"Deleting script {script_id}")
        warnings = []
        if self.collections is not None:
            referencing = self.collections.referencing(script_id)
            if referencing.ok:
                warnings = [
                    f"Terminal collection '{c.name}' references deleted script {script_id}"
                    for c in referencing.value
                ]
        result = self.repository.delete(script_id)
        if not result.ok:
            return result
        return Result.success(warnings=warnings)

    def delete_scripts_by_root_path(self, root_path: str) -> Result[BulkDeleteResult]:
        return self.repository.delete_by_root_path(normalize_root(root_path))
