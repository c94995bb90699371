"""Terminal collection service."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core.repository import validation_message
from ..core.result import ErrorKind, Result
from ..core.script_repository import ScriptRepository
from ..core.terminal_collection_repository import TerminalCollectionRepository
from ..models.script import LifecycleEvent
from ..models.terminal_collection import (
    ScriptReference,
    TerminalCollection,
    TerminalCollectionWithScripts,
)
from .script_service import normalize_root

logger = logging.getLogger(__name__)


class TerminalCollectionService:
    """Groups scripts into collections launched together."""

    def __init__(self, repository: TerminalCollectionRepository, scripts: ScriptRepository):
        self.repository = repository
        self.scripts = scripts

    def _build_references(self, script_ids: List[str]) -> Result[List[ScriptReference]]:
        """Resolve script ids to references; every script must exist."""
        references, missing = [], []
        for script_id in script_ids:
            found = self.scripts.get(script_id)
            if found.ok:
                references.append(ScriptReference(id=found.value.id, root_path=found.value.root_path))
            elif found.kind == ErrorKind.NOT_FOUND:
                missing.append(script_id)
            else:
                return found
        if missing:
            return Result.failure(
                ErrorKind.NOT_FOUND,
                f"Scripts not found: {', '.join(missing)}",
                missing=missing,
            )
        return Result.success(references)

    def create_collection(
        self,
        name: str,
        root_path: str,
        script_ids: List[str],
        lifecycle: Optional[List[LifecycleEvent]] = None,
        execution_mode=None,
        collection_id: Optional[str] = None,
    ) -> Result[TerminalCollection]:
        """Create a collection; all referenced scripts must exist."""
        logger.debug(f"Creating terminal collection '{name}' with {len(script_ids)} scripts")
        if not script_ids:
            return Result.failure(ErrorKind.INVALID_INPUT, "A terminal collection needs at least one script")
        references = self._build_references(script_ids)
        if not references.ok:
            return references
        try:
            collection = TerminalCollection(
                id=collection_id or str(uuid.uuid4()),
                name=name,
                root_path=normalize_root(root_path),
                lifecycle=lifecycle or [],
                script_references=references.value,
                execution_mode=execution_mode,
            )
        except ValidationError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, validation_message(e), name=name)
        return self.repository.create(collection)

    def get_collection(self, id_or_name: str, root_path: Optional[str] = None) -> Result[TerminalCollection]:
        scope = normalize_root(root_path) if root_path else None
        return self.repository.resolve(id_or_name, scope)

    def resolve_scripts(self, collection: TerminalCollection) -> Result[TerminalCollectionWithScripts]:
        """Load referenced scripts in order, skipping missing ones with a warning."""
        scripts, missing, warnings = [], [], []
        for reference in collection.script_references:
            found = self.scripts.get(reference.id)
            if found.ok:
                scripts.append(found.value)
            elif found.kind == ErrorKind.NOT_FOUND:
                message = f"Collection '{collection.name}' references missing script {reference.id}"
                logger.warning(message)
                missing.append(reference)
                warnings.append(message)
            else:
                return found
        return Result.success(
            TerminalCollectionWithScripts(collection=collection, scripts=scripts, missing_references=missing),
            warnings=warnings,
        )

    def get_collection_with_scripts(
        self, id_or_name: str, root_path: Optional[str] = None
    ) -> Result[TerminalCollectionWithScripts]:
        found = self.get_collection(id_or_name, root_path)
        if not found.ok:
            return found
        return self.resolve_scripts(found.value)

    def list_collections(
        self, root_path: Optional[str] = None, lifecycle: Optional[LifecycleEvent] = None
    ) -> Result[List[TerminalCollection]]:
        scope = normalize_root(root_path) if root_path else None
        result = self.repository.list(scope)
        if not result.ok or lifecycle is None:
            return result
        return Result.success([c for c in result.value if lifecycle in c.lifecycle], warnings=result.warnings)

    def update_collection(self, collection_id: str, changes: Dict[str, Any]) -> Result[TerminalCollection]:
        """Partially update a collection; `script_ids` replaces the references."""
        logger.debug(f"Updating terminal collection {collection_id}")
        changes = dict(changes)
        if "script_ids" in changes:
            script_ids = changes.pop("script_ids") or []
            if not script_ids:
                return Result.failure(ErrorKind.INVALID_INPUT, "A terminal collection needs at least one script")
            references = self._build_references(script_ids)
            if not references.ok:
                return references
            changes["script_references"] = [r.model_dump() for r in references.value]
        if changes.get("root_path"):
            changes["root_path"] = normalize_root(changes["root_path"])
        return self.repository.update(collection_id, changes)

    def delete_collection(self, collection_id: str) -> Result[None]:
        logger.debug(f"Deleting terminal collection {collection_id}")
        return self.repository.delete(collection_id)
