"""Import and export of portable JSON bundles."""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..models.script import LifecycleEvent, Script
from ..models.session import Session
from ..models.terminal_collection import TerminalCollection
from ..services.script_service import ScriptService, normalize_root
from ..services.session_service import SessionService
from ..services.terminal_collection_service import TerminalCollectionService
from .constants import EXPORT_DIR_PREFIX
from .file_storage import atomic_write
from .repository import IndexedRepository, validation_message
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)

SCRIPTS_KEY = "scripts"
COLLECTIONS_KEY = "terminalCollections"
SESSIONS_KEY = "sessions"
BUNDLED_SCRIPTS_KEY = "bundledScripts"
BUNDLED_COLLECTIONS_KEY = "bundledTerminalCollections"


@dataclass
class ExportResult:
    """Where a bundle went and what it holds."""
    file_path: Path
    exported_at: str
    counts: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    """Per-item outcome of an import; created/skipped count the bundle's main kind."""
    created: int = 0
    skipped: int = 0
    total_processed: int = 0
    errors: List[str] = field(default_factory=list)
    scripts_created: int = 0
    scripts_skipped: int = 0
    collections_created: int = 0
    collections_skipped: int = 0


def default_export_path(kind: str, now: Optional[datetime] = None) -> Path:
    """~/Downloads/codestate-<kind>/codestate-<kind>-<timestamp>.json"""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    directory = Path.home() / "Downloads" / f"{EXPORT_DIR_PREFIX}-{kind}"
    return directory / f"{EXPORT_DIR_PREFIX}-{kind}-{stamp}.json"


def _filters(root_path=None, lifecycle=None, ids=None, tags=None) -> dict:
    filters = {
        "rootPath": root_path or "all",
        "lifecycle": lifecycle.value if isinstance(lifecycle, LifecycleEvent) else (lifecycle or "all"),
        "ids": list(ids) if ids else "all",
    }
    if tags:
        filters["tags"] = list(tags)
    return filters


def _entries(bundle: dict, key: str) -> list:
    items = bundle.get(key)
    return items if isinstance(items, list) else []


class TransferService:
    """Exports entities to bundles and imports them without overwriting."""

    def __init__(
        self,
        scripts: ScriptService,
        collections: TerminalCollectionService,
        sessions: SessionService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.scripts = scripts
        self.collections = collections
        self.sessions = sessions
        self.clock = clock

    # -- export ------------------------------------------------------------

    def _select(self, listed: Result, ids: Optional[List[str]]) -> Result:
        if not listed.ok or not ids:
            return listed
        wanted = set(ids)
        return Result.success([item for item in listed.value if item.id in wanted], warnings=listed.warnings)

    def _write_bundle(self, kind: str, bundle: dict, output: Optional[Union[str, Path]]) -> Result[Path]:
        path = Path(output).expanduser() if output else default_export_path(kind, self.clock())
        try:
            atomic_write(path, json.dumps(bundle, indent=2).encode("utf-8"), mode=0o644)
        except OSError as e:
            logger.error(f"Export write failed: {path} ({e})")
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, f"Could not write export file: {e}", path=str(path))
        logger.info(f"Exported {kind} to {path}")
        return Result.success(path)

    def export_scripts(
        self,
        root_path: Optional[str] = None,
        lifecycle: Optional[LifecycleEvent] = None,
        ids: Optional[List[str]] = None,
        output: Optional[Union[str, Path]] = None,
    ) -> Result[ExportResult]:
        selected = self._select(self.scripts.get_scripts(root_path, lifecycle), ids)
        if not selected.ok:
            return selected
        if not selected.value:
            return Result.failure(ErrorKind.NOT_FOUND, "No scripts found matching the specified criteria")
        exported_at = self.clock().isoformat()
        bundle = {
            "metadata": {
                "exportedAt": exported_at,
                "filters": _filters(root_path, lifecycle, ids),
                "totalScripts": len(selected.value),
            },
            SCRIPTS_KEY: [s.to_document() for s in selected.value],
        }
        written = self._write_bundle("scripts", bundle, output)
        if not written.ok:
            return written
        return Result.success(ExportResult(written.value, exported_at, {"scripts": len(selected.value)}))

    def export_collections(
        self,
        root_path: Optional[str] = None,
        lifecycle: Optional[LifecycleEvent] = None,
        ids: Optional[List[str]] = None,
        output: Optional[Union[str, Path]] = None,
    ) -> Result[ExportResult]:
        """Export collections with their resolved scripts embedded under ``scripts``."""
        selected = self._select(self.collections.list_collections(root_path, lifecycle), ids)
        if not selected.ok:
            return selected
        if not selected.value:
            return Result.failure(ErrorKind.NOT_FOUND, "No terminal collections found matching the specified criteria")
        items, errors, script_count = [], [], 0
        for collection in selected.value:
            resolved = self.collections.resolve_scripts(collection)
            if not resolved.ok:
                return resolved
            errors.extend(resolved.warnings)
            document = collection.to_document()
            document[SCRIPTS_KEY] = [s.to_document() for s in resolved.value.scripts]
            script_count += len(resolved.value.scripts)
            items.append(document)
        exported_at = self.clock().isoformat()
        bundle = {
            "metadata": {
                "exportedAt": exported_at,
                "filters": _filters(root_path, lifecycle, ids),
                "totalTerminalCollections": len(items),
                "totalScripts": script_count,
            },
            COLLECTIONS_KEY: items,
        }
        written = self._write_bundle("terminals", bundle, output)
        if not written.ok:
            return written
        counts = {"terminalCollections": len(items), "scripts": script_count}
        return Result.success(ExportResult(written.value, exported_at, counts, errors))

    def export_sessions(
        self,
        project_root: Optional[str] = None,
        tags: Optional[List[str]] = None,
        ids: Optional[List[str]] = None,
        output: Optional[Union[str, Path]] = None,
    ) -> Result[ExportResult]:
        """Export sessions plus the scripts and collections they reference."""
        selected = self._select(self.sessions.list_sessions(project_root, tags=tags), ids)
        if not selected.ok:
            return selected
        if not selected.value:
            return Result.failure(ErrorKind.NOT_FOUND, "No sessions found matching the specified criteria")

        errors = []
        scripts: Dict[str, Script] = {}
        collections: Dict[str, TerminalCollection] = {}
        for session in selected.value:
            for collection_id in session.terminal_collections:
                found = self.collections.get_collection(collection_id)
                if not found.ok:
                    errors.append(f"Session '{session.name}' references missing terminal collection {collection_id}")
                    continue
                collections[collection_id] = found.value
                resolved = self.collections.resolve_scripts(found.value)
                if not resolved.ok:
                    return resolved
                errors.extend(resolved.warnings)
                scripts.update((s.id, s) for s in resolved.value.scripts)
            for script_id in session.scripts:
                found = self.scripts.get_script(script_id)
                if not found.ok:
                    errors.append(f"Session '{session.name}' references missing script {script_id}")
                    continue
                scripts[script_id] = found.value

        exported_at = self.clock().isoformat()
        bundle = {
            "metadata": {
                "exportedAt": exported_at,
                "filters": _filters(project_root, None, ids, tags),
                "totalSessions": len(selected.value),
                "totalScripts": len(scripts),
                "totalTerminalCollections": len(collections),
            },
            SESSIONS_KEY: [s.to_document() for s in selected.value],
            BUNDLED_SCRIPTS_KEY: [s.to_document() for s in scripts.values()],
            BUNDLED_COLLECTIONS_KEY: [c.to_document() for c in collections.values()],
        }
        written = self._write_bundle("sessions", bundle, output)
        if not written.ok:
            return written
        counts = {"sessions": len(selected.value), "scripts": len(scripts), "terminalCollections": len(collections)}
        return Result.success(ExportResult(written.value, exported_at, counts, errors))

    # -- import ------------------------------------------------------------

    def load_bundle(self, path: Union[str, Path]) -> Result[dict]:
        path = Path(path).expanduser()
        try:
            bundle = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Result.failure(ErrorKind.NOT_FOUND, f"Import file not found: {path}", path=str(path))
        except (OSError, UnicodeDecodeError) as e:
            return Result.failure(ErrorKind.STORAGE_READ_FAILED, f"Could not read import file: {e}", path=str(path))
        except json.JSONDecodeError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, f"Import file is not valid JSON: {e}", path=str(path))
        if not isinstance(bundle, dict):
            return Result.failure(ErrorKind.INVALID_INPUT, "Import file must contain a JSON object", path=str(path))
        return Result.success(bundle)

    @staticmethod
    def _free_id(repository: IndexedRepository, wanted: Optional[str]) -> str:
        """Keep the exported id unless it is taken or unusable."""
        if wanted:
            existing = repository.get(wanted)
            if existing.kind == ErrorKind.NOT_FOUND:
                return wanted
        return str(uuid.uuid4())

    def _import_script(self, data: dict, id_map: Dict[str, str], result: ImportResult) -> Optional[bool]:
        """Create one script if absent. Returns True if created, False if skipped, None on error."""
        if not isinstance(data, dict):
            result.errors.append("Skipping malformed script entry")
            return None
        try:
            script = Script.from_document(data)
        except ValidationError as e:
            result.errors.append(f"Invalid script '{data.get('name', '?')}': {validation_message(e)}")
            return None
        script = script.model_copy(update={"root_path": normalize_root(script.root_path)})
        existing = self.scripts.repository.find_by_name(script.name, script.root_path)
        if existing.ok:
            id_map[script.id] = existing.value.id
            return False
        new_id = self._free_id(self.scripts.repository, script.id)
        created = self.scripts.add_script(script.model_copy(update={"id": new_id}))
        if not created.ok:
            result.errors.append(f"Script '{script.name}': {created.error.message}")
            return None
        id_map[script.id] = new_id
        return True

    def _import_scripts(self, items: List[dict], id_map: Dict[str, str], result: ImportResult) -> None:
        for data in items:
            outcome = self._import_script(data, id_map, result)
            if outcome is True:
                result.scripts_created += 1
            elif outcome is False:
                result.scripts_skipped += 1

    def _import_collection(
        self, data: dict, script_ids: Dict[str, str], collection_ids: Dict[str, str], result: ImportResult
    ) -> Optional[bool]:
        if not isinstance(data, dict):
            result.errors.append("Skipping malformed terminal collection entry")
            return None
        data = {key: value for key, value in data.items() if key != SCRIPTS_KEY}
        try:
            collection = TerminalCollection.from_document(data)
        except ValidationError as e:
            result.errors.append(f"Invalid terminal collection '{data.get('name', '?')}': {validation_message(e)}")
            return None
        root = normalize_root(collection.root_path)
        existing = self.collections.repository.find_by_name(collection.name, root)
        if existing.ok:
            collection_ids[collection.id] = existing.value.id
            return False

        references = []
        for reference in collection.script_references:
            mapped = script_ids.get(reference.id, reference.id)
            if self.scripts.repository.get(mapped).ok:
                references.append(reference.model_copy(update={"id": mapped}))
            else:
                result.errors.append(
                    f"Terminal collection '{collection.name}': referenced script {reference.id} is not available"
                )
        new_id = self._free_id(self.collections.repository, collection.id)
        created = self.collections.repository.create(collection.model_copy(
            update={"id": new_id, "root_path": root, "script_references": references}
        ))
        if not created.ok:
            result.errors.append(f"Terminal collection '{collection.name}': {created.error.message}")
            return None
        collection_ids[collection.id] = new_id
        return True

    def import_scripts(self, bundle: dict) -> Result[ImportResult]:
        items = bundle.get(SCRIPTS_KEY)
        if not isinstance(items, list):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Bundle has no '{SCRIPTS_KEY}' list")
        result = ImportResult(total_processed=len(items))
        self._import_scripts(items, {}, result)
        result.created, result.skipped = result.scripts_created, result.scripts_skipped
        logger.info(f"Imported scripts: {result.created} created, {result.skipped} skipped")
        return Result.success(result)

    def import_collections(self, bundle: dict) -> Result[ImportResult]:
        items = bundle.get(COLLECTIONS_KEY)
        if not isinstance(items, list):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Bundle has no '{COLLECTIONS_KEY}' list")
        result = ImportResult(total_processed=len(items))
        script_ids: Dict[str, str] = {}
        for data in items:
            if not isinstance(data, dict):
                result.errors.append("Skipping malformed terminal collection entry")
                continue
            self._import_scripts(_entries(data, SCRIPTS_KEY), script_ids, result)
            outcome = self._import_collection(data, script_ids, {}, result)
            if outcome is True:
                result.collections_created += 1
            elif outcome is False:
                result.collections_skipped += 1
        result.created, result.skipped = result.collections_created, result.collections_skipped
        logger.info(f"Imported terminal collections: {result.created} created, {result.skipped} skipped")
        return Result.success(result)

    def import_sessions(self, bundle: dict) -> Result[ImportResult]:
        items = bundle.get(SESSIONS_KEY)
        if not isinstance(items, list):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Bundle has no '{SESSIONS_KEY}' list")
        result = ImportResult(total_processed=len(items))
        script_ids: Dict[str, str] = {}
        collection_ids: Dict[str, str] = {}
        self._import_scripts(_entries(bundle, BUNDLED_SCRIPTS_KEY), script_ids, result)
        for data in _entries(bundle, BUNDLED_COLLECTIONS_KEY):
            outcome = self._import_collection(data, script_ids, collection_ids, result)
            if outcome is True:
                result.collections_created += 1
            elif outcome is False:
                result.collections_skipped += 1

        for data in items:
            if not isinstance(data, dict):
                result.errors.append("Skipping malformed session entry")
                continue
            try:
                session = Session.from_document(data)
            except ValidationError as e:
                result.errors.append(f"Invalid session '{data.get('name', '?')}': {validation_message(e)}")
                continue
            root = normalize_root(session.project_root)
            if self.sessions.repository.find_by_name(session.name, root).ok:
                result.skipped += 1
                continue
            session = session.model_copy(update={
                "id": self._free_id(self.sessions.repository, session.id),
                "project_root": root,
                "scripts": [script_ids.get(i, i) for i in session.scripts],
                "terminal_collections": [collection_ids.get(i, i) for i in session.terminal_collections],
            })
            created = self.sessions.add_session(session)
            if created.ok:
                result.created += 1
            else:
                result.errors.append(f"Session '{session.name}': {created.error.message}")
        logger.info(f"Imported sessions: {result.created} created, {result.skipped} skipped")
        return Result.success(result)

    def import_file(self, path: Union[str, Path]) -> Result[ImportResult]:
        """Import a bundle, choosing the entity kind from its top-level key."""
        loaded = self.load_bundle(path)
        if not loaded.ok:
            return loaded
        bundle = loaded.value
        if SESSIONS_KEY in bundle:
            return self.import_sessions(bundle)
        if COLLECTIONS_KEY in bundle:
            return self.import_collections(bundle)
        if SCRIPTS_KEY in bundle:
            return self.import_scripts(bundle)
        return Result.failure(ErrorKind.INVALID_INPUT, "Unrecognised bundle: expected sessions, terminalCollections or scripts")
