"""Indexed JSON document repository shared by every entity kind."""

import logging
import re
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from ..models.base import DocumentModel, utc_now
from .constants import DOCUMENT_SUFFIX, INDEX_FILE_NAME, INDEX_VERSION
from .file_storage import FileStore, LockTimeoutError
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=DocumentModel)

_SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validation_message(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


class IndexedRepository(Generic[M]):
    """One JSON document per entity plus one index document per kind.

    The index maps id -> {name, scope, referenceFile}. It is a derived cache:
    documents on disk that are missing from it are added back on read, and a
    corrupt index is rebuilt from a full document scan.
    """

    kind: str = ""
    label: str = "Entity"
    model: Type[M]
    scope_field: str = ""

    def __init__(self, store: FileStore):
        self.store = store
        self.index_path = f"{self.kind}/{INDEX_FILE_NAME}"

    # -- paths and entries -------------------------------------------------

    def document_path(self, entity_id: str) -> str:
        return f"{self.kind}/{entity_id}{DOCUMENT_SUFFIX}"

    def scope_of(self, entity: M) -> str:
        return getattr(entity, self.scope_field)

    def _entry(self, entity: M) -> dict:
        return {
            "name": entity.name,
            "scope": self.scope_of(entity),
            "referenceFile": self.document_path(entity.id),
        }

    def _id_from_path(self, rel_path: str) -> str:
        return rel_path.rsplit("/", 1)[-1][: -len(DOCUMENT_SUFFIX)]

    # -- index handling ----------------------------------------------------

    def _read_index(self) -> Result[Dict[str, dict]]:
        result = self.store.read_json(self.index_path)
        if not result.ok:
            if result.kind == ErrorKind.NOT_FOUND:
                return Result.success({})
            if result.kind == ErrorKind.STORAGE_READ_FAILED:
                logger.warning(f"{self.label} index unreadable, rebuilding from documents")
                return self._rebuild_from_scan()
            return result
        document = result.value
        entries = document.get("entries") if isinstance(document, dict) else None
        if not isinstance(entries, dict):
            logger.warning(f"{self.label} index malformed, rebuilding from documents")
            return self._rebuild_from_scan()
        return Result.success(entries)

    def _write_index(self, entries: Dict[str, dict]) -> Result[None]:
        return self.store.write_json(self.index_path, {"version": INDEX_VERSION, "entries": entries})

    def _scan_documents(self, known: Optional[Dict[str, dict]] = None) -> Result[Dict[str, dict]]:
        """Build entries for every readable document not already in `known`."""
        entries = dict(known or {})
        listing = self.store.list(self.kind)
        if not listing.ok:
            return listing
        for rel_path in listing.value:
            if rel_path == self.index_path:
                continue
            entity_id = self._id_from_path(rel_path)
            if entity_id in entries:
                continue
            loaded = self._load_document(entity_id)
            if loaded.ok:
                entries[entity_id] = self._entry(loaded.value)
            else:
                logger.warning(f"Skipping unreadable {self.label} document {rel_path}: {loaded.error}")
        return Result.success(entries)

    def _rebuild_from_scan(self) -> Result[Dict[str, dict]]:
        scanned = self._scan_documents()
        if scanned.ok:
            write = self._write_index(scanned.value)
            if not write.ok:
                logger.warning(f"Could not persist rebuilt {self.label} index: {write.error}")
        return scanned

    def load_index(self) -> Result[Dict[str, dict]]:
        """Read the index, repairing entries for documents it is missing."""
        result = self._read_index()
        if not result.ok:
            return result
        healed = self._scan_documents(result.value)
        if not healed.ok:
            return healed
        if healed.value != result.value:
            added = sorted(set(healed.value) - set(result.value))
            logger.warning(f"Repairing {self.label} index, adding {', '.join(added) or 'rebuilt entries'}")
            write = self._write_index(healed.value)
            if not write.ok:
                logger.warning(f"Could not persist repaired {self.label} index: {write.error}")
        return healed

    def rebuild_index(self) -> Result[int]:
        """Rebuild the index from a full document scan."""
        with self.store.lock(self.kind):
            scanned = self._scan_documents()
            if not scanned.ok:
                return scanned
            write = self._write_index(scanned.value)
            if not write.ok:
                return write
        logger.info(f"Rebuilt {self.label} index with {len(scanned.value)} entries")
        return Result.success(len(scanned.value))

    # -- documents ---------------------------------------------------------

    def _load_document(self, entity_id: str) -> Result[M]:
        result = self.store.read_json(self.document_path(entity_id))
        if not result.ok:
            return result
        try:
            return Result.success(self.model.from_document(result.value))
        except ValidationError as e:
            logger.error(f"{self.label} document {entity_id} failed validation")
            return Result.failure(
                ErrorKind.STORAGE_READ_FAILED,
                f"{self.label} document is invalid: {validation_message(e)}",
                id=entity_id,
            )

    def _write_document(self, entity: M) -> Result[None]:
        return self.store.write_json(self.document_path(entity.id), entity.to_document())

    def _name_taken(self, entries: Dict[str, dict], name: str, scope: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            entry_id != exclude_id and entry.get("name") == name and entry.get("scope") == scope
            for entry_id, entry in entries.items()
        )

    # -- public operations -------------------------------------------------

    def create(self, entity: M) -> Result[M]:
        """Write the document, then the index; roll back the document if the index write fails."""
        logger.debug(f"Creating {self.label} {entity.name} ({entity.id})")
        if not _SAFE_ID.match(entity.id):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Invalid {self.label} id: {entity.id!r}", id=entity.id)
        try:
            with self.store.lock(self.kind):
                index = self.load_index()
                if not index.ok:
                    return index
                entries = index.value
                if entity.id in entries:
                    return Result.failure(
                        ErrorKind.ALREADY_EXISTS, f"{self.label} with id '{entity.id}' already exists", id=entity.id
                    )
                scope = self.scope_of(entity)
                if self._name_taken(entries, entity.name, scope):
                    return Result.failure(
                        ErrorKind.ALREADY_EXISTS,
                        f"{self.label} '{entity.name}' already exists in {scope}",
                        name=entity.name,
                        scope=scope,
                    )

                write = self._write_document(entity)
                if not write.ok:
                    return write
                entries[entity.id] = self._entry(entity)
                index_write = self._write_index(entries)
                if not index_write.ok:
                    logger.error(f"Index update failed, rolling back {self.label} document {entity.id}")
                    self.store.delete(self.document_path(entity.id))
                    return index_write
        except LockTimeoutError as e:
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, str(e))
        logger.info(f"{self.label} created: {entity.name}")
        return Result.success(entity)

    def get(self, entity_id: str) -> Result[M]:
        index = self.load_index()
        if not index.ok:
            return index
        if entity_id not in index.value:
            return Result.failure(ErrorKind.NOT_FOUND, f"{self.label} '{entity_id}' not found", id=entity_id)
        result = self._load_document(entity_id)
        if result.kind == ErrorKind.NOT_FOUND:
            logger.warning(f"{self.label} index references missing document {entity_id}")
            return Result.failure(ErrorKind.NOT_FOUND, f"{self.label} '{entity_id}' not found", id=entity_id)
        return result

    def find_by_name(self, name: str, scope: Optional[str] = None) -> Result[M]:
        """Find by name, narrowed to a scope when one is given."""
        index = self.load_index()
        if not index.ok:
            return index
        matches = [
            entry_id for entry_id, entry in index.value.items()
            if entry.get("name") == name and (scope is None or entry.get("scope") == scope)
        ]
        if not matches:
            where = f" in {scope}" if scope else ""
            return Result.failure(ErrorKind.NOT_FOUND, f"{self.label} '{name}' not found{where}", name=name)
        if len(matches) > 1:
            scopes = sorted(index.value[m].get("scope", "") for m in matches)
            return Result.failure(
                ErrorKind.INVALID_INPUT,
                f"{self.label} name '{name}' is ambiguous; specify one of: {', '.join(scopes)}",
                name=name,
            )
        return self.get(matches[0])

    def resolve(self, id_or_name: str, scope: Optional[str] = None) -> Result[M]:
        """Look up by id first, then by name."""
        by_id = self.get(id_or_name)
        if by_id.ok or by_id.kind != ErrorKind.NOT_FOUND:
            return by_id
        return self.find_by_name(id_or_name, scope)

    def list(self, scope: Optional[str] = None) -> Result[List[M]]:
        """Load every indexed document, skipping missing ones with a warning."""
        index = self.load_index()
        if not index.ok:
            return index
        items, warnings = [], []
        for entity_id, entry in index.value.items():
            if scope is not None and entry.get("scope") != scope:
                continue
            loaded = self._load_document(entity_id)
            if loaded.ok:
                items.append(loaded.value)
            elif loaded.kind in (ErrorKind.NOT_FOUND, ErrorKind.STORAGE_READ_FAILED):
                message = f"Skipped {self.label} '{entry.get('name', entity_id)}': {loaded.error.message}"
                logger.warning(message)
                warnings.append(message)
            else:
                return loaded
        items.sort(key=lambda item: (item.created_at, item.name))
        return Result.success(items, warnings=warnings)

    def update(self, entity_id: str, changes: Dict[str, Any]) -> Result[M]:
        """Partially merge `changes` into the stored document.

        Keys absent from `changes` are left unchanged; keys present overwrite,
        including None and empty values. The index is only rewritten when the
        name or scope changes.
        """
        logger.debug(f"Updating {self.label} {entity_id} with {sorted(changes)}")
        try:
            with self.store.lock(self.kind):
                current = self.get(entity_id)
                if not current.ok:
                    return current
                old = current.value
                merged = old.model_dump()
                merged.update(changes)
                merged.update(id=old.id, created_at=old.created_at, updated_at=utc_now())
                try:
                    updated = self.model.model_validate(merged)
                except ValidationError as e:
                    return Result.failure(ErrorKind.INVALID_INPUT, validation_message(e), id=entity_id)

                identity_changed = (updated.name, self.scope_of(updated)) != (old.name, self.scope_of(old))
                entries = None
                if identity_changed:
                    index = self.load_index()
                    if not index.ok:
                        return index
                    entries = index.value
                    if self._name_taken(entries, updated.name, self.scope_of(updated), exclude_id=entity_id):
                        return Result.failure(
                            ErrorKind.ALREADY_EXISTS,
                            f"{self.label} '{updated.name}' already exists in {self.scope_of(updated)}",
                            name=updated.name,
                        )

                write = self._write_document(updated)
                if not write.ok:
                    return write
                if entries is not None:
                    entries[entity_id] = self._entry(updated)
                    index_write = self._write_index(entries)
                    if not index_write.ok:
                        logger.error(f"Index update failed, restoring previous {self.label} document")
                        self._write_document(old)
                        return index_write
        except LockTimeoutError as e:
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, str(e))
        logger.info(f"{self.label} updated: {updated.name}")
        return Result.success(updated)

    def delete(self, entity_id: str) -> Result[None]:
        """Remove document and index entry.

        NOT_FOUND when neither exists; when only one of them exists the other
        side is repaired and the delete succeeds.
        """
        logger.debug(f"Deleting {self.label} {entity_id}")
        try:
            with self.store.lock(self.kind):
                index = self._read_index()
                if not index.ok:
                    return index
                entries = index.value
                doc_path = self.document_path(entity_id)
                exists = self.store.exists(doc_path)
                if not exists.ok:
                    return exists
                in_index, on_disk = entity_id in entries, exists.value
                if not in_index and not on_disk:
                    return Result.failure(ErrorKind.NOT_FOUND, f"{self.label} '{entity_id}' not found", id=entity_id)

                backup = self.store.read(doc_path) if on_disk else None
                if on_disk:
                    removed = self.store.delete(doc_path)
                    if not removed.ok:
                        return removed
                if in_index:
                    del entries[entity_id]
                    index_write = self._write_index(entries)
                    if not index_write.ok:
                        if backup is not None and backup.ok:
                            self.store.write(doc_path, backup.value)
                        return index_write
                if in_index != on_disk:
                    logger.warning(f"Repaired inconsistent {self.label} entry {entity_id} during delete")
        except LockTimeoutError as e:
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, str(e))
        logger.info(f"{self.label} deleted: {entity_id}")
        return Result.success()

    def entries(self, scope: Optional[str] = None) -> Result[List[Tuple[str, dict]]]:
        """Raw index entries, optionally narrowed to one scope."""
        index = self.load_index()
        if not index.ok:
            return index
        return Result.success([
            (entity_id, entry) for entity_id, entry in index.value.items()
            if scope is None or entry.get("scope") == scope
        ])

    def clear(self) -> Result[int]:
        """Remove every document of this kind and leave an empty index.

        Returns how many indexed entities were removed.
        """
        logger.debug(f"Clearing every {self.label}")
        try:
            with self.store.lock(self.kind):
                index = self._read_index()
                removed = len(index.value) if index.ok else 0
                wiped = self.store.remove_tree(self.kind)
                if not wiped.ok:
                    return wiped
                written = self._write_index({})
                if not written.ok:
                    return written
        except LockTimeoutError as e:
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, str(e))
        logger.info(f"Cleared {removed} {self.label} documents")
        return Result.success(removed)
