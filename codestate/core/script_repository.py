"""Script document repository."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models.script import LifecycleEvent, Script
from .constants import SCRIPTS_DIR
from .repository import IndexedRepository
from .result import Result

logger = logging.getLogger(__name__)


@dataclass
class BulkDeleteResult:
    """Per-item outcome of deleting every script under a root path."""
    deleted: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.deleted) + len(self.failed)


class ScriptRepository(IndexedRepository[Script]):
    """Stores scripts under ``scripts/``; names are unique per root path."""

    kind = SCRIPTS_DIR
    label = "Script"
    model = Script
    scope_field = "root_path"

    def list_by_root_path(
        self, root_path: Optional[str] = None, lifecycle: Optional[LifecycleEvent] = None
    ) -> Result[List[Script]]:
        result = self.list(scope=root_path)
        if not result.ok or lifecycle is None:
            return result
        scripts = [s for s in result.value if lifecycle in s.lifecycle]
        return Result.success(scripts, warnings=result.warnings)

    def delete_by_root_path(self, root_path: str) -> Result[BulkDeleteResult]:
        """Delete every script under a root path, one outcome per script.

        A failed delete is recorded and the remaining scripts are still tried.
        """
        entries = self.entries(scope=root_path)
        if not entries.ok:
            return entries
        outcome = BulkDeleteResult()
        for script_id, entry in entries.value:
            result = self.delete(script_id)
            if result.ok:
                outcome.deleted.append(script_id)
            else:
                outcome.failed.append({
                    "id": script_id,
                    "name": entry.get("name", script_id),
                    "error": result.error.message,
                })
        logger.info(f"Deleted {len(outcome.deleted)} scripts under {root_path}, {len(outcome.failed)} failed")
        return Result.success(outcome)
