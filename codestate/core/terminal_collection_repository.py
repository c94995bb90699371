"""Terminal collection document repository."""

import logging
from typing import List

from ..models.terminal_collection import TerminalCollection
from .constants import TERMINALS_DIR
from .repository import IndexedRepository
from .result import Result

logger = logging.getLogger(__name__)


class TerminalCollectionRepository(IndexedRepository[TerminalCollection]):
    """Stores terminal collections under ``terminals/``."""

    kind = TERMINALS_DIR
    label = "Terminal collection"
    model = TerminalCollection
    scope_field = "root_path"

    def referencing(self, script_id: str) -> Result[List[TerminalCollection]]:
        """Collections holding a reference to the given script."""
        result = self.list()
        if not result.ok:
            return result
        return Result.success(
            [c for c in result.value if any(ref.id == script_id for ref in c.script_references)],
            warnings=result.warnings,
        )
