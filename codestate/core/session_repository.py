"""Session document repository."""

import logging
from typing import List, Optional

from ..models.session import Session
from .constants import SESSIONS_DIR
from .repository import IndexedRepository
from .result import Result

logger = logging.getLogger(__name__)


class SessionRepository(IndexedRepository[Session]):
    """Stores sessions under ``sessions/``; names are unique per project root."""

    kind = SESSIONS_DIR
    label = "Session"
    model = Session
    scope_field = "project_root"

    def search(self, tags: Optional[List[str]] = None, text: Optional[str] = None) -> Result[List[Session]]:
        """Sessions carrying every tag in `tags` and matching `text` in name or notes."""
        result = self.list()
        if not result.ok:
            return result
        sessions = result.value
        if tags:
            wanted = set(tags)
            sessions = [s for s in sessions if wanted.issubset(s.tags)]
        if text:
            needle = text.lower()
            sessions = [
                s for s in sessions
                if needle in s.name.lower() or needle in (s.notes or "").lower()
            ]
        return Result.success(sessions, warnings=result.warnings)
