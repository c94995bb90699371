"""Reset service: wipes stored entities and configuration on request."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..core.repository import IndexedRepository
from ..core.result import ErrorKind, Result
from ..utils.config_manager import ConfigManager

logger = logging.getLogger(__name__)

RESET_ITEMS = ("sessions", "scripts", "terminals", "config")


@dataclass
class ResetResult:
    """What a reset removed, in the order it ran."""
    reset_items: List[str] = field(default_factory=list)
    removed: Dict[str, int] = field(default_factory=dict)


class ResetService:
    """Clears sessions, scripts, terminal collections and configuration."""

    def __init__(
        self,
        sessions: IndexedRepository,
        scripts: IndexedRepository,
        collections: IndexedRepository,
        config_manager: ConfigManager,
    ):
        self.repositories = {"sessions": sessions, "scripts": scripts, "terminals": collections}
        self.config_manager = config_manager

    def reset(
        self,
        sessions: bool = False,
        scripts: bool = False,
        terminals: bool = False,
        config: bool = False,
    ) -> Result[ResetResult]:
        """Reset the selected parts; stops at the first part that cannot be cleared.

        A failure carries the parts already reset in ``meta["reset_items"]``.
        """
        selected = {"sessions": sessions, "scripts": scripts, "terminals": terminals, "config": config}
        if not any(selected.values()):
            return Result.failure(ErrorKind.INVALID_INPUT, "Nothing selected to reset")

        outcome = ResetResult()
        for item, repository in self.repositories.items():
            if not selected[item]:
                continue
            cleared = repository.clear()
            if not cleared.ok:
                logger.error(f"Reset of {item} failed: {cleared.error.message}")
                return Result.failure(cleared.kind, cleared.error.message, reset_items=outcome.reset_items)
            outcome.reset_items.append(item)
            outcome.removed[item] = cleared.value

        if config:
            try:
                self.config_manager.reset_config()
            except OSError as e:
                logger.error(f"Reset of config failed: {e}")
                return Result.failure(
                    ErrorKind.STORAGE_WRITE_FAILED, f"Could not reset configuration: {e}",
                    reset_items=outcome.reset_items,
                )
            outcome.reset_items.append("config")

        logger.info(f"Reset: {', '.join(outcome.reset_items)}")
        return Result.success(outcome)
