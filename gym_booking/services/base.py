# gym_booking/services/base.py
import logging
from typing import List

from gym_booking.exceptions import PersistenceFailed
from gym_booking.store import GymStore
from gym_booking.sync import Change, Synchronizer


class BaseService:
    """
    Shared plumbing for the booking-core services.

    Subclasses validate and mutate the store while holding ``store.lock``,
    then call ``_persist`` with the row-level changes of that mutation.
    """

    def __init__(self, store: GymStore, sync: Synchronizer):
        self.store = store
        self.sync = sync
        self.logger = logging.getLogger(self.__class__.__module__)

    def _persist(self, operation: str, changes: List[Change]) -> None:
        if not changes:
            return
        try:
            self.sync.persist(self.store, changes)
        except PersistenceFailed as exc:
            self.logger.error("%s applied locally but not persisted: %s", operation, exc.message)
            if exc.details.get("reason") == "stale_write":
                self._reload([c.table for c in changes])
            raise

    def _reload(self, tables: List[str]) -> None:
        """Replace the given tables with the backend's copy after another writer won."""
        for table in dict.fromkeys(tables):
            try:
                self.store.replace_table(table, self.sync.load_table(table))
            except PersistenceFailed as exc:
                self.logger.error("Could not reload %s after stale write: %s", table, exc.message)
            else:
                self.logger.info("Reloaded %s after stale write", table)

    def log_operation(self, operation: str, **context) -> None:
        self.logger.info("%s %s", operation, " ".join(f"{k}={v}" for k, v in context.items()))
