"""ProgramRepository - Group class templates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from musicreg.domain.program import GroupClass
from musicreg.repositories.tables import CLASSES
from musicreg.store.exceptions import StoreError

if TYPE_CHECKING:
    from musicreg.store.base import TableStore

logger = logging.getLogger("musicreg.repositories.program")


class ProgramRepository:
    """Cached read access to the classes table."""

    def __init__(self, store: TableStore) -> None:
        self._store = store
        self._classes: list[GroupClass] | None = None

    def get_classes(self, force_refresh: bool = False) -> list[GroupClass]:
        """All classes."""
        if force_refresh or self._classes is None:
            try:
                rows = self._store.get_all_records(CLASSES, GroupClass.from_database_row)
            except StoreError as e:
                logger.error("Failed to load classes: %s", e)
                raise
            self._classes = [group_class for group_class in rows if group_class is not None]
        return list(self._classes)

    def get_class_by_id(self, class_id: str) -> GroupClass | None:
        return next((c for c in self.get_classes() if c.id == class_id), None)

    def get_classes_by_instructor_id(self, instructor_id: str) -> list[GroupClass]:
        return [c for c in self.get_classes() if c.instructor_id == instructor_id]

    def clear_cache(self) -> None:
        self._classes = None
        self._store.clear_cache(CLASSES)
