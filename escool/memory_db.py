"""
In-memory storage backend for development, tests and DynamoDB fallback.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Mapping, Optional

from escool.db import (
    COURSES,
    ENTITY_KINDS,
    MODULES,
    BaseDbClient,
    EntityKind,
    matches,
)
from escool.models import Lesson, Record


class InMemoryDbClient(BaseDbClient):
    """Dict-backed storage with per-entity integer counters starting at 1."""

    def __init__(self, seed: bool = True):
        self._lock = threading.RLock()
        self.tables: Dict[str, Dict[int, Record]] = {}
        self.counters: Dict[str, int] = {}
        self.reset()
        if seed:
            # Imported lazily: the seed module builds records via this client.
            from escool.seed import seed_demo_data

            seed_demo_data(self)

    def reset(self) -> None:
        """Clear all stored data and restart every counter (useful in tests)."""
        with self._lock:
            self.tables = {kind.name: {} for kind in ENTITY_KINDS}
            self.counters = {kind.name: 1 for kind in ENTITY_KINDS}

    def _get(self, kind: EntityKind, record_id: int) -> Optional[Record]:
        with self._lock:
            record = self.tables[kind.name].get(record_id)
            return copy.deepcopy(record) if record else None

    def _scan(self, kind: EntityKind, filters: Mapping[str, Any]) -> list:
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self.tables[kind.name].values()
                if matches(record, filters)
            ]

    def _next_id(self, kind: EntityKind) -> int:
        with self._lock:
            record_id = self.counters[kind.name]
            self.counters[kind.name] = record_id + 1
            return record_id

    def _put(self, kind: EntityKind, record: Record) -> None:
        with self._lock:
            self.tables[kind.name][record.id] = copy.deepcopy(record)

    def _update(
        self, kind: EntityKind, record_id: int, changes: Mapping[str, Any]
    ) -> Optional[Record]:
        with self._lock:
            existing = self.tables[kind.name].get(record_id)
            if existing is None:
                return None
            merged = kind.record_cls.from_dict({**existing.as_dict(), **changes})
            self.tables[kind.name][record_id] = merged
            return copy.deepcopy(merged)

    def _delete(self, kind: EntityKind, record_id: int) -> bool:
        with self._lock:
            return self.tables[kind.name].pop(record_id, None) is not None

    def create_lesson(self, lesson: Lesson) -> Lesson:
        with self._lock:
            created = super().create_lesson(lesson)
            self._increment_lessons_count(created.module_id)
        return created

    def _increment_lessons_count(self, module_id: int) -> None:
        module = self.tables[MODULES.name].get(module_id)
        if module is None:
            return
        course = self.tables[COURSES.name].get(module.course_id)
        if course is None:
            return
        course.lessons_count = (course.lessons_count or 0) + 1
