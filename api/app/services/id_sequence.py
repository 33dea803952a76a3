from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol

from sqlalchemy import text

ID_PREFIXES = {
    "form": "FORM",
    "question": "Q",
    "submission": "SUB",
}


def format_id(entity: str, value: int) -> str:
    return f"{ID_PREFIXES[entity]}-{value:03d}"


class IdSequence(Protocol):
    def next_id(self, entity: str) -> str: ...


class DbIdSequence:
    """Counter rows in ``id_counters``; shares the caller's transaction."""

    def __init__(self, db) -> None:
        self._db = db

    def next_id(self, entity: str) -> str:
        if entity not in ID_PREFIXES:
            raise ValueError(f"unknown id entity '{entity}'")
        value = self._db.execute(
            text(
                """
                INSERT INTO id_counters (entity_type, current_value)
                VALUES (:entity, 1)
                ON CONFLICT (entity_type) DO UPDATE SET current_value = id_counters.current_value + 1
                RETURNING current_value
                """
            ),
            {"entity": entity},
        ).scalar()
        return format_id(entity, int(value))


class InMemoryIdSequence:
    def __init__(self) -> None:
        self._values: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def next_id(self, entity: str) -> str:
        if entity not in ID_PREFIXES:
            raise ValueError(f"unknown id entity '{entity}'")
        with self._lock:
            self._values[entity] += 1
            return format_id(entity, self._values[entity])
