import threading

import pytest

from app.services.id_sequence import DbIdSequence, InMemoryIdSequence, format_id


class FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):
        return self._value


class FakeDB:
    def __init__(self):
        self.calls = []
        self.value = 0

    def execute(self, stmt, params):
        self.calls.append((str(stmt), params))
        self.value += 1
        return FakeResult(self.value)


def test_format_pads_to_three_digits():
    assert format_id("question", 7) == "Q-007"
    assert format_id("form", 1234) == "FORM-1234"


def test_in_memory_counters_are_per_entity():
    ids = InMemoryIdSequence()
    assert [ids.next_id("question") for _ in range(2)] == ["Q-001", "Q-002"]
    assert ids.next_id("submission") == "SUB-001"
    with pytest.raises(ValueError):
        ids.next_id("widget")


def test_in_memory_ids_unique_across_threads():
    ids = InMemoryIdSequence()
    out = []

    def worker():
        for _ in range(50):
            out.append(ids.next_id("form"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(out)) == 200


def test_db_sequence_upserts_counter_row():
    db = FakeDB()
    assert DbIdSequence(db).next_id("form") == "FORM-001"
    sql, params = db.calls[0]
    assert "ON CONFLICT (entity_type)" in sql
    assert params == {"entity": "form"}
