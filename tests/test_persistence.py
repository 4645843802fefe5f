import json
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from todopad.errors import PersistenceError
from todopad.models import Priority, RecurringType, Subtask, Task
from todopad.persistence import STORAGE_KEY, KeyValueStore, TaskPersistence
from todopad.query import SortBy, view


@pytest.fixture
def persistence(tmp_path):
    return TaskPersistence(KeyValueStore(tmp_path / "store.json"))


def _write_raw(persistence, value):
    persistence.kv.filepath.write_text(json.dumps({STORAGE_KEY: value}), encoding="utf-8")


def test_missing_file_loads_empty(persistence):
    assert persistence.load() == []


def test_save_and_load_round_trip(persistence):
    tasks = [
        Task(
            title="Report",
            description="Q3 numbers",
            due_date=datetime(2024, 7, 1, 17, 0),
            priority=Priority.HIGH,
            category="work",
            tags=["deadline"],
            subtasks=[Subtask(title="Draft", created_at=datetime(2024, 6, 2))],
            is_recurring=True,
            recurring_type=RecurringType.MONTHLY,
            created_at=datetime(2024, 6, 1, 8, 15, 30, 123000),
        ),
        Task(title="Plain", created_at=datetime(2024, 6, 3)),
    ]
    persistence.save(tasks)
    assert persistence.load() == tasks


def test_saved_layout_uses_one_namespaced_key(persistence):
    persistence.save([Task(title="Plain", created_at=datetime(2024, 6, 3))])
    data = json.loads(persistence.kv.filepath.read_text(encoding="utf-8"))

    assert list(data) == [STORAGE_KEY]
    record = data[STORAGE_KEY][0]
    assert record["createdAt"] == "2024-06-03T00:00:00"
    assert record["priority"] == "medium"
    # Optional fields are omitted
    assert "dueDate" not in record
    assert "category" not in record
    assert "isRecurring" not in record


def test_load_revives_javascript_dates(persistence):
    _write_raw(persistence, [{
        "id": "1718000000000",
        "title": "From the browser",
        "completed": False,
        "priority": "low",
        "tags": [],
        "subtasks": [{"id": "s1", "title": "x", "completed": True, "createdAt": "2024-06-10T06:13:20.000Z"}],
        "createdAt": "2024-06-10T06:13:20.000Z",
        "dueDate": "2024-06-12T00:00:00.000Z",
    }])
    task = persistence.load()[0]

    assert task.id == "1718000000000"
    assert isinstance(task.created_at, datetime) and task.created_at.tzinfo is None
    assert isinstance(task.due_date, datetime)
    assert isinstance(task.subtasks[0].created_at, datetime)
    assert task.subtasks[0].completed


def test_bad_dates_fall_back_to_now(persistence):
    _write_raw(persistence, [
        {"id": "a", "title": "No date"},
        {"id": "b", "title": "Bad date", "createdAt": "yesterday-ish", "dueDate": 12,
         "subtasks": [{"id": "s", "title": "sub", "createdAt": None}]},
        {"id": "c", "title": "Year one with offset", "createdAt": "0001-01-01T00:00:00+05:00"},
    ])
    before = datetime.now()
    tasks = persistence.load()

    assert [t.id for t in tasks] == ["a", "b", "c"]
    for task in tasks:
        assert task.created_at >= before
    assert tasks[1].due_date >= before
    assert tasks[1].subtasks[0].created_at >= before


def test_malformed_records_are_skipped(persistence):
    _write_raw(persistence, ["junk", 42, {"id": "ok", "title": "Fine", "createdAt": "2024-01-01T00:00:00"}])
    assert [t.id for t in persistence.load()] == ["ok"]


def test_inconsistent_recurrence_is_dropped(persistence):
    _write_raw(persistence, [
        {"id": "a", "title": "Flag only", "isRecurring": True},
        {"id": "b", "title": "Type only", "recurringType": "daily"},
        {"id": "c", "title": "Unknown type", "isRecurring": True, "recurringType": "hourly"},
    ])
    for task in persistence.load():
        assert task.is_recurring is False and task.recurring_type is None


def test_wrong_field_types_are_dropped(persistence):
    _write_raw(persistence, [
        {"id": "a", "title": "Numbers", "description": 5, "category": 5},
        {"id": "b", "title": "Empty category", "description": ["x"], "category": ""},
        {"id": "c", "title": "Fine", "category": "work"},
    ])
    tasks = persistence.load()

    assert [(t.description, t.category) for t in tasks] == [(None, None), (None, None), (None, "work")]
    assert view(tasks, search_query="x") == []
    assert [t.id for t in view(tasks, sort_by=SortBy.CATEGORY)] == ["c", "a", "b"]


def test_string_flags_are_not_truthy(persistence):
    _write_raw(persistence, [
        {"id": "a", "title": "Quoted", "completed": "false", "isRecurring": "false", "recurringType": "daily",
         "subtasks": [{"id": "s", "title": "sub", "completed": "true"}]},
        {"id": "b", "title": "Done", "completed": True},
    ])
    first, second = persistence.load()

    assert first.completed is False
    assert first.is_recurring is False
    assert first.subtasks[0].completed is False
    assert second.completed is True


def test_duplicate_ids_are_reassigned(persistence):
    _write_raw(persistence, [
        {"id": "1", "title": "first", "subtasks": [
            {"id": "s", "title": "one"}, {"id": "s", "title": "two"}, {"id": "t", "title": "three"},
        ]},
        {"id": "1", "title": "second"},
        {"id": "2", "title": "third"},
    ])
    tasks = persistence.load()

    ids = [t.id for t in tasks]
    assert ids[0] == "1" and ids[2] == "2"
    assert len(set(ids)) == 3
    sub_ids = [s.id for s in tasks[0].subtasks]
    assert sub_ids[0] == "s" and sub_ids[2] == "t"
    assert len(set(sub_ids)) == 3


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", json.dumps({STORAGE_KEY: {"a": 1}})])
def test_corrupt_store_loads_empty(persistence, content):
    persistence.kv.filepath.write_text(content, encoding="utf-8")
    assert persistence.load() == []


def test_clear_removes_only_the_task_key(persistence):
    persistence.kv.set("other", 1)
    persistence.save([Task(title="x")])
    persistence.clear()

    assert persistence.load() == []
    assert persistence.kv.get("other") == 1


def test_save_failure_raises_persistence_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    persistence = TaskPersistence(KeyValueStore(blocker / "store.json"))

    with pytest.raises(PersistenceError):
        persistence.save([Task(title="x")])
