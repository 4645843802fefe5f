import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from todopad.models import Priority, RecurringType, Subtask, Task
from todopad.transfer import (
    backup_filename,
    dumps_document,
    export_document,
    import_document,
    loads_document,
    read_backup,
    write_backup,
)


@pytest.fixture
def tasks():
    return [
        Task(
            title="Gym",
            priority=Priority.LOW,
            category="health",
            tags=["routine"],
            subtasks=[Subtask(title="Stretch", completed=True, created_at=datetime(2024, 2, 1))],
            is_recurring=True,
            recurring_type=RecurringType.WEEKLY,
            created_at=datetime(2024, 2, 1, 7, 0),
        ),
        Task(title="Read", description="Chapter 4", completed=True,
             due_date=datetime(2024, 2, 9), created_at=datetime(2024, 2, 2)),
    ]


def test_export_document_shape(tasks):
    doc = export_document(tasks, now=datetime(2024, 2, 3, 10, 0, tzinfo=timezone.utc))

    assert set(doc) == {"tasks", "exportDate", "version"}
    assert doc["version"] == "1.0"
    assert doc["exportDate"] == "2024-02-03T10:00:00.000Z"
    assert [t["title"] for t in doc["tasks"]] == ["Gym", "Read"]


def test_round_trip_is_exact(tasks):
    text = dumps_document(export_document(tasks))
    assert import_document(loads_document(text)) == tasks


@pytest.mark.parametrize("doc", [
    {"notTasks": []},
    {"tasks": "nope"},
    {"tasks": None},
    [],
    "tasks",
    None,
])
def test_import_rejects_bad_shapes(doc):
    assert import_document(doc) is None


def test_loads_document_rejects_garbage():
    assert loads_document("{oops") is None


def test_backup_files(tmp_path, tasks):
    now = datetime(2024, 2, 3, 10, 0)
    assert backup_filename(now) == "todo-backup-2024-02-03.json"

    path = write_backup(tmp_path, tasks, now=now)
    assert path == tmp_path / "todo-backup-2024-02-03.json"
    assert import_document(read_backup(path)) == tasks

    explicit = write_backup(tmp_path / "mine.json", tasks)
    assert json.loads(explicit.read_text())["version"] == "1.0"


def test_read_backup_missing_or_unparsable(tmp_path):
    assert read_backup(tmp_path / "absent.json") is None
    bad = tmp_path / "bad.json"
    bad.write_text("not json at all")
    assert read_backup(bad) is None
