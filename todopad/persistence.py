import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import PersistenceError
from .models import Priority, RecurringType, Subtask, Task, new_id

logger = logging.getLogger(__name__)

STORAGE_KEY = "todopad.tasks"


# ---- record codec (shared with import/export) ----

def _format_date(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(raw: Any) -> datetime:
    """Parse an ISO-8601 string; raises ValueError/TypeError on anything else."""
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        raise TypeError(f"expected ISO date string, got {type(raw).__name__}")
    text = raw.strip()
    # JavaScript's toISOString() ends with 'Z'
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    # Keep everything naive local time so created_at values stay comparable
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _revive_date(raw: Any, field_name: str) -> datetime:
    try:
        return _parse_date(raw)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Bad %s value %r, using current time", field_name, raw)
        return datetime.now()


def serialize_subtask(subtask: Subtask) -> Dict[str, Any]:
    return {
        "id": subtask.id,
        "title": subtask.title,
        "completed": subtask.completed,
        "createdAt": _format_date(subtask.created_at),
    }


def serialize_task(task: Task) -> Dict[str, Any]:
    data = {
        "id": task.id,
        "title": task.title,
        "completed": task.completed,
        "priority": task.priority.value,
        "tags": list(task.tags),
        "subtasks": [serialize_subtask(s) for s in task.subtasks],
        "createdAt": _format_date(task.created_at),
    }
    if task.description is not None:
        data["description"] = task.description
    if task.due_date is not None:
        data["dueDate"] = _format_date(task.due_date)
    if task.category:
        data["category"] = task.category
    if task.is_recurring and task.recurring_type is not None:
        data["isRecurring"] = True
        data["recurringType"] = task.recurring_type.value
    return data


def _reassign_duplicate_ids(items: List[Any], kind: str) -> None:
    """Give every repeat of an already-seen id a fresh one; first occurrence keeps it."""
    seen = set()
    for item in items:
        if item.id in seen:
            fresh = new_id()
            logger.warning("Duplicate %s id %r, reassigned to %s", kind, item.id, fresh)
            item.id = fresh
        seen.add(item.id)


def deserialize_subtask(data: Dict[str, Any]) -> Subtask:
    return Subtask(
        id=str(data.get("id") or new_id()),
        title=str(data.get("title", "")),
        completed=data.get("completed") is True,
        created_at=_revive_date(data.get("createdAt"), "subtask createdAt"),
    )


def deserialize_task(data: Dict[str, Any]) -> Task:
    """Rebuild a Task from its JSON record, reviving date fields.

    Missing or malformed dates fall back to now. An unknown recurring type
    drops the recurrence so the flag and the type stay consistent.
    """
    due_date = None
    if data.get("dueDate"):
        due_date = _revive_date(data["dueDate"], "dueDate")

    recurring_type = None
    if data.get("isRecurring") is True and data.get("recurringType"):
        try:
            recurring_type = RecurringType(data["recurringType"])
        except ValueError:
            logger.warning("Unknown recurringType %r on task %s", data["recurringType"], data.get("id"))

    raw_tags = data.get("tags") or []
    tags = [str(t) for t in raw_tags] if isinstance(raw_tags, list) else []
    raw_subtasks = data.get("subtasks") or []
    subtasks = [deserialize_subtask(s) for s in raw_subtasks if isinstance(s, dict)] if isinstance(raw_subtasks, list) else []
    _reassign_duplicate_ids(subtasks, "subtask")

    description = data.get("description")
    category = data.get("category")

    task = Task(
        id=str(data.get("id") or new_id()),
        title=str(data.get("title", "")),
        description=description if isinstance(description, str) else None,
        completed=data.get("completed") is True,
        due_date=due_date,
        priority=Priority.parse(data.get("priority")),
        category=category if isinstance(category, str) and category else None,
        tags=tags,
        subtasks=subtasks,
        created_at=_revive_date(data.get("createdAt"), "createdAt"),
    )
    task.set_recurrence(recurring_type)
    return task


def revive_tasks(records: Any) -> List[Task]:
    """Deserialize a list of records, skipping entries that are not objects."""
    tasks = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning("Skipping malformed task record: %r", record)
            continue
        tasks.append(deserialize_task(record))
    _reassign_duplicate_ids(tasks, "task")
    return tasks


# ---- local key-value store ----

class KeyValueStore:
    """A JSON file holding one object of string keys, the local stand-in for browser storage."""

    def __init__(self, filepath: Union[str, Path] = "todopad.json"):
        self.filepath = Path(filepath)

    def _read(self) -> Dict[str, Any]:
        if not self.filepath.exists() or self.filepath.stat().st_size == 0:
            return {}
        with open(self.filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.filepath} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.filepath.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.filepath)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        try:
            data = self._read()
        except (OSError, ValueError):
            logger.warning("Overwriting unreadable store %s", self.filepath)
            data = {}
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        try:
            data = self._read()
        except (OSError, ValueError):
            data = {}
        if key in data:
            del data[key]
            self._write(data)


class TaskPersistence:
    def __init__(self, kv: KeyValueStore, key: str = STORAGE_KEY):
        self.kv = kv
        self.key = key

    def save(self, tasks: List[Task]) -> None:
        try:
            self.kv.set(self.key, [serialize_task(t) for t in tasks])
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not save {len(tasks)} tasks: {e}") from e
        logger.debug("Saved %d tasks to %s", len(tasks), self.kv.filepath)

    def load(self) -> List[Task]:
        """Load the stored collection. Missing or corrupt data yields an empty list."""
        try:
            records = self.kv.get(self.key)
        except (OSError, ValueError) as e:
            logger.error("Error loading tasks from %s: %s", self.kv.filepath, e)
            return []
        if records is None:
            return []
        if not isinstance(records, list):
            logger.error("Stored value under %r is not a list, ignoring it", self.key)
            return []
        tasks = revive_tasks(records)
        logger.info("Loaded %d tasks from %s", len(tasks), self.kv.filepath)
        return tasks

    def clear(self) -> None:
        try:
            self.kv.remove(self.key)
        except OSError as e:
            raise PersistenceError(f"Could not clear stored tasks: {e}") from e
