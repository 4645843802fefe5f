import logging
import shlex
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import Priority, RecurringType
from .query import SortBy
from .registry import Registry
from .transfer import read_backup, write_backup

logger = logging.getLogger(__name__)

COMMANDS = {
    "done": "Toggle a task (format: done <n>)",
    "del": "Delete a task (format: del <n>)",
    "desc": "Set a task description (format: desc <n> <text>)",
    "due": "Set a due date (format: due <n> YYYY-MM-DD, or 'none')",
    "sub": "Add a subtask (format: sub <n> <title>)",
    "subdone": "Toggle a subtask (format: subdone <n> <m>)",
    "subdel": "Delete a subtask (format: subdel <n> <m>)",
    "filter": "Filter (format: filter category|priority|tag <value>, empty value resets)",
    "search": "Search titles, descriptions, tag and category names",
    "sort": "Sort by created|priority|category",
    "clearfilters": "Reset all filters and the search",
    "export": "Export tasks to a JSON backup (format: export [path])",
    "import": "Replace all tasks from a JSON backup (format: import <path>)",
    "clear": "Delete all tasks",
    "exit": "Exit the program",
}


@dataclass
class ParsedTask:
    title: str
    tags: List[str] = field(default_factory=list)
    category: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    recurrence: Optional[RecurringType] = None


def parse_task_input(text: str, registry: Registry) -> ParsedTask:
    """Split a new-task line into title and markers.

    Markers:
    1. Tags: #urgent
    2. Category: @work
    3. Priority: !high
    4. Recurrence: *weekly

    Markers that do not name a known value stay in the title.
    """
    parsed = ParsedTask(title="")
    words = []
    tag_ids = registry.tag_ids()
    category_ids = registry.category_ids()

    for word in text.split():
        marker, value = word[:1], word[1:].lower()
        if marker == "#" and value in tag_ids:
            if value not in parsed.tags:
                parsed.tags.append(value)
        elif marker == "@" and value in category_ids:
            parsed.category = value
        elif marker == "!" and value in {p.value for p in Priority}:
            parsed.priority = Priority(value)
        elif marker == "*" and value in {r.value for r in RecurringType}:
            parsed.recurrence = RecurringType(value)
        else:
            words.append(word)

    parsed.title = " ".join(words)
    return parsed


def _task_at(app_state, raw: str):
    """Resolve a 1-based list number from the current view."""
    try:
        index = int(raw)
    except ValueError:
        raise ValueError(f"Invalid task number '{raw}'")
    tasks = app_state.visible_tasks()
    if index < 1 or index > len(tasks):
        raise ValueError(f"Invalid task number {index}")
    return tasks[index - 1]


def _subtask_at(task, raw: str):
    try:
        index = int(raw)
    except ValueError:
        raise ValueError(f"Invalid subtask number '{raw}'")
    if index < 1 or index > len(task.subtasks):
        raise ValueError(f"Invalid subtask number {index}")
    return task.subtasks[index - 1]


def _parse_due(raw: str) -> Optional[datetime]:
    if raw.lower() == "none":
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"Invalid date '{raw}', use YYYY-MM-DD")


def handle_command(app_state, command: str) -> bool:
    """Run a slash command against the app. Returns False when the app should exit."""
    command = command.strip()
    name, _, rest = command.partition(" ")
    name = name.lower()
    rest = rest.strip()
    store = app_state.store
    app_state.status_message = None

    try:
        if name == "exit":
            app_state.exit()
            return False
        elif name == "done":
            task = _task_at(app_state, rest)
            store.toggle(task.id)
            state = "completed" if task.completed else "reopened"
            app_state.log_message(f"Task '{task.title}' {state}")
        elif name == "del":
            task = _task_at(app_state, rest)
            store.delete(task.id)
            app_state.log_message(f"Deleted task '{task.title}'")
        elif name == "desc":
            number, _, text = rest.partition(" ")
            task = _task_at(app_state, number)
            store.update(task.id, description=text.strip() or None)
            app_state.log_message(f"Updated description of '{task.title}'")
        elif name == "due":
            number, _, raw_date = rest.partition(" ")
            task = _task_at(app_state, number)
            store.update(task.id, due_date=_parse_due(raw_date.strip()))
            app_state.log_message(f"Updated due date of '{task.title}'")
        elif name == "sub":
            number, _, title = rest.partition(" ")
            task = _task_at(app_state, number)
            if store.add_subtask(task.id, title) is None:
                raise ValueError("Subtask title cannot be empty")
            app_state.log_message(f"Added subtask to '{task.title}'")
        elif name in ("subdone", "subdel"):
            parts = rest.split()
            if len(parts) != 2:
                raise ValueError(f"Use: {name} <n> <m>")
            task = _task_at(app_state, parts[0])
            subtask = _subtask_at(task, parts[1])
            if name == "subdone":
                store.toggle_subtask(task.id, subtask.id)
                app_state.log_message(f"Toggled subtask '{subtask.title}'")
            else:
                store.delete_subtask(task.id, subtask.id)
                app_state.log_message(f"Deleted subtask '{subtask.title}'")
        elif name == "filter":
            kind, _, value = rest.partition(" ")
            value = value.strip().lower()
            _check_filter_value(app_state.store.registry, kind, value)
            app_state.filters = app_state.filters.with_value(kind, value)
            app_state.log_message(f"Filter {kind} {'set to ' + value if value else 'cleared'}")
        elif name == "search":
            app_state.search_query = rest
            app_state.log_message(f"Searching for '{rest}'" if rest else "Search cleared")
        elif name == "sort":
            try:
                app_state.sort_by = SortBy(rest.lower())
            except ValueError:
                raise ValueError("Use: sort created|priority|category")
            app_state.log_message(f"Sorted by {app_state.sort_by.value}")
        elif name == "clearfilters":
            app_state.filters = app_state.filters.cleared()
            app_state.search_query = ""
            app_state.log_message("Filters cleared")
        elif name == "export":
            target = Path(shlex.split(rest)[0]) if rest else Path(app_state.settings.backup_dir)
            path = write_backup(target, store.tasks)
            app_state.log_message(f"Exported {len(store)} tasks to {path}")
        elif name == "import":
            if not rest:
                raise ValueError("Use: import <path>")
            doc = read_backup(shlex.split(rest)[0])
            if doc is None or not store.import_document(doc):
                app_state.log_message("Invalid file format: nothing imported", 'warning')
            else:
                app_state.log_message(f"Imported {len(store)} tasks")
        elif name == "clear":
            store.clear()
            app_state.log_message("All tasks cleared")
        else:
            app_state.log_message(f"ERROR: Unknown command '{command}'", 'warning')
    except ValueError as e:
        app_state.log_message(f"ERROR: {e}", 'warning')
    except OSError as e:
        logger.exception("File operation failed for command %r", command)
        app_state.log_message(f"ERROR: {e}", 'warning')
    return True


def _check_filter_value(registry: Registry, kind: str, value: str) -> None:
    if not value:
        return
    if kind == "category" and value not in registry.category_ids():
        raise ValueError(f"Unknown category '{value}'")
    if kind == "tag" and value not in registry.tag_ids():
        raise ValueError(f"Unknown tag '{value}'")
    if kind == "priority" and value not in {p.value for p in Priority}:
        raise ValueError(f"Unknown priority '{value}'")
    if kind not in ("category", "tag", "priority"):
        raise ValueError("Use: filter category|priority|tag <value>")
