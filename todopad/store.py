import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .errors import PersistenceError
from .models import Priority, RecurringType, Subtask, Task
from .persistence import KeyValueStore, TaskPersistence
from .recurrence import next_occurrence
from .registry import DEFAULT_REGISTRY, Registry
from .scheduler import Handle, ManualScheduler, Scheduler
from .transfer import export_document, import_document

logger = logging.getLogger(__name__)

RECURRENCE_DELAY = 0.1

EDITABLE_FIELDS = {"title", "description", "due_date", "priority", "category", "tags", "recurrence"}


class TaskStore:
    """Owns the task collection.

    Every successful mutation is followed by a save through the injected
    persistence and then a change notification. Invalid input (blank titles,
    unknown ids, unknown priority or recurrence values) is ignored without
    raising.
    """

    def __init__(
        self,
        persistence: Optional[TaskPersistence] = None,
        scheduler: Optional[Scheduler] = None,
        registry: Registry = DEFAULT_REGISTRY,
        recurrence_delay: float = RECURRENCE_DELAY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.persistence = persistence
        self.scheduler = scheduler if scheduler is not None else ManualScheduler()
        self.registry = registry
        self.recurrence_delay = recurrence_delay
        self.clock = clock
        self._tasks: List[Task] = []
        self._listeners: List[Callable[[], None]] = []
        self._load()

    @classmethod
    def from_file(cls, filepath: Union[str, Path], **kwargs) -> "TaskStore":
        return cls(persistence=TaskPersistence(KeyValueStore(filepath)), **kwargs)

    # ---- plumbing ----

    def _load(self) -> None:
        if self.persistence is None:
            return
        self._tasks = self.persistence.load()

    def _save(self) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save(self._tasks)
        except PersistenceError:
            logger.exception("Error saving tasks; in-memory state kept")

    def _commit(self) -> None:
        self._save()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Task store listener failed")

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- reads ----

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def get(self, task_id: str) -> Optional[Task]:
        return next((t for t in self._tasks if t.id == task_id), None)

    def __len__(self) -> int:
        return len(self._tasks)

    # ---- task operations ----

    def create(
        self,
        title: str,
        priority: Union[Priority, str] = Priority.MEDIUM,
        category: Optional[str] = None,
        tags: Iterable[str] = (),
        recurrence: Optional[Union[RecurringType, str]] = None,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Optional[Task]:
        title = (title or "").strip()
        if not title:
            logger.debug("Ignoring create with empty title")
            return None
        try:
            priority = Priority(priority)
            recurrence = RecurringType(recurrence) if recurrence else None
        except ValueError:
            logger.debug("Ignoring create with priority=%r recurrence=%r", priority, recurrence)
            return None
        task = Task(
            title=title,
            description=description or None,
            due_date=due_date,
            priority=priority,
            category=category or None,
            tags=list(dict.fromkeys(tags)),
            created_at=self.clock(),
        )
        task.set_recurrence(recurrence)
        self._tasks.append(task)
        logger.debug("Task created id=%s title=%r", task.id, task.title)
        self._commit()
        return task

    def update(self, task_id: str, **changes: Any) -> Optional[Task]:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot edit task fields: {', '.join(sorted(unknown))}")
        task = self.get(task_id)
        if task is None:
            logger.debug("Ignoring update of unknown task %s", task_id)
            return None
        try:
            priority = Priority(changes["priority"]) if "priority" in changes else task.priority
            recurrence = changes.get("recurrence")
            recurrence = RecurringType(recurrence) if recurrence else None
        except ValueError:
            logger.debug("Ignoring update with invalid priority or recurrence for %s", task_id)
            return None
        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                logger.debug("Ignoring update with empty title for %s", task_id)
                return None
            task.title = title
        if "description" in changes:
            task.description = changes["description"] or None
        if "due_date" in changes:
            task.due_date = changes["due_date"]
        if "priority" in changes:
            task.priority = priority
        if "category" in changes:
            task.category = changes["category"] or None
        if "tags" in changes:
            task.tags = list(dict.fromkeys(changes["tags"] or ()))
        if "recurrence" in changes:
            task.set_recurrence(recurrence)
        self._commit()
        return task

    def toggle(self, task_id: str) -> Optional[Handle]:
        """Flip completion. Completing a recurring task schedules its successor.

        The successor is appended by a separate, later mutation. The returned
        handle (if any) belongs to that pending spawn.
        """
        task = self.get(task_id)
        if task is None:
            logger.debug("Ignoring toggle of unknown task %s", task_id)
            return None
        was_completed = task.completed
        task.completed = not was_completed
        logger.debug("Task %s completed=%s", task.id, task.completed)

        handle = None
        if not was_completed and task.is_recurring and task.recurring_type:
            successor = next_occurrence(task, task.recurring_type, now=self.clock())
            handle = self.scheduler.call_later(self.recurrence_delay, lambda: self._append(successor))
            logger.info("Scheduled next %s occurrence of %s as %s", task.recurring_type.value, task.id, successor.id)
        self._commit()
        return handle

    def _append(self, task: Task) -> None:
        self._tasks.append(task)
        logger.debug("Recurring task spawned id=%s", task.id)
        self._commit()

    def delete(self, task_id: str) -> bool:
        task = self.get(task_id)
        if task is None:
            return False
        self._tasks.remove(task)
        logger.debug("Task deleted id=%s", task_id)
        self._commit()
        return True

    # ---- subtask operations ----

    def add_subtask(self, task_id: str, title: str) -> Optional[Subtask]:
        title = (title or "").strip()
        task = self.get(task_id)
        if not title or task is None:
            return None
        subtask = Subtask(title=title, created_at=self.clock())
        task.subtasks.append(subtask)
        self._commit()
        return subtask

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Optional[Subtask]:
        task = self.get(task_id)
        subtask = task.get_subtask(subtask_id) if task else None
        if subtask is None:
            return None
        subtask.toggle()
        self._commit()
        return subtask

    def delete_subtask(self, task_id: str, subtask_id: str) -> bool:
        task = self.get(task_id)
        subtask = task.get_subtask(subtask_id) if task else None
        if subtask is None:
            return False
        task.subtasks.remove(subtask)
        self._commit()
        return True

    # ---- whole-collection operations ----

    def replace_all(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)
        logger.info("Task collection replaced (%d tasks)", len(self._tasks))
        self._commit()

    def clear(self) -> None:
        """Drop every task and the persisted entry."""
        self._tasks = []
        if self.persistence is not None:
            try:
                self.persistence.clear()
            except PersistenceError:
                logger.exception("Error clearing stored tasks")
        self._notify()
        logger.info("All tasks cleared")

    def export_document(self) -> Dict[str, Any]:
        return export_document(self._tasks)

    def import_document(self, doc: Any) -> bool:
        """Replace the collection from an export document. False if rejected."""
        tasks = import_document(doc)
        if tasks is None:
            return False
        self.replace_all(tasks)
        return True
