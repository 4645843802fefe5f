from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .models import PRIORITY_RANK, Priority, Task
from .registry import Registry

# Sorts after any real category identifier
UNCATEGORIZED_SENTINEL = "\uffff"


class SortBy(str, Enum):
    CREATED = "created"
    PRIORITY = "priority"
    CATEGORY = "category"


@dataclass(frozen=True)
class TaskFilters:
    category: Optional[str] = None
    priority: Optional[Priority] = None
    tag: Optional[str] = None

    def is_active(self) -> bool:
        return bool(self.category or self.priority or self.tag)

    def cleared(self) -> "TaskFilters":
        return TaskFilters()

    def with_value(self, kind: str, value: Optional[str]) -> "TaskFilters":
        """Return a copy with one filter set (or reset when value is empty)."""
        if kind == "priority":
            return replace(self, priority=Priority(value) if value else None)
        if kind not in ("category", "tag"):
            raise ValueError(f"Unknown filter: {kind}")
        return replace(self, **{kind: value or None})

    def describe(self, registry: Registry, search_query: str = "") -> List[str]:
        """Human-readable labels for the active-filters banner."""
        labels = []
        if search_query.strip():
            labels.append(f'Search: "{search_query.strip()}"')
        if self.category:
            labels.append(f"Category: {registry.category_name(self.category) or self.category}")
        if self.priority:
            labels.append(f"Priority: {Priority(self.priority).value.upper()}")
        if self.tag:
            labels.append(f"Tag: {registry.tag_name(self.tag) or self.tag}")
        return labels


@dataclass(frozen=True)
class CategoryStats:
    category_id: str
    name: str
    color: str
    total: int
    completed: int
    pending: int


def matches_search(task: Task, query: str, registry: Registry) -> bool:
    if task.title and query in task.title.lower():
        return True
    if task.description and query in task.description.lower():
        return True
    for tag_id in task.tags:
        name = registry.tag_name(tag_id)
        if name and query in name.lower():
            return True
    category_name = registry.category_name(task.category)
    return bool(category_name and query in category_name.lower())


def _sort_key(sort_by: SortBy):
    if sort_by == SortBy.PRIORITY:
        return lambda t: -PRIORITY_RANK.get(Priority.parse(t.priority), 0)
    if sort_by == SortBy.CATEGORY:
        return lambda t: t.category or UNCATEGORIZED_SENTINEL
    return lambda t: t.created_at


def view(
    tasks: Iterable[Task],
    filters: Optional[TaskFilters] = None,
    search_query: str = "",
    sort_by: SortBy = SortBy.CREATED,
    registry: Optional[Registry] = None,
) -> List[Task]:
    """Filter, search and sort tasks. Sorting is stable on ties."""
    filters = filters or TaskFilters()
    registry = registry or Registry()
    result = list(tasks)

    if filters.category:
        result = [t for t in result if t.category == filters.category]
    if filters.priority:
        result = [t for t in result if t.priority == filters.priority]
    if filters.tag:
        result = [t for t in result if filters.tag in t.tags]

    query = (search_query or "").strip().lower()
    if query:
        result = [t for t in result if matches_search(t, query, registry)]

    sort_by = SortBy(sort_by)
    if sort_by == SortBy.CREATED:
        result = sorted(result, key=_sort_key(sort_by), reverse=True)
    else:
        result = sorted(result, key=_sort_key(sort_by))
    return result


def partition(tasks: Iterable[Task]) -> Tuple[List[Task], List[Task]]:
    """Split into (pending, completed), keeping order within each part."""
    pending, completed = [], []
    for task in tasks:
        (completed if task.completed else pending).append(task)
    return pending, completed


def category_stats(tasks: Iterable[Task], registry: Registry) -> List[CategoryStats]:
    """Per-category counts over the whole (unfiltered) collection."""
    tasks = list(tasks)
    stats = []
    for category in registry.categories:
        in_category = [t for t in tasks if t.category == category.id]
        done = sum(1 for t in in_category if t.completed)
        stats.append(CategoryStats(
            category_id=category.id,
            name=category.name,
            color=category.color,
            total=len(in_category),
            completed=done,
            pending=len(in_category) - done,
        ))
    return stats
