"""
Fixed category and tag lookup tables.

The engine only needs ``id -> display name``; colours are carried for the
rendering layer. Registries are passed into the query engine and the store so
tests can supply their own.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class TagInfo:
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class Registry:
    categories: Tuple[Category, ...] = ()
    tags: Tuple[TagInfo, ...] = ()

    @classmethod
    def build(cls, categories: Iterable[Category], tags: Iterable[TagInfo]) -> "Registry":
        return cls(categories=tuple(categories), tags=tuple(tags))

    def category(self, category_id: Optional[str]) -> Optional[Category]:
        if not category_id:
            return None
        return next((c for c in self.categories if c.id == category_id), None)

    def tag(self, tag_id: str) -> Optional[TagInfo]:
        return next((t for t in self.tags if t.id == tag_id), None)

    def category_name(self, category_id: Optional[str]) -> Optional[str]:
        category = self.category(category_id)
        return category.name if category else None

    def tag_name(self, tag_id: str) -> Optional[str]:
        tag = self.tag(tag_id)
        return tag.name if tag else None

    def category_ids(self) -> Tuple[str, ...]:
        return tuple(c.id for c in self.categories)

    def tag_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self.tags)


DEFAULT_CATEGORIES = (
    Category("work", "Work", "#3B82F6"),
    Category("personal", "Personal", "#10B981"),
    Category("shopping", "Shopping", "#F59E0B"),
    Category("health", "Health", "#EF4444"),
    Category("learning", "Learning", "#8B5CF6"),
    Category("finance", "Finance", "#06B6D4"),
)

DEFAULT_TAGS = (
    TagInfo("urgent", "Urgent", "#DC2626"),
    TagInfo("important", "Important", "#7C3AED"),
    TagInfo("quick", "Quick Task", "#059669"),
    TagInfo("meeting", "Meeting", "#2563EB"),
    TagInfo("deadline", "Deadline", "#EA580C"),
    TagInfo("research", "Research", "#0891B2"),
    TagInfo("creative", "Creative", "#C026D3"),
    TagInfo("routine", "Routine", "#65A30D"),
)

DEFAULT_REGISTRY = Registry.build(DEFAULT_CATEGORIES, DEFAULT_TAGS)
