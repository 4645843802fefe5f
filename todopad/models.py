from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw, default: Optional["Priority"] = None) -> "Priority":
        """Lenient conversion used when reviving stored records."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).lower())
        except ValueError:
            return default if default is not None else cls.MEDIUM


PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}


class RecurringType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass
class Subtask:
    title: str
    id: str = field(default_factory=new_id)
    completed: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now())

    def toggle(self) -> None:
        self.completed = not self.completed


@dataclass
class Task:
    title: str
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    completed: bool = False
    due_date: Optional[datetime] = None
    priority: Priority = Priority.MEDIUM
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    subtasks: List[Subtask] = field(default_factory=list)
    is_recurring: bool = False
    recurring_type: Optional[RecurringType] = None
    created_at: datetime = field(default_factory=lambda: datetime.now())

    def set_recurrence(self, recurring_type: Optional[RecurringType]) -> None:
        # is_recurring and recurring_type always move together
        self.recurring_type = recurring_type
        self.is_recurring = recurring_type is not None

    def get_subtask(self, subtask_id: str) -> Optional[Subtask]:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    def has_tag(self, tag_id: str) -> bool:
        return tag_id in self.tags

    def subtask_progress(self) -> Tuple[int, int]:
        """Return (completed, total) subtask counts."""
        done = sum(1 for s in self.subtasks if s.completed)
        return done, len(self.subtasks)
