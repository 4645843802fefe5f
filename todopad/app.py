import logging
from typing import List, Optional

from prompt_toolkit import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.formatted_text import FormattedText

from .commands import COMMANDS, handle_command, parse_task_input
from .config import Settings, load_settings
from .logger import setup_logger
from .models import Task
from .query import SortBy, TaskFilters, category_stats, partition, view
from .scheduler import AsyncioScheduler
from .store import TaskStore
from .ui import create_layout, create_style
from .keybindings import create_keybindings

logger = logging.getLogger(__name__)


class TodoPad:
    def __init__(self, store: Optional[TaskStore] = None, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else load_settings()
        self.store = store if store is not None else TaskStore.from_file(
            self.settings.data_file,
            scheduler=AsyncioScheduler(),
            recurrence_delay=self.settings.recurrence_delay,
        )
        self.registry = self.store.registry
        self.filters = TaskFilters()
        self.search_query = ""
        self.sort_by = SortBy.CREATED
        self.command_mode = False
        self.running = True
        self.status_message = None  # Store current status/warning message
        self.message_style = 'status'  # Can be 'status' or 'warning'
        self.selected_index = 0  # Index into visible_tasks()
        self.seen_commands = False  # Track if user has opened the command panel

        self.input_buffer = Buffer(multiline=False)
        self.style = create_style(self.registry)
        self.layout = create_layout(
            self.get_overview_content,
            self.get_taskpad_content,
            self.get_commands_content,
            self.input_buffer,
            self.get_prompt,
            self.get_help_message,
            lambda: self.command_mode,
        )
        self.kb = create_keybindings(self)
        self.app = Application(
            layout=self.layout,
            key_bindings=self.kb,
            style=self.style,
            full_screen=True,
            mouse_support=False
        )
        self._unsubscribe = self.store.subscribe(self.invalidate)

    # ---- derived state ----

    def visible_tasks(self) -> List[Task]:
        """Current view in display order: pending first, then completed."""
        pending, completed = partition(view(
            self.store.tasks, self.filters, self.search_query, self.sort_by, self.registry
        ))
        return pending + completed

    def selected_task(self) -> Optional[Task]:
        tasks = self.visible_tasks()
        if not tasks:
            return None
        self.selected_index = min(self.selected_index, len(tasks) - 1)
        return tasks[self.selected_index]

    # ---- rendering ----

    def get_overview_content(self):
        """Category overview with counts over all tasks"""
        lines = [('class:title', "TODOPAD\n\n")]
        for stats in category_stats(self.store.tasks, self.registry):
            lines.extend([
                (f'class:category-{stats.category_id}', f"{stats.name:<10}"),
                ('class:meta', f"{stats.completed}/{stats.total} done  "),
            ])
        lines.append(('class:content', "\n"))
        labels = self.filters.describe(self.registry, self.search_query)
        if labels:
            lines.append(('class:filters', "Active filters: " + " | ".join(labels) + "\n"))
        return lines

    def _format_task(self, number: int, task: Task, selected: bool):
        base = 'class:selected ' if selected else ''
        text_style = base + ('class:done' if task.completed else 'class:content')
        check = "[x]" if task.completed else "[ ]"
        lines = [
            (base + 'class:meta', f"{number:>3} {check} "),
            (base + f'class:priority-{task.priority.value}', f"{task.priority.value.upper():<7}"),
            (text_style, task.title),
        ]
        category = self.registry.category(task.category)
        if task.category:
            lines.append((base + f'class:category-{task.category}', f"  @{category.name if category else task.category}"))
        for tag_id in task.tags:
            tag = self.registry.tag(tag_id)
            lines.append((base + f'class:tag-{tag_id}', f" #{tag.name if tag else tag_id}"))
        if task.is_recurring and task.recurring_type:
            lines.append((base + 'class:meta', f"  ({task.recurring_type.value})"))
        if task.subtasks:
            done, total = task.subtask_progress()
            lines.append((base + 'class:meta', f"  [{done}/{total}]"))
        lines.append(('class:content', "\n"))

        details = []
        if task.description:
            details.append(task.description)
        if task.due_date:
            details.append(f"Due: {task.due_date.strftime('%Y-%m-%d')}")
        details.append(f"Created: {task.created_at.strftime('%Y-%m-%d')}")
        lines.append(('class:meta', "        " + " · ".join(details) + "\n"))
        for i, subtask in enumerate(task.subtasks, start=1):
            mark = "x" if subtask.completed else " "
            style = 'class:done' if subtask.completed else 'class:meta'
            lines.append((style, f"        {i}. [{mark}] {subtask.title}\n"))
        return lines

    def get_taskpad_content(self):
        """Generate the task list"""
        tasks = self.visible_tasks()
        pending = sum(1 for t in tasks if not t.completed)
        lines = [('class:header', f"PENDING ({pending})  sorted by {self.sort_by.value}\n")]
        selected = self.selected_task()
        for number, task in enumerate(tasks, start=1):
            if number == pending + 1:
                lines.append(('class:header', f"\nCOMPLETED ({len(tasks) - pending})\n"))
            lines.extend(self._format_task(number, task, task is selected))
        if not tasks:
            lines.append(('class:help', "No tasks found. Type a title below to add one.\n"))

        if self.status_message:
            lines.extend([
                ('class:content', "\n"),
                (f'class:{self.message_style}', f"{self.status_message}\n")
            ])
        return lines

    def get_commands_content(self):
        """Generate the commands area text"""
        if not self.command_mode:
            return []
        lines = [('class:title', "\nAVAILABLE COMMANDS\n\n")]
        for cmd, desc in COMMANDS.items():
            lines.extend([
                ('class:command', f"/{cmd:<13}"),
                ('class:content', f"{desc}\n")
            ])
        return lines

    def get_prompt(self):
        return FormattedText([
            ('class:mode', "NEW"),
            ('class:prompt', " > ")
        ])

    def get_help_message(self):
        if self.seen_commands:
            return []
        return FormattedText([
            ('class:help', "Add: 'Title #tag @category !high *weekly'. Escape lists /commands, Ctrl-T toggles the selected task.")
        ])

    # ---- actions ----

    def log_message(self, message: str, style: str = 'status'):
        """Set a status message with optional style"""
        self.status_message = message
        self.message_style = style
        self.invalidate()

    def invalidate(self):
        self.app.invalidate()

    def exit(self):
        self.running = False
        if self.app.is_running:
            self.app.exit()

    def move_selection(self, step: int):
        total = len(self.visible_tasks())
        if total:
            self.selected_index = (self.selected_index + step) % total
            self.invalidate()

    def toggle_selected(self):
        task = self.selected_task()
        if task is None:
            self.log_message("No task selected", 'warning')
            return
        self.store.toggle(task.id)
        self.log_message(f"Task '{task.title}' {'completed' if task.completed else 'reopened'}")

    def submit(self, text: str):
        """Handle one line of input: a /command or a new task."""
        self.seen_commands = True
        if text.startswith('/'):
            return handle_command(self, text[1:])
        if not text.strip():
            return True
        parsed = parse_task_input(text, self.registry)
        task = self.store.create(
            parsed.title,
            priority=parsed.priority,
            category=parsed.category,
            tags=parsed.tags,
            recurrence=parsed.recurrence,
        )
        if task is None:
            self.log_message("Task title cannot be empty", 'warning')
        else:
            self.log_message(f"Added new task: {task.title}")
        return True

    def run(self):
        """Run the application"""
        try:
            self.app.run()
        finally:
            self._unsubscribe()


def main():
    settings = load_settings()
    setup_logger(settings)
    logger.info("Starting TodoPad with data file %s", settings.data_file)
    TodoPad(settings=settings).run()


if __name__ == '__main__':
    main()
