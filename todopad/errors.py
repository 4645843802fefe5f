class TodoPadError(Exception):
    """Base class for todopad errors."""


class PersistenceError(TodoPadError):
    """Saving or clearing the local store failed."""
