"""
Export/import of the whole collection as a portable JSON document.

    { "tasks": [...], "exportDate": "<ISO-8601>", "version": "1.0" }
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import Task
from .persistence import revive_tasks, serialize_task

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


def export_document(tasks: List[Task], now: Optional[datetime] = None) -> Dict[str, Any]:
    stamp = now if now is not None else datetime.now(timezone.utc)
    if stamp.tzinfo is not None:
        export_date = stamp.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    else:
        export_date = stamp.isoformat(timespec="milliseconds")
    return {
        "tasks": [serialize_task(t) for t in tasks],
        "exportDate": export_date,
        "version": EXPORT_VERSION,
    }


def import_document(doc: Any) -> Optional[List[Task]]:
    """Rebuild tasks from an export document.

    Returns None when the document does not have a ``tasks`` list; the caller
    is expected to leave its collection alone in that case.
    """
    if not isinstance(doc, dict):
        logger.warning("Import rejected: document is %s, not an object", type(doc).__name__)
        return None
    records = doc.get("tasks")
    if not isinstance(records, list):
        logger.warning("Import rejected: missing or malformed 'tasks' field")
        return None
    return revive_tasks(records)


def dumps_document(doc: Dict[str, Any]) -> str:
    return json.dumps(doc, indent=2)


def loads_document(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning("Import rejected: unparsable document: %s", e)
        return None


def backup_filename(now: Optional[datetime] = None) -> str:
    stamp = now if now is not None else datetime.now()
    return f"todo-backup-{stamp.strftime('%Y-%m-%d')}.json"


def write_backup(target: Union[str, Path], tasks: List[Task], now: Optional[datetime] = None) -> Path:
    """Write an export document. A directory target gets the dated backup filename."""
    path = Path(target)
    if path.is_dir():
        path = path / backup_filename(now)
    path.write_text(dumps_document(export_document(tasks, now)), encoding="utf-8")
    logger.info("Exported %d tasks to %s", len(tasks), path)
    return path


def read_backup(path: Union[str, Path]) -> Optional[Any]:
    """Read a backup file into a document, or None if it cannot be read or parsed."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Import rejected: cannot read %s: %s", path, e)
        return None
    return loads_document(text)
