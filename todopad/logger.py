import logging
from pathlib import Path
from typing import Optional

from .config import Settings


def setup_logger(settings: Optional[Settings] = None):
    """Setup the debug logger that writes to <log_dir>/debug.log"""
    log_dir = Path(settings.log_dir) if settings else Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    # Start every session with a fresh log file
    log_file = log_dir / "debug.log"
    if log_file.exists():
        log_file.unlink()

    level = getattr(logging, settings.log_level, logging.DEBUG) if settings else logging.DEBUG

    # File only: the terminal belongs to the prompt_toolkit app
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
        force=True,
    )

    return logging.getLogger("todopad")
