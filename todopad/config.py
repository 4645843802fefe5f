"""Settings loaded from TODOPAD_* environment variables (+ optional .env)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODOPAD"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str) -> str:
    raw = os.getenv(name)
    return default if raw is None or raw.strip() == "" else raw.strip()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    data_file: Path
    log_dir: Path
    log_level: str
    recurrence_delay: float
    backup_dir: Path


def load_settings(dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv(override=False)
    return Settings(
        data_file=_env_path(_k("DATA_FILE"), Path("todopad.json")),
        log_dir=_env_path(_k("LOG_DIR"), Path("logs")),
        log_level=_env(_k("LOG_LEVEL"), "DEBUG").upper(),
        recurrence_delay=_env_float(_k("RECURRENCE_DELAY"), 0.1),
        backup_dir=_env_path(_k("BACKUP_DIR"), Path(".")),
    )
