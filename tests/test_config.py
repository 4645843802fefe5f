import logging
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from todopad.config import load_settings
from todopad.logger import setup_logger


def test_defaults(monkeypatch):
    for name in ("DATA_FILE", "LOG_DIR", "LOG_LEVEL", "RECURRENCE_DELAY", "BACKUP_DIR"):
        monkeypatch.delenv(f"TODOPAD_{name}", raising=False)
    settings = load_settings(dotenv=False)

    assert settings.data_file == Path("todopad.json")
    assert settings.log_dir == Path("logs")
    assert settings.log_level == "DEBUG"
    assert settings.recurrence_delay == 0.1


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("TODOPAD_DATA_FILE", str(tmp_path / "data.json"))
    monkeypatch.setenv("TODOPAD_LOG_LEVEL", "info")
    monkeypatch.setenv("TODOPAD_RECURRENCE_DELAY", "0.5")
    settings = load_settings(dotenv=False)

    assert settings.data_file == tmp_path / "data.json"
    assert settings.log_level == "INFO"
    assert settings.recurrence_delay == 0.5


def test_bad_delay_falls_back(monkeypatch):
    monkeypatch.setenv("TODOPAD_RECURRENCE_DELAY", "soon")
    assert load_settings(dotenv=False).recurrence_delay == 0.1
    monkeypatch.setenv("TODOPAD_RECURRENCE_DELAY", "-1")
    assert load_settings(dotenv=False).recurrence_delay == 0.1


def test_setup_logger_writes_fresh_file(monkeypatch, tmp_path):
    monkeypatch.setenv("TODOPAD_LOG_DIR", str(tmp_path / "logs"))
    settings = load_settings(dotenv=False)
    log_file = settings.log_dir / "debug.log"
    log_file.parent.mkdir(parents=True)
    log_file.write_text("old session\n")

    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        logger = setup_logger(settings)
        logger.info("hello from the test")
        for handler in root.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

    assert "old session" not in content
    assert "todopad - INFO - hello from the test" in content
