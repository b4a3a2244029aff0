"""Environment-driven settings."""
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".studio"
DEFAULT_DB_PATH = str(DEFAULT_DATA_DIR / "school-db.json")
DEFAULT_PROGRESS_PATH = str(DEFAULT_DATA_DIR / "bible-progress.json")
DEFAULT_SCRIPTURE_TIMEOUT = 8.0


@dataclass
class Settings:
    db_path: str = DEFAULT_DB_PATH
    progress_path: str = DEFAULT_PROGRESS_PATH
    log_level: str = "INFO"
    scripture_timeout: float = DEFAULT_SCRIPTURE_TIMEOUT
    host: str = "127.0.0.1"
    port: int = 8000


def _env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def load_settings() -> Settings:
    """Build settings from the environment, falling back to defaults."""
    try:
        timeout = float(_env("SCRIPTURE_TIMEOUT", str(DEFAULT_SCRIPTURE_TIMEOUT)))
    except ValueError:
        timeout = DEFAULT_SCRIPTURE_TIMEOUT
    try:
        port = int(_env("STUDIO_PORT", "8000"))
    except ValueError:
        port = 8000
    return Settings(
        db_path=_env("SCHOOL_DB_PATH", DEFAULT_DB_PATH),
        progress_path=_env("QUIZ_PROGRESS_PATH", DEFAULT_PROGRESS_PATH),
        log_level=_env("STUDIO_LOG_LEVEL", "INFO"),
        scripture_timeout=timeout,
        host=_env("STUDIO_HOST", "127.0.0.1"),
        port=port,
    )
