# tests/test_config.py
from studio.config import DEFAULT_DB_PATH, DEFAULT_SCRIPTURE_TIMEOUT, load_settings


def test_defaults(monkeypatch):
    for name in ("SCHOOL_DB_PATH", "QUIZ_PROGRESS_PATH", "STUDIO_LOG_LEVEL", "SCRIPTURE_TIMEOUT", "STUDIO_PORT"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.log_level == "INFO"
    assert settings.scripture_timeout == DEFAULT_SCRIPTURE_TIMEOUT
    assert settings.port == 8000


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("SCHOOL_DB_PATH", str(tmp_path / "db.json"))
    monkeypatch.setenv("STUDIO_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("SCRIPTURE_TIMEOUT", "3.5")
    monkeypatch.setenv("STUDIO_PORT", "9001")
    settings = load_settings()
    assert settings.db_path == str(tmp_path / "db.json")
    assert settings.log_level == "DEBUG"
    assert settings.scripture_timeout == 3.5
    assert settings.port == 9001


def test_bad_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("SCRIPTURE_TIMEOUT", "soon")
    monkeypatch.setenv("STUDIO_PORT", "http")
    settings = load_settings()
    assert settings.scripture_timeout == DEFAULT_SCRIPTURE_TIMEOUT
    assert settings.port == 8000
