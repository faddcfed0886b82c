# tests/test_config.py
from crabby_bird.config import load_config
from crabby_bird.constants import DB_FILE, DEFAULT_PORT


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("CRABBY_HOST", "CRABBY_PORT", "CRABBY_DB_FILE", "CRABBY_SESSION_FILE", "CRABBY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config = load_config()
    assert config.port == DEFAULT_PORT
    assert config.db_file == DB_FILE
    assert config.log_level == "info"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CRABBY_HOST", "0.0.0.0")
    monkeypatch.setenv("CRABBY_PORT", "6000")
    monkeypatch.setenv("CRABBY_DB_FILE", "scores.db")

    config = load_config()
    assert config.server_addr == ("0.0.0.0", 6000)
    assert config.db_file == "scores.db"
