# tests/test_session.py
import json

import pytest

from crabby_bird.constants import SESSION_KEY
from crabby_bird.data_models import validate_username
from crabby_bird.errors import InvalidUsername
from crabby_bird.session import LocalSession


@pytest.fixture
def session(tmp_path):
    return LocalSession(str(tmp_path / "session.json"))


def test_no_session_file_means_no_username(session):
    assert session.load_username() is None


def test_save_then_load(session):
    session.save_username("alice")
    assert session.load_username() == "alice"
    with open(session.path, encoding="utf-8") as f:
        assert json.load(f) == {SESSION_KEY: "alice"}


def test_clear_forgets_username(session):
    session.save_username("alice")
    session.clear()
    assert session.load_username() is None
    session.clear()


def test_clear_keeps_other_keys(session):
    with open(session.path, "w", encoding="utf-8") as f:
        json.dump({SESSION_KEY: "alice", "volume": 3}, f)
    session.clear()
    with open(session.path, encoding="utf-8") as f:
        assert json.load(f) == {"volume": 3}


def test_corrupt_file_reads_as_logged_out(session):
    with open(session.path, "w", encoding="utf-8") as f:
        f.write("{not json")
    assert session.load_username() is None


@pytest.mark.parametrize("raw, expected", [
    ("alice", "alice"),
    ("  bob  ", "bob"),
    ("ab", "ab"),
    ("x" * 20, "x" * 20),
])
def test_validate_username_accepts(raw, expected):
    assert validate_username(raw) == expected


@pytest.mark.parametrize("raw", ["", " a ", "x" * 21, None, 42])
def test_validate_username_rejects(raw):
    with pytest.raises(InvalidUsername):
        validate_username(raw)
