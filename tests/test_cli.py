"""Tests for the main.py command line (init-db, create-user)."""

import pytest

import main
from auth.store import UserStore
from auth.tokens import verify_password
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def test_init_db_creates_schema(db_url, capsys) -> None:
    assert main.main(["init-db"]) == 0
    assert "Schema ready" in capsys.readouterr().out


def test_create_user(db_url) -> None:
    rc = main.main(["create-user", "teach", "--real-name", "Ms Teach", "--role", "teacher", "--password", "longenough1"])
    assert rc == 0

    store = UserStore(db_url=db_url)
    try:
        user = store.get_by_username("teach")
    finally:
        store.close()
    assert user.role == "teacher"
    assert verify_password("longenough1", user.hashed_password)


def test_create_user_validates_like_register(db_url, capsys) -> None:
    rc = main.main(["create-user", "teach", "--real-name", "Ms Teach", "--role", "teacher", "--password", "short"])
    assert rc == 1
    assert "Password must be at least 8 characters." in capsys.readouterr().err


def test_create_user_duplicate(db_url, capsys) -> None:
    args = ["create-user", "teach", "--real-name", "Ms Teach", "--role", "teacher", "--password", "longenough1"]
    assert main.main(args) == 0
    assert main.main(args) == 1
    assert "already exists" in capsys.readouterr().err
