"""Unit tests for core/config.py -- Settings validation."""

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_defaults_match_cookie_contract(monkeypatch) -> None:
    monkeypatch.delenv("SESSION_COOKIE_NAME", raising=False)
    monkeypatch.delenv("SESSION_MAX_AGE_SECONDS", raising=False)
    settings = Settings(_env_file=None)
    assert settings.session_cookie_name == "authToken"
    assert settings.session_max_age_seconds == 604800


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("BCRYPT_ROUNDS", "6")
    monkeypatch.setenv("SECURE_COOKIES", "true")
    settings = Settings(_env_file=None)
    assert settings.bcrypt_rounds == 6
    assert settings.secure_cookies is True


@pytest.mark.parametrize("rounds", [3, 32])
def test_rejects_out_of_range_bcrypt_rounds(rounds: int) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, bcrypt_rounds=rounds)


def test_rejects_non_positive_cookie_lifetime() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, session_max_age_seconds=0)
