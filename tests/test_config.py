"""Tests for environment-variable parsing in rsvp_pacer.config."""

import pytest

from rsvp_pacer.config import env_bool, env_int


class TestEnvInt:

    def test_missing_and_blank_use_default(self, monkeypatch):
        monkeypatch.delenv("RSVP_TEST_INT", raising=False)
        assert env_int("RSVP_TEST_INT", 7) == 7
        monkeypatch.setenv("RSVP_TEST_INT", "  ")
        assert env_int("RSVP_TEST_INT", 7) == 7

    def test_parses_integer(self, monkeypatch):
        monkeypatch.setenv("RSVP_TEST_INT", " 42 ")
        assert env_int("RSVP_TEST_INT", 7) == 42

    def test_malformed_names_variable(self, monkeypatch):
        monkeypatch.setenv("RSVP_TEST_INT", "ten")
        with pytest.raises(ValueError, match="RSVP_TEST_INT"):
            env_int("RSVP_TEST_INT", 7)


class TestEnvBool:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("TRUE", True),
        ("yes", True),
        ("1", True),
        ("False", False),
        ("no", False),
        ("0", False),
    ])
    def test_values(self, monkeypatch, raw, expected):
        monkeypatch.setenv("RSVP_TEST_BOOL", raw)
        assert env_bool("RSVP_TEST_BOOL", not expected) is expected

    def test_missing_uses_default(self, monkeypatch):
        monkeypatch.delenv("RSVP_TEST_BOOL", raising=False)
        assert env_bool("RSVP_TEST_BOOL", True) is True

    def test_malformed(self, monkeypatch):
        monkeypatch.setenv("RSVP_TEST_BOOL", "perhaps")
        with pytest.raises(ValueError, match="RSVP_TEST_BOOL"):
            env_bool("RSVP_TEST_BOOL", False)
