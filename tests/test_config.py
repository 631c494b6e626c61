"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from groupsplit.config import Settings, load_settings
from groupsplit.exceptions import ConfigurationError


class TestSettleEpsilon:
    """The settle threshold must be a positive amount."""

    def test_default_is_one_cent(self, tmp_path):
        settings = Settings(database_path=tmp_path / "test.db")

        assert settings.settle_epsilon == 0.01

    @pytest.mark.parametrize("value", [0, -0.01, -1])
    def test_non_positive_rejected(self, tmp_path, value):
        with pytest.raises(ValidationError):
            Settings(database_path=tmp_path / "test.db", settle_epsilon=value)

    def test_env_value_validated(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GROUPSPLIT_DATABASE_PATH", str(tmp_path / "test.db"))
        monkeypatch.setenv("GROUPSPLIT_SETTLE_EPSILON", "0")

        with pytest.raises(ConfigurationError, match="GROUPSPLIT_"):
            load_settings()

    def test_env_value_loaded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GROUPSPLIT_DATABASE_PATH", str(tmp_path / "test.db"))
        monkeypatch.setenv("GROUPSPLIT_SETTLE_EPSILON", "0.5")

        assert load_settings().settle_epsilon == 0.5
