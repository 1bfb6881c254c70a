"""Tests for configuration and index path resolution."""

import logging
from pathlib import Path

from ugid_index.core.config import DEFAULT_INDEX_NAME, UgidIndexConfig, _float_env, get_index_path


class TestGetIndexPath:
    """Tests for get_index_path() precedence."""

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("UGID_INDEX_DB", str(tmp_path / "env.db"))
        assert get_index_path(tmp_path / "cli.db") == tmp_path / "cli.db"

    def test_index_db_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("UGID_INDEX_DB", str(tmp_path / "env.db"))
        monkeypatch.setenv("UGID_INDEX_DATA_DIR", str(tmp_path / "data"))
        assert get_index_path() == tmp_path / "env.db"

    def test_data_dir_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("UGID_INDEX_DB", raising=False)
        monkeypatch.setenv("UGID_INDEX_DATA_DIR", str(tmp_path))
        assert get_index_path() == tmp_path / DEFAULT_INDEX_NAME

    def test_default(self, monkeypatch):
        monkeypatch.delenv("UGID_INDEX_DB", raising=False)
        monkeypatch.delenv("UGID_INDEX_DATA_DIR", raising=False)
        assert get_index_path() == UgidIndexConfig.DATA_DIR / DEFAULT_INDEX_NAME

    def test_accepts_strings(self):
        assert get_index_path("x.db") == Path("x.db")


class TestLongListCommand:
    def test_split(self, monkeypatch):
        monkeypatch.setattr(UgidIndexConfig, "LL_COMMAND", "xargs -0 -r ls -ld --")
        assert UgidIndexConfig.ll_command() == ["xargs", "-0", "-r", "ls", "-ld", "--"]

    def test_quoted(self, monkeypatch):
        monkeypatch.setattr(UgidIndexConfig, "LL_COMMAND", "'/opt/my tools/ll' -0")
        assert UgidIndexConfig.ll_command() == ["/opt/my tools/ll", "-0"]


class TestFloatEnv:
    """Tests for numeric environment settings."""

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv("UGID_PROGRESS_INTERVAL", raising=False)
        assert _float_env("UGID_PROGRESS_INTERVAL", 600.0) == 600.0

    def test_parses_value(self, monkeypatch):
        monkeypatch.setenv("UGID_PROGRESS_INTERVAL", "2.5")
        assert _float_env("UGID_PROGRESS_INTERVAL", 600.0) == 2.5

    def test_malformed_value_falls_back(self, monkeypatch, caplog):
        """A typo in the environment must not stop every command from starting."""
        monkeypatch.setenv("UGID_PROGRESS_INTERVAL", "10m")
        with caplog.at_level(logging.WARNING, logger="ugid_index.core.config"):
            assert _float_env("UGID_PROGRESS_INTERVAL", 600.0) == 600.0
        assert "UGID_PROGRESS_INTERVAL" in caplog.text
