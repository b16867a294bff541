"""Tests for configuration loading and validation."""

from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from memvault.config import MemvaultConfig, load_config
from memvault.errors import ConfigError


def _write_repo_config(root: Path, body: str) -> None:
    (root / ".memvault").mkdir(exist_ok=True)
    (root / ".memvault" / "config.toml").write_text(body, encoding="utf-8")


def test_defaults(tmp_path):
    cfg = load_config(environ={}, repo_root=tmp_path)

    assert cfg.vault_path == Path("./vault")
    assert cfg.db_path == Path("./data/memvault.db")
    assert cfg.embedding_model == "voyage-3-lite"
    assert cfg.embedding_dim == 1024
    assert cfg.embedding_batch_size == 128
    assert cfg.embedding_batch_delay_ms == 200
    assert cfg.chunk_max_chars == 2000
    assert cfg.search_limit == 5
    assert cfg.distill_threshold == 20
    assert cfg.dedup_window_hours == 24
    assert cfg.active_hours_start == "08:00"
    assert cfg.active_hours_end == "22:00"
    assert cfg.tzinfo == ZoneInfo("Europe/Paris")
    assert cfg.has_embedding_credential is False


def test_environment_overrides_file(tmp_path):
    _write_repo_config(
        tmp_path,
        '[memvault]\nvault_path = "~/notes"\ndistill_threshold = 10\nsearch_limit = 3\n',
    )
    cfg = load_config(
        environ={"MEMVAULT_DISTILL_THRESHOLD": "12", "VOYAGE_API_KEY": "vk"},
        repo_root=tmp_path,
    )

    assert cfg.vault_path == Path("~/notes").expanduser()
    assert cfg.distill_threshold == 12
    assert cfg.search_limit == 3
    assert cfg.has_embedding_credential is True


def test_explicit_overrides_win_and_none_is_ignored(tmp_path):
    cfg = load_config(
        {"db_path": "/tmp/x.db", "vault_path": None},
        environ={"MEMVAULT_DB_PATH": "/srv/y.db"},
        repo_root=tmp_path,
    )
    assert cfg.db_path == Path("/tmp/x.db")
    assert cfg.vault_path == Path("./vault")


def test_empty_environment_values_are_unset(tmp_path):
    cfg = load_config(environ={"MEMVAULT_SEARCH_LIMIT": "", "VOYAGE_API_KEY": ""}, repo_root=tmp_path)
    assert cfg.search_limit == 5
    assert cfg.voyage_api_key == ""


@pytest.mark.parametrize(
    "env",
    [
        {"MEMVAULT_CHUNK_MAX_CHARS": "lots"},
        {"MEMVAULT_CHUNK_MAX_CHARS": "0"},
        {"MEMVAULT_DISTILL_THRESHOLD": "-1"},
        {"MEMVAULT_EMBEDDING_BATCH_SIZE": "500"},
        {"MEMVAULT_ACTIVE_HOURS_START": "8am"},
        {"MEMVAULT_TIMEZONE": "Mars/Olympus_Mons"},
        {"MEMVAULT_MEMORIES_DIR": "../outside"},
    ],
)
def test_invalid_values_rejected(tmp_path, env):
    with pytest.raises(ConfigError):
        load_config(environ=env, repo_root=tmp_path)


def test_error_message_names_the_field(tmp_path):
    with pytest.raises(ConfigError, match="Configuration errors:") as exc_info:
        load_config(environ={"MEMVAULT_ACTIVE_HOURS_END": "25:00"}, repo_root=tmp_path)
    assert "active_hours_end" in str(exc_info.value)


def test_malformed_config_file(tmp_path):
    _write_repo_config(tmp_path, "[memvault\nbroken = ")
    with pytest.raises(ConfigError, match="Malformed config file"):
        load_config(environ={}, repo_root=tmp_path)


def test_unknown_file_key_rejected(tmp_path):
    _write_repo_config(tmp_path, '[memvault]\nvault = "typo"\n')
    with pytest.raises(ConfigError):
        load_config(environ={}, repo_root=tmp_path)


def test_config_is_frozen():
    cfg = MemvaultConfig()
    with pytest.raises(ValidationError):
        cfg.search_limit = 10
