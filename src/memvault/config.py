"""Configuration management for memvault."""

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Environment variable -> config field.
ENV_VARS: dict[str, str] = {
    "MEMVAULT_VAULT_PATH": "vault_path",
    "MEMVAULT_DB_PATH": "db_path",
    "VOYAGE_API_KEY": "voyage_api_key",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
    "MEMVAULT_EMBEDDING_MODEL": "embedding_model",
    "MEMVAULT_EMBEDDING_DIM": "embedding_dim",
    "MEMVAULT_EMBEDDING_BATCH_SIZE": "embedding_batch_size",
    "MEMVAULT_EMBEDDING_BATCH_DELAY_MS": "embedding_batch_delay_ms",
    "MEMVAULT_CHUNK_MAX_CHARS": "chunk_max_chars",
    "MEMVAULT_DISTILL_THRESHOLD": "distill_threshold",
    "MEMVAULT_SEARCH_LIMIT": "search_limit",
    "MEMVAULT_MEMORIES_DIR": "memories_dir",
    "MEMVAULT_HEARTBEAT_FILE": "heartbeat_file",
    "MEMVAULT_DEDUP_WINDOW_HOURS": "dedup_window_hours",
    "MEMVAULT_ACTIVE_HOURS_START": "active_hours_start",
    "MEMVAULT_ACTIVE_HOURS_END": "active_hours_end",
    "MEMVAULT_TIMEZONE": "timezone",
    "MEMVAULT_AGENT_MODEL": "agent_model",
    "MEMVAULT_REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
}

_INT_FIELDS = {
    "embedding_dim",
    "embedding_batch_size",
    "embedding_batch_delay_ms",
    "chunk_max_chars",
    "distill_threshold",
    "search_limit",
    "dedup_window_hours",
    "request_timeout_seconds",
}


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            # No repo found, return original directory
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> dict[str, Any]:
    """Load the [memvault] table from .memvault/config.toml if it exists.

    Raises:
        ConfigError: If the file exists but is not valid TOML
    """
    config_file = repo_root / ".memvault" / "config.toml"

    if not config_file.exists():
        return {}

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config file {config_file}: {e}") from e

    section = data.get("memvault", {})
    if not isinstance(section, dict):
        raise ConfigError(f"Invalid config: [memvault] in {config_file} must be a table")
    return section


def _as_int(value: Any, *, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid config: {name} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    raise ConfigError(f"Invalid config: {name} must be an int, got {value!r}")


class MemvaultConfig(BaseModel):
    """Validated runtime configuration.

    Read-only after construction; shared by every component in the process.
    """

    vault_path: Path = Field(default=Path("./vault"))
    db_path: Path = Field(default=Path("./data/memvault.db"))

    # Credentials (empty string means "not configured")
    voyage_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")

    # Embeddings
    embedding_model: str = Field(default="voyage-3-lite", min_length=1)
    embedding_dim: int = Field(default=1024, gt=0)
    embedding_batch_size: int = Field(default=128, ge=1, le=128)
    embedding_batch_delay_ms: int = Field(default=200, ge=0)

    # Chunking / retrieval
    chunk_max_chars: int = Field(default=2000, gt=0)
    search_limit: int = Field(default=5, ge=1)

    # Distillation
    distill_threshold: int = Field(default=20, ge=1)
    memories_dir: str = Field(default="memories", min_length=1)

    # Heartbeat
    heartbeat_file: str = Field(default="heartbeat.md", min_length=1)
    dedup_window_hours: int = Field(default=24, gt=0)
    active_hours_start: str = Field(default="08:00")
    active_hours_end: str = Field(default="22:00")
    timezone: str = Field(default="Europe/Paris")

    # Agent service
    agent_model: str = Field(default="claude-haiku-4-5-20251001", min_length=1)
    request_timeout_seconds: int = Field(default=60, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    @field_validator("vault_path", "db_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @field_validator("active_hours_start", "active_hours_end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        if not _HHMM_RE.match(value):
            raise ValueError(f"must be HH:MM (24h), got {value!r}")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown IANA timezone {value!r}") from e
        return value

    @field_validator("memories_dir", "heartbeat_file")
    @classmethod
    def _check_relative(cls, value: str) -> str:
        if Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError(f"must be a path relative to the vault root, got {value!r}")
        return value

    @property
    def has_embedding_credential(self) -> bool:
        return bool(self.voyage_api_key.strip())

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(
    overrides: Optional[dict[str, Any]] = None,
    *,
    environ: Optional[dict[str, str]] = None,
    repo_root: Optional[Path] = None,
) -> MemvaultConfig:
    """Build a validated config from file, environment, and explicit overrides.

    Precedence (highest first): overrides, environment, .memvault/config.toml,
    defaults. Every source is validated eagerly.

    Args:
        overrides: Values from the CLI or caller; None values are ignored
        environ: Environment mapping (defaults to os.environ)
        repo_root: Where to look for .memvault/config.toml (defaults to the
            repository containing the current directory)

    Returns:
        MemvaultConfig

    Raises:
        ConfigError: If any option is malformed or out of range
    """
    env = os.environ if environ is None else environ
    root = repo_root if repo_root is not None else _find_repo_root(Path.cwd())

    values: dict[str, Any] = {}
    for key, value in _load_repo_config_data(root).items():
        if key in _INT_FIELDS:
            value = _as_int(value, name=f"[memvault].{key}")
        values[key] = value

    for env_name, field_name in ENV_VARS.items():
        raw = env.get(env_name)
        if raw is None or raw == "":
            continue
        if field_name in _INT_FIELDS:
            values[field_name] = _as_int(raw, name=env_name)
        else:
            values[field_name] = raw

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        return MemvaultConfig(**values)
    except ValidationError as e:
        problems = "\n".join(
            f"  - {'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Configuration errors:\n{problems}") from e
