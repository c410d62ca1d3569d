"""
Configuration management for a memory root.

The configuration is stored as a TOML file in the memory root. It names
the optional personal vault, the index database, and tuning values for
sync, search and synthesis. Paths are resolved here once and handed to
components explicitly.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

from .keywords import TECH_TERMS


CONFIG_FILENAME = "mindvault.toml"
CONFIG_VERSION = 1

DATABASE_FILENAME = "memory.db"
STATE_DIRNAME = "STATE"
SYNTHESIS_INDEX_FILENAME = "memory-index.json"
WORK_STATE_FILENAME = "session-continuity.json"

ROOT_ENV = "MINDVAULT_ROOT"


def get_default_root() -> Path:
    """Memory root: $MINDVAULT_ROOT, else ~/.claude/MEMORY."""
    env = os.environ.get(ROOT_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".claude" / "MEMORY"


def get_default_vault() -> Path:
    return Path.home() / "vault"


@dataclass
class VaultConfig:
    """Complete configuration for one memory root."""
    root: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Optional personal vault (work/, projects/, journal/)
    vault: Optional[Path] = None
    database: Optional[Path] = None

    journal_days: int = 30
    context_lines: int = 3
    search_limit: int = 20
    vocabulary: list[str] = field(default_factory=lambda: list(TECH_TERMS))

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.root / CONFIG_FILENAME

    @property
    def database_path(self) -> Path:
        return self.database or self.root / DATABASE_FILENAME

    @property
    def state_dir(self) -> Path:
        return self.root / STATE_DIRNAME

    @property
    def synthesis_index_path(self) -> Path:
        return self.state_dir / SYNTHESIS_INDEX_FILENAME

    @property
    def work_state_path(self) -> Path:
        return self.state_dir / WORK_STATE_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def create_default_config(root: Path) -> VaultConfig:
    """New config; the vault is only set when ~/vault exists."""
    vault = get_default_vault()
    return VaultConfig(root=root, vault=vault if vault.is_dir() else None)


def load_config(root: Path) -> VaultConfig:
    """
    Load configuration from a memory root.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = root / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    paths = data.get("paths", {})
    sync = data.get("sync", {})
    search = data.get("search", {})
    synthesis = data.get("synthesis", {})

    def as_path(value: Optional[str]) -> Optional[Path]:
        if not value:
            return None
        p = Path(value).expanduser()
        return p if p.is_absolute() else root / p

    vocabulary = synthesis.get("vocabulary", list(TECH_TERMS))
    if not isinstance(vocabulary, list) or not all(isinstance(t, str) for t in vocabulary):
        raise ValueError("synthesis.vocabulary must be a list of strings")

    return VaultConfig(
        root=root,
        version=version,
        created=store.get("created", ""),
        vault=as_path(paths.get("vault")),
        database=as_path(paths.get("database")),
        journal_days=int(sync.get("journal_days", 30)),
        context_lines=int(search.get("context_lines", 3)),
        search_limit=int(search.get("limit", 20)),
        vocabulary=vocabulary,
    )


def save_config(config: VaultConfig) -> None:
    """
    Save configuration to the memory root.

    Creates the directory if it doesn't exist.
    """
    config.root.mkdir(parents=True, exist_ok=True)

    paths = {}
    if config.vault is not None:
        paths["vault"] = str(config.vault)
    if config.database is not None:
        paths["database"] = str(config.database)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "paths": paths,
        "sync": {"journal_days": config.journal_days},
        "search": {
            "context_lines": config.context_lines,
            "limit": config.search_limit,
        },
        "synthesis": {"vocabulary": list(config.vocabulary)},
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(root: Path) -> VaultConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = root / CONFIG_FILENAME

    if config_path.exists():
        return load_config(root)
    else:
        config = create_default_config(root)
        save_config(config)
        return config
