"""
Shared pytest fixtures for mindvault tests.

Builds small memory corpora under tmp_path. File modification times are
set explicitly where a test depends on them.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from mindvault.config import VaultConfig


def _write(path: Path, content: str, mtime: Optional[datetime] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        ts = mtime.timestamp()
        os.utime(path, (ts, ts))
    return path


@pytest.fixture
def write_file():
    """Write a file (creating parents), optionally setting its mtime."""
    return _write


@pytest.fixture
def memory_root(tmp_path):
    root = tmp_path / "MEMORY"
    root.mkdir()
    return root


@pytest.fixture
def vault_dir(tmp_path):
    vault = tmp_path / "vault"
    vault.mkdir()
    return vault


@pytest.fixture
def config(memory_root, vault_dir):
    """Config rooted in tmp_path with a personal vault."""
    return VaultConfig(root=memory_root, vault=vault_dir)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at an empty directory so ~/vault does not exist."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("MINDVAULT_ROOT", raising=False)
    return home
