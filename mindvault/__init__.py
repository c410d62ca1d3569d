"""
Mindvault

A personal memory toolkit: full-text index over markdown notes, direct
line search with context, weekly pattern synthesis, and session-start
context built from journals and work state.

Quick Start:
    from mindvault import MemoryStore, load_or_create_config, sync_all

    config = load_or_create_config(Path("~/.claude/MEMORY").expanduser())
    with MemoryStore(config.database_path) as store:
        sync_all(store, config)
        results = store.search("hook timeout")

CLI Usage:
    mindvault sync
    mindvault search hook timeout
    mindvault grep "fix|bug" --type WORK --since 2026-01-20
    mindvault synthesize --date 2026-02-01
    mindvault context load

Environment Variables:
    MINDVAULT_ROOT     - Override the memory root (default ~/.claude/MEMORY)
    MINDVAULT_VERBOSE  - Set to 1 for debug logging on stderr

Configuration is persisted in mindvault.toml in the memory root.
"""

from .config import VaultConfig, load_or_create_config
from .linear_search import LinearSearch, SearchHit
from .memory_store import MemoryStore
from .sync import sync_all
from .synthesis import SynthesisResult, run_weekly_synthesis, synthesize
from .types import Document, MemoryRecord
from .work_state import WorkStateManager

__version__ = "0.1.0"
__all__ = [
    "VaultConfig",
    "load_or_create_config",
    "LinearSearch",
    "SearchHit",
    "MemoryStore",
    "sync_all",
    "SynthesisResult",
    "run_weekly_synthesis",
    "synthesize",
    "Document",
    "MemoryRecord",
    "WorkStateManager",
]
