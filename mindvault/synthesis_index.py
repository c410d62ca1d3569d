"""
Durable index of synthesis runs (STATE/memory-index.json).

    {
      "weeks": [{"start", "end", "learnings", "patterns", "file"}, ...],
      "patterns": {"<theme>": {"count": N, "weeks": ["<start>", ...]}}
    }

Weeks are appended, theme counts only grow. Read-modify-write without
locking: one writer at a time.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .synthesis import SynthesisResult

logger = logging.getLogger(__name__)


class SynthesisIndex:
    """In-memory copy of the synthesis index bound to its file."""

    def __init__(self, path: Path, data: dict[str, Any] | None = None):
        self.path = path
        data = data or {}
        weeks = data.get("weeks")
        patterns = data.get("patterns")
        self.weeks: list[dict] = list(weeks) if isinstance(weeks, list) else []
        self.patterns: dict[str, dict] = dict(patterns) if isinstance(patterns, dict) else {}

    @classmethod
    def load(cls, path: Path) -> "SynthesisIndex":
        """Read the index; a missing or corrupt file yields an empty index."""
        if not path.exists():
            return cls(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable synthesis index %s: %s", path, e)
            return cls(path)
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed synthesis index %s", path)
            return cls(path)
        return cls(path, data)

    def record(self, result: SynthesisResult, report_file: str) -> None:
        """Append a week and fold its themes into the running totals."""
        self.weeks.append({
            "start": result.week_start,
            "end": result.week_end,
            "learnings": result.total,
            "patterns": len(result.groups),
            "file": report_file,
        })
        for group in result.groups:
            entry = self.patterns.get(group.theme)
            if not isinstance(entry, dict):
                entry = self.patterns[group.theme] = {}
            # A damaged entry counts as absent
            if not isinstance(entry.get("count"), int):
                entry["count"] = 0
            if not isinstance(entry.get("weeks"), list):
                entry["weeks"] = []
            entry["count"] += group.occurrences
            entry["weeks"].append(result.week_start)

    def to_dict(self) -> dict[str, Any]:
        return {"weeks": self.weeks, "patterns": self.patterns}

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Updated synthesis index %s", self.path)
