"""
Data types for the memory corpus.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional


# Closed category set. Stored verbatim in the index and in reports.
ALGORITHM_LEARNING = "ALGORITHM-LEARNING"
SYSTEM_LEARNING = "SYSTEM-LEARNING"
WORK_SESSION = "WORK-SESSION"
JOURNAL_ENTRY = "JOURNAL-ENTRY"

CATEGORIES = (ALGORITHM_LEARNING, SYSTEM_LEARNING, WORK_SESSION, JOURNAL_ENTRY)

# Short names accepted on the command line (--type work)
_CATEGORY_ALIASES = {
    "ALGORITHM": ALGORITHM_LEARNING,
    "SYSTEM": SYSTEM_LEARNING,
    "WORK": WORK_SESSION,
    "JOURNAL": JOURNAL_ENTRY,
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_category(value: str) -> str:
    """Resolve a category name or short alias to its canonical form.

    Raises:
        ValueError: If the value is not in the closed category set
    """
    key = (value or "").strip().upper()
    if key in CATEGORIES:
        return key
    if key in _CATEGORY_ALIASES:
        return _CATEGORY_ALIASES[key]
    allowed = ", ".join(_CATEGORY_ALIASES)
    raise ValueError(f"Invalid type {value!r}. Use {allowed}.")


def format_timestamp(dt: datetime) -> str:
    """Canonical stored timestamp: YYYY-MM-DD HH:MM:SS (local, no zone)."""
    return dt.strftime(TIMESTAMP_FORMAT)


@dataclass
class Document:
    """
    One unit of captured knowledge read from the corpus.

    `date` is the zero-padded YYYY-MM-DD used for ordering and display;
    `timestamp` is the full resolved creation time.
    """
    id: str
    path: Path
    category: str
    title: str
    body: str
    date: str
    timestamp: str = ""
    rating: Optional[int] = None
    tags: list[str] = field(default_factory=list)
    importance: int = 3
    stability: int = 3
    keywords: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"[{self.date}] {self.title}"


@dataclass
class MemoryRecord:
    """A row of the searchable index, one per Document identity."""
    id: str
    timestamp: str
    category: str
    topic: str
    content: str
    file_path: str
    rating: Optional[int] = None
    tags: str = ""
    importance: int = 3
    stability: int = 3
    rank: Optional[float] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "timestamp": self.timestamp,
            "category": self.category,
            "topic": self.topic,
            "content": self.content,
            "rating": self.rating,
            "tags": self.tags,
            "file_path": self.file_path,
            "importance": self.importance,
            "stability": self.stability,
        }
        if self.rank is not None:
            d["rank"] = self.rank
        return d
