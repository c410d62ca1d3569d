"""
Fixed-pattern metadata extraction from markdown memories.

Everything here is a pure function of (content, path) except the
timestamp fallbacks, which consult the filesystem and the clock.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .types import (
    JOURNAL_ENTRY,
    WORK_SESSION,
    format_timestamp,
)

logger = logging.getLogger(__name__)

TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
RATING_RE = re.compile(r"(?:rating|RATE).*?(\d+)", re.IGNORECASE)
HASHTAG_RE = re.compile(r"#[a-zA-Z0-9_-]+")

# WORK/20260129-150618_slug/...
_WORK_STAMP_RE = re.compile(r"WORK/(\d{8})-(\d{6})_")
_ISO_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[-_]")
_SESSION_PREFIX_RE = re.compile(r"^\d{8}-\d{6}[-_]?")

MIN_RATING = 1
MAX_RATING = 10

# Body truncation by category; learnings are kept whole
CONTENT_LIMITS = {
    WORK_SESSION: 5000,
    JOURNAL_ENTRY: 3000,
}

# Files inside a session directory named for their role, not their topic
_SESSION_FILES = {"summary", "IDEAL", "META"}


def extract_title(content: str) -> Optional[str]:
    """First top-level heading, or None."""
    m = TITLE_RE.search(content)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return None


def extract_rating(content: str) -> Optional[int]:
    """Integer rating near 'rating'/'RATE', or None if absent or outside 1-10."""
    m = RATING_RE.search(content)
    if not m:
        return None
    value = int(m.group(1))
    if MIN_RATING <= value <= MAX_RATING:
        return value
    return None


def extract_tags(content: str) -> list[str]:
    """Literal hashtags in order of first appearance, de-duplicated."""
    return list(dict.fromkeys(HASHTAG_RE.findall(content)))


def title_slug(path: Path) -> str:
    """Readable title derived from a file name.

    Session files (summary.md, IDEAL.md) take their directory's name
    with the timestamp prefix removed.
    """
    stem = path.stem
    if stem in _SESSION_FILES and path.parent.name:
        stem = _SESSION_PREFIX_RE.sub("", path.parent.name)
    stem = _DATE_PREFIX_RE.sub("", stem)
    return re.sub(r"[-_]+", " ", stem).strip()


def importance_for(rating: Optional[int], default: int) -> int:
    if rating is None:
        return default
    if rating >= 8:
        return 5
    if rating >= 6:
        return 4
    if rating >= 4:
        return 3
    return 2


def stability_for(location: str, default: int) -> int:
    """Stability by location substring (case-sensitive)."""
    if "goals" in location or "user-context" in location:
        return 5
    if "LEARNING/ALGORITHM" in location:
        return 4
    if "WORK" in location:
        return 2
    return default


def truncate_body(content: str, category: str) -> str:
    limit = CONTENT_LIMITS.get(category)
    if limit is None:
        return content
    return content[:limit]


def _parse(value: str, fmt: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value, fmt)
    except ValueError:
        return None


def resolve_timestamp(path: Path, now: Optional[datetime] = None) -> str:
    """
    Best-effort creation time for a file.

    Priority: WORK/<YYYYMMDD>-<HHMMSS>_ in the path, then a YYYY-MM-DD in
    the path (noon), then the file's mtime, then the current time.
    """
    location = path.as_posix()

    m = _WORK_STAMP_RE.search(location)
    if m:
        dt = _parse(m.group(1) + m.group(2), "%Y%m%d%H%M%S")
        if dt is not None:
            return format_timestamp(dt)

    m = _ISO_DATE_RE.search(location)
    if m:
        dt = _parse(m.group(1), "%Y-%m-%d")
        if dt is not None:
            return format_timestamp(dt.replace(hour=12))

    try:
        return format_timestamp(datetime.fromtimestamp(path.stat().st_mtime))
    except OSError:
        return format_timestamp(now or datetime.now())


def read_session_meta(path: Path) -> dict:
    """Load the META.yaml next to a session file; empty dict if absent or invalid."""
    meta_path = path.parent / "META.yaml"
    if not meta_path.is_file():
        return {}
    import yaml
    try:
        data = yaml.safe_load(meta_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", meta_path, e)
        return {}
    return data if isinstance(data, dict) else {}
