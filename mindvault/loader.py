"""
Entry loader for the synthesis pipeline.

Reads learning notes from month-partitioned directories
(LEARNING/<CATEGORY>/<YYYY-MM>/*.md) whose modification time falls
inside a window.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .metadata import (
    extract_rating,
    extract_tags,
    extract_title,
    importance_for,
    resolve_timestamp,
    stability_for,
    title_slug,
)
from .types import ALGORITHM_LEARNING, SYSTEM_LEARNING, Document

logger = logging.getLogger(__name__)

_MONTH_DIR_RE = re.compile(r"^\d{4}-\d{2}$")
_FILE_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")

# Categories stored in month partitions, relative to the memory root
MONTH_PARTITIONED = {
    ALGORITHM_LEARNING: Path("LEARNING") / "ALGORITHM",
    SYSTEM_LEARNING: Path("LEARNING") / "SYSTEM",
}

DEFAULT_CATEGORIES = (ALGORITHM_LEARNING, SYSTEM_LEARNING)

_ID_PREFIXES = {
    ALGORITHM_LEARNING: "algo_",
    SYSTEM_LEARNING: "sys_",
}

# Baseline importance and stability of a learning before rating and location rules
LEARNING_BASELINE = 4


def _month_dirs(category_dir: Path) -> list[Path]:
    try:
        entries = list(category_dir.iterdir())
    except OSError as e:
        logger.warning("Could not list %s: %s", category_dir, e)
        return []
    return sorted(d for d in entries if d.is_dir() and _MONTH_DIR_RE.match(d.name))


def load_entries(
    root: Path,
    start: datetime,
    end: datetime,
    categories: Optional[Iterable[str]] = None,
) -> list[Document]:
    """
    Load learnings modified within [start, end] (both inclusive).

    Unreadable files are skipped with a warning. The result is sorted by
    date string (zero-padded, so lexicographic order is date order);
    the sort is stable.

    Raises:
        ValueError: If a category has no month-partitioned directory layout
    """
    cats = tuple(categories) if categories is not None else DEFAULT_CATEGORIES
    for category in cats:
        if category not in MONTH_PARTITIONED:
            raise ValueError(f"Category {category} is not stored in month partitions")

    documents: list[Document] = []
    for category in cats:
        category_dir = root / MONTH_PARTITIONED[category]
        if not category_dir.is_dir():
            continue

        for month_dir in _month_dirs(category_dir):
            for path in sorted(month_dir.glob("*.md")):
                try:
                    mtime = datetime.fromtimestamp(path.stat().st_mtime)
                except OSError as e:
                    logger.warning("Could not stat %s: %s", path, e)
                    continue
                if not (start <= mtime <= end):
                    continue

                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Could not read %s: %s", path.name, e)
                    continue

                m = _FILE_DATE_RE.match(path.name)
                date = m.group(1) if m else mtime.strftime("%Y-%m-%d")
                rel = path.relative_to(category_dir).as_posix()
                location = f"{MONTH_PARTITIONED[category].as_posix()}/{rel}"
                rating = extract_rating(content)

                documents.append(Document(
                    id=_ID_PREFIXES[category] + rel.replace("/", "_").removesuffix(".md"),
                    path=path,
                    category=category,
                    title=extract_title(content) or title_slug(path),
                    body=content,
                    date=date,
                    timestamp=resolve_timestamp(path),
                    rating=rating,
                    tags=extract_tags(content),
                    importance=importance_for(rating, LEARNING_BASELINE),
                    stability=stability_for(location, LEARNING_BASELINE),
                ))

    documents.sort(key=lambda d: d.date)
    logger.debug("Loaded %d entries between %s and %s", len(documents), start, end)
    return documents
