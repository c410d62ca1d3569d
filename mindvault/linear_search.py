"""
Line-oriented search over memory files, bypassing the index.

The query is compiled as a case-insensitive regular expression as given:
"fix|bug" matches either word, and "[todo" is an invalid pattern. Pass
literal=True to match the text verbatim.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from .sync import SOURCES, iter_source_files

logger = logging.getLogger(__name__)

CONTEXT_LINES = 3

_WORK_DATE_RE = re.compile(r"WORK/(\d{8})-\d{6}_")
_ISO_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})[-_]")
_MONTH_RE = re.compile(r"(\d{4}-\d{2})/")

# Session metadata is searchable but not indexed
_SCAN_SOURCES = tuple(
    replace(s, patterns=s.patterns + ("*/META.yaml",)) if s.name == "work" else s
    for s in SOURCES
)


@dataclass
class MatchContext:
    """One matching line with its surrounding lines."""
    line_number: int
    line: str
    before: list[str] = field(default_factory=list)
    after: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "line": self.line_number,
            "before": self.before,
            "match": self.line,
            "after": self.after,
        }


@dataclass
class SearchHit:
    """A file with at least one matching line."""
    path: Path
    relative_path: str
    category: str
    date: Optional[date]
    score: int
    matches: list[MatchContext]

    def to_dict(self) -> dict:
        return {
            "path": self.relative_path,
            "category": self.category,
            "date": self.date.isoformat() if self.date else None,
            "score": self.score,
            "matches": [m.to_dict() for m in self.matches],
        }


def resolve_path_date(path: Path | str) -> Optional[date]:
    """
    Date implied by a file's location, or None.

    WORK/<YYYYMMDD>-<HHMMSS>_ gives that day, a YYYY-MM-DD followed by
    '-' or '_' gives that day, a YYYY-MM/ directory gives the first of
    the month.
    """
    location = Path(path).as_posix()
    candidates = []

    m = _WORK_DATE_RE.search(location)
    if m:
        s = m.group(1)
        candidates.append((s[:4], s[4:6], s[6:8]))
    m = _ISO_DATE_RE.search(location)
    if m:
        candidates.append(tuple(m.group(1).split("-")))
    m = _MONTH_RE.search(location)
    if m:
        year, month = m.group(1).split("-")
        candidates.append((year, month, "01"))

    for year, month, day in candidates:
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            continue
    return None


def compile_query(query: str, literal: bool = False) -> re.Pattern:
    """
    Raises:
        ValueError: If the query is empty or not a valid pattern
    """
    if not query:
        raise ValueError("No search query provided")
    try:
        return re.compile(re.escape(query) if literal else query, re.IGNORECASE)
    except re.error as e:
        raise ValueError(f"Invalid search pattern {query!r}: {e}") from e


def search_lines(lines: list[str], pattern: re.Pattern, context: int = CONTEXT_LINES) -> tuple[list[MatchContext], int]:
    """Matching lines with context, and the total number of pattern matches."""
    matches = []
    score = 0
    for i, line in enumerate(lines):
        hits = sum(1 for _ in pattern.finditer(line))
        if not hits:
            continue
        score += hits
        matches.append(MatchContext(
            line_number=i + 1,
            line=line,
            before=lines[max(0, i - context):i],
            after=lines[i + 1:i + 1 + context],
        ))
    return matches, score


class LinearSearch:
    """Scan memory files directly with a compiled pattern."""

    def __init__(self, config, context_lines: Optional[int] = None):
        self.config = config
        self.context_lines = config.context_lines if context_lines is None else context_lines

    def _relative(self, path: Path) -> str:
        for base in (self.config.root, self.config.vault):
            if base is not None and path.is_relative_to(base):
                return path.relative_to(base).as_posix()
        return str(path)

    def search(
        self,
        query: str,
        categories: Optional[Iterable[str]] = None,
        since: Optional[date] = None,
        literal: bool = False,
    ) -> list[SearchHit]:
        """
        Search all memory files.

        Args:
            query: Regular expression (or literal text with literal=True)
            categories: Only search these categories
            since: Skip files whose path date is earlier; undated files are kept
            literal: Escape the query before compiling

        Returns:
            Hits sorted by score descending, ties in discovery order

        Raises:
            ValueError: For an empty query or invalid pattern
        """
        pattern = compile_query(query, literal)
        wanted = set(categories) if categories else None

        sources = [s for s in _SCAN_SOURCES if wanted is None or s.category in wanted]
        hits: list[SearchHit] = []
        for source_file in iter_source_files(self.config, sources):
            path = source_file.path
            file_date = resolve_path_date(source_file.location)
            if since is not None and file_date is not None and file_date < since:
                continue

            try:
                lines = path.read_text(encoding="utf-8").split("\n")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable %s: %s", path, e)
                continue

            matches, score = search_lines(lines, pattern, self.context_lines)
            if not matches:
                continue
            hits.append(SearchHit(
                path=path,
                relative_path=self._relative(path),
                category=source_file.source.category,
                date=file_date,
                score=score,
                matches=matches,
            ))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits
