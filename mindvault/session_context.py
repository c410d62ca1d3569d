"""
Session-start context.

Combines yesterday's journal and work-session summary, the work-continuity
state and the most recent learnings into a short plain-text briefing.
A delta variant reports only what changed since an earlier load.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .work_state import OpenItem, WorkStateManager

logger = logging.getLogger(__name__)

RULE = "═" * 50
MAX_LEARNINGS = 5
MAX_SESSIONS = 5
MAX_WORK_DONE = 5
DELTA_OPEN_ITEMS = 3
RECENT_DAYS = 7
PREVIOUS_MONTH_LIMIT = 2

SENTIMENT_MARKER = "sentiment-rating"

_SESSION_SECTION_RE = re.compile(r"## (?:Work|Session)[^\n]*\n(.*?)(?=\n##|\n---|\n#|\Z)", re.DOTALL)
_WORK_DONE_RE = re.compile(r"# (?:Daily Thoughts|Work)\n(.*?)(?=\n#|\Z)", re.DOTALL)
_CARRY_FORWARD_RE = re.compile(r"\*\*Carry forward:\*\* (.*)")
_RESPONSE_CONTEXT_RE = re.compile(r"## Assistant Response Context\s+(.*?)(?=\n---|\n##|\Z)", re.DOTALL)
_SUMMARY_LINE_RE = re.compile(r"📋 (?:\*\*)?SUMMARY:(?:\*\*)? (.+)")
_CAPTURE_TIME_RE = re.compile(r"\d{4}-\d{2}-\d{2}-(\d{2})(\d{2})")
_FILE_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_HEADING_RE = re.compile(r"^# (.+)$", re.MULTILINE)


@dataclass
class YesterdayContext:
    summary: str
    work_done: list[str] = field(default_factory=list)
    carry_forward: list[str] = field(default_factory=list)


@dataclass
class SessionContext:
    yesterday: YesterdayContext
    active_projects: list[str] = field(default_factory=list)
    open_items: list[OpenItem] = field(default_factory=list)
    recent_learnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "yesterday": {
                "summary": self.yesterday.summary,
                "workDone": self.yesterday.work_done,
                "carryForward": self.yesterday.carry_forward,
            },
            "activeProjects": self.active_projects,
            "openItems": [i.to_dict() for i in self.open_items],
            "recentLearnings": self.recent_learnings,
        }


def _bullets(block: str) -> list[str]:
    return [line.strip()[2:] for line in block.split("\n") if line.strip().startswith("-")]


def extract_session_summary(journal: str) -> Optional[str]:
    """Bullets of the journal's '## Work' or '## Session' section, joined."""
    m = _SESSION_SECTION_RE.search(journal)
    if not m:
        return None
    return ". ".join(_bullets(m.group(1))) or None


def extract_work_done(journal: str) -> list[str]:
    m = _WORK_DONE_RE.search(journal)
    if not m:
        return []
    return _bullets(m.group(1))[:MAX_WORK_DONE]


def extract_carry_forward(journal: str) -> list[str]:
    m = _CARRY_FORWARD_RE.search(journal)
    return [m.group(1).strip()] if m else []


def _read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def _month(dt: datetime) -> str:
    return dt.strftime("%Y-%m")


def _previous_month(dt: datetime) -> str:
    return _month(dt.replace(day=1) - timedelta(days=1))


def _md_files(directory: Path, after: datetime, include_sentiment: bool) -> list[tuple[Path, datetime]]:
    """(path, mtime) of .md files modified after `after`; sentiment captures filtered."""
    if not directory.is_dir():
        return []
    files = []
    for path in sorted(directory.glob("*.md")):
        if (SENTIMENT_MARKER in path.name) != include_sentiment:
            continue
        try:
            mtime = datetime.fromtimestamp(path.stat().st_mtime)
        except OSError:
            continue
        if mtime > after:
            files.append((path, mtime))
    return files


def find_yesterday_work(root: Path, day: str) -> Optional[str]:
    """First paragraph of the latest WORK session summary from `day` (YYYY-MM-DD)."""
    work_dir = root / "WORK"
    if not work_dir.is_dir():
        return None
    prefix = day.replace("-", "")
    sessions = sorted(d for d in work_dir.iterdir() if d.is_dir() and d.name.startswith(prefix))
    if not sessions:
        return None
    summary = _read(sessions[-1] / "summary.md")
    if summary is None:
        return None
    return summary.split("\n\n")[0].strip()


def load_recent_learnings(root: Path, since: Optional[datetime] = None,
                          now: Optional[datetime] = None) -> list[str]:
    """
    '[date] title' for the newest learnings.

    Looks in this month's ALGORITHM and SYSTEM directories, falling back
    to last month when this month's directory doesn't exist yet.
    """
    now = now or datetime.now()
    cutoff = since or now - timedelta(days=RECENT_DAYS)
    learnings: list[str] = []

    for subdir in ("ALGORITHM", "SYSTEM"):
        base = root / "LEARNING" / subdir
        month_dir = base / _month(now)
        limit = MAX_LEARNINGS
        if not month_dir.is_dir():
            month_dir = base / _previous_month(now)
            limit = PREVIOUS_MONTH_LIMIT

        files = _md_files(month_dir, cutoff, include_sentiment=False)
        files.sort(key=lambda f: f[1], reverse=True)
        for path, _ in files[:limit]:
            content = _read(path)
            if content is None:
                continue
            heading = _HEADING_RE.search(content)
            if not heading:
                continue
            m = _FILE_DATE_RE.match(path.name)
            learnings.append(f"[{m.group(1) if m else 'Recent'}] {heading.group(1)}")

    return learnings[:MAX_LEARNINGS]


def extract_recent_session_work(root: Path, since: datetime,
                                now: Optional[datetime] = None) -> list[str]:
    """'[HH:MM] summary' lines from this month's sentiment-rating captures."""
    now = now or datetime.now()
    month_dir = root / "LEARNING" / "ALGORITHM" / _month(now)
    files = _md_files(month_dir, since, include_sentiment=True)
    files.sort(key=lambda f: f[1])

    sessions = []
    for path, _ in files:
        content = _read(path)
        if content is None:
            continue
        section = _RESPONSE_CONTEXT_RE.search(content)
        if not section or "No response context available" in section.group(1):
            continue
        summary = _SUMMARY_LINE_RE.search(section.group(1))
        if not summary:
            continue
        t = _CAPTURE_TIME_RE.search(path.name)
        time_str = f"{t.group(1)}:{t.group(2)}" if t else ""
        sessions.append(f"[{time_str}] {summary.group(1).strip()}")

    return sessions[:MAX_SESSIONS]


def load_yesterday_context(config, now: Optional[datetime] = None) -> YesterdayContext:
    now = now or datetime.now()
    day = (now - timedelta(days=1)).strftime("%Y-%m-%d")

    journal = ""
    if config.vault is not None:
        journal = _read(config.vault / "journal" / f"{day}.md") or ""

    summary = extract_session_summary(journal) or find_yesterday_work(config.root, day)
    return YesterdayContext(
        summary=summary or "No work session found",
        work_done=extract_work_done(journal),
        carry_forward=extract_carry_forward(journal),
    )


def load_session_context(config, since: Optional[datetime] = None,
                         now: Optional[datetime] = None) -> SessionContext:
    """Full session-start context."""
    state = WorkStateManager(config.work_state_path).get_state()
    return SessionContext(
        yesterday=load_yesterday_context(config, now),
        active_projects=state.active_projects,
        open_items=state.open_items,
        recent_learnings=load_recent_learnings(config.root, since, now),
    )


def _priority_prefix(item: OpenItem) -> str:
    return f"[{item.priority.upper()}]" if item.priority else ""


def load_delta_context(config, since: datetime, now: Optional[datetime] = None) -> str:
    """Lightweight resume text: what changed since `since`."""
    now = now or datetime.now()
    state = WorkStateManager(config.work_state_path).get_state()
    new_learnings = load_recent_learnings(config.root, since, now)
    sessions = extract_recent_session_work(config.root, since, now)

    lines = ["🔄 SESSION RESUME (Delta since last load)", RULE, ""]

    hours = int((now - since).total_seconds() // 3600)
    lines.append(f"⏰ Last full load: {hours}h ago")
    lines.append("")

    if sessions:
        lines.append("🔨 RECENT SESSIONS:")
        lines.extend(f"  • {s}" for s in sessions)
        lines.append("")

    if new_learnings:
        lines.append("🆕 NEW LEARNINGS SINCE LAST LOAD:")
        lines.extend(f"  • {l}" for l in new_learnings)
        lines.append("")

    if state.open_items:
        lines.append("📝 CURRENT OPEN ITEMS:")
        for item in state.open_items[:DELTA_OPEN_ITEMS]:
            lines.append(f"  {_priority_prefix(item)} {item.description}")
        lines.append("")

    lines.append(RULE)
    return "\n".join(lines)


def format_session_context(context: SessionContext) -> str:
    """Human-readable session briefing."""
    lines = ["📊 SESSION CONTEXT", RULE, ""]

    lines.append("📅 YESTERDAY")
    lines.append(context.yesterday.summary)
    if context.yesterday.work_done:
        lines.append("")
        lines.append("Work completed:")
        lines.extend(f"  • {item}" for item in context.yesterday.work_done)
    if context.yesterday.carry_forward:
        lines.append("")
        lines.append("Carry forward:")
        lines.extend(f"  ⏭️  {item}" for item in context.yesterday.carry_forward)
    lines.append("")

    if context.active_projects:
        lines.append("🎯 ACTIVE PROJECTS")
        lines.extend(f"  • {p}" for p in context.active_projects)
        lines.append("")

    if context.open_items:
        lines.append("📝 OPEN ITEMS")
        for item in context.open_items:
            lines.append(f"  {_priority_prefix(item)} {item.description}")
        lines.append("")

    if context.recent_learnings:
        lines.append(f"💡 RECENT LEARNINGS (Last {RECENT_DAYS} days)")
        lines.extend(f"  • {l}" for l in context.recent_learnings)
        lines.append("")

    lines.append(RULE)
    return "\n".join(lines)
