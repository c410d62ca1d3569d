"""
Work-continuity state (STATE/session-continuity.json).

Tracks active projects, the last session's summary and open items
between sessions. The JSON keys are camelCase to stay compatible with
other tools reading the same file.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

PRIORITIES = ("high", "medium", "low")
DEFAULT_PRIORITY = "medium"


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def _now_iso() -> str:
    return datetime.now().isoformat()


def validate_priority(priority: str) -> str:
    value = (priority or "").strip().lower()
    if value not in PRIORITIES:
        raise ValueError(f"Invalid priority {priority!r}. Use high, medium, or low.")
    return value


@dataclass
class OpenItem:
    description: str
    created_at: str
    priority: Optional[str] = None
    context: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OpenItem":
        return cls(
            description=str(data.get("description", "")),
            created_at=str(data.get("createdAt", "")),
            priority=data.get("priority"),
            context=data.get("context"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"description": self.description}
        if self.context is not None:
            d["context"] = self.context
        d["createdAt"] = self.created_at
        if self.priority is not None:
            d["priority"] = self.priority
        return d


@dataclass
class LastSession:
    date: str
    summary: str
    next_steps: list[str] = field(default_factory=list)
    files_modified: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LastSession":
        return cls(
            date=str(data.get("date", "")),
            summary=str(data.get("summary", "")),
            next_steps=list(data.get("nextSteps") or []),
            files_modified=data.get("filesModified"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "date": self.date,
            "summary": self.summary,
            "nextSteps": self.next_steps,
        }
        if self.files_modified is not None:
            d["filesModified"] = self.files_modified
        return d


@dataclass
class WorkState:
    active_projects: list[str]
    last_session: LastSession
    open_items: list[OpenItem]
    last_updated: str

    @classmethod
    def default(cls) -> "WorkState":
        return cls(
            active_projects=[],
            last_session=LastSession(date=_today(), summary="No previous session"),
            open_items=[],
            last_updated=_now_iso(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkState":
        default = cls.default()
        last_session = data.get("lastSession")
        return cls(
            active_projects=[str(p) for p in data.get("activeProjects") or []],
            last_session=(LastSession.from_dict(last_session)
                          if isinstance(last_session, dict) else default.last_session),
            open_items=[OpenItem.from_dict(i) for i in data.get("openItems") or []
                        if isinstance(i, dict)],
            last_updated=str(data.get("lastUpdated", default.last_updated)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeProjects": self.active_projects,
            "lastSession": self.last_session.to_dict(),
            "openItems": [i.to_dict() for i in self.open_items],
            "lastUpdated": self.last_updated,
        }


class WorkStateManager:
    """Read-modify-write access to the work-continuity file."""

    def __init__(self, path: Path):
        self.path = path

    def get_state(self) -> WorkState:
        """Current state; default state if the file is missing or corrupt."""
        if not self.path.exists():
            return WorkState.default()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Error reading work state %s: %s", self.path, e)
            return WorkState.default()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed work state %s", self.path)
            return WorkState.default()
        return WorkState.from_dict(data)

    def save_state(self, state: WorkState) -> None:
        """Write the state, stamping lastUpdated."""
        state.last_updated = _now_iso()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(state.to_dict(), indent=2, ensure_ascii=False),
                             encoding="utf-8")
        logger.info("Work state saved to %s", self.path)

    def add_open_item(
        self,
        description: str,
        priority: Optional[str] = None,
        context: Optional[str] = None,
    ) -> OpenItem:
        if not description or not description.strip():
            raise ValueError("Open item description is required")
        item = OpenItem(
            description=description,
            created_at=_now_iso(),
            priority=validate_priority(priority) if priority else DEFAULT_PRIORITY,
            context=context,
        )
        state = self.get_state()
        state.open_items.append(item)
        self.save_state(state)
        return item

    def clear_open_item(self, description: str) -> int:
        """Remove open items with this exact description. Returns how many."""
        state = self.get_state()
        before = len(state.open_items)
        state.open_items = [i for i in state.open_items if i.description != description]
        self.save_state(state)
        return before - len(state.open_items)

    def update_last_session(
        self,
        summary: str,
        next_steps: list[str],
        files_modified: Optional[list[str]] = None,
    ) -> LastSession:
        session = LastSession(
            date=_today(),
            summary=summary,
            next_steps=list(next_steps),
            files_modified=files_modified,
        )
        state = self.get_state()
        state.last_session = session
        self.save_state(state)
        return session

    def add_active_project(self, name: str) -> bool:
        """Add a project if not already active. Returns True if added."""
        state = self.get_state()
        if name in state.active_projects:
            return False
        state.active_projects.append(name)
        self.save_state(state)
        return True

    def remove_active_project(self, name: str) -> None:
        state = self.get_state()
        state.active_projects = [p for p in state.active_projects if p != name]
        self.save_state(state)
