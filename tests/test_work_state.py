"""Tests for the work-continuity state file."""

import json

import pytest

from mindvault.work_state import WorkState, WorkStateManager, validate_priority


@pytest.fixture
def manager(tmp_path):
    return WorkStateManager(tmp_path / "STATE" / "session-continuity.json")


class TestWorkStateManager:

    def test_default_state(self, manager):
        state = manager.get_state()
        assert state.active_projects == []
        assert state.open_items == []
        assert state.last_session.summary == "No previous session"
        assert not manager.path.exists()

    def test_corrupt_file_gives_default(self, manager):
        manager.path.parent.mkdir(parents=True)
        manager.path.write_text("{oops", encoding="utf-8")
        assert manager.get_state().last_session.summary == "No previous session"

    def test_add_open_item(self, manager):
        item = manager.add_open_item("Write migration notes")
        assert item.priority == "medium"

        manager.add_open_item("Ship release", "HIGH", context="blocked on CI")
        items = manager.get_state().open_items
        assert [i.description for i in items] == ["Write migration notes", "Ship release"]
        assert items[1].priority == "high"
        assert items[1].context == "blocked on CI"

    def test_invalid_priority(self, manager):
        with pytest.raises(ValueError):
            manager.add_open_item("x", "urgent")
        assert manager.get_state().open_items == []

    def test_empty_description(self, manager):
        with pytest.raises(ValueError):
            manager.add_open_item("   ")

    def test_clear_open_item(self, manager):
        manager.add_open_item("a")
        manager.add_open_item("b")
        manager.add_open_item("a")
        assert manager.clear_open_item("a") == 2
        assert [i.description for i in manager.get_state().open_items] == ["b"]
        assert manager.clear_open_item("missing") == 0

    def test_active_projects(self, manager):
        assert manager.add_active_project("mindvault") is True
        assert manager.add_active_project("mindvault") is False
        manager.add_active_project("blog")
        manager.remove_active_project("mindvault")
        assert manager.get_state().active_projects == ["blog"]

    def test_update_last_session(self, manager):
        manager.update_last_session("Indexed journals", ["Add tests"], ["sync.py"])
        session = manager.get_state().last_session
        assert session.summary == "Indexed journals"
        assert session.next_steps == ["Add tests"]
        assert session.files_modified == ["sync.py"]

    def test_file_uses_camel_case(self, manager):
        manager.add_open_item("a", "low")
        manager.update_last_session("s", ["n"])
        data = json.loads(manager.path.read_text(encoding="utf-8"))
        assert set(data) == {"activeProjects", "lastSession", "openItems", "lastUpdated"}
        assert set(data["openItems"][0]) == {"description", "createdAt", "priority"}
        assert data["lastSession"]["nextSteps"] == ["n"]
        assert "filesModified" not in data["lastSession"]

    def test_reads_foreign_file(self, manager):
        manager.path.parent.mkdir(parents=True)
        manager.path.write_text(json.dumps({
            "activeProjects": ["x"],
            "openItems": [{"description": "legacy", "createdAt": "2026-01-01T00:00:00"}],
        }), encoding="utf-8")
        state = manager.get_state()
        assert state.active_projects == ["x"]
        assert state.open_items[0].priority is None
        assert state.last_session.summary == "No previous session"


class TestValidatePriority:

    def test_normalizes(self):
        assert validate_priority(" Low ") == "low"

    def test_round_trip_dict(self):
        state = WorkState.default()
        assert WorkState.from_dict(state.to_dict()) == state
