"""
CLI tests using typer's CliRunner.

Each test gets its own memory root through MINDVAULT_ROOT and a HOME
without a vault.
"""

import json
import logging
from datetime import datetime

import pytest
from typer.testing import CliRunner

from mindvault.cli import app


@pytest.fixture
def root(tmp_path, isolated_home):
    return tmp_path / "MEMORY"


@pytest.fixture
def cli(root):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(app, list(args), env={"MINDVAULT_ROOT": str(root)})
    return invoke


@pytest.fixture
def learnings(root, write_file):
    month = root / "LEARNING" / "ALGORITHM" / "2026-01"
    for i, day in enumerate((26, 27, 28)):
        write_file(month / f"2026-01-{day}_note{i}.md",
                   f"# Note {i}\n\nRedis eviction #bug number {i}\n",
                   mtime=datetime(2026, 1, day, 12))
    return root


class TestIndexCommands:

    def test_init(self, cli, root):
        result = cli("init")
        assert result.exit_code == 0, result.output
        assert (root / "memory.db").exists()
        assert (root / "mindvault.toml").exists()

    def test_sync_and_search(self, cli, learnings):
        result = cli("sync")
        assert result.exit_code == 0, result.output
        assert "Synced 3 memories to database" in result.output

        result = cli("search", "eviction", "number", "1")
        assert result.exit_code == 0, result.output
        assert 'Found 1 results for "eviction number 1"' in result.output
        assert "Note 1 (ALGORITHM-LEARNING)" in result.output

    def test_json_search(self, cli, learnings):
        cli("sync")
        result = cli("--json", "search", "redis", "--limit", "2")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data) == 2
        assert data[0]["category"] == "ALGORITHM-LEARNING"

    def test_json_sync(self, cli, learnings):
        result = cli("--json", "sync", "--no-prune")
        data = json.loads(result.output)
        assert data == {"synced": 3, "skipped": [], "pruned": []}

    def test_repeated_invocations_share_ops_log(self, cli, learnings):
        for _ in range(3):
            result = cli("sync", "--no-prune")
            assert result.exit_code == 0, result.output

        ops = [h for h in logging.getLogger("mindvault").handlers
               if getattr(h, "baseFilename", None) == str(learnings / "mindvault-ops.log")]
        assert len(ops) == 1
        ops[0].flush()

        lines = (learnings / "mindvault-ops.log").read_text(encoding="utf-8").splitlines()
        assert sum("Synced 3 memories" in line for line in lines) == 3

    def test_search_without_query(self, cli):
        result = cli("search")
        assert result.exit_code == 1
        assert "No search query provided" in result.output

    def test_invalid_raw_query(self, cli):
        result = cli("search", "--raw", '"unbalanced')
        assert result.exit_code == 1
        assert "Error: Invalid search query" in result.output

    def test_stats(self, cli, learnings):
        cli("sync")
        result = cli("stats")
        assert result.exit_code == 0, result.output
        assert "Total memories: 3" in result.output
        assert "ALGORITHM-LEARNING: 3" in result.output

    def test_stats_json_empty(self, cli):
        result = cli("--json", "stats")
        data = json.loads(result.output)
        assert data["total"] == 0
        assert data["ratings"]["avg"] is None


class TestGrep:

    def test_matches(self, cli, learnings):
        result = cli("grep", "eviction")
        assert result.exit_code == 0, result.output
        assert "Found 3 files with 3 matches" in result.output
        assert "   > Redis eviction #bug number 0" in result.output

    def test_no_results(self, cli, learnings):
        result = cli("grep", "zebra")
        assert result.exit_code == 0
        assert 'No results found for "zebra"' in result.output

    def test_filters(self, cli, learnings):
        result = cli("--json", "grep", "eviction", "--type", "work")
        assert json.loads(result.output) == []

        result = cli("--json", "grep", "eviction", "--since", "2026-01-27")
        assert len(json.loads(result.output)) == 2

    def test_literal(self, cli, learnings):
        result = cli("--json", "grep", "#bug number [01]")
        assert len(json.loads(result.output)) == 2
        result = cli("--json", "grep", "--literal", "number [01]")
        assert json.loads(result.output) == []

    @pytest.mark.parametrize("args,message", [
        (("grep", "[unclosed"), "Invalid search pattern"),
        (("grep", "x", "--type", "bogus"), "Invalid type"),
        (("grep", "x", "--since", "last week"), "Invalid --since date"),
        (("grep",), "No search query provided"),
    ])
    def test_input_errors(self, cli, args, message):
        result = cli(*args)
        assert result.exit_code == 1
        assert message in result.output


class TestSynthesize:

    def test_empty_week(self, cli, root):
        result = cli("synthesize", "--date", "2026-02-01")
        assert result.exit_code == 0, result.output
        assert "Analyzing week: 2026-01-25 to 2026-02-01" in result.output
        assert "No learnings found for this week" in result.output
        assert not (root / "LEARNING" / "SYNTHESIS").exists()

    def test_dry_run(self, cli, learnings):
        result = cli("synthesize", "--date", "2026-02-01", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "Loaded 3 learnings" in result.output
        assert "# Weekly Synthesis - 2026-01-25 to 2026-02-01" in result.output
        assert not (learnings / "LEARNING" / "SYNTHESIS").exists()

    def test_writes_report(self, cli, learnings):
        result = cli("synthesize", "--date", "2026-02-01")
        assert result.exit_code == 0, result.output
        report = learnings / "LEARNING" / "SYNTHESIS" / "2026-02" / "Weekly-Synthesis-2026-02-01.md"
        assert report.exists()
        assert "### bug (3 occurrences)" in report.read_text(encoding="utf-8")
        assert (learnings / "STATE" / "memory-index.json").exists()

    def test_bad_date(self, cli):
        result = cli("synthesize", "--date", "01/02/2026")
        assert result.exit_code == 1
        assert "Invalid --date date" in result.output


class TestWorkCommands:

    def test_items_and_projects(self, cli, root):
        result = cli("work", "add-item", "Ship release", "high")
        assert result.exit_code == 0, result.output
        assert "Added [high] Ship release" in result.output
        assert "Added project blog" in cli("work", "add-project", "blog").output
        assert "already active" in cli("work", "add-project", "blog").output

        state = json.loads(cli("work", "show").output)
        assert state["activeProjects"] == ["blog"]
        assert state["openItems"][0]["priority"] == "high"

        assert "Cleared 1 item(s)" in cli("work", "clear-item", "Ship release").output
        cli("work", "remove-project", "blog")
        state = json.loads(cli("work", "show").output)
        assert state["openItems"] == []
        assert state["activeProjects"] == []

    def test_bad_priority(self, cli):
        result = cli("work", "add-item", "x", "urgent")
        assert result.exit_code == 1
        assert "Invalid priority" in result.output

    def test_update_session(self, cli):
        result = cli("work", "update-session", "Indexed journals", "Add tests", "Tag release",
                     "--file", "sync.py")
        assert result.exit_code == 0, result.output
        session = json.loads(cli("work", "show").output)["lastSession"]
        assert session["summary"] == "Indexed journals"
        assert session["nextSteps"] == ["Add tests", "Tag release"]
        assert session["filesModified"] == ["sync.py"]


class TestContextCommands:

    def test_load(self, cli):
        cli("work", "add-project", "mindvault")
        result = cli("context", "load")
        assert result.exit_code == 0, result.output
        assert result.output.startswith("📊 SESSION CONTEXT")
        assert "  • mindvault" in result.output

    def test_load_json(self, cli):
        data = json.loads(cli("--json", "context", "load").output)
        assert data["yesterday"]["summary"] == "No work session found"

    def test_delta(self, cli):
        result = cli("context", "delta", "2026-01-01T08:00:00")
        assert result.exit_code == 0, result.output
        assert "🔄 SESSION RESUME (Delta since last load)" in result.output

    def test_delta_bad_timestamp(self, cli):
        result = cli("context", "delta", "yesterday")
        assert result.exit_code == 1
        assert "Invalid timestamp" in result.output
