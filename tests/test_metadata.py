"""Tests for metadata extraction from markdown memories."""

from datetime import datetime
from pathlib import Path

import pytest

from mindvault.metadata import (
    extract_rating,
    extract_tags,
    extract_title,
    importance_for,
    read_session_meta,
    resolve_timestamp,
    stability_for,
    title_slug,
    truncate_body,
)
from mindvault.types import ALGORITHM_LEARNING, JOURNAL_ENTRY, WORK_SESSION


class TestExtractTitle:

    def test_first_heading(self):
        assert extract_title("intro\n# Cache warmup\n# Second") == "Cache warmup"

    def test_no_heading(self):
        assert extract_title("just text") is None

    def test_subheading_is_not_title(self):
        assert extract_title("## Details\nbody") is None


class TestExtractRating:

    @pytest.mark.parametrize("content,expected", [
        ("Rating: 8/10", 8),
        ("**RATE** this 3", 3),
        ("rating 10", 10),
        ("rating: 0", None),
        ("Rating: 42", None),
        ("no score here", None),
    ])
    def test_ratings(self, content, expected):
        assert extract_rating(content) == expected


class TestExtractTags:

    def test_order_and_dedup(self):
        assert extract_tags("#perf then #db and #perf again") == ["#perf", "#db"]

    def test_heading_marker_is_not_a_tag(self):
        assert extract_tags("# Title\n\nno tags") == []


class TestTitleSlug:

    def test_session_file_uses_directory(self):
        path = Path("WORK/20260129-150618_fix-hook-timeouts/summary.md")
        assert title_slug(path) == "fix hook timeouts"

    def test_date_prefix_stripped(self):
        assert title_slug(Path("2026-01-05_cache_warmup.md")) == "cache warmup"

    def test_plain_name(self):
        assert title_slug(Path("projects/roadmap.md")) == "roadmap"


class TestScores:

    @pytest.mark.parametrize("rating,expected", [
        (10, 5), (8, 5), (7, 4), (6, 4), (5, 3), (4, 3), (3, 2), (1, 2),
    ])
    def test_importance_from_rating(self, rating, expected):
        assert importance_for(rating, default=1) == expected

    def test_importance_default_when_unrated(self):
        assert importance_for(None, default=4) == 4

    @pytest.mark.parametrize("location,expected", [
        ("projects/goals/plan.md", 5),
        ("work/user-context.md", 5),
        ("LEARNING/ALGORITHM/2026-01/a.md", 4),
        ("WORK/20260129-150618_x/summary.md", 2),
        ("projects/roadmap.md", 4),
    ])
    def test_stability_by_location(self, location, expected):
        assert stability_for(location, default=4) == expected


class TestTruncateBody:

    def test_work_limit(self):
        assert len(truncate_body("x" * 6000, WORK_SESSION)) == 5000

    def test_journal_limit(self):
        assert len(truncate_body("x" * 6000, JOURNAL_ENTRY)) == 3000

    def test_learnings_kept_whole(self):
        assert len(truncate_body("x" * 6000, ALGORITHM_LEARNING)) == 6000


class TestResolveTimestamp:

    def test_work_session_stamp(self):
        path = Path("/nonexistent/WORK/20260129-150618_fix/summary.md")
        assert resolve_timestamp(path) == "2026-01-29 15:06:18"

    def test_iso_date_is_noon(self):
        path = Path("/nonexistent/journal/2026-01-05.md")
        assert resolve_timestamp(path) == "2026-01-05 12:00:00"

    def test_invalid_date_falls_back_to_mtime(self, tmp_path, write_file):
        path = write_file(tmp_path / "2026-13-45_note.md", "x", mtime=datetime(2026, 1, 7, 8, 30))
        assert resolve_timestamp(path) == "2026-01-07 08:30:00"

    def test_missing_file_uses_now(self):
        now = datetime(2026, 2, 1, 9, 0, 0)
        assert resolve_timestamp(Path("/nonexistent/note.md"), now=now) == "2026-02-01 09:00:00"


class TestReadSessionMeta:

    def test_reads_sibling_yaml(self, tmp_path, write_file):
        write_file(tmp_path / "s" / "META.yaml", "title: Fix hook timeouts\nstatus: done\n")
        meta = read_session_meta(tmp_path / "s" / "summary.md")
        assert meta["title"] == "Fix hook timeouts"

    def test_missing(self, tmp_path):
        assert read_session_meta(tmp_path / "summary.md") == {}

    def test_invalid_yaml(self, tmp_path, write_file):
        write_file(tmp_path / "META.yaml", "title: [unclosed\n")
        assert read_session_meta(tmp_path / "summary.md") == {}

    def test_non_mapping(self, tmp_path, write_file):
        write_file(tmp_path / "META.yaml", "- a\n- b\n")
        assert read_session_meta(tmp_path / "summary.md") == {}
