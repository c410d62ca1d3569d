"""
Weekly pattern synthesis.

Pipeline: load learnings for the week -> extract keywords -> group by
theme -> keep themes backed by 3+ distinct documents -> attach an
insight -> render a report -> record the week in the synthesis index.

Grouping and insight selection are deterministic: the same documents
always produce the same groups, in the same order, with the same text.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable, Optional, Union

from .keywords import extract_keywords, theme_of
from .types import Document

logger = logging.getLogger(__name__)

MIN_PATTERN_DOCUMENTS = 3
LOW_RATING_THRESHOLD = 3
LOW_AVERAGE_THRESHOLD = 5
TOP_INSIGHTS = 5
WEEK_DAYS = 7

BUG_MARKERS = ("bug", "fix", "error")
DEBT_MARKERS = ("refactor", "optimize")

BUG_INSIGHT = "Pattern of similar bugs - consider preventive measures or improved testing"
DEBT_INSIGHT = "Technical debt accumulation - schedule dedicated refactoring time"


@dataclass
class KeywordGroup:
    """A theme with the distinct documents that mention it."""
    theme: str
    documents: list[Document]
    insight: str = ""

    @property
    def occurrences(self) -> int:
        return len(self.documents)

    def to_dict(self) -> dict:
        return {
            "theme": self.theme,
            "occurrences": self.occurrences,
            "insight": self.insight,
            "documents": [d.id for d in self.documents],
        }


@dataclass
class SynthesisResult:
    week_start: str
    week_end: str
    total: int
    groups: list[KeywordGroup] = field(default_factory=list)
    top_insights: list[str] = field(default_factory=list)
    low_ratings: list[Document] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "weekStart": self.week_start,
            "weekEnd": self.week_end,
            "totalLearnings": self.total,
            "patterns": [g.to_dict() for g in self.groups],
            "topInsights": list(self.top_insights),
            "lowRatings": [
                {"date": d.date, "title": d.title, "rating": d.rating}
                for d in self.low_ratings
            ],
        }


def average_rating(documents: Iterable[Document]) -> Optional[float]:
    """Mean rating of the rated documents, or None when none are rated."""
    ratings = [d.rating for d in documents if d.rating is not None]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def generate_insight(theme: str, documents: list[Document]) -> str:
    """
    Pick one insight for a group. Rules are checked in order:
    low average rating, bug-like theme, tech-debt theme, generic.
    """
    avg = average_rating(documents)
    if avg is not None and avg < LOW_AVERAGE_THRESHOLD:
        return f"Repeated low ratings (avg {avg:.1f}/10) suggest this area needs improvement"

    if any(marker in theme for marker in BUG_MARKERS):
        return BUG_INSIGHT

    if any(marker in theme for marker in DEBT_MARKERS):
        return DEBT_INSIGHT

    return f"Recurring theme requiring attention - {len(documents)} instances this week"


def group_patterns(
    documents: list[Document],
    min_documents: int = MIN_PATTERN_DOCUMENTS,
) -> list[KeywordGroup]:
    """
    Group documents by theme and keep themes with enough distinct documents.

    Uses each document's precomputed `keywords`. A hashtag and the bare
    vocabulary word collapse into one theme. Groups are sorted by
    distinct document count, descending; ties keep first-seen order.
    """
    grouped: dict[str, dict[str, Document]] = {}
    for doc in documents:
        for keyword in doc.keywords:
            members = grouped.setdefault(theme_of(keyword), {})
            members.setdefault(doc.id, doc)

    groups = []
    for theme, members in grouped.items():
        if len(members) < min_documents:
            continue
        docs = list(members.values())
        groups.append(KeywordGroup(
            theme=theme,
            documents=docs,
            insight=generate_insight(theme, docs),
        ))

    groups.sort(key=lambda g: g.occurrences, reverse=True)
    return groups


def synthesize(
    documents: list[Document],
    week_start: str,
    week_end: str,
    vocabulary: Optional[Iterable[str]] = None,
) -> SynthesisResult:
    """Run keyword extraction, grouping and insight selection over a week."""
    vocab = tuple(vocabulary) if vocabulary is not None else None
    for doc in documents:
        doc.keywords = extract_keywords(doc.body, vocab)

    groups = group_patterns(documents)
    return SynthesisResult(
        week_start=week_start,
        week_end=week_end,
        total=len(documents),
        groups=groups,
        top_insights=[g.insight for g in groups[:TOP_INSIGHTS]],
        low_ratings=[
            d for d in documents
            if d.rating is not None and d.rating <= LOW_RATING_THRESHOLD
        ],
    )


def week_range(end: Union[date, datetime, None] = None) -> tuple[datetime, datetime]:
    """
    The seven days ending at `end`.

    A plain date means the end of that day, so `week_range(date(2026, 2, 1))`
    covers the instants after 2026-01-25 23:59:59.999999 up to the end of
    2026-02-01: the whole of Jan 26 to Feb 1. The week is still labelled by
    `start`'s calendar day (2026-01-25), which is why reports and the
    synthesis index show a start one day before the first included day.
    Defaults to now.
    """
    if end is None:
        end_dt = datetime.now()
    elif isinstance(end, datetime):
        end_dt = end
    else:
        end_dt = datetime.combine(end, time.max)
    return end_dt - timedelta(days=WEEK_DAYS), end_dt


def report_path(root: Path, week_end: str) -> Path:
    """LEARNING/SYNTHESIS/<YYYY-MM>/Weekly-Synthesis-<YYYY-MM-DD>.md"""
    return root / "LEARNING" / "SYNTHESIS" / week_end[:7] / f"Weekly-Synthesis-{week_end}.md"


@dataclass
class SynthesisRun:
    """Outcome of a weekly synthesis run."""
    result: SynthesisResult
    markdown: str = ""
    report: Optional[Path] = None


def run_weekly_synthesis(
    config,
    end: Union[date, datetime, None] = None,
    dry_run: bool = False,
    generated_at: Optional[datetime] = None,
) -> SynthesisRun:
    """
    Synthesize one week and persist the report and index entry.

    Nothing is written when the week has no learnings or `dry_run` is set.

    Args:
        config: VaultConfig supplying the memory root and vocabulary
        end: Last day (or instant) of the week; defaults to now. The week
            label starts at end - 7 days, see `week_range`
        dry_run: Render only
        generated_at: Timestamp printed in the report header
    """
    from .loader import load_entries
    from .report import render_report
    from .synthesis_index import SynthesisIndex

    start_dt, end_dt = week_range(end)
    week_start = start_dt.strftime("%Y-%m-%d")
    week_end = end_dt.strftime("%Y-%m-%d")
    logger.info("Synthesizing week %s to %s", week_start, week_end)

    documents = load_entries(config.root, start_dt, end_dt)
    result = synthesize(documents, week_start, week_end, config.vocabulary)
    if not documents:
        return SynthesisRun(result=result)

    markdown = render_report(result, generated_at or datetime.now())
    run = SynthesisRun(result=result, markdown=markdown)
    if dry_run:
        return run

    path = report_path(config.root, week_end)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(markdown, encoding="utf-8")
    run.report = path
    logger.info("Wrote synthesis %s (%d patterns)", path, len(result.groups))

    index = SynthesisIndex.load(config.synthesis_index_path)
    index.record(result, path.relative_to(config.root).as_posix())
    index.save()
    return run
