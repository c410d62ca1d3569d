"""
Sync memory files into the searchable index.

Each source is a directory plus glob patterns, a category, an id prefix
and default scores. Identities are derived from the path relative to the
source directory, so re-syncing a file updates its record in place.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, Optional

from .metadata import (
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
from .types import (
    ALGORITHM_LEARNING,
    JOURNAL_ENTRY,
    SYSTEM_LEARNING,
    WORK_SESSION,
    MemoryRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Source:
    """A family of memory files sharing category and defaults."""
    name: str
    base: str                   # "root" or "vault"
    subdir: str
    patterns: tuple[str, ...]
    category: str
    id_prefix: str
    importance: int
    stability: int
    topic: Optional[str] = None  # fallback topic; None means derive from file name
    recent_only: bool = False    # limited to config.journal_days


SOURCES = (
    Source("work", "root", "WORK", ("*/summary.md", "*/IDEAL.md"),
           WORK_SESSION, "work_", 3, 2, topic="Work Session"),
    Source("algorithm", "root", "LEARNING/ALGORITHM", ("**/*.md",),
           ALGORITHM_LEARNING, "algo_", 4, 4, topic="Algorithm Learning"),
    Source("system", "root", "LEARNING/SYSTEM", ("**/*.md",),
           SYSTEM_LEARNING, "sys_", 4, 4, topic="System Learning"),
    Source("vault_work", "vault", "work", ("**/*.md",),
           WORK_SESSION, "vault_work_", 4, 3),
    Source("vault_projects", "vault", "projects", ("**/*.md",),
           WORK_SESSION, "vault_project_", 5, 4),
    Source("vault_journal", "vault", "journal", ("*.md",),
           JOURNAL_ENTRY, "vault_journal_", 3, 2, recent_only=True),
)


@dataclass
class SourceFile:
    source: Source
    path: Path
    directory: Path

    @property
    def relative(self) -> str:
        return self.path.relative_to(self.directory).as_posix()

    @property
    def location(self) -> str:
        """Path as seen from the base (memory root or vault) for stability rules."""
        return f"{self.source.subdir}/{self.relative}"


@dataclass
class SyncReport:
    synced: int = 0
    skipped: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"synced": self.synced, "skipped": self.skipped, "pruned": self.pruned}


def source_directory(source: Source, config) -> Optional[Path]:
    base = config.root if source.base == "root" else config.vault
    if base is None:
        return None
    return base / source.subdir


def iter_source_files(
    config,
    sources=SOURCES,
    now: Optional[datetime] = None,
) -> Iterator[SourceFile]:
    """Yield files for each source in a stable order (sorted per pattern)."""
    for source in sources:
        directory = source_directory(source, config)
        if directory is None or not directory.is_dir():
            continue

        cutoff = None
        if source.recent_only:
            cutoff = (now or datetime.now()) - timedelta(days=config.journal_days)

        seen: set[Path] = set()
        for pattern in source.patterns:
            for path in sorted(directory.glob(pattern)):
                if path in seen or not path.is_file():
                    continue
                seen.add(path)
                if cutoff is not None:
                    try:
                        if datetime.fromtimestamp(path.stat().st_mtime) <= cutoff:
                            continue
                    except OSError:
                        continue
                yield SourceFile(source, path, directory)


def make_id(source_file: SourceFile) -> str:
    """Stable identity: prefix + relative path with '/' -> '_' and no .md."""
    rel = source_file.relative.removesuffix(".md")
    return source_file.source.id_prefix + rel.replace("/", "_")


def build_record(source_file: SourceFile, content: str) -> MemoryRecord:
    """Turn one file's content into an index record."""
    source = source_file.source
    path = source_file.path

    topic = extract_title(content)
    if topic is None and source.category == WORK_SESSION:
        meta_title = read_session_meta(path).get("title")
        if meta_title:
            topic = str(meta_title)
    if topic is None and source.category == JOURNAL_ENTRY:
        topic = f"Journal {path.stem}"
    if topic is None:
        topic = title_slug(path) or source.topic or path.stem

    rating = extract_rating(content)
    return MemoryRecord(
        id=make_id(source_file),
        timestamp=resolve_timestamp(path),
        category=source.category,
        topic=topic,
        content=truncate_body(content, source.category),
        rating=rating,
        tags=" ".join(extract_tags(content)),
        file_path=str(path.resolve()),
        importance=importance_for(rating, source.importance),
        stability=stability_for(source_file.location, source.stability),
    )


def sync_all(store, config, prune: bool = True, now: Optional[datetime] = None) -> SyncReport:
    """
    Upsert every source file into the store.

    Unreadable files are skipped with a warning. With `prune`, records whose
    backing file has disappeared are deleted afterwards.
    """
    report = SyncReport()
    for source_file in iter_source_files(config, now=now):
        try:
            content = source_file.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable %s: %s", source_file.path, e)
            report.skipped.append(str(source_file.path))
            continue

        store.upsert(build_record(source_file, content))
        report.synced += 1

    if prune:
        report.pruned = store.prune_missing()

    logger.info("Synced %d memories (%d skipped, %d pruned)",
                report.synced, len(report.skipped), len(report.pruned))
    return report
