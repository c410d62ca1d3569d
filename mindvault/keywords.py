"""
Keyword extraction for pattern synthesis.

A document's keywords are its literal hashtags plus every term of a fixed
vocabulary that occurs anywhere in the lower-cased text. No tokenizing or
stemming: "debug" also contains "bug", "address" contains "add".
"""

from typing import Iterable, Optional

from .metadata import HASHTAG_RE

TECH_TERMS = (
    "bug", "fix", "error", "issue", "problem",
    "feature", "implement", "add", "create",
    "refactor", "optimize", "improve",
    "test", "debug", "deploy",
    "api", "database", "hook", "skill",
    "session", "memory", "learning", "context",
)


def extract_keywords(content: str, vocabulary: Optional[Iterable[str]] = None) -> list[str]:
    """
    Keyword tokens for a piece of content.

    Hashtags keep their '#' and case. Vocabulary terms match by
    case-insensitive substring containment.

    Returns:
        De-duplicated tokens: hashtags in order of appearance, then
        vocabulary terms in vocabulary order.
    """
    terms = TECH_TERMS if vocabulary is None else vocabulary
    keywords = HASHTAG_RE.findall(content)

    lower = content.lower()
    for term in terms:
        if term.lower() in lower:
            keywords.append(term)

    return list(dict.fromkeys(keywords))


def theme_of(keyword: str) -> str:
    """Theme name for a keyword: the hashtag '#' is dropped."""
    return keyword[1:] if keyword.startswith("#") else keyword
