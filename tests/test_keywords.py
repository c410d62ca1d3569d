"""Tests for keyword extraction."""

from mindvault.keywords import TECH_TERMS, extract_keywords, theme_of


class TestExtractKeywords:

    def test_hashtag_then_vocabulary(self):
        assert extract_keywords("Saw #bug in the parser") == ["#bug", "bug"]

    def test_substring_containment(self):
        # "debugging" contains "bug" and "debug"; "address" contains "add"
        assert extract_keywords("Debugging the address") == ["bug", "add", "debug"]

    def test_vocabulary_order_not_text_order(self):
        assert extract_keywords("deploy then refactor") == ["refactor", "deploy"]

    def test_custom_vocabulary(self):
        assert extract_keywords("Kafka consumer lag", ["kafka", "zookeeper"]) == ["kafka"]

    def test_hashtags_deduplicated(self):
        assert extract_keywords("#perf and #perf", []) == ["#perf"]

    def test_nothing_found(self):
        assert extract_keywords("quiet day", []) == []

    def test_default_vocabulary(self):
        assert "bug" in TECH_TERMS
        assert "context" in TECH_TERMS


class TestThemeOf:

    def test_hashtag_and_word_share_theme(self):
        assert theme_of("#bug") == theme_of("bug") == "bug"
