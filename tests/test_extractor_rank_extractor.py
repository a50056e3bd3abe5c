"""
Tests for extractor.rank_extractor module.

Tests cover:
- Priority of numbered lists, bullets, headers and mention order
- Brands matched with the whole-word rule inside list lines
- Overlapping brand names resolved like mention detection (longest wins)
- One position per brand
- Rankings built from judge name lists
"""

import pytest

from llm_visibility.extractor.mention_detector import detect_mentions
from llm_visibility.extractor.rank_extractor import (
    RankedBrand,
    Ranking,
    extract_ranking,
    ranking_from_names,
)

BRANDS = ["Acme", "Foo", "Bar"]


def positions(ranking: Ranking) -> list[tuple[str, int]]:
    return [(entry.brand_name, entry.rank_position) for entry in ranking.ranked]


class TestExtractRanking:
    """Test suite for extract_ranking()."""

    def test_numbered_list(self):
        text = "Top picks:\n1. Foo - fast\n2. Acme - cheap\n3) Bar - old"

        ranking = extract_ranking(text, BRANDS)

        assert positions(ranking) == [("Foo", 1), ("Acme", 2), ("Bar", 3)]
        assert ranking.method == "numbered_list"
        assert ranking.confidence == 1.0
        assert ranking.rank_of("acme") == 2

    def test_numbered_list_keeps_list_numbers(self):
        text = "1. Widgetly\n2. Foo\n3. Acme"

        ranking = extract_ranking(text, BRANDS)

        assert ranking.rank_of("Acme") == 3
        assert ranking.rank_of("Bar") is None

    def test_bullet_list(self):
        text = "- **Bar**: solid\n* Acme: great\n• Foo"

        ranking = extract_ranking(text, BRANDS)

        assert positions(ranking) == [("Bar", 1), ("Acme", 2), ("Foo", 3)]
        assert ranking.method == "bullet_list"
        assert ranking.confidence == 0.8

    def test_headers(self):
        text = "## Acme\nGreat.\n### Foo\nFine.\n# Bar\nTitle level 1 is ignored."

        ranking = extract_ranking(text, BRANDS)

        assert positions(ranking) == [("Acme", 1), ("Foo", 2)]
        assert ranking.method == "headers"

    def test_mention_order(self):
        ranking = extract_ranking("Acme and Foo are top widgets, Bar lags behind.", BRANDS)

        assert positions(ranking) == [("Acme", 1), ("Foo", 2), ("Bar", 3)]
        assert ranking.method == "mention_order"
        assert ranking.confidence == 0.5

    def test_numbered_list_wins_over_bullets(self):
        text = "- Bar\n- Foo\n1. Acme"

        ranking = extract_ranking(text, BRANDS)

        assert ranking.method == "numbered_list"
        assert positions(ranking) == [("Acme", 1)]

    def test_first_brand_on_line_owns_it(self):
        text = "1. Foo (better than Acme)\n2. Acme"

        ranking = extract_ranking(text, BRANDS)

        assert positions(ranking) == [("Foo", 1), ("Acme", 2)]

    def test_brand_keeps_first_position(self):
        text = "1. Acme\n2. Foo\n3. Acme again"

        ranking = extract_ranking(text, BRANDS)

        assert positions(ranking) == [("Acme", 1), ("Foo", 2)]

    def test_substring_not_ranked(self):
        ranking = extract_ranking("1. Cybynder\n2. Bynder", ["Bynder"])

        assert positions(ranking) == [("Bynder", 2)]

    def test_longer_brand_wins_overlap(self):
        ranking = extract_ranking(
            "Acme Cloud leads the market. Foo is the best alternative.",
            ["Acme", "Acme Cloud", "Foo"],
        )

        assert positions(ranking) == [("Acme Cloud", 1), ("Foo", 2)]
        assert ranking.rank_of("Acme") is None

    def test_longer_brand_owns_list_line(self):
        text = "1. Acme Cloud\n2. Foo\n3. Acme"

        ranking = extract_ranking(text, ["Acme", "Acme Cloud", "Foo"])

        assert positions(ranking) == [("Acme Cloud", 1), ("Foo", 2), ("Acme", 3)]

    def test_uses_given_mentions(self):
        text = "Hubspott is popular, Foo too."
        mentions = detect_mentions(text, "HubSpot", ["Foo"], fuzzy_threshold=85)

        ranking = extract_ranking(text, ["HubSpot", "Foo"], mentions)

        assert positions(ranking) == [("HubSpot", 1), ("Foo", 2)]

    def test_no_brands(self):
        ranking = extract_ranking("Nothing relevant here.", BRANDS)

        assert ranking.ranked == ()
        assert ranking.method == "none"
        assert ranking.confidence == 0.3

    def test_empty_text(self):
        assert extract_ranking("", BRANDS) == Ranking()


class TestRankingFromNames:
    """Test suite for ranking_from_names()."""

    def test_reconciles_names(self):
        ranking = ranking_from_names(["foo", "Unknown", "ACME", "Foo"], ["Acme", "Foo"])

        assert positions(ranking) == [("Foo", 1), ("Acme", 2)]
        assert ranking.method == "judge"

    def test_empty_when_nothing_known(self):
        ranking = ranking_from_names(["Other"], ["Acme"])

        assert ranking.method == "none"
        assert ranking.ranked == ()


class TestRankedBrand:
    """Test suite for RankedBrand validation."""

    def test_invalid_rank(self):
        with pytest.raises(ValueError, match="rank_position"):
            RankedBrand("Acme", 0, 1.0)

    def test_invalid_confidence(self):
        with pytest.raises(ValueError, match="confidence"):
            RankedBrand("Acme", 1, 1.5)
