"""
Tests for extractor.mention_detector module.

Tests cover:
- Whole-word, case-insensitive brand matching
- Brand names with punctuation
- Every occurrence recorded in text order
- Overlap resolution preferring longer matches
- Optional fuzzy matching
- Regex injection safety
"""

import pytest

from llm_visibility.extractor.mention_detector import (
    BrandMention,
    create_brand_pattern,
    detect_mentions,
    first_appearance_order,
    remove_overlapping_mentions,
)


class TestCreateBrandPattern:
    """Test suite for create_brand_pattern()."""

    def test_matches_whole_word(self):
        pattern = create_brand_pattern("Bynder")

        assert pattern.search("Bynder is great")

    def test_does_not_match_inside_word(self):
        pattern = create_brand_pattern("Bynder")

        assert not pattern.search("Cybynder is great")
        assert not pattern.search("Bynders everywhere")

    def test_case_insensitive(self):
        pattern = create_brand_pattern("HubSpot")

        assert pattern.search("hubspot and HUBSPOT")

    def test_punctuation_in_name(self):
        assert create_brand_pattern("Warmly.io").search("Try Warmly.io today")
        assert create_brand_pattern("C++").search("Written in C++.")

    def test_regex_metacharacters_are_escaped(self):
        pattern = create_brand_pattern("A.B")

        assert pattern.search("A.B wins")
        assert not pattern.search("AxB wins")

    def test_matches_next_to_punctuation(self):
        pattern = create_brand_pattern("Acme")

        assert pattern.search("(Acme)")
        assert pattern.search("Acme, Foo")
        assert pattern.search("**Acme**")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, name):
        with pytest.raises(ValueError, match="cannot be empty"):
            create_brand_pattern(name)


class TestDetectMentions:
    """Test suite for detect_mentions()."""

    def test_client_and_competitors(self):
        mentions = detect_mentions(
            "Acme and Foo are top widgets, Bar lags behind.", "Acme", ["Foo", "Bar"]
        )

        assert [(m.brand_name, m.category) for m in mentions] == [
            ("Acme", "client"),
            ("Foo", "competitor"),
            ("Bar", "competitor"),
        ]
        assert mentions[0].position == 0

    def test_all_occurrences_recorded(self):
        mentions = detect_mentions("Acme beats Foo. Acme is cheaper. acme!", "Acme", ["Foo"])

        client = [m for m in mentions if m.category == "client"]
        assert len(client) == 3
        assert client[2].original_text == "acme"

    def test_substring_brand_not_detected(self):
        mentions = detect_mentions("Cybynder is a different product.", "Bynder", [])

        assert mentions == []

    def test_empty_text(self):
        assert detect_mentions("", "Acme", ["Foo"]) == []
        assert detect_mentions("   ", "Acme", ["Foo"]) == []

    def test_blank_competitor_skipped(self):
        mentions = detect_mentions("Acme rocks", "Acme", ["", "  "])

        assert [m.brand_name for m in mentions] == ["Acme"]

    def test_longer_overlapping_brand_wins(self):
        mentions = detect_mentions("Acme Cloud is great", "Acme", ["Acme Cloud"])

        assert [(m.brand_name, m.category) for m in mentions] == [
            ("Acme Cloud", "competitor")
        ]

    def test_fuzzy_disabled_by_default(self):
        mentions = detect_mentions("Hubspott is popular", "HubSpot", [])

        assert mentions == []

    def test_fuzzy_match_when_enabled(self):
        mentions = detect_mentions("Hubspott is popular", "HubSpot", [], fuzzy_threshold=85)

        assert len(mentions) == 1
        assert mentions[0].match_type == "fuzzy"
        assert mentions[0].original_text == "Hubspott"
        assert mentions[0].fuzzy_score >= 85

    def test_exact_match_not_duplicated_by_fuzzy(self):
        mentions = detect_mentions("HubSpot is popular", "HubSpot", [], fuzzy_threshold=80)

        assert len(mentions) == 1
        assert mentions[0].match_type == "exact"


class TestBrandMention:
    """Test suite for BrandMention validation."""

    def test_invalid_category(self):
        with pytest.raises(ValueError, match="category"):
            BrandMention("Acme", "Acme", "partner", 0)

    def test_invalid_match_type(self):
        with pytest.raises(ValueError, match="match_type"):
            BrandMention("Acme", "Acme", "client", 0, match_type="regex")

    def test_end(self):
        assert BrandMention("Acme", "Acme", "client", 10).end == 14


class TestHelpers:
    """Test suite for overlap removal and ordering helpers."""

    def test_remove_overlapping_keeps_disjoint(self):
        a = BrandMention("Acme", "Acme", "client", 0)
        b = BrandMention("Foo", "Foo", "competitor", 10)

        assert remove_overlapping_mentions([b, a]) == [a, b]

    def test_remove_overlapping_empty(self):
        assert remove_overlapping_mentions([]) == []

    def test_first_appearance_order(self):
        mentions = detect_mentions("Bar, then Foo, then Bar again", "Acme", ["Foo", "Bar"])

        assert first_appearance_order(mentions, "competitor") == ["Bar", "Foo"]
        assert first_appearance_order(mentions, "client") == []
