"""Tests for extractor.sentiment module."""

import pytest

from llm_visibility.extractor.mention_detector import detect_mentions
from llm_visibility.extractor.sentiment import (
    analyze_brand_sentiment,
    brand_sentences,
    classify_sentiment,
)


def acme_sentiment(text: str, competitors: list[str] | None = None) -> str:
    mentions = detect_mentions(text, "Acme", competitors or [])
    client = [m for m in mentions if m.category == "client"]
    return analyze_brand_sentiment(text, client)


class TestClassifySentiment:
    @pytest.mark.parametrize(
        "positive, negative, expected",
        [
            (0, 0, "neutral"),
            (3, 0, "positive"),
            (0, 2, "negative"),
            (1, 1, "mixed"),
            (3, 2, "mixed"),
            (4, 1, "positive"),
        ],
    )
    def test_thresholds(self, positive, negative, expected):
        assert classify_sentiment(positive, negative) == expected


class TestAnalyzeBrandSentiment:
    def test_positive(self):
        assert acme_sentiment("Acme is the best and most reliable.") == "positive"

    def test_negative(self):
        assert acme_sentiment("Acme is clunky and overpriced.") == "negative"

    def test_only_brand_sentences_count(self):
        text = "Acme is a widget platform. Foo is terrible and buggy."

        assert acme_sentiment(text) == "neutral"

    def test_not_mentioned(self):
        assert acme_sentiment("Foo is great.") == "not_mentioned"

    def test_mixed(self):
        assert acme_sentiment("Acme and Foo are top widgets, Bar lags behind.") == "mixed"

    def test_longer_competitor_name_is_not_a_client_sentence(self):
        text = "Acme Cloud is the best and most reliable. Acme is limited."

        assert acme_sentiment(text, ["Acme Cloud"]) == "negative"

    def test_only_longer_competitor_named(self):
        text = "Acme Cloud leads the market. Foo is the best alternative."

        assert acme_sentiment(text, ["Acme Cloud", "Foo"]) == "not_mentioned"


def test_brand_sentences_split_on_lines_and_punctuation():
    text = "Intro line\n1. Acme: great\n2. Foo: fine. Acme also integrates!"

    sentences = brand_sentences(text, detect_mentions(text, "Acme", []))

    assert sentences == ["1. Acme: great", "Acme also integrates!"]
