"""
Lexicon-based sentiment toward the client brand.

Only sentences that hold one of the client's detected mentions are scored, so
praise for a competitor in another sentence does not leak into the client's
sentiment, and "Acme Cloud" (a longer competitor name) does not count as a
sentence about "Acme".

score = (positive - negative) / (positive + negative)

    no keyword hits      -> "neutral"
    score > 0.2          -> "positive"
    score < -0.2         -> "negative"
    otherwise            -> "mixed"

"not_mentioned" is returned when there is no client mention.
"""

import re
from collections.abc import Iterator

from llm_visibility.extractor.mention_detector import BrandMention

POSITIVE_WORDS = frozenset(
    [
        "excellent", "great", "best", "amazing", "outstanding", "superior",
        "recommended", "recommend", "favorite", "love", "perfect", "innovative",
        "leading", "top", "popular", "reliable", "powerful", "intuitive",
    ]
)

NEGATIVE_WORDS = frozenset(
    [
        "poor", "bad", "worst", "terrible", "avoid", "disappointing",
        "expensive", "overpriced", "lacking", "limited", "issues", "problems",
        "clunky", "outdated", "buggy", "lags", "complicated",
    ]
)

SCORE_THRESHOLD = 0.2

# no split after list numbers such as "1."
_SENTENCE_SPLIT = re.compile(r"(?<=\D[.!?])\s+|\n+")
_WORD = re.compile(r"[a-z]+")

SENTIMENT_VALUES = ("positive", "neutral", "negative", "mixed", "not_mentioned")


def _sentence_spans(text: str) -> Iterator[tuple[int, int]]:
    start = 0
    for separator in _SENTENCE_SPLIT.finditer(text):
        yield start, separator.start()
        start = separator.end()
    yield start, len(text)


def brand_sentences(text: str, mentions: list[BrandMention]) -> list[str]:
    """Return the sentences (or lines) of text that hold one of `mentions`."""
    positions = [mention.position for mention in mentions]
    return [
        text[start:end]
        for start, end in _sentence_spans(text)
        if start < end and any(start <= position < end for position in positions)
    ]


def classify_sentiment(positive: int, negative: int) -> str:
    """
    Map keyword hit counts to a sentiment label.

    Examples:
        >>> classify_sentiment(2, 0)
        'positive'
        >>> classify_sentiment(1, 1)
        'mixed'
        >>> classify_sentiment(0, 0)
        'neutral'
    """
    total = positive + negative
    if total == 0:
        return "neutral"

    score = (positive - negative) / total
    if score > SCORE_THRESHOLD:
        return "positive"
    if score < -SCORE_THRESHOLD:
        return "negative"
    return "mixed"


def analyze_brand_sentiment(text: str, mentions: list[BrandMention]) -> str:
    """
    Score sentiment toward the client from the sentences that mention it.

    Args:
        text: Raw answer text
        mentions: The client's mentions from detect_mentions()

    Returns:
        One of SENTIMENT_VALUES

    Example:
        >>> text = "Acme is the best option. Foo has issues."
        >>> analyze_brand_sentiment(text, detect_mentions(text, "Acme", []))
        'positive'
    """
    sentences = brand_sentences(text, mentions)
    if not sentences:
        return "not_mentioned"

    words = _WORD.findall(" ".join(sentences).lower())
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)
    return classify_sentiment(positive, negative)
