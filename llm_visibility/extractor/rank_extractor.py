"""
Rank extraction.

Ranks the known brands (client plus competitors) within an answer using the
answer's own structure. Rules are tried in priority order and the first one
that ranks at least one known brand wins:

1. Numbered lists: "1. Acme", "2) Foo"      rank = list number, confidence 1.0
2. Bullet lists:   "- Acme", "* Foo", "• Bar" rank = bullet order, confidence 0.8
3. Markdown headers: "## Acme"              rank = header order, confidence 0.8
4. Mention order: first appearance in text   confidence 0.5

Brands are located with detect_mentions(), so overlaps are resolved the same
way as for mention detection: with brands "Acme" and "Acme Cloud", the text
"Acme Cloud" ranks only "Acme Cloud". When a list line names several known
brands, the one written first owns the line. Each brand keeps only its first
(best) position.

Example:
    >>> text = "1. Foo\\n2. Acme\\n3. Bar"
    >>> ranking = extract_ranking(text, ["Acme", "Foo", "Bar"])
    >>> [(r.brand_name, r.rank_position) for r in ranking.ranked]
    [('Foo', 1), ('Acme', 2), ('Bar', 3)]
    >>> ranking.method, ranking.confidence
    ('numbered_list', 1.0)
"""

import re
from dataclasses import dataclass, field

from llm_visibility.extractor.mention_detector import BrandMention, detect_mentions

NUMBERED_LINE = re.compile(r"^\s*(\d+)[.)]\s+(.+)$")
BULLET_LINE = re.compile(r"^\s*[-*•]\s+(.+)$")
HEADER_LINE = re.compile(r"^\s*#{2,3}\s+(.+)$")

# Confidence when no known brand could be ranked at all
NO_RANKING_CONFIDENCE = 0.3


@dataclass(frozen=True)
class RankedBrand:
    """
    A brand's position in an answer's ranking.

    Attributes:
        brand_name: Canonical brand name
        rank_position: 1 = top
        confidence: How much the answer's structure supports this rank (0.0-1.0)
    """

    brand_name: str
    rank_position: int
    confidence: float

    def __post_init__(self):
        if self.rank_position < 1:
            raise ValueError(f"rank_position must be >= 1, got: {self.rank_position}")

        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be in range [0.0, 1.0], got: {self.confidence}"
            )


@dataclass(frozen=True)
class Ranking:
    """
    Result of rank extraction.

    Attributes:
        ranked: Ranked brands ordered by rank_position
        method: "numbered_list", "bullet_list", "headers", "mention_order",
            "judge" or "none"
        confidence: Overall confidence of the ranking
    """

    ranked: tuple[RankedBrand, ...] = field(default_factory=tuple)
    method: str = "none"
    confidence: float = NO_RANKING_CONFIDENCE

    def rank_of(self, brand_name: str) -> int | None:
        """Rank of a brand (case-insensitive), or None if unranked."""
        target = brand_name.lower()
        for entry in self.ranked:
            if entry.brand_name.lower() == target:
                return entry.rank_position
        return None


def _line_owner(line_start: int, line_end: int, mentions: list[BrandMention]) -> str | None:
    """Return the brand of the first mention inside [line_start, line_end)."""
    for mention in mentions:
        if line_start <= mention.position < line_end:
            return mention.brand_name
    return None


def _split_lines(text: str) -> list[tuple[str, int]]:
    """Each line of text (without its line break) with its offset in text."""
    lines = []
    offset = 0
    for line in text.splitlines(keepends=True):
        lines.append((line.rstrip("\r\n"), offset))
        offset += len(line)
    return lines


def _extract_numbered_list(
    lines: list[tuple[str, int]], mentions: list[BrandMention]
) -> list[RankedBrand]:
    ranked = []
    seen = set()
    for line, offset in lines:
        match = NUMBERED_LINE.match(line)
        if not match:
            continue
        rank_num = int(match.group(1))
        brand = _line_owner(offset + match.start(2), offset + match.end(2), mentions)
        if brand and brand not in seen and rank_num >= 1:
            ranked.append(RankedBrand(brand, rank_num, 1.0))
            seen.add(brand)

    ranked.sort(key=lambda b: b.rank_position)
    return ranked


def _extract_ordered_lines(
    lines: list[tuple[str, int]],
    line_pattern: re.Pattern,
    mentions: list[BrandMention],
    confidence: float,
) -> list[RankedBrand]:
    """Rank brands by the order of the lines (bullets or headers) naming them."""
    ranked = []
    seen = set()
    for line, offset in lines:
        match = line_pattern.match(line)
        if not match:
            continue
        brand = _line_owner(offset + match.start(1), offset + match.end(1), mentions)
        if brand and brand not in seen:
            ranked.append(RankedBrand(brand, len(ranked) + 1, confidence))
            seen.add(brand)
    return ranked


def _extract_from_mention_order(mentions: list[BrandMention]) -> list[RankedBrand]:
    order: dict[str, None] = {}
    for mention in mentions:
        order.setdefault(mention.brand_name, None)
    return [RankedBrand(brand, rank, 0.5) for rank, brand in enumerate(order, start=1)]


def extract_ranking(
    text: str,
    known_brands: list[str],
    mentions: list[BrandMention] | None = None,
) -> Ranking:
    """
    Rank known brands in text by the first rule that applies.

    Args:
        text: Raw answer text
        known_brands: Client brand first, then competitors
        mentions: Output of detect_mentions() for the same text and brands;
            computed (exact matches only) when omitted

    Returns:
        Ranking (method "none" with no entries when no brand is found)

    Example:
        >>> ranking = extract_ranking(
        ...     "Acme and Foo are top widgets, Bar lags behind.",
        ...     ["Acme", "Foo", "Bar"],
        ... )
        >>> [(r.brand_name, r.rank_position) for r in ranking.ranked]
        [('Acme', 1), ('Foo', 2), ('Bar', 3)]
        >>> ranking.method
        'mention_order'
    """
    brands = [brand for brand in known_brands if brand and not brand.isspace()]
    if not text or not brands:
        return Ranking()

    if mentions is None:
        mentions = detect_mentions(text, brands[0], brands[1:])
    if not mentions:
        return Ranking()

    lines = _split_lines(text)

    ranked = _extract_numbered_list(lines, mentions)
    if ranked:
        return Ranking(tuple(ranked), "numbered_list", 1.0)

    ranked = _extract_ordered_lines(lines, BULLET_LINE, mentions, 0.8)
    if ranked:
        return Ranking(tuple(ranked), "bullet_list", 0.8)

    ranked = _extract_ordered_lines(lines, HEADER_LINE, mentions, 0.8)
    if ranked:
        return Ranking(tuple(ranked), "headers", 0.8)

    return Ranking(tuple(_extract_from_mention_order(mentions)), "mention_order", 0.5)


def ranking_from_names(names: list[str], known_brands: list[str], confidence: float = 0.9) -> Ranking:
    """
    Build a ranking from an ordered list of names (e.g. a judge's answer).

    Names are reconciled case-insensitively against known_brands; unknown
    names and repeats are dropped and ranks are reassigned densely.

    Example:
        >>> ranking = ranking_from_names(["foo", "Unknown", "ACME", "Foo"], ["Acme", "Foo"])
        >>> [(r.brand_name, r.rank_position) for r in ranking.ranked]
        [('Foo', 1), ('Acme', 2)]
    """
    canonical = {brand.lower(): brand for brand in known_brands}
    ranked = []
    seen = set()
    for name in names:
        if not isinstance(name, str):
            continue
        brand = canonical.get(name.strip().lower())
        if brand and brand not in seen:
            ranked.append(RankedBrand(brand, len(ranked) + 1, confidence))
            seen.add(brand)

    if not ranked:
        return Ranking()
    return Ranking(tuple(ranked), "judge", confidence)
