"""
Brand mention detection.

Matching rule: a brand name matches case-insensitively, and only when it is
not directly preceded or followed by a word character. "Bynder is great"
matches "Bynder"; "Cybynder" and "Bynders" do not. The lookarounds are used
instead of \\b so names that start or end with punctuation ("C++",
"Warmly.io", ".NET") still match as whole tokens.

Key features:
- Case-insensitive whole-word matching
- Every occurrence recorded, with character position
- Optional fuzzy matching (rapidfuzz) for misspelled brand names
- Overlapping match resolution (prefers longer matches)

Security:
- Always uses re.escape() to prevent regex injection
"""

import re
from dataclasses import dataclass

from rapidfuzz import fuzz

# Word-like tokens (keeps "Warmly.io" and "C++" together) for fuzzy windows
_TOKEN_PATTERN = re.compile(r"\w[\w.&+'-]*\w|\w")


@dataclass(frozen=True)
class BrandMention:
    """
    A brand found in answer text.

    Attributes:
        brand_name: Canonical name as configured (e.g. "HubSpot")
        original_text: How the brand appeared in the answer
        category: "client" or "competitor"
        position: Character offset of the match
        match_type: "exact" or "fuzzy"
        fuzzy_score: rapidfuzz ratio for fuzzy matches, None for exact
    """

    brand_name: str
    original_text: str
    category: str
    position: int
    match_type: str = "exact"
    fuzzy_score: float | None = None

    def __post_init__(self):
        if self.category not in ("client", "competitor"):
            raise ValueError(
                f"category must be 'client' or 'competitor', got: {self.category}"
            )

        if self.match_type not in ("exact", "fuzzy"):
            raise ValueError(
                f"match_type must be 'exact' or 'fuzzy', got: {self.match_type}"
            )

    @property
    def end(self) -> int:
        return self.position + len(self.original_text)


def create_brand_pattern(name: str) -> re.Pattern:
    """
    Create the whole-word, case-insensitive pattern for a brand name.

    Args:
        name: Brand name (e.g. "HubSpot", "Warmly.io")

    Returns:
        Compiled pattern

    Raises:
        ValueError: If name is empty or whitespace

    Example:
        >>> pattern = create_brand_pattern("Bynder")
        >>> bool(pattern.search("Bynder is great"))
        True
        >>> bool(pattern.search("Cybynder is great"))
        False
    """
    if not name or name.isspace():
        raise ValueError("Brand name cannot be empty or whitespace")

    return re.compile(r"(?<!\w)" + re.escape(name.strip()) + r"(?!\w)", re.IGNORECASE)


def remove_overlapping_mentions(mentions: list[BrandMention]) -> list[BrandMention]:
    """
    Remove overlapping mentions, keeping the longest match.

    With competitors "Acme" and "Acme Cloud", the text "Acme Cloud" yields a
    single "Acme Cloud" mention rather than both.

    Example:
        >>> short = BrandMention("Acme", "Acme", "client", 10)
        >>> long = BrandMention("Acme Cloud", "Acme Cloud", "competitor", 10)
        >>> [m.brand_name for m in remove_overlapping_mentions([short, long])]
        ['Acme Cloud']
    """
    if not mentions:
        return []

    # Position first, then longer (and exact) matches first
    ordered = sorted(
        mentions,
        key=lambda m: (m.position, -len(m.original_text), m.match_type != "exact"),
    )

    result: list[BrandMention] = []
    for mention in ordered:
        overlapping = [
            kept
            for kept in result
            if mention.position < kept.end and mention.end > kept.position
        ]
        if not overlapping:
            result.append(mention)
            continue
        if all(len(mention.original_text) > len(kept.original_text) for kept in overlapping):
            for kept in overlapping:
                result.remove(kept)
            result.append(mention)

    result.sort(key=lambda m: m.position)
    return result


def _fuzzy_mentions(
    text: str,
    brand_name: str,
    category: str,
    threshold: float,
) -> list[BrandMention]:
    """
    Find near-miss spellings of a brand using windows of the same word count.

    Windows that match the brand exactly are skipped; those are found by the
    regex pass.
    """
    tokens = list(_TOKEN_PATTERN.finditer(text))
    width = max(1, len(brand_name.split()))
    target = brand_name.lower()
    found = []

    for i in range(len(tokens) - width + 1):
        start = tokens[i].start()
        end = tokens[i + width - 1].end()
        candidate = text[start:end]
        if candidate.lower() == target:
            continue
        score = fuzz.ratio(candidate.lower(), target)
        if score >= threshold:
            found.append(
                BrandMention(
                    brand_name=brand_name,
                    original_text=candidate,
                    category=category,
                    position=start,
                    match_type="fuzzy",
                    fuzzy_score=score,
                )
            )

    return found


def detect_mentions(
    text: str,
    client_name: str,
    competitors: list[str],
    fuzzy_threshold: float = 0.0,
) -> list[BrandMention]:
    """
    Detect every mention of the client brand and competitors in text.

    Args:
        text: Raw answer text
        client_name: The client brand
        competitors: Competitor names (already de-duplicated)
        fuzzy_threshold: Minimum rapidfuzz ratio (0-100) for fuzzy matches;
            0 disables fuzzy matching

    Returns:
        All mentions sorted by position, overlaps removed

    Example:
        >>> mentions = detect_mentions(
        ...     "Acme and Foo are top widgets, Bar lags behind.",
        ...     client_name="Acme",
        ...     competitors=["Foo", "Bar"],
        ... )
        >>> [(m.brand_name, m.category) for m in mentions]
        [('Acme', 'client'), ('Foo', 'competitor'), ('Bar', 'competitor')]

    Notes:
        - Empty text returns an empty list
        - Blank brand names are skipped
    """
    if not text or text.isspace():
        return []

    brands = [(client_name, "client")] + [(name, "competitor") for name in competitors]

    all_mentions: list[BrandMention] = []
    for brand_name, category in brands:
        if not brand_name or brand_name.isspace():
            continue

        pattern = create_brand_pattern(brand_name)
        for match in pattern.finditer(text):
            all_mentions.append(
                BrandMention(
                    brand_name=brand_name,
                    original_text=match.group(0),
                    category=category,
                    position=match.start(),
                )
            )

        if fuzzy_threshold > 0:
            all_mentions.extend(
                _fuzzy_mentions(text, brand_name, category, fuzzy_threshold)
            )

    return remove_overlapping_mentions(all_mentions)


def first_appearance_order(mentions: list[BrandMention], category: str) -> list[str]:
    """
    Return brand names of one category in order of first appearance.

    Example:
        >>> first_appearance_order(mentions, "competitor")
        ['Foo', 'Bar']
    """
    seen: dict[str, None] = {}
    for mention in mentions:
        if mention.category == category:
            seen.setdefault(mention.brand_name, None)
    return list(seen)
