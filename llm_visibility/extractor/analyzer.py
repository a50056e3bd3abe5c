"""
Structured extraction from a raw provider answer.

ExtractionAnalyzer turns raw text into a StructuredExtraction. Three methods
are supported:

- "pattern": fully deterministic (mentions, ranking, lexicon sentiment).
  Follow-up questions cannot be answered without a judge.
- "hybrid": deterministic signals, plus a judge call only when there are
  follow-up questions. If the judge fails the extraction is still returned,
  marked degraded, with lexicon sentiment and unanswered follow-ups.
- "judge": a judge call is always made and supplies sentiment, follow-up
  answers and the ranking. If it fails, ExtractionError is raised and the
  task fails.

Brand mentions always come from the deterministic whole-word matcher, so
"brand_mentioned" means the same thing under every method. The ranking and
lexicon sentiment are computed from those same mentions, so a brand that is
not mentioned is never ranked or scored.

Example:
    >>> analyzer = ExtractionAnalyzer(method="pattern")
    >>> extraction = await analyzer.extract(
    ...     "Acme and Foo are top widgets, Bar lags behind.",
    ...     client_name="Acme",
    ...     competitors=["Foo", "Bar"],
    ... )
    >>> extraction.brand_mentioned, extraction.competitors_mentioned, extraction.brand_rank
    (True, ('Foo', 'Bar'), 1)
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from llm_visibility.exceptions import AdapterError, ExtractionError
from llm_visibility.extractor.judge import Judge, JudgeVerdict
from llm_visibility.extractor.mention_detector import (
    detect_mentions,
    first_appearance_order,
)
from llm_visibility.extractor.rank_extractor import (
    RankedBrand,
    Ranking,
    extract_ranking,
    ranking_from_names,
)
from llm_visibility.extractor.sentiment import analyze_brand_sentiment

logger = logging.getLogger(__name__)

EXTRACTION_METHODS = ("pattern", "judge", "hybrid")

# Called with the judge sub-step state ("running", "done", "failed") and an
# optional error message
JudgeStateCallback = Callable[[str, str | None], None]


@dataclass(frozen=True)
class FollowUpAnswer:
    """A follow-up question and the judge's answer (None if unanswered)."""

    question: str
    answer: str | None = None


@dataclass(frozen=True)
class StructuredExtraction:
    """
    Visibility signals extracted from one answer.

    Attributes:
        brand_mentioned: Client brand appears as a whole word
        brand_mention_count: Number of client brand occurrences
        brand_rank: Client's rank in the answer, None if unranked
        ranking: All ranked known brands
        rank_method: Which rule produced the ranking
        rank_confidence: Confidence of the ranking (0.0-1.0)
        competitors_mentioned: Competitors present, in order of first appearance
        sentiment: positive / neutral / negative / mixed / not_mentioned
        sentiment_source: "lexicon" or "judge"
        follow_up_answers: One entry per follow-up question
        extraction_method: "pattern", "judge" or "hybrid"
        degraded: The judge failed and deterministic values were kept
        judge_error: Why the judge failed, when degraded
    """

    brand_mentioned: bool
    brand_mention_count: int
    brand_rank: int | None
    ranking: tuple[RankedBrand, ...]
    rank_method: str
    rank_confidence: float
    competitors_mentioned: tuple[str, ...]
    sentiment: str
    sentiment_source: str
    follow_up_answers: tuple[FollowUpAnswer, ...] = field(default_factory=tuple)
    extraction_method: str = "pattern"
    degraded: bool = False
    judge_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ExtractionAnalyzer:
    """
    Applies an extraction method to raw answers.

    Attributes:
        method: "pattern", "judge" or "hybrid"
        judge: Judge used by the "judge" and "hybrid" methods
        fuzzy_threshold: rapidfuzz ratio for fuzzy brand matching (0 = off)
    """

    def __init__(
        self,
        method: str = "hybrid",
        judge: Judge | None = None,
        fuzzy_threshold: float = 0.0,
    ):
        if method not in EXTRACTION_METHODS:
            raise ValueError(
                f"method must be one of {EXTRACTION_METHODS}, got: {method}"
            )

        self.method = method
        self.judge = judge
        self.fuzzy_threshold = fuzzy_threshold

    def needs_judge(self, follow_up_questions: list[str]) -> bool:
        """Whether extracting with these questions requires a judge call."""
        if self.method == "judge":
            return True
        return self.method == "hybrid" and bool(follow_up_questions)

    async def extract(
        self,
        raw_text: str,
        client_name: str,
        competitors: list[str],
        follow_up_questions: list[str] | None = None,
        on_judge_state: JudgeStateCallback | None = None,
    ) -> StructuredExtraction:
        """
        Extract visibility signals from one raw answer.

        Args:
            raw_text: The provider's answer
            client_name: Client brand
            competitors: De-duplicated competitor names
            follow_up_questions: Questions for the judge
            on_judge_state: Notified when the judge sub-step changes state

        Returns:
            StructuredExtraction

        Raises:
            ExtractionError: Under the "judge" method when the judge fails,
                or when a judge is required but none is configured
        """
        questions = list(follow_up_questions or [])
        competitors = [c for c in competitors if c.lower() != client_name.lower()]

        mentions = detect_mentions(raw_text, client_name, competitors, self.fuzzy_threshold)
        client_mentions = [m for m in mentions if m.category == "client"]
        brand_mentioned = bool(client_mentions)
        competitors_mentioned = tuple(first_appearance_order(mentions, "competitor"))

        ranking = extract_ranking(raw_text, [client_name, *competitors], mentions)
        sentiment = analyze_brand_sentiment(raw_text, client_mentions)
        sentiment_source = "lexicon"
        answers = tuple(FollowUpAnswer(question) for question in questions)
        degraded = False
        judge_error = None

        if self.needs_judge(questions):
            try:
                verdict = await self._run_judge(
                    raw_text, client_name, competitors, questions, on_judge_state
                )
            except (AdapterError, ExtractionError) as e:
                judge_error = str(e)
                if self.method == "judge":
                    raise ExtractionError(f"Judge extraction failed: {e}") from e
                logger.warning(f"Judge failed, keeping deterministic extraction: {e}")
                degraded = True
            else:
                answers = tuple(
                    FollowUpAnswer(question, answer)
                    for question, answer in zip(questions, verdict.follow_up_answers)
                )
                if brand_mentioned:
                    sentiment = verdict.sentiment
                    sentiment_source = "judge"
                if self.method == "judge":
                    # the judge may only order brands the answer actually names
                    mentioned = [client_name] if brand_mentioned else []
                    judged = ranking_from_names(
                        list(verdict.ranking), [*mentioned, *competitors_mentioned]
                    )
                    if judged.ranked:
                        ranking = judged

        return StructuredExtraction(
            brand_mentioned=brand_mentioned,
            brand_mention_count=len(client_mentions),
            brand_rank=ranking.rank_of(client_name),
            ranking=ranking.ranked,
            rank_method=ranking.method,
            rank_confidence=ranking.confidence,
            competitors_mentioned=competitors_mentioned,
            sentiment=sentiment,
            sentiment_source=sentiment_source,
            follow_up_answers=answers,
            extraction_method=self.method,
            degraded=degraded,
            judge_error=judge_error,
        )

    async def _run_judge(
        self,
        raw_text: str,
        client_name: str,
        competitors: list[str],
        questions: list[str],
        on_judge_state: JudgeStateCallback | None,
    ) -> JudgeVerdict:
        """Run the judge, reporting its sub-step state to the callback."""
        if self.judge is None:
            raise ExtractionError(f"Extraction method '{self.method}' requires a judge")

        if on_judge_state:
            on_judge_state("running", None)
        try:
            verdict = await self.judge.evaluate(
                raw_text,
                client_name,
                competitors,
                questions,
                include_ranking=self.method == "judge",
            )
        except (AdapterError, ExtractionError) as e:
            if on_judge_state:
                on_judge_state("failed", str(e))
            raise
        if on_judge_state:
            on_judge_state("done", None)
        return verdict
