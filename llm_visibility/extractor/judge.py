"""
LLM-as-judge extraction.

A second model reads a raw answer and returns a JSON verdict with the
client's sentiment, answers to the follow-up questions and (optionally) its
own ranking of the known brands. The call goes through the same adapter
contract as primary prompts, at temperature 0 with a dedicated system prompt.

Judge output is parsed leniently (raw JSON, a fenced ```json block, or the
first {...} span in the text) but validated strictly; anything unusable
raises JudgeResponseError.

Example:
    >>> judge = Judge(adapter)
    >>> verdict = await judge.evaluate(
    ...     "Acme is the best option...",
    ...     client_name="Acme",
    ...     competitors=["Foo"],
    ...     follow_up_questions=["Is Acme recommended for teams?"],
    ... )
    >>> verdict.sentiment
    'positive'
"""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from llm_visibility.config.constants import JUDGE_SYSTEM_PROMPT
from llm_visibility.exceptions import JudgeResponseError
from llm_visibility.extractor.sentiment import SENTIMENT_VALUES
from llm_visibility.providers.models import ProviderAdapter, ProviderResponse

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)

# Signature of the callable that performs the judge's adapter call
JudgeCall = Callable[..., Awaitable[ProviderResponse]]


@dataclass(frozen=True)
class JudgeVerdict:
    """
    Validated judge output.

    Attributes:
        sentiment: One of SENTIMENT_VALUES
        follow_up_answers: One answer per follow-up question (None if the
            judge skipped a question)
        ranking: Brand names in the judge's rank order (may be empty)
    """

    sentiment: str
    follow_up_answers: tuple[str | None, ...] = field(default_factory=tuple)
    ranking: tuple[str, ...] = field(default_factory=tuple)


async def _direct_call(adapter: ProviderAdapter, prompt: str, **kwargs: Any) -> ProviderResponse:
    return await adapter.complete(prompt, **kwargs)


def build_judge_prompt(
    raw_text: str,
    client_name: str,
    competitors: list[str],
    follow_up_questions: list[str],
    include_ranking: bool,
) -> str:
    """
    Build the judge prompt describing the expected JSON verdict.

    Example:
        >>> prompt = build_judge_prompt("Acme is great.", "Acme", ["Foo"], [], False)
        >>> '"sentiment"' in prompt
        True
    """
    schema_lines = [
        '  "sentiment": one of "positive", "neutral", "negative", "mixed", '
        '"not_mentioned" (how the answer portrays the client brand)',
        '  "follow_up_answers": an array with exactly one string answer per '
        "question below, in the same order, answered only from the text",
    ]
    if include_ranking:
        schema_lines.append(
            '  "ranking": an array of the brand names from the brand list, '
            "ordered from most to least recommended, including only brands "
            "the answer mentions"
        )

    if follow_up_questions:
        questions = "\n".join(
            f"{index}. {question}"
            for index, question in enumerate(follow_up_questions, start=1)
        )
    else:
        questions = "(none, return an empty array)"

    return (
        f"Client brand: {client_name}\n"
        f"Competitors: {', '.join(competitors) if competitors else '(none)'}\n\n"
        f"Questions:\n{questions}\n\n"
        "Return a JSON object with these keys:\n"
        + "\n".join(schema_lines)
        + "\n\nAnswer to analyze:\n"
        '"""\n'
        f"{raw_text}\n"
        '"""'
    )


def parse_judge_payload(text: str) -> dict[str, Any]:
    """
    Extract the JSON object from judge output.

    Accepts raw JSON, a fenced ```json block, or the outermost {...} span.

    Raises:
        JudgeResponseError: If no JSON object can be decoded

    Example:
        >>> parse_judge_payload('Sure! ```json\\n{"sentiment": "positive"}\\n```')
        {'sentiment': 'positive'}
    """
    if not text or text.isspace():
        raise JudgeResponseError("Judge returned an empty response")

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload

    raise JudgeResponseError(f"Judge output contained no JSON object: {text[:120]!r}")


def validate_verdict(
    payload: dict[str, Any], question_count: int, include_ranking: bool
) -> JudgeVerdict:
    """
    Check a decoded judge payload and convert it to a JudgeVerdict.

    Missing trailing answers are padded with None; extra answers are dropped.

    Raises:
        JudgeResponseError: On an unknown sentiment or wrongly typed fields
    """
    sentiment = payload.get("sentiment")
    if not isinstance(sentiment, str) or sentiment.strip().lower() not in SENTIMENT_VALUES:
        raise JudgeResponseError(f"Judge returned invalid sentiment: {sentiment!r}")

    answers = payload.get("follow_up_answers", [])
    if not isinstance(answers, list):
        raise JudgeResponseError("Judge 'follow_up_answers' must be an array")
    if len(answers) != question_count:
        logger.warning(
            f"Judge answered {len(answers)} of {question_count} follow-up questions"
        )
    normalized_answers = [
        str(answer).strip() if answer is not None and str(answer).strip() else None
        for answer in answers[:question_count]
    ]
    normalized_answers.extend([None] * (question_count - len(normalized_answers)))

    ranking: list[str] = []
    if include_ranking:
        raw_ranking = payload.get("ranking", [])
        if not isinstance(raw_ranking, list):
            raise JudgeResponseError("Judge 'ranking' must be an array")
        ranking = [name for name in raw_ranking if isinstance(name, str)]

    return JudgeVerdict(
        sentiment=sentiment.strip().lower(),
        follow_up_answers=tuple(normalized_answers),
        ranking=tuple(ranking),
    )


class Judge:
    """
    Runs judge evaluations through a provider adapter.

    Attributes:
        adapter: Adapter of the judge model
        call: Coroutine used to invoke the adapter; the scheduler passes its
            CallPolicy so judge calls get the same timeout and retries as
            primary calls
    """

    def __init__(self, adapter: ProviderAdapter, call: JudgeCall | None = None):
        self.adapter = adapter
        self.call = call or _direct_call

    async def evaluate(
        self,
        raw_text: str,
        client_name: str,
        competitors: list[str],
        follow_up_questions: list[str],
        include_ranking: bool = False,
    ) -> JudgeVerdict:
        """
        Ask the judge model for a verdict on one answer.

        Raises:
            AdapterError: If the judge call itself fails
            JudgeResponseError: If the judge output is unusable
        """
        prompt = build_judge_prompt(
            raw_text, client_name, competitors, follow_up_questions, include_ranking
        )

        logger.debug(
            f"Judge evaluation: provider={self.adapter.provider}, "
            f"model={self.adapter.model_name}, questions={len(follow_up_questions)}"
        )

        response = await self.call(
            self.adapter,
            prompt,
            temperature=0.0,
            system_prompt=JUDGE_SYSTEM_PROMPT,
        )
        payload = parse_judge_payload(response.text)
        return validate_verdict(payload, len(follow_up_questions), include_ranking)
