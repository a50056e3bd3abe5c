"""
Tests for extractor.judge module.

Tests cover:
- Judge prompt content
- Lenient payload parsing (raw, fenced, embedded JSON)
- Strict verdict validation
- Judge.evaluate() call parameters and the injectable call hook
"""

import json

import pytest

from llm_visibility.config.constants import JUDGE_SYSTEM_PROMPT
from llm_visibility.exceptions import AdapterServerError, JudgeResponseError
from llm_visibility.extractor.judge import (
    Judge,
    build_judge_prompt,
    parse_judge_payload,
    validate_verdict,
)
from llm_visibility.providers.mock_adapter import MockAdapter


class TestBuildJudgePrompt:
    """Test suite for build_judge_prompt()."""

    def test_contains_brands_questions_and_answer(self):
        prompt = build_judge_prompt(
            "Acme is great.", "Acme", ["Foo", "Bar"], ["Is Acme cheap?"], False
        )

        assert "Client brand: Acme" in prompt
        assert "Competitors: Foo, Bar" in prompt
        assert "1. Is Acme cheap?" in prompt
        assert "Acme is great." in prompt
        assert '"sentiment"' in prompt
        assert '"ranking"' not in prompt

    def test_ranking_requested(self):
        prompt = build_judge_prompt("text", "Acme", [], [], True)

        assert '"ranking"' in prompt
        assert "(none, return an empty array)" in prompt


class TestParseJudgePayload:
    """Test suite for parse_judge_payload()."""

    def test_raw_json(self):
        assert parse_judge_payload('{"sentiment": "positive"}') == {"sentiment": "positive"}

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"sentiment": "neutral"}\n```'

        assert parse_judge_payload(text) == {"sentiment": "neutral"}

    def test_embedded_json(self):
        text = 'Verdict: {"sentiment": "mixed", "follow_up_answers": []} Thanks!'

        assert parse_judge_payload(text)["sentiment"] == "mixed"

    def test_empty_output(self):
        with pytest.raises(JudgeResponseError, match="empty"):
            parse_judge_payload("  ")

    def test_no_json(self):
        with pytest.raises(JudgeResponseError, match="no JSON object"):
            parse_judge_payload("I cannot help with that.")

    def test_json_array_rejected(self):
        with pytest.raises(JudgeResponseError):
            parse_judge_payload('["positive"]')


class TestValidateVerdict:
    """Test suite for validate_verdict()."""

    def test_valid(self):
        verdict = validate_verdict(
            {"sentiment": " Positive ", "follow_up_answers": ["Yes", "No"]}, 2, False
        )

        assert verdict.sentiment == "positive"
        assert verdict.follow_up_answers == ("Yes", "No")
        assert verdict.ranking == ()

    def test_missing_answers_padded(self):
        verdict = validate_verdict({"sentiment": "neutral", "follow_up_answers": ["Yes"]}, 3, False)

        assert verdict.follow_up_answers == ("Yes", None, None)

    def test_extra_answers_dropped_and_blank_is_none(self):
        verdict = validate_verdict(
            {"sentiment": "neutral", "follow_up_answers": ["  ", "b", "c"]}, 2, False
        )

        assert verdict.follow_up_answers == (None, "b")

    def test_invalid_sentiment(self):
        with pytest.raises(JudgeResponseError, match="invalid sentiment"):
            validate_verdict({"sentiment": "ecstatic"}, 0, False)

    def test_answers_must_be_array(self):
        with pytest.raises(JudgeResponseError, match="follow_up_answers"):
            validate_verdict({"sentiment": "neutral", "follow_up_answers": "yes"}, 1, False)

    def test_ranking_when_requested(self):
        verdict = validate_verdict(
            {"sentiment": "neutral", "ranking": ["Foo", 3, "Acme"]}, 0, True
        )

        assert verdict.ranking == ("Foo", "Acme")

    def test_ranking_must_be_array(self):
        with pytest.raises(JudgeResponseError, match="ranking"):
            validate_verdict({"sentiment": "neutral", "ranking": "Foo"}, 0, True)


class TestJudgeEvaluate:
    """Test suite for Judge.evaluate()."""

    @pytest.mark.asyncio
    async def test_evaluate_uses_zero_temperature_and_judge_prompt(self):
        received = {}

        async def call(adapter, prompt, **kwargs):
            received.update(kwargs)
            return await adapter.complete(prompt, **kwargs)

        adapter = MockAdapter(
            default_response=json.dumps(
                {"sentiment": "positive", "follow_up_answers": ["Yes"]}
            )
        )
        judge = Judge(adapter, call=call)

        verdict = await judge.evaluate("Acme is great.", "Acme", ["Foo"], ["Recommended?"])

        assert verdict.sentiment == "positive"
        assert verdict.follow_up_answers == ("Yes",)
        assert received == {"temperature": 0.0, "system_prompt": JUDGE_SYSTEM_PROMPT}
        assert adapter.calls[0].startswith("Client brand: Acme")

    @pytest.mark.asyncio
    async def test_adapter_error_propagates(self):
        judge = Judge(MockAdapter(error=AdapterServerError("down", "gemini", 500)))

        with pytest.raises(AdapterServerError):
            await judge.evaluate("text", "Acme", [], [])

    @pytest.mark.asyncio
    async def test_unusable_output_raises(self):
        judge = Judge(MockAdapter(default_response="no idea"))

        with pytest.raises(JudgeResponseError):
            await judge.evaluate("text", "Acme", [], [])
