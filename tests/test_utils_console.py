"""
Tests for utils.console module - dual-mode CLI output utilities.

This module tests console output functions to ensure:
- OutputMode correctly manages format/quiet state
- Output functions (success, error, warning, info) work in all modes
- Progress bars degrade to NoOpProgress outside text mode
- Summary tables buffer JSON in agent mode
- Quiet mode prints tab-separated totals
"""

import json

import pytest
from rich.progress import Progress

from llm_visibility.utils.console import (
    NoOpProgress,
    OutputMode,
    create_progress_bar,
    error,
    info,
    output_mode,
    print_final_summary,
    print_summary_table,
    print_visibility_summary,
    spinner,
    success,
    warning,
)

# ========================================================================
# Fixtures
# ========================================================================


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Restore the global output_mode after each test."""
    output_mode._json_buffer.clear()

    yield

    output_mode.format = "text"
    output_mode.quiet = False
    output_mode._json_buffer.clear()


@pytest.fixture
def agent_mode():
    output_mode.format = "json"


@pytest.fixture
def task_rows():
    return [
        {
            "provider": "gemini",
            "model_name": "gemini-2.5-flash",
            "prompt_index": 0,
            "status": "done",
            "brand_mentioned": True,
            "brand_rank": 1,
            "sentiment": "positive",
            "error": None,
            "error_type": None,
        },
        {
            "provider": "openai",
            "model_name": "gpt-4o-mini",
            "prompt_index": 0,
            "status": "failed",
            "brand_mentioned": None,
            "brand_rank": None,
            "sentiment": None,
            "error": "bad key",
            "error_type": "authentication",
        },
    ]


# ========================================================================
# OutputMode
# ========================================================================


class TestOutputMode:
    def test_defaults(self):
        mode = OutputMode()

        assert mode.is_human()
        assert not mode.is_agent()
        assert mode.quiet is False

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid format"):
            OutputMode("xml")

    def test_flush_json(self, capsys):
        mode = OutputMode("json")
        mode.add_json("answer", 42)

        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"answer": 42}
        assert mode._json_buffer == {}

    def test_flush_json_noop_in_text_mode(self, capsys):
        mode = OutputMode("text")
        mode.add_json("answer", 42)

        mode.flush_json()

        assert capsys.readouterr().out == ""


# ========================================================================
# Messages
# ========================================================================


class TestMessages:
    def test_agent_mode_buffers(self, agent_mode):
        success("Loaded")
        warning("first")
        warning("second")
        info("ignored")

        assert output_mode._json_buffer["status"] == "success"
        assert output_mode._json_buffer["message"] == "Loaded"
        assert output_mode._json_buffer["warnings"] == ["first", "second"]

    def test_error_in_agent_mode(self, agent_mode):
        error("broken")

        assert output_mode._json_buffer["status"] == "error"
        assert output_mode._json_buffer["error"] == "broken"

    def test_quiet_text_mode_is_silent(self, capsys):
        output_mode.quiet = True

        success("Loaded")
        warning("careful")
        info("fyi")

        assert capsys.readouterr().out == ""

    def test_spinner_yields_none_outside_text_mode(self, agent_mode):
        with spinner("Working...") as status:
            assert status is None


# ========================================================================
# Progress and tables
# ========================================================================


class TestProgress:
    def test_rich_progress_in_text_mode(self):
        assert isinstance(create_progress_bar(), Progress)

    @pytest.mark.parametrize("fmt, quiet", [("json", False), ("text", True)])
    def test_noop_otherwise(self, fmt, quiet):
        output_mode.format = fmt
        output_mode.quiet = quiet

        progress = create_progress_bar()

        assert isinstance(progress, NoOpProgress)
        with progress:
            bar = progress.add_task("Querying", total=3)
            progress.update(bar, completed=1)


class TestSummaries:
    def test_task_table_agent_mode(self, agent_mode, task_rows):
        print_summary_table(task_rows)

        assert output_mode._json_buffer["tasks"] == task_rows

    def test_visibility_summary_agent_mode(self, agent_mode):
        summaries = [{"provider": "gemini", "done": 1, "total_tasks": 1, "mention_rate": 1.0}]

        print_visibility_summary(summaries)

        assert output_mode._json_buffer["providers"] == summaries

    def test_task_table_text_mode(self, capsys, task_rows):
        print_summary_table(task_rows)
        print_visibility_summary(
            [
                {
                    "provider": "gemini",
                    "done": 1,
                    "total_tasks": 2,
                    "mention_rate": 0.5,
                    "average_rank": None,
                    "competitor_mention_counts": {"Foo": 1},
                }
            ]
        )

        out = capsys.readouterr().out
        assert "Visibility by Task" in out
        assert "Visibility by Provider" in out

    def test_final_summary_quiet(self, capsys):
        output_mode.quiet = True

        print_final_summary("2026-03-02T08-30-45Z", done=3, total=4)

        assert capsys.readouterr().out == "2026-03-02T08-30-45Z\t3\t4\n"

    def test_final_summary_json(self, capsys, agent_mode):
        print_final_summary("2026-03-02T08-30-45Z", done=4, total=4)

        data = json.loads(capsys.readouterr().out)
        assert data == {
            "run_id": "2026-03-02T08-30-45Z",
            "done_tasks": 4,
            "total_tasks": 4,
        }
