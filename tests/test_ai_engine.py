"""
tests/test_ai_engine.py — Unit tests for the AI engine layer.

Tests helpers and output parsing WITHOUT making real LLM API calls.
The processor functions are tested with mocked chains, and with no API key
configured to exercise the template / keyword fallbacks.
"""

import json
import pytest
from unittest.mock import MagicMock, patch

from app.ai_engine.utils import parse_json_safely, response_text, truncate_for_context
from app.ai_engine.processor import (
    CandidateInput,
    generate_job_description,
    keyword_rankings,
    rank_candidates,
    template_job_description,
)


def _mock_llm_response(content: str):
    """Build a mock LangChain response object."""
    mock = MagicMock()
    mock.content = content
    return mock


CANDIDATES = [
    CandidateInput(id="c1", resume_text="Senior data engineer: Python, Kafka, Airflow, AWS."),
    CandidateInput(id="c2", resume_text="Graphic designer with Photoshop and Figma."),
]
JOB = "Data engineer with Python and Kafka experience."


# ── parse_json_safely ─────────────────────────────────────────────────────────

class TestParseJsonSafely:
    def test_parses_clean_json_object(self):
        assert parse_json_safely('{"rankings": []}') == {"rankings": []}

    def test_parses_clean_json_array(self):
        assert parse_json_safely('[{"id": "c1", "score": 80}]') == [{"id": "c1", "score": 80}]

    def test_strips_markdown_code_fence(self):
        assert parse_json_safely('```json\n{"key": "value"}\n```') == {"key": "value"}

    def test_extracts_json_from_surrounding_text(self):
        assert parse_json_safely('Here is the ranking:\n{"score": 75}\nDone.') == {"score": 75}

    def test_returns_none_for_invalid_json(self):
        assert parse_json_safely("This is not JSON at all.") is None

    def test_returns_none_for_empty_string(self):
        assert parse_json_safely("") is None


class TestHelpers:
    def test_truncate_long_text(self):
        result = truncate_for_context("x" * 3000, max_chars=2000)
        assert len(result) == 2003
        assert result.endswith("...")

    def test_truncate_none_returns_empty(self):
        assert truncate_for_context(None, max_chars=100) == ""

    def test_response_text_prefers_content(self):
        assert response_text(_mock_llm_response("hello")) == "hello"
        assert response_text("plain") == "plain"


# ── Job descriptions ──────────────────────────────────────────────────────────

class TestGenerateJobDescription:
    def test_template_when_no_key(self):
        with patch("app.ai_engine.processor.llm_available", return_value=False):
            result = generate_job_description("Data Engineer", ["SQL", "Python"])

        assert result.generated_by == "template"
        assert result.markdown.startswith("# Data Engineer Position")
        assert "- SQL\n- Python" in result.markdown

    @patch("app.ai_engine.processor.build_llm")
    @patch("app.ai_engine.processor.llm_available", return_value=True)
    def test_llm_output_used(self, _available, mock_build_llm):
        mock_chain = MagicMock()
        mock_chain.invoke.return_value = _mock_llm_response("## About the Role\nGreat team.")
        mock_build_llm.return_value = MagicMock()

        with patch("app.ai_engine.processor.JOB_DESCRIPTION_PROMPT") as mock_prompt:
            mock_prompt.__or__ = MagicMock(return_value=mock_chain)
            result = generate_job_description("Data Engineer", ["SQL"])

        assert result.generated_by == "llm"
        assert result.markdown == "## About the Role\nGreat team."
        assert mock_chain.invoke.call_args[0][0]["skills"] == "- SQL"

    @patch("app.ai_engine.processor.build_llm")
    @patch("app.ai_engine.processor.llm_available", return_value=True)
    def test_empty_llm_output_falls_back(self, _available, mock_build_llm):
        mock_chain = MagicMock()
        mock_chain.invoke.return_value = _mock_llm_response("   ")
        mock_build_llm.return_value = MagicMock()

        with patch("app.ai_engine.processor.JOB_DESCRIPTION_PROMPT") as mock_prompt:
            mock_prompt.__or__ = MagicMock(return_value=mock_chain)
            result = generate_job_description("Data Engineer", ["SQL"])

        assert result.generated_by == "template"
        assert result.markdown == template_job_description("Data Engineer", ["SQL"])

    @patch("app.ai_engine.processor.build_llm")
    @patch("app.ai_engine.processor.llm_available", return_value=True)
    def test_llm_errors_propagate(self, _available, mock_build_llm):
        mock_chain = MagicMock()
        mock_chain.invoke.side_effect = RuntimeError("rate limited")
        mock_build_llm.return_value = MagicMock()

        with patch("app.ai_engine.processor.JOB_DESCRIPTION_PROMPT") as mock_prompt:
            mock_prompt.__or__ = MagicMock(return_value=mock_chain)
            with pytest.raises(RuntimeError):
                generate_job_description("Data Engineer", ["SQL"])


# ── Candidate ranking ─────────────────────────────────────────────────────────

class TestKeywordRankings:
    def test_scores_by_keyword_overlap(self):
        rankings = keyword_rankings(JOB, CANDIDATES)

        assert [r.id for r in rankings] == ["c1", "c2"]
        assert rankings[0].score > rankings[1].score
        assert rankings[0].reason.startswith("Matched ")

    def test_empty_description_scores_zero(self):
        assert all(r.score == 0 for r in keyword_rankings("", CANDIDATES))


class TestRankCandidates:
    def test_no_candidates(self):
        assert rank_candidates(JOB, []) == []

    def test_keyword_fallback_when_no_key(self):
        with patch("app.ai_engine.processor.llm_available", return_value=False):
            rankings = rank_candidates(JOB, CANDIDATES)
        assert [r.id for r in rankings] == ["c1", "c2"]

    def _rank_with(self, content: str):
        mock_chain = MagicMock()
        mock_chain.invoke.return_value = _mock_llm_response(content)
        with patch("app.ai_engine.processor.llm_available", return_value=True), \
                patch("app.ai_engine.processor.build_llm", return_value=MagicMock()), \
                patch("app.ai_engine.processor.CANDIDATE_RANKING_PROMPT") as mock_prompt:
            mock_prompt.__or__ = MagicMock(return_value=mock_chain)
            return rank_candidates(JOB, CANDIDATES)

    def test_valid_llm_ranking(self):
        rankings = self._rank_with(json.dumps({"rankings": [
            {"id": "c2", "score": 30, "reason": "Unrelated field"},
            {"id": "c1", "score": 92, "reason": "Strong Python and Kafka"},
        ]}))

        assert [(r.id, r.score) for r in rankings] == [("c1", 92), ("c2", 30)]
        assert rankings[0].reason == "Strong Python and Kafka"

    def test_unknown_ids_dropped_and_missing_keyword_scored(self):
        rankings = self._rank_with(json.dumps({"rankings": [
            {"id": "ghost", "score": 99},
            {"id": "c2", "score": 140, "reason": "Overconfident"},
        ]}))

        assert [r.id for r in rankings] == ["c2", "c1"]
        assert rankings[0].score == 100
        assert rankings[1].reason.startswith("Matched ")
        assert rankings[0].score >= rankings[1].score

    def test_keyword_scored_candidate_sorted_among_llm_scores(self):
        rankings = self._rank_with(json.dumps({"rankings": [
            {"id": "c2", "score": 10, "reason": "Unrelated field"},
        ]}))

        assert [r.id for r in rankings] == ["c1", "c2"]
        assert rankings[0].score == 80
        assert rankings[0].reason == "Matched 4 of 5 job keywords"

    def test_invalid_structure_falls_back_to_keywords(self):
        rankings = self._rank_with("Sorry, I cannot help with that.")
        assert [r.id for r in rankings] == ["c1", "c2"]
        assert all(r.reason.startswith("Matched ") for r in rankings)
