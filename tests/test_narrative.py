"""
Tests for the narrative advisor and the text-generation client.
"""
import pytest
import requests

from kpiboard.core.config import Settings
from kpiboard.core.errors import InterpretationError, NarrativeUnavailableError
from kpiboard.models.narrative import Narrative
from kpiboard.schemas.records import CandidateBatch, RecruitmentRecord
from kpiboard.services.ingestion import ingest_candidates
from kpiboard.services.llm import AnthropicClient, build_client
from kpiboard.services.narrative import (
    build_prompt,
    fallback_summary,
    gather_figures,
    generate_narrative,
    latest_narrative,
)


def _seed(db):
    ingest_candidates(db, CandidateBatch(recruitment=[
        RecruitmentRecord(name="Anna", role="sourcer", year=2024, week=10, weryfikacje=22, rekomendacje=16),
    ]))


class TestPrompt:
    def test_prompt_lists_people_and_targets(self, db):
        _seed(db)
        figures = gather_figures(db, "recruitment", 2024, 10)
        prompt = build_prompt("recruitment", figures, 2024, 10)
        assert "RECRUITMENT - week 10/2024" in prompt
        assert "Anna (Sourcer): verifications 22" in prompt
        assert "weryfikacje 20" in prompt

    def test_fallback_is_deterministic(self, db):
        _seed(db)
        figures = gather_figures(db, "recruitment", 2024, 10)
        text = fallback_summary("recruitment", figures, 2024, 10)
        assert text == fallback_summary("recruitment", figures, 2024, 10)
        assert "1 people reporting" in text
        assert "weryfikacje 22/20" in text

    def test_fallback_without_data(self, db):
        figures = gather_figures(db, "sales", 2024, 1)
        assert fallback_summary("sales", figures, 2024, 1) == "No sales data recorded for week 1/2024."

    def test_board_prompt(self, db):
        figures = gather_figures(db, "board", 2024, 3)
        assert "BOARD - month 3/2024" in build_prompt("board", figures, 2024, 3)
        assert "0 of 0 measured KPIs" in fallback_summary("board", figures, 2024, 3)


class TestGenerateNarrative:
    def test_unavailable_without_client(self, db):
        with pytest.raises(NarrativeUnavailableError):
            generate_narrative(db, None, "recruitment", 2024, 10)

    def test_success_is_persisted(self, db, fake_text):
        _seed(db)
        result = generate_narrative(db, fake_text("  Good week.  "), "recruitment", 2024, 10)
        assert (result.source, result.content) == ("model", "Good week.")
        stored = latest_narrative(db, "recruitment", 2024, "week", 10)
        assert stored.content == "Good week."

    def test_failure_falls_back_without_persisting(self, db, fake_text):
        _seed(db)
        result = generate_narrative(
            db, fake_text(error=InterpretationError("timeout")), "recruitment", 2024, 10
        )
        assert result.source == "fallback"
        assert "Recruitment week 10/2024" in result.content
        assert db.query(Narrative).count() == 0

    def test_board_narrative_is_month_scoped(self, db, fake_text):
        result = generate_narrative(db, fake_text("Board ok."), "board", 2024, 3)
        assert (result.period_unit, result.period_value) == ("month", 3)
        assert latest_narrative(db, "board", 2024, "month", 3).content == "Board ok."


class _Response:
    def __init__(self, status_code=200, body=None, json_error=False):
        self.status_code = status_code
        self._body = body
        self._json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._json_error:
            raise ValueError("not json")
        return self._body


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _client(session):
    return AnthropicClient(api_key="k", model="m", url="https://example.test/v1/messages", session=session)


class TestAnthropicClient:
    def test_returns_first_text_block(self):
        session = _Session(_Response(body={"content": [{"type": "text", "text": "hello"}]}))
        assert _client(session).complete("hi", max_tokens=50) == "hello"
        url, kwargs = session.calls[0]
        assert kwargs["headers"]["x-api-key"] == "k"
        assert kwargs["json"]["max_tokens"] == 50
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.parametrize("session", [
        _Session(error=requests.ConnectionError("down")),
        _Session(_Response(status_code=529)),
        _Session(_Response(json_error=True)),
        _Session(_Response(body={"content": []})),
    ])
    def test_failures_raise_interpretation_error(self, session):
        with pytest.raises(InterpretationError):
            _client(session).complete("hi")
        assert len(session.calls) == 1

    def test_build_client_needs_key(self):
        assert build_client(Settings(ANTHROPIC_API_KEY="")) is None
        client = build_client(Settings(ANTHROPIC_API_KEY=" secret "))
        assert client.api_key == "secret"
