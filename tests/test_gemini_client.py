from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from signal_hunter.clients import gemini
from signal_hunter.clients.gemini import GeminiSearchClient, extract_grounding_chunks, translate_error
from signal_hunter.clients.oracle import OracleConfigError, OracleError, OracleQuotaError
from signal_hunter.services.hunting.tasks import CLAIMED_SIGNALS_SCHEMA


class FakeModels:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _fake_client(models: FakeModels) -> SimpleNamespace:
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def _grounded_response(text: str) -> SimpleNamespace:
    chunks = [
        SimpleNamespace(web=SimpleNamespace(uri="https://tenders.nsw.gov.au/rft/1", title="RFT 1")),
        SimpleNamespace(web=None),
        SimpleNamespace(web=SimpleNamespace(uri="https://news.example/2", title=None)),
    ]
    candidate = SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))
    return SimpleNamespace(text=text, candidates=[candidate])


def _api_error(code: int, status: str, message: str) -> genai_errors.APIError:
    return genai_errors.ClientError(code, {"error": {"code": code, "status": status, "message": message}})


def test_search_returns_text_and_grounding_chunks():
    models = FakeModels(result=_grounded_response('[{"headline": "x"}]'))
    client = GeminiSearchClient(None, model="hunt-model", client=_fake_client(models))

    result = asyncio.run(client.search(prompt="find tenders", response_schema=CLAIMED_SIGNALS_SCHEMA))

    assert result.text == '[{"headline": "x"}]'
    assert [(item.uri, item.title) for item in result.grounding_chunks] == [
        ("https://tenders.nsw.gov.au/rft/1", "RFT 1"),
        ("https://news.example/2", ""),
    ]
    call = models.calls[0]
    assert call["model"] == "hunt-model"
    assert call["contents"] == "find tenders"
    assert call["config"].response_mime_type == "application/json"
    assert call["config"].tools and call["config"].tools[0].google_search is not None


def test_generate_json_is_ungrounded_by_default_and_honours_model_override():
    models = FakeModels(result=SimpleNamespace(text='{"name": "Acme"}', candidates=[]))
    client = GeminiSearchClient(None, model="hunt-model", client=_fake_client(models))

    text = asyncio.run(client.generate_json(prompt="profile", response_schema={"type": "OBJECT"}, model="pro-model"))

    assert text == '{"name": "Acme"}'
    assert models.calls[0]["model"] == "pro-model"
    assert not models.calls[0]["config"].tools


def test_missing_text_and_candidates_degrade_to_empty():
    models = FakeModels(result=SimpleNamespace(text=None, candidates=None))
    client = GeminiSearchClient(None, client=_fake_client(models))

    result = asyncio.run(client.search(prompt="p", response_schema=CLAIMED_SIGNALS_SCHEMA))

    assert result.text == ""
    assert result.grounding_chunks == []


def test_quota_errors_are_translated():
    models = FakeModels(error=_api_error(429, "RESOURCE_EXHAUSTED", "Resource has been exhausted"))
    client = GeminiSearchClient(None, client=_fake_client(models))

    with pytest.raises(OracleQuotaError) as excinfo:
        asyncio.run(client.search(prompt="p", response_schema=CLAIMED_SIGNALS_SCHEMA))

    assert excinfo.value.code == "ORACLE_429"
    assert "429" in str(excinfo.value)


def test_other_api_errors_become_oracle_errors():
    error = translate_error(_api_error(400, "INVALID_ARGUMENT", "Schema is invalid"))

    assert type(error) is OracleError
    assert error.code == "ORACLE_ERROR"
    assert "400" in str(error)


def test_http_transport_errors_become_oracle_errors():
    models = FakeModels(error=httpx.ConnectError("connection refused"))
    client = GeminiSearchClient(None, client=_fake_client(models))

    with pytest.raises(OracleError):
        asyncio.run(client.generate_json(prompt="p", response_schema={"type": "OBJECT"}))


def test_client_requires_api_key():
    with pytest.raises(OracleConfigError):
        GeminiSearchClient("")


def test_from_settings_uses_configured_key_and_model(monkeypatch):
    captured = {}

    def fake_client(*, api_key):
        captured["api_key"] = api_key
        return SimpleNamespace(aio=None)

    monkeypatch.setattr(gemini.settings, "gemini_api_key", "test-key")
    monkeypatch.setattr(gemini.settings, "hunt_model", "gemini-test")
    monkeypatch.setattr(gemini.genai, "Client", fake_client)

    client = GeminiSearchClient.from_settings()

    assert captured == {"api_key": "test-key"}
    assert client._model == "gemini-test"


def test_extract_grounding_chunks_handles_missing_metadata():
    assert extract_grounding_chunks(SimpleNamespace(candidates=[SimpleNamespace(grounding_metadata=None)])) == []
    assert extract_grounding_chunks(SimpleNamespace()) == []
