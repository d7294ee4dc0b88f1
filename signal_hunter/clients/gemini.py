"""Client for the Gemini API with Google Search grounding."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from signal_hunter.clients.oracle import (
    OracleConfigError,
    OracleError,
    OracleQuotaError,
    OracleResponse,
)
from signal_hunter.config import settings
from signal_hunter.models.signal import GroundingChunk, WebSource

logger = logging.getLogger(__name__)


class GeminiSearchClient:
    """Thin async wrapper around ``google-genai`` structured, grounded generation."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-3-flash-preview",
        temperature: float | None = None,
        client: Any | None = None,
    ) -> None:
        if client is None and not api_key:
            raise OracleConfigError("GEMINI_API_KEY is required to create a GeminiSearchClient.")
        self._model = model
        self._temperature = temperature
        self._client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls) -> "GeminiSearchClient":
        """Instantiate the client from ``GEMINI_API_KEY`` and the configured hunt model."""
        return cls(settings.gemini_api_key, model=settings.hunt_model)

    async def search(self, *, prompt: str, response_schema: dict[str, Any]) -> OracleResponse:
        """Run one grounded search prompt and return its JSON text and citations."""
        response = await self._generate(
            prompt=prompt,
            response_schema=response_schema,
            grounded=True,
            model=self._model,
        )
        return OracleResponse(
            text=_response_text(response),
            grounding_chunks=extract_grounding_chunks(response),
        )

    async def generate_json(
        self,
        *,
        prompt: str,
        response_schema: dict[str, Any],
        grounded: bool = False,
        model: str | None = None,
    ) -> str:
        """Run a structured prompt and return the raw JSON text."""
        response = await self._generate(
            prompt=prompt,
            response_schema=response_schema,
            grounded=grounded,
            model=model or self._model,
        )
        return _response_text(response)

    async def _generate(
        self,
        *,
        prompt: str,
        response_schema: dict[str, Any],
        grounded: bool,
        model: str,
    ) -> Any:
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())] if grounded else None,
            response_mime_type="application/json",
            response_schema=response_schema,
            temperature=self._temperature,
        )
        try:
            return await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise translate_error(exc) from exc
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise OracleError("Gemini request timed out", code="ORACLE_TIMEOUT") from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise OracleError(f"HTTP error calling Gemini: {exc}") from exc


def translate_error(exc: genai_errors.APIError) -> OracleError:
    """Map SDK errors onto the oracle error hierarchy, keeping the provider message."""
    code = getattr(exc, "code", None)
    detail = str(exc)
    if code == 429 or "quota" in detail.lower() or "429" in detail:
        return OracleQuotaError(f"Gemini quota exhausted (429): {detail}")
    return OracleError(f"Gemini request failed ({code}): {detail}")


def extract_grounding_chunks(response: Any) -> list[GroundingChunk]:
    """Pull ``groundingMetadata.groundingChunks`` from the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    raw_chunks = getattr(metadata, "grounding_chunks", None) or []
    chunks: list[GroundingChunk] = []
    for raw in raw_chunks:
        web = getattr(raw, "web", None)
        if web is None:
            continue
        chunks.append(
            GroundingChunk(
                web=WebSource(
                    uri=getattr(web, "uri", None),
                    title=getattr(web, "title", None),
                )
            )
        )
    return chunks


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    return text if isinstance(text, str) else ""
