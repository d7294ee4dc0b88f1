"""Provider-neutral contract for the generative search oracle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from signal_hunter.models.signal import GroundingChunk


class OracleError(RuntimeError):
    """Base error for oracle failures."""

    def __init__(self, message: str, code: str = "ORACLE_ERROR") -> None:
        super().__init__(message)
        self.code = code


class OracleQuotaError(OracleError):
    """Raised when the oracle reports rate limiting or quota exhaustion (HTTP 429)."""

    def __init__(self, message: str = "Oracle quota exhausted (429)") -> None:
        super().__init__(message, code="ORACLE_429")


class OracleConfigError(OracleError):
    """Raised when the oracle cannot be used, e.g. a missing API key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="ORACLE_CONFIG")


@dataclass(frozen=True)
class OracleResponse:
    """Raw answer text plus the citations retrieved while composing it."""

    text: str
    grounding_chunks: list[GroundingChunk] = field(default_factory=list)


class SearchOracle(Protocol):
    """Subset of oracle behavior used by the hunting pipeline."""

    async def search(self, *, prompt: str, response_schema: dict[str, Any]) -> OracleResponse:
        ...

    async def generate_json(
        self,
        *,
        prompt: str,
        response_schema: dict[str, Any],
        grounded: bool = False,
        model: str | None = None,
    ) -> str:
        ...
