from __future__ import annotations

import logging
import re
from typing import Any

from signal_hunter.config import settings

try:  # pragma: no cover - optional dependency
    from statsd import StatsClient
except ImportError:  # pragma: no cover - statsd ships in the "metrics" extra
    StatsClient = None  # type: ignore[assignment]

logger = logging.getLogger("signal_hunter.metrics")

# Metric kind -> StatsClient method.
_STATSD_METHODS = {"timing": "timing", "gauge": "gauge", "counter": "incr"}
_UNSAFE_SEGMENT = re.compile(r"[^a-z0-9_]+")


class MetricsReporter:
    """Hunt metrics written to the log stream and, optionally, to StatsD.

    Every metric is logged as a ``signal_hunter.metric`` event whose ``metrics``
    extra carries name, value, kind, schema version and tags. StatsD has no tags,
    so tag values are appended to the metric name there
    (``signal_hunter.hunt.claims_rejected.off_whitelist``).
    """

    def __init__(
        self,
        *,
        namespace: str | None = None,
        backend: str | None = None,
        disabled: bool | None = None,
    ) -> None:
        self.namespace = namespace or settings.metrics_namespace or "signal_hunter"
        self.disabled = settings.metrics_disable if disabled is None else disabled
        backend_name = (backend or settings.metrics_backend or "stdout").lower()
        self._statsd = None
        if backend_name == "statsd" and not self.disabled:
            self._statsd = _statsd_client()

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        self.record("timing", metric, value_ms, tags=tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self.record("gauge", metric, value, tags=tags)

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self.record("counter", metric, value, tags=tags)

    def record(
        self, kind: str, metric: str, value: float | None, *, tags: dict[str, Any] | None = None
    ) -> None:
        if kind not in _STATSD_METHODS:
            raise ValueError(f"Unknown metric kind: {kind}")
        if self.disabled or value is None:
            return
        name = self.qualify(metric)
        logger.info(
            "signal_hunter.metric",
            extra={
                "metrics": {
                    "metric": name,
                    "value": round(float(value), 4),
                    "type": kind,
                    "schema_version": settings.metrics_schema_version,
                    "tags": dict(tags or {}),
                }
            },
        )
        if self._statsd is not None:
            self._send(kind, self.statsd_name(name, tags), value)

    def qualify(self, metric: str) -> str:
        """Prefix ``metric`` with the namespace unless it already carries it."""
        trimmed = (metric or "").strip()
        if trimmed.startswith(f"{self.namespace}."):
            return trimmed
        return f"{self.namespace}.{trimmed}" if trimmed else self.namespace

    @staticmethod
    def statsd_name(name: str, tags: dict[str, Any] | None) -> str:
        segments = [name]
        for key in sorted(tags or {}):
            segment = _UNSAFE_SEGMENT.sub("_", str(tags[key]).lower()).strip("_")
            if segment:
                segments.append(segment)
        return ".".join(segments)

    def _send(self, kind: str, name: str, value: float) -> None:
        try:
            getattr(self._statsd, _STATSD_METHODS[kind])(name, value)
        except OSError as exc:
            logger.warning("metrics.statsd_error", extra={"metric": name, "error": type(exc).__name__})


def _statsd_client():
    if StatsClient is None:
        logger.warning("statsd backend requested but statsd package is not installed.")
        return None
    return StatsClient(host=settings.metrics_statsd_host, port=settings.metrics_statsd_port, prefix="")


metrics = MetricsReporter()
