import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from typing import Any

from prometheus_client import Counter, Histogram, start_http_server

_PROM_LOCK = threading.Lock()
_PROM_STARTED_PORT: int | None = None
_METRICS_READY = False

_REDACT_KEYS = {
    "token",
    "authorization",
    "api_key",
    "secret",
    "password",
    "bearer",
}

_METRIC_TOOL_CALLS = None
_METRIC_ERRORS = None
_METRIC_STAGE_DURATION = None


def observe_stage_duration(*, stage: str, duration_s: float) -> None:
    """Observe pipeline stage duration in seconds."""
    _ensure_metrics_initialized()
    metric = _METRIC_STAGE_DURATION
    if metric is None:
        return
    safe_stage = _bounded_label(stage, fallback="unknown")
    metric.labels(stage=safe_stage).observe(max(0.0, float(duration_s)))


def record_tool_call(*, tool: str, status: str) -> None:
    """Increment the remote tool call counter."""
    _ensure_metrics_initialized()
    if _METRIC_TOOL_CALLS is None:
        return
    _METRIC_TOOL_CALLS.labels(
        tool=_bounded_label(tool, fallback="unknown"),
        status=_bounded_label(status, fallback="unknown"),
    ).inc()


def record_error(*, component: str, error_type: str) -> None:
    """Increment the error counter.

    Use this in any component (invoker, resolver, executor) to surface errors
    to the lifeos_errors_total Prometheus counter.
    """
    _ensure_metrics_initialized()
    if _METRIC_ERRORS is None:
        return
    _METRIC_ERRORS.labels(
        component=_bounded_label(component, fallback="unknown"),
        error_type=_bounded_label(error_type, fallback="error"),
    ).inc()


# Fields promoted from a JSON message payload or `extra={...}` into the envelope.
_STRUCTURED_EXTRACT_FIELDS: frozenset[str] = frozenset(
    {
        "action",
        "tool_name",
        "stage",
        "record_id",
        "strategy",
        "request_id",
    }
)


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as a single-line JSON envelope.

    Every line is a single JSON object with:
    - ``ts``       – RFC3339 UTC timestamp
    - ``level``    – lowercase level name
    - ``logger``   – logger name
    - ``message``  – human-readable message
    - pipeline fields (``action``, ``tool_name``, ``stage``, ``record_id``,
      ``strategy``, ``request_id``) when present on the record or payload
    - ``exc``      – formatted exception traceback (when present)

    Sensitive keys (``authorization``, ``token``, ``secret``, …) are always
    redacted. Enabled for the root logger with ``OBS_LOG_FORMAT=json``.
    """

    def format(self, record: logging.LogRecord) -> str:
        try:
            msg = record.getMessage()
        except Exception as exc:
            msg = f"[coerced-log-payload:{type(exc).__name__}] {record.msg!r}"

        ts = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .replace(tzinfo=None)
            .isoformat(timespec="milliseconds")
            + "Z"
        )
        envelope: dict[str, Any] = {
            "ts": ts,
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": msg,
        }

        if msg and msg[0] == "{":
            try:
                payload = json.loads(msg)
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                for key in _STRUCTURED_EXTRACT_FIELDS:
                    if payload.get(key) is not None:
                        envelope[key] = payload[key]
                envelope["message"] = json.dumps(
                    self._redact_dict(payload), ensure_ascii=False, default=str
                )

        for key in _STRUCTURED_EXTRACT_FIELDS:
            if key not in envelope:
                val = getattr(record, key, None)
                if val is not None:
                    envelope[key] = str(val)

        if record.exc_info:
            envelope["exc"] = self.formatException(record.exc_info)

        return json.dumps(envelope, ensure_ascii=False, default=str)

    @staticmethod
    def _redact_dict(payload: dict[str, Any]) -> dict[str, Any]:
        """Return a shallow copy of *payload* with sensitive keys replaced by ``"[REDACTED]"``."""
        return {
            k: "[REDACTED]" if _key_is_sensitive(k) else v for k, v in payload.items()
        }


def configure_logging(*, default_level: str | int = "INFO") -> None:
    """Configure application logging with sane defaults."""

    logging.basicConfig(level=_coerce_level(os.getenv("LOG_LEVEL", default_level)))
    _configure_prometheus_exporter()
    _configure_json_stdout()

    # Keep HTTP noise down by default (can still override via LOG_LEVEL).
    logging.getLogger("httpx").setLevel(
        _coerce_level(os.getenv("HTTPX_LOG_LEVEL", "WARNING"))
    )
    logging.getLogger("httpcore").setLevel(
        _coerce_level(os.getenv("HTTPX_LOG_LEVEL", "WARNING"))
    )


def _configure_prometheus_exporter() -> None:
    if not _is_truthy(os.getenv("OBS_PROMETHEUS_ENABLED", "0")):
        return
    port = _coerce_int(os.getenv("OBS_PROMETHEUS_PORT", "9464"), default=9464)
    global _PROM_STARTED_PORT
    with _PROM_LOCK:
        if _PROM_STARTED_PORT == port:
            _ensure_metrics_initialized()
            return
        if _PROM_STARTED_PORT is not None and _PROM_STARTED_PORT != port:
            logging.getLogger(__name__).warning(
                "Prometheus exporter already running on port %s (requested %s).",
                _PROM_STARTED_PORT,
                port,
            )
            return
        try:
            start_http_server(port)
        except OSError as exc:
            logging.getLogger(__name__).warning(
                "Prometheus exporter not started on :%s (%s).", port, exc
            )
            _PROM_STARTED_PORT = port
            _ensure_metrics_initialized()
            return
        _PROM_STARTED_PORT = port
        _ensure_metrics_initialized()
    logging.getLogger(__name__).info("Prometheus exporter enabled on :%s", port)


def _configure_json_stdout() -> None:
    """Replace root stream handler formatter with StructuredJsonFormatter.

    Activated when ``OBS_LOG_FORMAT=json`` is set. Safe to call multiple times.
    """
    if (os.getenv("OBS_LOG_FORMAT") or "").strip().lower() != "json":
        return
    formatter = StructuredJsonFormatter()
    for handler in logging.root.handlers:
        if hasattr(handler, "stream"):
            if not isinstance(handler.formatter, StructuredJsonFormatter):
                handler.setFormatter(formatter)


def _coerce_level(value: str | int) -> int:
    if isinstance(value, int):
        return value
    name = (value or "").strip().upper()
    return getattr(logging, name, logging.INFO)


def _is_truthy(value: str | None) -> bool:
    """Interpret common truthy strings from environment variables."""
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_int(value: str | None, *, default: int) -> int:
    try:
        if value is None:
            return default
        return int(str(value).strip())
    except ValueError:
        return default


def _ensure_metrics_initialized() -> None:
    global _METRICS_READY
    global _METRIC_TOOL_CALLS, _METRIC_ERRORS, _METRIC_STAGE_DURATION

    if _METRICS_READY:
        return
    _METRIC_TOOL_CALLS = Counter(
        "lifeos_tool_calls_total",
        "Remote tool call outcomes",
        ["tool", "status"],
    )
    _METRIC_ERRORS = Counter(
        "lifeos_errors_total",
        "Observed component errors",
        ["component", "error_type"],
    )
    _METRIC_STAGE_DURATION = Histogram(
        "lifeos_stage_duration_seconds",
        "Pipeline stage duration in seconds",
        ["stage"],
        buckets=(0.05, 0.1, 0.2, 0.5, 1, 2, 5, 10, 20, 30, 60),
    )
    _METRICS_READY = True


def _bounded_label(value: Any, *, fallback: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return fallback
    compact = re.sub(r"[^A-Za-z0-9_.:-]+", "_", raw)
    return compact[:80] or fallback


def _key_is_sensitive(key: str) -> bool:
    lowered = (key or "").lower()
    return any(marker in lowered for marker in _REDACT_KEYS)


__all__ = [
    "StructuredJsonFormatter",
    "configure_logging",
    "observe_stage_duration",
    "record_error",
    "record_tool_call",
]
