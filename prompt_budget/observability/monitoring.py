"""
Prompt Budget - Observability Monitoring

Process-local metrics (counters, gauges, histograms), span timing and
structured logging for the prompt budget server. Nothing is exported or
persisted; `get_metrics()` is the only read path and backs `check_status`.
"""

import contextvars
import json
import logging
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

# Correlates every log line of one tool call
_trace_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

LOGGER_NAME = "prompt_budget"
METRIC_PREFIX = "prompt_budget"


def _metric_key(metric: str, tags: dict[str, str] | None) -> str:
    """Render a metric name and its tags as one key, e.g. prompt_budget.name{a=1,b=2}."""
    name = f"{METRIC_PREFIX}.{metric}"
    if not tags:
        return name
    rendered = ",".join(f"{key}={value}" for key, value in sorted(tags.items()))
    return f"{name}{{{rendered}}}"


class ObservabilityAdapter:
    """
    In-memory metrics and span timing.

    Series are keyed by metric name plus sorted tags, so the same tags in a
    different order land in the same series. All series share one lock.
    """

    def __init__(
        self,
        enable_metrics: bool = True,
        enable_tracing: bool = True,
    ):
        """
        Args:
            enable_metrics: Record counters, gauges and histograms
            enable_tracing: Time spans opened with trace()
        """
        self.enable_metrics = enable_metrics
        self.enable_tracing = enable_tracing
        self.logger = logging.getLogger(LOGGER_NAME)

        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        self._gauges: dict[str, float] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        metric: str,
        value: float = 1.0,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Add value to a counter (e.g. "tools.optimize_prompt")."""
        if not self.enable_metrics:
            return

        key = _metric_key(metric, tags)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0.0) + value

    def gauge(
        self,
        metric: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Overwrite a gauge with its latest value (e.g. window utilization)."""
        if not self.enable_metrics:
            return

        key = _metric_key(metric, tags)
        with self._lock:
            self._gauges[key] = value

    def histogram(
        self,
        metric: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Append an observation (tokens saved, latency) to a histogram."""
        if not self.enable_metrics:
            return

        key = _metric_key(metric, tags)
        with self._lock:
            self._histograms.setdefault(key, []).append(value)

    def event(self, name: str, payload: dict[str, Any]) -> None:
        """Log a named lifecycle event with its payload as structured extras."""
        self.logger.info(
            f"Event: {name}",
            extra={
                "event_name": name,
                "event_payload": payload,
                "trace_id": self.get_trace_id(),
            },
        )

    @contextmanager
    def trace(self, span_name: str, tags: dict[str, str] | None = None) -> Generator[None, None, None]:
        """
        Time a block and record it in the span.duration histogram.

        Exceptions are logged and re-raised; the span is recorded either way.

        Example:
            with obs.trace("optimizer.optimize", tags={"agent_type": "researcher"}):
                result = optimizer.optimize(components, policy, model)
        """
        if not self.enable_tracing:
            yield
            return

        tags = tags or {}
        trace_id = self.get_trace_id()
        start_time = time.perf_counter()
        self.logger.debug(f"Span started: {span_name}", extra={"span_name": span_name, "trace_id": trace_id})

        try:
            yield
        except Exception as e:
            self.logger.error(
                f"Span failed: {span_name}",
                extra={"span_name": span_name, "trace_id": trace_id, "error": str(e)},
                exc_info=True,
            )
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.histogram("span.duration", duration_ms, tags={"span_name": span_name, **tags})
            self.logger.debug(
                f"Span finished: {span_name} in {duration_ms:.2f}ms",
                extra={"span_name": span_name, "trace_id": trace_id, "duration_ms": round(duration_ms, 2)},
            )

    def get_trace_id(self) -> str | None:
        return _trace_id_ctx.get()

    def set_trace_id(self, trace_id: str) -> None:
        _trace_id_ctx.set(trace_id)

    def generate_trace_id(self) -> str:
        """Start a new trace for the current context and return its id."""
        trace_id = uuid4().hex
        self.set_trace_id(trace_id)
        return trace_id

    def get_metrics(self) -> dict[str, Any]:
        """
        Copy of all series.

        Returns:
            {"counters": {...}, "gauges": {...}, "histograms": {key: {count, sum, min, max, avg}}}
        """
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            histograms = {key: list(values) for key, values in self._histograms.items()}

        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": {
                key: {
                    "count": len(values),
                    "sum": sum(values),
                    "min": min(values),
                    "max": max(values),
                    "avg": sum(values) / len(values),
                }
                for key, values in histograms.items()
            },
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON, structured extras included."""

    # Standard LogRecord attributes that are not user extras
    _RESERVED = frozenset(
        logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace_id = _trace_id_ctx.get()
        if trace_id:
            payload["trace_id"] = trace_id

        for key, value in record.__dict__.items():
            if key not in self._RESERVED and key not in payload and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", json_logs: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Logs go to stderr because stdout carries the MCP stdio protocol. Calling
    this again replaces the handler instead of adding a second one.

    Args:
        level: Log level name (case-insensitive)
        json_logs: Use JSONFormatter instead of plain text

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    return logger


_observability_adapter: ObservabilityAdapter | None = None


def get_observability() -> ObservabilityAdapter:
    """Process-wide adapter, built from the loaded configuration on first use."""
    global _observability_adapter

    if _observability_adapter is None:
        from ..config import get_config

        settings = get_config().observability
        _observability_adapter = ObservabilityAdapter(
            enable_metrics=settings.enable_metrics,
            enable_tracing=settings.enable_tracing,
        )

    return _observability_adapter


def initialize_observability(
    enable_metrics: bool = True,
    enable_tracing: bool = True,
) -> ObservabilityAdapter:
    """Replace the process-wide adapter (server startup, tests)."""
    global _observability_adapter

    _observability_adapter = ObservabilityAdapter(
        enable_metrics=enable_metrics,
        enable_tracing=enable_tracing,
    )
    return _observability_adapter
