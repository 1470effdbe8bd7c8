from __future__ import annotations

import contextvars
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from flask import g, has_request_context, request


_HTTP_DURATION_BUCKETS_MS = (5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0, 2500.0)

_LOG_REQUEST_ID_CTX: contextvars.ContextVar[str] = contextvars.ContextVar("log_request_id", default="")


def _normalize_request_id(value: str | None) -> str:
    return str(value or "").strip() or "n/a"


def set_log_request_id(request_id: str | None) -> None:
    _LOG_REQUEST_ID_CTX.set(_normalize_request_id(request_id))


def _background_request_id(default: str | None = None) -> str:
    request_id = str(_LOG_REQUEST_ID_CTX.get() or "").strip()
    if request_id:
        return request_id
    return default or "n/a"


# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, tagged with the procurement request id."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            payload["request_id"] = current_request_id(default="n/a")
            payload["path"] = request.path
            payload["method"] = request.method
            if request.url_rule is not None:
                payload["route"] = request.url_rule.rule
        else:
            record_request_id = str(getattr(record, "request_id", "") or "").strip()
            payload["request_id"] = record_request_id or _background_request_id(default="n/a")

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in payload or key.startswith("_") or callable(value):
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not bool(app.config.get("LOG_JSON", True)):
        return
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).strip().upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    app.logger.handlers = []
    app.logger.propagate = True


def ensure_request_id() -> str:
    request_id = str(getattr(g, "request_id", "") or "").strip()
    if request_id:
        set_log_request_id(request_id)
        return request_id
    incoming = str(request.headers.get("X-Request-Id") or "").strip()
    request_id = incoming or str(uuid.uuid4())
    g.request_id = request_id
    set_log_request_id(request_id)
    return request_id


def current_request_id(default: str | None = None) -> str:
    if has_request_context():
        request_id = str(getattr(g, "request_id", "") or "").strip()
        if request_id:
            return request_id
    return _background_request_id(default=default)


# name -> (help text, label names); values are keyed by label tuples in that order.
_COUNTERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "domain_event_emitted_total": ("Domain events published by type.", ("event_type",)),
    "workflow_transition_total": (
        "Stage transition attempts by target stage and outcome.",
        ("stage", "outcome"),
    ),
    "link_operation_total": ("Link store operations by kind and outcome.", ("operation", "outcome")),
}


@dataclass
class _RouteLatency:
    limits: Tuple[float, ...]
    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    hits: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.hits = [0] * len(self.limits)

    def observe(self, duration_ms: float, failed: bool) -> None:
        duration = max(0.0, float(duration_ms))
        self.count += 1
        self.total_ms += duration
        self.max_ms = max(self.max_ms, duration)
        if failed:
            self.errors += 1
        for index, limit in enumerate(self.limits):
            if duration <= limit:
                self.hits[index] += 1

    def buckets(self) -> List[Tuple[str, int]]:
        cumulative = [(f"{limit:g}", hits) for limit, hits in zip(self.limits, self.hits)]
        return cumulative + [("+Inf", self.count)]


def _label_value(value: str | None) -> str:
    return str(value or "unknown").strip() or "unknown"


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._routes: Dict[Tuple[str, str], _RouteLatency] = {}
        self._counters: Dict[str, Dict[Tuple[str, ...], int]] = {name: {} for name in _COUNTERS}

    def observe_http(self, method: str, route: str, status_code: int, duration_ms: float) -> None:
        key = (str(method or "GET").strip().upper() or "GET", _label_value(route))
        with self._lock:
            latency = self._routes.setdefault(key, _RouteLatency(_HTTP_DURATION_BUCKETS_MS))
            latency.observe(duration_ms, failed=int(status_code) >= 400)

    def increment(self, name: str, *labels: str | None) -> None:
        key = tuple(_label_value(label) for label in labels)
        with self._lock:
            values = self._counters[name]
            values[key] = values.get(key, 0) + 1

    def observe_domain_event_emitted(self, event_type: str) -> None:
        self.increment("domain_event_emitted_total", event_type)

    def observe_workflow_transition(self, to_stage: str, outcome: str) -> None:
        self.increment("workflow_transition_total", to_stage, outcome)

    def observe_link_operation(self, operation: str, outcome: str) -> None:
        self.increment("link_operation_total", operation, outcome)

    def snapshot(self) -> dict:
        with self._lock:
            routes = {
                f"{method} {route}": {
                    "requests": latency.count,
                    "errors": latency.errors,
                    "latency_avg_ms": round(latency.total_ms / max(1, latency.count), 2),
                    "latency_max_ms": round(latency.max_ms, 2),
                }
                for (method, route), latency in sorted(self._routes.items())
            }
            counters = {name: dict(sorted(values.items())) for name, values in self._counters.items()}
        events = counters["domain_event_emitted_total"]
        transitions = counters["workflow_transition_total"]
        link_operations = counters["link_operation_total"]
        return {
            "requests_total": sum(item["requests"] for item in routes.values()),
            "errors_total": sum(item["errors"] for item in routes.values()),
            "routes": routes,
            "domain_events": {key[0]: value for key, value in events.items()},
            "workflow_transitions": {":".join(key): value for key, value in transitions.items()},
            "link_operations": {":".join(key): value for key, value in link_operations.items()},
        }

    def prometheus_lines(self) -> List[str]:
        lines = [
            "# HELP http_request_duration_ms HTTP request duration in milliseconds.",
            "# TYPE http_request_duration_ms histogram",
        ]
        with self._lock:
            for (method, route), latency in sorted(self._routes.items()):
                labels = {"method": method, "route": route}
                for le_label, hits in latency.buckets():
                    lines.append(_prom_line("http_request_duration_ms_bucket", hits, labels | {"le": le_label}))
                lines.append(_prom_line("http_request_duration_ms_sum", float(latency.total_ms), labels))
                lines.append(_prom_line("http_request_duration_ms_count", latency.count, labels))

            for name, (help_text, label_names) in _COUNTERS.items():
                lines.append(f"# HELP {name} {help_text}")
                lines.append(f"# TYPE {name} counter")
                for key, value in sorted(self._counters[name].items()):
                    lines.append(_prom_line(name, value, dict(zip(label_names, key))))
        return lines

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()
            for values in self._counters.values():
                values.clear()


def _prom_label(value: object) -> str:
    return str(value).replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _prom_line(name: str, value: int | float, labels: dict[str, object] | None = None) -> str:
    if labels:
        labels_blob = ",".join(f'{key}="{_prom_label(val)}"' for key, val in sorted(labels.items()))
        return f"{name}{{{labels_blob}}} {value}"
    return f"{name} {value}"


_METRICS = MetricsRegistry()


def mark_request_start() -> None:
    g._request_started_at = time.perf_counter()


def observe_response(response):
    started = float(getattr(g, "_request_started_at", 0.0) or 0.0)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started > 0.0 else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe_http(request.method, route, int(response.status_code), elapsed_ms)
    response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
    return response


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def observe_domain_event_emitted(event_type: str) -> None:
    _METRICS.observe_domain_event_emitted(event_type)


def observe_workflow_transition(to_stage: str, outcome: str) -> None:
    _METRICS.observe_workflow_transition(to_stage, outcome)


def observe_link_operation(operation: str, outcome: str) -> None:
    _METRICS.observe_link_operation(operation, outcome)


def prometheus_metrics_text() -> str:
    return "\n".join(_METRICS.prometheus_lines()) + "\n"


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
    set_log_request_id(None)
