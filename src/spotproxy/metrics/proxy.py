from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Histogram, REGISTRY

_upstream_requests: Optional[Counter] = None
_upstream_latency: Optional[Histogram] = None
_fills_aggregated: Optional[Counter] = None
_summary_requests: Optional[Counter] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def observe(self, *args, **kwargs):
        return None


def _existing_collector(name: str):
    coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
    if coll is not None:
        return coll
    for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
        if getattr(coll, "_name", None) == name:
            return coll
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloaded in tests); reuse it
        return _existing_collector(name) or _NoOp()


def _safe_histogram(name: str, doc: str, labelnames, buckets=None):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        if buckets is not None:
            return Histogram(name, doc, labelnames, buckets=buckets)
        return Histogram(name, doc, labelnames)
    except ValueError:
        return _existing_collector(name) or _NoOp()


def get_upstream_requests_total():
    """Counter: upstream_requests_total{endpoint,status}"""
    global _upstream_requests
    if _upstream_requests is None:
        _upstream_requests = _safe_counter(
            "upstream_requests_total", "Requests sent to the exchange", ["endpoint", "status"]
        )
    return _upstream_requests


def get_upstream_latency():
    """Histogram: upstream_request_seconds{endpoint}"""
    global _upstream_latency
    if _upstream_latency is None:
        _upstream_latency = _safe_histogram(
            "upstream_request_seconds",
            "Exchange request latency in seconds",
            ["endpoint"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
        )
    return _upstream_latency


def get_fills_aggregated_total():
    global _fills_aggregated
    if _fills_aggregated is None:
        _fills_aggregated = _safe_counter("fills_aggregated_total", "Fills folded into positions", ["symbol"])
    return _fills_aggregated


def get_summary_requests_total():
    global _summary_requests
    if _summary_requests is None:
        _summary_requests = _safe_counter("summary_requests_total", "Position summaries served", ["symbol"])
    return _summary_requests


def record_upstream_call(endpoint: str, status: str, seconds: float) -> None:
    get_upstream_requests_total().labels(endpoint, status).inc()
    if seconds >= 0:
        get_upstream_latency().labels(endpoint).observe(float(seconds))
