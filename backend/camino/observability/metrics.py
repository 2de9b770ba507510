"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from camino.observability import client as opik_client

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short-lived Opik trace when Opik is enabled."""
    client = opik_client.get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        end = getattr(metric_trace, "end", None)
        if callable(end):
            end()
    except Exception as exc:  # pragma: no cover - metrics are best effort
        logger.debug("Unable to record metric %s: %s", name, exc)


@contextmanager
def timed_metric(name: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
    """Emit ``name`` with the block's latency in ms; callers may add metadata to the yielded dict."""
    extra: Dict[str, Any] = dict(metadata or {})
    started = perf_counter()
    try:
        yield extra
    finally:
        log_metric(name, (perf_counter() - started) * 1000, extra)
