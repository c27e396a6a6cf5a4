"""Prometheus metrics for Activity Dashboard.

Cardinality rule: user_id is NOT a Prometheus label (unbounded).
activity_type and status are labels (bounded).
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Lazy-load prometheus_client to allow graceful degradation
_prom = None


def _get_prom():
    """Lazily import prometheus_client."""
    global _prom
    if _prom is None:
        try:
            import prometheus_client
            _prom = prometheus_client
        except ImportError:
            logger.warning("prometheus_client not installed; metrics disabled")
            _prom = False
    return _prom if _prom else None


# --- Metric singletons (created on first access) ---

_metrics = {}


def _metric(name, metric_type, description, labelnames=()):
    """Get or create a Prometheus metric."""
    if name in _metrics:
        return _metrics[name]
    prom = _get_prom()
    if prom is None:
        _metrics[name] = None
        return None
    cls = getattr(prom, metric_type)
    m = cls(name, description, labelnames=labelnames)
    _metrics[name] = m
    return m


def activity_events_total():
    return _metric(
        "activity_events_total",
        "Counter",
        "Tracked activity events by outcome",
        labelnames=["activity_type", "status"],
    )


def dashboard_query_duration():
    return _metric(
        "activity_dashboard_query_duration_seconds",
        "Histogram",
        "Dashboard data query duration in seconds",
    )


# --- Helper functions for recording metrics ---

def record_activity_event(activity_type: str, status: str):
    m = activity_events_total()
    if m:
        m.labels(activity_type=activity_type, status=status).inc()


def observe_dashboard_query(duration: float):
    m = dashboard_query_duration()
    if m:
        m.observe(duration)


def generate_metrics_text() -> Optional[str]:
    """Generate Prometheus metrics text output."""
    prom = _get_prom()
    if prom is None:
        return None
    return prom.generate_latest().decode("utf-8")
