"""Unit tests for logging formatters and metrics helpers."""

import json
import logging

from activity_dashboard.observability import metrics
from activity_dashboard.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_log_context,
    set_log_context,
)


def _record(message="Tracked login"):
    return logging.LogRecord(
        name="activity_dashboard.services.tracker",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestFormatters:

    def teardown_method(self):
        clear_log_context()

    def test_structured_formatter_includes_context(self):
        set_log_context(request_id="req-1", user_id=42)

        entry = json.loads(StructuredFormatter().format(_record()))

        assert entry["message"] == "Tracked login"
        assert entry["level"] == "INFO"
        assert entry["request_id"] == "req-1"
        assert entry["user_id"] == 42

    def test_structured_formatter_without_context(self):
        entry = json.loads(StructuredFormatter().format(_record()))

        assert "request_id" not in entry
        assert "user_id" not in entry

    def test_human_readable_formatter(self):
        set_log_context(request_id="abc")

        line = HumanReadableFormatter().format(_record("hello"))

        assert "hello" in line
        assert "[request_id=abc]" in line


class TestMetrics:

    def test_recorded_events_show_up_in_exposition(self):
        metrics.record_activity_event("login", "ok")
        metrics.observe_dashboard_query(0.01)

        text = metrics.generate_metrics_text()

        assert 'activity_events_total{activity_type="login",status="ok"}' in text
        assert "activity_dashboard_query_duration_seconds" in text
