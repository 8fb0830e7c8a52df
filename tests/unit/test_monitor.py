"""Tests for the security event log and the suspicious-activity heuristic."""

import logging

import pytest

from security.monitor import (
    NO_EVENTS_MESSAGE,
    SecurityEventType,
    SecurityMonitor,
)
from security.storage import SECURITY_EVENTS_KEY, StorageError


class FailingStore:
    def get(self, key, default=None):
        raise StorageError("down")

    def set(self, key, value):
        raise StorageError("down")

    def delete(self, key):
        raise StorageError("down")


@pytest.fixture
def alerts():
    return []


@pytest.fixture
def monitor(store, clock, alerts):
    return SecurityMonitor(store, clock=clock, on_alert=alerts.append)


class TestLogEvent:

    def test_event_shape(self, monitor, clock):
        result = monitor.log_event(
            SecurityEventType.LOGIN_FAILED,
            {"email": "a@b.com", "remainingAttempts": 4},
            user_agent="pytest",
            url="http://localhost/auth/login",
        )
        assert result.ok is True

        (event,) = monitor.get_events()
        assert event == {
            "type": "LOGIN_FAILED",
            "timestamp": clock.now.isoformat(),
            "userAgent": "pytest",
            "url": "http://localhost/auth/login",
            "email": "a@b.com",
            "remainingAttempts": 4,
        }

    def test_plain_string_type_is_accepted(self, monitor):
        monitor.log_event("ADMIN_ACTION")
        assert monitor.get_events()[0]["type"] == "ADMIN_ACTION"

    def test_cap_evicts_oldest(self, monitor):
        for i in range(101):
            monitor.log_event(SecurityEventType.ADMIN_ACTION, {"seq": i})

        events = monitor.get_events()
        assert len(events) == 100
        assert events[0]["seq"] == 1
        assert events[-1]["seq"] == 100

    def test_storage_failure_is_reported_not_raised(self, clock):
        monitor = SecurityMonitor(FailingStore(), clock=clock)
        result = monitor.log_event(SecurityEventType.LOGIN_FAILED)
        assert result.ok is False
        assert result.error
        assert monitor.get_events() == []

    @pytest.mark.parametrize("details", [["not", "a", "mapping"], 42, "text"])
    def test_bad_details_are_reported_not_raised(self, monitor, details):
        result = monitor.log_event(SecurityEventType.ADMIN_ACTION, details)
        assert result.ok is False
        assert "invalid event details" in result.error
        assert monitor.get_events() == []

    def test_analysis_failure_does_not_affect_write(self, store, clock, caplog):
        def explode(count):
            raise RuntimeError("alert hook broke")

        monitor = SecurityMonitor(store, clock=clock, threshold=1, on_alert=explode)
        with caplog.at_level(logging.ERROR, logger="security.monitor"):
            result = monitor.log_event(SecurityEventType.LOGIN_FAILED)

        assert result.ok is True
        assert len(monitor.get_events()) == 1
        assert "Suspicious pattern analysis failed" in caplog.text


class TestSuspiciousPatterns:

    def test_five_failures_in_window_alert(self, monitor, clock, alerts, caplog):
        with caplog.at_level(logging.WARNING, logger="security.monitor"):
            for _ in range(4):
                monitor.log_event(SecurityEventType.LOGIN_FAILED)
                clock.advance(minutes=5)
            assert alerts == []
            monitor.log_event(SecurityEventType.LOGIN_FAILED)

        assert alerts == [5]
        assert monitor.alerts == 1
        assert "Suspicious activity detected" in caplog.text

    def test_failures_spread_beyond_window_do_not_alert(self, monitor, clock, alerts):
        for _ in range(5):
            monitor.log_event(SecurityEventType.LOGIN_FAILED)
            clock.advance(minutes=20)
        assert alerts == []
        assert monitor.alerts == 0

    def test_non_suspicious_types_are_ignored(self, monitor, alerts):
        for _ in range(10):
            monitor.log_event(SecurityEventType.LOGIN_SUCCESS)
            monitor.log_event(SecurityEventType.ADMIN_ACTION)
            monitor.log_event(SecurityEventType.MULTIPLE_FAILED_ATTEMPTS)
        assert alerts == []

    def test_mixed_suspicious_types_count_together(self, monitor, alerts):
        for event_type in (
            SecurityEventType.LOGIN_FAILED,
            SecurityEventType.RATE_LIMIT_TRIGGERED,
            SecurityEventType.UNAUTHORIZED_ACCESS,
            SecurityEventType.SUSPICIOUS_INPUT,
            SecurityEventType.LOGIN_FAILED,
        ):
            monitor.log_event(event_type)
        assert alerts == [5]

    def test_summary_has_no_side_effects(self, monitor, alerts):
        for _ in range(5):
            monitor.log_event(SecurityEventType.UNAUTHORIZED_ACCESS)
        fired = monitor.alerts

        summary = monitor.summary()
        assert summary["total"] == 5
        assert summary["by_type"] == {"UNAUTHORIZED_ACCESS": 5}
        assert summary["recent_suspicious"] == 5
        assert summary["alerting"] is True
        assert monitor.alerts == fired


class TestPrune:

    def test_drops_events_past_retention(self, monitor, clock):
        monitor.log_event(SecurityEventType.LOGIN_FAILED, {"seq": "old"})
        clock.advance(days=6)
        monitor.log_event(SecurityEventType.LOGIN_FAILED, {"seq": "recent"})
        clock.advance(days=2)

        assert monitor.prune_older_than(7) == 1
        assert [e["seq"] for e in monitor.get_events()] == ["recent"]

    def test_unparseable_entries_are_dropped(self, store, monitor):
        store.set(SECURITY_EVENTS_KEY, [{"type": "LOGIN_FAILED", "timestamp": "yesterday"}, "junk"])
        assert monitor.prune_older_than(7) == 2
        assert monitor.get_events() == []

    def test_storage_failure(self, clock):
        assert SecurityMonitor(FailingStore(), clock=clock).prune_older_than(7) == 0


class TestDetectSuspiciousInput:

    @pytest.mark.parametrize("text", [
        "<script>alert(1)</script>",
        "<SCRIPT src=x>",
        "javascript:alert(1)",
        "<img src=x onerror=alert(1)>",
        "eval(atob('x'))",
        "width: expression(alert(1))",
        "VBScript:msgbox",
        "data:text/html;base64,PHNjcmlwdD4=",
        "&#x3C;script&#x3E;",
    ])
    def test_flags_and_logs(self, monitor, text):
        assert monitor.detect_suspicious_input(text, user_agent="ua", url="/orders") is True
        (event,) = monitor.get_events()
        assert event["type"] == "SUSPICIOUS_INPUT"
        assert event["input"] == text[:100]
        assert event["length"] == len(text)
        assert event["url"] == "/orders"

    @pytest.mark.parametrize("text", ["Juan Pérez", "Av. Corrientes 1234", "", "once upon a time"])
    def test_plain_text_passes(self, monitor, text):
        assert monitor.detect_suspicious_input(text) is False
        assert monitor.get_events() == []

    @pytest.mark.parametrize("value", [None, 42, ["<script>"]])
    def test_non_strings_pass(self, monitor, value):
        assert monitor.detect_suspicious_input(value) is False

    def test_preview_is_truncated(self, monitor):
        text = "<script>" + "a" * 500
        monitor.detect_suspicious_input(text)
        event = monitor.get_events()[0]
        assert len(event["input"]) == 100
        assert event["length"] == 508


class TestExport:

    def test_empty_log_returns_sentinel(self, monitor):
        assert monitor.export_events() == NO_EVENTS_MESSAGE

    def test_csv_layout(self, monitor, clock):
        monitor.log_event(
            SecurityEventType.LOGIN_FAILED,
            {"email": "a@b.com", "remainingAttempts": 3},
            user_agent="Mozilla/5.0",
            url="http://shop/auth/login",
        )
        monitor.log_event(SecurityEventType.ADMIN_ACTION, {"action": "export"})

        lines = monitor.export_events().split("\n")
        assert lines[0] == "Tipo,Timestamp,URL,User Agent,Detalles"
        assert len(lines) == 3

        cols = lines[1].split(",")
        assert len(cols) == 5
        assert cols[0] == "LOGIN_FAILED"
        assert cols[1] == clock.now.isoformat()
        assert cols[2] == "http://shop/auth/login"
        assert cols[3] == "Mozilla/5.0"
        assert '"remainingAttempts":3' in cols[4]
        assert ";" in cols[4]

        assert lines[2].startswith("ADMIN_ACTION,")
        assert len(lines[2].split(",")) == 5
