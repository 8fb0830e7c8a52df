from flask import current_app

from models import db
from security.bruteforce import AttemptTracker
from security.monitor import SecurityMonitor
from security.storage import DatabaseStore
from utils.audit import RequestEventSink


def init_security(app, store=None):
    """
    Builds the monitor and attempt tracker from app config and registers
    them under app.extensions. Both share one store but own separate keys.
    """
    store = store or DatabaseStore(db)
    cfg = app.config

    monitor = SecurityMonitor(
        store,
        max_events=cfg.get("SECURITY_EVENTS_MAX", 100),
        threshold=cfg.get("SUSPICIOUS_EVENT_THRESHOLD", 5),
        window_minutes=cfg.get("SUSPICIOUS_WINDOW_MINUTES", 60),
        preview_chars=cfg.get("SUSPICIOUS_INPUT_PREVIEW_CHARS", 100),
    )
    tracker = AttemptTracker(
        store,
        event_sink=RequestEventSink(monitor),
        max_attempts=cfg.get("MAX_LOGIN_ATTEMPTS", 5),
        lockout_minutes=cfg.get("LOCKOUT_MINUTES", 15),
    )

    app.extensions["security_store"] = store
    app.extensions["security_monitor"] = monitor
    app.extensions["attempt_tracker"] = tracker
    return monitor, tracker


def get_monitor() -> SecurityMonitor:
    return current_app.extensions["security_monitor"]


def get_tracker() -> AttemptTracker:
    return current_app.extensions["attempt_tracker"]
