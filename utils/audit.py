from flask import current_app, has_request_context, request


def _request_context() -> dict:
    if not has_request_context():
        return {"user_agent": "", "url": ""}
    return {
        "user_agent": (request.headers.get("User-Agent") or "")[:255],
        "url": request.url,
    }


def log_event(event_type, **details):
    """
    Records a security event with the current request's URL and user agent.
    Best-effort: storage failures come back as a failed result, never raise.
    """
    monitor = current_app.extensions["security_monitor"]
    return monitor.log_event(event_type, details, **_request_context())


def scan_input(*values) -> bool:
    """True if any value looks like script or markup injection (and logs it)."""
    monitor = current_app.extensions["security_monitor"]
    ctx = _request_context()
    return any(monitor.detect_suspicious_input(v, **ctx) for v in values if isinstance(v, str))


class RequestEventSink:
    """Narrow log_event capability handed to components that emit events."""

    def __init__(self, monitor):
        self.monitor = monitor

    def log_event(self, event_type, details=None):
        return self.monitor.log_event(event_type, details, **_request_context())
