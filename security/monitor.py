"""
Security event log and a coarse suspicious-activity heuristic.

Events are kept as a bounded, oldest-first list under one store key. Writes
evict the oldest entries beyond the cap; ``prune_older_than`` separately drops
entries past the retention window. Logging is best-effort: nothing in here
raises back into the request that triggered it.
"""
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from security.storage import SECURITY_EVENTS_KEY, KeyValueStore, StorageError

logger = logging.getLogger(__name__)

MAX_EVENTS = 100
SUSPICIOUS_THRESHOLD = 5
SUSPICIOUS_WINDOW_MINUTES = 60
RETENTION_DAYS = 7
INPUT_PREVIEW_CHARS = 100

NO_EVENTS_MESSAGE = "No security events recorded"
EXPORT_HEADERS = ("Tipo", "Timestamp", "URL", "User Agent", "Detalles")


class SecurityEventType(str, Enum):
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    RATE_LIMIT_TRIGGERED = "RATE_LIMIT_TRIGGERED"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    SUSPICIOUS_INPUT = "SUSPICIOUS_INPUT"
    MULTIPLE_FAILED_ATTEMPTS = "MULTIPLE_FAILED_ATTEMPTS"
    ADMIN_ACTION = "ADMIN_ACTION"
    PRICE_MANIPULATION = "PRICE_MANIPULATION"


SUSPICIOUS_TYPES = frozenset({
    SecurityEventType.LOGIN_FAILED.value,
    SecurityEventType.RATE_LIMIT_TRIGGERED.value,
    SecurityEventType.UNAUTHORIZED_ACCESS.value,
    SecurityEventType.SUSPICIOUS_INPUT.value,
})

SUSPICIOUS_INPUT_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"eval\(", re.IGNORECASE),
    re.compile(r"expression\(", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"&#x", re.IGNORECASE),  # encoded entities
]


@dataclass(frozen=True)
class EventLogResult:
    ok: bool
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _type_value(event_type) -> str:
    return event_type.value if isinstance(event_type, SecurityEventType) else str(event_type)


class SecurityMonitor:
    def __init__(
        self,
        store: KeyValueStore,
        max_events: int = MAX_EVENTS,
        threshold: int = SUSPICIOUS_THRESHOLD,
        window_minutes: int = SUSPICIOUS_WINDOW_MINUTES,
        preview_chars: int = INPUT_PREVIEW_CHARS,
        clock: Optional[Callable[[], datetime]] = None,
        on_alert: Optional[Callable[[int], None]] = None,
    ):
        self.store = store
        self.max_events = max_events
        self.threshold = threshold
        self.window = timedelta(minutes=window_minutes)
        self.preview_chars = preview_chars
        self.clock = clock or _utcnow
        self.on_alert = on_alert
        self.alerts = 0

    def get_events(self) -> list:
        try:
            events = self.store.get(SECURITY_EVENTS_KEY, [])
        except StorageError:
            logger.warning("Could not read security events", exc_info=True)
            return []
        return events if isinstance(events, list) else []

    def log_event(self, event_type, details: Optional[dict] = None, user_agent: str = "", url: str = "") -> EventLogResult:
        try:
            event = {
                "type": _type_value(event_type),
                "timestamp": self.clock().isoformat(),
                "userAgent": user_agent or "",
                "url": url or "",
            }
            event.update(details or {})
        except (TypeError, ValueError) as exc:
            logger.warning("Security event %s dropped: bad details (%s)", event_type, exc)
            return EventLogResult(ok=False, error=f"invalid event details: {exc}")

        try:
            events = self.store.get(SECURITY_EVENTS_KEY, [])
            if not isinstance(events, list):
                events = []
            events.append(event)
            while len(events) > self.max_events:
                events.pop(0)
            self.store.set(SECURITY_EVENTS_KEY, events)
        except StorageError as exc:
            logger.warning("Security event %s dropped: %s", event["type"], exc)
            return EventLogResult(ok=False, error=str(exc))

        logger.debug("[security event] %s", event["type"], extra={"security_event": event})

        try:
            self.analyze_suspicious_patterns(events)
        except Exception:
            # diagnostics only, never affects the write
            logger.exception("Suspicious pattern analysis failed")

        return EventLogResult(ok=True)

    def count_recent_suspicious(self, events: list) -> int:
        cutoff = self.clock() - self.window
        count = 0
        for event in events:
            if not isinstance(event, dict) or event.get("type") not in SUSPICIOUS_TYPES:
                continue
            ts = _parse_ts(event.get("timestamp"))
            if ts is not None and ts > cutoff:
                count += 1
        return count

    def analyze_suspicious_patterns(self, events: list) -> int:
        """
        Count suspicious events inside the rolling window and raise the
        alert signal once the count reaches the threshold.
        """
        count = self.count_recent_suspicious(events)
        if count >= self.threshold:
            self.alerts += 1
            logger.warning("Suspicious activity detected: %d events in the last %d minutes",
                           count, int(self.window.total_seconds() // 60))
            if self.on_alert is not None:
                self.on_alert(count)
        return count

    def prune_older_than(self, days: int = RETENTION_DAYS) -> int:
        """Drop events older than ``days``. Returns how many were removed."""
        cutoff = self.clock() - timedelta(days=days)
        try:
            events = self.store.get(SECURITY_EVENTS_KEY, [])
            if not isinstance(events, list):
                events = []
            kept = []
            for event in events:
                ts = _parse_ts(event.get("timestamp")) if isinstance(event, dict) else None
                if ts is not None and ts > cutoff:
                    kept.append(event)
            self.store.set(SECURITY_EVENTS_KEY, kept)
        except StorageError:
            logger.warning("Could not prune security events", exc_info=True)
            return 0

        removed = len(events) - len(kept)
        if removed:
            logger.info("Pruned %d security events older than %d days", removed, days)
        return removed

    def detect_suspicious_input(self, text, user_agent: str = "", url: str = "") -> bool:
        if not isinstance(text, str):
            return False
        if not any(p.search(text) for p in SUSPICIOUS_INPUT_PATTERNS):
            return False

        self.log_event(
            SecurityEventType.SUSPICIOUS_INPUT,
            {"input": text[:self.preview_chars], "length": len(text)},
            user_agent=user_agent,
            url=url,
        )
        return True

    def export_events(self) -> str:
        events = self.get_events()
        if not events:
            return NO_EVENTS_MESSAGE

        lines = [",".join(EXPORT_HEADERS)]
        for event in events:
            # commas in the blob become semicolons so columns stay aligned
            blob = json.dumps(event, ensure_ascii=False, separators=(",", ":")).replace(",", ";")
            lines.append(",".join([
                str(event.get("type", "")),
                str(event.get("timestamp", "")),
                str(event.get("url") or ""),
                str(event.get("userAgent") or ""),
                blob,
            ]))
        return "\n".join(lines)

    def summary(self) -> dict:
        events = self.get_events()
        by_type: dict = {}
        for event in events:
            key = event.get("type", "UNKNOWN")
            by_type[key] = by_type.get(key, 0) + 1
        recent = self.count_recent_suspicious(events)
        return {
            "total": len(events),
            "by_type": by_type,
            "recent_suspicious": recent,
            "threshold": self.threshold,
            "alerting": recent >= self.threshold,
        }
