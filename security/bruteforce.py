import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from security.storage import LOGIN_ATTEMPTS_KEY, KeyValueStore, StorageError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
LOCKOUT_MINUTES = 15

RATE_LIMIT_TRIGGERED = "RATE_LIMIT_TRIGGERED"


class EventSink(Protocol):
    def log_event(self, event_type: Any, details: Optional[dict] = None) -> Any: ...


@dataclass(frozen=True)
class RateLimitStatus:
    is_locked: bool
    minutes_left: Optional[int] = None
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def lockout_message(minutes_left: int) -> str:
    unit = "minute" if minutes_left == 1 else "minutes"
    return f"Too many failed attempts. Try again in {minutes_left} {unit}."


class AttemptTracker:
    """
    Per-identity failed login counter with a hard lockout.

    Records live under a single store key as
    {identity: {"count": int, "lastAttempt": epoch_ms, "lockoutUntil": epoch_ms | None}}.
    """

    def __init__(
        self,
        store: KeyValueStore,
        event_sink: Optional[EventSink] = None,
        max_attempts: int = MAX_ATTEMPTS,
        lockout_minutes: int = LOCKOUT_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.event_sink = event_sink
        self.max_attempts = max_attempts
        self.lockout_ms = lockout_minutes * 60 * 1000
        self.clock = clock or _utcnow

    def _load(self) -> dict:
        attempts = self.store.get(LOGIN_ATTEMPTS_KEY, {})
        return attempts if isinstance(attempts, dict) else {}

    def _save(self, attempts: dict) -> None:
        self.store.set(LOGIN_ATTEMPTS_KEY, attempts)

    def check_rate_limit(self, identity: str) -> RateLimitStatus:
        try:
            attempts = self._load()
            record = attempts.get(identity)
            if not record or record.get("count", 0) < self.max_attempts:
                return RateLimitStatus(is_locked=False)

            now = _epoch_ms(self.clock())
            lockout_until = record.get("lockoutUntil") or 0
            if now >= lockout_until:
                # expired: the identity gets a full fresh allotment
                del attempts[identity]
                self._save(attempts)
                return RateLimitStatus(is_locked=False)
        except StorageError:
            logger.warning("Rate limit check failed for %s, allowing attempt", identity, exc_info=True)
            return RateLimitStatus(is_locked=False)

        minutes_left = math.ceil((lockout_until - now) / 60000)
        if self.event_sink is not None:
            self.event_sink.log_event(
                RATE_LIMIT_TRIGGERED,
                {"email": identity, "minutesLeft": minutes_left},
            )
        return RateLimitStatus(
            is_locked=True,
            minutes_left=minutes_left,
            error=lockout_message(minutes_left),
        )

    def record_failed_attempt(self, identity: str) -> None:
        try:
            attempts = self._load()
            now = _epoch_ms(self.clock())

            record = attempts.get(identity) or {"count": 0, "lastAttempt": now, "lockoutUntil": None}
            record["count"] = int(record.get("count", 0)) + 1
            record["lastAttempt"] = now

            # recomputed on every failure past the threshold, so failures
            # during a lockout push it further out
            if record["count"] >= self.max_attempts:
                record["lockoutUntil"] = now + self.lockout_ms

            attempts[identity] = record
            self._save(attempts)
        except StorageError:
            logger.warning("Could not record failed attempt for %s", identity, exc_info=True)

    def reset_failed_attempts(self, identity: str) -> None:
        try:
            attempts = self._load()
            if identity in attempts:
                del attempts[identity]
                self._save(attempts)
        except StorageError:
            logger.warning("Could not reset attempts for %s", identity, exc_info=True)

    def get_remaining_attempts(self, identity: str) -> int:
        try:
            record = self._load().get(identity)
        except StorageError:
            return self.max_attempts
        if not record:
            return self.max_attempts
        return max(0, self.max_attempts - int(record.get("count", 0)))
