import secrets
from datetime import datetime, timedelta

from flask import current_app, request

from models import db
from models.challenge import PendingChallenge
from security.captcha import generate_challenge, validate_challenge
from security.session import hash_token


def issue_challenge() -> dict:
    """Stores a fresh challenge server-side and returns what the form shows."""
    # expired and consumed rows are dropped before adding a new one
    _stale_challenges(datetime.utcnow()).delete(synchronize_session=False)

    challenge = generate_challenge()
    raw_token = secrets.token_urlsafe(24)
    ttl = current_app.config.get("CHALLENGE_TTL_SECONDS", 600)

    db.session.add(PendingChallenge(
        token_hash=hash_token(raw_token),
        question=challenge.question,
        answer=challenge.answer,
        expires_at=datetime.utcnow() + timedelta(seconds=ttl),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
    ))
    db.session.commit()
    return {"challenge_token": raw_token, "question": challenge.question, "expires_in": ttl}


def consume_challenge(raw_token, submitted_answer) -> bool:
    """
    Checks the answer and burns the challenge whatever the outcome, so a
    retry always needs a new one.
    """
    if not isinstance(raw_token, str) or not raw_token:
        return False

    row = PendingChallenge.query.filter_by(token_hash=hash_token(raw_token)).first()
    if not row or row.consumed_at is not None:
        return False

    now = datetime.utcnow()
    row.consumed_at = now
    db.session.commit()

    if row.expires_at <= now:
        return False
    return validate_challenge(submitted_answer, row.answer)


def _stale_challenges(now):
    return PendingChallenge.query.filter(
        (PendingChallenge.expires_at <= now) | (PendingChallenge.consumed_at.isnot(None))
    )


def purge_expired_challenges() -> int:
    count = _stale_challenges(datetime.utcnow()).delete(synchronize_session=False)
    db.session.commit()
    return count
