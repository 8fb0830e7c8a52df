import hashlib
import secrets
from datetime import datetime, timedelta

from flask import current_app, jsonify, request

from models import db
from models.session import Session

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user_id: int) -> str:
    """Stores a hashed session token and returns the raw one for the cookie."""
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    db.session.add(Session(
        user_id=user_id,
        token_hash=hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def current_session():
    raw_token = request.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "electro_session"))
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=hash_token(raw_token), revoked=False).first()
    if not sess:
        return None

    now = datetime.utcnow()
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 20 * 60))
    if sess.expires_at <= now or (sess.last_seen_at or sess.created_at) + idle <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def set_auth_cookies(resp, raw_token: str):
    secure = current_app.config.get("SESSION_COOKIE_SECURE", False)
    samesite = current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax")

    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "electro_session"),
        raw_token,
        httponly=True,
        secure=secure,
        samesite=samesite,
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    # double-submit token, readable by the admin dashboard JS
    resp.set_cookie(CSRF_COOKIE, secrets.token_urlsafe(32), httponly=False, secure=secure, samesite=samesite, path="/")
    return resp


def clear_auth_cookies(resp):
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "electro_session"), path="/")
    resp.delete_cookie(CSRF_COOKIE, path="/")
    return resp


def csrf_failure():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed"), 403
    return None
