from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request

from models import db
from models.user import User
from security.bruteforce import lockout_message
from security.monitor import SecurityEventType
from security.password import check_credentials
from security.session import clear_auth_cookies, create_session, revoke_session, set_auth_cookies
from utils.audit import log_event, scan_input
from utils.auth_context import admin_required
from utils.security_context import get_tracker

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower() if isinstance(data.get("email"), str) else ""
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if scan_input(email):
        return jsonify(error="Invalid email"), 400

    tracker = get_tracker()
    status = tracker.check_rate_limit(email)
    if status.is_locked:
        return jsonify(error=status.error, minutes_left=status.minutes_left), 429

    user = User.query.filter_by(email=email).first()
    ok, reason = check_credentials(user, password)
    if not ok:
        tracker.record_failed_attempt(email)
        remaining = tracker.get_remaining_attempts(email)
        log_event(SecurityEventType.LOGIN_FAILED, email=email, reason=reason, remainingAttempts=remaining)

        if remaining == 0:
            minutes = current_app.config.get("LOCKOUT_MINUTES", 15)
            log_event(SecurityEventType.MULTIPLE_FAILED_ATTEMPTS, email=email, lockoutMinutes=minutes)
            return jsonify(error=lockout_message(minutes), minutes_left=minutes), 429
        return jsonify(error="Invalid credentials", remaining_attempts=remaining), 401

    tracker.reset_failed_attempts(email)
    user.last_login_at = datetime.utcnow()
    db.session.commit()

    raw_token = create_session(user.id)
    log_event(SecurityEventType.LOGIN_SUCCESS, email=email, user_id=user.id)

    resp = jsonify(message="Login OK", email=user.email, roles=[r.name for r in user.roles])
    return set_auth_cookies(resp, raw_token), 200


@auth_bp.post("/logout")
@admin_required
def logout():
    revoke_session(request.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "electro_session")))
    log_event(SecurityEventType.ADMIN_ACTION, action="logout", user_id=g.user.id)
    return clear_auth_cookies(jsonify(message="Logged out")), 200


@auth_bp.get("/me")
@admin_required
def me():
    return jsonify(
        id=g.user.id,
        email=g.user.email,
        full_name=g.user.full_name,
        roles=[r.name for r in g.user.roles],
    ), 200
