from functools import wraps

from flask import g, jsonify, request

from models import db
from models.user import User
from security.monitor import SecurityEventType
from security.session import current_session
from utils.audit import log_event


def load_current_user():
    sess = current_session()
    if not sess:
        g.user = None
        g.session = None
        return
    g.session = sess
    g.user = db.session.get(User, sess.user_id)


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = getattr(g, "user", None)
        if user is None:
            log_event(SecurityEventType.UNAUTHORIZED_ACCESS, reason="no_session", path=request.path)
            return jsonify(error="Authentication required"), 401
        if not user.has_role("ADMIN"):
            log_event(SecurityEventType.UNAUTHORIZED_ACCESS, reason="not_admin", path=request.path, user_id=user.id)
            return jsonify(error="Forbidden"), 403
        return fn(*args, **kwargs)
    return wrapper
