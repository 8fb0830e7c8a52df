from datetime import datetime
from models.db import db


class PendingChallenge(db.Model):
    __tablename__ = "pending_challenges"

    id = db.Column(db.Integer, primary_key=True)

    # only the hash of the token handed to the client is stored
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)
    question = db.Column(db.String(32), nullable=False)
    answer = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    consumed_at = db.Column(db.DateTime, nullable=True)

    ip = db.Column(db.String(64), nullable=True)
