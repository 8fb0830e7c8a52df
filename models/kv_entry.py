from datetime import datetime
from models.db import db


class KeyValueEntry(db.Model):
    __tablename__ = "kv_entries"

    id = db.Column(db.Integer, primary_key=True)

    # one row per storage key (loginAttempts, securityEvents)
    key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    value_json = db.Column(db.Text, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
