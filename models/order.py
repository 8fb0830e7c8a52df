from datetime import datetime
from models.db import db


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    # public reference shown to customers, e.g. ORD-1735689600000-3F9A0C1B
    public_id = db.Column(db.String(40), unique=True, nullable=False, index=True)

    customer_json = db.Column(db.JSON, nullable=False)
    shipping_json = db.Column(db.JSON, nullable=False)
    items_json = db.Column(db.JSON, nullable=False)

    # always the server-side recalculated total, never the client's claim
    total = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="ARS")

    status = db.Column(db.String(20), nullable=False, default="PENDING")
    # status values: PENDING, PROCESSING, PAID, SHIPPED, DELIVERED, CANCELLED
    payment_status = db.Column(db.String(20), nullable=False, default="UNPAID")
    # payment_status values: UNPAID, PAID, FAILED
    shipping_status = db.Column(db.String(20), nullable=False, default="NOT_SHIPPED")
    tracking_number = db.Column(db.String(80), nullable=True)

    source = db.Column(db.String(20), nullable=False, default="CHECKOUT")  # CHECKOUT, ADMIN
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    stripe_session_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "id": self.public_id,
            "date": self.created_at.isoformat(),
            "customer": self.customer_json,
            "shipping": self.shipping_json,
            "items": self.items_json,
            "total": float(self.total),
            "currency": self.currency,
            "status": self.status,
            "payment_status": self.payment_status,
            "shipping_status": self.shipping_status,
            "tracking_number": self.tracking_number,
            "source": self.source,
        }
