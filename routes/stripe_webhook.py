from datetime import datetime

import stripe
from flask import Blueprint, current_app, jsonify, request

from models import db
from models.order import Order

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(
            request.data, request.headers.get("Stripe-Signature"), endpoint_secret
        )
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event["type"]
    if event_type not in ("checkout.session.completed", "checkout.session.expired"):
        return jsonify(received=True), 200

    session = event["data"]["object"]
    meta = session.get("metadata") or {}

    order = None
    if meta.get("order_id"):
        order = Order.query.filter_by(public_id=meta["order_id"]).first()
    if not order and session.get("id"):
        order = Order.query.filter_by(stripe_session_id=session["id"]).first()
    if not order or order.payment_status == "PAID":
        return jsonify(received=True), 200

    if event_type == "checkout.session.completed":
        order.payment_status = "PAID"
        order.paid_at = datetime.utcnow()
        if order.status == "PENDING":
            order.status = "PAID"
    else:
        order.payment_status = "FAILED"
    db.session.commit()

    current_app.logger.info("Order %s payment %s", order.public_id, order.payment_status)
    return jsonify(received=True), 200
