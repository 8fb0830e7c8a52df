from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import stripe
from flask import Blueprint, current_app, jsonify, request

from models import db
from models.order import Order

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _append_query(url: str, params: dict) -> str:
    if not url:
        return url
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query))
    query.update({k: v for k, v in params.items() if v is not None})
    return urlunparse(parts._replace(query=urlencode(query)))


def _stripe_line_items(order: Order) -> list:
    currency = order.currency.lower()
    items = []
    for line in order.items_json or []:
        price = line.get("price")
        quantity = line.get("quantity")
        # lines the total validator counted as zero are not charged either
        if not isinstance(price, (int, float)) or isinstance(price, bool) or price <= 0:
            continue
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            continue
        items.append({
            "price_data": {
                "currency": currency,
                "product_data": {"name": line.get("name") or "Item"},
                "unit_amount": int(round(price * 100)),
            },
            "quantity": quantity,
        })
    return items


@payments_bp.post("/start")
def start_payment():
    cfg = current_app.config
    if not cfg.get("STRIPE_SECRET_KEY"):
        return jsonify(error="Payments not configured"), 500
    if not cfg.get("STRIPE_SUCCESS_URL") or not cfg.get("STRIPE_CANCEL_URL"):
        return jsonify(error="Payment redirect URLs not configured"), 500

    data = request.get_json(silent=True) or {}
    order = Order.query.filter_by(public_id=data.get("order_id") or "").first()
    if not order:
        return jsonify(error="Order not found"), 404
    if order.payment_status == "PAID":
        return jsonify(error="Order already paid"), 400
    if order.status == "CANCELLED":
        return jsonify(error="Order cancelled"), 400

    line_items = _stripe_line_items(order)
    if not line_items:
        return jsonify(error="Nothing to charge"), 400

    stripe.api_key = cfg["STRIPE_SECRET_KEY"]
    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=line_items,
        customer_email=(order.customer_json or {}).get("email"),
        success_url=_append_query(cfg["STRIPE_SUCCESS_URL"], {"order_id": order.public_id}),
        cancel_url=_append_query(cfg["STRIPE_CANCEL_URL"], {"order_id": order.public_id}),
        metadata={"order_id": order.public_id},
    )

    order.stripe_session_id = session["id"]
    db.session.commit()

    current_app.logger.info("Checkout session %s created for %s", session["id"], order.public_id)
    return jsonify(checkout_url=session["url"]), 200
