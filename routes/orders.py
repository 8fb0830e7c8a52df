from flask import Blueprint, jsonify, request

from models.order import Order
from utils.audit import scan_input
from utils.challenges import consume_challenge, issue_challenge
from utils.emailer import send_order_confirmation
from utils.orders import (
    TOTAL_MISMATCH_MESSAGE,
    LineItemError,
    catalog_line_items,
    place_order,
    validate_customer,
    validate_shipping,
)

orders_bp = Blueprint("orders", __name__, url_prefix="/orders")


@orders_bp.get("/challenge")
def new_challenge():
    return jsonify(issue_challenge()), 200


@orders_bp.post("")
def create_order():
    data = request.get_json(silent=True) or {}

    customer, customer_errors = validate_customer(data.get("customer"))
    shipping, shipping_errors = validate_shipping(data.get("shipping"))
    if customer_errors or shipping_errors:
        return jsonify(error="Invalid order form", details={**customer_errors, **shipping_errors}), 400

    if scan_input(*customer.values(), *shipping.values()):
        return jsonify(error="Invalid characters in form"), 400

    # burned on every submission, a retry gets a brand new challenge
    if not consume_challenge(data.get("challenge_token"), data.get("challenge_answer")):
        return jsonify(error="Solve the challenge correctly", challenge=issue_challenge()), 400

    try:
        lines = catalog_line_items(data.get("items"))
        order, check = place_order(lines, data.get("claimed_total"), customer, shipping)
    except LineItemError as exc:
        return jsonify(error=str(exc)), 400

    if order is None:
        return jsonify(error=TOTAL_MISMATCH_MESSAGE), 422

    send_order_confirmation(order)
    return jsonify(order.to_dict()), 201


@orders_bp.get("/<public_id>")
def get_order(public_id: str):
    # confirmation lookups need the buyer's email as well as the order id
    email = (request.args.get("email") or "").strip().lower()
    order = Order.query.filter_by(public_id=public_id).first()
    if not order or not email or (order.customer_json or {}).get("email") != email:
        return jsonify(error="Order not found"), 404
    return jsonify(order.to_dict()), 200
