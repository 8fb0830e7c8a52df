from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import Blueprint, Response, current_app, g, jsonify, request
from sqlalchemy import func, or_

from models import db
from models.order import Order
from models.product import Product
from security.monitor import SecurityEventType
from security.uploads import validate_file_size, validate_file_type
from utils.audit import log_event, scan_input
from utils.auth_context import admin_required
from utils.emailer import send_status_update
from utils.orders import (
    TOTAL_MISMATCH_MESSAGE,
    LineItemError,
    admin_line_items,
    place_order,
    validate_customer,
    validate_shipping,
)
from utils.security_context import get_monitor
from utils.uploads import LocalUploadStore

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

ORDER_STATUSES = ("PENDING", "PROCESSING", "PAID", "SHIPPED", "DELIVERED", "CANCELLED")


def _tracking_number() -> str:
    ms = int(datetime.utcnow().timestamp() * 1000)
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while ms:
        ms, rem = divmod(ms, 36)
        out = digits[rem] + out
    return f"TRK-{out or '0'}"


def _price(value):
    if isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price.quantize(Decimal("0.01"))


# ---------- dashboard ----------
@admin_bp.get("/dashboard")
@admin_required
def dashboard():
    total_orders = Order.query.count()
    revenue = db.session.query(func.coalesce(func.sum(Order.total), 0)).filter(Order.status != "CANCELLED").scalar()
    return jsonify(
        total_orders=total_orders,
        total_revenue=float(revenue or 0),
        pending_orders=Order.query.filter_by(status="PENDING").count(),
        processing_orders=Order.query.filter_by(status="PROCESSING").count(),
        security=get_monitor().summary(),
    ), 200


# ---------- orders ----------
@admin_bp.get("/orders")
@admin_required
def list_orders():
    status = (request.args.get("status") or "").strip().upper()
    term = (request.args.get("q") or "").strip()

    q = Order.query
    if status:
        q = q.filter(Order.status == status)
    if term:
        like = f"%{term}%"
        q = q.filter(or_(Order.public_id.ilike(like), func.lower(Order.customer_json["email"].as_string()).like(like.lower())))

    rows = q.order_by(Order.created_at.desc()).limit(200).all()
    return jsonify([o.to_dict() for o in rows]), 200


@admin_bp.post("/orders")
@admin_required
def admin_create_order():
    data = request.get_json(silent=True) or {}

    customer, customer_errors = validate_customer(data.get("customer"))
    shipping, shipping_errors = validate_shipping(data.get("shipping"))
    if customer_errors or shipping_errors:
        return jsonify(error="Invalid order form", details={**customer_errors, **shipping_errors}), 400

    try:
        lines = admin_line_items(data.get("items"))
    except LineItemError as exc:
        return jsonify(error=str(exc)), 400

    if scan_input(*customer.values(), *shipping.values(), *(l["name"] for l in lines)):
        return jsonify(error="Invalid characters in form"), 400

    order, check = place_order(
        lines, data.get("claimed_total"), customer, shipping, source="ADMIN", created_by=g.user.id
    )
    if order is None:
        return jsonify(error=TOTAL_MISMATCH_MESSAGE), 422

    log_event(SecurityEventType.ADMIN_ACTION, action="order_create", order_id=order.public_id, user_id=g.user.id)
    return jsonify(order.to_dict()), 201


@admin_bp.post("/orders/<public_id>/status")
@admin_required
def update_order_status(public_id: str):
    data = request.get_json(silent=True) or {}
    new_status = (data.get("status") or "").strip().upper()
    if new_status not in ORDER_STATUSES:
        return jsonify(error=f"status must be one of {', '.join(ORDER_STATUSES)}"), 400

    order = Order.query.filter_by(public_id=public_id).first()
    if not order:
        return jsonify(error="Order not found"), 404

    order.status = new_status
    if new_status == "PAID":
        order.payment_status = "PAID"
        order.paid_at = order.paid_at or datetime.utcnow()
    elif new_status == "SHIPPED":
        order.shipping_status = "SHIPPED"
        tracking = (data.get("tracking_number") or "").strip() if isinstance(data.get("tracking_number"), str) else ""
        if tracking:
            order.tracking_number = tracking[:80]
        elif not order.tracking_number:
            order.tracking_number = _tracking_number()
    elif new_status == "DELIVERED":
        order.shipping_status = "DELIVERED"
    db.session.commit()

    sent, _ = send_status_update(order)
    log_event(
        SecurityEventType.ADMIN_ACTION,
        action="order_status",
        order_id=order.public_id,
        status=new_status,
        user_id=g.user.id,
        notified=sent,
    )
    return jsonify(order.to_dict()), 200


# ---------- products ----------
@admin_bp.get("/products")
@admin_required
def list_all_products():
    rows = Product.query.order_by(Product.created_at.desc()).all()
    return jsonify([p.to_dict() for p in rows]), 200


@admin_bp.post("/products")
@admin_required
def create_product():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip() if isinstance(data.get("name"), str) else ""
    category = (data.get("category") or "").strip() if isinstance(data.get("category"), str) else ""
    description = data.get("description") if isinstance(data.get("description"), str) else None
    price = _price(data.get("price"))
    stock = data.get("stock", 0)

    if not name or not category:
        return jsonify(error="name and category are required"), 400
    if price is None:
        return jsonify(error="price must be a non-negative number"), 400
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        return jsonify(error="stock must be a non-negative integer"), 400
    if scan_input(name, category, description):
        return jsonify(error="Invalid characters in product"), 400

    product = Product(name=name[:160], category=category[:80], description=description, price=price, stock=stock)
    db.session.add(product)
    db.session.commit()

    log_event(SecurityEventType.ADMIN_ACTION, action="product_create", product_id=product.id, user_id=g.user.id)
    return jsonify(product.to_dict()), 201


@admin_bp.patch("/products/<int:product_id>")
@admin_required
def update_product(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify(error="Product not found"), 404

    data = request.get_json(silent=True) or {}
    updates = {}

    for field, limit in (("name", 160), ("category", 80)):
        if field in data:
            value = data[field].strip() if isinstance(data[field], str) else ""
            if not value:
                return jsonify(error=f"Invalid {field}"), 400
            updates[field] = value[:limit]

    if "description" in data:
        if data["description"] is not None and not isinstance(data["description"], str):
            return jsonify(error="Invalid description"), 400
        updates["description"] = data["description"]

    if "price" in data:
        price = _price(data["price"])
        if price is None:
            return jsonify(error="price must be a non-negative number"), 400
        updates["price"] = price

    if "stock" in data:
        stock = data["stock"]
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            return jsonify(error="stock must be a non-negative integer"), 400
        updates["stock"] = stock

    if "is_active" in data:
        updates["is_active"] = bool(data["is_active"])

    # event logging commits the session, so scan before touching the row
    if scan_input(updates.get("name"), updates.get("category"), updates.get("description")):
        return jsonify(error="Invalid characters in product"), 400

    for field, value in updates.items():
        setattr(product, field, value)
    db.session.commit()

    log_event(SecurityEventType.ADMIN_ACTION, action="product_update", product_id=product.id, fields=sorted(updates), user_id=g.user.id)
    return jsonify(product.to_dict()), 200


@admin_bp.delete("/products/<int:product_id>")
@admin_required
def deactivate_product(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify(error="Product not found"), 404

    # orders keep referencing the product, so it is only hidden
    product.is_active = False
    db.session.commit()

    log_event(SecurityEventType.ADMIN_ACTION, action="product_deactivate", product_id=product.id, user_id=g.user.id)
    return jsonify(message="Product deactivated"), 200


@admin_bp.post("/products/<int:product_id>/image")
@admin_required
def upload_product_image(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return jsonify(error="Product not found"), 404

    file = request.files.get("image")
    cfg = current_app.config
    size_check = validate_file_size(file, cfg.get("IMAGE_MAX_BYTES", 5 * 1024 * 1024))
    if not size_check.is_valid:
        return jsonify(error=size_check.error), 400
    type_check = validate_file_type(file, cfg.get("ALLOWED_IMAGE_TYPES", ()), cfg.get("ALLOWED_IMAGE_EXTENSIONS", ()))
    if not type_check.is_valid:
        return jsonify(error=type_check.error), 400

    store = LocalUploadStore(cfg["UPLOAD_FOLDER"], cfg.get("UPLOAD_BASE_URL", "/uploads"))
    product.image_url = store.upload(file.read(), file.mimetype, file.filename)
    db.session.commit()

    log_event(SecurityEventType.ADMIN_ACTION, action="product_image", product_id=product.id, user_id=g.user.id)
    return jsonify(image_url=product.image_url), 200


# ---------- security events ----------
@admin_bp.get("/security/events")
@admin_required
def list_security_events():
    event_type = (request.args.get("type") or "").strip().upper()
    events = get_monitor().get_events()
    if event_type:
        events = [e for e in events if isinstance(e, dict) and e.get("type") == event_type]
    # newest first for the dashboard
    return jsonify(list(reversed(events))), 200


@admin_bp.get("/security/summary")
@admin_required
def security_summary():
    return jsonify(get_monitor().summary()), 200


@admin_bp.get("/security/export")
@admin_required
def export_security_events():
    body = get_monitor().export_events()
    log_event(SecurityEventType.ADMIN_ACTION, action="security_export", user_id=g.user.id)
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=security-events.csv"},
    )
