"""
Shared pieces of the checkout and admin order flows: field validation,
turning submitted line items into priced lines, and persisting an order
with the recalculated total.
"""
import re

from flask import current_app

from models import db
from models.order import Order
from models.product import Product
from security.monitor import SecurityEventType
from security.order_integrity import generate_order_id, validate_and_recalculate_total
from utils.audit import log_event

CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone")
SHIPPING_FIELDS = ("address", "city", "state", "zip_code", "country")

TOTAL_MISMATCH_MESSAGE = "Order total mismatch. Please reload and try again."

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE = re.compile(r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$")
_DIGITS = re.compile(r"\D")


class LineItemError(ValueError):
    pass


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_customer(data) -> tuple[dict, dict]:
    """Returns (cleaned, errors) for the customer block."""
    data = data if isinstance(data, dict) else {}
    cleaned = {f: _clean(data.get(f)) for f in CUSTOMER_FIELDS}
    cleaned["email"] = cleaned["email"].lower()
    errors = {}

    for field in ("first_name", "last_name"):
        if not cleaned[field]:
            errors[field] = "Required"
        elif len(cleaned[field]) > 80:
            errors[field] = "Too long"

    if not cleaned["email"]:
        errors["email"] = "Required"
    elif not _EMAIL.match(cleaned["email"]) or len(cleaned["email"]) > 255:
        errors["email"] = "Invalid email"

    if not cleaned["phone"]:
        errors["phone"] = "Required"
    elif not _PHONE.match(cleaned["phone"].replace(" ", "")):
        errors["phone"] = "Invalid phone"

    return cleaned, errors


def validate_shipping(data) -> tuple[dict, dict]:
    data = data if isinstance(data, dict) else {}
    cleaned = {f: _clean(data.get(f)) for f in SHIPPING_FIELDS}
    cleaned["zip_code"] = _DIGITS.sub("", cleaned["zip_code"])[:10]
    errors = {}

    for field in ("address", "city", "state", "country"):
        if not cleaned[field]:
            errors[field] = "Required"
        elif len(cleaned[field]) > 160:
            errors[field] = "Too long"

    if not cleaned["zip_code"]:
        errors["zip_code"] = "Required"
    elif len(cleaned["zip_code"]) < 4:
        errors["zip_code"] = "Invalid zip code"

    return cleaned, errors


def _quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise LineItemError("quantity must be a positive integer")
    return value


def catalog_line_items(raw_items, check_stock: bool = True) -> list:
    """
    Prices every submitted line from the catalog. Prices sent by the client
    are ignored. Raises LineItemError on unknown products or bad quantities.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise LineItemError("Order must contain at least one item")

    lines = []
    requested = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise LineItemError("Invalid item")
        product_id = raw.get("product_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise LineItemError("product_id required")
        quantity = _quantity(raw.get("quantity"))

        product = db.session.get(Product, product_id)
        if not product or not product.is_active:
            raise LineItemError(f"Product {product_id} not available")
        # repeated lines for one product share its stock
        requested[product.id] = requested.get(product.id, 0) + quantity
        if check_stock and product.stock < requested[product.id]:
            raise LineItemError(f"Not enough stock for {product.name}")

        lines.append({
            "product_id": product.id,
            "name": product.name,
            "price": float(product.price),
            "quantity": quantity,
        })
    return lines


def admin_line_items(raw_items) -> list:
    """
    Admin orders may mix catalog lines with custom lines carrying their own
    name and price. Custom prices go through the validator's rules as sent.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise LineItemError("Order must contain at least one item")

    lines = []
    for raw in raw_items:
        if isinstance(raw, dict) and raw.get("product_id") is not None:
            lines.extend(catalog_line_items([raw], check_stock=False))
            continue
        if not isinstance(raw, dict) or not _clean(raw.get("name")):
            raise LineItemError("Custom items need a name")
        lines.append({
            "product_id": None,
            "name": _clean(raw.get("name"))[:160],
            "price": raw.get("price"),
            "quantity": raw.get("quantity"),
        })
    return lines


def _reserve_stock(lines):
    """
    Decrements stock with a guarded UPDATE per product. Raises LineItemError
    and rolls back when any product would go below zero.
    """
    wanted = {}
    for line in lines:
        wanted[line["product_id"]] = wanted.get(line["product_id"], 0) + line["quantity"]

    for product_id, quantity in wanted.items():
        updated = Product.query.filter(Product.id == product_id, Product.stock >= quantity).update(
            {Product.stock: Product.stock - quantity}, synchronize_session=False
        )
        if not updated:
            db.session.rollback()
            raise LineItemError("Not enough stock for one of the items")


def place_order(lines, claimed_total, customer, shipping, source="CHECKOUT", created_by=None):
    """
    Recalculates the total and persists the order with it. Returns
    (order, check). On a mismatch nothing is written except the security
    event, and order is None. Checkout orders raise LineItemError when the
    stock ran out since the lines were priced.
    """
    tolerance = current_app.config.get("ORDER_TOTAL_TOLERANCE", 0.01)
    check = validate_and_recalculate_total(lines, claimed_total, tolerance)
    if not check.is_valid:
        log_event(
            SecurityEventType.PRICE_MANIPULATION,
            email=customer.get("email"),
            claimedTotal=claimed_total if isinstance(claimed_total, (int, float)) else str(claimed_total),
            calculatedTotal=check.calculated_total,
            difference=check.difference,
            source=source,
        )
        current_app.logger.warning("Rejected %s order: %s", source.lower(), check.error)
        return None, check

    order = Order(
        public_id=generate_order_id(),
        customer_json=customer,
        shipping_json=shipping,
        items_json=lines,
        total=check.calculated_total,
        currency=current_app.config.get("ORDER_CURRENCY", "ARS"),
        source=source,
        created_by=created_by,
    )
    db.session.add(order)

    if source == "CHECKOUT":
        _reserve_stock(lines)

    db.session.commit()
    return order, check
