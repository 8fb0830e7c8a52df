import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "PENDING": "received",
    "PROCESSING": "being prepared",
    "SHIPPED": "on its way",
    "DELIVERED": "delivered",
    "CANCELLED": "cancelled",
}


def send_email(to_email: str, subject: str, body: str):
    """Returns (sent, error). Never raises: email is a side channel."""
    cfg = current_app.config
    host = cfg.get("SMTP_HOST")
    from_email = cfg.get("SMTP_FROM_EMAIL") or cfg.get("SMTP_USERNAME")

    if not host or not from_email:
        return False, "Email not configured"
    if not to_email:
        return False, "Missing recipient"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, cfg.get("SMTP_PORT", 587), timeout=10) as server:
            if cfg.get("SMTP_USE_TLS", True):
                server.starttls()
            if cfg.get("SMTP_USERNAME") and cfg.get("SMTP_PASSWORD"):
                server.login(cfg["SMTP_USERNAME"], cfg["SMTP_PASSWORD"])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Email to %s failed: %s", to_email, exc)
        return False, str(exc)
    return True, None


def _item_lines(order) -> str:
    lines = []
    for item in order.items_json or []:
        price = item.get("price")
        price = float(price) if isinstance(price, (int, float)) else 0.0
        lines.append(f"  - {item.get('name')} x{item.get('quantity')} ({order.currency} {price:.2f})")
    return "\n".join(lines)


def send_order_confirmation(order):
    customer = order.customer_json or {}
    name = customer.get("first_name") or customer.get("email") or "customer"
    body = (
        f"Hi {name},\n\n"
        f"Thanks for your purchase. Your order {order.public_id} has been received.\n\n"
        f"{_item_lines(order)}\n\n"
        f"Total: {order.currency} {float(order.total):.2f}\n\n"
        "We will let you know when it ships."
    )
    return send_email(customer.get("email"), f"Order {order.public_id} confirmed", body)


def send_status_update(order):
    customer = order.customer_json or {}
    label = STATUS_LABELS.get(order.status, order.status.lower())
    body = f"Your order {order.public_id} is now {label}."
    if order.tracking_number:
        body += f"\nTracking number: {order.tracking_number}"
    return send_email(customer.get("email"), f"Order {order.public_id} update", body)
