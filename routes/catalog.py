from flask import Blueprint, jsonify, request

from models import db
from models.product import Product

catalog_bp = Blueprint("catalog", __name__, url_prefix="/products")


@catalog_bp.get("")
def list_products():
    category = (request.args.get("category") or "").strip()
    q = Product.query.filter_by(is_active=True)
    if category:
        q = q.filter(Product.category == category)
    products = q.order_by(Product.name.asc()).all()
    return jsonify([p.to_dict() for p in products]), 200


@catalog_bp.get("/categories")
def list_categories():
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return jsonify([r[0] for r in rows]), 200


@catalog_bp.get("/<int:product_id>")
def get_product(product_id: int):
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return jsonify(error="Product not found"), 404
    return jsonify(product.to_dict()), 200
