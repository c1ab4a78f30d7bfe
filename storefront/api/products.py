"""Catalog routes: products, categories and vendors."""
import logging
import math

from flask import Blueprint, request, jsonify

from storefront.core import catalog_service
from storefront.core import validators
from storefront.api.decorators import require_role, json_body
from storefront.api.errors import ApiError

logger = logging.getLogger(__name__)

bp = Blueprint("products", __name__)


def _product_page():
    query = catalog_service.ProductQuery.from_args(request.args)
    products, total = catalog_service.list_products(query)
    return jsonify({
        "products": products,
        "total": total,
        "pagination": {
            "currentPage": query.page,
            "totalPages": math.ceil(total / query.limit) if total else 0,
            "totalItems": total,
            "itemsPerPage": query.limit,
        },
    })


@bp.route("/api/products", methods=["GET"])
def list_products():
    return _product_page()


@bp.route("/api/products/admin", methods=["GET"])
@require_role("editor")
def admin_list_products():
    return _product_page()


@bp.route("/api/products/featured", methods=["GET"])
def featured_products():
    limit = validators.parse_limit(request.args.get("limit"), 4, maximum=24)
    return jsonify(catalog_service.featured_products(limit))


@bp.route("/api/products/<int:product_id>", methods=["GET"])
def get_product(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        raise ApiError(404, "Product not found")
    return jsonify(product)


@bp.route("/api/products/<int:product_id>/vendors", methods=["GET"])
def product_vendors(product_id: int):
    vendors = catalog_service.list_vendors(product_id)
    if vendors is None:
        raise ApiError(404, "Product not found")
    return jsonify(vendors)


@bp.route("/api/products/related/<int:product_id>", methods=["GET"])
def related_products(product_id: int):
    limit = validators.parse_limit(request.args.get("limit"), 4, maximum=24)
    related = catalog_service.related_products(product_id, limit)
    if related is None:
        raise ApiError(404, "Product not found")
    return jsonify(related)


@bp.route("/api/products", methods=["POST"])
@require_role("editor")
def create_product():
    return jsonify(catalog_service.create_product(json_body())), 201


@bp.route("/api/products/<int:product_id>", methods=["PUT", "PATCH"])
@require_role("editor")
def update_product(product_id: int):
    product = catalog_service.update_product(product_id, json_body())
    if product is None:
        raise ApiError(404, "Product not found")
    return jsonify(product)


@bp.route("/api/products/<int:product_id>", methods=["DELETE"])
@require_role("editor")
def delete_product(product_id: int):
    if not catalog_service.delete_product(product_id):
        raise ApiError(404, "Product not found")
    return jsonify({"message": "Product deleted"})


# ─────────────────────────────────────────────────────────────────────────────
# Categories
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/api/categories", methods=["GET"])
def list_categories():
    return jsonify(catalog_service.list_categories())


@bp.route("/api/categories", methods=["POST"])
@require_role("editor")
def create_category():
    return jsonify(catalog_service.create_category(json_body())), 201


@bp.route("/api/categories/<int:category_id>", methods=["PUT"])
@require_role("editor")
def update_category(category_id: int):
    category = catalog_service.update_category(category_id, json_body())
    if category is None:
        raise ApiError(404, "Category not found")
    return jsonify(category)


@bp.route("/api/categories/<int:category_id>", methods=["DELETE"])
@require_role("editor")
def delete_category(category_id: int):
    if not catalog_service.delete_category(category_id):
        raise ApiError(404, "Category not found")
    return jsonify({"message": "Category deleted"})


# ─────────────────────────────────────────────────────────────────────────────
# Vendors
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/api/vendors", methods=["POST"])
@require_role("editor")
def create_vendor():
    return jsonify(catalog_service.create_vendor(json_body())), 201


@bp.route("/api/vendors/<int:vendor_id>", methods=["PUT"])
@require_role("editor")
def update_vendor(vendor_id: int):
    vendor = catalog_service.update_vendor(vendor_id, json_body())
    if vendor is None:
        raise ApiError(404, "Vendor not found")
    return jsonify(vendor)


@bp.route("/api/vendors/<int:vendor_id>", methods=["DELETE"])
@require_role("editor")
def delete_vendor(vendor_id: int):
    if not catalog_service.delete_vendor(vendor_id):
        raise ApiError(404, "Vendor not found")
    return jsonify({"message": "Vendor deleted"})
