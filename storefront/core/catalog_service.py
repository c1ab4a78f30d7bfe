"""Catalog operations: product listing, retrieval, suggestions and mutation.

Products are always returned as enriched dicts (category attached,
ingredients normalized). Every mutation re-reads the product afterwards so
callers see what was actually stored.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, or_

from storefront.extensions import db
from storefront.models import Product, FEATURE_FLAGS
from storefront.core import validators
from storefront.core.exceptions import ConflictError
from storefront.core.storage import catalog as store

logger = logging.getLogger(__name__)

SORT_KEYS = ("newest", "price-asc", "price-desc")
DEFAULT_PAGE_SIZE = 12

# JSON key -> column attribute for the non-flag fields
_PRODUCT_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "categoryId": "category_id",
    "image": "image",
    "whyRecommend": "why_recommend",
    "ingredients": "ingredients",
    "affiliateLink": "affiliate_link",
}
_REQUIRED_ON_CREATE = ("name", "description", "price", "image", "whyRecommend")


@dataclass
class ProductQuery:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    category_slugs: list[str] = field(default_factory=list)
    features: list[str] = field(default_factory=list)
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    search: Optional[str] = None
    sort: str = "newest"

    @classmethod
    def from_args(cls, args) -> "ProductQuery":
        """Build from request query args (a werkzeug MultiDict).

        Raises:
            ValueError: If a parameter is malformed
        """
        slugs = []
        for raw in args.getlist("category"):
            slugs.extend(part.strip() for part in raw.split(",") if part.strip())

        features = [
            attr for key, attr in FEATURE_FLAGS.items()
            if key in args and validators.coerce_bool(args.get(key), key)
        ]

        sort = args.get("sort") or "newest"
        if sort not in SORT_KEYS:
            raise ValueError(f"sort must be one of: {', '.join(SORT_KEYS)}")

        min_price = args.get("minPrice")
        max_price = args.get("maxPrice")
        return cls(
            page=validators.parse_page(args.get("page")),
            limit=validators.parse_limit(args.get("limit"), DEFAULT_PAGE_SIZE),
            category_slugs=slugs,
            features=features,
            min_price=validators.parse_price(min_price, "minPrice") if min_price not in (None, "") else None,
            max_price=validators.parse_price(max_price, "maxPrice") if max_price not in (None, "") else None,
            search=(args.get("search") or "").strip() or None,
            sort=sort,
        )


def _enrich(products: list[Product]) -> list[dict]:
    categories = store.get_categories(product.category_id for product in products)
    return [product.to_dict(categories.get(product.category_id)) for product in products]


def _order_by(sort: str):
    if sort == "price-asc":
        return (Product.price.asc(), Product.id.asc())
    if sort == "price-desc":
        return (Product.price.desc(), Product.id.desc())
    return (Product.created_at.desc(), Product.id.desc())


def list_products(query: ProductQuery) -> tuple[list[dict], int]:
    """Return one page of matching products and the total match count."""
    conditions = []

    if query.category_slugs:
        category_ids = store.category_ids_for_slugs(query.category_slugs)
        if not category_ids:
            return [], 0
        conditions.append(Product.category_id.in_(category_ids))

    for attr in query.features:
        conditions.append(getattr(Product, attr).is_(True))

    if query.min_price is not None:
        conditions.append(Product.price >= query.min_price)
    if query.max_price is not None:
        conditions.append(Product.price <= query.max_price)

    if query.search:
        conditions.append(or_(
            Product.name.icontains(query.search, autoescape=True),
            Product.description.icontains(query.search, autoescape=True),
        ))

    total = db.session.execute(
        select(func.count()).select_from(Product).where(*conditions)
    ).scalar_one()

    rows = db.session.execute(
        select(Product)
        .where(*conditions)
        .order_by(*_order_by(query.sort))
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).scalars().all()

    return _enrich(list(rows)), total


def get_product(product_id: int, include_vendors: bool = True) -> Optional[dict]:
    product = store.get_product(product_id)
    if product is None:
        return None
    data = product.to_dict(store.get_category(product.category_id))
    if include_vendors:
        data["vendors"] = [vendor.to_dict() for vendor in store.list_vendors(product.id)]
    return data


def featured_products(limit: int = 4) -> list[dict]:
    rows = db.session.execute(
        select(Product).order_by(Product.created_at.desc(), Product.id.desc()).limit(limit)
    ).scalars().all()
    return _enrich(list(rows))


def related_products(product_id: int, limit: int = 4) -> Optional[list[dict]]:
    """Products sharing the category, backfilled with the newest from elsewhere.

    Returns None when the product does not exist.
    """
    product = store.get_product(product_id)
    if product is None:
        return None

    newest = (Product.created_at.desc(), Product.id.desc())

    if product.category_id is None:
        rows = db.session.execute(
            select(Product).where(Product.id != product.id).order_by(*newest).limit(limit)
        ).scalars().all()
        return _enrich(list(rows))

    related = list(db.session.execute(
        select(Product)
        .where(Product.category_id == product.category_id, Product.id != product.id)
        .order_by(*newest)
        .limit(limit)
    ).scalars())

    if len(related) < limit:
        backfill = db.session.execute(
            select(Product)
            .where(
                or_(Product.category_id != product.category_id, Product.category_id.is_(None)),
                Product.id != product.id,
            )
            .order_by(*newest)
            .limit(limit - len(related))
        ).scalars()
        related.extend(backfill)

    return _enrich(related)


def parse_product_payload(data: dict, partial: bool = False) -> dict:
    """Translate a JSON body into column values.

    Only keys present in ``data`` are returned when ``partial`` is set, so an
    omitted field (feature flags included) is never overwritten.

    Raises:
        ValueError: If a field is missing or malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")

    if not partial:
        missing = [key for key in _REQUIRED_ON_CREATE if data.get(key) in (None, "")]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

    fields = {}
    for key, attr in _PRODUCT_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if attr == "price":
            fields[attr] = validators.parse_price(value)
        elif attr == "category_id":
            fields[attr] = validators.parse_optional_int(value, "categoryId")
        elif attr == "ingredients":
            fields[attr] = validators.normalize_ingredients(value)
        elif attr == "affiliate_link":
            fields[attr] = validators.optional_text(value, "affiliateLink", 1000)
        elif attr == "name":
            fields[attr] = validators.require_text(value, "name", 255)
        elif attr == "image":
            fields[attr] = validators.require_text(value, "image", 500)
        else:
            fields[attr] = validators.require_text(value, key)

    for key, attr in FEATURE_FLAGS.items():
        if key in data:
            fields[attr] = validators.coerce_bool(data[key], key)

    if fields.get("category_id") is not None and store.get_category(fields["category_id"]) is None:
        raise ValueError("categoryId does not reference an existing category")

    return fields


def create_product(data: dict) -> dict:
    fields = parse_product_payload(data)
    product = store.insert_product(**fields)
    logger.info("Created product %s (%s)", product.id, product.name)
    return get_product(product.id)


def update_product(product_id: int, data: dict) -> Optional[dict]:
    """Partial update. Returns the re-read product, or None when it does not exist."""
    fields = parse_product_payload(data, partial=True)
    if not store.update_product(product_id, **fields):
        return None
    logger.info("Updated product %s (%s)", product_id, ", ".join(sorted(fields)) or "no fields")
    return get_product(product_id)


def delete_product(product_id: int) -> bool:
    deleted = store.delete_product(product_id)
    if deleted:
        logger.info("Deleted product %s", product_id)
    return deleted


# ─────────────────────────────────────────────────────────────────────────────
# Categories (shared with the blog)
# ─────────────────────────────────────────────────────────────────────────────
def _check_category_unique(name: str, slug: str, category_id: Optional[int] = None) -> None:
    for existing in (store.get_category_by_name(name), store.get_category_by_slug(slug)):
        if existing is not None and existing.id != category_id:
            raise ConflictError("A category with this name or slug already exists")


def create_category(data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    name = validators.require_text(data.get("name"), "name", 120)
    slug = validators.normalize_slug(data.get("slug"), name)
    _check_category_unique(name, slug)
    return store.insert_category(name, slug).to_dict()


def update_category(category_id: int, data: dict) -> Optional[dict]:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    category = store.get_category(category_id)
    if category is None:
        return None
    name = validators.require_text(data["name"], "name", 120) if "name" in data else category.name
    slug = validators.normalize_slug(data["slug"], name) if "slug" in data else category.slug
    _check_category_unique(name, slug, category_id)
    store.update_category(category_id, name=name, slug=slug)
    return store.get_category(category_id).to_dict()


def delete_category(category_id: int) -> bool:
    """Remove the category; products keep existing with no category."""
    deleted = store.delete_category(category_id)
    if deleted:
        logger.info("Deleted category %s", category_id)
    return deleted


def list_categories() -> list[dict]:
    return [category.to_dict() for category in store.list_categories()]


# ─────────────────────────────────────────────────────────────────────────────
# Vendors
# ─────────────────────────────────────────────────────────────────────────────
def _parse_vendor_payload(data: dict, partial: bool = False) -> dict:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    fields = {}
    if "productId" in data or not partial:
        product_id = validators.parse_optional_int(data.get("productId"), "productId")
        if product_id is None or store.get_product(product_id) is None:
            raise ValueError("productId does not reference an existing product")
        fields["product_id"] = product_id
    if "name" in data or not partial:
        fields["name"] = validators.require_text(data.get("name"), "name", 255)
    if "url" in data or not partial:
        fields["url"] = validators.require_text(data.get("url"), "url", 1000)
    if "price" in data or not partial:
        fields["price"] = validators.parse_price(data.get("price"))
    return fields


def create_vendor(data: dict) -> dict:
    return store.insert_vendor(**_parse_vendor_payload(data)).to_dict()


def update_vendor(vendor_id: int, data: dict) -> Optional[dict]:
    fields = _parse_vendor_payload(data, partial=True)
    if not store.update_vendor(vendor_id, **fields):
        return None
    return store.get_vendor(vendor_id).to_dict()


def delete_vendor(vendor_id: int) -> bool:
    return store.delete_vendor(vendor_id)


def list_vendors(product_id: int) -> Optional[list[dict]]:
    if store.get_product(product_id) is None:
        return None
    return [vendor.to_dict() for vendor in store.list_vendors(product_id)]
