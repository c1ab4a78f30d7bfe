from __future__ import annotations
from typing import Iterable, Optional

from sqlalchemy import select, update, delete

from storefront.extensions import db
from storefront.models import Category, Product, Vendor, BlogPostCategory
from storefront.models._helpers import utcnow


# ─────────────────────────────────────────────────────────────────────────────
# Categories
# ─────────────────────────────────────────────────────────────────────────────
def list_categories() -> list[Category]:
    return list(db.session.execute(select(Category).order_by(Category.name)).scalars())


def get_category(category_id) -> Optional[Category]:
    if category_id is None:
        return None
    return db.session.get(Category, category_id)


def get_category_by_slug(slug: str) -> Optional[Category]:
    return db.session.execute(select(Category).where(Category.slug == slug)).scalar_one_or_none()


def get_category_by_name(name: str) -> Optional[Category]:
    return db.session.execute(select(Category).where(Category.name == name)).scalar_one_or_none()


def get_categories(category_ids: Iterable[int]) -> dict[int, Category]:
    ids = {cid for cid in category_ids if cid is not None}
    if not ids:
        return {}
    rows = db.session.execute(select(Category).where(Category.id.in_(ids))).scalars()
    return {category.id: category for category in rows}


def category_ids_for_slugs(slugs: Iterable[str]) -> list[int]:
    slugs = [slug for slug in slugs if slug]
    if not slugs:
        return []
    return list(db.session.execute(select(Category.id).where(Category.slug.in_(slugs))).scalars())


def insert_category(name: str, slug: str) -> Category:
    category = Category(name=name, slug=slug)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category_id: int, **fields) -> bool:
    if not fields:
        return get_category(category_id) is not None
    result = db.session.execute(update(Category).where(Category.id == category_id).values(**fields))
    db.session.commit()
    return result.rowcount > 0


def delete_category(category_id: int) -> bool:
    """Detach products and blog posts, then remove the category, in one transaction."""
    db.session.execute(
        update(Product).where(Product.category_id == category_id).values(category_id=None, updated_at=utcnow())
    )
    db.session.execute(delete(BlogPostCategory).where(BlogPostCategory.category_id == category_id))
    result = db.session.execute(delete(Category).where(Category.id == category_id))
    db.session.commit()
    return result.rowcount > 0


# ─────────────────────────────────────────────────────────────────────────────
# Products
# ─────────────────────────────────────────────────────────────────────────────
def get_product(product_id) -> Optional[Product]:
    if product_id is None:
        return None
    return db.session.get(Product, product_id)


def insert_product(**fields) -> Product:
    product = Product(**fields)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, **fields) -> bool:
    """Partial update as a single UPDATE statement (``updated_at`` included)."""
    fields["updated_at"] = utcnow()
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(**fields)
    )
    db.session.commit()
    return result.rowcount > 0


def delete_product(product_id: int) -> bool:
    db.session.execute(delete(Vendor).where(Vendor.product_id == product_id))
    result = db.session.execute(delete(Product).where(Product.id == product_id))
    db.session.commit()
    return result.rowcount > 0


# ─────────────────────────────────────────────────────────────────────────────
# Vendors
# ─────────────────────────────────────────────────────────────────────────────
def list_vendors(product_id: int) -> list[Vendor]:
    return list(
        db.session.execute(
            select(Vendor).where(Vendor.product_id == product_id).order_by(Vendor.price, Vendor.id)
        ).scalars()
    )


def get_vendor(vendor_id) -> Optional[Vendor]:
    return db.session.get(Vendor, vendor_id)


def insert_vendor(**fields) -> Vendor:
    vendor = Vendor(**fields)
    db.session.add(vendor)
    db.session.commit()
    return vendor


def update_vendor(vendor_id: int, **fields) -> bool:
    if not fields:
        return get_vendor(vendor_id) is not None
    result = db.session.execute(update(Vendor).where(Vendor.id == vendor_id).values(**fields))
    db.session.commit()
    return result.rowcount > 0


def delete_vendor(vendor_id: int) -> bool:
    result = db.session.execute(delete(Vendor).where(Vendor.id == vendor_id))
    db.session.commit()
    return result.rowcount > 0
