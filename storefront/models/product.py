from sqlalchemy.orm import validates

from storefront.extensions import db
from storefront.core.validators import normalize_ingredients
from ._helpers import utcnow, isoformat, money

# JSON key -> column attribute, in display order
FEATURE_FLAGS = {
    "organic": "organic",
    "bpaFree": "bpa_free",
    "phthalateFree": "phthalate_free",
    "parabenFree": "paraben_free",
    "oxybenzoneFree": "oxybenzone_free",
    "formaldehydeFree": "formaldehyde_free",
    "sulfatesFree": "sulfates_free",
    "fdcFree": "fdc_free",
}


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    image = db.Column(db.String(500), nullable=False)

    organic = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    bpa_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    phthalate_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    paraben_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    oxybenzone_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    formaldehyde_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    sulfates_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    fdc_free = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())

    why_recommend = db.Column(db.Text, nullable=False)
    # Always a JSON array of strings; normalized before it reaches the column
    ingredients = db.Column(db.JSON, nullable=False, default=list)
    affiliate_link = db.Column(db.String(1000), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @validates("ingredients")
    def _normalize_ingredients(self, key, value):
        return normalize_ingredients(value)

    def features(self) -> dict:
        return {key: bool(getattr(self, attr)) for key, attr in FEATURE_FLAGS.items()}

    def to_dict(self, category=None):
        """Serialize with the resolved category (or None) attached."""
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money(self.price),
            "categoryId": self.category_id,
            "category": category.to_dict() if category is not None else None,
            "image": self.image,
            "whyRecommend": self.why_recommend,
            "ingredients": normalize_ingredients(self.ingredients),
            "affiliateLink": self.affiliate_link,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        data.update(self.features())
        return data

    def __repr__(self):
        return f"<Product {self.id} {self.name}>"


class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(1000), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "url": self.url,
            "price": money(self.price),
        }
