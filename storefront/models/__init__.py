"""
Database models.

Import models from here so they can be referenced as:
    from storefront.models import Product
"""
from .user import User, ROLES
from .category import Category
from .product import Product, Vendor, FEATURE_FLAGS
from .blog import BlogPost, BlogPostCategory

__all__ = [
    "User",
    "ROLES",
    "Category",
    "Product",
    "Vendor",
    "FEATURE_FLAGS",
    "BlogPost",
    "BlogPostCategory",
]
