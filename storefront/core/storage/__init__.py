"""Persistence gateway.

Typed data-access primitives per entity, with no business rules. Lookups
return None (or False for writes) when no row matches instead of raising.
Writes commit their own transaction and stamp ``updated_at`` themselves.
"""
from . import users, catalog, blog

__all__ = ["users", "catalog", "blog"]
