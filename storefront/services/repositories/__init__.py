"""Catalog repositories over the Supabase tables."""
from .base import BaseRepository
from .product_repo import ProductRepository

__all__ = ["BaseRepository", "ProductRepository"]
