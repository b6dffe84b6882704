from __future__ import annotations

import logging
from typing import Optional

from tienda.domain.errors import NotFoundError, ValidationError
from tienda.domain.models import Product

log = logging.getLogger("tienda.inventory")

AVAILABILITY = ("all", "available", "sold_out")


def _clean_fields(name: str, description: Optional[str], price: float, stock: int) -> tuple[str, Optional[str], float, int]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required.")
    try:
        price = float(price)
        stock = int(stock)
    except (TypeError, ValueError):
        raise ValidationError("Price and stock must be numbers.")
    if price < 0:
        raise ValidationError("Price must be >= 0.")
    if stock < 0:
        raise ValidationError("Stock must be >= 0.")
    description = (description or "").strip() or None
    return name, description, price, stock


class InventoryService:
    def __init__(self, repo, image_service=None):
        self.repo = repo
        self.images = image_service

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def get_product(self, product_id: int) -> Product:
        p = self.repo.get_product_by_id(int(product_id))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def _check_category(self, category_id: Optional[int]) -> Optional[int]:
        if category_id is None:
            return None
        if not self.repo.get_category(int(category_id)):
            raise NotFoundError("Category not found.")
        return int(category_id)

    def add_product(
        self,
        name: str,
        description: Optional[str],
        price: float,
        stock: int,
        category_id: Optional[int] = None,
        image_url: Optional[str] = None,
    ) -> int:
        name, description, price, stock = _clean_fields(name, description, price, stock)
        category_id = self._check_category(category_id)
        pid = self.repo.add_product(name, description, price, stock, category_id, image_url)
        log.info("product_added product_id=%s name=%s price=%.2f stock=%s", pid, name, price, stock)
        return pid

    def update_product(
        self,
        product_id: int,
        name: str,
        description: Optional[str],
        price: float,
        stock: int,
        category_id: Optional[int] = None,
        image_url: Optional[str] = None,
    ) -> None:
        name, description, price, stock = _clean_fields(name, description, price, stock)
        category_id = self._check_category(category_id)
        current = self.get_product(product_id)

        updated = self.repo.update_product(int(product_id), name, description, price, stock, category_id, image_url)
        if not updated:
            raise NotFoundError("Product not found.")
        if self.images and current.image_url and current.image_url != image_url:
            self.images.remove(current.image_url)
        log.info("product_updated product_id=%s price=%.2f stock=%s", product_id, price, stock)

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        if not self.repo.delete_product(int(product_id)):
            raise NotFoundError("Product not found.")
        if self.images and product.image_url:
            self.images.remove(product.image_url)
        log.info("product_deleted product_id=%s", product_id)

    def search_products(self, term: str, limit: int = 8) -> list[Product]:
        needle = (term or "").strip().lower()
        if not needle:
            return []
        hits = [
            p for p in self.repo.list_products()
            if needle in p.name.lower() or needle in (p.description or "").lower()
        ]
        return hits[:limit]

    def filter_products(
        self,
        products: list[Product],
        category_id: Optional[int] = None,
        availability: str = "all",
    ) -> list[Product]:
        """Narrow by category; `availability` only reorders, matching rows first."""
        if availability not in AVAILABILITY:
            raise ValidationError(f"Unknown availability filter: {availability}")
        out = [p for p in products if category_id is None or p.category_id == category_id]
        if availability == "available":
            out = sorted(out, key=lambda p: p.stock <= 0)
        elif availability == "sold_out":
            out = sorted(out, key=lambda p: p.stock > 0)
        return out

    def low_stock(self, threshold: int = 5, limit: int = 5) -> list[Product]:
        return self.repo.list_low_stock(threshold, limit)
