from __future__ import annotations

import logging
from typing import Optional

from tienda.domain.errors import NotFoundError, ValidationError
from tienda.domain.models import Category

log = logging.getLogger("tienda.inventory")


class CategoryService:
    def __init__(self, repo):
        self.repo = repo

    def list_categories(self) -> list[Category]:
        return self.repo.list_categories()

    def add_category(self, name: str, description: Optional[str] = None) -> int:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        cid = self.repo.add_category(name, (description or "").strip() or None)
        log.info("category_added category_id=%s name=%s", cid, name)
        return cid

    def update_category(self, category_id: int, name: str, description: Optional[str] = None) -> None:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        if not self.repo.update_category(int(category_id), name, (description or "").strip() or None):
            raise NotFoundError("Category not found.")

    def delete_category(self, category_id: int) -> None:
        # products in the category stay, with category_id set to NULL by the FK
        if not self.repo.delete_category(int(category_id)):
            raise NotFoundError("Category not found.")
        log.info("category_deleted category_id=%s", category_id)
