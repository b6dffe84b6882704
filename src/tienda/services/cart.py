from __future__ import annotations

from dataclasses import dataclass

from tienda.domain.errors import InsufficientStockError
from tienda.domain.models import Product


@dataclass
class CartItem:
    product: Product
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.quantity * float(self.product.price)


class Cart:
    """Products picked for the sale being built, one entry per product, in insertion order."""

    def __init__(self):
        self._items: dict[int, CartItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    def quantity_of(self, product_id: int) -> int:
        it = self._items.get(int(product_id))
        return it.quantity if it else 0

    def add(self, product: Product) -> CartItem:
        in_cart = self.quantity_of(product.id)
        new_qty = in_cart + 1
        if new_qty > int(product.stock):
            msg = f"Not enough stock. Only {product.stock} available"
            if in_cart > 0:
                msg += f" ({in_cart} already in cart)"
            raise InsufficientStockError(msg + ".")

        existing = self._items.get(product.id)
        if existing:
            existing.quantity = new_qty
            return existing
        item = CartItem(product=product, quantity=1)
        self._items[product.id] = item
        return item

    def set_quantity(self, product_id: int, quantity: int) -> None:
        if quantity < 1:
            self.remove(product_id)
            return
        item = self._items.get(int(product_id))
        if not item:
            return
        if quantity > int(item.product.stock):
            raise InsufficientStockError(f"Not enough stock. Only {item.product.stock} available.")
        item.quantity = int(quantity)

    def remove(self, product_id: int) -> None:
        self._items.pop(int(product_id), None)

    def clear(self) -> None:
        self._items.clear()

    def total(self) -> float:
        return sum(it.subtotal for it in self._items.values())
