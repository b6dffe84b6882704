from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import NotFoundError, ValidationError
from tienda.domain.models import Sale
from tienda.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork
from tienda.services.cart import Cart
from tienda.services.pagination import Page, paginate

log = logging.getLogger("tienda.sales")

SALES_PER_PAGE = 10

DATE_PRESETS = ("all", "today", "week", "month", "year", "custom")


@dataclass(frozen=True)
class SaleFilter:
    customer: str = ""
    product: str = ""
    status: str = "all"
    period: str = "all"
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return bool(self.customer.strip() or self.product.strip() or self.status != "all" or self.period != "all")


def date_range(period: str, today: date, start: Optional[date] = None, end: Optional[date] = None) -> tuple[Optional[datetime], Optional[datetime]]:
    """Half-open [start, end) window for a date preset. Weeks start on Sunday."""
    day0 = datetime.combine(today, datetime.min.time())
    tomorrow = day0 + timedelta(days=1)
    if period == "today":
        return day0, tomorrow
    if period == "week":
        return day0 - timedelta(days=(today.weekday() + 1) % 7), tomorrow
    if period == "month":
        return day0.replace(day=1), tomorrow
    if period == "year":
        return day0.replace(month=1, day=1), tomorrow
    if period == "custom":
        lo = datetime.combine(start, datetime.min.time()) if start else None
        hi = datetime.combine(end, datetime.min.time()) + timedelta(days=1) if end else None
        return lo, hi
    return None, None


class SalesService:
    def __init__(
        self,
        repo,
        currency_service,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.currency = currency_service
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def checkout(self, cart: Cart, customer_name: str, notes: Optional[str] = None) -> int:
        if cart.is_empty:
            raise ValidationError("Cart is empty.")
        name = (customer_name or "").strip()
        if not name:
            raise ValidationError("Customer name is required.")

        items = [
            {
                "product_id": it.product.id,
                "product_name": it.product.name,
                "quantity": it.quantity,
                "unit_price": float(it.product.price),
            }
            for it in cart.items
        ]
        rates = self.currency.snapshot_rates()
        notes = (notes or "").strip() or None

        with self.uow_factory() as uow:
            sale_id = uow.create_sale(name, notes, BASE_CURRENCY, rates, items)
        log.info("sale_created sale_id=%s customer=%s items=%s total=%.2f rates=%s", sale_id, name, len(items), cart.total(), rates)
        cart.clear()
        return sale_id

    def list_sales(self) -> list[Sale]:
        return self.repo.list_sales()

    def recent_sales(self, limit: int = 5) -> list[Sale]:
        return self.repo.list_sales(limit=limit)

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        return self.repo.get_sale(sale_id)

    def delete_sale(self, sale_id: int) -> None:
        if not self.repo.delete_sale(int(sale_id)):
            raise NotFoundError("Sale not found.")
        log.info("sale_deleted sale_id=%s", sale_id)

    def filter_sales(
        self,
        sales: list[Sale],
        flt: SaleFilter,
        product_names: dict[int, list[str]] | None = None,
        today: date | None = None,
    ) -> list[Sale]:
        out = list(sales)

        term = flt.customer.strip().lower()
        if term:
            out = [s for s in out if term in s.customer_name.lower()]

        term = flt.product.strip().lower()
        if term:
            names = product_names if product_names is not None else self.repo.sale_product_names()
            out = [s for s in out if any(term in n for n in names.get(s.id, []))]

        if flt.status != "all":
            out = [s for s in out if s.status == flt.status]

        if flt.period != "all":
            lo, hi = date_range(flt.period, today or date.today(), flt.start, flt.end)
            if lo is not None:
                out = [s for s in out if datetime.fromisoformat(s.created_at) >= lo]
            if hi is not None:
                out = [s for s in out if datetime.fromisoformat(s.created_at) < hi]
        return out

    def paginate(self, sales: list[Sale], page: int, per_page: int = SALES_PER_PAGE) -> Page[Sale]:
        return paginate(sales, page, per_page)
