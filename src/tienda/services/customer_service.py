from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tienda.domain.errors import ValidationError
from tienda.domain.models import CENT_TOLERANCE, Customer, CustomerStats, Sale, customer_key
from tienda.services.pagination import Page, paginate

CUSTOMERS_PER_PAGE = 15


@dataclass(frozen=True)
class CustomerSummary:
    customers: int
    sales: int
    invoiced: float
    collected: float
    pending: float
    with_debt: int


@dataclass
class _Acc:
    purchases: int = 0
    invoiced: float = 0.0
    paid: float = 0.0
    last_purchase: str | None = None


def aggregate_customers(customers: Iterable[Customer], sales: Iterable[Sale]) -> list[CustomerStats]:
    """Join customers with their sales totals, debtors first.

    Sales are sorted newest first here, so the first sale seen per customer
    is the most recent one whatever order the caller passes.
    """
    ordered = sorted(sales, key=lambda s: (s.created_at, s.id), reverse=True)

    by_name: dict[str, _Acc] = {}
    for s in ordered:
        acc = by_name.setdefault(customer_key(s.customer_name), _Acc())
        acc.purchases += 1
        acc.invoiced += float(s.total)
        acc.paid += float(s.total_paid)
        if acc.last_purchase is None:
            acc.last_purchase = s.created_at

    rows: list[CustomerStats] = []
    for c in customers:
        acc = by_name.get(customer_key(c.name), _Acc())
        pending = round(acc.invoiced - acc.paid, 2)
        rows.append(
            CustomerStats(
                id=c.id,
                name=c.name,
                created_at=c.created_at,
                purchases=acc.purchases,
                invoiced=acc.invoiced,
                paid=acc.paid,
                pending=pending,
                has_debt=pending > CENT_TOLERANCE,
                last_purchase=acc.last_purchase,
            )
        )

    # debtors first, then by pending debt, then by invoiced; ties keep store order
    return sorted(rows, key=lambda r: (not r.has_debt, -r.pending, -r.invoiced))


class CustomerService:
    def __init__(self, repo):
        self.repo = repo

    def list_customers(self) -> list[Customer]:
        return self.repo.list_customers()

    def ensure_customer(self, name: str) -> Customer:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Customer name is required.")
        return self.repo.upsert_customer(clean)

    def exists(self, name: str, customers: list[Customer] | None = None) -> bool:
        key = customer_key(name)
        rows = customers if customers is not None else self.repo.list_customers()
        return any(customer_key(c.name) == key for c in rows)

    def suggest(self, term: str, customers: list[Customer] | None = None) -> list[Customer]:
        rows = customers if customers is not None else self.repo.list_customers()
        needle = term.strip().lower()
        if not needle:
            return list(rows)
        return [c for c in rows if needle in c.name.lower()]

    def customers_with_stats(self) -> list[CustomerStats]:
        return aggregate_customers(self.repo.list_customers(), self.repo.list_sales())

    def search(self, rows: list[CustomerStats], term: str) -> list[CustomerStats]:
        needle = term.strip().lower()
        if not needle:
            return rows
        return [r for r in rows if needle in r.name.lower()]

    def paginate(self, rows: list[CustomerStats], page: int, per_page: int = CUSTOMERS_PER_PAGE) -> Page[CustomerStats]:
        return paginate(rows, page, per_page)

    def summary(self, rows: list[CustomerStats]) -> CustomerSummary:
        return CustomerSummary(
            customers=len(rows),
            sales=sum(r.purchases for r in rows),
            invoiced=sum(r.invoiced for r in rows),
            collected=sum(r.paid for r in rows),
            pending=sum(r.pending for r in rows),
            with_debt=sum(1 for r in rows if r.has_debt),
        )
