from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional


SALE_PENDING = "pending"
SALE_PARTIAL = "partial"
SALE_PAID = "paid"

PAYMENT_METHODS = ("efectivo", "transferencia", "tarjeta", "pago_movil", "zelle", "otro")


# Half a cent; money amounts are compared to the cent.
CENT_TOLERANCE = 0.005


def settlement_status(total: float, total_paid: float) -> str:
    if total_paid <= 0:
        return SALE_PENDING
    if total_paid >= total - CENT_TOLERANCE:
        return SALE_PAID
    return SALE_PARTIAL


@dataclass(frozen=True)
class ExchangeRate:
    currency: str
    name: str
    symbol: str
    rate: float
    active: int = 1
    updated_at: str = ""


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: Optional[str]
    created_at: str


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: Optional[str]
    price: float
    stock: int
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    created_at: str = ""
    category: Optional[Category] = None


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    created_at: str


@dataclass(frozen=True)
class SaleLineItem:
    id: int
    sale_id: int
    product_id: Optional[int]
    product_name: str
    quantity: int
    unit_price: float

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Payment:
    id: int
    sale_id: int
    amount: float
    currency: str
    rate: float
    amount_in_base: float
    method: str
    reference: Optional[str]
    created_at: str


@dataclass(frozen=True)
class Sale:
    id: int
    customer_name: str
    total: float
    notes: Optional[str]
    currency: str
    rates: dict[str, float]
    total_paid: float
    created_at: str
    items: tuple[SaleLineItem, ...] = field(default_factory=tuple)
    payments: tuple[Payment, ...] = field(default_factory=tuple)

    @property
    def status(self) -> str:
        return settlement_status(self.total, self.total_paid)

    @property
    def remaining(self) -> float:
        rest = self.total - self.total_paid
        return rest if rest > CENT_TOLERANCE else 0.0


@dataclass(frozen=True)
class CustomerStats:
    id: int
    name: str
    created_at: str
    purchases: int
    invoiced: float
    paid: float
    pending: float
    has_debt: bool
    last_purchase: Optional[str]


def customer_key(name: str) -> str:
    """Identity of a customer name: trimmed and lowercased."""
    return (name or "").strip().lower()
