from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import NotFoundError, ValidationError
from tienda.domain.models import PAYMENT_METHODS, Payment, Sale
from tienda.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("tienda.payments")


def _parse_amount(raw: object) -> float:
    try:
        amount = float(str(raw).strip())
    except ValueError:
        raise ValidationError("Amount must be a number.")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Amount must be > 0.")
    return amount


def remaining_balance(sale: Sale) -> float:
    return sale.remaining


class PaymentService:
    """Append-only payment ledger. A sale's paid total and status are derived from it on read."""

    def __init__(
        self,
        repo,
        currency_service,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.currency = currency_service
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    def record_payment(
        self,
        sale_id: int,
        amount: object,
        currency: str,
        method: str = "efectivo",
        reference: Optional[str] = None,
    ) -> int:
        value = _parse_amount(amount)
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {method}")
        if self.repo.get_sale(int(sale_id)) is None:
            raise NotFoundError("Sale not found.")

        rate = self.currency.rate_for(currency)
        in_base = value if currency == BASE_CURRENCY else value / rate
        reference = (reference or "").strip() or None

        with self.uow_factory() as uow:
            payment_id = uow.add_payment(int(sale_id), value, currency, rate, in_base, method, reference)
        log.info(
            "payment_recorded payment_id=%s sale_id=%s amount=%.2f currency=%s rate=%.4f in_base=%.2f method=%s",
            payment_id, sale_id, value, currency, rate, in_base, method,
        )
        return payment_id

    def list_payments(self, sale_id: int) -> list[Payment]:
        return self.repo.payments_for_sale(sale_id)

    def remaining_balance(self, sale: Sale) -> float:
        return remaining_balance(sale)

    def pay_rest_amount(self, sale: Sale, currency: str) -> float:
        """Outstanding balance expressed in `currency` at today's rate, not the sale's stored one."""
        rest = remaining_balance(sale)
        if currency == BASE_CURRENCY:
            return round(rest, 2)
        return round(rest * self.currency.rate_for(currency), 2)

    def preview_in_base(self, amount: object, currency: str) -> float:
        value = _parse_amount(amount)
        if currency == BASE_CURRENCY:
            return value
        return value / self.currency.rate_for(currency)
