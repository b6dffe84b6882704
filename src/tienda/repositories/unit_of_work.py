from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_sale(self, customer_name: str, notes: Optional[str], currency: str, rates: dict[str, float], items: Iterable[dict]) -> int: ...
    def add_payment(self, sale_id: int, amount: float, currency: str, rate: float, amount_in_base: float, method: str, reference: Optional[str]) -> int: ...


@dataclass
class RepositoryUnitOfWork:
    """Unit of Work adapter for write use-cases.

    The repository wraps checkout in a single SQL transaction; this class only
    stamps the write time so services stay persistence-agnostic.
    """

    repo: object

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    @staticmethod
    def _now() -> str:
        return datetime.now().replace(microsecond=0).isoformat(sep=" ")

    def create_sale(
        self,
        customer_name: str,
        notes: Optional[str],
        currency: str,
        rates: dict[str, float],
        items: Iterable[dict],
    ) -> int:
        return int(
            self.repo.create_sale(
                created_at=self._now(),
                customer_name=customer_name,
                notes=notes,
                currency=currency,
                rates=rates,
                items=list(items),
            )
        )

    def add_payment(
        self,
        sale_id: int,
        amount: float,
        currency: str,
        rate: float,
        amount_in_base: float,
        method: str,
        reference: Optional[str],
    ) -> int:
        return int(
            self.repo.add_payment(
                sale_id=sale_id,
                amount=amount,
                currency=currency,
                rate=rate,
                amount_in_base=amount_in_base,
                method=method,
                reference=reference,
                created_at=self._now(),
            )
        )
