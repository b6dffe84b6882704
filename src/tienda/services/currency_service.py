from __future__ import annotations

import logging
import math
import sqlite3

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import StoreError, ValidationError
from tienda.domain.models import ExchangeRate

log = logging.getLogger("tienda.fx")

DISPLAY_CURRENCY_KEY = "display_currency"

# Used when the store can not be read, so prices still render.
FALLBACK_RATES = (
    ExchangeRate(currency=BASE_CURRENCY, name="Dólar", symbol="$", rate=1.0),
    ExchangeRate(currency="COP", name="Peso Colombiano", symbol="$", rate=4150.0),
    ExchangeRate(currency="VES", name="Bolívar", symbol="Bs.", rate=52.0),
)


def _group_es(value: float, decimals: int) -> str:
    """Format with `.` thousands and `,` decimals, as es-CO does."""
    raw = f"{value:,.{decimals}f}"
    return raw.replace(",", "_").replace(".", ",").replace("_", ".")


class CurrencyService:
    """Holds the loaded exchange rates and the selected display currency.

    Rates only change in memory on an explicit `refresh()`.
    """

    def __init__(self, repo):
        self.repo = repo
        self.rates: list[ExchangeRate] = []
        self.degraded = False
        self._display = BASE_CURRENCY

    def refresh(self) -> list[ExchangeRate]:
        try:
            rates = self.repo.list_exchange_rates(active_only=True)
            self.degraded = False
        except (StoreError, sqlite3.Error) as e:
            log.error("fx_rates_load_failed error=%s", e)
            rates = list(FALLBACK_RATES)
            self.degraded = True
        self.rates = rates

        try:
            stored = self.repo.get_setting(DISPLAY_CURRENCY_KEY)
        except (StoreError, sqlite3.Error) as e:
            log.error("display_currency_load_failed error=%s", e)
            stored = None
        if stored:
            self._display = stored
        return self.rates

    @property
    def display_currency(self) -> str:
        return self._display

    def set_display_currency(self, currency: str) -> None:
        code = (currency or "").strip().upper()
        if self.get_rate(code) is None:
            raise ValidationError(f"Unknown currency: {currency}")
        self._display = code
        self.repo.set_setting(DISPLAY_CURRENCY_KEY, code)
        log.info("display_currency_set currency=%s", code)

    def get_rate(self, currency: str) -> ExchangeRate | None:
        for r in self.rates:
            if r.currency == currency:
                return r
        return None

    def rate_for(self, currency: str) -> float:
        r = self.get_rate(currency)
        return float(r.rate) if r else 1.0

    def currencies(self) -> list[str]:
        return [r.currency for r in self.rates]

    def snapshot_rates(self) -> dict[str, float]:
        """Rates of every non-base currency, as stored on a new sale."""
        return {r.currency: float(r.rate) for r in self.rates if r.currency != BASE_CURRENCY}

    def convert(self, amount_in_base: float, currency: str | None = None) -> float:
        r = self.get_rate(currency or self._display)
        if r is None:
            return amount_in_base
        return amount_in_base * r.rate

    def to_base(self, amount: float, currency: str) -> float:
        if currency == BASE_CURRENCY:
            return amount
        r = self.get_rate(currency)
        if r is None:
            return amount
        return amount / r.rate

    def format(self, amount_in_base: float, currency: str | None = None) -> str:
        code = currency or self._display
        r = self.get_rate(code)
        if r is None:
            return f"${amount_in_base:,.2f}"
        decimals = 2 if code == BASE_CURRENCY else 0
        return f"{r.symbol} {_group_es(self.convert(amount_in_base, code), decimals)}"

    def update_rates(self, edits: dict[str, object]) -> int:
        """Persist edited rates; returns how many changed.

        Every edit is validated before any is written, so a bad entry saves nothing.
        """
        updates: list[tuple[ExchangeRate, float]] = []
        for r in list(self.rates):
            if r.currency == BASE_CURRENCY or r.currency not in edits:
                continue
            raw = edits[r.currency]
            if str(raw).strip() == "":
                continue
            try:
                new_rate = float(str(raw).strip())
            except ValueError:
                raise ValidationError(f"Rate for {r.currency} must be a number.")
            if not math.isfinite(new_rate) or new_rate <= 0:
                raise ValidationError(f"Rate for {r.currency} must be a positive number.")
            if new_rate != r.rate:
                updates.append((r, new_rate))

        try:
            for r, new_rate in updates:
                self.repo.update_exchange_rate(r.currency, new_rate)
                log.info("fx_rate_updated currency=%s old=%.4f new=%.4f", r.currency, r.rate, new_rate)
        finally:
            self.refresh()
        return len(updates)
