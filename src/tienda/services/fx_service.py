from __future__ import annotations

import logging

import requests

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import FxUnavailableError

log = logging.getLogger("tienda.fx")

DEFAULT_FX_API_URL = "https://api.exchangerate-api.com/v4/latest/USD"


class FxService:
    """Looks up today's USD-based rates from a public API.

    Results only pre-fill the rate editor; nothing here writes to the store.
    """

    def __init__(self, api_url: str = DEFAULT_FX_API_URL, timeout: float = 10):
        self.api_url = api_url
        self.timeout = timeout

    def _fetch_json(self, url: str) -> dict:
        r = requests.get(url, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def _validate_rate(self, value: object) -> float:
        rate = float(value)
        if rate <= 0:
            raise FxUnavailableError(f"FX rate must be > 0. Received: {rate}")
        return rate

    def fetch_latest(self) -> dict[str, float]:
        try:
            data = self._fetch_json(self.api_url)
        except (requests.RequestException, ValueError) as e:
            log.warning("fx_source_failed url=%s error=%s", self.api_url, e)
            raise FxUnavailableError(f"FX lookup failed: {e}") from e

        # {"base":"USD","date":"YYYY-MM-DD","rates":{"COP":4150.3, ...}}
        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise FxUnavailableError(f"FX API response missing rates. Raw: {data}")

        out: dict[str, float] = {}
        for code, value in rates.items():
            try:
                out[str(code).upper()] = self._validate_rate(value)
            except (TypeError, ValueError, FxUnavailableError) as e:
                log.warning("fx_rate_skipped currency=%s error=%s", code, e)
        log.info("fx_fetched url=%s currencies=%s", self.api_url, len(out))
        return out

    def suggest_rates(self, current: dict[str, str]) -> dict[str, str]:
        """Return `current` with every non-base currency the API knows replaced by its live rate."""
        latest = self.fetch_latest()
        suggested = dict(current)
        for code in current:
            if code == BASE_CURRENCY:
                continue
            if code in latest:
                suggested[code] = f"{latest[code]:.2f}"
        return suggested
