import pytest
import requests

from tienda.domain.errors import FxUnavailableError
from tienda.services.fx_service import FxService


def test_suggest_rates_replaces_known_non_base_codes():
    fx = FxService()
    fx._fetch_json = lambda _url: {"base": "USD", "rates": {"USD": 1, "COP": 4012.3456, "VES": 36.5, "EUR": 0.9}}  # type: ignore[attr-defined]

    suggested = fx.suggest_rates({"USD": "1", "COP": "4150", "VES": "52"})

    assert suggested == {"USD": "1", "COP": "4012.35", "VES": "36.50"}


def test_suggest_rates_keeps_codes_missing_from_api():
    fx = FxService()
    fx._fetch_json = lambda _url: {"rates": {"COP": 4000}}  # type: ignore[attr-defined]

    suggested = fx.suggest_rates({"USD": "1", "COP": "4150", "VES": "52"})

    assert suggested["VES"] == "52"
    assert suggested["COP"] == "4000.00"


def test_fetch_latest_skips_invalid_rates():
    fx = FxService()
    fx._fetch_json = lambda _url: {"rates": {"COP": 4000, "BAD": 0, "WORSE": "x"}}  # type: ignore[attr-defined]

    assert fx.fetch_latest() == {"COP": 4000.0}


def test_network_failure_raises_fx_unavailable():
    fx = FxService()

    def fail(_url: str):
        raise requests.RequestException("network down")

    fx._fetch_json = fail  # type: ignore[attr-defined]

    with pytest.raises(FxUnavailableError, match="network down"):
        fx.suggest_rates({"COP": "4150"})


def test_response_without_rates_raises_fx_unavailable():
    fx = FxService()
    fx._fetch_json = lambda _url: {"result": "error"}  # type: ignore[attr-defined]

    with pytest.raises(FxUnavailableError, match="missing rates"):
        fx.fetch_latest()
