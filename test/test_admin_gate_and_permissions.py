import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from tienda.domain.errors import AuthorizationError
from tienda.services.auth_service import AuthService
from tienda.services.cart import Cart
from tienda.ui.views.sales_view import SalesView
from tienda.ui.views.settings_view import SettingsView

TOKEN = "s3cret-token"


def test_guest_by_default_and_admin_after_login(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", TOKEN)

    assert auth.is_admin() is False
    assert auth.can("view_products")
    assert not auth.can("create_sale")

    auth.login(TOKEN)

    assert auth.is_admin() is True
    assert auth.can("create_sale")
    assert auth.can("manage_rates")
    stored = json.loads((tmp_path / "cookies.json").read_text(encoding="utf-8"))
    assert stored["auth"]["value"] == TOKEN


def test_wrong_token_is_rejected(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", TOKEN)

    with pytest.raises(AuthorizationError, match="Invalid admin token"):
        auth.login("nope")
    assert not (tmp_path / "cookies.json").exists()


def test_cookie_expires(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", TOKEN)
    auth.login(TOKEN, days=30)

    assert auth.is_admin(now=datetime.now() + timedelta(days=29))
    assert not auth.is_admin(now=datetime.now() + timedelta(days=31))


def test_logout_clears_cookie(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", TOKEN)
    auth.login(TOKEN)
    auth.logout()

    assert auth.is_admin() is False


def test_stale_cookie_after_token_change(tmp_path: Path):
    AuthService(tmp_path / "cookies.json", TOKEN).login(TOKEN)

    assert AuthService(tmp_path / "cookies.json", "rotated").is_admin() is False


def test_no_admin_without_configured_token(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", "")

    with pytest.raises(AuthorizationError):
        auth.login("")
    assert auth.is_admin() is False


def test_corrupt_cookie_file_means_guest(tmp_path: Path):
    path = tmp_path / "cookies.json"
    path.write_text("{not json", encoding="utf-8")

    assert AuthService(path, TOKEN).is_admin() is False


def test_unknown_action_is_denied(tmp_path: Path):
    auth = AuthService(tmp_path / "cookies.json", TOKEN)
    auth.login(TOKEN)

    assert auth.can("launch_rockets") is False
    with pytest.raises(AuthorizationError):
        auth.require_action("launch_rockets")


def _guest_app(calls):
    class App:
        def can_action(self, _action):
            return False

        def handle_error(self, title, err, toast_text):
            calls.append((title, str(err), toast_text))

    return App()


def test_guest_can_not_confirm_sale():
    calls = []
    view = SalesView.__new__(SalesView)
    view.app = _guest_app(calls)
    view.cart = Cart()

    view.confirm_sale()

    assert calls and calls[0][0] == "Sale failed"
    assert "Only admin" in calls[0][1]


def test_guest_can_not_save_rates():
    calls = []
    view = SettingsView.__new__(SettingsView)
    view.app = _guest_app(calls)
    view.rate_vars = {}

    view.save_rates()

    assert calls and calls[0][0] == "Exchange rates"
    assert "Only admin" in calls[0][1]


def test_guest_can_not_export_report():
    calls = []
    view = SettingsView.__new__(SettingsView)
    view.app = _guest_app(calls)

    view.export_report()

    assert calls and calls[0][0] == "Export error"
