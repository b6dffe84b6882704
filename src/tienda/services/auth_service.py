from __future__ import annotations

import hmac
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

from tienda.domain.errors import AuthorizationError

log = logging.getLogger("tienda.auth")

AUTH_COOKIE = "auth"

# Guests only browse the catalog. This is a UI toggle, not a security boundary.
PERMISSIONS: dict[str, set[str]] = {
    "view_products": {"admin", "guest"},
    "view_dashboard": {"admin"},
    "manage_products": {"admin"},
    "manage_categories": {"admin"},
    "create_sale": {"admin"},
    "delete_sale": {"admin"},
    "record_payment": {"admin"},
    "view_customers": {"admin"},
    "manage_rates": {"admin"},
    "export_report": {"admin"},
}


class AuthService:
    def __init__(self, cookie_path: Path | str, admin_token: str):
        self.cookie_path = Path(cookie_path)
        self.admin_token = admin_token or ""

    def _read_cookies(self) -> dict:
        if not self.cookie_path.exists():
            return {}
        try:
            data = json.loads(self.cookie_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("cookie_file_unreadable path=%s error=%s", self.cookie_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_cookies(self, cookies: dict) -> None:
        self.cookie_path.parent.mkdir(parents=True, exist_ok=True)
        self.cookie_path.write_text(json.dumps(cookies, indent=2), encoding="utf-8")

    def get_cookie(self, name: str, now: datetime | None = None) -> str | None:
        entry = self._read_cookies().get(name)
        if not isinstance(entry, dict):
            return None
        expires = entry.get("expires")
        if expires and datetime.fromisoformat(expires) <= (now or datetime.now()):
            return None
        value = entry.get("value")
        return str(value) if value is not None else None

    def set_cookie(self, name: str, value: str, days: int) -> None:
        cookies = self._read_cookies()
        expires = datetime.now() + timedelta(days=days)
        cookies[name] = {"value": value, "expires": expires.replace(microsecond=0).isoformat()}
        self._write_cookies(cookies)

    def login(self, token: str, days: int = 30) -> None:
        token = (token or "").strip()
        if not self.admin_token or not hmac.compare_digest(token.encode(), self.admin_token.encode()):
            log.warning("admin_login_failed")
            raise AuthorizationError("Invalid admin token.")
        self.set_cookie(AUTH_COOKIE, token, days)
        log.info("admin_login days=%s", days)

    def logout(self) -> None:
        cookies = self._read_cookies()
        if cookies.pop(AUTH_COOKIE, None) is not None:
            self._write_cookies(cookies)
        log.info("admin_logout")

    def is_admin(self, now: datetime | None = None) -> bool:
        if not self.admin_token:
            return False
        value = self.get_cookie(AUTH_COOKIE, now=now)
        if value is None:
            return False
        return hmac.compare_digest(value.encode(), self.admin_token.encode())

    @property
    def role(self) -> str:
        return "admin" if self.is_admin() else "guest"

    def can(self, action: str) -> bool:
        allowed_roles = PERMISSIONS.get(action)
        if not allowed_roles:
            return False
        return self.role in allowed_roles

    def require_action(self, action: str) -> None:
        if not self.can(action):
            raise AuthorizationError(f"Role '{self.role}' is not allowed to perform '{action}'.")
