from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox, simpledialog
import logging
from pathlib import Path

from tienda.domain.errors import AuthorizationError, InsufficientStockError, NotFoundError, ValidationError
from tienda.ui.views.dashboard_view import DashboardView
from tienda.ui.views.products_view import ProductsView
from tienda.ui.views.categories_view import CategoriesView
from tienda.ui.views.sales_view import SalesView
from tienda.ui.views.customers_view import CustomersView
from tienda.ui.views.settings_view import SettingsView

log = logging.getLogger(__name__)

WARNING_ERRORS = (ValidationError, InsufficientStockError, NotFoundError, AuthorizationError, ValueError)


class App(tk.Tk):
    def __init__(self, container):
        super().__init__()
        self.title("Tienda - Inventory, Sales & Payments")
        self.geometry("1280x760")
        self.minsize(1120, 640)

        self.container = container
        self.currency = container.currency
        self.fx = container.fx
        self.images = container.images
        self.inventory = container.inventory
        self.categories = container.categories
        self.customers = container.customers
        self.sales = container.sales
        self.payments = container.payments
        self.reporting = container.reporting
        self.auth = container.auth

        # UI state
        self.display_var = tk.StringVar(value=self.currency.display_currency)
        self.rate_var = tk.StringVar(value="")
        self.role_var = tk.StringVar(value="")
        self.status_var = tk.StringVar(value="")
        self._toast_after_id = None

        self._build_styles()
        self._build_topbar()

        main = ttk.Frame(self)
        main.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.sidebar = ttk.Frame(main)
        self.sidebar.pack(side="left", fill="y", padx=(0, 10))

        self.content = ttk.Frame(main)
        self.content.pack(side="right", fill="both", expand=True)

        self.nb = ttk.Notebook(self.content, style="Side.TNotebook")
        self.nb.pack(fill="both", expand=True)

        # Views (tabs hidden)
        self.dashboard_view = DashboardView(self.nb, self)
        self.products_view = ProductsView(self.nb, self)
        self.categories_view = CategoriesView(self.nb, self)
        self.sales_view = SalesView(self.nb, self)
        self.customers_view = CustomersView(self.nb, self)
        self.settings_view = SettingsView(self.nb, self)

        self._build_sidebar()
        self._build_status_bar()

        self.refresh_all(show_toast=False)
        if self.currency.degraded:
            self.toast("Rates could not be loaded; using fallback rates.", kind="warn", ms=4000)
        else:
            self.toast("Ready.", kind="info", ms=1200)

    def _build_styles(self):
        style = ttk.Style(self)
        style.layout("Side.TNotebook.Tab", [])
        style.configure("Side.TNotebook", tabmargins=0)

        try:
            style.configure("Big.TButton", padding=(14, 10))
            style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
            style.configure("KPI.TLabel", font=("Segoe UI", 10))
            style.configure("KPIValue.TLabel", font=("Segoe UI", 11, "bold"))
        except tk.TclError as e:
            log.exception("UI style setup failed: %s", e)

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, text="Currency").pack(side="left")
        self.currency_combo = ttk.Combobox(top, textvariable=self.display_var, width=8, state="readonly")
        self.currency_combo.pack(side="left", padx=(6, 10))
        self.currency_combo.bind("<<ComboboxSelected>>", lambda _e: self.on_display_currency())
        ttk.Label(top, textvariable=self.rate_var).pack(side="left")

        self.login_btn = ttk.Button(top, text="Admin login", command=self.toggle_admin)
        self.login_btn.pack(side="right")
        ttk.Label(top, textvariable=self.role_var).pack(side="right", padx=10)

    def _build_sidebar(self):
        for w in self.sidebar.winfo_children():
            w.destroy()

        box = ttk.LabelFrame(self.sidebar, text="Menu")
        box.pack(fill="x", pady=(0, 10))

        entries = [
            ("view_dashboard", "📊 Dashboard", self.dashboard_view),
            ("view_products", "📦 Products", self.products_view),
            ("manage_categories", "🏷 Categories", self.categories_view),
            ("create_sale", "🧾 Sales", self.sales_view),
            ("view_customers", "👥 Customers", self.customers_view),
            ("manage_rates", "⚙ Settings", self.settings_view),
        ]
        first = None
        for action, label, view in entries:
            if not self.can_action(action):
                continue
            first = first or view
            ttk.Button(
                box, text=label, style="Big.TButton",
                command=lambda v=view: self.nb.select(v.frame)
            ).pack(fill="x", padx=10, pady=(6, 6))

        ttk.Button(box, text="🔄 Refresh", style="Big.TButton",
                   command=self.refresh_all).pack(fill="x", padx=10, pady=(6, 10))

        if first is not None:
            self.nb.select(first.frame)

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"DB: {Path(self.container.repo.db_path).name}").pack(side="right")

    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            try:
                self.after_cancel(self._toast_after_id)
            except tk.TclError:
                pass
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    def handle_error(self, title: str, err: Exception, toast_text: str):
        if isinstance(err, WARNING_ERRORS):
            log.warning("%s: %s", title, err)
            messagebox.showwarning(title, str(err))
        else:
            log.exception("%s: %s", title, err)
            messagebox.showerror(title, str(err))
        self.toast(toast_text, kind="error")

    # ---------- admin gate ----------
    def can_action(self, action: str) -> bool:
        return self.auth.can(action)

    def toggle_admin(self):
        try:
            if self.auth.is_admin():
                self.auth.logout()
                self.toast("Logged out.", kind="info")
            else:
                token = simpledialog.askstring("Admin login", "Admin token:", show="*", parent=self)
                if not token:
                    return
                self.auth.login(token)
                self.toast("Admin mode enabled.", kind="success")
        except Exception as e:
            self.handle_error("Admin login", e, "Login failed.")
            return
        self._build_sidebar()
        self.refresh_all(show_toast=False)

    # ---------- currency ----------
    def on_display_currency(self):
        try:
            self.currency.set_display_currency(self.display_var.get())
        except Exception as e:
            self.handle_error("Currency", e, "Could not change currency.")
            return
        self.refresh_all(show_toast=False)

    def money(self, amount_in_base: float, currency: str | None = None) -> str:
        return self.currency.format(amount_in_base, currency)

    def refresh_currency_bar(self):
        self.currency_combo["values"] = self.currency.currencies()
        code = self.currency.display_currency
        self.display_var.set(code)
        r = self.currency.get_rate(code)
        self.rate_var.set(f"1 USD = {r.symbol} {r.rate:g}" if r else "")

    # ---------- Refresh ----------
    def refresh_all(self, show_toast: bool = True):
        self.currency.refresh()
        self.role_var.set("Admin" if self.auth.is_admin() else "Guest")
        self.login_btn.config(text="Logout" if self.auth.is_admin() else "Admin login")
        self.refresh_currency_bar()

        for view in (
            self.dashboard_view,
            self.products_view,
            self.categories_view,
            self.sales_view,
            self.customers_view,
            self.settings_view,
        ):
            try:
                view.refresh()
            except Exception as e:
                log.exception("View refresh failed view=%s error=%s", type(view).__name__, e)

        if show_toast:
            self.toast("Refreshed.", kind="info", ms=1200)
