from __future__ import annotations

import tkinter as tk
from tkinter import ttk, filedialog
from datetime import date, datetime, timedelta
import logging

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import AuthorizationError


log = logging.getLogger(__name__)


class SettingsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Settings")

        self.rate_vars: dict[str, tk.StringVar] = {}

        self.rates_box = ttk.LabelFrame(self.frame, text="Exchange rates (1 USD = ...)")
        self.rates_box.pack(fill="x", padx=10, pady=10)

        self.rates_grid = ttk.Frame(self.rates_box)
        self.rates_grid.pack(fill="x", padx=10, pady=10)

        btns = ttk.Frame(self.rates_box)
        btns.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btns, text="Suggest from API", command=self.suggest_rates).pack(side="left")
        ttk.Button(btns, text="Save rates", style="Big.TButton", command=self.save_rates).pack(side="left", padx=10)

        rep = ttk.LabelFrame(self.frame, text="Excel report")
        rep.pack(fill="x", padx=10, pady=(0, 10))

        self.period = tk.StringVar(value="monthly")
        ttk.Radiobutton(rep, text="Last 7 days", value="weekly", variable=self.period).pack(side="left", padx=10, pady=10)
        ttk.Radiobutton(rep, text="Last 30 days", value="monthly", variable=self.period).pack(side="left", padx=10)
        ttk.Button(rep, text="Export report", command=self.export_report).pack(side="left", padx=10)

    def refresh(self):
        for w in self.rates_grid.winfo_children():
            w.destroy()
        self.rate_vars = {}

        for i, r in enumerate(self.app.currency.rates):
            ttk.Label(self.rates_grid, text=f"{r.currency} - {r.name} ({r.symbol})").grid(
                row=i, column=0, sticky="w", padx=(0, 10), pady=4
            )
            var = tk.StringVar(value=f"{r.rate:g}")
            self.rate_vars[r.currency] = var
            e = ttk.Entry(self.rates_grid, textvariable=var, width=14)
            e.grid(row=i, column=1, sticky="w", pady=4)
            if r.currency == BASE_CURRENCY:
                e.state(["disabled"])
            ttk.Label(self.rates_grid, text=r.updated_at or "").grid(row=i, column=2, sticky="w", padx=10)

    def suggest_rates(self):
        current = {code: var.get() for code, var in self.rate_vars.items()}
        try:
            suggested = self.app.fx.suggest_rates(current)
        except Exception as e:
            self.app.handle_error("Exchange rates", e, "Could not fetch rates from API.")
            return
        for code, value in suggested.items():
            self.rate_vars[code].set(value)
        self.app.toast("Rates suggested from API. Review and save.", kind="info")

    def save_rates(self):
        try:
            if not self.app.can_action("manage_rates"):
                raise AuthorizationError("Only admin can change exchange rates.")
            changed = self.app.currency.update_rates({code: var.get() for code, var in self.rate_vars.items()})
        except Exception as e:
            self.app.handle_error("Exchange rates", e, "Saving rates failed.")
            return
        self.app.toast(f"Rates saved ({changed} changed).", kind="success")
        self.app.refresh_all(show_toast=False)

    def export_report(self):
        try:
            if not self.app.can_action("export_report"):
                raise AuthorizationError("Only admin can export reports.")
        except AuthorizationError as e:
            self.app.handle_error("Export error", e, "Excel export failed.")
            return

        today = datetime.now().replace(microsecond=0)
        start = today - timedelta(days=7 if self.period.get() == "weekly" else 30)
        start_iso = start.isoformat(sep=" ")
        end_iso = (today + timedelta(seconds=1)).isoformat(sep=" ")

        path = filedialog.asksaveasfilename(
            title="Save report as",
            defaultextension=".xlsx",
            filetypes=[("Excel files", "*.xlsx")],
            initialfile=f"report_{self.period.get()}_{date.today().isoformat()}.xlsx",
        )
        if not path:
            return
        try:
            self.app.reporting.export_sales_report_excel(path, start_iso, end_iso)
            self.app.toast("Excel report exported.", kind="success")
        except Exception as e:
            self.app.handle_error("Export error", e, "Excel export failed.")
