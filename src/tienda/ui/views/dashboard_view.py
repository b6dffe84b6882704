from __future__ import annotations

import tkinter as tk
from tkinter import ttk
import logging


log = logging.getLogger(__name__)


class DashboardView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Dashboard")

        kpi = ttk.LabelFrame(self.frame, text="Overview")
        kpi.pack(fill="x", padx=10, pady=10)

        self.k_products = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_categories = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_sales = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_today = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_month = ttk.Label(kpi, text="-", style="KPIValue.TLabel")

        labels = ["Products", "Categories", "Sales", "Sales today", "Revenue this month"]
        widgets = [self.k_products, self.k_categories, self.k_sales, self.k_today, self.k_month]
        for i, (lab, w) in enumerate(zip(labels, widgets)):
            ttk.Label(kpi, text=lab, style="KPI.TLabel").grid(row=0, column=i, sticky="w", padx=12, pady=(8, 2))
            w.grid(row=1, column=i, sticky="w", padx=12, pady=(2, 8))

        bottom = ttk.Frame(self.frame)
        bottom.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        recent = ttk.LabelFrame(bottom, text="Recent sales")
        recent.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("id", "dt", "customer", "total", "status")
        self.recent_tree = ttk.Treeview(recent, columns=cols, show="headings", height=8)
        heads = {"id": "Sale ID", "dt": "Datetime", "customer": "Customer", "total": "Total", "status": "Status"}
        widths = {"id": 70, "dt": 160, "customer": 200, "total": 120, "status": 90}
        for c in cols:
            self.recent_tree.heading(c, text=heads[c])
            self.recent_tree.column(c, width=widths[c], anchor="w")
        self.recent_tree.pack(fill="both", expand=True, padx=10, pady=10)

        lowbox = ttk.LabelFrame(bottom, text="Low stock")
        lowbox.pack(side="right", fill="both", expand=True)

        self.low_list = tk.Listbox(lowbox, height=8)
        self.low_list.pack(fill="both", expand=True, padx=10, pady=10)

    def refresh(self):
        d = self.app.reporting.dashboard()

        self.k_products.config(text=str(d.products))
        self.k_categories.config(text=str(d.categories))
        self.k_sales.config(text=str(d.sales))
        self.k_today.config(text=str(d.sales_today))
        self.k_month.config(text=self.app.money(d.month_revenue))

        for item in self.recent_tree.get_children():
            self.recent_tree.delete(item)
        for s in d.recent_sales:
            self.recent_tree.insert("", "end", values=(
                s.id, s.created_at, s.customer_name, self.app.money(s.total), s.status
            ))

        self.low_list.delete(0, tk.END)
        if not d.low_stock:
            self.low_list.insert(tk.END, "All products have enough stock.")
        for p in d.low_stock:
            self.low_list.insert(tk.END, f"{p.name} ({p.stock} left)")
