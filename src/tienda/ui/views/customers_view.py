from __future__ import annotations

import tkinter as tk
from tkinter import ttk
import logging


log = logging.getLogger(__name__)


class CustomersView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Customers")

        self.page = 1
        self.rows = []
        self.search_var = tk.StringVar()
        self.page_var = tk.StringVar(value="")

        kpi = ttk.LabelFrame(self.frame, text="Summary")
        kpi.pack(fill="x", padx=10, pady=10)

        self.k_customers = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_sales = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_invoiced = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_collected = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_pending = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_debt = ttk.Label(kpi, text="-", style="KPIValue.TLabel")

        labels = ["Customers", "Sales", "Invoiced", "Collected", "Pending", "With debt"]
        widgets = [self.k_customers, self.k_sales, self.k_invoiced, self.k_collected, self.k_pending, self.k_debt]
        for i, (lab, w) in enumerate(zip(labels, widgets)):
            ttk.Label(kpi, text=lab, style="KPI.TLabel").grid(row=0, column=i, sticky="w", padx=12, pady=(8, 2))
            w.grid(row=1, column=i, sticky="w", padx=12, pady=(2, 8))

        box = ttk.LabelFrame(self.frame, text="Customers (debtors first)")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        top = ttk.Frame(box)
        top.pack(fill="x", padx=10, pady=8)
        ttk.Label(top, text="Search").pack(side="left")
        search = ttk.Entry(top, textvariable=self.search_var, width=28)
        search.pack(side="left", padx=6)
        search.bind("<KeyRelease>", lambda _e: self.on_search())

        cols = ("name", "purchases", "invoiced", "paid", "pending", "last")
        self.tree = ttk.Treeview(box, columns=cols, show="headings", height=15)
        heads = {"name": "Customer", "purchases": "Purchases", "invoiced": "Invoiced", "paid": "Paid",
                 "pending": "Pending", "last": "Last purchase"}
        widths = {"name": 240, "purchases": 90, "invoiced": 130, "paid": 130, "pending": 130, "last": 170}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.tag_configure("debt", background="#ffdddd")
        self.tree.pack(fill="both", expand=True, padx=10)

        pager = ttk.Frame(box)
        pager.pack(fill="x", padx=10, pady=8)
        ttk.Button(pager, text="◀ Prev", command=lambda: self.go_page(-1)).pack(side="left")
        ttk.Label(pager, textvariable=self.page_var).pack(side="left", padx=10)
        ttk.Button(pager, text="Next ▶", command=lambda: self.go_page(1)).pack(side="left")

    def refresh(self):
        self.rows = self.app.customers.customers_with_stats()
        s = self.app.customers.summary(self.rows)
        self.k_customers.config(text=str(s.customers))
        self.k_sales.config(text=str(s.sales))
        self.k_invoiced.config(text=self.app.money(s.invoiced))
        self.k_collected.config(text=self.app.money(s.collected))
        self.k_pending.config(text=self.app.money(s.pending))
        self.k_debt.config(text=str(s.with_debt))
        self.refresh_tree()

    def on_search(self):
        self.page = 1
        self.refresh_tree()

    def go_page(self, delta: int):
        self.page += delta
        self.refresh_tree()

    def refresh_tree(self):
        rows = self.app.customers.search(self.rows, self.search_var.get())
        page = self.app.customers.paginate(rows, self.page)
        self.page = page.page

        for item in self.tree.get_children():
            self.tree.delete(item)
        for r in page.rows:
            self.tree.insert(
                "", "end",
                values=(
                    r.name, r.purchases, self.app.money(r.invoiced), self.app.money(r.paid),
                    self.app.money(r.pending), r.last_purchase or "-",
                ),
                tags=("debt",) if r.has_debt else (),
            )
        self.page_var.set(f"Page {page.page} of {page.total_pages} ({page.total_rows} customers)")
