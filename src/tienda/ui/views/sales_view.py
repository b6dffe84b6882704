from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
from datetime import date
import logging

from tienda.config import BASE_CURRENCY
from tienda.domain.errors import AuthorizationError, InsufficientStockError, ValidationError
from tienda.domain.models import PAYMENT_METHODS
from tienda.services.cart import Cart
from tienda.services.sales_service import DATE_PRESETS, SaleFilter


log = logging.getLogger(__name__)

STATUS_CHOICES = ["all", "pending", "partial", "paid"]


class SalesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Sales")

        self.cart = Cart()
        self.search_var = tk.StringVar()
        self.customer_var = tk.StringVar()
        self.customer_hint = tk.StringVar(value="")
        self.total_var = tk.StringVar(value="Total: -")
        self.page = 1
        self.page_var = tk.StringVar(value="")
        self._search_hits = []
        self._customers = []

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.Frame(tab)
        top.pack(fill="both", expand=True, padx=10, pady=10)

        pick = ttk.LabelFrame(top, text="Find product (double click to add)")
        pick.pack(side="left", fill="y", padx=(0, 10))

        search = ttk.Entry(pick, textvariable=self.search_var, width=32)
        search.pack(fill="x", padx=10, pady=(10, 4))
        search.bind("<KeyRelease>", lambda _e: self.refresh_search())
        search.bind("<Return>", lambda _e: self.add_selected_hit(first=True))

        self.hits = tk.Listbox(pick, height=8)
        self.hits.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.hits.bind("<Double-1>", lambda _e: self.add_selected_hit())

        cart_box = ttk.LabelFrame(top, text="Cart")
        cart_box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("id", "name", "qty", "unit", "line")
        self.cart_tree = ttk.Treeview(cart_box, columns=cols, show="headings", height=8)
        heads = {"id": "ID", "name": "Name", "qty": "Qty", "unit": "Unit", "line": "Subtotal"}
        widths = {"id": 48, "name": 260, "qty": 60, "unit": 110, "line": 120}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        btnrow = ttk.Frame(cart_box)
        btnrow.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btnrow, text="+", width=3, command=lambda: self.change_qty(1)).pack(side="left")
        ttk.Button(btnrow, text="-", width=3, command=lambda: self.change_qty(-1)).pack(side="left", padx=6)
        ttk.Button(btnrow, text="Remove selected", command=self.remove_selected).pack(side="left")
        ttk.Button(btnrow, text="Clear cart", command=self.clear_cart).pack(side="left", padx=10)

        right = ttk.LabelFrame(top, text="Confirm sale")
        right.pack(side="right", fill="y")

        ttk.Label(right, text="Customer").pack(anchor="w", padx=10, pady=(10, 4))
        self.customer_combo = ttk.Combobox(right, textvariable=self.customer_var, width=30)
        self.customer_combo.pack(padx=10)
        self.customer_combo.bind("<KeyRelease>", lambda _e: self.refresh_customer_hint())
        self.customer_combo.bind("<<ComboboxSelected>>", lambda _e: self.refresh_customer_hint())
        ttk.Label(right, textvariable=self.customer_hint, foreground="#2563eb").pack(anchor="w", padx=10)

        ttk.Label(right, text="Notes (optional)").pack(anchor="w", padx=10, pady=(10, 4))
        self.notes = tk.Text(right, width=32, height=4)
        self.notes.pack(padx=10)

        ttk.Label(right, textvariable=self.total_var).pack(anchor="w", padx=10, pady=10)

        ttk.Button(right, text="Confirm sale", style="Big.TButton", command=self.confirm_sale)\
            .pack(fill="x", padx=10, pady=(0, 10))

        # Sales history
        hist = ttk.LabelFrame(tab, text="Sales (double click to view details and payments)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        flt = ttk.Frame(hist)
        flt.pack(fill="x", padx=10, pady=8)

        self.f_customer = tk.StringVar()
        self.f_product = tk.StringVar()
        self.f_status = tk.StringVar(value="all")
        self.f_period = tk.StringVar(value="all")
        self.f_start = tk.StringVar()
        self.f_end = tk.StringVar()

        ttk.Label(flt, text="Customer").pack(side="left")
        ttk.Entry(flt, textvariable=self.f_customer, width=14).pack(side="left", padx=(4, 10))
        ttk.Label(flt, text="Product").pack(side="left")
        ttk.Entry(flt, textvariable=self.f_product, width=14).pack(side="left", padx=(4, 10))
        ttk.Combobox(flt, textvariable=self.f_status, values=STATUS_CHOICES, state="readonly", width=8)\
            .pack(side="left", padx=(0, 10))
        ttk.Combobox(flt, textvariable=self.f_period, values=list(DATE_PRESETS), state="readonly", width=8)\
            .pack(side="left", padx=(0, 10))
        ttk.Label(flt, text="From").pack(side="left")
        ttk.Entry(flt, textvariable=self.f_start, width=11).pack(side="left", padx=(4, 6))
        ttk.Label(flt, text="To").pack(side="left")
        ttk.Entry(flt, textvariable=self.f_end, width=11).pack(side="left", padx=(4, 10))
        ttk.Button(flt, text="Apply", command=self.apply_filters).pack(side="left")
        ttk.Button(flt, text="Clear", command=self.clear_filters).pack(side="left", padx=6)

        cols = ("id", "dt", "customer", "total", "paid", "status")
        self.sales_tree = ttk.Treeview(hist, columns=cols, show="headings", height=10)
        heads = {"id": "Sale ID", "dt": "Datetime", "customer": "Customer", "total": "Total",
                 "paid": "Paid", "status": "Status"}
        widths = {"id": 70, "dt": 170, "customer": 240, "total": 130, "paid": 130, "status": 90}
        for c in cols:
            self.sales_tree.heading(c, text=heads[c])
            self.sales_tree.column(c, width=widths[c], anchor="w")
        self.sales_tree.pack(fill="both", expand=True, padx=10)
        self.sales_tree.bind("<Double-1>", self.open_sale_details)

        pager = ttk.Frame(hist)
        pager.pack(fill="x", padx=10, pady=8)
        ttk.Button(pager, text="◀ Prev", command=lambda: self.go_page(-1)).pack(side="left")
        ttk.Label(pager, textvariable=self.page_var).pack(side="left", padx=10)
        ttk.Button(pager, text="Next ▶", command=lambda: self.go_page(1)).pack(side="left")

    def refresh(self):
        self.refresh_customers()
        self.refresh_search()
        self.refresh_cart_view()
        self.refresh_history()

    # ---------- product search / cart ----------
    def refresh_search(self):
        self._search_hits = self.app.inventory.search_products(self.search_var.get())
        self.hits.delete(0, tk.END)
        for p in self._search_hits:
            self.hits.insert(tk.END, f"{p.name}  ·  {self.app.money(p.price)}  ·  stock {p.stock}")

    def add_selected_hit(self, first: bool = False):
        sel = self.hits.curselection()
        if sel:
            idx = sel[0]
        elif first and self._search_hits:
            idx = 0
        else:
            return
        self.add_to_cart(self._search_hits[idx])

    def add_to_cart(self, product):
        try:
            self.cart.add(product)
        except InsufficientStockError as e:
            messagebox.showwarning("Stock", str(e))
            return
        self.refresh_cart_view()
        self.app.toast(f"Added {product.name}.", kind="success", ms=1500)

    def _selected_cart_id(self) -> int | None:
        sel = self.cart_tree.selection()
        if not sel:
            return None
        return int(self.cart_tree.item(sel[0], "values")[0])

    def change_qty(self, delta: int):
        pid = self._selected_cart_id()
        if pid is None:
            return
        try:
            self.cart.set_quantity(pid, self.cart.quantity_of(pid) + delta)
        except InsufficientStockError as e:
            messagebox.showwarning("Stock", str(e))
            return
        self.refresh_cart_view()

    def refresh_cart_view(self):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)

        for it in self.cart.items:
            self.cart_tree.insert("", "end", iid=str(it.product.id), values=(
                it.product.id, it.product.name, it.quantity,
                self.app.money(it.product.price), self.app.money(it.subtotal),
            ))

        total = self.cart.total()
        text = f"Total: {self.app.money(total)}"
        if self.app.currency.display_currency != BASE_CURRENCY:
            text += f"  ({self.app.money(total, BASE_CURRENCY)})"
        self.total_var.set(text)

    def remove_selected(self):
        pid = self._selected_cart_id()
        if pid is None:
            return
        self.cart.remove(pid)
        self.refresh_cart_view()
        self.app.toast("Removed from cart.", kind="info", ms=1500)

    def clear_cart(self):
        self.cart.clear()
        self.refresh_cart_view()
        self.app.toast("Cart cleared.", kind="info", ms=1500)

    # ---------- customer picker ----------
    def refresh_customers(self):
        self._customers = self.app.customers.list_customers()
        self.customer_combo["values"] = [c.name for c in self._customers]
        self.refresh_customer_hint()

    def refresh_customer_hint(self):
        typed = self.customer_var.get().strip()
        matches = self.app.customers.suggest(typed, self._customers)
        self.customer_combo["values"] = [c.name for c in matches]
        if typed and not self.app.customers.exists(typed, self._customers):
            self.customer_hint.set(f'+ New customer "{typed}"')
        else:
            self.customer_hint.set("")

    def confirm_sale(self):
        try:
            if not self.app.can_action("create_sale"):
                raise AuthorizationError("Only admin can register sales.")
            notes = self.notes.get("1.0", "end").strip() or None
            sale_id = self.app.sales.checkout(self.cart, self.customer_var.get(), notes)
        except Exception as e:
            self.app.handle_error("Sale failed", e, "Sale failed.")
            return

        messagebox.showinfo("OK", f"Sale saved. ID: {sale_id}")
        self.app.toast(f"Sale saved (ID {sale_id}).", kind="success")
        self.notes.delete("1.0", "end")
        self.customer_var.set("")
        self.app.refresh_all(show_toast=False)

    # ---------- history ----------
    def _parse_date(self, s: str, field: str) -> date | None:
        s = (s or "").strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"{field} must be a date like 2024-01-31.")

    def current_filter(self) -> SaleFilter:
        return SaleFilter(
            customer=self.f_customer.get(),
            product=self.f_product.get(),
            status=self.f_status.get(),
            period=self.f_period.get(),
            start=self._parse_date(self.f_start.get(), "From"),
            end=self._parse_date(self.f_end.get(), "To"),
        )

    def apply_filters(self):
        self.page = 1
        try:
            self.refresh_history()
        except ValidationError as e:
            messagebox.showwarning("Validation", str(e))

    def clear_filters(self):
        for var in (self.f_customer, self.f_product, self.f_start, self.f_end):
            var.set("")
        self.f_status.set("all")
        self.f_period.set("all")
        self.apply_filters()

    def go_page(self, delta: int):
        self.page += delta
        self.refresh_history()

    def refresh_history(self):
        flt = self.current_filter()
        rows = self.app.sales.list_sales()
        if flt.is_active:
            rows = self.app.sales.filter_sales(rows, flt)
        page = self.app.sales.paginate(rows, self.page)
        self.page = page.page

        for item in self.sales_tree.get_children():
            self.sales_tree.delete(item)

        for s in page.rows:
            self.sales_tree.insert("", "end", values=(
                s.id, s.created_at, s.customer_name,
                self.app.money(s.total), self.app.money(s.total_paid), s.status,
            ))
        self.page_var.set(f"Page {page.page} of {page.total_pages} ({page.total_rows} sales)")

    def open_sale_details(self, _evt=None):
        sel = self.sales_tree.selection()
        if not sel:
            return
        sale_id = int(self.sales_tree.item(sel[0], "values")[0])
        SaleDetailDialog(self.app, sale_id)


class SaleDetailDialog:
    """Sale header, line items and the payment ledger, with a form to record a payment."""

    def __init__(self, app, sale_id: int):
        self.app = app
        self.sale_id = sale_id

        self.win = tk.Toplevel(app)
        self.win.title(f"Sale #{sale_id}")
        self.win.geometry("980x640")

        self.header_var = tk.StringVar()
        self.balance_var = tk.StringVar()
        self.preview_var = tk.StringVar()

        h = ttk.LabelFrame(self.win, text="Sale")
        h.pack(fill="x", padx=10, pady=10)
        ttk.Label(h, textvariable=self.header_var, justify="left").pack(anchor="w", padx=10, pady=4)
        ttk.Label(h, textvariable=self.balance_var, style="KPIValue.TLabel").pack(anchor="w", padx=10, pady=(0, 6))

        box = ttk.LabelFrame(self.win, text="Items")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        cols = ("name", "qty", "unit", "line")
        self.items_tree = ttk.Treeview(box, columns=cols, show="headings", height=6)
        heads = {"name": "Product", "qty": "Qty", "unit": "Unit", "line": "Subtotal"}
        widths = {"name": 420, "qty": 70, "unit": 140, "line": 140}
        for c in cols:
            self.items_tree.heading(c, text=heads[c])
            self.items_tree.column(c, width=widths[c], anchor="w")
        self.items_tree.pack(fill="both", expand=True, padx=10, pady=10)

        pbox = ttk.LabelFrame(self.win, text="Payments")
        pbox.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        cols = ("dt", "amount", "rate", "base", "method", "ref")
        self.pay_tree = ttk.Treeview(pbox, columns=cols, show="headings", height=5)
        heads = {"dt": "Datetime", "amount": "Amount", "rate": "Rate", "base": "USD",
                 "method": "Method", "ref": "Reference"}
        widths = {"dt": 160, "amount": 150, "rate": 90, "base": 110, "method": 120, "ref": 220}
        for c in cols:
            self.pay_tree.heading(c, text=heads[c])
            self.pay_tree.column(c, width=widths[c], anchor="w")
        self.pay_tree.pack(fill="both", expand=True, padx=10, pady=10)

        form = ttk.Frame(pbox)
        form.pack(fill="x", padx=10, pady=(0, 10))

        self.amount = tk.StringVar()
        self.pay_currency = tk.StringVar(value=app.currency.display_currency)
        self.method = tk.StringVar(value=PAYMENT_METHODS[0])
        self.reference = tk.StringVar()

        ttk.Label(form, text="Amount").pack(side="left")
        amount_e = ttk.Entry(form, textvariable=self.amount, width=12)
        amount_e.pack(side="left", padx=(4, 6))
        amount_e.bind("<KeyRelease>", lambda _e: self.refresh_preview())
        cur = ttk.Combobox(form, textvariable=self.pay_currency, values=app.currency.currencies(),
                           state="readonly", width=6)
        cur.pack(side="left", padx=(0, 6))
        cur.bind("<<ComboboxSelected>>", lambda _e: self.refresh_preview())
        ttk.Combobox(form, textvariable=self.method, values=list(PAYMENT_METHODS), state="readonly", width=12)\
            .pack(side="left", padx=(0, 6))
        ttk.Label(form, text="Ref").pack(side="left")
        ttk.Entry(form, textvariable=self.reference, width=14).pack(side="left", padx=(4, 6))
        ttk.Button(form, text="Pay rest", command=self.fill_rest).pack(side="left", padx=(0, 6))
        ttk.Button(form, text="Record payment", command=self.record_payment).pack(side="left")
        ttk.Label(form, textvariable=self.preview_var).pack(side="left", padx=10)

        bottom = ttk.Frame(self.win)
        bottom.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(bottom, text="Delete sale", command=self.delete_sale).pack(side="right")

        self.refresh()

    def refresh(self):
        sale = self.app.sales.get_sale(self.sale_id)
        if sale is None:
            self.win.destroy()
            return
        self.sale = sale

        lines = [
            f"Customer: {sale.customer_name}",
            f"Datetime: {sale.created_at}",
            "Rates at sale: " + (", ".join(f"{k} {v:g}" for k, v in sorted(sale.rates.items())) or "-"),
            f"Notes: {sale.notes or ''}",
        ]
        self.header_var.set("\n".join(lines))
        self.balance_var.set(
            f"Total {self.app.money(sale.total)} | Paid {self.app.money(sale.total_paid)} | "
            f"Remaining {self.app.money(sale.remaining)} | {sale.status.upper()}"
        )

        for item in self.items_tree.get_children():
            self.items_tree.delete(item)
        for it in sale.items:
            self.items_tree.insert("", "end", values=(
                it.product_name, it.quantity, self.app.money(it.unit_price), self.app.money(it.subtotal)
            ))

        for item in self.pay_tree.get_children():
            self.pay_tree.delete(item)
        for p in sale.payments:
            self.pay_tree.insert("", "end", values=(
                p.created_at, f"{p.amount:,.2f} {p.currency}", f"{p.rate:g}",
                f"{p.amount_in_base:,.2f}", p.method, p.reference or "",
            ))
        self.refresh_preview()

    def refresh_preview(self):
        raw = self.amount.get().strip()
        if not raw:
            self.preview_var.set("")
            return
        try:
            in_base = self.app.payments.preview_in_base(raw, self.pay_currency.get())
        except ValidationError:
            self.preview_var.set("")
            return
        self.preview_var.set(f"= USD {in_base:,.2f}")

    def fill_rest(self):
        value = self.app.payments.pay_rest_amount(self.sale, self.pay_currency.get())
        self.amount.set(f"{value:.2f}")
        self.refresh_preview()

    def record_payment(self):
        try:
            if not self.app.can_action("record_payment"):
                raise AuthorizationError("Only admin can record payments.")
            self.app.payments.record_payment(
                self.sale_id, self.amount.get(), self.pay_currency.get(),
                method=self.method.get(), reference=self.reference.get(),
            )
        except Exception as e:
            self.app.handle_error("Payment failed", e, "Payment failed.")
            return
        self.amount.set("")
        self.reference.set("")
        self.app.toast("Payment recorded.", kind="success")
        self.refresh()
        self.app.refresh_all(show_toast=False)

    def delete_sale(self):
        try:
            if not self.app.can_action("delete_sale"):
                raise AuthorizationError("Only admin can delete sales.")
            if not messagebox.askyesno(
                "Confirm delete",
                f"Delete sale #{self.sale_id} and its payments? Stock is not restored.",
                parent=self.win,
            ):
                return
            self.app.sales.delete_sale(self.sale_id)
        except Exception as e:
            self.app.handle_error("Delete sale", e, "Failed to delete sale.")
            return
        self.app.toast("Sale deleted.", kind="success")
        self.win.destroy()
        self.app.refresh_all(show_toast=False)
