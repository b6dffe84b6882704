from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox, filedialog
import logging

from tienda.domain.errors import AuthorizationError


log = logging.getLogger(__name__)

ALL_CATEGORIES = "All categories"
NO_CATEGORY = "(none)"


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Products")

        self.selected_id: int | None = None
        self.image_url: str | None = None
        # uploaded in this form but not yet saved on a product
        self.unsaved_image: str | None = None
        self.category_map: dict[str, int] = {}

        tab = self.frame
        style = ttk.Style(self.frame)
        style.configure("ProductsCompact.Treeview", rowheight=24, font=("Segoe UI", 9))
        style.configure("ProductsCompact.Treeview.Heading", font=("Segoe UI", 9, "bold"))

        left = ttk.LabelFrame(tab, text="Product", width=285)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        right = ttk.LabelFrame(tab, text="Products list")
        right.pack(side="right", fill="both", expand=True, pady=8)

        self.p_name = self._entry(left, "Name", 0)
        self.p_desc = self._entry(left, "Description", 1)
        self.p_price = self._entry(left, "Price USD", 2)
        self.p_stock = self._entry(left, "Stock", 3)

        ttk.Label(left, text="Category").grid(row=4, column=0, sticky="w", padx=8, pady=4)
        self.p_category = tk.StringVar(value=NO_CATEGORY)
        self.category_combo = ttk.Combobox(left, textvariable=self.p_category, state="readonly", width=16)
        self.category_combo.grid(row=4, column=1, sticky="ew", padx=8, pady=4)

        self.image_var = tk.StringVar(value="No image")
        ttk.Label(left, textvariable=self.image_var, wraplength=240).grid(
            row=5, column=0, columnspan=2, sticky="w", padx=8, pady=(8, 2)
        )
        imgs = ttk.Frame(left)
        imgs.grid(row=6, column=0, columnspan=2, sticky="ew", padx=8, pady=(0, 8))
        ttk.Button(imgs, text="Upload image", command=self.on_upload_image).pack(side="left")
        ttk.Button(imgs, text="Remove image", command=self.on_remove_image).pack(side="left", padx=6)

        btns = ttk.Frame(left)
        btns.grid(row=7, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        for i in range(4):
            btns.columnconfigure(i, weight=1)

        ttk.Button(btns, text="Add", command=self.on_add_product).grid(row=0, column=0, sticky="ew", padx=(0, 4))
        ttk.Button(btns, text="Save", command=self.on_update_product).grid(row=0, column=1, sticky="ew", padx=4)
        ttk.Button(btns, text="Delete", command=self.on_delete_product).grid(row=0, column=2, sticky="ew", padx=4)
        ttk.Button(btns, text="Clear", command=self.clear_form).grid(row=0, column=3, sticky="ew", padx=(4, 0))

        filters = ttk.Frame(right)
        filters.pack(fill="x", padx=6, pady=(6, 0))

        ttk.Label(filters, text="Search").pack(side="left")
        self.search_var = tk.StringVar()
        search = ttk.Entry(filters, textvariable=self.search_var, width=24)
        search.pack(side="left", padx=(6, 12))
        search.bind("<KeyRelease>", lambda _e: self.refresh_tree())

        self.filter_category = tk.StringVar(value=ALL_CATEGORIES)
        self.filter_combo = ttk.Combobox(filters, textvariable=self.filter_category, state="readonly", width=20)
        self.filter_combo.pack(side="left", padx=(0, 12))
        self.filter_combo.bind("<<ComboboxSelected>>", lambda _e: self.refresh_tree())

        self.availability = tk.StringVar(value="all")
        avail = ttk.Combobox(
            filters, textvariable=self.availability, values=["all", "available", "sold_out"],
            state="readonly", width=12,
        )
        avail.pack(side="left")
        avail.bind("<<ComboboxSelected>>", lambda _e: self.refresh_tree())

        tree_wrap = ttk.Frame(right)
        tree_wrap.pack(fill="both", expand=True, padx=6, pady=6)

        cols = ("id", "name", "category", "price", "stock")
        self.tree = ttk.Treeview(tree_wrap, columns=cols, show="headings", height=20, style="ProductsCompact.Treeview")
        heads = {"id": "ID", "name": "Name", "category": "Category", "price": "Price", "stock": "Stock"}
        widths = {"id": 48, "name": 300, "category": 150, "price": 120, "stock": 78}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")

        self.tree.tag_configure("low", background="#fff4cc")
        self.tree.tag_configure("sold_out", background="#ffdddd")
        self.tree.bind("<<TreeviewSelect>>", self.on_select)

        vsb = ttk.Scrollbar(tree_wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        tree_wrap.columnconfigure(0, weight=1)
        tree_wrap.rowconfigure(0, weight=1)

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=16)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    def _parse_int(self, s: str, field: str, default: int = 0) -> int:
        s = (s or "").strip()
        if s == "":
            return default
        try:
            return int(float(s))
        except ValueError:
            raise ValueError(f"{field} must be an integer.")

    def _parse_float(self, s: str, field: str, default: float = 0.0) -> float:
        s = (s or "").strip()
        if s == "":
            return default
        try:
            return float(s)
        except ValueError:
            raise ValueError(f"{field} must be a number.")

    def _form_values(self):
        return (
            self.p_name.get().strip(),
            self.p_desc.get().strip() or None,
            self._parse_float(self.p_price.get(), "Price USD", 0.0),
            self._parse_int(self.p_stock.get(), "Stock", 0),
            self.category_map.get(self.p_category.get()),
            self.image_url,
        )

    def on_add_product(self):
        try:
            if not self.app.can_action("manage_products"):
                raise AuthorizationError("Only admin can create products.")
            pid = self.app.inventory.add_product(*self._form_values())
            self.unsaved_image = None
            self.app.toast(f"Product added (ID {pid}).", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Add product", e, "Failed to add product.")

    def on_update_product(self):
        try:
            if not self.app.can_action("manage_products"):
                raise AuthorizationError("Only admin can edit products.")
            if self.selected_id is None:
                raise ValueError("Select a product.")
            self.app.inventory.update_product(self.selected_id, *self._form_values())
            self.unsaved_image = None
            self.app.toast("Product saved.", kind="success")
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Save product", e, "Failed to save product.")

    def on_delete_product(self):
        try:
            if not self.app.can_action("manage_products"):
                raise AuthorizationError("Only admin can delete products.")
            if self.selected_id is None:
                raise ValueError("Select a product.")

            product = self.app.inventory.get_product(self.selected_id)
            confirmed = messagebox.askyesno(
                "Confirm delete",
                f"Delete product '{product.name}' (ID {product.id})?\n\nPast sales keep their line items.",
                parent=self.frame,
            )
            if not confirmed:
                return

            self.app.inventory.delete_product(product.id)
            self.app.toast("Product deleted.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Delete product", e, "Failed to delete product.")

    def on_upload_image(self):
        try:
            if not self.app.can_action("manage_products"):
                raise AuthorizationError("Only admin can upload images.")
            path = filedialog.askopenfilename(
                title="Select image",
                filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.webp"), ("All files", "*.*")],
            )
            if not path:
                return
            url = self.app.images.upload(path)
            self._discard_unsaved_image()
            self.image_url = self.unsaved_image = url
            self.image_var.set(self.image_url)
            self.app.toast("Image uploaded. Save the product to keep it.", kind="success")
        except Exception as e:
            self.app.handle_error("Upload image", e, "Image upload failed.")

    def _discard_unsaved_image(self):
        if self.unsaved_image:
            self.app.images.remove(self.unsaved_image)
            self.unsaved_image = None

    def on_remove_image(self):
        # a saved product's file goes away when the product is saved without it
        self._discard_unsaved_image()
        self.image_url = None
        self.image_var.set("No image")

    def on_select(self, _evt=None):
        sel = self.tree.selection()
        if not sel:
            return
        product_id = int(self.tree.item(sel[0], "values")[0])
        try:
            p = self.app.inventory.get_product(product_id)
        except Exception as e:
            self.app.handle_error("Product", e, "Product not found.")
            return

        self._discard_unsaved_image()
        self.selected_id = p.id
        self.image_url = p.image_url
        self._set_entry(self.p_name, p.name)
        self._set_entry(self.p_desc, p.description or "")
        self._set_entry(self.p_price, f"{p.price:.2f}")
        self._set_entry(self.p_stock, str(p.stock))
        self.p_category.set(p.category.name if p.category else NO_CATEGORY)
        self.image_var.set(p.image_url or "No image")

    @staticmethod
    def _set_entry(entry, value: str):
        entry.delete(0, tk.END)
        entry.insert(0, value)

    def clear_form(self):
        self._discard_unsaved_image()
        for e in (self.p_name, self.p_desc, self.p_price, self.p_stock):
            e.delete(0, tk.END)
        self.selected_id = None
        self.image_url = None
        self.p_category.set(NO_CATEGORY)
        self.image_var.set("No image")
        self.p_name.focus_set()

    def refresh_categories(self):
        cats = self.app.categories.list_categories()
        self.category_map = {c.name: c.id for c in cats}
        self.category_combo["values"] = [NO_CATEGORY] + [c.name for c in cats]
        self.filter_combo["values"] = [ALL_CATEGORIES] + [c.name for c in cats]
        if self.filter_category.get() not in self.filter_combo["values"]:
            self.filter_category.set(ALL_CATEGORIES)

    def refresh(self):
        self.refresh_categories()
        self.refresh_tree()

    def refresh_tree(self):
        for item in self.tree.get_children():
            self.tree.delete(item)

        rows = self.app.inventory.list_products()
        term = self.search_var.get().strip().lower()
        if term:
            rows = [p for p in rows if term in p.name.lower() or term in (p.description or "").lower()]
        rows = self.app.inventory.filter_products(
            rows,
            category_id=self.category_map.get(self.filter_category.get()),
            availability=self.availability.get(),
        )

        threshold = self.app.reporting.low_stock_threshold
        for p in rows:
            tag = "sold_out" if p.stock <= 0 else ("low" if p.stock <= threshold else "")
            self.tree.insert(
                "", "end",
                values=(p.id, p.name, p.category.name if p.category else "", self.app.money(p.price), p.stock),
                tags=(tag,) if tag else (),
            )
