from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from tienda.domain.errors import AuthorizationError


log = logging.getLogger(__name__)


class CategoriesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Categories")

        self.selected_id: int | None = None

        left = ttk.LabelFrame(self.frame, text="Category", width=285)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        ttk.Label(left, text="Name").grid(row=0, column=0, sticky="w", padx=8, pady=4)
        self.c_name = ttk.Entry(left, width=18)
        self.c_name.grid(row=0, column=1, sticky="ew", padx=8, pady=4)
        ttk.Label(left, text="Description").grid(row=1, column=0, sticky="w", padx=8, pady=4)
        self.c_desc = ttk.Entry(left, width=18)
        self.c_desc.grid(row=1, column=1, sticky="ew", padx=8, pady=4)
        left.columnconfigure(1, weight=1)

        btns = ttk.Frame(left)
        btns.grid(row=2, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        ttk.Button(btns, text="Add", command=self.on_add).pack(side="left")
        ttk.Button(btns, text="Save", command=self.on_update).pack(side="left", padx=6)
        ttk.Button(btns, text="Delete", command=self.on_delete).pack(side="left")

        right = ttk.LabelFrame(self.frame, text="Categories")
        right.pack(side="right", fill="both", expand=True, pady=8)

        cols = ("id", "name", "description", "created")
        self.tree = ttk.Treeview(right, columns=cols, show="headings", height=20)
        heads = {"id": "ID", "name": "Name", "description": "Description", "created": "Created"}
        widths = {"id": 48, "name": 200, "description": 360, "created": 160}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=6, pady=6)
        self.tree.bind("<<TreeviewSelect>>", self.on_select)

    def _form(self):
        return self.c_name.get().strip(), self.c_desc.get().strip() or None

    def on_add(self):
        try:
            if not self.app.can_action("manage_categories"):
                raise AuthorizationError("Only admin can manage categories.")
            self.app.categories.add_category(*self._form())
            self.app.toast("Category added.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Add category", e, "Failed to add category.")

    def on_update(self):
        try:
            if not self.app.can_action("manage_categories"):
                raise AuthorizationError("Only admin can manage categories.")
            if self.selected_id is None:
                raise ValueError("Select a category.")
            self.app.categories.update_category(self.selected_id, *self._form())
            self.app.toast("Category saved.", kind="success")
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Save category", e, "Failed to save category.")

    def on_delete(self):
        try:
            if not self.app.can_action("manage_categories"):
                raise AuthorizationError("Only admin can manage categories.")
            if self.selected_id is None:
                raise ValueError("Select a category.")
            if not messagebox.askyesno(
                "Confirm delete",
                "Delete this category? Its products are kept without a category.",
                parent=self.frame,
            ):
                return
            self.app.categories.delete_category(self.selected_id)
            self.app.toast("Category deleted.", kind="success")
            self.clear_form()
            self.app.refresh_all(show_toast=False)
        except Exception as e:
            self.app.handle_error("Delete category", e, "Failed to delete category.")

    def on_select(self, _evt=None):
        sel = self.tree.selection()
        if not sel:
            return
        values = self.tree.item(sel[0], "values")
        self.selected_id = int(values[0])
        self.c_name.delete(0, tk.END)
        self.c_name.insert(0, values[1])
        self.c_desc.delete(0, tk.END)
        self.c_desc.insert(0, values[2])

    def clear_form(self):
        self.selected_id = None
        self.c_name.delete(0, tk.END)
        self.c_desc.delete(0, tk.END)

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)
        for c in self.app.categories.list_categories():
            self.tree.insert("", "end", values=(c.id, c.name, c.description or "", c.created_at))
