from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from tienda.domain.models import Product, Sale
from tienda.services.customer_service import aggregate_customers
from tienda.services.payment_service import remaining_balance

log = logging.getLogger("tienda.reports")


@dataclass(frozen=True)
class Dashboard:
    products: int
    categories: int
    sales: int
    sales_today: int
    month_revenue: float
    recent_sales: list[Sale]
    low_stock: list[Product]


class ReportingService:
    def __init__(self, repo, low_stock_threshold: int = 5):
        self.repo = repo
        self.low_stock_threshold = low_stock_threshold

    def dashboard(self, today: date | None = None) -> Dashboard:
        today = today or date.today()
        day0 = datetime.combine(today, datetime.min.time())
        month0 = day0.replace(day=1)
        return Dashboard(
            products=self.repo.count_products(),
            categories=self.repo.count_categories(),
            sales=self.repo.count_sales(),
            sales_today=self.repo.count_sales(since_iso=day0.isoformat(sep=" ")),
            month_revenue=self.repo.revenue_since(month0.isoformat(sep=" ")),
            recent_sales=self.repo.list_sales(limit=5),
            low_stock=self.repo.list_low_stock(self.low_stock_threshold, 5),
        )

    def export_sales_report_excel(self, path: str, start_iso: str, end_iso: str) -> None:
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        sales_rows = self.repo.list_sales_between(start_iso, end_iso)
        payment_rows = self.repo.list_payments_between(start_iso, end_iso)

        invoiced = sum(float(s.total) for s in sales_rows)
        outstanding = sum(remaining_balance(s) for s in sales_rows)
        collected = sum(float(p.amount_in_base) for p in payment_rows)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Window"
        ws["B3"] = f"{start_iso}  ->  {end_iso}"

        rows = [
            ("Sales count", len(sales_rows), "int"),
            ("Invoiced USD", invoiced, "money"),
            ("Collected USD (payments in window)", collected, "money"),
            ("Outstanding USD (sales in window)", outstanding, "money"),
            ("Payments count", len(payment_rows), "int"),
        ]

        start_row = 5
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])

        set_widths(ws, {"A": 36, "B": 34})

        # -------- 2) Sales --------
        ws2 = wb.create_sheet("Sales")
        ws2.append([
            "Sale ID", "Datetime", "Customer", "Status",
            "Total USD", "Paid USD", "Remaining USD",
            "Products", "Notes",
        ])
        bold_row(ws2, 1)

        for out_row, s in enumerate(sales_rows, start=2):
            items = self.repo.sale_items_for_sale(int(s.id))
            products = ", ".join(f"{it.quantity}x {it.product_name}" for it in items)
            ws2.append([
                int(s.id), s.created_at, s.customer_name, s.status,
                float(s.total), float(s.total_paid), remaining_balance(s),
                products, s.notes or "",
            ])
            money(ws2[f"E{out_row}"])
            money(ws2[f"F{out_row}"])
            money(ws2[f"G{out_row}"])

        ws2.freeze_panes = "A2"
        set_widths(ws2, {
            "A": 10, "B": 22, "C": 26, "D": 10,
            "E": 14, "F": 14, "G": 16,
            "H": 40, "I": 28,
        })
        if ws2.max_row >= 2:
            add_table(ws2, "SalesDetail", 1, 1, ws2.max_row, 9)

        # -------- 3) Payments --------
        ws3 = wb.create_sheet("Payments")
        ws3.append([
            "Payment ID", "Sale ID", "Datetime",
            "Amount", "Currency", "Rate", "Amount USD",
            "Method", "Reference",
        ])
        bold_row(ws3, 1)

        for out_row, p in enumerate(payment_rows, start=2):
            ws3.append([
                int(p.id), int(p.sale_id), p.created_at,
                float(p.amount), p.currency, float(p.rate), float(p.amount_in_base),
                p.method, p.reference or "",
            ])
            money(ws3[f"D{out_row}"])
            money(ws3[f"G{out_row}"])

        ws3.freeze_panes = "A2"
        set_widths(ws3, {
            "A": 12, "B": 10, "C": 22,
            "D": 14, "E": 10, "F": 10, "G": 14,
            "H": 16, "I": 24,
        })
        if ws3.max_row >= 2:
            add_table(ws3, "PaymentsDetail", 1, 1, ws3.max_row, 9)

        # -------- 4) Customers --------
        ws4 = wb.create_sheet("Customers")
        ws4.append(["Customer", "Purchases", "Invoiced USD", "Paid USD", "Pending USD", "Last purchase"])
        bold_row(ws4, 1)

        stats = aggregate_customers(self.repo.list_customers(), self.repo.list_sales())
        for out_row, c in enumerate(stats, start=2):
            ws4.append([c.name, c.purchases, c.invoiced, c.paid, c.pending, c.last_purchase or ""])
            money(ws4[f"C{out_row}"])
            money(ws4[f"D{out_row}"])
            money(ws4[f"E{out_row}"])

        ws4.freeze_panes = "A2"
        set_widths(ws4, {"A": 28, "B": 10, "C": 14, "D": 14, "E": 14, "F": 22})
        if ws4.max_row >= 2:
            add_table(ws4, "CustomerBalances", 1, 1, ws4.max_row, 6)

        wb.save(path)
        log.info("sales_report_exported path=%s sales=%s payments=%s", path, len(sales_rows), len(payment_rows))
