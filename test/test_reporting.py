from datetime import date
from pathlib import Path

from conftest import make_currency, make_repo, set_created_at
from openpyxl import load_workbook

from tienda.services.cart import Cart
from tienda.services.category_service import CategoryService
from tienda.services.inventory_service import InventoryService
from tienda.services.payment_service import PaymentService
from tienda.services.reporting_service import ReportingService
from tienda.services.sales_service import SalesService


def _sell(inventory, sales, pid, customer):
    cart = Cart()
    cart.add(inventory.get_product(pid))
    return sales.checkout(cart, customer)


def _setup(tmp_path: Path):
    repo = make_repo(tmp_path)
    currency = make_currency(repo)
    inventory = InventoryService(repo)
    sales = SalesService(repo, currency)
    payments = PaymentService(repo, currency)
    return repo, inventory, sales, payments


def test_dashboard_counts(tmp_path: Path):
    repo, inventory, sales, _payments = _setup(tmp_path)
    CategoryService(repo).add_category("Hogar")
    pid = inventory.add_product("Cojin", None, 12.0, 3)
    inventory.add_product("Manta", None, 30.0, 40)

    old = _sell(inventory, sales, pid, "Ana")
    _sell(inventory, sales, pid, "Luis")
    set_created_at(repo, "sales", old, "2020-01-15 10:00:00")

    d = ReportingService(repo).dashboard()

    assert (d.products, d.categories, d.sales, d.sales_today) == (2, 1, 2, 1)
    assert d.month_revenue == 12.0
    assert [s.customer_name for s in d.recent_sales] == ["Luis", "Ana"]
    assert [p.name for p in d.low_stock] == ["Cojin"]


def test_dashboard_on_empty_store(tmp_path: Path):
    d = ReportingService(make_repo(tmp_path)).dashboard(today=date(2024, 1, 1))

    assert (d.products, d.sales, d.month_revenue) == (0, 0, 0.0)
    assert d.recent_sales == [] and d.low_stock == []


def test_export_report_has_all_sheets(tmp_path: Path):
    repo, inventory, sales, payments = _setup(tmp_path)
    pid = inventory.add_product("Mochila", None, 10.0, 5)
    sid = _sell(inventory, sales, pid, "Ana")
    _sell(inventory, sales, pid, "Luis")
    payments.record_payment(sid, "41500", "COP", method="pago_movil")

    out = tmp_path / "report.xlsx"
    ReportingService(repo).export_sales_report_excel(str(out), "2000-01-01 00:00:00", "2100-01-01 00:00:00")

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Sales", "Payments", "Customers"]

    summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(min_row=5, values_only=True)}
    assert summary["Sales count"] == 2
    assert summary["Invoiced USD"] == 20.0
    assert summary["Outstanding USD (sales in window)"] == 10.0

    sales_rows = list(wb["Sales"].iter_rows(min_row=2, values_only=True))
    assert {r[2]: r[3] for r in sales_rows} == {"Ana": "paid", "Luis": "pending"}

    pay_rows = list(wb["Payments"].iter_rows(min_row=2, values_only=True))
    assert len(pay_rows) == 1 and pay_rows[0][4] == "COP" and pay_rows[0][7] == "pago_movil"

    customers = list(wb["Customers"].iter_rows(min_row=2, values_only=True))
    assert customers[0][0] == "Luis" and customers[0][4] == 10.0
