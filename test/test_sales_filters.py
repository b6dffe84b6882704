from datetime import date, datetime
from pathlib import Path

from conftest import make_currency, make_repo

from tienda.domain.models import Sale
from tienda.services.sales_service import SaleFilter, SalesService, date_range

TODAY = date(2024, 5, 15)  # a Wednesday


def _sale(sid, name, created_at, total=10.0, paid=0.0):
    return Sale(
        id=sid, customer_name=name, total=total, notes=None, currency="USD",
        rates={}, total_paid=paid, created_at=created_at,
    )


SALES = [
    _sale(1, "Ana Pérez", "2024-05-15 09:00:00", paid=10.0),
    _sale(2, "Luis", "2024-05-12 00:00:00", paid=4.0),
    _sale(3, "ana", "2024-05-11 23:59:59"),
    _sale(4, "Marta", "2024-04-30 18:00:00"),
    _sale(5, "Luis", "2023-12-31 12:00:00"),
]

PRODUCTS = {1: ["cafe molido"], 2: ["azucar"], 3: ["cafe en grano", "leche"], 4: [], 5: ["leche"]}


def _service(tmp_path: Path) -> SalesService:
    repo = make_repo(tmp_path)
    return SalesService(repo, make_currency(repo))


def _ids(rows):
    return [s.id for s in rows]


def test_week_starts_on_sunday():
    lo, hi = date_range("week", TODAY)

    assert lo == datetime(2024, 5, 12)
    assert hi == datetime(2024, 5, 16)


def test_week_on_a_sunday_starts_that_day():
    lo, _hi = date_range("week", date(2024, 5, 12))

    assert lo == datetime(2024, 5, 12)


def test_date_presets(tmp_path: Path):
    service = _service(tmp_path)

    def by(period, **kw):
        return _ids(service.filter_sales(SALES, SaleFilter(period=period, **kw), PRODUCTS, today=TODAY))

    assert by("all") == [1, 2, 3, 4, 5]
    assert by("today") == [1]
    assert by("week") == [1, 2]
    assert by("month") == [1, 2, 3]
    assert by("year") == [1, 2, 3, 4]
    assert by("custom", start=date(2024, 4, 30), end=date(2024, 5, 11)) == [3, 4]
    assert by("custom", end=date(2023, 12, 31)) == [5]


def test_customer_and_product_substring_filters(tmp_path: Path):
    service = _service(tmp_path)

    assert _ids(service.filter_sales(SALES, SaleFilter(customer="ANA"), PRODUCTS)) == [1, 3]
    assert _ids(service.filter_sales(SALES, SaleFilter(product="Cafe"), PRODUCTS)) == [1, 3]
    assert _ids(service.filter_sales(SALES, SaleFilter(product="leche", customer="luis"), PRODUCTS)) == [5]


def test_status_filter(tmp_path: Path):
    service = _service(tmp_path)

    assert _ids(service.filter_sales(SALES, SaleFilter(status="paid"), PRODUCTS)) == [1]
    assert _ids(service.filter_sales(SALES, SaleFilter(status="partial"), PRODUCTS)) == [2]
    assert _ids(service.filter_sales(SALES, SaleFilter(status="pending"), PRODUCTS)) == [3, 4, 5]


def test_filter_activity_flag():
    assert not SaleFilter().is_active
    assert not SaleFilter(customer="   ").is_active
    assert SaleFilter(period="today").is_active


def test_sales_pages_hold_ten_rows(tmp_path: Path):
    service = _service(tmp_path)
    rows = [_sale(i, "X", "2024-01-01 00:00:00") for i in range(1, 24)]

    first = service.paginate(rows, 1)
    last = service.paginate(rows, 3)

    assert len(first.rows) == 10 and first.has_next and not first.has_prev
    assert _ids(last.rows) == [21, 22, 23] and not last.has_next
    assert service.paginate([], 1).total_pages == 1
